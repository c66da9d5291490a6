"""Tests for devtelemetry/services/log_service.py"""

import os
from concurrent.futures import ThreadPoolExecutor

from conftest import write_lines
from devtelemetry.services.log_service import collect_logs, list_log_files, log_line_as_dict, read_log_file
from devtelemetry.utils.parsers import LogLineParser, parse_log_line


def seed_logs(log_dir):
    write_lines(log_dir / "app-2024-01-01.log", [
        "[2024-01-01 10:00:01] INFO first",
        "[2024-01-01 10:00:03] ERROR third",
    ])
    write_lines(log_dir / "app-2024-01-02.log", [
        "[2024-01-01 10:00:02] WARNING second",
        "[2024-01-01 10:00:04] INFO fourth",
    ])
    write_lines(log_dir / "notes.txt", ["[2024-01-01 10:00:09] INFO not a log"])


class TestListLogFiles:
    def test_names_descending_and_extension_only(self, log_dir):
        seed_logs(log_dir)
        os.makedirs(log_dir / "archive.log")
        assert list_log_files(str(log_dir)) == ["app-2024-01-02.log", "app-2024-01-01.log"]

    def test_other_extension(self, log_dir):
        seed_logs(log_dir)
        assert list_log_files(str(log_dir), ".txt") == ["notes.txt"]

    def test_missing_directory(self, tmp_path):
        assert list_log_files(str(tmp_path / "nope")) == []


class TestCollectLogs:
    def test_merges_newest_first(self, log_dir):
        seed_logs(log_dir)
        result = collect_logs(str(log_dir), 3)
        assert [e.message for e in result.entries] == ["fourth", "third", "second"]
        assert result.files == ["app-2024-01-02.log", "app-2024-01-01.log"]

    def test_entries_are_tagged_with_file(self, log_dir):
        seed_logs(log_dir)
        entries = collect_logs(str(log_dir), 10).entries
        assert {e.message: e.source_file for e in entries} == {
            "first": "app-2024-01-01.log",
            "second": "app-2024-01-02.log",
            "third": "app-2024-01-01.log",
            "fourth": "app-2024-01-02.log",
        }

    def test_filter_applies_to_every_file(self, log_dir):
        seed_logs(log_dir)
        entries = collect_logs(str(log_dir), 10, "info").entries
        assert [e.message for e in entries] == ["fourth", "first"]

    def test_lines_without_timestamp_sort_last(self, log_dir):
        write_lines(log_dir / "a.log", ["no timestamp here", "[2024-01-01 00:00:00] INFO dated"])
        entries = collect_logs(str(log_dir), 10).entries
        assert [e.message for e in entries] == ["dated", "no timestamp here"]

    def test_missing_directory(self, tmp_path):
        result = collect_logs(str(tmp_path / "nope"), 10)
        assert result.entries == []
        assert result.files == []

    def test_zero_lines_still_lists_files(self, log_dir):
        seed_logs(log_dir)
        result = collect_logs(str(log_dir), 0)
        assert result.entries == []
        assert len(result.files) == 2

    def test_executor_gives_same_result(self, log_dir):
        seed_logs(log_dir)
        sequential = collect_logs(str(log_dir), 10)
        with ThreadPoolExecutor(max_workers=2) as executor:
            concurrent = collect_logs(str(log_dir), 10, executor=executor)
        assert concurrent == sequential

    def test_custom_parser(self, log_dir):
        write_lines(log_dir / "a.log", ["[2024-01-01 00:00:00] ERROR in /srv/x.php:7 and /srv/y.py:2"])
        entries = collect_logs(str(log_dir), 10, parser=LogLineParser(["py"])).entries
        assert entries[0].context.file == "/srv/y.py"


class TestReadLogFile:
    def test_single_file_oldest_first(self, log_dir):
        seed_logs(log_dir)
        entries = read_log_file(str(log_dir), "app-2024-01-02.log", 10)
        assert [e.message for e in entries] == ["second", "fourth"]

    def test_unknown_file(self, log_dir):
        seed_logs(log_dir)
        assert read_log_file(str(log_dir), "missing.log", 10) == []

    def test_wrong_extension_is_refused(self, log_dir):
        seed_logs(log_dir)
        assert read_log_file(str(log_dir), "notes.txt", 10) == []

    def test_path_traversal_is_refused(self, log_dir):
        write_lines(log_dir.parent / "secret.log", ["[2024-01-01 00:00:00] INFO secret"])
        assert read_log_file(str(log_dir), "../secret.log", 10) == []


class TestLogLineAsDict:
    def test_display_fields(self):
        entry = parse_log_line("[2024-01-02T03:04:05Z] ERROR Something failed in /a/b.ext:42", "app.log")
        assert log_line_as_dict(entry) == {
            "timestamp": "2024-01-02T03:04:05Z",
            "level": "ERROR",
            "message": "Something failed in /a/b.ext:42",
            "context": {"file": "/a/b.ext", "line": 42},
            "file": "app.log",
        }

    def test_missing_timestamp_shows_now(self):
        out = log_line_as_dict(parse_log_line("plain line no metadata"))
        assert out["timestamp"]
        assert out["timestamp"][:2] == "20"
