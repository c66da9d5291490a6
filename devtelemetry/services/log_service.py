# devtelemetry/services/log_service.py
"""
Multi-file log aggregation.

Flow:
1) List `*.log` files in the log directory, names descending (date-suffixed
   names make that newest-first).
2) Tail every file with the *same* line budget and filter. The budget is not
   divided across files, so the worst case reads max_lines from each file.
3) Parse each line, tagging it with its file name.
4) One global stable sort by timestamp (newest first; lines without a
   timestamp sort last), then truncate to max_lines.

Step 2 can fan out to a thread pool. Step 4 always runs after every file has
been read.
"""

from __future__ import annotations

import logging
import os
from concurrent.futures import Executor
from dataclasses import dataclass, field
from typing import List, Optional

from devtelemetry.utils.ordering import top_n_by_timestamp_desc
from devtelemetry.utils.parsers import LogLine, LogLineParser, now_iso
from devtelemetry.utils.tail import tail_file

logger = logging.getLogger(__name__)

DEFAULT_EXTENSION = "log"


@dataclass(frozen=True)
class LogCollection:
    entries: List[LogLine] = field(default_factory=list)
    files: List[str] = field(default_factory=list)


def list_log_files(log_dir: str, extension: str = DEFAULT_EXTENSION) -> List[str]:
    """Regular files in `log_dir` with the given extension, names descending."""
    suffix = "." + extension.lstrip(".").lower()
    try:
        names = os.listdir(log_dir)
    except OSError as exc:
        logger.debug("Log directory %s not readable: %s", log_dir, exc)
        return []

    files = [
        name for name in names
        if name.lower().endswith(suffix) and os.path.isfile(os.path.join(log_dir, name))
    ]
    files.sort(reverse=True)
    return files


def _tail_and_parse(
    log_dir: str,
    file_name: str,
    max_lines: int,
    filter_text: Optional[str],
    parser: LogLineParser,
) -> List[LogLine]:
    path = os.path.join(log_dir, file_name)
    return [parser.parse(line.text, file_name) for line in tail_file(path, max_lines, filter_text)]


def collect_logs(
    log_dir: str,
    max_lines: int,
    filter_text: Optional[str] = None,
    *,
    extension: str = DEFAULT_EXTENSION,
    parser: Optional[LogLineParser] = None,
    executor: Optional[Executor] = None,
) -> LogCollection:
    """
    Newest-first merged view of the last `max_lines` lines across all log files.

    Args:
        log_dir: directory holding the log files. Missing -> empty collection.
        max_lines: cap on the merged result (and the per-file tail budget).
        filter_text: case-insensitive substring every line must contain
            (typically a level keyword such as "ERROR").
        extension: file extension marking a log file.
        parser: line parser; the default accepts any source extension.
        executor: when given, files are tailed concurrently on it.
    """
    files = list_log_files(log_dir, extension)
    if not files or max_lines <= 0:
        return LogCollection(entries=[], files=files)

    parser = parser or LogLineParser()

    if executor is not None:
        futures = [
            executor.submit(_tail_and_parse, log_dir, name, max_lines, filter_text, parser)
            for name in files
        ]
        per_file = [f.result() for f in futures]
    else:
        per_file = [_tail_and_parse(log_dir, name, max_lines, filter_text, parser) for name in files]

    merged = [entry for entries in per_file for entry in entries]
    entries = top_n_by_timestamp_desc(merged, max_lines, key=lambda e: e.timestamp or "")

    logger.debug("Collected %d of %d lines from %d log files", len(entries), len(merged), len(files))
    return LogCollection(entries=entries, files=files)


def read_log_file(
    log_dir: str,
    file_name: str,
    max_lines: int,
    filter_text: Optional[str] = None,
    *,
    extension: str = DEFAULT_EXTENSION,
    parser: Optional[LogLineParser] = None,
) -> List[LogLine]:
    """
    Last `max_lines` lines of one log file, oldest first.

    Only names returned by `list_log_files` are served; anything else
    (unknown file, "../" tricks) yields [].
    """
    if file_name not in list_log_files(log_dir, extension):
        logger.debug("Refusing to read %r: not a log file in %s", file_name, log_dir)
        return []
    return _tail_and_parse(log_dir, file_name, max_lines, filter_text, parser or LogLineParser())


def log_line_as_dict(entry: LogLine) -> dict:
    """Display form of a parsed line; a missing timestamp shows as "now"."""
    return {
        "timestamp": entry.timestamp or now_iso(),
        "level": entry.level,
        "message": entry.message,
        "context": entry.context.as_dict(),
        "file": entry.source_file,
    }
