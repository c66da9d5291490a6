"""Tests for devtelemetry/services/event_history.py"""

from datetime import datetime

from conftest import BrokenHistory, FakeHistory, http_event
from devtelemetry.services.event_history import (
    Event,
    EventHistoryView,
    extract_error_code,
    format_error,
    format_event,
    format_event_time,
    format_stack_trace,
)


def ids(events):
    return [e.id for e in events]


class TestEvent:
    def test_duration_is_sum_of_segments(self):
        event = Event.from_mapping(http_event("a", 1.0, segments=[
            {"type": "database_query", "timestamp": 1.1, "payload": {"duration": 2.5}},
            {"type": "view", "timestamp": 1.2, "payload": {}},
            {"type": "cache", "timestamp": 1.3, "payload": {"duration": 1}},
        ]))
        assert event.duration == 3.5

    def test_duration_without_segments_is_none(self):
        assert Event.from_mapping(http_event("a", 1.0, duration=99)).duration is None

    def test_status_defaults_to_200(self):
        event = Event.from_mapping({"id": 1, "type": "http_request", "timestamp": 1.0, "payload": {}})
        assert event.status == 200
        assert event.id == "1"

    def test_loose_record(self):
        event = Event.from_mapping({"timestamp": "nope", "payload": "junk", "segments": "junk"})
        assert event.type == "unknown"
        assert event.timestamp == 0.0
        assert event.payload == {}
        assert event.segments == ()


class TestEventHistoryView:
    def test_no_provider(self):
        view = EventHistoryView(None)
        assert not view.available
        assert view.events() == []
        assert view.recent() == []
        assert view.statistics().total_events == 0

    def test_broken_provider_degrades_to_empty(self):
        view = EventHistoryView(BrokenHistory())
        assert view.events() == []
        assert view.http_requests() == []
        assert view.errors() == []

    def test_malformed_records_are_skipped(self, sample_events):
        view = EventHistoryView(FakeHistory(["junk", 42] + sample_events))
        assert len(view.events()) == 3

    def test_recent_newest_first(self, history):
        view = EventHistoryView(history)
        assert ids(view.recent()) == ["r2", "c1", "r1"]
        assert ids(view.recent("http_request")) == ["r2", "r1"]
        assert ids(view.recent(limit=1)) == ["r2"]

    def test_equal_timestamps_keep_history_order(self):
        view = EventHistoryView(FakeHistory([http_event("a", 5.0), http_event("b", 5.0), http_event("c", 6.0)]))
        assert ids(view.recent()) == ["c", "a", "b"]

    def test_history_is_read_on_every_call(self, history):
        view = EventHistoryView(history)
        view.recent()
        history.events.append(http_event("r3", 400.0))
        assert ids(view.recent(limit=1)) == ["r3"]
        assert history.calls == 2

    def test_http_requests(self, history):
        requests = EventHistoryView(history).http_requests()
        assert [r["id"] for r in requests] == ["r2", "r1"]
        first = requests[0]
        assert first["status"] == 500
        assert first["method"] == "GET"
        assert first["duration_ms"] == 30.0
        assert first["segments"][0]["type"] == "exception"

    def test_errors(self, history):
        errors = EventHistoryView(history).errors()
        assert len(errors) == 1
        error = errors[0]
        assert error["id"] == "r2"
        assert error["status"] == 500
        assert error["error"]["message"] == "SQLSTATE[42P01] relation missing"
        assert error["error"]["code"] == "42P01"
        assert error["error"]["file"] == "/app/db.py"
        assert error["error"]["line"] == 12

    def test_errors_limit(self):
        view = EventHistoryView(FakeHistory([http_event(str(i), float(i), status=404) for i in range(5)]))
        assert [e["id"] for e in view.errors(limit=2)] == ["4", "3"]

    def test_statistics(self, history):
        stats = EventHistoryView(history).statistics()
        assert stats.total_events == 3
        assert stats.counts_by_type == {"http_request": 2, "cache": 1}
        assert stats.average_duration_ms == 5.0
        assert stats.total_duration_ms == 10.0


class TestFormatError:
    def test_payload_error_with_string_trace(self):
        event = Event.from_mapping(http_event("a", 1.0, status=404, error={
            "message": "HTTP 404 not found", "trace": ["frame one", "frame two"],
        }))
        error = format_error(event)["error"]
        assert error["code"] == "404"
        assert error["trace"] == [{"line": "frame one"}, {"line": "frame two"}]

    def test_missing_status_and_message(self):
        event = Event.from_mapping({"id": "x", "type": "http_request", "timestamp": 1.0, "payload": {}})
        formatted = format_error(event)
        assert formatted["status"] == 500
        assert formatted["error"]["message"] == "HTTP 500 Error"
        assert formatted["error"]["code"] == "500"

    def test_query_context(self):
        event = Event.from_mapping(http_event("a", 1.0, status=500, segments=[
            {"type": "database_query", "timestamp": 1.1, "payload": {"query": "SELECT 1", "params": [1]}},
            {"type": "database_query", "timestamp": 1.2, "payload": {"query": "SELECT 2"}},
        ]))
        assert format_error(event)["error"]["context"] == {"query": "SELECT 2", "params": [1]}


class TestHelpers:
    def test_extract_error_code(self):
        assert extract_error_code("SQLSTATE[23000]: duplicate") == "23000"
        assert extract_error_code("HTTP 503 upstream") == "503"
        assert extract_error_code("something else") is None
        assert extract_error_code(None) is None

    def test_format_stack_trace(self):
        frames = [{"file": "a.py", "line": 1}, "stray"]
        assert format_stack_trace(frames) == [{"file": "a.py", "line": 1}]
        assert format_stack_trace("not a list") == []
        assert format_stack_trace([1, 2]) == []
        assert format_stack_trace([]) == []

    def test_format_event_time(self):
        ts = 1700000000.25
        expected = datetime.fromtimestamp(1700000000).strftime("%Y-%m-%d %H:%M:%S") + ".250"
        assert format_event_time(ts) == expected

    def test_format_event(self, sample_events):
        formatted = format_event(Event.from_mapping(sample_events[0]))
        assert formatted["id"] == "r1"
        assert formatted["duration"] == 4.0
        assert formatted["time"].endswith(".000")

    def test_format_event_without_timestamp(self):
        formatted = format_event(Event.from_mapping({"type": "cache"}))
        assert formatted["time"] is None
        assert formatted["duration"] is None


class TestUnusableNumbers:
    def test_non_finite_timestamps_read_as_missing(self):
        for raw in (float("nan"), float("inf"), "nan", "-inf", 10 ** 400):
            assert Event.from_mapping(http_event("a", raw)).timestamp == 0.0

    def test_epoch_milliseconds_have_no_display_time(self):
        event = Event.from_mapping(http_event("ms", 1.7e12))
        assert format_event_time(1.7e12) is None
        assert format_event_time(float("nan")) is None
        assert format_event(event)["time"] is None
        assert format_event(event)["timestamp"] == 1.7e12

    def test_unusable_status_reads_as_ok(self):
        for raw in (float("inf"), "nan", 10 ** 400, 1e300, -1, "oops"):
            assert Event.from_mapping(http_event("a", 1.0, status=raw)).status == 200

    def test_non_finite_segment_duration_is_ignored(self):
        event = Event.from_mapping(http_event("a", 1.0, segments=[
            {"type": "cache", "timestamp": 1.1, "payload": {"duration": float("inf")}},
            {"type": "cache", "timestamp": 1.2, "payload": {"duration": 2.0}},
        ]))
        assert event.duration == 2.0

    def test_view_queries_survive_bad_records(self):
        view = EventHistoryView(FakeHistory([
            http_event("ms", 1.7e12, status=502),
            http_event("nan", "nan", status=float("inf"), duration=float("nan")),
            http_event("ok", 50.0, status=404),
        ]))
        assert ids(view.recent()) == ["ms", "ok", "nan"]
        assert [r["id"] for r in view.http_requests()] == ["ms", "ok", "nan"]
        assert view.http_requests()[2]["duration_ms"] == 0
        assert [e["id"] for e in view.errors()] == ["ms", "ok"]
        assert [format_event(e)["time"] for e in view.recent()][0] is None
        assert view.statistics().total_events == 3
