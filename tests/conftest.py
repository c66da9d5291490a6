import json
import os

import pytest
from fastapi.testclient import TestClient

from devtelemetry.api.deps import get_settings
from devtelemetry.core.config import Settings
from devtelemetry.main import create_app


class FakeHistory:
    """Stand-in for the host's event history ring buffer."""

    def __init__(self, events=None):
        self.events = list(events or [])
        self.calls = 0

    def get_history(self):
        self.calls += 1
        return list(self.events)


class BrokenHistory:
    def get_history(self):
        raise RuntimeError("history unavailable")


def write_lines(path, lines, trailing_newline=True):
    with open(path, "w", encoding="utf-8") as f:
        f.write("\n".join(lines))
        if trailing_newline:
            f.write("\n")
    return str(path)


def write_json(path, data):
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f)
    return str(path)


def http_event(event_id, ts, status=200, duration=None, segments=None, **payload):
    body = {"method": "GET", "path": "/", "status": status}
    if duration is not None:
        body["duration"] = duration
    body.update(payload)
    return {
        "id": event_id,
        "type": "http_request",
        "timestamp": ts,
        "payload": body,
        "segments": segments or [],
    }


@pytest.fixture
def project_root(tmp_path):
    """PROJECT_ROOT with an empty var/log directory."""
    os.makedirs(tmp_path / "var" / "log")
    return tmp_path


@pytest.fixture
def log_dir(project_root):
    return project_root / "var" / "log"


@pytest.fixture
def test_settings(project_root):
    return Settings(
        _env_file=None,
        ENV="test",
        APP_NAME="Demo App",
        PROJECT_ROOT=str(project_root),
        MEMORY_LIMIT="1K",
        WORKER_NUM=4,
    )


@pytest.fixture
def sample_events():
    return [
        http_event("r1", 100.0, status=200, duration=10.0,
                   segments=[{"type": "database_query", "timestamp": 100.1, "payload": {"duration": 4.0}}]),
        http_event("r2", 300.0, status=500, duration=30.0,
                   segments=[{"type": "exception", "timestamp": 300.1,
                              "payload": {"message": "SQLSTATE[42P01] relation missing", "file": "/app/db.py",
                                          "line": 12, "duration": 6.0}}]),
        {"id": "c1", "type": "cache", "timestamp": 200.0, "payload": {}, "segments": []},
    ]


@pytest.fixture
def history(sample_events):
    return FakeHistory(sample_events)


@pytest.fixture
def app(test_settings, history):
    application = create_app(history_provider=history, sync_checks={"ledger": lambda: True})
    application.dependency_overrides[get_settings] = lambda: test_settings
    return application


@pytest.fixture
def client(app):
    return TestClient(app)
