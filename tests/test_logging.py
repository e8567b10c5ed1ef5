"""Tests for JSONL logging."""

import json
from pathlib import Path

import pytest

from secrecy.logging import JSONLLogger, LogEntry, configure_logger, get_logger, reset_logger


@pytest.fixture
def logger(tmp_path: Path) -> JSONLLogger:
    return JSONLLogger(log_dir=tmp_path)


def read_entries(logger: JSONLLogger) -> list[dict]:
    with open(logger.log_path, encoding="utf-8") as f:
        return [json.loads(line) for line in f]


def test_log_entry_to_dict():
    """LogEntry excludes None values."""
    data = LogEntry(timestamp="2024-01-01T00:00:00Z", event="test").to_dict()

    assert data == {"timestamp": "2024-01-01T00:00:00Z", "event": "test"}


def test_log_writes_jsonl(logger: JSONLLogger):
    logger.log("event1", chat_id="chat-1")
    logger.log("event2", chat_id="chat-2")

    entries = read_entries(logger)
    assert [e["event"] for e in entries] == ["event1", "event2"]
    assert entries[0]["chat_id"] == "chat-1"


def test_user_id_applied(logger: JSONLLogger):
    logger.set_user_id("alice")
    logger.log("event")

    assert read_entries(logger)[0]["user_id"] == "alice"


def test_log_send_settled(logger: JSONLLogger):
    logger.log_send_settled("failed", chat_id="chat-1", mode="CHAT", cost=5, duration_ms=12.5)
    logger.log_send_settled("completed", chat_id="chat-2", discarded=True)

    first, second = read_entries(logger)
    assert first["status"] == "failed"
    assert first["cost"] == 5
    assert "extra" not in first
    assert second["extra"] == {"discarded": True}


def test_log_completion_error(logger: JSONLLogger):
    logger.log_completion_error("HTTP error! status: 500", chat_id="chat-1", duration_ms=3.0)

    entry = read_entries(logger)[0]
    assert entry["event"] == "completion_error"
    assert entry["error"] == "HTTP error! status: 500"


def test_rotation(tmp_path: Path):
    logger = JSONLLogger(log_dir=tmp_path, max_size_mb=0.0001)
    for i in range(20):
        logger.log("event", index=i)

    assert len(list(tmp_path.glob("events_*.jsonl"))) >= 1
    assert logger.log_path.exists()


def test_global_logger(tmp_path: Path):
    reset_logger()
    configured = configure_logger(tmp_path)
    assert get_logger() is configured
    reset_logger()
