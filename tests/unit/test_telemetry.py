"""Unit tests for structured operation logging."""

import pytest
from structlog.testing import capture_logs

from persona_memory.config.settings import LoggingSettings
from persona_memory.telemetry import configure_logging, log_operation, timed_operation


def test_log_operation_event():
    with capture_logs() as logs:
        log_operation("store_memory", "user_1", "persona_1", 12.34567, deduplicated=False)

    assert len(logs) == 1
    event = logs[0]
    assert event["event"] == "memory_operation"
    assert event["operation"] == "store_memory"
    assert event["owner_id"] == "user_1"
    assert event["persona_id"] == "persona_1"
    assert event["duration_ms"] == 12.346
    assert event["deduplicated"] is False


def test_timed_operation_collects_extra_fields():
    with capture_logs() as logs:
        with timed_operation("search_memories", "user_1", "persona_1") as extra:
            extra["results"] = 3

    assert logs[0]["operation"] == "search_memories"
    assert logs[0]["results"] == 3
    assert logs[0]["duration_ms"] >= 0


def test_timed_operation_not_logged_on_error():
    with capture_logs() as logs:
        with pytest.raises(RuntimeError):
            with timed_operation("wipe_memories", "user_1", "persona_1"):
                raise RuntimeError("boom")

    assert logs == []


def test_engine_operations_are_logged(engine):
    with capture_logs() as logs:
        engine.store_memory("user_1", "persona_1", "I like hiking")
        engine.store_memory("user_1", "persona_1", "I like hiking")

    events = [e for e in logs if e.get("event") == "memory_operation"]
    assert [e["deduplicated"] for e in events] == [False, True]


@pytest.mark.parametrize("json_output", [True, False])
def test_configure_logging(json_output):
    configure_logging(LoggingSettings(level="DEBUG", json_output=json_output))
