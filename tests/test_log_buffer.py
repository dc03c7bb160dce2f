"""
Tests for the In-Memory Log Buffer
"""

import logging

import pytest

from warranty_lifecycle.utils.log_buffer import LogBuffer, LogBufferHandler


class TestLogBuffer:
    """Tests for buffering and subscriptions."""

    def test_keeps_only_newest_entries(self):
        buffer = LogBuffer(max_entries=3)
        for i in range(5):
            buffer.info(f"message {i}")

        assert len(buffer) == 3
        assert [e.message for e in buffer.recent()] == ["message 2", "message 3", "message 4"]

    def test_recent_limit(self):
        buffer = LogBuffer()
        for i in range(4):
            buffer.debug(f"message {i}")

        assert [e.message for e in buffer.recent(2)] == ["message 2", "message 3"]
        assert buffer.recent(0) == []

    def test_filters(self):
        buffer = LogBuffer()
        buffer.info("lookup started", source="dispatcher")
        buffer.error("lookup failed", source="api")
        buffer.warn("slow response", source="api")

        assert [e.message for e in buffer.by_level("error")] == ["lookup failed"]
        assert [e.message for e in buffer.by_source("api")] == ["lookup failed", "slow response"]

    def test_subscribe_and_unsubscribe(self):
        buffer = LogBuffer()
        received = []
        subscriber_id = buffer.subscribe(received.append)

        buffer.info("first")
        assert buffer.unsubscribe(subscriber_id) is True
        buffer.info("second")

        assert [e.message for e in received] == ["first"]
        assert buffer.subscriber_count == 0
        assert buffer.unsubscribe(subscriber_id) is False

    def test_failing_subscriber_does_not_block_others(self, capsys):
        buffer = LogBuffer()
        received = []

        def broken(entry):
            raise RuntimeError("viewer disconnected")

        buffer.subscribe(broken)
        buffer.subscribe(received.append)
        buffer.error("disk full", metadata={"device": "dev-1"})

        assert [e.message for e in received] == ["disk full"]
        assert "viewer disconnected" in capsys.readouterr().err
        assert len(buffer) == 1

    def test_entry_to_dict(self):
        entry = LogBuffer().warn("careful", source="test", metadata={"k": 1})
        data = entry.to_dict()

        assert data["level"] == "warn"
        assert data["message"] == "careful"
        assert data["source"] == "test"
        assert data["metadata"] == {"k": 1}
        assert data["id"]

    def test_clear(self):
        buffer = LogBuffer()
        buffer.info("one")
        buffer.clear()
        assert len(buffer) == 0

    def test_invalid_arguments(self):
        with pytest.raises(ValueError):
            LogBuffer(max_entries=0)
        with pytest.raises(ValueError):
            LogBuffer().log("verbose", "message")


class TestLogBufferHandler:
    """Tests for the logging bridge."""

    def test_records_are_mirrored(self):
        buffer = LogBuffer()
        logger = logging.getLogger("warranty_lifecycle.tests.handler")
        logger.setLevel(logging.DEBUG)
        handler = LogBufferHandler(buffer)
        logger.addHandler(handler)
        try:
            logger.info("Starting lookup for %d devices", 3)
            logger.warning("Duplicate result")
            logger.critical("Run aborted")
        finally:
            logger.removeHandler(handler)

        entries = buffer.recent()
        assert [e.level for e in entries] == ["info", "warn", "error"]
        assert entries[0].message == "Starting lookup for 3 devices"
        assert entries[0].source == "warranty_lifecycle.tests.handler"
