"""Shared fixtures."""

import pytest
from loguru import logger


@pytest.fixture
def log_records():
    """Capture loguru records emitted during a test."""
    records = []
    handler_id = logger.add(lambda message: records.append(message.record), level="TRACE")
    yield records
    logger.remove(handler_id)


@pytest.fixture
def messages_at(log_records):
    """Return the messages captured at a given level."""

    def _messages_at(level: str) -> list[str]:
        return [record["message"] for record in log_records if record["level"].name == level]

    return _messages_at
