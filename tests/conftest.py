"""
Shared fixtures for mirror tests.
"""

import pytest
from loguru import logger

from kafka_mirror.config import MirrorConfig


@pytest.fixture
def config():
    """Minimal mirror configuration."""
    return MirrorConfig(
        source_brokers=['source:9092'],
        destination_brokers=['destination:9092']
    )


@pytest.fixture
def journal():
    """Shared event log for ordering assertions."""
    return []


@pytest.fixture
def log_messages():
    """Capture loguru messages emitted during a test."""
    messages = []
    handler_id = logger.add(lambda m: messages.append(m.record['message']), level='DEBUG')
    yield messages
    logger.remove(handler_id)
