"""
Shared fixtures: a fake transport and a sleep that records instead of waiting.
"""

import logging
from unittest.mock import AsyncMock, MagicMock

import pytest

from esresilience.core.retry.policy import BackoffTimer
from esresilience.core.retry.throttle import ThrottledLogger


class ClusterError(Exception):
    """Error shaped like the transport's ApiError: a message plus a structured body."""

    def __init__(self, error_type: str, reason: str = "", status: int = 500):
        super().__init__(f"{error_type}: {reason}")
        self.message = f"{error_type}: {reason}"
        self.body = {"error": {"type": error_type, "reason": reason}, "status": status}


def rejected(reason: str = "rejected execution of coordinating operation") -> ClusterError:
    return ClusterError("es_rejected_execution_exception", reason, status=429)


class RecordingSleep:
    """Async stand-in for asyncio.sleep that remembers every delay."""

    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def sleep():
    return RecordingSleep()


@pytest.fixture
def timer(sleep):
    return BackoffTimer(sleep)


@pytest.fixture
def warning():
    return ThrottledLogger(logging.getLogger("esresilience.test"), "overloaded", interval=5.0)


@pytest.fixture
def client():
    """Fake AsyncElasticsearch: every API is an AsyncMock."""
    fake = MagicMock()
    for name in ("search", "get", "index", "create", "update", "delete", "bulk", "close"):
        setattr(fake, name, AsyncMock())
    for name in ("exists", "create", "refresh", "recovery", "put_template", "get_settings"):
        setattr(fake.indices, name, AsyncMock())
    fake.cluster.stats = AsyncMock()
    fake.nodes.info = AsyncMock()
    fake.nodes.stats = AsyncMock()
    return fake
