"""
Shared fixtures for flight admin tests
"""

import pytest

from flight_admin.services import CallRegistry, RequestLifecycleManager
from flight_admin.types import DatedRecord


class FakeClock:
    """Monotonic clock advanced by hand"""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance_ms(self, ms: float) -> None:
        self.now += ms / 1000


class RecordingSleep:
    """Retry sleep that returns at once and remembers the requested delays"""

    def __init__(self):
        self.delays = []

    async def __call__(self, seconds, token) -> bool:
        self.delays.append(seconds)
        return not token.cancelled


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def retry_sleep():
    return RecordingSleep()


@pytest.fixture
def registry(clock):
    return CallRegistry(clock=clock, stats_window_seconds=10.0, history_retention_seconds=60.0)


@pytest.fixture
def manager(registry, retry_sleep):
    return RequestLifecycleManager(
        registry=registry,
        max_retries=3,
        base_delay_ms=1000,
        duplicate_threshold_ms=1000,
        sleep=retry_sleep
    )


@pytest.fixture
def make_records():
    """Build records with ids r0, r1, ... stamped with the given timestamps"""
    def build(*timestamps):
        return [DatedRecord(id=f"r{i}", timestamp_iso=ts) for i, ts in enumerate(timestamps)]
    return build
