"""Pytest configuration and shared fixtures."""

import pytest

from aitriage.config.schema import TriageConfig
from aitriage.storage.base import MemoryStore


class FakeClock:
    """Manually advanced clock returning epoch seconds."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> float:
        self.now += seconds
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    """Provide a controllable clock."""
    return FakeClock()


@pytest.fixture
def store() -> MemoryStore:
    """Provide an empty in-memory store."""
    return MemoryStore()


@pytest.fixture
def default_config() -> TriageConfig:
    """Provide a default configuration for tests."""
    return TriageConfig()


@pytest.fixture
def memory_config() -> TriageConfig:
    """Provide a configuration that never touches disk."""
    config = TriageConfig()
    config.storage.backend = "memory"
    return config
