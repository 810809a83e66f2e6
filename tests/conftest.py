"""
Pytest Configuration and Fixtures.

This file configures pytest and provides shared fixtures for all tests.
"""
import random
import sys
from datetime import datetime, timedelta
from pathlib import Path

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from flashdeck.review import (  # noqa: E402
    Card,
    KeyValueCardStore,
    KeyValueStore,
    SessionStateStore,
)


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests (real SQLite file)")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)


class FakeClock:
    """Clock that only moves when told to."""

    def __init__(self, now: datetime):
        self.current = now

    def now(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> None:
        self.current += timedelta(**kwargs)


@pytest.fixture
def clock():
    """Midday, so hour-scale moves stay within the same calendar day."""
    return FakeClock(datetime(2024, 3, 15, 12, 0, 0))


@pytest.fixture
def rng():
    return random.Random(1234)


@pytest.fixture
def kv(tmp_path):
    store = KeyValueStore(tmp_path / "flashdeck.db")
    yield store
    store.close()


@pytest.fixture
def card_store(kv):
    return KeyValueCardStore(kv)


@pytest.fixture
def session_store(kv):
    return SessionStateStore(kv)


@pytest.fixture
def make_card(clock):
    """Factory for cards with explicit SRS state."""
    counter = {"n": 0}

    def _make(
        word=None,
        repetition_count=0,
        interval=0,
        ease_factor=2.5,
        due_in=timedelta(0),
        card_id=None,
    ):
        counter["n"] += 1
        n = counter["n"]
        return Card(
            id=card_id or f"card-{n:03d}",
            word=word or f"word-{n}",
            translation=f"translation-{n}",
            meanings=[],
            repetition_count=repetition_count,
            ease_factor=ease_factor,
            interval=interval,
            next_review_date=clock.now() + due_in,
        )

    return _make
