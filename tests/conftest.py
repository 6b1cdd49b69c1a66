from datetime import datetime, timezone

import pytest

from wordwise.application.progress_engine import ProgressEngine
from wordwise.infrastructure.adapters.memory_store import InMemoryStore

NOW = datetime(2026, 3, 2, 9, 30, tzinfo=timezone.utc)


class RecordingSleep:
    """Stands in for asyncio.sleep so retry tests run instantly."""

    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def fake_sleep():
    return RecordingSleep()


@pytest.fixture
def store():
    return InMemoryStore(card_ids=["apple", "banana", "cherry"])


@pytest.fixture
def engine(store, fake_sleep):
    return ProgressEngine(
        progress_repo=store,
        threshold_repo=store,
        catalog=store,
        clock=lambda: NOW,
        sleep=fake_sleep,
    )
