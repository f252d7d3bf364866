from datetime import datetime, timedelta, timezone

import pytest

from config import Config
from defaults import create_default_catalog
from engine import (
    EVENT_BATCH_COMPLETED,
    EVENT_INITIALIZED,
    EVENT_POOL_SWITCHED,
    EVENT_PULL_COMPLETED,
    EVENT_PULL_RARE,
    GachaEngine,
)
from store import EventBus, MemoryStore

RICH_PLAYER = {"player": {"jade": 100_000, "spiritCrystals": 100_000}}


class ScriptedRandom:
    """Returns scripted values in order, then ``default`` forever."""

    def __init__(self, values=(), default=0.0):
        self.values = list(values)
        self.default = default
        self.calls = 0

    def next(self) -> float:
        self.calls += 1
        if self.values:
            return self.values.pop(0)
        return self.default


class FixedClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now += delta


class RecordingBus(EventBus):
    def __init__(self):
        super().__init__()
        self.emitted: list[tuple[str, dict]] = []

    def emit(self, event: str, payload: dict) -> None:
        self.emitted.append((event, payload))
        super().emit(event, payload)

    def names(self) -> list[str]:
        return [name for name, _ in self.emitted]

    def payloads(self, event: str) -> list[dict]:
        return [payload for name, payload in self.emitted if name == event]


ALL_EVENTS = [
    EVENT_INITIALIZED,
    EVENT_PULL_COMPLETED,
    EVENT_PULL_RARE,
    EVENT_BATCH_COMPLETED,
    EVENT_POOL_SWITCHED,
]


@pytest.fixture
def catalog():
    return create_default_catalog()


@pytest.fixture
def clock():
    return FixedClock(datetime(2026, 1, 1, tzinfo=timezone.utc))


@pytest.fixture
def config():
    return Config(seed=None, catalog_path=None, log_file=None)


@pytest.fixture
def make_engine(catalog, clock, config):
    """Build an initialized engine over a fresh store and bus."""

    def _make(data=None, rng=None, catalog_override=None):
        store = MemoryStore(data if data is not None else RICH_PLAYER)
        bus = RecordingBus()
        engine = GachaEngine(
            catalog=catalog_override or catalog,
            store=store,
            events=bus,
            rng=rng if rng is not None else ScriptedRandom(),
            clock=clock,
            config=config,
        )
        engine.initialize()
        return engine

    return _make


@pytest.fixture
def engine(make_engine):
    return make_engine()
