import datetime as dt
import sys
from pathlib import Path
from typing import Iterator, List

import pytest
from fastapi.testclient import TestClient

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from campaign_tracker.config import TrackerSettings
from campaign_tracker.tracking.server import create_app
from campaign_tracker.tracking.store import CampaignEventStore


class StepClock:
    """Deterministic clock advancing one second per call."""

    def __init__(self, start: dt.datetime) -> None:
        self.now = start
        self.calls: List[dt.datetime] = []

    def __call__(self) -> dt.datetime:
        current = self.now
        self.calls.append(current)
        self.now = current + dt.timedelta(seconds=1)
        return current


@pytest.fixture
def clock() -> StepClock:
    return StepClock(dt.datetime(2025, 3, 1, 9, 0, tzinfo=dt.timezone.utc))


@pytest.fixture
def store(clock: StepClock) -> CampaignEventStore:
    return CampaignEventStore(clock=clock)


@pytest.fixture
def settings() -> TrackerSettings:
    return TrackerSettings()


@pytest.fixture
def client(store: CampaignEventStore, settings: TrackerSettings) -> Iterator[TestClient]:
    app = create_app(store=store, settings=settings)
    with TestClient(app) as test_client:
        yield test_client
