from datetime import datetime, timedelta, timezone

import pytest

from config import Settings
from eventwatch.schema import Event, Location

NOW = datetime(2026, 10, 19, 12, 0, 0, tzinfo=timezone.utc)


class Clock:
    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


def make_event(id, source="BBC", title="Protest in the capital", minutes_ago=10, **kw) -> Event:
    kw.setdefault("timestamp", NOW - timedelta(minutes=minutes_ago))
    kw.setdefault("location", Location.global_())
    return Event(id=id, source=source, title=title, **kw)


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture
def settings():
    return Settings(
        cache_ttl_seconds=300,
        max_age_hours=24,
        breaking_window_hours=3,
        correlation_threshold=0.3,
        request_timeout=10,
        usgs_feed="significant_week",
        usgs_min_magnitude=4.5,
        gdelt_max_records=30,
        gdelt_timespan="3h",
        gdelt_theme=None,
        gdelt_country=None,
    )
