# eventwatch/cache.py
from __future__ import annotations

from datetime import datetime, timedelta
from typing import List, Optional

from eventwatch.schema import Event


class EventCache:
    """Last merged result plus the time it was stored."""

    def __init__(self, ttl: timedelta = timedelta(minutes=5)):
        self.ttl = ttl
        self.events: List[Event] = []
        self.fetched_at: Optional[datetime] = None

    def fresh(self, now: datetime) -> bool:
        return self.fetched_at is not None and (now - self.fetched_at) < self.ttl

    def store(self, events: List[Event], now: datetime) -> None:
        self.events = list(events)
        self.fetched_at = now

    def snapshot(self) -> List[Event]:
        return [e.model_copy(deep=True) for e in self.events]

    def clear(self) -> None:
        self.events = []
        self.fetched_at = None
