# eventwatch/feed.py
from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Optional

import pandas as pd

from eventwatch.schema import Event

FRAME_COLUMNS: List[str] = [
    "event_id",
    "ts",
    "title",
    "summary",
    "source_name",
    "source_url",
    "event_type",
    "priority",
    "is_breaking",
    "source_count",
    "tags",
    "geo_label",
    "geo_country",
    "geo_type",
    "geo_lat",
    "geo_lon",
]


def filter_by_importance(events: List[Event], min_importance: int) -> List[Event]:
    return [e for e in events if e.importance >= min_importance]


def breaking(events: List[Event]) -> List[Event]:
    return [e for e in events if e.is_breaking]


def geolocated(events: List[Event]) -> List[Event]:
    return [e for e in events if e.location is not None and e.location.is_geolocated]


def is_developing(event: Event) -> bool:
    return not event.title or event.title == "Untitled"


def filter_level(events: List[Event], level: str = "all") -> List[Event]:
    """Feed/map filter buttons. Developing stories only show under 'developing'."""
    def keep(e: Event) -> bool:
        dev = is_developing(e)
        if level == "critical":
            return e.importance >= 5 and not dev
        if level == "high":
            return e.importance == 4 and not dev
        if level == "medium":
            return e.importance == 3 and not dev
        if level == "low":
            return e.importance <= 2 and not dev
        if level == "earthquake":
            return e.event_type == "earthquake"
        if level == "developing":
            return dev
        return not dev

    return [e for e in events if keep(e)]


def time_ago(ts: datetime, now: Optional[datetime] = None) -> str:
    now = now or datetime.now(timezone.utc)
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    mins = int((now - ts).total_seconds() // 60)
    if mins < 1:
        return "Just now"
    if mins < 60:
        return f"{mins}m ago"
    hours = mins // 60
    if hours < 24:
        return f"{hours}h ago"
    return f"{hours // 24}d ago"


def to_frame(events: List[Event]) -> pd.DataFrame:
    rows = []
    for e in events:
        loc = e.location
        rows.append(
            {
                "event_id": e.id,
                "ts": e.timestamp,
                "title": e.title,
                "summary": e.summary,
                "source_name": e.source,
                "source_url": e.source_url,
                "event_type": e.event_type,
                "priority": e.importance,
                "is_breaking": e.is_breaking,
                "source_count": e.source_count,
                "tags": ",".join(e.categories),
                "geo_label": loc.name,
                "geo_country": loc.country_code,
                "geo_type": loc.type,
                "geo_lat": loc.lat,
                "geo_lon": loc.lng,
            }
        )
    return pd.DataFrame(rows, columns=FRAME_COLUMNS)
