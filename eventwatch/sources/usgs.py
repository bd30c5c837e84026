from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import httpx
from loguru import logger
from pydantic import ValidationError

from config import USGS_BASE_URL
from eventwatch.schema import Event, Location
from eventwatch.scoring import magnitude_importance
from eventwatch.sources.base import BaseSource
from eventwatch.text import extract_keywords


class USGSSource(BaseSource):
    """Earthquakes from the USGS summary GeoJSON feeds"""

    name = "USGS"

    async def fetch(self, client: httpx.AsyncClient) -> List[Event]:
        url = f"{USGS_BASE_URL}/{self.settings.usgs_feed}.geojson"
        response = await client.get(url, timeout=self.settings.request_timeout)
        response.raise_for_status()
        return self.normalize(response.json())

    def normalize(self, data: Dict[str, Any]) -> List[Event]:
        features = data.get("features") if isinstance(data, dict) else None
        if not isinstance(features, list):
            return []

        now = self.clock()
        events: List[Event] = []
        for feature in features:
            try:
                event = self._to_event(feature, now)
            except (KeyError, TypeError, ValueError, ValidationError) as e:
                logger.debug(f"[USGS] skipping malformed feature: {e}")
                continue
            if event is not None:
                events.append(event)
        return events

    def _to_event(self, feature: Dict[str, Any], now: datetime) -> Optional[Event]:
        props = feature.get("properties")
        geometry = feature.get("geometry")
        if not props or not geometry:
            return None

        coords = geometry.get("coordinates") or []
        if len(coords) < 2 or coords[0] is None or coords[1] is None:
            return None
        # GeoJSON order: lng, lat, depth
        lng, lat = float(coords[0]), float(coords[1])
        depth = float(coords[2]) if len(coords) > 2 and coords[2] is not None else None

        mag = float(props.get("mag") or 0)
        if mag < self.settings.usgs_min_magnitude:
            return None

        ts = datetime.fromtimestamp(props["time"] / 1000, tz=timezone.utc) if props.get("time") else now
        is_breaking = ts > now - timedelta(hours=self.settings.breaking_window_hours)
        tsunami = props.get("tsunami") == 1
        place = props.get("place") or "Unknown Location"

        summary = f"Depth: {depth:.1f}km." if depth is not None else "Depth: N/A."
        if tsunami:
            summary += " Tsunami warning issued."

        location = Location(
            name=props.get("place") or "Unknown",
            lat=lat,
            lng=lng,
            depth=depth,
            type="local",
            confidence="high",
        )
        title = f"M{mag:.1f} Earthquake - {place}"

        return Event(
            id=f"usgs-{feature.get('id') or props.get('code')}",
            title=title,
            summary=summary,
            source=self.name,
            source_url=props.get("url"),
            timestamp=ts,
            importance=magnitude_importance(mag),
            location=location,
            categories=["earthquake", "natural-disaster"],
            event_type="earthquake",
            is_breaking=is_breaking,
            keywords=extract_keywords(title, summary, location),
            magnitude=mag,
            tsunami=tsunami,
        )
