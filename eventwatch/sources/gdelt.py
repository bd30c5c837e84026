from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import httpx
from loguru import logger
from pydantic import ValidationError

from config import GDELT_DOC_API
from eventwatch.feed import time_ago
from eventwatch.geo_lookup import extract_location, lookup_place_exact
from eventwatch.schema import Event, Location
from eventwatch.scoring import tone_importance
from eventwatch.sources.base import BaseSource
from eventwatch.text import extract_keywords, hash_id


def build_query(theme: Optional[str] = None, country: Optional[str] = None) -> str:
    # strong sentiment either way stands in for "breaking"
    parts = ["(tone<-5 OR tone>5)"]
    if theme:
        parts.append(f"theme:{theme}")
    if country:
        parts.append(f"sourcecountry:{country}")
    return " ".join(parts)


def parse_seendate(value: Optional[str], default: datetime) -> datetime:
    """GDELT compact timestamps: YYYYMMDDHHMMSS (sometimes with a T/Z)."""
    if not value:
        return default
    digits = "".join(ch for ch in str(value) if ch.isdigit())
    try:
        return datetime.strptime(digits[:14], "%Y%m%d%H%M%S").replace(tzinfo=timezone.utc)
    except ValueError:
        return default


def display_domain(domain: Optional[str]) -> Optional[str]:
    if not domain:
        return None
    d = str(domain).strip().lower()
    if d.startswith("www."):
        d = d[4:]
    return d.split(".")[0].upper() or None


def _to_float(x) -> float:
    try:
        return float(x)
    except (TypeError, ValueError):
        return 0.0


class GDELTSource(BaseSource):
    """Strong-tone articles from the GDELT DOC 2.0 index"""

    name = "GDELT"

    def params(self) -> Dict[str, str]:
        s = self.settings
        return {
            "query": build_query(s.gdelt_theme, s.gdelt_country),
            "mode": "artlist",
            "maxrecords": str(s.gdelt_max_records),
            "timespan": s.gdelt_timespan,
            "format": "json",
            "sort": "datedesc",
        }

    async def fetch(self, client: httpx.AsyncClient) -> List[Event]:
        response = await client.get(GDELT_DOC_API, params=self.params(), timeout=self.settings.request_timeout)
        response.raise_for_status()
        return self.normalize(response.json())

    def normalize(self, data: Dict[str, Any]) -> List[Event]:
        articles = data.get("articles") if isinstance(data, dict) else None
        if not isinstance(articles, list):
            return []

        now = self.clock()
        events: List[Event] = []
        for idx, article in enumerate(articles):
            try:
                events.append(self._to_event(article, idx, now))
            except (AttributeError, TypeError, ValueError, ValidationError) as e:
                logger.debug(f"[GDELT] skipping malformed article #{idx}: {e}")
        return events

    def _location(self, article: Dict[str, Any], title: str) -> Location:
        country = (article.get("sourcecountry") or "").strip()
        if country:
            # reporting country only: no coordinates, the outlet is not the scene
            known = lookup_place_exact(country)
            return Location(
                name=country,
                country_code=known.country_code if known else country,
                type="regional",
            )
        return extract_location(title) or Location.global_()

    def _to_event(self, article: Dict[str, Any], idx: int, now: datetime) -> Event:
        tone = _to_float(article.get("tone"))
        title = (article.get("title") or "").strip() or "Untitled"
        url = article.get("url")
        seen = article.get("seendate")
        ts = parse_seendate(seen, now)
        location = self._location(article, title)
        summary = f"Published {time_ago(ts, now)}" if seen else ""

        return Event(
            id=f"gdelt-{hash_id(url) if url else hash_id(title, str(idx))}",
            title=title,
            summary=summary,
            source=display_domain(article.get("domain")) or self.name,
            source_url=url,
            timestamp=ts,
            importance=tone_importance(tone),
            location=location,
            categories=[],
            is_breaking=abs(tone) > 10,
            keywords=extract_keywords(title, "", location),
            tone=tone,
        )
