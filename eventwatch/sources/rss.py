import asyncio
import io
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import feedparser
import httpx
from loguru import logger
from pydantic import ValidationError

from config import CORS_PROXIES, RSS_FEEDS, Settings
from eventwatch.geo_lookup import event_location
from eventwatch.schema import Event
from eventwatch.scoring import classify, is_breaking_title, is_recent
from eventwatch.sources.base import BaseSource, SourceError, utc_now
from eventwatch.text import clean_html, coerce_ts, extract_keywords, hash_id

SUMMARY_MAX_CHARS = 200


class FeedUnavailable(SourceError):
    """Every proxy failed for one feed."""


def _parse_ts(entry, default: datetime) -> datetime:
    if getattr(entry, "published_parsed", None):
        return datetime(*entry.published_parsed[:6], tzinfo=timezone.utc)
    if getattr(entry, "updated_parsed", None):
        return datetime(*entry.updated_parsed[:6], tzinfo=timezone.utc)
    # feedparser could not read the date; try a looser parse before giving up
    return coerce_ts(getattr(entry, "published", None), default)


def _read_body(response: httpx.Response) -> bytes:
    content_type = response.headers.get("content-type", "")
    if "application/json" in content_type:
        # allorigins: {"contents": "<rss ...>", "status": {...}}
        data = response.json()
        contents = data.get("contents") if isinstance(data, dict) else None
        return contents.encode("utf-8") if isinstance(contents, str) else b""
    return response.content


class RSSSource(BaseSource):
    """Outlet RSS feeds fetched through a chain of CORS proxies"""

    name = "RSS"

    def __init__(
        self,
        settings: Optional[Settings] = None,
        clock=utc_now,
        feeds: Optional[Dict[str, Dict[str, str]]] = None,
        proxies: Optional[List[str]] = None,
    ):
        super().__init__(settings, clock)
        self.feeds = feeds if feeds is not None else RSS_FEEDS
        self.proxies = proxies if proxies is not None else CORS_PROXIES

    async def fetch(self, client: httpx.AsyncClient) -> List[Event]:
        keys = list(self.feeds)
        results = await asyncio.gather(
            *(self.fetch_feed(client, key) for key in keys), return_exceptions=True
        )

        events: List[Event] = []
        failed = 0
        for key, result in zip(keys, results):
            if isinstance(result, Exception):
                failed += 1
                logger.warning(f"[RSS] {key}: {result}")
                continue
            events.extend(result)

        if keys and failed == len(keys):
            raise SourceError(f"all {failed} feeds unavailable")
        return events

    async def fetch_feed(self, client: httpx.AsyncClient, key: str) -> List[Event]:
        feed = self.feeds[key]
        target = quote(feed["url"], safe="")

        for proxy in self.proxies:
            try:
                response = await client.get(f"{proxy}{target}", timeout=self.settings.request_timeout)
                response.raise_for_status()
                body = _read_body(response)
                if not body.strip() or b"parsererror" in body:
                    raise ValueError("invalid XML response")

                # a str body that looks like a URL or path would be opened by feedparser
                parsed = feedparser.parse(io.BytesIO(body))
                if parsed.bozo and not parsed.entries:
                    raise ValueError(f"unreadable feed: {parsed.get('bozo_exception')}")
                return self.parse_entries(parsed.entries, feed["name"])
            except (httpx.HTTPError, ValueError) as e:
                logger.warning(f"[RSS] proxy {proxy} failed for {key}: {e}")
                continue

        logger.error(f"[RSS] all proxies failed for {key}")
        raise FeedUnavailable(key)

    def parse_entries(self, entries: List[Any], source_name: str) -> List[Event]:
        now = self.clock()

        events: List[Event] = []
        for idx, entry in enumerate(entries):
            try:
                events.append(self._to_event(entry, source_name, now))
            except (AttributeError, TypeError, ValueError, ValidationError) as e:
                logger.debug(f"[RSS] skipping malformed {source_name} item #{idx}: {e}")

        events.sort(key=lambda ev: (ev.is_breaking, ev.timestamp), reverse=True)
        return events

    def _to_event(self, entry: Any, source_name: str, now: datetime) -> Event:
        raw_title = getattr(entry, "title", "") or ""
        title = clean_html(raw_title) or "Untitled"
        description = clean_html(getattr(entry, "summary", "") or getattr(entry, "description", "") or "")
        link = getattr(entry, "link", "") or ""
        ts = _parse_ts(entry, now)

        breaking = is_breaking_title(raw_title)
        recent = is_recent(ts, now, self.settings.breaking_window_hours)
        location = event_location(title, description)

        return Event(
            id=f"rss-{source_name.lower().replace(' ', '-')}-{hash_id(link, title)}",
            title=title,
            summary=description[:SUMMARY_MAX_CHARS],
            source=source_name,
            source_url=link or None,
            timestamp=ts,
            importance=classify(title, description, breaking, recent),
            location=location,
            categories=["news"],
            is_breaking=breaking,
            keywords=extract_keywords(title, description, location),
        )
