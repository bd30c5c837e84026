import asyncio
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional

import httpx
from loguru import logger

from config import Settings
from eventwatch.cache import EventCache
from eventwatch.correlate import correlate
from eventwatch.schema import Event, SourceHealth, SourceResult
from eventwatch.sources.base import BaseSource, utc_now
from eventwatch.sources.gdelt import GDELTSource
from eventwatch.sources.rss import RSSSource
from eventwatch.sources.usgs import USGSSource
from eventwatch.text import is_english


def sort_events(events: List[Event]) -> List[Event]:
    """Breaking first, then importance, then newest. Stable for ties."""
    return sorted(events, key=lambda e: (e.is_breaking, e.importance, e.timestamp), reverse=True)


def english_only(events: List[Event]) -> List[Event]:
    # seismic records carry generated text, always kept
    return [
        e for e in events
        if e.event_type == "earthquake" or is_english(f"{e.title} {e.summary}")
    ]


def within_age(events: List[Event], now: datetime, max_age: timedelta) -> List[Event]:
    cutoff = now - max_age
    return [e for e in events if e.timestamp >= cutoff]


class Aggregator:
    def __init__(
        self,
        sources: List[BaseSource],
        settings: Optional[Settings] = None,
        cache: Optional[EventCache] = None,
        clock: Callable[[], datetime] = utc_now,
        client_factory: Optional[Callable[[], httpx.AsyncClient]] = None,
    ):
        self.sources = sources
        self.settings = settings or Settings()
        self.cache = cache or EventCache(ttl=timedelta(seconds=self.settings.cache_ttl_seconds))
        self.clock = clock
        self.client_factory = client_factory or self._default_client
        self._health: Dict[str, SourceHealth] = {}
        self._inflight: Optional[asyncio.Task] = None

    def _default_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.settings.request_timeout,
            follow_redirects=True,
            headers={"User-Agent": self.settings.user_agent},
        )

    async def fetch_all(self, force_refresh: bool = False) -> List[Event]:
        """Ordered events, from cache while fresh. Never raises."""
        if not force_refresh and self.cache.fresh(self.clock()):
            logger.info("[CACHE] using cached events")
            return self.cache.snapshot()

        # overlapping callers share one fan-out
        if self._inflight is None or self._inflight.done():
            self._inflight = asyncio.ensure_future(self._refresh())
        return await asyncio.shield(self._inflight)

    async def refresh(self) -> List[Event]:
        return await self.fetch_all(force_refresh=True)

    def cached(self) -> List[Event]:
        return self.cache.snapshot()

    def clear_cache(self) -> None:
        self.cache.clear()

    def health(self) -> Dict[str, SourceHealth]:
        return {name: h.model_copy(deep=True) for name, h in self._health.items()}

    async def _collect_all(self) -> List[SourceResult]:
        async with self.client_factory() as client:
            raw = await asyncio.gather(
                *(source.collect(client) for source in self.sources), return_exceptions=True
            )

        results: List[SourceResult] = []
        for source, outcome in zip(self.sources, raw):
            if isinstance(outcome, BaseException):
                logger.error(f"[INGEST] {source.name} raised past collect(): {outcome!r}")
                outcome = SourceResult(source=source.name, error=str(outcome) or outcome.__class__.__name__)
            results.append(outcome)
        return results

    def _record_health(self, results: List[SourceResult], now: datetime) -> None:
        for r in results:
            if not r.ok:
                status = "error"
            elif not r.events:
                status = "empty"
            else:
                status = "healthy"
            self._health[r.source] = SourceHealth(
                status=status, last_check=now, event_count=len(r.events), error=r.error
            )

    async def _refresh(self) -> List[Event]:
        logger.info("[INGEST] fetching fresh events from all sources")
        try:
            results = await self._collect_all()
        except Exception as e:
            logger.exception("[INGEST] fan-out failed")
            error = str(e) or e.__class__.__name__
            results = [SourceResult(source=s.name, error=error) for s in self.sources]

        now = self.clock()
        self._record_health(results, now)

        merged: List[Event] = []
        for r in results:
            merged.extend(r.events)

        if not merged:
            logger.warning("[INGEST] no source produced events, keeping previous cache")
            return self.cache.snapshot()

        try:
            events = english_only(merged)
            events = within_age(events, now, timedelta(hours=self.settings.max_age_hours))
            events = correlate(events, self.settings.correlation_threshold)
            events = sort_events(events)
        except Exception:
            logger.exception("[INGEST] refresh failed, serving last good cache")
            return self.cache.snapshot()

        self.cache.store(events, now)
        linked = sum(1 for e in events if e.correlated_with)
        logger.info(f"[INGEST] merged={len(merged)} kept={len(events)} correlated={linked}")
        return self.cache.snapshot()


def default_aggregator(settings: Optional[Settings] = None, clock: Callable[[], datetime] = utc_now) -> Aggregator:
    settings = settings or Settings()
    sources: List[BaseSource] = [
        GDELTSource(settings, clock),
        USGSSource(settings, clock),
        RSSSource(settings, clock),
    ]
    return Aggregator(sources, settings=settings, clock=clock)
