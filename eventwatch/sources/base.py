from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Callable, List, Optional

import httpx
from loguru import logger

from config import Settings
from eventwatch.schema import Event, SourceResult


class SourceError(Exception):
    """A source could not produce any data this cycle."""


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class BaseSource(ABC):
    """Base class for all event sources"""

    name: str = "source"

    def __init__(self, settings: Optional[Settings] = None, clock: Callable[[], datetime] = utc_now):
        self.settings = settings or Settings()
        self.clock = clock

    @abstractmethod
    async def fetch(self, client: httpx.AsyncClient) -> List[Event]:
        """
        Fetch and normalize events from the source

        May raise on transport or payload failure; collect() isolates it.

        Returns:
            List[Event]: normalized events
        """
        pass

    async def collect(self, client: httpx.AsyncClient) -> SourceResult:
        """Run fetch() and fold any failure into the result instead of raising"""
        try:
            events = await self.fetch(client)
        except Exception as e:
            logger.error(f"[{self.name}] fetch failed: {e!r}")
            return SourceResult(source=self.name, error=str(e) or e.__class__.__name__)

        logger.info(f"[{self.name}] {len(events)} events")
        return SourceResult(source=self.name, events=events)
