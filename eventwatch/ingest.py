# ingest.py
from __future__ import annotations

import asyncio
import sys

from dotenv import load_dotenv
from loguru import logger

from config import Settings
from eventwatch.aggregator import default_aggregator
from eventwatch.feed import geolocated, to_frame


async def run_once(settings: Settings):
    aggregator = default_aggregator(settings)
    events = await aggregator.fetch_all(force_refresh=True)

    for name, h in aggregator.health().items():
        logger.info(f"[HEALTH] {name}: {h.status} events={h.event_count} error={h.error or '-'}")
    logger.info(f"[INGEST] events={len(events)} geolocated={len(geolocated(events))}")
    return events


def main():
    load_dotenv()
    settings = Settings()

    events = asyncio.run(run_once(settings))
    if not events:
        print("[INGEST] No events fetched.")
        return 1

    df = to_frame(events)
    cols = ["ts", "priority", "is_breaking", "source_count", "source_name", "geo_label", "title"]
    print(df[cols].head(25).to_string(index=False))
    return 0


if __name__ == "__main__":
    sys.exit(main())
