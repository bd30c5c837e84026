# config.py
import os
from typing import Optional

from pydantic import BaseModel, Field

# Outlet feeds, fetched indirectly through CORS_PROXIES
RSS_FEEDS = {
    "bbc": {"name": "BBC", "url": "https://feeds.bbci.co.uk/news/world/rss.xml", "category": "world"},
    "reuters": {
        "name": "Reuters",
        "url": "https://www.reutersagency.com/feed/?taxonomy=best-sectors&post_type=best",
        "category": "world",
    },
    "ap": {"name": "AP News", "url": "https://feedx.net/rss/ap.xml", "category": "world"},
    "npr": {"name": "NPR", "url": "https://feeds.npr.org/1004/rss.xml", "category": "world"},
    "france24": {"name": "France24", "url": "https://www.france24.com/en/rss", "category": "world"},
}

# Tried in order; allorigins wraps the body in JSON, corsproxy returns it raw
CORS_PROXIES = [
    "https://api.allorigins.win/get?url=",
    "https://corsproxy.io/?",
]

USGS_BASE_URL = "https://earthquake.usgs.gov/earthquakes/feed/v1.0/summary"
GDELT_DOC_API = "https://api.gdeltproject.org/api/v2/doc/doc"


class Settings(BaseModel):
    # Cache / filters
    cache_ttl_seconds: int = Field(default_factory=lambda: int(os.getenv("CACHE_TTL_SECONDS", "300")))
    max_age_hours: int = Field(default_factory=lambda: int(os.getenv("MAX_AGE_HOURS", "24")))
    breaking_window_hours: int = Field(default_factory=lambda: int(os.getenv("BREAKING_WINDOW_HOURS", "3")))
    correlation_threshold: float = Field(default_factory=lambda: float(os.getenv("CORRELATION_THRESHOLD", "0.3")))

    # HTTP
    request_timeout: float = Field(default_factory=lambda: float(os.getenv("REQUEST_TIMEOUT", "10")))
    user_agent: str = Field(default_factory=lambda: os.getenv("USER_AGENT", "eventwatch/0.1"))

    # USGS
    usgs_feed: str = Field(default_factory=lambda: os.getenv("USGS_FEED", "significant_week"))
    usgs_min_magnitude: float = Field(default_factory=lambda: float(os.getenv("USGS_MIN_MAGNITUDE", "4.5")))

    # GDELT
    gdelt_max_records: int = Field(default_factory=lambda: int(os.getenv("GDELT_MAX_RECORDS", "30")))
    gdelt_timespan: str = Field(default_factory=lambda: os.getenv("GDELT_TIMESPAN", "3h"))
    gdelt_theme: Optional[str] = Field(default_factory=lambda: os.getenv("GDELT_THEME") or None)
    gdelt_country: Optional[str] = Field(default_factory=lambda: os.getenv("GDELT_COUNTRY") or None)
