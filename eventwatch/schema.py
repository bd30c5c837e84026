# eventwatch/schema.py
from __future__ import annotations

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field


class Location(BaseModel):
    name: str
    lat: Optional[float] = None   # None => not geolocated
    lng: Optional[float] = None
    type: Literal["local", "regional"] = "local"
    country_code: Optional[str] = None
    confidence: Optional[Literal["high", "medium"]] = None
    depth: Optional[float] = None  # km, seismic only

    @classmethod
    def global_(cls) -> "Location":
        return cls(name="Global")

    @property
    def is_geolocated(self) -> bool:
        return self.lat is not None and self.lng is not None


class Event(BaseModel):
    id: str
    title: str
    summary: str = ""
    source: str
    source_url: Optional[str] = None
    timestamp: datetime
    importance: int = Field(default=2, ge=1, le=5)  # 5 critical .. 1 info
    location: Location = Field(default_factory=Location.global_)
    categories: List[str] = Field(default_factory=list)
    event_type: Optional[str] = None  # "earthquake"
    is_breaking: bool = False
    source_count: int = Field(default=1, ge=1)
    correlated_with: List[str] = Field(default_factory=list)
    keywords: List[str] = Field(default_factory=list)

    # source-specific extras
    magnitude: Optional[float] = None
    tsunami: bool = False
    tone: Optional[float] = None


class SourceHealth(BaseModel):
    status: Literal["healthy", "empty", "error"]
    last_check: datetime
    event_count: int = 0
    error: Optional[str] = None


class SourceResult(BaseModel):
    """Outcome of one source fetch; error is set instead of raising."""
    source: str
    events: List[Event] = Field(default_factory=list)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None
