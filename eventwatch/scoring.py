# eventwatch/scoring.py
import re
from datetime import datetime, timedelta, timezone
from typing import Optional

from dateutil import parser

SEVERITY_KEYWORDS = {
    "critical": [
        "killed", "dead", "deaths", "died", "explosion", "attack", "attacks",
        "war", "earthquake", "tsunami", "massacre", "terrorist", "terrorism",
        "bomb", "bombing", "casualties", "fatalities", "murder", "assassin",
    ],
    "high": [
        "strike", "strikes", "protest", "protests", "arrested", "emergency",
        "crash", "crashed", "fire", "shooting", "violence", "violent",
        "clashes", "injured", "wounded", "hostage", "siege", "riot",
    ],
    "medium": [
        "election", "summit", "sanctions", "investigation", "trial", "accused",
        "warning", "threat", "crisis", "tensions", "conflict", "dispute",
        "controversy", "scandal", "fraud", "corruption",
    ],
}

BREAKING_RE = re.compile(r"breaking|urgent|just in|developing|alert", re.IGNORECASE)


def _safe_dt(dt):
    if isinstance(dt, str):
        dt = parser.parse(dt)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def _has_any(text: str, words) -> bool:
    return any(w in text for w in words)


def classify(title: str, summary: str, is_breaking: bool = False, is_recent: bool = False) -> int:
    """
    Keyword-tier severity on a 1-5 scale (never below 2 here).

    critical -> 5, else high -> 4, else medium -> 3, else 2.
    Breaking adds one (max 5); recency adds one only up to 4.
    """
    text = f"{title or ''} {summary or ''}".lower()
    score = 2

    if _has_any(text, SEVERITY_KEYWORDS["critical"]):
        score = 5
    elif _has_any(text, SEVERITY_KEYWORDS["high"]):
        score = 4
    elif _has_any(text, SEVERITY_KEYWORDS["medium"]):
        score = 3

    if is_breaking and score < 5:
        score = min(score + 1, 5)
    if is_recent and score < 4:
        score = min(score + 1, 4)
    return score


def magnitude_importance(mag: Optional[float]) -> int:
    mag = mag or 0.0
    if mag >= 7.0:
        return 5
    if mag >= 6.0:
        return 4
    if mag >= 5.0:
        return 3
    return 2


def tone_importance(tone: Optional[float]) -> int:
    t = abs(tone or 0.0)
    if t > 15:
        return 5
    if t > 10:
        return 4
    if t > 5:
        return 3
    return 2


def is_breaking_title(title: str) -> bool:
    return bool(BREAKING_RE.search(title or ""))


def is_recent(ts, now: datetime, window_hours: float = 3) -> bool:
    ts = _safe_dt(ts)
    return ts > now - timedelta(hours=window_hours)
