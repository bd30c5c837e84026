# eventwatch/text.py
from __future__ import annotations

import hashlib
import html
import re
from datetime import datetime
from typing import Iterable, List, Optional

import pandas as pd

from eventwatch.schema import Location


def _safe_str(x) -> str:
    return "" if x is None else str(x)


def hash_id(*parts: str) -> str:
    h = hashlib.sha256()
    for p in parts:
        h.update(_safe_str(p).encode("utf-8", errors="ignore"))
        h.update(b"|")
    return h.hexdigest()[:24]


def coerce_ts(value, default: datetime) -> datetime:
    """Parse anything timestamp-like to an aware UTC datetime, else default."""
    if value is None or value == "":
        return default
    ts = pd.to_datetime(value, errors="coerce", utc=True)
    if pd.isna(ts):
        return default
    return ts.to_pydatetime()


_TAG_RE = re.compile(r"<[^>]+>")


def clean_html(s: Optional[str]) -> str:
    if not s:
        return ""
    # feeds often double-escape markup, so unescape on both sides of the strip
    s = html.unescape(_safe_str(s))
    s = _TAG_RE.sub(" ", s)
    s = html.unescape(s)
    return re.sub(r"\s+", " ", s).strip()


# Greek, Cyrillic, Armenian, Hebrew, Arabic, Indic, Thai, Georgian, Hangul, Kana, CJK
_NON_LATIN_RE = re.compile(
    "["
    "\u0370-\u03ff"
    "\u0400-\u052f"
    "\u0530-\u058f"
    "\u0590-\u05ff"
    "\u0600-\u06ff\u0750-\u077f"
    "\u0900-\u0dff"
    "\u0e00-\u0e7f"
    "\u10a0-\u10ff"
    "\u1100-\u11ff"
    "\u3040-\u30ff"
    "\u3400-\u4dbf\u4e00-\u9fff"
    "\uac00-\ud7af"
    "]"
)

ENGLISH_FUNCTION_WORDS = frozenset({
    "the", "a", "an", "of", "in", "on", "to", "and", "for", "with", "at",
    "by", "from", "as", "is", "are", "was", "were", "be", "has", "have",
    "after", "over", "amid", "into", "says", "it", "its", "this", "that",
    "not", "but", "or", "will", "new", "up", "down", "out", "off", "under",
    "near", "between", "during", "before", "against", "about", "than",
    "been", "had", "his", "her", "their", "they", "who", "what", "how",
    "why", "when", "we", "you", "our", "can", "could", "would", "should",
})

# terse headlines often drop every function word
ENGLISH_HEADLINE_WORDS = frozenset({
    "hit", "hits", "kill", "kills", "killed", "dies", "dead", "warns",
    "urges", "vows", "slams", "backs", "rejects", "faces", "seeks", "said",
    "deal", "talks",
})

_WORD_RE = re.compile(r"[a-z][a-z'\-]*")


def is_english(text: str) -> bool:
    text = _safe_str(text)
    if _NON_LATIN_RE.search(text):
        return False
    words = set(_WORD_RE.findall(text.lower()))
    return bool(words & (ENGLISH_FUNCTION_WORDS | ENGLISH_HEADLINE_WORDS))


KEYWORD_STOP = ENGLISH_FUNCTION_WORDS | frozenset({
    "all", "been", "said", "than", "also", "who", "how", "why", "what",
    "when", "where", "may", "can", "now", "per", "via", "set", "get", "top",
    "more", "most", "out", "off", "they", "their", "his", "her", "he", "she",
    "we", "you", "our", "before", "during", "against", "about", "could", "would",
    "breaking", "urgent", "developing", "live", "update", "updates", "latest",
    "report", "reports", "news", "video", "watch", "analysis", "just",
})


def extract_keywords(title: str, summary: str = "", location: Optional[Location] = None) -> List[str]:
    """
    Lower-case content words of the headline plus the place name when geolocated.
    The summary is only used when the headline yields nothing.
    """
    def _content_words(s: str) -> Iterable[str]:
        for w in _WORD_RE.findall(_safe_str(s).lower()):
            w = w.strip("'-")
            if len(w) >= 3 and w not in KEYWORD_STOP:
                yield w

    out: List[str] = []
    seen = set()
    words = list(_content_words(title)) or list(_content_words(summary))
    if location is not None and location.is_geolocated:
        words.append(location.name.lower())
    for w in words:
        if w not in seen:
            seen.add(w)
            out.append(w)
    return out
