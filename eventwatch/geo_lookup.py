# eventwatch/geo_lookup.py
from __future__ import annotations

from pathlib import Path
from typing import Optional, List, Tuple
import re
import pandas as pd

from eventwatch.schema import Location

_GEO_PATH = Path(__file__).resolve().parent / "data" / "gazetteer.csv"
_GEO_DF: Optional[pd.DataFrame] = None
_GEO_PATTERNS: Optional[List[Tuple[str, "re.Pattern[str]"]]] = None


def _norm(s: str) -> str:
    s = "" if s is None else str(s)
    return re.sub(r"\s+", " ", s.strip().lower())


def _load_geo() -> pd.DataFrame:
    global _GEO_DF, _GEO_PATTERNS
    if _GEO_DF is not None:
        return _GEO_DF
    if not _GEO_PATH.exists():
        raise FileNotFoundError(f"Missing gazetteer: {_GEO_PATH}")
    # keep_default_na off: "NA"-like country codes must survive as strings
    df = pd.read_csv(
        _GEO_PATH,
        dtype={"key": str, "name": str, "kind": str, "country_code": str},
        keep_default_na=False,
        na_values={"lat": [""], "lng": [""]},
    )
    df["key"] = df["key"].apply(_norm)
    df = df[df["key"] != ""].drop_duplicates(subset=["key"], keep="first")
    df = df.reset_index(drop=True)

    _GEO_PATTERNS = [
        (key, re.compile(r"\b" + re.escape(key) + r"\b", re.IGNORECASE))
        for key in df["key"].tolist()
    ]
    _GEO_DF = df
    return df


def _row_to_location(key: str, row: pd.Series) -> Location:
    code = str(row.get("country_code") or "").strip()
    return Location(
        name=str(row["name"]),
        lat=float(row["lat"]),
        lng=float(row["lng"]),
        type="regional" if row["kind"] == "region" else "local",
        country_code=code or None,
        confidence="high" if len(key) > 5 else "medium",
    )


def extract_location(text: Optional[str]) -> Optional[Location]:
    """
    Best-effort place detection in free text.
    Every gazetteer key is tested as a whole word; the longest hit wins
    ("south korea" over "korean"), earlier rows win ties.
    """
    if not text:
        return None

    df = _load_geo()
    low = text.lower()

    best_idx = -1
    best_len = 0
    for idx, (key, pattern) in enumerate(_GEO_PATTERNS):
        if len(key) > best_len and pattern.search(low):
            best_idx = idx
            best_len = len(key)

    if best_idx < 0:
        return None
    return _row_to_location(_GEO_PATTERNS[best_idx][0], df.iloc[best_idx])


def event_location(title: Optional[str], summary: Optional[str] = None) -> Location:
    return extract_location(title) or extract_location(summary) or Location.global_()


def lookup_place_exact(name: str) -> Optional[Location]:
    if not name:
        return None

    df = _load_geo()
    key = _norm(name)
    hit = df[df["key"] == key].head(1)
    if hit.empty:
        return None
    return _row_to_location(key, hit.iloc[0])
