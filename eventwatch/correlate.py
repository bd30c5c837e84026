# eventwatch/correlate.py
from __future__ import annotations

from typing import Iterable, List

from eventwatch.schema import Event

DEFAULT_THRESHOLD = 0.3


def jaccard(a: Iterable[str], b: Iterable[str]) -> float:
    sa, sb = set(a), set(b)
    union = sa | sb
    if not union:
        return 0.0
    return len(sa & sb) / len(union)


def similarity(e1: Event, e2: Event) -> float:
    return jaccard(e1.keywords, e2.keywords)


def _link(e: Event, other_id: str) -> None:
    if other_id not in e.correlated_with:
        e.correlated_with.append(other_id)
        e.source_count += 1


def correlate(events: List[Event], threshold: float = DEFAULT_THRESHOLD) -> List[Event]:
    """
    Mark stories from different sources that share enough keywords.

    Works on copies. Every pair is compared once; same-source pairs never link.
    Importance is only ever raised: 3+ sources -> 5, 2 sources -> 4.
    """
    out = [e.model_copy(deep=True) for e in events]

    for i in range(len(out)):
        for j in range(i + 1, len(out)):
            a, b = out[i], out[j]
            if a.source == b.source:
                continue
            if similarity(a, b) >= threshold:
                _link(a, b.id)
                _link(b, a.id)

    for e in out:
        if e.source_count >= 3:
            e.importance = max(e.importance, 5)
        elif e.source_count >= 2:
            e.importance = max(e.importance, 4)
    return out
