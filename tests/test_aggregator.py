import asyncio
from datetime import timedelta

import httpx
import pytest

from eventwatch import aggregator as aggregator_mod
from eventwatch.aggregator import Aggregator, sort_events
from eventwatch.schema import Location
from eventwatch.sources.base import BaseSource

from tests.conftest import NOW, make_event


class ScriptedSource(BaseSource):
    def __init__(self, name, events=None, error=None, delay=0, **kw):
        super().__init__(**kw)
        self.name = name
        self.events = events or []
        self.error = error
        self.delay = delay
        self.calls = 0

    async def fetch(self, client):
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return list(self.events)


def _client():
    return httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(404)))


@pytest.fixture
def sources():
    quake = make_event(
        "usgs-1", source="USGS", title="M6.1 Earthquake - Hokkaido", importance=4,
        event_type="earthquake", location=Location(name="Hokkaido", lat=43.0, lng=142.0),
    )
    return [
        ScriptedSource("GDELT", [make_event("g1", source="NYTIMES", title="Talks stall in the capital")]),
        ScriptedSource("USGS", [quake]),
        ScriptedSource("RSS", [make_event("r1", source="BBC", title="Fire at the port", importance=4)]),
    ]


def _agg(sources, settings, clock):
    return Aggregator(sources, settings=settings, clock=clock, client_factory=_client)


def test_cache_hit_within_ttl(sources, settings, clock):
    agg = _agg(sources, settings, clock)

    first = asyncio.run(agg.fetch_all())
    clock.advance(minutes=4)
    second = asyncio.run(agg.fetch_all())

    assert [s.calls for s in sources] == [1, 1, 1]
    assert [e.model_dump() for e in first] == [e.model_dump() for e in second]


def test_cache_expires_and_force_refresh(sources, settings, clock):
    agg = _agg(sources, settings, clock)
    asyncio.run(agg.fetch_all())

    asyncio.run(agg.fetch_all(force_refresh=True))
    assert sources[0].calls == 2

    clock.advance(minutes=6)
    asyncio.run(agg.fetch_all())
    assert sources[0].calls == 3


def test_snapshot_is_detached(sources, settings, clock):
    agg = _agg(sources, settings, clock)
    events = asyncio.run(agg.fetch_all())
    events[0].title = "changed"
    events.clear()

    assert agg.cached()[0].title != "changed"


def test_partial_failure_and_health(sources, settings, clock):
    sources[0].error = RuntimeError("gdelt down")
    sources[2].events = []
    agg = _agg(sources, settings, clock)

    events = asyncio.run(agg.fetch_all())
    health = agg.health()

    assert [e.id for e in events] == ["usgs-1"]
    assert health["GDELT"].status == "error"
    assert health["GDELT"].error == "gdelt down"
    assert health["USGS"].status == "healthy" and health["USGS"].event_count == 1
    assert health["RSS"].status == "empty"
    assert health["RSS"].last_check == NOW


def test_all_sources_failing_keeps_previous_cache(sources, settings, clock):
    agg = _agg(sources, settings, clock)
    before = asyncio.run(agg.fetch_all())

    for s in sources:
        s.error = httpx.ConnectError("offline")
    clock.advance(minutes=1)
    after = asyncio.run(agg.fetch_all(force_refresh=True))

    assert [e.model_dump() for e in after] == [e.model_dump() for e in before]
    assert {name: h.status for name, h in agg.health().items()} == {
        "GDELT": "error", "USGS": "error", "RSS": "error",
    }


def test_pipeline_failure_serves_last_good(sources, settings, clock, monkeypatch):
    agg = _agg(sources, settings, clock)
    before = asyncio.run(agg.fetch_all())

    def boom(*a, **kw):
        raise RuntimeError("bug")

    monkeypatch.setattr(aggregator_mod, "correlate", boom)
    after = asyncio.run(agg.refresh())

    assert [e.id for e in after] == [e.id for e in before]


def test_language_and_recency_filters(settings, clock):
    events = [
        make_event("en", source="BBC", title="Flooding closes the main road"),
        make_event("ru", source="GDELT", title="Наводнение закрыло дорогу"),
        make_event("es", source="GDELT", title="Inundaciones cierran carretera"),
        make_event("old", source="BBC", title="Strike ends at the port", minutes_ago=25 * 60),
        make_event("quake", source="USGS", title="M5.0 Earthquake - 10 km N of Hualien", event_type="earthquake"),
    ]
    agg = _agg([ScriptedSource("ALL", events)], settings, clock)

    ids = {e.id for e in asyncio.run(agg.fetch_all())}

    assert ids == {"en", "quake"}


def test_correlation_runs_on_merged_set(settings, clock):
    a = make_event("a", source="BBC", title="Power grid failure in Ukraine", keywords=["power", "grid", "ukraine"])
    b = make_event("b", source="Reuters", title="Ukraine power grid hit", keywords=["power", "grid", "ukraine", "hit"])
    agg = _agg([ScriptedSource("RSS", [a, b])], settings, clock)

    out = {e.id: e for e in asyncio.run(agg.fetch_all())}

    assert out["a"].correlated_with == ["b"]
    assert out["a"].importance == 4 and out["b"].source_count == 2


def test_sort_order():
    events = [
        make_event("low-new", importance=2, minutes_ago=1),
        make_event("high-old", importance=4, minutes_ago=50),
        make_event("high-new", importance=4, minutes_ago=5),
        make_event("breaking-low", importance=2, is_breaking=True, minutes_ago=30),
    ]

    assert [e.id for e in sort_events(events)] == ["breaking-low", "high-new", "high-old", "low-new"]


def test_overlapping_refreshes_share_one_fetch(sources, settings, clock):
    for s in sources:
        s.delay = 0.01
    agg = _agg(sources, settings, clock)

    async def go():
        return await asyncio.gather(agg.refresh(), agg.refresh())

    first, second = asyncio.run(go())

    assert [s.calls for s in sources] == [1, 1, 1]
    assert [e.id for e in first] == [e.id for e in second]


def test_clear_cache_forces_fetch(sources, settings, clock):
    agg = _agg(sources, settings, clock)
    asyncio.run(agg.fetch_all())
    agg.clear_cache()

    assert agg.cached() == []
    asyncio.run(agg.fetch_all())
    assert sources[0].calls == 2


def test_terse_english_gdelt_headline_is_kept(settings, clock):
    events = [
        make_event("terse", source="REUTERS", title="Ukraine power grid hit", summary="Published 2h ago"),
        make_event("es", source="ELPAIS", title="Inundaciones cierran carretera", summary="Published 2h ago"),
    ]
    agg = _agg([ScriptedSource("GDELT", events)], settings, clock)

    assert [e.id for e in asyncio.run(agg.fetch_all())] == ["terse"]


def test_client_failure_marks_every_source_unhealthy(sources, settings, clock):
    agg = _agg(sources, settings, clock)
    before = asyncio.run(agg.fetch_all())

    def broken_client():
        raise RuntimeError("no client")

    agg.client_factory = broken_client
    clock.advance(minutes=1)
    after = asyncio.run(agg.refresh())

    assert [e.id for e in after] == [e.id for e in before]
    health = agg.health()
    assert {name: h.status for name, h in health.items()} == {
        "GDELT": "error", "USGS": "error", "RSS": "error",
    }
    assert health["USGS"].error == "no client"
    assert health["USGS"].last_check == NOW + timedelta(minutes=1)
