from contextlib import asynccontextmanager

import httpx
import pytest

from cadastre_listings.config import Settings
from cadastre_listings.core.exceptions import SourceFetchError
from cadastre_listings.schemas.property import AdminLevel, SourceKind
from cadastre_listings.services.sources import HttpTableSource, SqlTableSource, StaticSource, build_sources


def http_source(handler, table="Batiment"):
    return HttpTableSource("http://records", table, tries=2, retry_delay=0, transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_http_source_reads_data_list():
    def handler(request):
        assert request.url.path == "/api/data/Batiment"
        return httpx.Response(200, json={"data": [{"Id_Bat": 1}, {"Id_Bat": 2}]})

    assert await http_source(handler).fetch() == [{"Id_Bat": 1}, {"Id_Bat": 2}]


@pytest.mark.asyncio
async def test_http_source_retries_then_succeeds():
    calls = []

    def handler(request):
        calls.append(request)
        if len(calls) == 1:
            return httpx.Response(503)
        return httpx.Response(200, json={"data": []})

    assert await http_source(handler).fetch() == []
    assert len(calls) == 2


@pytest.mark.asyncio
@pytest.mark.parametrize("status_code,body", [
    (500, {"text": "internal"}),
    (200, {"text": "<html>"}),
    (200, {"json": {"rows": []}}),
    (200, {"json": [1, 2]}),
])
async def test_http_source_failures_are_wrapped(status_code, body):
    with pytest.raises(SourceFetchError) as exc:
        await http_source(lambda request: httpx.Response(status_code, **body)).fetch()
    assert exc.value.source == "Batiment"


@pytest.mark.asyncio
async def test_http_source_connection_error_is_wrapped():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(SourceFetchError, match="request failed"):
        await http_source(handler).fetch()


class FakeResult:
    def __init__(self, rows):
        self.rows = rows

    def mappings(self):
        return self.rows


class FakeEngine:
    def __init__(self, rows=None, error=None):
        self.rows = rows or []
        self.error = error
        self.queries = []

    @asynccontextmanager
    async def connect(self):
        yield self

    async def execute(self, query):
        self.queries.append(str(query))
        if self.error:
            raise self.error
        return FakeResult(self.rows)


@pytest.mark.asyncio
async def test_sql_source_selects_whole_table_ordered():
    engine = FakeEngine(rows=[{"Id_Lotis": 1, "Lieudit": "Bastos"}])
    source = SqlTableSource(engine, "Lotissement", "Id_Lotis", retry_delay=0)

    assert await source.fetch() == [{"Id_Lotis": 1, "Lieudit": "Bastos"}]
    assert engine.queries == ['SELECT * FROM "Lotissement" ORDER BY "Id_Lotis"']


@pytest.mark.asyncio
async def test_sql_source_retries_and_wraps_errors():
    engine = FakeEngine(error=RuntimeError("relation does not exist"))
    source = SqlTableSource(engine, "Parcelle", "Id_Parcel", tries=3, retry_delay=0)

    with pytest.raises(SourceFetchError, match="Parcelle: relation does not exist"):
        await source.fetch()
    assert len(engine.queries) == 3


@pytest.mark.asyncio
async def test_static_source_returns_copies():
    rows = [{"Id_Bat": 1}]
    fetched = await StaticSource("Batiment", rows).fetch()
    fetched[0]["Id_Bat"] = 2
    assert rows == [{"Id_Bat": 1}]


def test_build_sources_http_backend():
    kinds, hierarchy = build_sources(Settings(RECORD_SOURCE_BACKEND="http", RECORDS_API_URL="http://records/"))
    assert set(kinds) == set(SourceKind)
    assert set(hierarchy) == set(AdminLevel)
    assert all(isinstance(s, HttpTableSource) for s in [*kinds.values(), *hierarchy.values()])
    assert kinds[SourceKind.PARCEL].name == "Parcelle"
    assert kinds[SourceKind.PARCEL].base_url == "http://records"


def test_build_sources_rejects_unknown_backend():
    with pytest.raises(ValueError):
        build_sources(Settings(RECORD_SOURCE_BACKEND="ftp"))


@pytest.mark.asyncio
async def test_static_source_passes_non_mapping_rows_through():
    fetched = await StaticSource("Batiment", [{"Id_Bat": 1}, "garbage", None]).fetch()
    assert fetched == [{"Id_Bat": 1}, "garbage", None]
