import asyncio
from typing import Any, Dict, List, Mapping, Optional, Protocol, Sequence, Tuple

import httpx
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.sql import text
from structlog import get_logger

from cadastre_listings.config import Settings
from cadastre_listings.core.exceptions import SourceFetchError
from cadastre_listings.schemas.property import AdminLevel, SourceKind
from cadastre_listings.services.mapping import HIERARCHY_LEVELS, KIND_MAPPINGS
from cadastre_listings.utils.retry import retry

logger = get_logger()

RawRecord = Mapping[str, Any]


class RecordSource(Protocol):
    """Fetches a point-in-time snapshot of one raw table."""

    name: str

    async def fetch(self) -> List[RawRecord]:
        ...


class SqlTableSource:
    """Reads every row of one cadastral table, ordered by its identifier."""

    def __init__(
        self,
        engine: AsyncEngine,
        table: str,
        order_by: str,
        timeout: float = 10.0,
        tries: int = 3,
        retry_delay: float = 0.5,
    ):
        self.engine = engine
        self.name = table
        self.order_by = order_by
        self.timeout = timeout
        self.tries = tries
        self.retry_delay = retry_delay

    async def _fetch_once(self) -> List[RawRecord]:
        # Table and column names come from the static mapping, never from callers
        query = text(f'SELECT * FROM "{self.name}" ORDER BY "{self.order_by}"')
        try:
            async with self.engine.connect() as conn:
                result = await asyncio.wait_for(conn.execute(query), timeout=self.timeout)
                return [dict(row) for row in result.mappings()]
        except asyncio.TimeoutError:
            raise SourceFetchError(self.name, f"timed out after {self.timeout}s")
        except SourceFetchError:
            raise
        except Exception as e:
            raise SourceFetchError(self.name, str(e)) from e

    async def fetch(self) -> List[RawRecord]:
        logger.info("Fetching table", source=self.name, backend="database")
        fetch = retry(tries=self.tries, delay=self.retry_delay, exceptions=(SourceFetchError,))(self._fetch_once)
        return await fetch()


class HttpTableSource:
    """Reads one table through the records admin API: GET {base_url}/api/data/{table} -> {"data": [...]}."""

    def __init__(
        self,
        base_url: str,
        table: str,
        timeout: float = 10.0,
        tries: int = 3,
        retry_delay: float = 0.5,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.name = table
        self.timeout = timeout
        self.tries = tries
        self.retry_delay = retry_delay
        self.transport = transport

    async def _fetch_once(self) -> List[RawRecord]:
        url = f"{self.base_url}/api/data/{self.name}"
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            try:
                response = await client.get(url)
                response.raise_for_status()
                payload = response.json()
            except httpx.TimeoutException:
                raise SourceFetchError(self.name, f"timed out after {self.timeout}s")
            except httpx.HTTPStatusError as e:
                logger.error("Records API error", source=self.name, status_code=e.response.status_code, response=e.response.text[:200])
                raise SourceFetchError(self.name, f"HTTP {e.response.status_code}") from e
            except httpx.RequestError as e:
                raise SourceFetchError(self.name, f"request failed: {e}") from e
            except ValueError as e:
                raise SourceFetchError(self.name, "response is not JSON") from e

        records = payload.get("data") if isinstance(payload, dict) else None
        if not isinstance(records, list):
            raise SourceFetchError(self.name, "response has no 'data' list")
        return records

    async def fetch(self) -> List[RawRecord]:
        logger.info("Fetching table", source=self.name, backend="http", url=self.base_url)
        fetch = retry(tries=self.tries, delay=self.retry_delay, exceptions=(SourceFetchError,))(self._fetch_once)
        return await fetch()


class StaticSource:
    """In-memory rows; used for fixtures, tests and offline demos."""

    def __init__(self, name: str, records: Sequence[Any] = (), error: Optional[Exception] = None):
        self.name = name
        self.records = list(records)
        self.error = error

    async def fetch(self) -> List[RawRecord]:
        if self.error is not None:
            raise self.error
        # Copies mappings; anything else is returned as-is for the builder to reject
        return [dict(record) if isinstance(record, Mapping) else record for record in self.records]


SourceMap = Dict[SourceKind, RecordSource]
HierarchySourceMap = Dict[AdminLevel, RecordSource]


def build_sources(settings: Settings) -> Tuple[SourceMap, HierarchySourceMap]:
    """Create one source per listing kind and per administrative level for the configured backend."""
    backend = settings.RECORD_SOURCE_BACKEND.lower()
    tables = [(kind, m.table, m.id_field) for kind, m in KIND_MAPPINGS.items()]
    levels = [(level, h.table, h.id_field) for level, h in HIERARCHY_LEVELS.items()]
    options = dict(
        timeout=settings.SOURCE_TIMEOUT_SECONDS,
        tries=settings.SOURCE_RETRY_TRIES,
        retry_delay=settings.SOURCE_RETRY_DELAY,
    )

    if backend == "database":
        engine = create_async_engine(settings.DATABASE_URL, pool_pre_ping=True)
        kinds = {kind: SqlTableSource(engine, table, id_field, **options) for kind, table, id_field in tables}
        hierarchy = {level: SqlTableSource(engine, table, id_field, **options) for level, table, id_field in levels}
    elif backend == "http":
        kinds = {kind: HttpTableSource(settings.RECORDS_API_URL, table, **options) for kind, table, _ in tables}
        hierarchy = {level: HttpTableSource(settings.RECORDS_API_URL, table, **options) for level, table, _ in levels}
    else:
        raise ValueError(f"Unsupported RECORD_SOURCE_BACKEND: {settings.RECORD_SOURCE_BACKEND!r}")

    logger.info("Record sources configured", backend=backend, kinds=[k.value for k in kinds], levels=[l.value for l in hierarchy])
    return kinds, hierarchy
