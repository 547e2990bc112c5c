import asyncio
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple

from structlog import get_logger

from cadastre_listings.schemas.property import AdminLevel, Property, SourceKind
from cadastre_listings.services.mapping import CHAIN_ID_FIELDS, KIND_MAPPINGS, LOCATION_CHAIN
from cadastre_listings.services.normalizer import normalize, record_key, to_text
from cadastre_listings.services.sources import HierarchySourceMap, SourceMap

logger = get_logger()

Index = Dict[str, Dict[str, Mapping[str, Any]]]


@dataclass
class CollectionResult:
    properties: List[Property] = field(default_factory=list)
    source_errors: Dict[SourceKind, Exception] = field(default_factory=dict)
    hierarchy_errors: Dict[AdminLevel, Exception] = field(default_factory=dict)

    @property
    def complete(self) -> bool:
        return not self.source_errors


class CollectionBuilder:
    """Fetches every kind concurrently and merges them into one ``Property`` list.

    This is the only place that sees raw rows from more than one table, which is
    what lets it resolve administrative locations in one batch.
    """

    def __init__(self, sources: SourceMap, hierarchy_sources: Optional[HierarchySourceMap] = None):
        self.sources = dict(sources)
        self.hierarchy_sources = dict(hierarchy_sources or {})

    async def _fetch_all(self) -> Tuple[Dict[Any, List[Mapping[str, Any]]], Dict[Any, Exception]]:
        keys = list(self.sources) + list(self.hierarchy_sources)
        sources = list(self.sources.values()) + list(self.hierarchy_sources.values())
        # Each slot settles on its own; CancelledError is not an Exception and still propagates
        settled = await asyncio.gather(*(self._settle(source) for source in sources))
        rows, errors = {}, {}
        for key, (records, error) in zip(keys, settled):
            if error is not None:
                errors[key] = error
            else:
                rows[key] = records
        return rows, errors

    @staticmethod
    async def _settle(source) -> Tuple[List[Mapping[str, Any]], Optional[Exception]]:
        try:
            return await source.fetch(), None
        except Exception as e:
            logger.warning("Record source failed", source=getattr(source, "name", "?"), error=str(e))
            return [], e

    async def build(self) -> CollectionResult:
        rows, errors = await self._fetch_all()
        result = CollectionResult(
            source_errors={k: e for k, e in errors.items() if isinstance(k, SourceKind)},
            hierarchy_errors={k: e for k, e in errors.items() if isinstance(k, AdminLevel)},
        )

        index = self._index(rows)
        for kind in SourceKind:
            for raw in rows.get(kind, []):
                prop = self._normalize_one(raw, kind)
                if prop is not None:
                    result.properties.append(self._resolve_location(prop, index))

        logger.info(
            "Collection built",
            properties=len(result.properties),
            failed_kinds=[k.value for k in result.source_errors],
            failed_levels=[l.value for l in result.hierarchy_errors],
        )
        return result

    @staticmethod
    def _normalize_one(raw: Any, kind: SourceKind) -> Optional[Property]:
        if not isinstance(raw, Mapping):
            logger.warning("Skipping non-mapping record", kind=kind.value, record_type=type(raw).__name__)
            return None
        if record_key(raw.get(KIND_MAPPINGS[kind].id_field)) is None:
            logger.warning("Skipping record without identifier", kind=kind.value, id_field=KIND_MAPPINGS[kind].id_field)
            return None
        return normalize(raw, kind)

    @staticmethod
    def _index(rows: Mapping[Any, List[Mapping[str, Any]]]) -> Index:
        """table -> record key -> raw row, for every table the location walk may visit."""
        index: Index = {}
        for key, records in rows.items():
            table = key.value
            id_field = CHAIN_ID_FIELDS.get(table)
            if id_field is None or table not in LOCATION_CHAIN:
                continue
            by_id = index.setdefault(table, {})
            for raw in records:
                if isinstance(raw, Mapping):
                    rid = record_key(raw.get(id_field))
                    if rid is not None:
                        by_id.setdefault(rid, raw)
        return index

    @staticmethod
    def _resolve_location(prop: Property, index: Index) -> Property:
        if prop.locator is None:
            return prop

        place_names: List[str] = [prop.place_name] if prop.place_name else []
        admin_names: List[str] = []
        table, key = prop.locator.table, prop.locator.key
        visited = set()
        while table and key and (table, key) not in visited:
            visited.add((table, key))
            link = LOCATION_CHAIN.get(table)
            raw = index.get(table, {}).get(key)
            if link is None or raw is None:
                break
            name = next((n for n in (to_text(raw.get(f)) for f in link.name_fields) if n), None)
            if name:
                (admin_names if link.is_admin else place_names).append(name)
            if not link.parent_table or not link.parent_field:
                break
            table, key = link.parent_table, record_key(raw.get(link.parent_field))

        if not admin_names:
            return prop
        parts: List[str] = []
        for name in place_names[:1] + admin_names:
            if name not in parts:
                parts.append(name)
        return prop.model_copy(update={"location": ", ".join(parts)})
