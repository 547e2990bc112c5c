"""Search, filter, sort and stats over an immutable ``Property`` list.

The functions return new lists and compose left to right:
``sort_properties(filter_properties(search(props, q), criteria), option)``.
"""

from datetime import timezone
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Union

from pydantic import ValidationError

from cadastre_listings.core.exceptions import InvalidQueryError
from cadastre_listings.schemas.property import FilterCriteria, Property, PropertyStats, SortOption


def search(properties: Sequence[Property], query: Optional[str]) -> List[Property]:
    needle = (query or "").strip().lower()
    if not needle:
        return list(properties)
    return [
        p for p in properties
        if any(needle in (text or "").lower() for text in (p.title, p.location, p.description, p.type.value))
    ]


def _as_criteria(criteria: Union[FilterCriteria, Mapping[str, Any], None]) -> FilterCriteria:
    if criteria is None:
        return FilterCriteria()
    if isinstance(criteria, FilterCriteria):
        return criteria
    try:
        return FilterCriteria.model_validate(dict(criteria))
    except (ValidationError, TypeError, ValueError) as e:
        raise InvalidQueryError(f"Invalid filter criteria: {e}") from e


def filter_properties(
    properties: Sequence[Property],
    criteria: Union[FilterCriteria, Mapping[str, Any], None],
) -> List[Property]:
    c = _as_criteria(criteria)
    if c.min_price is not None and c.max_price is not None and c.min_price > c.max_price:
        raise InvalidQueryError("min_price cannot be greater than max_price")

    predicates: List[Callable[[Property], bool]] = []
    for flag in ("published", "for_sale", "for_rent", "has_parking", "has_generator", "featured"):
        expected = getattr(c, flag)
        if expected is not None:
            predicates.append(lambda p, flag=flag, expected=expected: getattr(p, flag) is expected)
    if c.type is not None:
        predicates.append(lambda p: p.type == c.type)
    if c.source_kind is not None:
        predicates.append(lambda p: p.source_kind == c.source_kind)
    # Unpriced listings never satisfy a price bound
    if c.min_price is not None:
        predicates.append(lambda p: p.price is not None and p.price >= c.min_price)
    if c.max_price is not None:
        predicates.append(lambda p: p.price is not None and p.price <= c.max_price)
    if c.min_bedrooms is not None:
        predicates.append(lambda p: p.bedrooms is not None and p.bedrooms >= c.min_bedrooms)

    return [p for p in properties if all(pred(p) for pred in predicates)]


def _timestamp(p: Property) -> Optional[float]:
    created = p.created_at
    if created is None:
        return None
    if created.tzinfo is None:
        created = created.replace(tzinfo=timezone.utc)
    return created.timestamp()


def _bedrooms(p: Property) -> Optional[float]:
    return p.bedrooms if p.bedrooms else None


_SORT_KEYS: Dict[SortOption, tuple] = {
    SortOption.newest: (_timestamp, True),
    SortOption.oldest: (_timestamp, False),
    SortOption.price_asc: (lambda p: p.price, False),
    SortOption.price_desc: (lambda p: p.price, True),
    SortOption.bedrooms_desc: (_bedrooms, True),
}


def sort_properties(properties: Sequence[Property], option: Union[SortOption, str]) -> List[Property]:
    """Stable sort; missing values go last whatever the direction."""
    try:
        option = SortOption(option)
    except ValueError:
        raise InvalidQueryError(f"Unsupported sort option: {option!r}")

    key, descending = _SORT_KEYS[option]
    present = [p for p in properties if key(p) is not None]
    missing = [p for p in properties if key(p) is None]
    # sorted() with reverse=True keeps equal elements in input order
    return sorted(present, key=key, reverse=descending) + missing


def compute_stats(properties: Sequence[Property]) -> PropertyStats:
    stats = PropertyStats()
    for p in properties:
        if not p.published:
            continue
        stats.published += 1
        stats.for_sale += p.for_sale
        stats.for_rent += p.for_rent
        stats.featured += p.featured
        stats.sold += p.sold
        stats.by_kind[p.source_kind] = stats.by_kind.get(p.source_kind, 0) + 1
    return stats
