from typing import List, Sequence

from cadastre_listings.core.exceptions import InvalidQueryError
from cadastre_listings.schemas.property import Property

TYPE_WEIGHT = 4
LOCATION_WEIGHT = 2
PRICE_WEIGHT = 1


def _price_close(target: Property, candidate: Property, tolerance: float) -> bool:
    if not target.price or candidate.price is None:
        return False
    return abs(candidate.price - target.price) <= target.price * tolerance


def similar(target: Property, pool: Sequence[Property], limit: int, price_tolerance: float = 0.3) -> List[Property]:
    """Rank ``pool`` against ``target``: type beats location, location beats price.

    Only candidates sharing the type or the location qualify, so the result can
    be shorter than ``limit``.
    """
    if limit < 0:
        raise InvalidQueryError("limit must not be negative")
    if not any(p.id == target.id for p in pool):
        return []

    scored = []
    for candidate in pool:
        if candidate.id == target.id:
            continue
        type_match = candidate.type == target.type
        location_match = bool(target.location) and candidate.location == target.location
        if not (type_match or location_match):
            continue
        score = TYPE_WEIGHT * type_match + LOCATION_WEIGHT * location_match
        if _price_close(target, candidate, price_tolerance):
            score += PRICE_WEIGHT
        scored.append((score, candidate))

    scored.sort(key=lambda item: item[0], reverse=True)
    return [candidate for _, candidate in scored[:limit]]
