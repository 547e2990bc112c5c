"""Turn one raw cadastral row into a canonical ``Property``.

Every coercion here degrades to ``None``/``False`` instead of raising: a single
malformed cell must never drop an otherwise valid listing.
"""

import math
import unicodedata
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, List, Mapping, Optional, Tuple

from cadastre_listings.config import settings
from cadastre_listings.schemas.property import Locator, Property, PropertyType, SourceKind
from cadastre_listings.services.mapping import (
    BOOLEAN_ATTRIBUTES,
    COUNT_ATTRIBUTES,
    KIND_MAPPINGS,
    LISTING_TYPES,
    NUMERIC_ATTRIBUTES,
    PUBLISHED_STATUSES,
    SOLD_KEYWORDS,
    STATUS_KEYWORDS,
    TEXT_ATTRIBUTES,
    TIMESTAMP_ATTRIBUTES,
    URL_SCHEMES,
    USAGE_KEYWORDS,
    KindMapping,
    TypeStrategy,
)


def to_number(value: Any) -> Optional[float]:
    """Empty or null -> None; otherwise parse, and a failed parse is None as well."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    try:
        number = float(Decimal(value)) if isinstance(value, (str, Decimal)) else float(value)
    except (InvalidOperation, TypeError, ValueError, OverflowError):
        return None
    if math.isnan(number) or math.isinf(number) or number < 0:
        return None
    return number


def to_count(value: Any) -> Optional[int]:
    number = to_number(value)
    return int(math.floor(number)) if number is not None else None


def to_bool(value: Any) -> bool:
    if value is True:
        return True
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1")
    return False


def to_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = value.strip() if isinstance(value, str) else str(value).strip()
    return text or None


def to_datetime(value: Any) -> Optional[datetime]:
    """Naive values are taken as UTC so every timestamp stays comparable."""
    if isinstance(value, str) and value.strip():
        try:
            value = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            return None
    if not isinstance(value, datetime):
        return None
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def to_url(value: Any) -> Optional[str]:
    if not isinstance(value, str):
        return None
    url = value.strip()
    if url and url.lower().startswith(URL_SCHEMES):
        return url
    return None


def record_key(value: Any) -> Optional[str]:
    """Canonical string form of an identifier or foreign key, so 12, 12.0 and "12" agree."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, float):
        if math.isnan(value) or math.isinf(value):
            return None
        if value.is_integer():
            value = int(value)
    if isinstance(value, Decimal) and value == value.to_integral_value():
        value = int(value)
    text = str(value).strip()
    if text.endswith(".0") and text[:-2].isdigit():
        text = text[:-2]
    return text or None


def _first_text(raw: Mapping[str, Any], fields: Iterable[str]) -> Optional[str]:
    for name in fields:
        text = to_text(raw.get(name))
        if text:
            return text
    return None


def _fold(text: str) -> str:
    """Lowercase, strip accents and separators so "Entrepôt_Commercial" matches "entrepot commercial"."""
    decomposed = unicodedata.normalize("NFKD", text)
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return " ".join(stripped.lower().replace("_", " ").replace("-", " ").split())


def derive_type(raw: Mapping[str, Any], mapping: KindMapping) -> PropertyType:
    rule = mapping.type_rule
    if rule.strategy is TypeStrategy.FIXED and rule.fixed is not None:
        return rule.fixed
    usage = _first_text(raw, rule.usage_fields)
    if usage:
        folded = _fold(usage)
        for keyword, property_type in USAGE_KEYWORDS:
            if keyword in folded:
                return property_type
    return rule.default


def collect_images(raw: Mapping[str, Any], mapping: KindMapping) -> List[str]:
    images = []
    for aliases in mapping.media_slots:
        for name in aliases:
            url = to_url(raw.get(name))
            if url:
                images.append(url)
                break
    return images


def collect_video(raw: Mapping[str, Any], mapping: KindMapping) -> Optional[str]:
    for name in mapping.video_fields:
        url = to_url(raw.get(name))
        if url:
            return url
    return None


def _build_title(raw: Mapping[str, Any], mapping: KindMapping, place: Optional[str]) -> str:
    rule = mapping.title
    if rule.title_field:
        explicit = to_text(raw.get(rule.title_field))
        if explicit:
            return explicit
    name = _first_text(raw, rule.name_fields) or rule.default_name
    return f"{name} in {place}" if place else name


def _status_keyword(raw: Mapping[str, Any], mapping: KindMapping) -> Optional[Tuple[str, Tuple[bool, bool]]]:
    if not mapping.status_text_field:
        return None
    status = to_text(raw.get(mapping.status_text_field))
    if not status:
        return None
    folded = _fold(status)
    for keyword, flags in STATUS_KEYWORDS:
        if keyword in folded:
            return keyword, flags
    return None


def _listing_flags(raw: Mapping[str, Any], mapping: KindMapping) -> Tuple[bool, bool]:
    sale_field = mapping.attributes.get("for_sale")
    rent_field = mapping.attributes.get("for_rent")
    explicit = [
        name for name in (sale_field, rent_field)
        if name and raw.get(name) not in (None, "")
    ]
    if explicit:
        return to_bool(raw.get(sale_field)), to_bool(raw.get(rent_field))

    if mapping.listing_type_field:
        listing_type = to_text(raw.get(mapping.listing_type_field))
        if listing_type and listing_type.upper() in LISTING_TYPES:
            return LISTING_TYPES[listing_type.upper()]

    status = _status_keyword(raw, mapping)
    if status:
        return status[1]

    return mapping.default_for_sale, False


def _published(raw: Mapping[str, Any], mapping: KindMapping) -> bool:
    published_field = mapping.attributes.get("published")
    if published_field and raw.get(published_field) not in (None, ""):
        return to_bool(raw.get(published_field))
    if mapping.listing_status_field:
        status = to_text(raw.get(mapping.listing_status_field))
        if status:
            return status.upper() in PUBLISHED_STATUSES
    return mapping.default_published


def _locator(raw: Mapping[str, Any], mapping: KindMapping) -> Optional[Locator]:
    if not mapping.locator_field or not mapping.locator_table:
        return None
    key = record_key(raw.get(mapping.locator_field))
    return Locator(table=mapping.locator_table, key=key) if key else None


def normalize(raw: Mapping[str, Any], kind: SourceKind) -> Property:
    """Map one raw row of ``kind`` onto the canonical ``Property`` shape."""
    mapping = KIND_MAPPINGS[kind]
    attrs = mapping.attributes

    def mapped(attribute: str) -> Any:
        field_name = attrs.get(attribute)
        return raw.get(field_name) if field_name else None

    source_id = record_key(raw.get(mapping.id_field)) or "unknown"
    place = _first_text(raw, mapping.place_fields)
    for_sale, for_rent = _listing_flags(raw, mapping)
    status = _status_keyword(raw, mapping)

    values = {name: to_number(mapped(name)) for name in NUMERIC_ATTRIBUTES}
    values.update({name: to_count(mapped(name)) for name in COUNT_ATTRIBUTES})
    values.update({name: to_bool(mapped(name)) for name in BOOLEAN_ATTRIBUTES})
    values.update({name: to_text(mapped(name)) for name in TEXT_ATTRIBUTES})
    values.update({name: to_datetime(mapped(name)) for name in TIMESTAMP_ATTRIBUTES})
    values.update(
        for_sale=for_sale,
        for_rent=for_rent,
        sold=status is not None and status[0] in SOLD_KEYWORDS,
        published=_published(raw, mapping),
        currency=(values["currency"] or settings.DEFAULT_CURRENCY).upper(),
        description=values["description"] or "",
    )

    return Property(
        id=f"{kind.value}-{source_id}",
        source_kind=kind,
        source_id=source_id,
        title=_build_title(raw, mapping, place),
        type=derive_type(raw, mapping),
        location=place or "",
        place_name=place,
        locator=_locator(raw, mapping),
        images=collect_images(raw, mapping),
        video=collect_video(raw, mapping),
        **values,
    )
