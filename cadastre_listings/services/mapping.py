"""Declarative field mapping for every cadastral record kind.

Nothing in here has behaviour: the normalizer and the collection builder read
these tables to turn raw rows into ``Property`` values. Supporting a new kind
means adding one ``KindMapping`` to ``KIND_MAPPINGS`` and one record source.
"""

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Dict, Mapping, Optional, Tuple

from cadastre_listings.schemas.property import AdminLevel, PropertyType, SourceKind

MEDIA_SLOT_COUNT = 6
URL_SCHEMES = ("http://", "https://")

# Canonical attributes a kind may map; anything not listed for a kind is absent.
NUMERIC_ATTRIBUTES = ("price", "price_per_area", "rent_price", "surface_area")
COUNT_ATTRIBUTES = (
    "bedrooms",
    "bathrooms",
    "kitchens",
    "living_rooms",
    "total_floors",
    "total_units",
    "parking_spaces",
)
BOOLEAN_ATTRIBUTES = (
    "for_sale",
    "for_rent",
    "published",
    "featured",
    "has_elevator",
    "has_generator",
    "has_parking",
    "is_land_for_development",
    "approved_for_apartments",
)
TEXT_ATTRIBUTES = ("short_description", "description", "address", "currency")
TIMESTAMP_ATTRIBUTES = ("created_at", "updated_at")


class TypeStrategy(str, Enum):
    FIXED = "fixed"
    USAGE_KEYWORDS = "usage_keywords"


@dataclass(frozen=True)
class TitleRule:
    """Explicit listing title wins; otherwise "<name> in <place>"."""

    title_field: Optional[str]
    name_fields: Tuple[str, ...]
    default_name: str = "Premium Property"


@dataclass(frozen=True)
class TypeRule:
    strategy: TypeStrategy
    fixed: Optional[PropertyType] = None
    usage_fields: Tuple[str, ...] = ()
    default: PropertyType = PropertyType.BUILDING


@dataclass(frozen=True)
class KindMapping:
    kind: SourceKind
    table: str
    id_field: str
    title: TitleRule
    type_rule: TypeRule
    media_slots: Tuple[Tuple[str, ...], ...]
    video_fields: Tuple[str, ...]
    place_fields: Tuple[str, ...]
    locator_field: Optional[str]
    locator_table: Optional[str]
    attributes: Mapping[str, Optional[str]]
    listing_type_field: Optional[str] = None
    status_text_field: Optional[str] = None
    listing_status_field: Optional[str] = None
    default_for_sale: bool = False
    default_published: bool = False


@dataclass(frozen=True)
class ChainLink:
    """One hop of the location walk: names to read here, then where to go next."""

    name_fields: Tuple[str, ...]
    parent_table: Optional[str]
    parent_field: Optional[str]
    is_admin: bool


@dataclass(frozen=True)
class HierarchyLevel:
    level: AdminLevel
    table: str
    id_field: str


def media_slots(*patterns: str) -> Tuple[Tuple[str, ...], ...]:
    """Six slots, each accepting every alias in ``patterns`` (formatted with the slot number)."""
    return tuple(
        tuple(pattern.format(n) for pattern in patterns)
        for n in range(1, MEDIA_SLOT_COUNT + 1)
    )


_MEDIA_SLOTS = media_slots("Image_URL_{}", "image_{}", "imageUrl{}")
_VIDEO_FIELDS = ("Video_URL", "video_url", "video")


def _attributes(**mapped: Optional[str]) -> Mapping[str, Optional[str]]:
    names = (
        NUMERIC_ATTRIBUTES
        + COUNT_ATTRIBUTES
        + BOOLEAN_ATTRIBUTES
        + TEXT_ATTRIBUTES
        + TIMESTAMP_ATTRIBUTES
    )
    unknown = set(mapped) - set(names)
    if unknown:
        raise KeyError(f"Unknown canonical attributes: {sorted(unknown)}")
    table: Dict[str, Optional[str]] = {name: None for name in names}
    table.update(mapped)
    return MappingProxyType(table)


_LISTING_COMMON = dict(
    short_description="shortDescription",
    description="description",
    currency="currency",
    for_sale="forSale",
    for_rent="forRent",
    published="published",
    featured="featured",
    created_at="createdAt",
    updated_at="updatedAt",
)


ALLOTMENT = KindMapping(
    kind=SourceKind.ALLOTMENT,
    table="Lotissement",
    id_field="Id_Lotis",
    title=TitleRule(title_field="title", name_fields=("Nom_proprio",)),
    type_rule=TypeRule(TypeStrategy.FIXED, fixed=PropertyType.LAND),
    media_slots=_MEDIA_SLOTS,
    video_fields=_VIDEO_FIELDS,
    place_fields=("Lieudit",),
    locator_field="Id_Arrond",
    locator_table=AdminLevel.ARRONDISSEMENT.value,
    attributes=_attributes(
        price="price",
        price_per_area="pricePerSqM",
        surface_area="Surface",
        is_land_for_development="isLandForDevelopment",
        approved_for_apartments="approvedForApartments",
        **_LISTING_COMMON,
    ),
    listing_type_field="listingType",
    listing_status_field="listingStatus",
    default_for_sale=True,
)

PARCEL = KindMapping(
    kind=SourceKind.PARCEL,
    table="Parcelle",
    id_field="Id_Parcel",
    title=TitleRule(title_field="title", name_fields=("Nom_Prop",)),
    type_rule=TypeRule(TypeStrategy.FIXED, fixed=PropertyType.LAND),
    media_slots=_MEDIA_SLOTS,
    video_fields=_VIDEO_FIELDS,
    place_fields=("Lieu_dit",),
    locator_field="Id_Lotis",
    locator_table=SourceKind.ALLOTMENT.value,
    attributes=_attributes(
        price="price",
        price_per_area="pricePerSqM",
        surface_area="Sup",
        is_land_for_development="isForDevelopment",
        approved_for_apartments="approvedForApartments",
        **_LISTING_COMMON,
    ),
    listing_type_field="listingType",
    listing_status_field="listingStatus",
    default_for_sale=True,
)

BUILDING = KindMapping(
    kind=SourceKind.BUILDING,
    table="Batiment",
    id_field="Id_Bat",
    title=TitleRule(title_field="title", name_fields=("Nom",)),
    type_rule=TypeRule(
        TypeStrategy.USAGE_KEYWORDS,
        usage_fields=("propertyType", "Type_Usage", "Cat_Bat"),
    ),
    media_slots=_MEDIA_SLOTS,
    video_fields=_VIDEO_FIELDS,
    place_fields=(),
    locator_field="Id_Parcel",
    locator_table=SourceKind.PARCEL.value,
    attributes=_attributes(
        price="price",
        price_per_area="pricePerSqM",
        rent_price="rentPrice",
        surface_area="surfaceArea",
        bedrooms="bedrooms",
        bathrooms="bathrooms",
        kitchens="kitchens",
        living_rooms="livingRooms",
        total_floors="totalFloors",
        total_units="totalUnits",
        parking_spaces="parkingSpaces",
        has_elevator="hasElevator",
        has_generator="hasGenerator",
        has_parking="hasParking",
        address="address",
        **_LISTING_COMMON,
    ),
    listing_type_field="listingType",
    status_text_field="Status",
    listing_status_field="listingStatus",
    default_for_sale=True,
)

INFRASTRUCTURE = KindMapping(
    kind=SourceKind.INFRASTRUCTURE,
    table="Infrastructure",
    id_field="Id_Infras",
    title=TitleRule(title_field="title", name_fields=("Nom_infras",), default_name="Infrastructure"),
    type_rule=TypeRule(
        TypeStrategy.USAGE_KEYWORDS,
        usage_fields=("Categorie_infras", "Type_Infraas"),
    ),
    media_slots=_MEDIA_SLOTS,
    video_fields=_VIDEO_FIELDS,
    place_fields=(),
    locator_field=None,
    locator_table=None,
    attributes=_attributes(**_LISTING_COMMON),
    listing_type_field="listingType",
    status_text_field="Statut_infras",
    listing_status_field="listingStatus",
    # The Infrastructure table has no publication column; every row is listed
    default_published=True,
)

KIND_MAPPINGS: Mapping[SourceKind, KindMapping] = MappingProxyType(
    {m.kind: m for m in (ALLOTMENT, PARCEL, BUILDING, INFRASTRUCTURE)}
)

# Ordered: the first keyword found in the normalized usage text wins, so the
# more specific words come before the generic ones.
USAGE_KEYWORDS: Tuple[Tuple[str, PropertyType], ...] = (
    ("studio", PropertyType.STUDIO),
    ("chambre", PropertyType.STUDIO),
    ("duplex", PropertyType.DUPLEX),
    ("triplex", PropertyType.DUPLEX),
    ("villa", PropertyType.VILLA),
    ("penthouse", PropertyType.APARTMENT),
    ("apartment", PropertyType.APARTMENT),
    ("appartement", PropertyType.APARTMENT),
    ("flat", PropertyType.APARTMENT),
    ("office", PropertyType.OFFICE),
    ("bureau", PropertyType.OFFICE),
    ("commercial", PropertyType.COMMERCIAL),
    ("commerce", PropertyType.COMMERCIAL),
    ("shop", PropertyType.COMMERCIAL),
    ("boutique", PropertyType.COMMERCIAL),
    ("magasin", PropertyType.COMMERCIAL),
    ("restaurant", PropertyType.COMMERCIAL),
    ("hotel", PropertyType.COMMERCIAL),
    ("warehouse", PropertyType.COMMERCIAL),
    ("entrepot", PropertyType.COMMERCIAL),
    ("market", PropertyType.COMMERCIAL),
    ("marche", PropertyType.COMMERCIAL),
    ("industrial", PropertyType.COMMERCIAL),
    ("factory", PropertyType.COMMERCIAL),
    ("usine", PropertyType.COMMERCIAL),
    ("mixed use", PropertyType.COMMERCIAL),
    ("house", PropertyType.HOUSE),
    ("maison", PropertyType.HOUSE),
    ("residential", PropertyType.HOUSE),
    ("residentiel", PropertyType.HOUSE),
    ("habitation", PropertyType.HOUSE),
    ("logement", PropertyType.HOUSE),
)

LISTING_TYPES: Mapping[str, Tuple[bool, bool]] = MappingProxyType({
    "SALE": (True, False),
    "RENT": (False, True),
    "BOTH": (True, True),
})

# Free-text status values; checked in order, first hit wins.
STATUS_KEYWORDS: Tuple[Tuple[str, Tuple[bool, bool]], ...] = (
    ("sold", (False, False)),
    ("vendu", (False, False)),
    ("rent", (False, True)),
    ("location", (False, True)),
    ("louer", (False, True)),
    ("sale", (True, False)),
    ("vente", (True, False)),
    ("vendre", (True, False)),
)

# Status keywords that also mark the listing as sold.
SOLD_KEYWORDS = frozenset({"sold", "vendu"})

PUBLISHED_STATUSES = frozenset({"PUBLISHED"})

HIERARCHY_LEVELS: Mapping[AdminLevel, HierarchyLevel] = MappingProxyType({
    AdminLevel.REGION: HierarchyLevel(AdminLevel.REGION, "Region", "Id_Reg"),
    AdminLevel.DEPARTMENT: HierarchyLevel(AdminLevel.DEPARTMENT, "Departement", "Id_Dept"),
    AdminLevel.ARRONDISSEMENT: HierarchyLevel(AdminLevel.ARRONDISSEMENT, "Arrondissement", "Id_Arrond"),
})

# Parcel -> Allotment -> Arrondissement -> Departement -> Region
LOCATION_CHAIN: Mapping[str, ChainLink] = MappingProxyType({
    "Parcelle": ChainLink(("Lieu_dit",), "Lotissement", "Id_Lotis", is_admin=False),
    "Lotissement": ChainLink(("Lieudit",), "Arrondissement", "Id_Arrond", is_admin=False),
    "Arrondissement": ChainLink(("Nom_Arrond",), "Departement", "Id_Dept", is_admin=True),
    "Departement": ChainLink(("Nom_Dept",), "Region", "Id_Reg", is_admin=True),
    "Region": ChainLink(("Nom_Reg",), None, None, is_admin=True),
})

# Table name -> identifier field, for every table the location walk can visit.
CHAIN_ID_FIELDS: Mapping[str, str] = MappingProxyType({
    **{m.table: m.id_field for m in KIND_MAPPINGS.values()},
    **{h.table: h.id_field for h in HIERARCHY_LEVELS.values()},
})
