from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class SourceKind(str, Enum):
    ALLOTMENT = "Lotissement"
    PARCEL = "Parcelle"
    BUILDING = "Batiment"
    INFRASTRUCTURE = "Infrastructure"


class AdminLevel(str, Enum):
    REGION = "Region"
    DEPARTMENT = "Departement"
    ARRONDISSEMENT = "Arrondissement"


class PropertyType(str, Enum):
    APARTMENT = "Apartment"
    HOUSE = "House"
    VILLA = "Villa"
    OFFICE = "Office"
    COMMERCIAL = "Commercial"
    LAND = "Land"
    BUILDING = "Building"
    STUDIO = "Studio"
    DUPLEX = "Duplex"


class SortOption(str, Enum):
    newest = "newest"
    oldest = "oldest"
    price_asc = "price-asc"
    price_desc = "price-desc"
    bedrooms_desc = "bedrooms-desc"


class Locator(BaseModel):
    """Opaque pointer into the administrative hierarchy, resolved by the collection builder."""
    model_config = ConfigDict(frozen=True)

    table: str
    key: str


class Property(BaseModel):
    id: str
    source_kind: SourceKind
    source_id: str
    title: str
    short_description: Optional[str] = None
    description: str = ""
    type: PropertyType
    location: str = ""
    place_name: Optional[str] = None
    address: Optional[str] = None
    locator: Optional[Locator] = None

    price: Optional[float] = Field(None, ge=0)
    price_per_area: Optional[float] = Field(None, ge=0)
    currency: str = "XAF"
    for_sale: bool = False
    for_rent: bool = False
    sold: bool = False
    rent_price: Optional[float] = Field(None, ge=0)

    surface_area: Optional[float] = Field(None, ge=0, description="Square meters")
    bedrooms: Optional[int] = Field(None, ge=0)
    bathrooms: Optional[int] = Field(None, ge=0)
    kitchens: Optional[int] = Field(None, ge=0)
    living_rooms: Optional[int] = Field(None, ge=0)
    total_floors: Optional[int] = Field(None, ge=0)
    total_units: Optional[int] = Field(None, ge=0)
    parking_spaces: Optional[int] = Field(None, ge=0)
    has_elevator: bool = False
    has_generator: bool = False
    has_parking: bool = False
    is_land_for_development: bool = False
    approved_for_apartments: bool = False

    images: List[str] = Field(default_factory=list, max_length=6)
    video: Optional[str] = None

    published: bool = False
    featured: bool = False

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class FilterCriteria(BaseModel):
    """Sparse filter; every key that is set adds one AND predicate.

    Keys are accepted in snake_case or camelCase (``min_price`` or ``minPrice``).
    """
    model_config = ConfigDict(extra="forbid", alias_generator=to_camel, populate_by_name=True)

    published: Optional[bool] = None
    type: Optional[PropertyType] = None
    for_sale: Optional[bool] = None
    for_rent: Optional[bool] = None
    min_price: Optional[float] = Field(None, ge=0)
    max_price: Optional[float] = Field(None, ge=0)
    min_bedrooms: Optional[int] = Field(None, ge=0)
    has_parking: Optional[bool] = None
    has_generator: Optional[bool] = None
    featured: Optional[bool] = None
    source_kind: Optional[SourceKind] = None


class PropertyStats(BaseModel):
    published: int = 0
    for_sale: int = 0
    for_rent: int = 0
    featured: int = 0
    sold: int = 0
    by_kind: Dict[SourceKind, int] = Field(default_factory=dict)


class PropertyQuery(BaseModel):
    q: Optional[str] = Field(None, description="Free text matched against title, location, description and type.")
    type: Optional[PropertyType] = None
    for_sale: Optional[bool] = None
    for_rent: Optional[bool] = None
    min_price: Optional[float] = Field(None, ge=0)
    max_price: Optional[float] = Field(None, ge=0)
    min_bedrooms: Optional[int] = Field(None, ge=0)
    has_parking: Optional[bool] = None
    has_generator: Optional[bool] = None
    featured: Optional[bool] = None
    source_kind: Optional[SourceKind] = None
    sort_by: SortOption = Field(SortOption.newest, description="Field to sort results by.")
    limit: Optional[int] = Field(None, ge=1, le=200)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "q": "Bastos",
                "type": "Villa",
                "for_sale": True,
                "min_price": 10000000,
                "max_price": 150000000,
                "min_bedrooms": 3,
                "has_parking": True,
                "sort_by": "price-asc",
                "limit": 20,
            }
        }
    )

    def criteria(self) -> FilterCriteria:
        """Public callers only ever see published listings."""
        return FilterCriteria(
            published=True,
            **self.model_dump(exclude={"q", "sort_by", "limit"}, exclude_none=True),
        )


class PropertyResponse(Property):
    display_price: str
    display_rent_price: Optional[str] = None
    display_area: str
    listing_label: str
    display_location: str
