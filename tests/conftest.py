from datetime import datetime, timezone

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from cadastre_listings.config import settings
from cadastre_listings.dependencies.listings import get_listing_service
from cadastre_listings.main import app
from cadastre_listings.schemas.property import AdminLevel, Property, PropertyType, SourceKind
from cadastre_listings.services.collection import CollectionBuilder
from cadastre_listings.services.listings import ListingService
from cadastre_listings.services.sources import StaticSource


def make_property(id, **overrides):
    """Property with sensible defaults; ``id`` is the composite "<kind>-<n>"."""
    kind = SourceKind(id.split("-", 1)[0])
    data = dict(
        id=id,
        source_kind=kind,
        source_id=id.split("-", 1)[1],
        title=f"Listing {id}",
        type=PropertyType.HOUSE,
        location="Bastos, Mfoundi, Centre",
        published=True,
        for_sale=True,
        created_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
    )
    data.update(overrides)
    return Property(**data)


ALLOTMENTS = [
    {"Id_Lotis": 1, "Nom_proprio": "Mballa", "Lieudit": "Bastos", "Id_Arrond": 10, "Surface": "5000",
     "price": "75000000", "published": True, "featured": "true", "createdAt": "2024-03-01T10:00:00Z"},
    {"Id_Lotis": 2, "Nom_proprio": "Ngono", "Lieudit": "Odza", "Id_Arrond": 10, "Surface": "",
     "published": "false", "createdAt": "2024-02-01T10:00:00Z"},
]

PARCELS = [
    {"Id_Parcel": 7, "Nom_Prop": "Essomba", "Lieu_dit": "Bastos Sud", "Id_Lotis": "1", "Sup": 600,
     "price": 18000000, "listingStatus": "PUBLISHED", "createdAt": "2024-01-15T08:00:00Z"},
]

BUILDINGS = [
    {"Id_Bat": 3, "Nom": "Immeuble Atangana", "Type_Usage": "Bureau", "Id_Parcel": 7.0,
     "price": "250000000", "bedrooms": "", "hasParking": "1", "published": "true",
     "Image_URL_1": "https://cdn.example.com/a.jpg", "Image_URL_2": "", "Image_URL_3": "http://cdn.example.com/c.jpg",
     "createdAt": "2024-04-01T09:30:00Z"},
    {"Id_Bat": 4, "Nom": "Villa Soleil", "Type_Usage": "Villa de standing", "Id_Parcel": 7,
     "rentPrice": "450000", "bedrooms": "4", "listingType": "RENT", "published": True,
     "createdAt": "2024-05-01T09:30:00Z"},
]

INFRASTRUCTURES = [
    {"Id_Infras": 9, "Nom_infras": "Marché Central", "Categorie_infras": "Marché", "Statut_infras": "En service"},
]

ARRONDISSEMENTS = [{"Id_Arrond": 10, "Nom_Arrond": "Yaoundé I", "Id_Dept": 20}]
DEPARTEMENTS = [{"Id_Dept": 20, "Nom_Dept": "Mfoundi", "Id_Reg": 30}]
REGIONS = [{"Id_Reg": 30, "Nom_Reg": "Centre"}]


@pytest.fixture
def listing_sources():
    return {
        SourceKind.ALLOTMENT: StaticSource("Lotissement", ALLOTMENTS),
        SourceKind.PARCEL: StaticSource("Parcelle", PARCELS),
        SourceKind.BUILDING: StaticSource("Batiment", BUILDINGS),
        SourceKind.INFRASTRUCTURE: StaticSource("Infrastructure", INFRASTRUCTURES),
    }


@pytest.fixture
def hierarchy_sources():
    return {
        AdminLevel.REGION: StaticSource("Region", REGIONS),
        AdminLevel.DEPARTMENT: StaticSource("Departement", DEPARTEMENTS),
        AdminLevel.ARRONDISSEMENT: StaticSource("Arrondissement", ARRONDISSEMENTS),
    }


@pytest.fixture
def listing_service(listing_sources, hierarchy_sources):
    return ListingService(CollectionBuilder(listing_sources, hierarchy_sources))


@pytest_asyncio.fixture
async def client(listing_service, monkeypatch):
    monkeypatch.setattr(settings, "RATE_LIMIT_ENABLED", False)
    app.dependency_overrides[get_listing_service] = lambda: listing_service
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides = {}
