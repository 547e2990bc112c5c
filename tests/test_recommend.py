import pytest

from cadastre_listings.core.exceptions import InvalidQueryError
from cadastre_listings.schemas.property import PropertyType, SourceKind
from cadastre_listings.services.normalizer import normalize
from cadastre_listings.services.recommend import similar

from conftest import make_property

BASTOS = "Bastos, Mfoundi, Centre"
ODZA = "Odza, Mfoundi, Centre"


@pytest.fixture
def target():
    return make_property("Batiment-1", type=PropertyType.VILLA, location=BASTOS, price=100_000_000)


def ids(props):
    return [p.id for p in props]


def test_type_outranks_location_outranks_price(target):
    pool = [
        target,
        make_property("Batiment-2", type=PropertyType.HOUSE, location=BASTOS, price=100_000_000),
        make_property("Batiment-3", type=PropertyType.VILLA, location=ODZA, price=500_000_000),
        make_property("Batiment-4", type=PropertyType.VILLA, location=ODZA, price=110_000_000),
        make_property("Batiment-5", type=PropertyType.VILLA, location=BASTOS, price=None),
    ]
    assert ids(similar(target, pool, 6)) == ["Batiment-5", "Batiment-4", "Batiment-3", "Batiment-2"]


def test_only_relevant_candidates_are_returned(target):
    pool = [
        make_property("Batiment-2", type=PropertyType.OFFICE, location=ODZA, price=100_000_000),
        make_property("Batiment-3", type=PropertyType.VILLA, location=ODZA),
        target,
        make_property("Lotissement-4", type=PropertyType.LAND, location=ODZA),
        make_property("Batiment-5", type=PropertyType.HOUSE, location=BASTOS),
    ]
    result = similar(target, pool, 6)
    assert ids(result) == ["Batiment-3", "Batiment-5"]


def test_target_is_excluded(target):
    twin = make_property("Batiment-2", type=PropertyType.VILLA, location=BASTOS, price=100_000_000)
    assert ids(similar(target, [target, twin], 6)) == ["Batiment-2"]


def test_ties_keep_pool_order(target):
    pool = [target] + [make_property(f"Batiment-{n}", type=PropertyType.VILLA, location=ODZA) for n in range(2, 6)]
    assert ids(similar(target, pool, 2)) == ["Batiment-2", "Batiment-3"]


def test_price_tolerance_band(target):
    near = make_property("Batiment-2", type=PropertyType.VILLA, location=ODZA, price=125_000_000)
    far = make_property("Batiment-3", type=PropertyType.VILLA, location=ODZA, price=140_000_000)
    assert ids(similar(target, [target, far, near], 6)) == ["Batiment-2", "Batiment-3"]
    assert ids(similar(target, [target, far, near], 6, price_tolerance=0.5)) == ["Batiment-3", "Batiment-2"]


def test_target_not_in_pool_returns_empty(target):
    other = make_property("Batiment-2", type=PropertyType.VILLA, location=BASTOS)
    assert similar(target, [other], 6) == []


def test_zero_limit_and_negative_limit(target):
    pool = [target, make_property("Batiment-2", type=PropertyType.VILLA)]
    assert similar(target, pool, 0) == []
    with pytest.raises(InvalidQueryError):
        similar(target, pool, -1)


def test_unlocated_records_do_not_match_on_location():
    office = normalize({"Id_Bat": 1, "Type_Usage": "bureau"}, SourceKind.BUILDING)
    pool = [
        office,
        normalize({"Id_Bat": 2, "Type_Usage": "villa"}, SourceKind.BUILDING),
        normalize({"Id_Infras": 3, "Categorie_infras": "Marche"}, SourceKind.INFRASTRUCTURE),
    ]
    assert similar(office, pool, 6) == []


def test_unlocated_target_still_matches_on_type():
    office = normalize({"Id_Bat": 1, "Type_Usage": "bureau"}, SourceKind.BUILDING)
    other_office = normalize({"Id_Bat": 2, "Type_Usage": "Office"}, SourceKind.BUILDING)
    assert ids(similar(office, [office, other_office], 6)) == ["Batiment-2"]
