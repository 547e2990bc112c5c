import pytest

from cadastre_listings.schemas.property import PropertyType, SourceKind
from cadastre_listings.services.mapping import (
    CHAIN_ID_FIELDS,
    KIND_MAPPINGS,
    LOCATION_CHAIN,
    MEDIA_SLOT_COUNT,
    USAGE_KEYWORDS,
    _attributes,
)


def test_every_kind_has_a_mapping():
    assert set(KIND_MAPPINGS) == set(SourceKind)
    for kind, mapping in KIND_MAPPINGS.items():
        assert mapping.kind is kind
        assert mapping.table == kind.value
        assert len(mapping.media_slots) == MEDIA_SLOT_COUNT


def test_absent_attributes_are_none():
    assert KIND_MAPPINGS[SourceKind.ALLOTMENT].attributes["bedrooms"] is None
    assert KIND_MAPPINGS[SourceKind.BUILDING].attributes["bedrooms"] == "bedrooms"


def test_mapping_tables_are_read_only():
    with pytest.raises(TypeError):
        KIND_MAPPINGS[SourceKind.BUILDING].attributes["price"] = "prix"


def test_unknown_attribute_is_rejected():
    with pytest.raises(KeyError):
        _attributes(colour="Couleur")


def test_usage_keywords_never_map_to_land():
    assert all(property_type != PropertyType.LAND for _, property_type in USAGE_KEYWORDS)


def test_location_chain_tables_are_indexable():
    for table, link in LOCATION_CHAIN.items():
        assert table in CHAIN_ID_FIELDS
        if link.parent_table:
            assert link.parent_table in LOCATION_CHAIN


def test_only_infrastructure_is_listed_by_default():
    # Infrastructure rows carry no publication column
    assert [k for k, m in KIND_MAPPINGS.items() if m.default_published] == [SourceKind.INFRASTRUCTURE]
