"""Tests for the field schema registry."""

import pytest

from compliscan.exceptions import UnknownFieldError
from compliscan.fields import (
    FIELD_SCHEMAS,
    MANDATORY_FIELD_COUNT,
    MANDATORY_FIELDS,
    SUPPLEMENTAL_FIELDS,
    FieldName,
    get_field_schema,
    get_mandatory_fields,
    resolve_field,
)


def test_six_mandatory_fields():
    assert MANDATORY_FIELD_COUNT == 6
    assert get_mandatory_fields() == [
        "manufacturer",
        "net_quantity",
        "MRP",
        "consumer_care",
        "date_of_manufacture",
        "country_of_origin",
    ]


def test_product_name_is_supplemental():
    assert SUPPLEMENTAL_FIELDS == (FieldName.PRODUCT_NAME,)
    assert not get_field_schema("product_name").mandatory


def test_every_field_has_schema():
    assert set(FIELD_SCHEMAS) == set(FieldName)
    assert set(MANDATORY_FIELDS) | set(SUPPLEMENTAL_FIELDS) == set(FieldName)


def test_registry_is_read_only():
    with pytest.raises(TypeError):
        FIELD_SCHEMAS[FieldName.MRP] = None  # type: ignore[index]


def test_resolve_field_accepts_enum_and_string():
    assert resolve_field(FieldName.MRP) is FieldName.MRP
    assert resolve_field("MRP") is FieldName.MRP


def test_unknown_field_raises():
    with pytest.raises(UnknownFieldError, match="expiry_date"):
        resolve_field("expiry_date")


def test_unknown_field_is_a_key_error():
    with pytest.raises(KeyError):
        get_field_schema("mrp")


@pytest.mark.parametrize(
    "field, value, valid",
    [
        ("net_quantity", "500 g", True),
        ("net_quantity", "1.5 L", True),
        ("net_quantity", "large", False),
        ("MRP", "₹ 499.00", True),
        ("MRP", "Rs. 120", True),
        ("MRP", "abc", False),
        ("consumer_care", "care@example.com", True),
        ("consumer_care", "1800 123 456", True),
        ("consumer_care", "write to us", False),
        ("date_of_manufacture", "12/03/2024", True),
        ("date_of_manufacture", "March 2024", True),
        ("date_of_manufacture", "soon", False),
        ("country_of_origin", "India", True),
        ("country_of_origin", "India 2024", False),
        ("manufacturer", "Acme Foods Ltd", True),
        ("manufacturer", "AB", False),
    ],
)
def test_validation_patterns(field, value, valid):
    assert get_field_schema(field).is_valid(value) is valid


def test_manufacturer_address_can_span_lines():
    assert get_field_schema("manufacturer").is_valid("Acme Foods\nPlot 4, Pune")
