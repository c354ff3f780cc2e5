"""Tests for pattern-cascade extraction."""

import pytest

from compliscan.exceptions import UnknownFieldError
from compliscan.extraction import extract_field, extract_fields
from compliscan.extraction.patterns import find_candidates, length_confidence
from compliscan.fields import FIELD_SCHEMAS, FieldName

LABEL_TEXT = """
Product: Herbal Face Cream
MRP: ₹ 299.00
Net Wt: 50 g
Manufactured by: Herbal Labs Pvt Ltd, Plot 12, Industrial Area, Mumbai

Mfg Date: 12/03/2024
Country of Origin: India
Customer Care: 1800 123 4567
"""


def test_length_confidence_grows_and_caps():
    assert length_confidence("abc") == pytest.approx(0.63)
    assert length_confidence("a" * 20) == pytest.approx(0.8)
    assert length_confidence("a" * 30) == pytest.approx(0.9)
    assert length_confidence("a" * 300) == pytest.approx(0.9)


def test_extract_full_label():
    fields = extract_fields(LABEL_TEXT)

    assert fields[FieldName.PRODUCT_NAME].value == "Herbal Face Cream"
    assert fields[FieldName.MRP].value == "299.00"
    assert fields[FieldName.NET_QUANTITY].value == "50 g"
    assert fields[FieldName.MANUFACTURER].value == (
        "Herbal Labs Pvt Ltd, Plot 12, Industrial Area, Mumbai"
    )
    assert fields[FieldName.DATE_OF_MANUFACTURE].value == "12/03/2024"
    assert fields[FieldName.COUNTRY_OF_ORIGIN].value == "India"
    assert fields[FieldName.CONSUMER_CARE].value == "1800 123 4567"


def test_extract_field_confidence_from_length():
    result = extract_field(LABEL_TEXT, "country_of_origin")

    assert result.confidence == pytest.approx(0.65)
    assert result.source_hint == "ocr_pattern:0"


def test_no_match_yields_null_with_zero_confidence():
    result = extract_field("nothing useful here", FieldName.MRP)

    assert result.value is None
    assert result.confidence == 0.0


def test_short_captures_are_discarded():
    # "In" is only two characters long.
    assert extract_field("Made in: In", "country_of_origin").value is None


def test_longest_candidate_wins_across_patterns():
    text = "MRP 450\nRs. 1299.50"

    result = extract_field(text, "MRP")

    assert result.value == "1299.50"
    assert result.source_hint == "ocr_pattern:2"


def test_equal_confidence_keeps_first_candidate():
    text = "MRP: 120\n₹ 450"

    result = extract_field(text, "MRP")

    assert result.value == "120"
    assert result.source_hint == "ocr_pattern:0"


def test_duplicate_matches_do_not_raise_confidence():
    once = extract_field("Net Wt: 500 g", "net_quantity")
    twice = extract_field("Net Wt: 500 g\n500 g", "net_quantity")

    assert once.confidence == twice.confidence


def test_every_pattern_is_scanned():
    candidates = list(find_candidates("MRP: 120\n₹ 450 or ₹ 460\nRs 750", "MRP"))

    assert [c.pattern_index for c in candidates] == [0, 1, 1, 2]


@pytest.mark.parametrize(
    "text",
    [
        "Mfg Date: 01/02/2024",
        "Mfg. Date: 01/02/2024",
        "MFG.DT. 01/02/2024",
        "Mfg Dt: 01/02/2024",
    ],
)
def test_mfg_date_is_not_a_manufacturer(text):
    result = extract_field(text, "manufacturer")

    assert result.value is None


def test_mfg_label_is_a_manufacturer():
    result = extract_field("Mfg: Acme Foods Ltd", "manufacturer")

    assert result.value == "Acme Foods Ltd"
    assert result.source_hint == "ocr_pattern:0"


def test_imported_by_is_a_manufacturer():
    result = extract_field("Imported by: Global Goods LLP, Chennai", "manufacturer")

    assert result.value == "Global Goods LLP, Chennai"


def test_consumer_care_email():
    result = extract_field("Write to care@herballabs.in for queries", "consumer_care")

    assert result.value == "care@herballabs.in"


def test_best_before_date_is_a_fallback():
    result = extract_field("Best before: 05/01/2025", "date_of_manufacture")

    assert result.value == "05/01/2025"


def test_unknown_field_raises():
    with pytest.raises(UnknownFieldError):
        extract_field(LABEL_TEXT, "barcode")


def test_extract_fields_parallel_matches_sequential():
    sequential = extract_fields(LABEL_TEXT)
    parallel = extract_fields(LABEL_TEXT, max_workers=4)

    assert parallel == sequential
    assert set(parallel) == set(FIELD_SCHEMAS)


def test_extract_fields_subset():
    fields = extract_fields(LABEL_TEXT, ["MRP", FieldName.NET_QUANTITY])

    assert list(fields) == [FieldName.MRP, FieldName.NET_QUANTITY]


def test_repeated_calls_are_independent():
    first = extract_field(LABEL_TEXT, "MRP")
    extract_field("MRP: 5", "MRP")
    second = extract_field(LABEL_TEXT, "MRP")

    assert first == second
