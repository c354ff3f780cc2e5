"""Field schema registry for Legal Metrology label checks.

The registry is built once at import time and only read afterwards, so it can
be shared between threads without locking.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType

from compliscan.exceptions import UnknownFieldError


class FieldName(str, Enum):
    """Closed set of recognized label fields."""

    MANUFACTURER = "manufacturer"
    NET_QUANTITY = "net_quantity"
    MRP = "MRP"
    CONSUMER_CARE = "consumer_care"
    DATE_OF_MANUFACTURE = "date_of_manufacture"
    COUNTRY_OF_ORIGIN = "country_of_origin"
    PRODUCT_NAME = "product_name"


@dataclass(frozen=True)
class FieldSchema:
    name: FieldName
    mandatory: bool
    max_length: int
    description: str
    display_name: str
    validation_pattern: re.Pattern[str]

    def is_valid(self, value: str) -> bool:
        return self.validation_pattern.search(value) is not None


_SCHEMAS = (
    # Legal Metrology (Packaged Commodities) Rules, 2011: the six declarations.
    FieldSchema(
        name=FieldName.MANUFACTURER,
        mandatory=True,
        max_length=200,
        description="Name and address of manufacturer, packer, or importer",
        display_name="Manufacturer/Packer/Importer Name & Address",
        # Addresses often span lines.
        validation_pattern=re.compile(r"^.{3,}$", re.DOTALL),
    ),
    FieldSchema(
        name=FieldName.NET_QUANTITY,
        mandatory=True,
        max_length=50,
        description="Net quantity in standard units (weight, measure, or number)",
        display_name="Net Quantity",
        validation_pattern=re.compile(
            r"\d+\s*(g|kg|ml|l|gm|gms|liters?|pieces?|pcs|tablets?|nos?)", re.IGNORECASE
        ),
    ),
    FieldSchema(
        name=FieldName.MRP,
        mandatory=True,
        max_length=50,
        description="Maximum Retail Price inclusive of all taxes",
        display_name="MRP (Retail Sale Price)",
        validation_pattern=re.compile(r"₹?\s*\d+(?:[.,]\d+)?|rs\.?\s*\d+", re.IGNORECASE),
    ),
    FieldSchema(
        name=FieldName.CONSUMER_CARE,
        mandatory=True,
        max_length=150,
        description="Consumer care details (phone, email, or address)",
        display_name="Consumer Care Details",
        validation_pattern=re.compile(r"\d{10}|@|\d{3,}"),
    ),
    FieldSchema(
        name=FieldName.DATE_OF_MANUFACTURE,
        mandatory=True,
        max_length=50,
        description="Date of manufacture, packing, or import",
        display_name="Date of Manufacture/Import",
        validation_pattern=re.compile(
            r"\d{1,2}[/\-.]\d{1,2}[/\-.]\d{2,4}|[a-z]{3,}\s*\d{2,4}", re.IGNORECASE
        ),
    ),
    FieldSchema(
        name=FieldName.COUNTRY_OF_ORIGIN,
        mandatory=True,
        max_length=100,
        description="Country of origin or manufacture",
        display_name="Country of Origin",
        validation_pattern=re.compile(r"^[a-z\s]{2,}$", re.IGNORECASE),
    ),
    # Supplemental: reported, never scored.
    FieldSchema(
        name=FieldName.PRODUCT_NAME,
        mandatory=False,
        max_length=200,
        description="Product name or title (supplemental identifier)",
        display_name="Product Name",
        validation_pattern=re.compile(r"^.{3,}$", re.DOTALL),
    ),
)

FIELD_SCHEMAS: MappingProxyType[FieldName, FieldSchema] = MappingProxyType(
    {schema.name: schema for schema in _SCHEMAS}
)
MANDATORY_FIELDS: tuple[FieldName, ...] = tuple(s.name for s in _SCHEMAS if s.mandatory)
SUPPLEMENTAL_FIELDS: tuple[FieldName, ...] = tuple(s.name for s in _SCHEMAS if not s.mandatory)
MANDATORY_FIELD_COUNT = len(MANDATORY_FIELDS)

if MANDATORY_FIELD_COUNT != 6:
    raise RuntimeError(f"expected 6 mandatory fields, found {MANDATORY_FIELD_COUNT}")


def resolve_field(name: str | FieldName) -> FieldName:
    """Map a field name to its `FieldName`, raising `UnknownFieldError` otherwise."""
    if isinstance(name, FieldName):
        return name
    try:
        return FieldName(name)
    except ValueError:
        raise UnknownFieldError(f"Unknown field: {name!r}") from None


def get_field_schema(name: str | FieldName) -> FieldSchema:
    return FIELD_SCHEMAS[resolve_field(name)]


def get_mandatory_fields() -> list[str]:
    return [field.value for field in MANDATORY_FIELDS]
