"""compliscan: Legal Metrology compliance checks for product labels."""

from compliscan.core import check_html, check_image, check_ocr_result, check_text, renormalize, validate_label
from compliscan.fields import FieldName, get_field_schema, get_mandatory_fields
from compliscan.schema import NormalizedLabel, Violation

__version__ = "0.1.0"

__all__ = [
    "check_html",
    "check_image",
    "check_ocr_result",
    "check_text",
    "renormalize",
    "validate_label",
    "FieldName",
    "get_field_schema",
    "get_mandatory_fields",
    "NormalizedLabel",
    "Violation",
    "__version__",
]
