"""Field extractors for OCR text and product pages."""

from compliscan.extraction.content import ContentBundle, Selector, detect_platform
from compliscan.extraction.patterns import FIELD_PATTERNS, extract_field, extract_fields
from compliscan.extraction.structured import extract_structured, strategy_chain

__all__ = [
    "ContentBundle",
    "FIELD_PATTERNS",
    "Selector",
    "detect_platform",
    "extract_field",
    "extract_fields",
    "extract_structured",
    "strategy_chain",
]
