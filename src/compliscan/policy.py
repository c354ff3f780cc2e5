"""Calling-layer policy applied around the core label checks.

These rules sit outside the scorer: they never change `compliance_score` or
`status`, they add caller-facing messages or choose between candidates.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from compliscan.fields import FIELD_SCHEMAS, FieldName
from compliscan.schema import STATUSES, ImageResolution, NormalizedLabel, Source, Status

# Image submissions are checked against seven fields, URL submissions against
# five (no consumer care, no manufacture date). The scorer always uses the six
# mandatory fields; this split only drives the caller's "missing" messages.
REQUIRED_FOR_IMAGES: tuple[FieldName, ...] = (
    FieldName.PRODUCT_NAME,
    FieldName.MRP,
    FieldName.MANUFACTURER,
    FieldName.NET_QUANTITY,
    FieldName.COUNTRY_OF_ORIGIN,
    FieldName.CONSUMER_CARE,
    FieldName.DATE_OF_MANUFACTURE,
)
REQUIRED_FOR_URLS: tuple[FieldName, ...] = (
    FieldName.PRODUCT_NAME,
    FieldName.MRP,
    FieldName.MANUFACTURER,
    FieldName.NET_QUANTITY,
    FieldName.COUNTRY_OF_ORIGIN,
)

LOW_OCR_CONFIDENCE = 0.6
MIN_IMAGE_WIDTH = 400
MIN_IMAGE_HEIGHT = 300

# An AI suggestion replaces an extracted value only above this confidence.
AI_OVERRIDE_CONFIDENCE = 0.7


def required_fields(source: Source) -> tuple[FieldName, ...]:
    return REQUIRED_FOR_IMAGES if source == "image" else REQUIRED_FOR_URLS


def required_field_messages(label: NormalizedLabel) -> list[str]:
    """Return "<field> missing" messages for the source's required subset."""
    messages = []
    for name in required_fields(label.source):
        value = label.field_value(name)
        if not value or not value.strip():
            messages.append(f"{FIELD_SCHEMAS[name].display_name} missing")
    return messages


def quality_warnings(ocr_confidence: float | None, resolution: ImageResolution | None) -> list[str]:
    """Image quality hints for the caller; not part of scoring."""
    warnings = []
    if ocr_confidence and ocr_confidence < LOW_OCR_CONFIDENCE:
        warnings.append("Low OCR confidence")
    if resolution and (resolution.width < MIN_IMAGE_WIDTH or resolution.height < MIN_IMAGE_HEIGHT):
        warnings.append("Low image resolution")
    return warnings


def merge_ai_candidates(
    candidates: Mapping[str, Any],
    ai_candidates: Mapping[str, Any],
    ai_confidences: Mapping[str, float],
    *,
    threshold: float = AI_OVERRIDE_CONFIDENCE,
) -> dict[str, Any]:
    """Merge AI suggestions into extracted candidates.

    A suggestion is taken when the extracted value is empty or the AI reports a
    confidence above `threshold` for that field.
    """
    merged = dict(candidates)
    for name, value in ai_candidates.items():
        if not value:
            continue
        if not candidates.get(name) or ai_confidences.get(name, 0.0) > threshold:
            merged[name] = value
    return merged


def coerce_status(value: Any) -> Status:
    """Map anything outside the three known statuses to `needs_review`."""
    if value in STATUSES:
        return value
    return "needs_review"
