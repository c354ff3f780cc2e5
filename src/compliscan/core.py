"""Label check pipeline: extract, normalize, score."""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from datetime import datetime
from typing import Any

from compliscan.extraction import ContentBundle, extract_fields, extract_structured
from compliscan.fields import FIELD_SCHEMAS, MANDATORY_FIELDS
from compliscan.normalization import NormalizationEngine
from compliscan.policy import merge_ai_candidates, quality_warnings, required_field_messages
from compliscan.providers.base import BaseAINormalizer, BaseOCRProvider, ImageInput
from compliscan.schema import ComplianceExplanation, ImageResolution, NormalizedLabel, OCRResult, Source
from compliscan.scoring import ComplianceScorer

logger = logging.getLogger(__name__)

EXTRACTED_TEXT_SAMPLE = 500

_TRUE_VALUES = {"1", "true", "yes", "on"}


def _env_flag(name: str) -> bool:
    return os.getenv(name, "").strip().lower() in _TRUE_VALUES


def build_label(
    candidates: Mapping[Any, Any],
    confidences: Mapping[Any, float] | None = None,
    *,
    source: Source,
    ocr_confidence: float = 0.0,
    image_resolution: ImageResolution | None = None,
    extracted_text: str | None = None,
    timestamp: datetime | None = None,
    engine: NormalizationEngine | None = None,
    scorer: ComplianceScorer | None = None,
) -> NormalizedLabel:
    """Normalize raw candidates and score them into a fresh `NormalizedLabel`."""
    result = (engine or NormalizationEngine()).normalize(candidates, confidences)
    scored = (scorer or ComplianceScorer()).score(result.values, result.confidences, result.violations)

    metadata: dict[str, Any] = {}
    if timestamp is not None:
        metadata["timestamp"] = timestamp

    return NormalizedLabel(
        **result.values,
        **metadata,
        source=source,
        ocr_confidence=min(1.0, max(0.0, ocr_confidence)),
        image_resolution=image_resolution,
        field_confidences=result.confidences,
        extraction_confidences=result.extraction_confidences,
        extracted_text=extracted_text[:EXTRACTED_TEXT_SAMPLE] if extracted_text else None,
        compliance_score=scored.compliance_score,
        status=scored.status,
        violations=result.violations,
        fields_present=scored.fields_present,
        fields_total=scored.fields_total,
    )


def check_text(
    text: str,
    *,
    engine_confidence: float = 0.0,
    image_resolution: ImageResolution | None = None,
    max_workers: int | None = None,
) -> NormalizedLabel:
    """Check recognized label text.

    Args:
        text: Text recognized from a label image.
        engine_confidence: Confidence reported by the OCR engine, if any.
        image_resolution: Size of the source image, if known.
        max_workers: Extract fields on a thread pool of this size.

    Returns:
        Scored NormalizedLabel with `_source` set to "image".
    """
    extracted = extract_fields(text or "", max_workers=max_workers)
    candidates = {name.value: field.value for name, field in extracted.items()}
    confidences = {name.value: field.confidence for name, field in extracted.items()}

    found = [c for c in confidences.values() if c > 0]
    field_confidence = sum(found) / len(found) if found else 0.0
    ocr_confidence = max(field_confidence, engine_confidence)

    logger.debug(
        "ocr fields extracted: %s",
        {name: value for name, value in candidates.items() if value},
    )
    return build_label(
        candidates,
        confidences,
        source="image",
        ocr_confidence=ocr_confidence,
        image_resolution=image_resolution,
        extracted_text=text if _env_flag("COMPLISCAN_DEBUG") else None,
    )


def check_ocr_result(result: OCRResult, *, max_workers: int | None = None) -> NormalizedLabel:
    """Check the output of an OCR collaborator."""
    return check_text(
        result.text,
        engine_confidence=result.confidence,
        image_resolution=result.resolution,
        max_workers=max_workers,
    )


def _build_ocr_provider() -> BaseOCRProvider:
    from compliscan.providers.google_vision_ocr import GoogleVisionOCRProvider

    return GoogleVisionOCRProvider()


def _select_ocr_provider(provider: str | None) -> BaseOCRProvider:
    provider_name = (provider or os.getenv("COMPLISCAN_OCR_PROVIDER", "google_vision_ocr")).strip().lower()
    if provider_name in {"ocr", "google_vision_ocr", "google-vision-ocr", "vision"}:
        return _build_ocr_provider()
    raise ValueError(f"Unsupported OCR provider: {provider_name}")


def check_image(
    image: ImageInput,
    *,
    provider: BaseOCRProvider | str | None = None,
) -> NormalizedLabel:
    """Recognize a label image and check it.

    Args:
        image: Image input - file path (str), Path object, or PIL Image.
        provider: OCR provider instance or name. Defaults to
            `COMPLISCAN_OCR_PROVIDER` env var, then Google Vision.
    """
    engine = provider if isinstance(provider, BaseOCRProvider) else _select_ocr_provider(provider)
    return check_ocr_result(engine.recognize(image))


def _build_ai_normalizer() -> BaseAINormalizer:
    from compliscan.providers.gemini import GeminiNormalizer

    return GeminiNormalizer()


def _apply_ai(
    candidates: dict[str, str | None],
    ai_normalizer: BaseAINormalizer | None,
) -> tuple[dict[str, str | None], dict[str, float]]:
    try:
        normalizer = ai_normalizer or _build_ai_normalizer()
        suggestion = normalizer.normalize(candidates)
    except Exception:
        logger.exception("AI normalization failed, keeping extracted values")
        return candidates, {}

    ai_confidences = suggestion.confidences()
    merged = merge_ai_candidates(candidates, suggestion.candidates(), ai_confidences)
    confidences = {
        name: ai_confidences[name]
        for name, value in merged.items()
        if name in ai_confidences and value != candidates.get(name)
    }
    return merged, confidences


def check_html(
    html: str | bytes,
    *,
    url: str | None = None,
    platform: str | None = None,
    ai_normalizer: BaseAINormalizer | None = None,
    use_ai: bool | None = None,
) -> NormalizedLabel:
    """Check a scraped product page.

    Args:
        html: Page markup.
        url: Page address, used to pick site-specific selectors.
        platform: Explicit platform key, overriding detection from `url`.
        ai_normalizer: Optional AI collaborator proposing cleaned values.
        use_ai: Build the default AI normalizer when none is given. Defaults to
            the `COMPLISCAN_AI_NORMALIZATION` env var.

    Returns:
        Scored NormalizedLabel with `_source` set to "url".
    """
    bundle = ContentBundle.from_html(html, url=url, platform=platform)
    candidates = {name.value: value for name, value in extract_structured(bundle).items()}
    confidences: dict[str, float] = {}

    if use_ai is None:
        use_ai = _env_flag("COMPLISCAN_AI_NORMALIZATION")
    if ai_normalizer is not None or use_ai:
        candidates, confidences = _apply_ai(candidates, ai_normalizer)

    return build_label(candidates, confidences, source="url")


def explain_label(
    label: NormalizedLabel,
    ai_normalizer: BaseAINormalizer | None = None,
) -> ComplianceExplanation | None:
    """Ask the AI collaborator to explain a label's violations.

    Returns None for a clean label or when the collaborator fails.
    """
    if not label.violations:
        return None
    try:
        normalizer = ai_normalizer or _build_ai_normalizer()
        return normalizer.explain([v.message for v in label.violations], label.product_name)
    except Exception:
        logger.exception("AI explanation failed")
        return None


def renormalize(label: NormalizedLabel) -> NormalizedLabel:
    """Run normalization and scoring again on a label's own values."""
    return build_label(
        label.field_values(),
        label.extraction_confidences,
        source=label.source,
        ocr_confidence=label.ocr_confidence,
        image_resolution=label.image_resolution,
        extracted_text=label.extracted_text,
        timestamp=label.timestamp,
    )


def validate_label(label: NormalizedLabel | Mapping[str, Any]) -> list[str]:
    """Return structural errors for a serialized label; empty when well-formed."""
    record = label.to_record() if isinstance(label, NormalizedLabel) else label
    errors = []
    if not record.get("_schema_version"):
        errors.append("Missing schema version")
    if not record.get("_source"):
        errors.append("Missing source information")
    for name in MANDATORY_FIELDS:
        if name.value not in record:
            errors.append(f"Missing field: {name.value}")
    if errors:
        logger.warning("label schema validation errors: %s", errors)
    return errors


def build_report(label: NormalizedLabel) -> dict[str, Any]:
    """Label record plus caller-facing messages for display."""
    return {
        "label": label.to_record(),
        "missing": required_field_messages(label),
        "warnings": quality_warnings(label.ocr_confidence, label.image_resolution),
        "fields": {name.value: FIELD_SCHEMAS[name].display_name for name in FIELD_SCHEMAS},
    }
