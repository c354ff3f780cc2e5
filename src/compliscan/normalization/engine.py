"""Sanitization and schema validation of extracted field candidates."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from compliscan.fields import FIELD_SCHEMAS, MANDATORY_FIELDS, SUPPLEMENTAL_FIELDS, FieldName, FieldSchema
from compliscan.schema import Violation, sort_violations

SENTINEL_SUBSTRINGS = ("not available", "n/a")
SENTINEL_VALUES = frozenset({"-", "—"})


@dataclass(frozen=True)
class NormalizationConfig:
    # Confidence removed from a present value that fails its format check.
    format_penalty: float = 0.3
    # Assumed when the caller has no confidence for a field (page scrapes).
    default_confidence: float = 0.5
    # Shorter values are placeholders, not declarations.
    min_value_length: int = 2


@dataclass(frozen=True)
class NormalizationResult:
    values: dict[str, str | None]
    confidences: dict[str, float]
    extraction_confidences: dict[str, float]
    violations: tuple[Violation, ...] = field(default_factory=tuple)


def _key(name: Any) -> str:
    return name.value if isinstance(name, FieldName) else str(name)


class NormalizationEngine:
    """Turns raw candidates into sanitized values, confidences and violations.

    Running the engine again on its own output (values plus the extraction
    confidences it was given) reproduces the same result.
    """

    def __init__(self, config: NormalizationConfig | None = None):
        self.config = config or NormalizationConfig()

    def normalize(
        self,
        raw_candidates: Mapping[Any, Any],
        confidences: Mapping[Any, float] | None = None,
    ) -> NormalizationResult:
        raw = {_key(k): v for k, v in raw_candidates.items()}
        given = {_key(k): v for k, v in (confidences or {}).items()}

        values: dict[str, str | None] = {}
        final_confidences: dict[str, float] = {}
        extraction_confidences: dict[str, float] = {}
        violations: list[Violation] = []

        for name in MANDATORY_FIELDS:
            schema = FIELD_SCHEMAS[name]
            value = self.sanitize(schema, raw.get(name.value))
            confidence = self._input_confidence(given.get(name.value))
            extraction_confidences[name.value] = confidence

            if value is not None and not schema.is_valid(value):
                confidence = round(max(0.0, confidence - self.config.format_penalty), 6)
                violations.append(
                    Violation(
                        field=name.value,
                        type="format",
                        severity="medium",
                        message=f'{schema.description} format is invalid: "{value}"',
                    )
                )

            if not value:
                value = None
                violations.append(
                    Violation(
                        field=name.value,
                        type="missing",
                        severity="high",
                        message=f"{schema.description} is required but missing",
                    )
                )

            values[name.value] = value
            final_confidences[name.value] = confidence

        for name in SUPPLEMENTAL_FIELDS:
            values[name.value] = self.sanitize(FIELD_SCHEMAS[name], raw.get(name.value))

        return NormalizationResult(
            values=values,
            confidences=final_confidences,
            extraction_confidences=extraction_confidences,
            violations=sort_violations(violations),
        )

    def sanitize(self, schema: FieldSchema, raw: Any) -> str | None:
        """Trim, truncate and drop placeholder values."""
        if not isinstance(raw, str):
            return None
        value = raw.strip()[: schema.max_length].rstrip()
        if self.is_sentinel(value):
            return None
        return value

    def is_sentinel(self, value: str) -> bool:
        if len(value) < self.config.min_value_length:
            return True
        lowered = value.lower()
        if any(marker in lowered for marker in SENTINEL_SUBSTRINGS):
            return True
        return value in SENTINEL_VALUES

    def _input_confidence(self, value: float | None) -> float:
        if value is None:
            return self.config.default_confidence
        return min(1.0, max(0.0, float(value)))


def normalize_fields(
    raw_candidates: Mapping[Any, Any],
    confidences: Mapping[Any, float] | None = None,
    *,
    format_penalty: float = 0.3,
    default_confidence: float = 0.5,
) -> NormalizationResult:
    """Normalize raw field candidates with the given confidences."""

    engine = NormalizationEngine(
        config=NormalizationConfig(
            format_penalty=format_penalty,
            default_confidence=default_confidence,
        )
    )
    return engine.normalize(raw_candidates, confidences)
