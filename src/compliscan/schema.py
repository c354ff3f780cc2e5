"""Data models for compliscan."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Iterable, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from compliscan.fields import MANDATORY_FIELD_COUNT, FIELD_SCHEMAS, FieldName, resolve_field

SCHEMA_VERSION = "1.0"

Status = Literal["approved", "failed", "needs_review"]
ViolationType = Literal["missing", "format", "invalid"]
Severity = Literal["low", "medium", "high"]
Source = Literal["image", "url"]

STATUSES: tuple[str, ...] = ("approved", "failed", "needs_review")
SEVERITY_RANK: dict[str, int] = {"low": 0, "medium": 1, "high": 2}


class ExtractedField(BaseModel):
    """Best-guess value for one field, as produced by an extractor."""

    model_config = ConfigDict(frozen=True)

    value: str | None = None
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    source_hint: str | None = None


class Violation(BaseModel):
    """A recorded defect in one field."""

    model_config = ConfigDict(frozen=True)

    field: str
    type: ViolationType
    severity: Severity
    message: str


def sort_violations(violations: Iterable[Violation]) -> tuple[Violation, ...]:
    """Order violations for display: severity descending, then field name."""
    return tuple(sorted(violations, key=lambda v: (-SEVERITY_RANK[v.severity], v.field)))


class ImageResolution(BaseModel):
    model_config = ConfigDict(frozen=True)

    width: int = Field(ge=0)
    height: int = Field(ge=0)


class OCRResult(BaseModel):
    """Recognized text handed over by the OCR collaborator."""

    text: str = ""
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    resolution: ImageResolution | None = None


class AIFieldConfidences(BaseModel):
    product_name: float | None = None
    MRP: float | None = None
    manufacturer: float | None = None
    net_quantity: float | None = None
    country_of_origin: float | None = None


class AINormalization(BaseModel):
    """Replacement candidates proposed by the AI normalization collaborator."""

    product_name: str | None = None
    MRP: str | None = None
    manufacturer: str | None = None
    net_quantity: str | None = None
    country_of_origin: str | None = None
    confidence: AIFieldConfidences = Field(default_factory=AIFieldConfidences)

    def candidates(self) -> dict[str, str | None]:
        return self.model_dump(exclude={"confidence"})

    def confidences(self) -> dict[str, float]:
        return {k: v for k, v in self.confidence.model_dump().items() if v is not None}


class ComplianceExplanation(BaseModel):
    """Plain-language summary of a label's violations from the AI collaborator."""

    explanation: str
    severity: Severity = "medium"
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class NormalizedLabel(BaseModel):
    """Normalized, scored label for one submission.

    Underscore-prefixed aliases are the serialized metadata keys; use
    `to_record()` to get the persisted JSON shape.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    manufacturer: str | None = None
    net_quantity: str | None = None
    MRP: str | None = None
    consumer_care: str | None = None
    date_of_manufacture: str | None = None
    country_of_origin: str | None = None
    product_name: str | None = None

    schema_version: str = Field(default=SCHEMA_VERSION, alias="_schema_version")
    source: Source = Field(alias="_source")
    timestamp: datetime = Field(default_factory=_utc_now, alias="_timestamp")
    ocr_confidence: float = Field(default=0.0, ge=0.0, le=1.0, alias="_ocr_confidence")
    image_resolution: ImageResolution | None = Field(default=None, alias="_image_resolution")
    field_confidences: dict[str, float] = Field(default_factory=dict, alias="_field_confidences")
    extraction_confidences: dict[str, float] = Field(
        default_factory=dict, alias="_extraction_confidences"
    )
    extracted_text: str | None = Field(default=None, alias="_extracted_text")

    compliance_score: int = Field(ge=0, le=100)
    status: Status
    violations: tuple[Violation, ...] = ()
    fields_present: int = Field(ge=0, le=MANDATORY_FIELD_COUNT)
    fields_total: int = MANDATORY_FIELD_COUNT

    @field_validator("fields_total")
    @classmethod
    def _fixed_total(cls, value: int) -> int:
        if value != MANDATORY_FIELD_COUNT:
            raise ValueError(f"fields_total must be {MANDATORY_FIELD_COUNT}")
        return value

    def field_value(self, name: str | FieldName) -> str | None:
        return getattr(self, resolve_field(name).value)

    def field_values(self) -> dict[str, str | None]:
        return {field.value: getattr(self, field.value) for field in FIELD_SCHEMAS}

    def to_record(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)
