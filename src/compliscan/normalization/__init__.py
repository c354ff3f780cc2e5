"""Normalization utilities for compliscan."""

from compliscan.normalization.engine import (
    NormalizationConfig,
    NormalizationEngine,
    NormalizationResult,
    normalize_fields,
)

__all__ = [
    "NormalizationConfig",
    "NormalizationEngine",
    "NormalizationResult",
    "normalize_fields",
]
