"""Compliance scoring and status classification."""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from compliscan.fields import MANDATORY_FIELD_COUNT, MANDATORY_FIELDS
from compliscan.schema import Status, Violation


@dataclass(frozen=True)
class ScoringPolicy:
    """Constants of the scoring formula.

    Attributes:
        mandatory_field_count: Denominator of the presence score. Fixed by the
            Legal Metrology checklist.
        max_score: Score of a label with every mandatory field present.
        confidence_floor: Average confidence at or above which no penalty applies.
        confidence_penalty_scale: Points lost per unit of confidence below the
            floor; 18 points at zero confidence.
        approval_confidence: Average confidence a violation-free label must
            exceed to be approved without review.
        review_presence_ratio: Share of mandatory fields that must be present for
            a label with missing fields to go to review instead of failing.
    """

    mandatory_field_count: int = MANDATORY_FIELD_COUNT
    max_score: int = 100
    confidence_floor: float = 0.6
    confidence_penalty_scale: float = 30.0
    approval_confidence: float = 0.7
    review_presence_ratio: float = 0.7


DEFAULT_POLICY = ScoringPolicy()


@dataclass(frozen=True)
class ScoreResult:
    compliance_score: int
    status: Status
    fields_present: int
    fields_total: int
    avg_confidence: float
    confidence_penalty: float


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


class ComplianceScorer:
    """Pure scoring function over normalized fields, confidences and violations."""

    def __init__(self, policy: ScoringPolicy | None = None):
        self.policy = policy or DEFAULT_POLICY

    def score(
        self,
        fields: Mapping[str, Any],
        confidences: Mapping[str, float],
        violations: Iterable[Violation],
    ) -> ScoreResult:
        policy = self.policy
        total = policy.mandatory_field_count

        present = [
            name.value
            for name in MANDATORY_FIELDS
            if isinstance(fields.get(name.value), str) and fields[name.value].strip()
        ]

        # Absent fields are already penalized through the presence score, so
        # only present fields count toward the average.
        if present:
            avg_confidence = sum(confidences.get(name, 0.0) for name in present) / len(present)
        else:
            avg_confidence = 0.0

        base_score = len(present) / total * policy.max_score
        confidence_penalty = max(0.0, (policy.confidence_floor - avg_confidence) * policy.confidence_penalty_scale)
        compliance_score = _round_half_up(max(0.0, base_score - confidence_penalty))
        compliance_score = min(policy.max_score, max(0, compliance_score))

        high_severity = sum(1 for violation in violations if violation.severity == "high")
        if high_severity == 0:
            status: Status = "approved" if avg_confidence > policy.approval_confidence else "needs_review"
        elif len(present) >= total * policy.review_presence_ratio:
            status = "needs_review"
        else:
            status = "failed"

        return ScoreResult(
            compliance_score=compliance_score,
            status=status,
            fields_present=len(present),
            fields_total=total,
            avg_confidence=avg_confidence,
            confidence_penalty=confidence_penalty,
        )


def score(
    fields: Mapping[str, Any],
    confidences: Mapping[str, float],
    violations: Iterable[Violation],
    *,
    policy: ScoringPolicy | None = None,
) -> ScoreResult:
    """Score a normalized label; see `ComplianceScorer.score`."""
    return ComplianceScorer(policy).score(fields, confidences, violations)
