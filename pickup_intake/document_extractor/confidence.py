"""Confidence aggregation: a pure function of the per-field outcomes."""

from collections.abc import Iterable
from dataclasses import dataclass, field

from pickup_intake.document_extractor.fields import FieldOutcome, FieldStatus

BASE_CONFIDENCE = 95
BASE_QUALITY_SCORE = 90
REVIEW_ENTRY_COST = 5
QUALITY_REVIEW_THRESHOLD = 70


@dataclass(frozen=True)
class ConfidenceReport:
    confidence: int
    quality_score: int
    needs_review: list[str] = field(default_factory=list)
    guessed_fields: list[str] = field(default_factory=list)
    quality_threshold: int = QUALITY_REVIEW_THRESHOLD

    @property
    def requires_review(self) -> bool:
        """Caller-visible review signal, distinct from the confidence score."""
        return self.quality_score < self.quality_threshold or bool(self.needs_review)


def aggregate(
    outcomes: Iterable[FieldOutcome],
    *,
    quality_threshold: int = QUALITY_REVIEW_THRESHOLD,
) -> ConfidenceReport:
    """Combine field outcomes into document-level scores.

    Each penalty is subtracted from the starting confidence; the quality score
    loses a fixed amount per distinct field needing review. Both are clamped
    at zero and never increase.
    """
    confidence = BASE_CONFIDENCE
    needs_review: list[str] = []
    guessed: list[str] = []

    for outcome in outcomes:
        confidence -= outcome.penalty
        if outcome.flag_for_review and outcome.field_name not in needs_review:
            needs_review.append(outcome.field_name)
        if outcome.status == FieldStatus.GUESSED and outcome.field_name not in guessed:
            guessed.append(outcome.field_name)

    quality_score = BASE_QUALITY_SCORE - REVIEW_ENTRY_COST * len(needs_review)

    return ConfidenceReport(
        confidence=min(100, max(0, confidence)),
        quality_score=max(0, quality_score),
        needs_review=needs_review,
        guessed_fields=guessed,
        quality_threshold=quality_threshold,
    )
