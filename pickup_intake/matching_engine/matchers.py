"""Pure selection functions for entity resolution, no network or DB dependency."""

from collections.abc import Sequence
from dataclasses import dataclass
from statistics import fmean

from pickup_intake.matching_engine.similarity import similarity
from pickup_intake.schemas.matching import EntityRole, EntitySuggestion, MatchResult
from pickup_intake.schemas.registry import BasinRecord, ClientRecord, LogisticEntityCandidate

ENTITY_THRESHOLD = 0.6
BASIN_THRESHOLD = 0.8
SUGGESTION_FLOOR = 0.3
MAX_SUGGESTIONS = 5
REVIEW_CONFIDENCE = 0.8


@dataclass(frozen=True)
class ScoredCandidate:
    id: str
    name: str
    score: float
    exact: bool = False
    code: str | None = None
    description: str | None = None
    city: str | None = None

    def as_suggestion(self) -> EntitySuggestion:
        return EntitySuggestion(
            id=self.id,
            name=self.name,
            similarity=round(self.score, 4),
            code=self.code,
            description=self.description,
            city=self.city,
        )


def score_entities(
    value: str,
    candidates: Sequence[LogisticEntityCandidate | ClientRecord],
) -> list[ScoredCandidate]:
    """Score every candidate name against ``value``, keeping registry order."""
    scored = []
    for candidate in candidates:
        if getattr(candidate, "is_exact_match", False):
            scored.append(ScoredCandidate(candidate.id, candidate.name, 1.0, exact=True,
                                          city=getattr(candidate, "city", None)))
        else:
            scored.append(ScoredCandidate(candidate.id, candidate.name,
                                          similarity(value, candidate.name),
                                          city=getattr(candidate, "city", None)))
    return scored


def score_basins(code: str, description: str, basins: Sequence[BasinRecord]) -> list[ScoredCandidate]:
    """Score basins: an identical code is always exact, otherwise only the
    description counts.
    """
    scored = []
    for basin in basins:
        label = basin.description or basin.code
        if code and basin.code == code:
            scored.append(ScoredCandidate(basin.id, label, 1.0, exact=True,
                                          code=basin.code, description=basin.description))
            continue
        score = 0.0
        if description and basin.description:
            score = similarity(description, basin.description)
        scored.append(ScoredCandidate(basin.id, label, score,
                                      code=basin.code, description=basin.description))
    return scored


def pick_best(scored: Sequence[ScoredCandidate]) -> ScoredCandidate | None:
    """Exact candidates first, otherwise the highest score; the first one wins ties."""
    for candidate in scored:
        if candidate.exact:
            return candidate
    best = None
    for candidate in scored:
        if best is None or candidate.score > best.score:
            best = candidate
    return best


def to_match(
    role: EntityRole,
    value: str,
    best: ScoredCandidate | None,
    threshold: float,
) -> MatchResult:
    """Accept ``best`` when exact or at/above ``threshold``; otherwise the role is new."""
    if best is None or not (best.exact or best.score >= threshold):
        return MatchResult.new(role, value)
    return MatchResult(
        role=role,
        extracted_value=value,
        matched_id=best.id,
        matched_name=best.name,
        similarity=1.0 if best.exact else best.score,
        is_new=False,
        is_exact_match=best.exact,
    )


def alternate_suggestions(
    scored: Sequence[ScoredCandidate],
    selected_id: str | None,
    *,
    floor: float = SUGGESTION_FLOOR,
    limit: int = MAX_SUGGESTIONS,
) -> list[EntitySuggestion]:
    """Candidates above ``floor``, excluding the selected one, best first."""
    alternates = [c for c in scored if c.score > floor and c.id != selected_id]
    alternates.sort(key=lambda c: c.score, reverse=True)
    return [c.as_suggestion() for c in alternates[:limit]]


def aggregate_matches(
    matches: Sequence[MatchResult],
    *,
    review_confidence: float = REVIEW_CONFIDENCE,
) -> tuple[float, bool]:
    """Mean similarity of the resolved roles and whether a human must review them."""
    if not matches:
        return 0.0, True
    confidence = fmean(m.similarity for m in matches)
    needs_review = confidence < review_confidence or any(m.is_new for m in matches)
    return round(confidence, 4), needs_review
