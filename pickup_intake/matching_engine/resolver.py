"""
Entity resolution against the registry.

Looks up every role of an extracted pickup order concurrently, then selects
the best candidate per role with the pure functions in ``matchers``. A
registry outage degrades to an all-new result instead of raising.
"""

import asyncio
import logging
from typing import Any

from pickup_intake.config import settings
from pickup_intake.exceptions import RegistryError
from pickup_intake.matching_engine import matchers
from pickup_intake.registry.client import Registry
from pickup_intake.schemas.extraction import ExtractedDocumentData
from pickup_intake.schemas.matching import EntityRole, EntitySuggestion, MatchingResults, MatchResult

logger = logging.getLogger("intake.resolver")


async def _nothing() -> list[Any]:
    return []


class EntityResolver:
    """Matches extracted parties, client and basin to registry records."""

    def __init__(
        self,
        registry: Registry,
        *,
        entity_threshold: float = settings.entity_similarity_threshold,
        basin_threshold: float = settings.basin_similarity_threshold,
        suggestion_floor: float = settings.suggestion_floor,
        max_suggestions: int = settings.max_suggestions,
        review_confidence: float = settings.review_confidence_threshold,
    ):
        self.registry = registry
        self.entity_threshold = entity_threshold
        self.basin_threshold = basin_threshold
        self.suggestion_floor = suggestion_floor
        self.max_suggestions = max_suggestions
        self.review_confidence = review_confidence

    async def resolve(self, data: ExtractedDocumentData) -> MatchingResults:
        sender = data.sender_name.strip()
        recipient = data.recipient_name.strip()
        transporter = (data.transport_type or "").strip()
        basin_code = data.basin_code.strip()

        lookups = await asyncio.gather(
            self.registry.suggestions(EntityRole.SENDER, sender) if sender else _nothing(),
            self.registry.suggestions(EntityRole.RECIPIENT, recipient) if recipient else _nothing(),
            self.registry.suggestions(EntityRole.TRANSPORTER, transporter) if transporter else _nothing(),
            self.registry.list_clients() if sender else _nothing(),
            self.registry.list_basins() if basin_code else _nothing(),
            return_exceptions=True,
        )
        for outcome in lookups:
            if isinstance(outcome, RegistryError):
                logger.warning("Registry unavailable, matching degraded: %s", outcome)
                return MatchingResults.placeholder(data, registry_available=False)
            if isinstance(outcome, BaseException):
                raise outcome
        sender_rows, recipient_rows, transporter_rows, client_rows, basin_rows = lookups

        suggestions: dict[EntityRole, list[EntitySuggestion]] = {}

        def settle(
            role: EntityRole,
            value: str,
            scored: list[matchers.ScoredCandidate],
            threshold: float,
        ) -> MatchResult:
            if not value:
                return MatchResult.new(role, value)
            match = matchers.to_match(role, value, matchers.pick_best(scored), threshold)
            suggestions[role] = matchers.alternate_suggestions(
                scored,
                match.matched_id,
                floor=self.suggestion_floor,
                limit=self.max_suggestions,
            )
            return match

        sender_match = settle(
            EntityRole.SENDER, sender,
            matchers.score_entities(sender, sender_rows), self.entity_threshold,
        )
        recipient_match = settle(
            EntityRole.RECIPIENT, recipient,
            matchers.score_entities(recipient, recipient_rows), self.entity_threshold,
        )
        client_match = settle(
            EntityRole.CLIENT, sender,
            matchers.score_entities(sender, client_rows), self.entity_threshold,
        )
        basin_match = settle(
            EntityRole.BASIN, basin_code,
            matchers.score_basins(basin_code, data.basin_description.strip(), basin_rows),
            self.basin_threshold,
        )
        transporter_match = None
        if transporter:
            transporter_match = settle(
                EntityRole.TRANSPORTER, transporter,
                matchers.score_entities(transporter, transporter_rows), self.entity_threshold,
            )

        resolved = [sender_match, recipient_match, client_match, basin_match]
        if transporter_match is not None:
            resolved.append(transporter_match)
        confidence, needs_review = matchers.aggregate_matches(
            resolved, review_confidence=self.review_confidence
        )

        logger.info(
            "Matching done: confidence=%.2f review=%s new=%s",
            confidence,
            needs_review,
            ",".join(m.role.value for m in resolved if m.is_new) or "-",
        )

        return MatchingResults(
            sender=sender_match,
            recipient=recipient_match,
            client=client_match,
            basin=basin_match,
            transporter=transporter_match,
            confidence=confidence,
            needs_review=needs_review,
            suggestions=suggestions,
            registry_available=True,
        )

    async def suggest_logistics(
        self,
        sender_name: str | None = None,
        recipient_name: str | None = None,
        transporter_name: str | None = None,
    ) -> MatchingResults:
        """Resolve bare party names, as typed by an operator correcting a document."""
        data = ExtractedDocumentData(
            sender_name=sender_name or "",
            recipient_name=recipient_name or "",
            transport_type=transporter_name or None,
        )
        return await self.resolve(data)
