"""Pydantic schemas for entity resolution and pickup order creation."""

import enum
from typing import Any

from pydantic import BaseModel, Field, model_validator

from pickup_intake.schemas.extraction import (
    ExtractedDocumentData,
    ExtractionResponse,
    PickupOrderCorrections,
)


class EntityRole(str, enum.Enum):
    SENDER = "sender"
    RECIPIENT = "recipient"
    TRANSPORTER = "transporter"
    CLIENT = "client"
    BASIN = "basin"

    @property
    def registry_type(self) -> str:
        """Entity type used by the logistics registry (SENDER, RECIPIENT, ...)."""
        return self.value.upper()


LOGISTIC_ROLES = (EntityRole.SENDER, EntityRole.RECIPIENT, EntityRole.TRANSPORTER)


class MatchResult(BaseModel):
    role: EntityRole
    extracted_value: str = ""
    matched_id: str | None = None
    matched_name: str | None = None
    similarity: float = Field(0.0, ge=0.0, le=1.0)
    is_new: bool = True
    is_exact_match: bool = False

    @model_validator(mode="after")
    def _check_invariants(self) -> "MatchResult":
        if self.is_new and self.matched_id is not None:
            raise ValueError("a new entity cannot carry a matched id")
        if self.is_exact_match and self.similarity != 1.0:
            raise ValueError("an exact match must have similarity 1.0")
        return self

    @classmethod
    def new(cls, role: EntityRole, extracted_value: str | None) -> "MatchResult":
        return cls(role=role, extracted_value=extracted_value or "", similarity=0.0, is_new=True)


class EntitySuggestion(BaseModel):
    id: str
    name: str
    similarity: float
    code: str | None = None
    description: str | None = None
    city: str | None = None


class MatchingResults(BaseModel):
    sender: MatchResult
    recipient: MatchResult
    client: MatchResult
    basin: MatchResult
    transporter: MatchResult | None = None
    confidence: float = Field(0.0, ge=0.0, le=1.0)
    needs_review: bool = True
    suggestions: dict[EntityRole, list[EntitySuggestion]] = Field(default_factory=dict)
    registry_available: bool = True

    def resolved_roles(self) -> list[MatchResult]:
        roles = [self.sender, self.recipient, self.client, self.basin]
        if self.transporter is not None:
            roles.append(self.transporter)
        return roles

    @classmethod
    def placeholder(
        cls,
        data: ExtractedDocumentData,
        *,
        registry_available: bool = True,
    ) -> "MatchingResults":
        """All-new, zero-confidence results, used when matching did not run or failed."""
        return cls(
            sender=MatchResult.new(EntityRole.SENDER, data.sender_name),
            recipient=MatchResult.new(EntityRole.RECIPIENT, data.recipient_name),
            client=MatchResult.new(EntityRole.CLIENT, data.sender_name),
            basin=MatchResult.new(EntityRole.BASIN, data.basin_code),
            transporter=(
                MatchResult.new(EntityRole.TRANSPORTER, data.transport_type)
                if data.transport_type
                else None
            ),
            confidence=0.0,
            needs_review=True,
            registry_available=registry_available,
        )


class CreationState(str, enum.Enum):
    VALIDATING = "validating"
    REJECTED = "rejected"
    RESOLVING = "resolving"
    HELD_FOR_REVIEW = "held_for_review"
    PROVISIONING = "provisioning"
    CREATING = "creating"
    DONE = "done"
    FAILED = "failed"


class CreationResult(BaseModel):
    success: bool
    state: CreationState
    pickup_order: dict[str, Any] | None = None
    matching_results: MatchingResults
    message: str
    errors: list[str] = Field(default_factory=list)


class CreationRequest(BaseModel):
    extracted_data: ExtractedDocumentData
    corrections: PickupOrderCorrections | None = None
    force_create: bool = False


class LogisticSuggestionsRequest(BaseModel):
    sender_name: str | None = None
    recipient_name: str | None = None
    transporter_name: str | None = None


class ProcessResponse(BaseModel):
    """Extraction followed by a creation attempt, for one uploaded document."""

    extraction: ExtractionResponse
    creation: CreationResult
