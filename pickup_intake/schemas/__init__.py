from pickup_intake.schemas.extraction import (
    ExtractedDocumentData,
    ExtractionResponse,
    PickupOrderCorrections,
)
from pickup_intake.schemas.matching import (
    CreationRequest,
    CreationResult,
    CreationState,
    EntityRole,
    EntitySuggestion,
    LogisticSuggestionsRequest,
    MatchingResults,
    MatchResult,
    ProcessResponse,
)

__all__ = [
    "ExtractedDocumentData",
    "ExtractionResponse",
    "PickupOrderCorrections",
    "CreationRequest",
    "CreationResult",
    "CreationState",
    "EntityRole",
    "EntitySuggestion",
    "LogisticSuggestionsRequest",
    "MatchingResults",
    "MatchResult",
    "ProcessResponse",
]
