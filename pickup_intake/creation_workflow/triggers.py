"""Pure decision functions for pickup order creation.

No registry or DB dependencies, easy to unit test.
"""

from collections.abc import Sequence

from pickup_intake.schemas.extraction import ExtractedDocumentData, PickupOrderCorrections
from pickup_intake.schemas.matching import MatchingResults
from pickup_intake.schemas.registry import BasinRecord

MANDATORY_FIELDS = {
    "order_number": "Order number is required",
    "sender_name": "Sender name is required",
    "recipient_name": "Recipient name is required",
}


def apply_corrections(
    data: ExtractedDocumentData,
    corrections: PickupOrderCorrections | None,
) -> ExtractedDocumentData:
    """Overlay user corrections; only values the user actually set win."""
    if corrections is None:
        return data
    overrides = {
        name: value
        for name, value in corrections.model_dump(exclude_unset=True).items()
        if value is not None
    }
    return data.model_copy(update=overrides)


def validate_mandatory_fields(data: ExtractedDocumentData) -> list[str]:
    """One error per blank mandatory field, in a stable order."""
    errors = []
    for name, message in MANDATORY_FIELDS.items():
        if not (getattr(data, name) or "").strip():
            errors.append(message)
    return errors


def should_hold_for_review(matching: MatchingResults, force_create: bool) -> tuple[bool, str]:
    """Determine whether creation must stop for a human decision.

    Returns (hold, reason).
    """
    if force_create:
        return False, "Creation forced by operator"

    if not matching.registry_available:
        return True, "Registry unavailable, matches could not be verified"

    if matching.needs_review:
        new_roles = [m.role.value for m in matching.resolved_roles() if m.is_new]
        if new_roles:
            return True, f"New entities would be created: {', '.join(new_roles)}"
        return True, f"Low matching confidence ({matching.confidence:.0%})"

    return False, "Matches confirmed"


def select_basin(
    matching: MatchingResults,
    basin_code: str,
    basins: Sequence[BasinRecord],
) -> tuple[BasinRecord | None, bool]:
    """Pick the basin the order is filed under.

    Returns (basin, is_fallback). The matched basin wins, then an exact code
    lookup, then the first basin on record. ``(None, False)`` only when there
    are no basins at all.
    """
    if matching.basin.matched_id:
        for basin in basins:
            if basin.id == matching.basin.matched_id:
                return basin, False

    code = basin_code.strip()
    if code:
        for basin in basins:
            if basin.code == code:
                return basin, False

    if basins:
        return basins[0], True
    return None, False


def creation_note(confidence: float) -> str:
    return f"Created from PDF extraction. Matching confidence: {round(confidence * 100)}%"
