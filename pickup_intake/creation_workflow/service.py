"""CreationOrchestrator: turns extracted (and corrected) data into a pickup order.

State machine per attempt:
  VALIDATING → REJECTED
  VALIDATING → RESOLVING → HELD_FOR_REVIEW
  RESOLVING → PROVISIONING → CREATING → DONE
  any step → FAILED

The orchestrator always returns a ``CreationResult``; nothing raises past it.
Entities provisioned before a later failure are not rolled back.
"""

import asyncio
import logging
from dataclasses import dataclass

from pickup_intake.config import settings
from pickup_intake.creation_workflow.triggers import (
    apply_corrections,
    creation_note,
    select_basin,
    should_hold_for_review,
    validate_mandatory_fields,
)
from pickup_intake.exceptions import ConfigurationError, PickupIntakeError, RegistryError
from pickup_intake.matching_engine.resolver import EntityResolver
from pickup_intake.registry.client import Registry
from pickup_intake.schemas.extraction import ExtractedDocumentData, PickupOrderCorrections
from pickup_intake.schemas.matching import (
    LOGISTIC_ROLES,
    CreationResult,
    CreationState,
    EntityRole,
    MatchingResults,
)
from pickup_intake.schemas.registry import BasinRecord, PickupOrderPayload

logger = logging.getLogger("intake.creation")

MANDATORY_ROLES = (EntityRole.SENDER, EntityRole.RECIPIENT)


@dataclass
class RoleProvisioning:
    """Outcome of creating one missing logistic entity."""

    role: EntityRole
    name: str
    entity_id: str | None = None
    error: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.entity_id is not None


class CreationOrchestrator:
    """Validates, resolves, provisions and submits one pickup order."""

    def __init__(
        self,
        registry: Registry,
        resolver: EntityResolver | None = None,
        *,
        initial_status: str = settings.initial_order_status,
        default_flow_type: str = settings.default_flow_type,
    ):
        self.registry = registry
        self.resolver = resolver or EntityResolver(registry)
        self.initial_status = initial_status
        self.default_flow_type = default_flow_type

    async def create(
        self,
        extracted: ExtractedDocumentData,
        corrections: PickupOrderCorrections | None = None,
        *,
        force_create: bool = False,
    ) -> CreationResult:
        data = apply_corrections(extracted, corrections)
        try:
            return await self._run(data, force_create)
        except Exception as e:
            logger.exception("Unexpected failure creating pickup order %s", data.order_number)
            return CreationResult(
                success=False,
                state=CreationState.FAILED,
                matching_results=MatchingResults.placeholder(data),
                message="Pickup order creation failed",
                errors=[str(e)],
            )

    async def _run(self, data: ExtractedDocumentData, force_create: bool) -> CreationResult:
        # ── VALIDATING ──
        errors = validate_mandatory_fields(data)
        if errors:
            logger.info("Rejected pickup order: %s", "; ".join(errors))
            return CreationResult(
                success=False,
                state=CreationState.REJECTED,
                matching_results=MatchingResults.placeholder(data),
                message="Mandatory fields are missing",
                errors=errors,
            )

        # ── RESOLVING ──
        matching = await self.resolver.resolve(data)
        hold, reason = should_hold_for_review(matching, force_create)
        if hold:
            logger.info("Pickup order %s held for review: %s", data.order_number, reason)
            return CreationResult(
                success=False,
                state=CreationState.HELD_FOR_REVIEW,
                matching_results=matching,
                message=f"Manual review required before creation: {reason}",
            )

        # ── PROVISIONING ──
        try:
            basin = await self._resolve_basin(data, matching)
        except (RegistryError, ConfigurationError) as e:
            return self._failed(matching, "Could not determine the basin", [str(e)])

        provisioned = await self._provision(data, matching)
        failures = [p for p in provisioned.values() if not p.succeeded]
        for p in failures:
            if p.role not in MANDATORY_ROLES:
                logger.warning("Continuing without %s %r: %s", p.role.value, p.name, p.error)
        failures = [p for p in failures if p.role in MANDATORY_ROLES]
        if failures:
            return self._failed(
                matching,
                "Could not create the missing registry entities",
                [f"{p.role.value}: {p.error}" for p in failures],
            )

        entity_ids = {
            role: provisioned[role].entity_id if role in provisioned else match.matched_id
            for role, match in (
                (EntityRole.SENDER, matching.sender),
                (EntityRole.RECIPIENT, matching.recipient),
                (EntityRole.TRANSPORTER, matching.transporter),
            )
            if match is not None
        }
        missing = [
            f"No registry id for {role.value}"
            for role in MANDATORY_ROLES
            if not entity_ids.get(role)
        ]
        if missing:
            return self._failed(matching, "Sender and recipient are required", missing)

        # ── CREATING ──
        payload = PickupOrderPayload(
            order_number=data.order_number.strip(),
            issue_date=data.issue_date.isoformat(),
            scheduled_date=data.scheduled_date.isoformat() if data.scheduled_date else None,
            sender_id=entity_ids[EntityRole.SENDER],
            recipient_id=entity_ids[EntityRole.RECIPIENT],
            transporter_id=entity_ids.get(EntityRole.TRANSPORTER),
            basin_id=basin.id,
            flow_type=data.flow_type or self.default_flow_type,
            distance_km=data.distance_km,
            status=self.initial_status,
            notes=creation_note(matching.confidence),
        )
        try:
            record = await self.registry.create_pickup_order(payload)
        except PickupIntakeError as e:
            return self._failed(matching, "The registry refused the pickup order", [str(e)])

        # ── DONE ──
        logger.info("Pickup order %s created", payload.order_number)
        return CreationResult(
            success=True,
            state=CreationState.DONE,
            pickup_order=record,
            matching_results=matching,
            message=f"Pickup order {payload.order_number} created",
        )

    async def _resolve_basin(self, data: ExtractedDocumentData, matching: MatchingResults) -> BasinRecord:
        basins = await self.registry.list_basins()
        basin, is_fallback = select_basin(matching, data.basin_code, basins)
        if basin is None:
            raise ConfigurationError("No basins configured in the registry")
        if is_fallback:
            logger.warning(
                "Basin %r not found, falling back to %s (%s)",
                data.basin_code,
                basin.code,
                basin.id,
            )
        return basin

    async def _provision(
        self,
        data: ExtractedDocumentData,
        matching: MatchingResults,
    ) -> dict[EntityRole, RoleProvisioning]:
        """Create every new logistic role concurrently; outcomes are independent."""
        pending = []
        for role in LOGISTIC_ROLES:
            match = getattr(matching, role.value)
            if match is None or not match.is_new:
                continue
            if not match.extracted_value.strip():
                logger.warning("Skipping creation of %s: no name extracted", role.value)
                continue
            pending.append(self._provision_role(role, match.extracted_value, _contact(data, role)))

        outcomes = await asyncio.gather(*pending)
        return {outcome.role: outcome for outcome in outcomes}

    async def _provision_role(
        self,
        role: EntityRole,
        name: str,
        contact: dict[str, str | None],
    ) -> RoleProvisioning:
        try:
            created = await self.registry.create_logistic_entity(role, name, contact)
        except RegistryError as e:
            logger.warning("Creating %s %r failed: %s", role.value, name, e)
            return RoleProvisioning(role=role, name=name, error=str(e))
        return RoleProvisioning(role=role, name=name, entity_id=created.id)

    def _failed(self, matching: MatchingResults, message: str, errors: list[str]) -> CreationResult:
        logger.error("%s: %s", message, "; ".join(errors))
        return CreationResult(
            success=False,
            state=CreationState.FAILED,
            matching_results=matching,
            message=message,
            errors=errors,
        )


def _contact(data: ExtractedDocumentData, role: EntityRole) -> dict[str, str | None]:
    if role not in (EntityRole.SENDER, EntityRole.RECIPIENT):
        return {}
    prefix = role.value
    return {
        key: getattr(data, f"{prefix}_{key}")
        for key in ("address", "city", "phone", "email")
    }
