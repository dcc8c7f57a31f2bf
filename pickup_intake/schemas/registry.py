"""Records exchanged with the registry API (camelCase on the wire)."""

from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class RegistryModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        coerce_numbers_to_str=True,
    )


class LogisticEntityCandidate(RegistryModel):
    id: str
    name: str
    city: str | None = None
    similarity: float | None = None
    is_exact_match: bool = False


class ClientRecord(RegistryModel):
    id: str
    name: str


class BasinRecord(RegistryModel):
    id: str
    code: str
    description: str | None = None
    flow_type: str | None = None
    client_id: str | None = None


class LogisticEntityCreate(RegistryModel):
    name: str
    entity_type: str
    address: str | None = None
    city: str | None = None
    phone: str | None = None
    email: str | None = None
    notes: str | None = None


class CreatedEntity(RegistryModel):
    id: str
    name: str | None = None


class PickupOrderPayload(RegistryModel):
    order_number: str
    issue_date: str
    scheduled_date: str | None = None
    sender_id: str
    recipient_id: str
    transporter_id: str | None = None
    basin_id: str
    flow_type: str
    distance_km: float | None = None
    status: str
    notes: str | None = None

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)
