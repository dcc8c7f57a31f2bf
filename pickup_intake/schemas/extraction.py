import uuid
from datetime import date

from pydantic import BaseModel, Field


class ExtractedDocumentData(BaseModel):
    """Structured fields recovered from one pickup order document."""

    order_number: str = Field("", description="Pickup order number (numero buono)")
    issue_date: date = Field(default_factory=date.today, description="Issue date, today when not found")
    loading_date: date | None = Field(None, description="Start of the loading window")
    unloading_date: date | None = Field(None, description="End of the loading window")
    availability_date: date | None = Field(None, description="Date the material is available")
    scheduled_date: date | None = Field(None, description="Planned pickup date")

    sender_name: str = Field("", description="Sender (mittente) company name")
    sender_address: str | None = None
    sender_city: str | None = None
    sender_phone: str | None = None
    sender_email: str | None = None

    recipient_name: str = Field("", description="Recipient (destinatario) company name")
    recipient_address: str | None = None
    recipient_city: str | None = None
    recipient_phone: str | None = None
    recipient_email: str | None = None

    basin_code: str = Field("", description="Seven-digit collection basin code")
    basin_description: str = Field("", description="Basin name, e.g. COMUNE DI SIRACUSA")
    flow_type: str = Field("", pattern=r"^[ABCD]?$", description="Regulatory flow category")
    distance_km: float | None = Field(None, gt=0, description="Route distance in kilometres")
    transport_type: str | None = Field(None, description="Transporter or transport type token")

    confidence: int = Field(0, ge=0, le=100, description="Extraction confidence, 0-100")
    raw_text: str = Field("", description="Normalized document text, kept for audit")


class PickupOrderCorrections(BaseModel):
    """User edits applied over the extracted data; unset fields keep their value."""

    order_number: str | None = None
    issue_date: date | None = None
    loading_date: date | None = None
    unloading_date: date | None = None
    availability_date: date | None = None
    scheduled_date: date | None = None
    sender_name: str | None = None
    sender_address: str | None = None
    sender_city: str | None = None
    sender_phone: str | None = None
    sender_email: str | None = None
    recipient_name: str | None = None
    recipient_address: str | None = None
    recipient_city: str | None = None
    recipient_phone: str | None = None
    recipient_email: str | None = None
    basin_code: str | None = None
    basin_description: str | None = None
    flow_type: str | None = Field(None, pattern=r"^[ABCD]$")
    distance_km: float | None = Field(None, gt=0)
    transport_type: str | None = None


class ExtractionResponse(BaseModel):
    document_id: uuid.UUID | None = None
    original_filename: str | None = None
    page_count: int = 0
    extracted_data: ExtractedDocumentData
    confidence: int
    quality_score: int
    needs_review: list[str] = Field(default_factory=list)
    requires_review: bool = False
    guessed_fields: list[str] = Field(default_factory=list)
    review_hints: list[str] = Field(default_factory=list)
    display: dict[str, str] = Field(default_factory=dict)
