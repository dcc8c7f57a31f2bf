import enum
import uuid

from sqlalchemy import JSON, BigInteger, Enum as SAEnum, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from pickup_intake.models.base import Base, TimestampMixin


class DocumentStatus(str, enum.Enum):
    PENDING = "pending"
    EXTRACTED = "extracted"
    FAILED = "failed"


class Document(Base, TimestampMixin):
    """One uploaded pickup order PDF and the outcome of its extraction."""

    __tablename__ = "documents"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    filename: Mapped[str] = mapped_column(String(512), nullable=False)
    original_filename: Mapped[str] = mapped_column(String(512), nullable=False)
    file_path: Mapped[str] = mapped_column(String(1024), nullable=False)
    mime_type: Mapped[str] = mapped_column(String(100), nullable=False)
    file_size: Mapped[int] = mapped_column(BigInteger, nullable=False)
    status: Mapped[DocumentStatus] = mapped_column(
        SAEnum(
            DocumentStatus,
            name="document_status",
            values_callable=lambda e: [member.value for member in e],
        ),
        default=DocumentStatus.PENDING,
        nullable=False,
    )
    page_count: Mapped[int | None] = mapped_column(Integer, nullable=True)

    # Extraction outcome
    order_number: Mapped[str | None] = mapped_column(String(32), nullable=True, index=True)
    extraction_data: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    confidence: Mapped[int | None] = mapped_column(Integer, nullable=True)
    quality_score: Mapped[int | None] = mapped_column(Integer, nullable=True)
    needs_review: Mapped[list | None] = mapped_column(JSON, nullable=True)
    guessed_fields: Mapped[list | None] = mapped_column(JSON, nullable=True)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
