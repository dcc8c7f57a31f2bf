from pickup_intake.models.base import Base, TimestampMixin
from pickup_intake.models.document import Document, DocumentStatus

__all__ = [
    "Base",
    "TimestampMixin",
    "Document",
    "DocumentStatus",
]
