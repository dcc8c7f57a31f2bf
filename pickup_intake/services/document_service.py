import logging
import os
import uuid

import aiofiles
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.concurrency import run_in_threadpool

from pickup_intake.config import Settings
from pickup_intake.document_extractor.display import format_for_display, review_hints
from pickup_intake.document_extractor.pipeline import ExtractionPipeline, ExtractionResult
from pickup_intake.exceptions import InvalidUploadError, UnreadableDocumentError
from pickup_intake.models.document import Document, DocumentStatus
from pickup_intake.schemas.extraction import ExtractedDocumentData, ExtractionResponse

logger = logging.getLogger("intake.documents")


def get_file_extension(filename: str) -> str:
    """Extract the file extension without the dot, lowercased."""
    _, ext = os.path.splitext(filename)
    return ext.lstrip(".").lower()


def get_mime_type(filename: str) -> str:
    """Map file extension to MIME type."""
    mime_map = {"pdf": "application/pdf"}
    return mime_map.get(get_file_extension(filename), "application/octet-stream")


def validate_upload(
    filename: str | None,
    content_type: str | None,
    size: int,
    settings: Settings,
) -> None:
    """Reject uploads before any decoding happens.

    Raises:
        InvalidUploadError: wrong extension or MIME type (400), too large (413).
    """
    if not filename:
        raise InvalidUploadError("No filename provided")

    file_ext = get_file_extension(filename)
    if file_ext not in settings.allowed_file_types:
        raise InvalidUploadError(
            f"File type '{file_ext}' not allowed. Allowed: {', '.join(sorted(settings.allowed_file_types))}"
        )

    mime_type = (content_type or get_mime_type(filename)).split(";")[0].strip().lower()
    if mime_type not in settings.allowed_mime_types:
        raise InvalidUploadError(f"MIME type '{mime_type}' not allowed")

    if size == 0:
        raise InvalidUploadError("Uploaded file is empty")
    if size > settings.max_upload_size_mb * 1024 * 1024:
        raise InvalidUploadError(
            f"File too large. Maximum size: {settings.max_upload_size_mb}MB",
            status_code=413,
        )


async def save_upload(content: bytes, filename: str, settings: Settings) -> tuple[str, str]:
    """Save uploaded bytes to disk.

    Returns (stored_filename, full_file_path).
    """
    ext = os.path.splitext(filename)[1]
    stored_filename = f"{uuid.uuid4()}{ext}"
    file_path = os.path.join(settings.upload_dir, stored_filename)

    os.makedirs(settings.upload_dir, exist_ok=True)

    async with aiofiles.open(file_path, "wb") as f:
        await f.write(content)

    return stored_filename, file_path


async def extract_and_store(
    db: AsyncSession,
    pipeline: ExtractionPipeline,
    *,
    content: bytes,
    filename: str,
    settings: Settings,
) -> tuple[Document, ExtractionResult]:
    """Save the upload, run the extraction and record the run in ``documents``.

    A document that cannot be decoded is kept with status ``failed`` and the
    ``UnreadableDocumentError`` is re-raised for the caller to report.
    """
    stored_filename, file_path = await save_upload(content, filename, settings)

    document = Document(
        id=uuid.uuid4(),
        filename=stored_filename,
        original_filename=filename,
        file_path=file_path,
        mime_type=get_mime_type(filename),
        file_size=len(content),
        status=DocumentStatus.PENDING,
    )
    db.add(document)
    await db.flush()

    try:
        result = await run_in_threadpool(pipeline.run, content)
    except UnreadableDocumentError as e:
        logger.warning("Document %s (%s) unreadable: %s", document.id, filename, e)
        document.status = DocumentStatus.FAILED
        document.error_message = str(e)
        await db.commit()
        raise

    document.status = DocumentStatus.EXTRACTED
    document.page_count = result.page_count
    document.order_number = result.data.order_number or None
    document.extraction_data = result.data.model_dump(mode="json")
    document.confidence = result.report.confidence
    document.quality_score = result.report.quality_score
    document.needs_review = list(result.report.needs_review)
    document.guessed_fields = list(result.report.guessed_fields)
    await db.flush()

    return document, result


async def get_document(db: AsyncSession, document_id: uuid.UUID) -> Document | None:
    result = await db.execute(select(Document).where(Document.id == document_id))
    return result.scalar_one_or_none()


def build_extraction_response(document: Document, settings: Settings) -> ExtractionResponse:
    """Rebuild the extraction response from a stored run."""
    data = ExtractedDocumentData.model_validate(document.extraction_data or {})
    needs_review = list(document.needs_review or [])
    quality_score = document.quality_score or 0
    return ExtractionResponse(
        document_id=document.id,
        original_filename=document.original_filename,
        page_count=document.page_count or 0,
        extracted_data=data,
        confidence=document.confidence or 0,
        quality_score=quality_score,
        needs_review=needs_review,
        requires_review=quality_score < settings.quality_review_threshold or bool(needs_review),
        guessed_fields=list(document.guessed_fields or []),
        review_hints=review_hints(data),
        display=format_for_display(data),
    )
