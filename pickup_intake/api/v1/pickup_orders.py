"""
Pickup order endpoints.

Flow:
1. Upload a PDF → validate → save → extract → store the run in ``documents``
2. Optionally correct the extracted data on the client
3. Create the order: resolve entities, hold for review or provision + submit
"""

import uuid

from fastapi import APIRouter, Depends, HTTPException, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from pickup_intake.config import settings
from pickup_intake.creation_workflow.service import CreationOrchestrator
from pickup_intake.dependencies import (
    get_creation_orchestrator,
    get_db,
    get_entity_resolver,
    get_extraction_pipeline,
)
from pickup_intake.document_extractor.pipeline import ExtractionPipeline
from pickup_intake.exceptions import InvalidUploadError, UnreadableDocumentError
from pickup_intake.matching_engine.resolver import EntityResolver
from pickup_intake.schemas.extraction import ExtractionResponse
from pickup_intake.schemas.matching import (
    CreationRequest,
    CreationResult,
    LogisticSuggestionsRequest,
    MatchingResults,
    ProcessResponse,
)
from pickup_intake.services.document_service import (
    build_extraction_response,
    extract_and_store,
    get_document,
    validate_upload,
)

router = APIRouter()


async def _extract_upload(
    file: UploadFile,
    db: AsyncSession,
    pipeline: ExtractionPipeline,
) -> ExtractionResponse:
    content = await file.read()
    try:
        validate_upload(file.filename, file.content_type, len(content), settings)
    except InvalidUploadError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))

    try:
        document, _ = await extract_and_store(
            db,
            pipeline,
            content=content,
            filename=file.filename,
            settings=settings,
        )
    except UnreadableDocumentError as e:
        raise HTTPException(status_code=422, detail=str(e))

    return build_extraction_response(document, settings)


@router.post("/extract", response_model=ExtractionResponse, status_code=201)
async def extract_pickup_order(
    file: UploadFile,
    db: AsyncSession = Depends(get_db),
    pipeline: ExtractionPipeline = Depends(get_extraction_pipeline),
) -> ExtractionResponse:
    """Extract the pickup order fields from an uploaded PDF."""
    return await _extract_upload(file, db, pipeline)


@router.get("/extractions/{document_id}", response_model=ExtractionResponse)
async def get_extraction(
    document_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
) -> ExtractionResponse:
    document = await get_document(db, document_id)
    if document is None:
        raise HTTPException(status_code=404, detail="Document not found")
    if document.extraction_data is None:
        raise HTTPException(
            status_code=404,
            detail=document.error_message or "No extraction found for this document",
        )
    return build_extraction_response(document, settings)


@router.post("/create", response_model=CreationResult)
async def create_pickup_order(
    request: CreationRequest,
    orchestrator: CreationOrchestrator = Depends(get_creation_orchestrator),
) -> CreationResult:
    """Create a pickup order from (corrected) extracted data.

    Always answers 200 with a ``CreationResult``; ``success`` and ``state``
    tell whether the order was created, held for review or rejected.
    """
    return await orchestrator.create(
        request.extracted_data,
        request.corrections,
        force_create=request.force_create,
    )


@router.post("/process", response_model=ProcessResponse)
async def process_pickup_order(
    file: UploadFile,
    db: AsyncSession = Depends(get_db),
    pipeline: ExtractionPipeline = Depends(get_extraction_pipeline),
    orchestrator: CreationOrchestrator = Depends(get_creation_orchestrator),
) -> ProcessResponse:
    """Extract then create in one step; never forces past the review gate."""
    extraction = await _extract_upload(file, db, pipeline)
    creation = await orchestrator.create(extraction.extracted_data)
    return ProcessResponse(extraction=extraction, creation=creation)


@router.post("/logistics/suggestions", response_model=MatchingResults)
async def logistic_suggestions(
    request: LogisticSuggestionsRequest,
    resolver: EntityResolver = Depends(get_entity_resolver),
) -> MatchingResults:
    """Match operator-typed party names against the registry."""
    return await resolver.suggest_logistics(
        sender_name=request.sender_name,
        recipient_name=request.recipient_name,
        transporter_name=request.transporter_name,
    )
