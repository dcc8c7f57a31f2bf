from collections.abc import AsyncGenerator

from fastapi import Depends

from pickup_intake.config import settings
from pickup_intake.creation_workflow.service import CreationOrchestrator
from pickup_intake.database import get_db
from pickup_intake.document_extractor.pipeline import ExtractionPipeline
from pickup_intake.matching_engine.resolver import EntityResolver
from pickup_intake.registry.client import Registry, RegistryClient

# Re-export get_db for use in Depends()
get_db = get_db


async def get_registry() -> AsyncGenerator[Registry, None]:
    async with RegistryClient.from_settings(settings) as registry:
        yield registry


def get_extraction_pipeline() -> ExtractionPipeline:
    return ExtractionPipeline(quality_threshold=settings.quality_review_threshold)


def get_entity_resolver(registry: Registry = Depends(get_registry)) -> EntityResolver:
    return EntityResolver(registry)


def get_creation_orchestrator(registry: Registry = Depends(get_registry)) -> CreationOrchestrator:
    return CreationOrchestrator(registry)
