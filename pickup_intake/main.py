import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from pickup_intake.api.router import api_router
from pickup_intake.config import settings
from pickup_intake.database import engine
from pickup_intake.middleware.logging import RequestLoggingMiddleware

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)-8s %(name)s - %(message)s",
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(
        "Starting pickup intake (env=%s, registry=%s)",
        settings.environment,
        settings.registry_base_url,
    )
    yield
    await engine.dispose()
    logger.info("Shutting down pickup intake")


app = FastAPI(
    title="Pickup Intake",
    description="Pickup order PDF extraction and registry entity resolution",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(RequestLoggingMiddleware)

app.include_router(api_router, prefix="/api")
