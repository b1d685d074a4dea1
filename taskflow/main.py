import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from taskflow import __version__
from taskflow.api import ai, tasks
from taskflow.core.config import settings
from taskflow.core.database import close_db, init_db
from taskflow.core.llm_config import get_llm_settings
from taskflow.core.logging import configure_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler"""
    # Startup
    configure_logging("DEBUG" if settings.debug else settings.log_level)
    llm_settings = get_llm_settings()
    logger.info(f"Starting {settings.project_name} API...")
    logger.info(f"LLM provider: {llm_settings.provider} ({llm_settings.model})")
    await init_db()
    yield
    # Shutdown
    logger.info(f"Shutting down {settings.project_name} API...")
    await close_db()


app = FastAPI(
    title=f"{settings.project_name} - Task Management API",
    description="Todo management with AI-assisted Eisenhower matrix categorization",
    version=__version__,
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(dict.fromkeys([settings.frontend_url, *settings.allowed_origins])),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API routers
app.include_router(tasks.router)
app.include_router(ai.router)


class HealthResponse(BaseModel):
    status: str
    llm_provider: str
    llm_model: str


@app.get("/health", response_model=HealthResponse)
async def health_check():
    """Report API status and the configured classifier model"""
    llm_settings = get_llm_settings()
    return HealthResponse(
        status="ok",
        llm_provider=llm_settings.provider,
        llm_model=llm_settings.model,
    )
