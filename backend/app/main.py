"""
Roast My Resume — FastAPI Application

This is the entry point for the backend. It:
1. Configures logging
2. Creates the FastAPI app instance
3. Configures CORS (so the web frontend can talk to us)
4. Registers route handlers
5. Sets up startup/shutdown lifecycle events

Run with:
    uvicorn app.main:app --reload --port 8000
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.config import get_settings
from app.database import init_db
from app.routers import billing, roasts, users

# IMPORTANT: Import models so SQLAlchemy registers them with Base.metadata
# before init_db() calls create_all(). Without this, no tables get created.
import app.models  # noqa: F401

settings = get_settings()

logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

SERVICE_NAME = "Roast My Resume"
VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown logic.

    Code before 'yield' runs on startup.
    Code after 'yield' runs on shutdown.
    """
    logger.info("Starting %s API...", SERVICE_NAME)
    await init_db()
    logger.info("Database tables created/verified")

    yield

    logger.info("Shutting down...")


app = FastAPI(
    title="Roast My Resume API",
    description="Brutally honest AI resume feedback, with downloadable PDF reports",
    version=VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(roasts.router)
app.include_router(users.router)
app.include_router(billing.router)
app.include_router(billing.webhook_router)


# --- Health Check Endpoints ---

@app.get("/", tags=["health"])
async def root():
    """Root endpoint — confirms the API is alive."""
    return {
        "service": SERVICE_NAME,
        "status": "running",
        "version": VERSION,
    }


@app.get("/health", tags=["health"])
async def health_check():
    """Detailed health check — verifies database connectivity."""
    from sqlalchemy import text

    from app.database import AsyncSessionLocal

    try:
        async with AsyncSessionLocal() as session:
            await session.execute(text("SELECT 1"))
        db_status = "connected"
    except Exception as e:
        logger.warning("Health check database error: %s", e)
        db_status = f"error: {str(e)}"

    return {
        "status": "healthy" if db_status == "connected" else "degraded",
        "database": db_status,
        "environment": settings.APP_ENV,
    }
