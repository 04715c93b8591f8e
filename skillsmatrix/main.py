"""
Main FastAPI application for the Skills Matrix backend.
Handles CORS, request logging middleware, lifespan events, and router registration.
"""
import logging
import os
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from skillsmatrix.config import settings
from skillsmatrix.database import close_db, init_db
from skillsmatrix.routers import health, messages, pipeline, reports

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Startup / shutdown helpers
# ---------------------------------------------------------------------------

async def _check_database() -> bool:
    """Initialise DB tables and verify the connection.  Returns True on success."""
    try:
        await init_db()
        logger.info("✓ Database connection OK")
        return True
    except Exception as exc:
        logger.error("✗ Database connection failed: %s", exc)
        raise


def _check_llm_config() -> bool:
    """
    Verify the completion endpoint is configured.  No request is made:
    every call costs tokens.  Never raises; warnings are logged instead.
    """
    if not settings.LLM_API_KEY:
        logger.warning(
            "⚠ LLM_API_KEY is not set, extraction runs will fail until it is configured"
        )
        return False
    logger.info("✓ LLM endpoint: %s (model %s)", settings.LLM_API_URL, settings.LLM_MODEL)
    return True


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown event handler."""
    logger.info("=" * 60)
    logger.info("  Starting Skills Matrix backend …")
    logger.info("=" * 60)

    # 1. Database (required; raises on failure)
    await _check_database()

    # 2. LLM configuration (optional; logs warnings but continues)
    _check_llm_config()

    # 3. Document directory
    if os.path.isdir(settings.DOCUMENTS_DIR):
        logger.info("✓ Document directory: %s", os.path.abspath(settings.DOCUMENTS_DIR))
    else:
        logger.warning("⚠ Document directory not found: %s", settings.DOCUMENTS_DIR)

    logger.info("=" * 60)
    logger.info("  Skills Matrix backend ready on http://%s:%d", settings.HOST, settings.PORT)
    logger.info("  Swagger UI : http://%s:%d/docs", settings.HOST, settings.PORT)
    logger.info("  Health     : http://%s:%d/api/health", settings.HOST, settings.PORT)
    logger.info("=" * 60)

    yield  # ← server is running

    logger.info("Shutting down Skills Matrix backend …")
    await close_db()
    logger.info("✓ Shutdown complete.")


# ---------------------------------------------------------------------------
# Application
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Skills Matrix API",
    description=(
        "**Skills Matrix**: content pipeline for paramedic skills training.\n\n"
        "Extract procedure steps and quiz questions from skill documents with "
        "an LLM, report on coverage and quality, and exchange messages between "
        "students and lecturers.\n\n"
        "Key endpoints:\n"
        "- `POST /api/pipeline/extract-steps`: fill skill steps from documents\n"
        "- `POST /api/pipeline/generate-questions`: generate quiz questions\n"
        "- `GET  /api/reports/progress`: coverage report\n"
        "- `GET  /api/reports/quality`: quality scores\n"
        "- `GET  /api/messages`: conversations\n"
    ),
    version="0.1.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)


# ---------------------------------------------------------------------------
# CORS
# ---------------------------------------------------------------------------

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_allowed_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------------------------------------------------------------------------
# Request / response logging middleware
# ---------------------------------------------------------------------------

@app.middleware("http")
async def log_requests(request: Request, call_next):
    """
    Log every request with method, path, status code, and elapsed time.
    Attaches an ``X-Process-Time`` header (milliseconds) to every response.
    """
    t0 = time.monotonic()
    response = await call_next(request)
    elapsed_ms = round((time.monotonic() - t0) * 1000, 2)

    # Skip noisy health-check polling from the frontend
    if request.url.path not in ("/api/health", "/api/health/", "/"):
        logger.info(
            "%s %s → %d  (%.2f ms)",
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
        )

    response.headers["X-Process-Time"] = f"{elapsed_ms}ms"
    return response


# ---------------------------------------------------------------------------
# Global exception handler
# ---------------------------------------------------------------------------

@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Return a structured JSON error for any unhandled exception."""
    logger.error(
        "Unhandled exception on %s %s: %s",
        request.method,
        request.url.path,
        exc,
        exc_info=True,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "detail": "Internal server error",
            "error": str(exc),
            "path": str(request.url.path),
            "timestamp": datetime.now(timezone.utc).isoformat(),
        },
    )


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------

app.include_router(health.router,    prefix="/api/health",   tags=["Health"])
app.include_router(messages.router,  prefix="/api/messages", tags=["Messages"])
app.include_router(reports.router,   prefix="/api/reports",  tags=["Reports"])
app.include_router(pipeline.router,  prefix="/api/pipeline", tags=["Pipeline"])


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------

@app.get("/", tags=["Root"], include_in_schema=False)
async def root():
    """API root: returns basic service info."""
    return {
        "name": "Skills Matrix API",
        "version": "0.1.0",
        "description": "Paramedic skills content pipeline",
        "docs": "/docs",
        "health": "/api/health",
        "endpoints": {
            "messages": "/api/messages",
            "reports": "/api/reports",
            "pipeline": "/api/pipeline",
        },
    }


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "skillsmatrix.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=True,
        log_level="info",
    )
