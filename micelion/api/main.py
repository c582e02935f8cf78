"""FastAPI application entry point."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from micelion.agent.planner import close_pipeline
from micelion.config import get_settings
from micelion.database.session import init_db, close_db
from micelion.api.routes import router
from micelion.exceptions import PlanGenerationError
from micelion.schemas import ErrorResponse


# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    # Startup
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")

    # Initialize database
    if settings.environment == "development":
        await init_db()
        logger.info("Database initialized")

    yield

    # Shutdown
    logger.info("Shutting down...")
    await close_pipeline()
    await close_db()


# Create FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Micelion API - learning plans generated from a single idea",
    lifespan=lifespan,
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(PlanGenerationError)
async def plan_generation_error_handler(request: Request, exc: PlanGenerationError) -> JSONResponse:
    """Report generation failures without leaking raw model output."""
    logger.warning(f"Plan generation failed on {request.url.path}: {exc!r} (cause: {exc.cause!r})")
    body = ErrorResponse(kind=exc.kind.value, message=exc.message)
    return JSONResponse(status_code=502, content=body.model_dump())


# Include routes
app.include_router(router, prefix="/api")


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "docs": "/docs",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "micelion.api.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug,
    )
