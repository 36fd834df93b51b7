"""FastAPI application entry point."""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.routes import onboarding, sandbox
from app.core.config import get_settings
from app.core.database import close_db, get_db_session, init_db
from app.core.errors import (
    InitializationError,
    NotFoundError,
    OnboardingError,
    PersistenceError,
    StateError,
)
from app.core.logging import configure_logging, get_logger
from app.services.onboarding_repository import seed_paths
from app.services.sandbox_service import TutorialEngine
from app.services.seed_data import DEFAULT_PATHS

settings = get_settings()
logger = get_logger(__name__)

ERROR_STATUS = {
    NotFoundError: status.HTTP_404_NOT_FOUND,
    StateError: status.HTTP_409_CONFLICT,
    InitializationError: 422,
    PersistenceError: status.HTTP_503_SERVICE_UNAVAILABLE,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    # Startup
    configure_logging(debug=settings.DEBUG)
    logger.info(
        "Starting Waypoint",
        version=settings.APP_VERSION,
        env=settings.ENV,
        debug=settings.DEBUG,
    )
    await init_db()
    if settings.SEED_ON_STARTUP:
        async with get_db_session() as db:
            await seed_paths(db, DEFAULT_PATHS)
    yield
    # Shutdown
    logger.info("Shutting down Waypoint")
    await close_db()


# Create FastAPI app
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Guided onboarding paths, milestones and sandbox tutorials",
    docs_url="/docs" if settings.is_development else None,
    redoc_url="/redoc" if settings.is_development else None,
    lifespan=lifespan,
)
app.state.tutorial_engine = TutorialEngine(settings=settings)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if settings.is_development else [],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(OnboardingError)
async def onboarding_error_handler(request: Request, exc: OnboardingError) -> JSONResponse:
    """Map domain errors onto HTTP status codes."""
    code = next(
        (c for error_type, c in ERROR_STATUS.items() if isinstance(exc, error_type)),
        status.HTTP_400_BAD_REQUEST,
    )
    if code >= 500:
        logger.error("Request failed", path=request.url.path, error=str(exc))
    return JSONResponse(status_code=code, content={"detail": str(exc)})


# Include routers
app.include_router(onboarding.router, prefix="/api")
app.include_router(sandbox.router, prefix="/api")


@app.get("/health")
async def health_check() -> dict:
    """Health check endpoint."""
    return {
        "status": "healthy",
        "version": settings.APP_VERSION,
        "env": settings.ENV,
    }


@app.get("/")
async def root() -> dict:
    """Root endpoint."""
    return {
        "name": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "docs": "/docs",
    }
