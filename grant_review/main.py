from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.exceptions import HTTPException, RequestValidationError
import structlog

from grant_review import __version__
from grant_review.config import get_settings
from grant_review.core.exceptions import (
    AssignmentInUseException,
    DuplicateEntityException,
    EntityNotFoundException,
    InvalidStateTransitionException,
    RepositoryException,
    ScoreValidationException,
)
from grant_review.logging_config import configure_logging

# IMPORT ROUTERS
from grant_review.routers.assessments import router as assessments_router
from grant_review.routers.assignments import router as assignments_router
from grant_review.routers.errors import (
    assignment_in_use_exception_handler,
    duplicate_exception_handler,
    http_exception_handler,
    not_found_exception_handler,
    repository_exception_handler,
    score_validation_exception_handler,
    state_transition_exception_handler,
    validation_exception_handler,
)
from grant_review.routers.health import router as health_router
from grant_review.routers.results import router as results_router

load_dotenv()

logger = structlog.get_logger(__name__)


# SWAGGER UI: tag display order
_OPENAPI_TAGS = [
    {"name": "Root"},
    {"name": "Health"},
    {"name": "Assignments"},
    {"name": "Assessments"},
    {"name": "Results"},
]

# FASTAPI APPLICATION CONFIGURATION
app = FastAPI(
    title="Grant Review Engine API",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    openapi_tags=_OPENAPI_TAGS,
)

# REGISTER EXCEPTION HANDLERS
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(EntityNotFoundException, not_found_exception_handler)
app.add_exception_handler(DuplicateEntityException, duplicate_exception_handler)
app.add_exception_handler(InvalidStateTransitionException, state_transition_exception_handler)
app.add_exception_handler(AssignmentInUseException, assignment_in_use_exception_handler)
app.add_exception_handler(ScoreValidationException, score_validation_exception_handler)
app.add_exception_handler(RepositoryException, repository_exception_handler)

# REGISTER ROUTERS (order matches _OPENAPI_TAGS / Swagger UI display order)
_API_PREFIX = get_settings().API_V1_PREFIX

app.include_router(health_router)                               # Health
app.include_router(assignments_router, prefix=_API_PREFIX)      # Assignments
app.include_router(assessments_router, prefix=_API_PREFIX)      # Assessments
app.include_router(results_router, prefix=_API_PREFIX)          # Results


# ROOT ENDPOINT
@app.get("/", tags=["Root"], summary="Root endpoint")
async def root():
    return {
        "service": "Grant Review Engine API",
        "version": __version__,
        "docs": {
            "swagger": "/docs",
            "redoc": "/redoc"
        },
        "status": "running"
    }


# STARTUP EVENT
@app.on_event("startup")
async def startup_event():
    settings = get_settings()
    configure_logging(settings)
    logger.info(
        "application_started",
        app=settings.APP_NAME,
        env=settings.APP_ENV,
        version=__version__,
        docs="/docs",
    )


# SHUTDOWN EVENT
@app.on_event("shutdown")
async def shutdown_event():
    logger.info("application_stopped")
