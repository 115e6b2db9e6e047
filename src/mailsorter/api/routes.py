"""
API routes for the mailsorter service.

`/fetch` triggers one ingestion run; `/emails` lists what has been stored.
"""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse
from loguru import logger
from pydantic import BaseModel, ConfigDict, Field

from mailsorter.application.ports.record_store import RecordStore
from mailsorter.application.use_cases.ingest_email import IngestEmailUseCase, build_ingest_use_case
from mailsorter.domain.errors import StorageError
from mailsorter.infrastructure import get_record_store, get_settings

router = APIRouter()

FETCH_FAILED = "Failed to fetch emails"


# ============================================================================
# Request/Response Models
# ============================================================================


class EmailRecordResponse(BaseModel):
    """A stored, classified email."""

    model_config = ConfigDict(populate_by_name=True)

    id: int
    message_id: str | None = Field(None, alias="messageId")
    sender: str
    subject: str | None = None
    timestamp: int = Field(..., description="Unix seconds")
    category: str


class FetchResponse(BaseModel):
    """Result of one ingestion run."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool
    emails_processed: int = Field(..., alias="emailsProcessed", ge=0)


class FetchFailedResponse(BaseModel):
    success: bool = False
    error: str


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    timestamp: str
    version: str


class ReadinessResponse(BaseModel):
    """Readiness check response with service status."""

    status: str
    timestamp: str
    services: dict[str, str]


# ============================================================================
# Dependencies
# ============================================================================


def get_store() -> RecordStore:
    return get_record_store()


def get_ingest_use_case(store: RecordStore = Depends(get_store)) -> IngestEmailUseCase:
    return build_ingest_use_case(get_settings(), store=store)


# ============================================================================
# Health Endpoints
# ============================================================================


@router.get("/health", response_model=HealthResponse, tags=["health"])
async def health_check() -> HealthResponse:
    """Basic health check endpoint."""
    settings = get_settings()
    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(timezone.utc).isoformat(),
        version=settings.app_version,
    )


@router.get("/health/ready", response_model=ReadinessResponse, tags=["health"])
def readiness_check(store: RecordStore = Depends(get_store)) -> ReadinessResponse:
    """Readiness check with storage status."""
    services: dict[str, str] = {}

    try:
        health = store.health_check()
        services["sqlite"] = health.get("status", "unknown")
    except Exception as e:
        logger.warning(f"SQLite health check failed: {e}")
        services["sqlite"] = f"error: {str(e)[:50]}"

    status = "ready" if services.get("sqlite") == "healthy" else "degraded"
    return ReadinessResponse(
        status=status,
        timestamp=datetime.now(timezone.utc).isoformat(),
        services=services,
    )


@router.get("/health/live", tags=["health"])
async def liveness_check() -> dict[str, str]:
    """Kubernetes liveness probe endpoint."""
    return {"status": "alive"}


# ============================================================================
# Email Endpoints
# ============================================================================


@router.get("/emails", response_model=list[EmailRecordResponse], tags=["emails"])
def list_emails(store: RecordStore = Depends(get_store)) -> list[EmailRecordResponse]:
    """All classified emails in insertion order."""
    try:
        records = store.list_all()
    except StorageError as e:
        logger.exception(f"Error listing emails: {e}")
        raise HTTPException(status_code=500, detail="Internal server error")

    return [
        EmailRecordResponse(
            id=r.id,
            message_id=r.message_id,
            sender=r.sender,
            subject=r.subject,
            timestamp=r.timestamp,
            category=r.category,
        )
        for r in records
    ]


@router.get(
    "/fetch",
    response_model=FetchResponse,
    responses={500: {"model": FetchFailedResponse}},
    tags=["emails"],
)
def fetch_emails(use_case: IngestEmailUseCase = Depends(get_ingest_use_case)):
    """
    Run one ingestion pass against the mailbox.

    Failure details are only logged; callers get a generic error.
    """
    try:
        report = use_case.run()
    except Exception as e:
        logger.exception(f"Error fetching emails: {e}")
        return JSONResponse(
            status_code=500,
            content=FetchFailedResponse(error=FETCH_FAILED).model_dump(),
        )

    return FetchResponse(success=True, emails_processed=report.processed)
