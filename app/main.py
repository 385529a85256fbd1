import json
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from functools import lru_cache
from typing import Annotated

import uvicorn
from fastapi import BackgroundTasks, Depends, FastAPI, Query, Request, Response, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from app.config import get_settings, settings
from app.errors import PersistenceError, ValidationError
from app.export import export_csv, export_filename
from app.intake import submit
from app.logging_utils import RequestLoggingMiddleware, log_submission_data, setup_logging
from app.metrics import get_metrics, get_metrics_content_type, record_submission_outcome
from app.notifier import Notifier, build_notifier
from app.schemas import (
    ErrorResponse,
    HealthResponse,
    SubmissionResponse,
    SubmissionsListResponse,
    SubmitResponse,
)
from app.storage import check_db_health, get_db, get_submissions, init_db
from app.utils import get_zone, parse_date_bound


# Setup structured JSON logging
setup_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


@lru_cache()
def get_notifier() -> Notifier:
    """Notifier built once from the process settings."""
    return build_notifier(get_settings())


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for startup and shutdown events.
    - Startup: Initialize database and create tables
    - Shutdown: Close provider HTTP clients
    """
    init_db()
    yield
    if get_notifier.cache_info().currsize:
        get_notifier().close()


app = FastAPI(
    title="Form Collector API",
    description="Collects contact-form submissions and forwards them over WhatsApp",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(RequestLoggingMiddleware)


# =============================================================================
# Error Handlers
# =============================================================================

@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
    body = ErrorResponse(message=exc.message, errors=exc.errors)
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=body.model_dump())


@app.exception_handler(PersistenceError)
async def persistence_error_handler(request: Request, exc: PersistenceError) -> JSONResponse:
    body = ErrorResponse(message=str(exc) or "Internal server error")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=body.model_dump(exclude_none=True),
    )


# =============================================================================
# Info / Health Routes
# =============================================================================

@app.get("/")
async def root() -> dict:
    return {
        "message": "WhatsApp Form Collector API is running!",
        "api_endpoints": {
            "submit_form": "POST /api/submit-form",
            "get_submissions": "GET /api/submissions",
            "export_csv": "GET /api/export-csv",
        },
    }


@app.get("/health/live", response_model=HealthResponse)
async def health_live() -> HealthResponse:
    """Liveness probe - always returns 200 once the app is running."""
    return HealthResponse(status="ok")


@app.get("/health/ready", response_model=HealthResponse)
async def health_ready(response: Response) -> HealthResponse:
    """
    Readiness probe - returns 200 only if the DB is reachable and the
    submissions table exists, otherwise 503.
    """
    if not check_db_health():
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return HealthResponse(
            status="not_ready",
            reason="Database not reachable or schema not applied"
        )
    return HealthResponse(status="ready")


# =============================================================================
# Submission Routes
# =============================================================================

@app.post(
    "/api/submit-form",
    response_model=SubmitResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Validation error"},
        500: {"model": ErrorResponse, "description": "Submission could not be saved"},
    }
)
async def submit_form(
    request: Request,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
) -> SubmitResponse:
    """
    Accept a contact-form submission.

    - Validates name (required), phone (required) and email (optional)
    - Stores the submission
    - Schedules the WhatsApp notification and acknowledgement in the background

    The response only says whether the data was saved; notification
    outcome is never reported back to the client.
    """
    raw_body = await request.body()
    logger.debug(f"Request body size: {len(raw_body)} bytes")

    try:
        try:
            payload = json.loads(raw_body)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.error(f"Invalid JSON: {e}")
            raise ValidationError({"body": "Invalid JSON"}, message="Invalid request body")
        result = submit(db, payload, background_tasks, notifier)
    except ValidationError:
        record_submission_outcome("validation_error")
        log_submission_data(request, result="validation_error")
        raise
    except PersistenceError:
        record_submission_outcome("error")
        log_submission_data(request, result="error")
        raise

    submission_id = result.submission.id
    logger.info(f"Submission {submission_id} accepted at stage {result.stage.value}")
    record_submission_outcome("created")
    log_submission_data(request, result="created", submission_id=submission_id)

    return SubmitResponse(
        success=True,
        message="Form submitted successfully!",
        submissionId=submission_id,
    )


@app.get("/api/submissions", response_model=SubmissionsListResponse)
async def list_submissions(
    q: Annotated[str | None, Query(description="Case-insensitive search across all fields")] = None,
    db: Session = Depends(get_db),
) -> SubmissionsListResponse:
    """
    List stored submissions, newest first.
    The admin view polls this endpoint for near real-time updates.
    """
    rows = get_submissions(db, q=q)
    data = [SubmissionResponse.model_validate(row) for row in rows]
    logger.info(f"GET /api/submissions: returned {len(data)} submissions")
    return SubmissionsListResponse(data=data)


def _date_bound(field: str, value: str | None, zone, end: bool = False) -> datetime | None:
    try:
        return parse_date_bound(value, zone, end=end)
    except (ValueError, OverflowError) as e:
        logger.warning(f"Invalid export bound {field}={value}: {e}")
        raise ValidationError({field: "Invalid ISO-8601 date"}, message="Invalid date range")


@app.get(
    "/api/export-csv",
    response_class=Response,
    responses={
        200: {"content": {"text/csv": {}}},
        400: {"model": ErrorResponse, "description": "Invalid date range"},
    }
)
async def export_submissions_csv(
    start_date: Annotated[str | None, Query(alias="startDate", description="ISO-8601 lower bound (inclusive)")] = None,
    end_date: Annotated[str | None, Query(alias="endDate", description="ISO-8601 upper bound (inclusive)")] = None,
    db: Session = Depends(get_db),
) -> Response:
    """
    Export submissions as a CSV attachment.

    Date-only bounds and naive datetimes are read in the display time zone;
    a date-only endDate includes the whole day.
    """
    zone = get_zone(settings.DISPLAY_TIMEZONE)

    start = _date_bound("startDate", start_date, zone)
    end = _date_bound("endDate", end_date, zone, end=True)

    if start is not None and end is not None and start > end:
        raise ValidationError({"endDate": "endDate must not be before startDate"}, message="Invalid date range")

    content = export_csv(db, zone, start=start, end=end)
    filename = export_filename(datetime.now(timezone.utc).date())

    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


# =============================================================================
# Metrics Route
# =============================================================================

@app.get("/metrics")
async def metrics() -> Response:
    """Expose Prometheus-style metrics."""
    return Response(
        content=get_metrics(),
        media_type=get_metrics_content_type()
    )


def run() -> None:
    """Console entry point: serve the app with uvicorn."""
    uvicorn.run("app.main:app", host=settings.HOST, port=settings.PORT, log_config=None)
