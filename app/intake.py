"""
Intake pipeline for contact-form submissions.

received -> validated -> persisted -> notified -> complete
received -> rejected (validation failure, nothing written)

Notification is scheduled on FastAPI BackgroundTasks, so the caller gets
its response as soon as the row is persisted.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict

import pydantic
from fastapi import BackgroundTasks
from sqlalchemy.orm import Session

from app.errors import ValidationError
from app.notifier import Notifier
from app.schemas import SubmissionRequest, SubmissionResponse
from app.storage import create_submission

logger = logging.getLogger(__name__)


class IntakeStage(str, Enum):
    RECEIVED = "received"
    VALIDATED = "validated"
    REJECTED = "rejected"
    PERSISTED = "persisted"
    NOTIFIED = "notified"
    COMPLETE = "complete"


@dataclass
class IntakeResult:
    submission: SubmissionResponse
    stage: IntakeStage


def validate_submission(raw: Any) -> SubmissionRequest:
    """
    Validate raw form input.

    Raises:
        ValidationError: With one message per invalid field
    """
    if not isinstance(raw, dict):
        raise ValidationError({"body": "Expected a JSON object"}, message="Invalid request body")

    try:
        return SubmissionRequest.model_validate(raw)
    except pydantic.ValidationError as e:
        errors: Dict[str, str] = {}
        for err in e.errors():
            field = str(err["loc"][0]) if err["loc"] else "body"
            errors.setdefault(field, err["msg"].removeprefix("Value error, "))
        logger.info(f"Submission rejected: {errors}")
        raise ValidationError(errors) from None


def submit(
    db: Session,
    raw: Any,
    background_tasks: BackgroundTasks,
    notifier: Notifier,
) -> IntakeResult:
    """
    Validate, persist and schedule notification for one submission.

    Raises:
        ValidationError: Input rejected; nothing was written
        PersistenceError: The row could not be stored
    """
    logger.debug(f"Submission {IntakeStage.RECEIVED.value}")
    try:
        form = validate_submission(raw)
    except ValidationError:
        logger.debug(f"Submission {IntakeStage.REJECTED.value}")
        raise
    logger.debug(f"Submission {IntakeStage.VALIDATED.value}: name={form.name}, phone={form.phone}")

    row = create_submission(
        db=db,
        name=form.name,
        phone=form.phone,
        email=form.email,
        company=form.company,
        message=form.message,
    )
    # Detach from the session; the background task runs after it closes
    submission = SubmissionResponse.model_validate(row)
    stage = IntakeStage.PERSISTED

    background_tasks.add_task(run_notifications, notifier, submission)
    logger.info(f"Submission {submission.id} {stage.value}, notification scheduled")

    return IntakeResult(submission=submission, stage=stage)


def run_notifications(notifier: Notifier, submission: SubmissionResponse) -> IntakeStage:
    """
    Background unit of work for one submission: notify the recipient,
    then acknowledge the submitter only if that succeeded.

    Returns the last stage reached: persisted (notification undelivered),
    notified (acknowledgement undelivered) or complete.

    Delivery failures are logged by the notifier; anything unexpected is
    logged here and never reaches the request that scheduled the task.
    """
    stage = IntakeStage.PERSISTED
    try:
        if notifier.notify_submission(submission):
            stage = IntakeStage.NOTIFIED
            if notifier.notify_acknowledgement(submission.phone):
                stage = IntakeStage.COMPLETE
    except Exception:
        logger.exception(f"Notification task failed for submission {submission.id}")
    logger.info(f"Submission {submission.id} notification task finished at stage {stage.value}")
    return stage
