"""
Pydantic schemas for request/response validation.

This module contains:
- Request models for incoming form data validation
- Response models for API responses
"""

import re
from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, field_serializer, field_validator

from app.utils import as_utc


# Optional leading '+', no leading zero, 1-16 digits in total
PHONE_PATTERN = re.compile(r"^\+?[1-9]\d{0,15}$")
EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
WHITESPACE = re.compile(r"\s+")


def _as_text(v: Any) -> Optional[str]:
    """Coerce JSON scalars to text; None and blank strings become None."""
    if v is None:
        return None
    if isinstance(v, bool):
        raise ValueError("must be text")
    if isinstance(v, (int, float)):
        v = str(v)
    if not isinstance(v, str):
        raise ValueError("must be text")
    v = v.strip()
    return v or None


# =============================================================================
# Pydantic Request Models
# =============================================================================

class SubmissionRequest(BaseModel):
    """
    Pydantic model for validating contact-form submissions.

    Validates (independently, so several errors are reported at once):
    - name: required, non-empty after trimming
    - phone: required, optional '+' then 1-16 digits (whitespace ignored)
    - email: optional, basic local@domain shape
    """
    name: Optional[str] = Field(None, validate_default=True, description="Submitter name")
    email: Optional[str] = Field(None, description="Submitter email")
    phone: Optional[str] = Field(None, validate_default=True, description="Submitter phone number")
    company: Optional[str] = Field(None, description="Company name")
    message: Optional[str] = Field(None, description="Free-text message")

    @field_validator("name", mode="before")
    @classmethod
    def validate_name(cls, v: Any) -> str:
        v = _as_text(v)
        if not v:
            raise ValueError("Name is required")
        return v

    @field_validator("phone", mode="before")
    @classmethod
    def validate_phone(cls, v: Any) -> str:
        v = _as_text(v)
        if not v:
            raise ValueError("Phone number is required")
        v = WHITESPACE.sub("", v)
        if not PHONE_PATTERN.match(v):
            raise ValueError("Please enter a valid phone number")
        return v

    @field_validator("email", mode="before")
    @classmethod
    def validate_email(cls, v: Any) -> Optional[str]:
        v = _as_text(v)
        if v is not None and not EMAIL_PATTERN.match(v):
            raise ValueError("Please enter a valid email address")
        return v

    @field_validator("company", "message", mode="before")
    @classmethod
    def blank_to_none(cls, v: Any) -> Optional[str]:
        return _as_text(v)

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "name": "Jane Doe",
                    "email": "jane@example.com",
                    "phone": "+15551234567",
                    "company": "Acme",
                    "message": "Hi",
                }
            ]
        }
    }


# =============================================================================
# Pydantic Response Models
# =============================================================================

class SubmitResponse(BaseModel):
    """Response model for POST /api/submit-form."""
    success: bool = Field(..., description="Whether the submission was saved")
    message: str = Field(..., description="Human-readable outcome")
    submissionId: Optional[int] = Field(None, description="Id of the stored submission")


class ErrorResponse(BaseModel):
    """Response model for error responses."""
    success: bool = Field(default=False)
    message: str = Field(..., description="Error description")
    errors: Optional[Dict[str, str]] = Field(None, description="Field-level validation messages")


class SubmissionResponse(BaseModel):
    """
    A stored submission as returned to the admin view.
    created_at is serialized as ISO-8601 UTC with a Z suffix.
    """
    id: int
    name: str
    email: Optional[str] = None
    phone: str
    company: Optional[str] = None
    message: Optional[str] = None
    created_at: datetime

    model_config = {
        "from_attributes": True,  # Allow creating from ORM objects
    }

    @field_serializer("created_at")
    def serialize_created_at(self, value: datetime) -> str:
        return as_utc(value).strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z"


class SubmissionsListResponse(BaseModel):
    """Response model for GET /api/submissions (newest first)."""
    success: bool = Field(default=True)
    data: list[SubmissionResponse] = Field(default_factory=list)


class HealthResponse(BaseModel):
    """Response model for health check endpoints."""
    status: str = Field(..., description="Health status")
    reason: Optional[str] = Field(None, description="Reason if not ready")
