"""
Error taxonomy for the form collector.

- ValidationError: user-correctable, carries field-level messages (HTTP 400)
- PersistenceError: storage unavailable or write failed (HTTP 500)
- NotificationDeliveryFailure: every provider exhausted; logged, never
  propagated past the intake pipeline
"""

from typing import Dict, List, Optional


class FormCollectorError(Exception):
    """Base class for application errors."""


class ValidationError(FormCollectorError):
    """Submission failed validation; `errors` maps field name to message."""

    def __init__(self, errors: Dict[str, str], message: str = "Please fix the errors in the form"):
        super().__init__(message)
        self.message = message
        self.errors = errors


class PersistenceError(FormCollectorError):
    """The submission store could not complete a read or write."""


class NotificationDeliveryFailure(FormCollectorError):
    """No configured provider delivered the message."""

    def __init__(self, to: Optional[str], attempted: List[str]):
        self.to = to
        self.attempted = attempted
        if not to:
            detail = "no recipient number configured"
        elif attempted:
            detail = f"all providers failed ({', '.join(attempted)})"
        else:
            detail = "no provider configured"
        super().__init__(f"Could not deliver message to {to}: {detail}")
