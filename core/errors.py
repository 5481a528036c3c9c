"""Exception taxonomy shared by the core, the API layer and the workers."""

from __future__ import annotations


class HealthTrackerError(Exception):
    """Base class for every error the core raises on purpose."""


class ValidationError(HealthTrackerError):
    """Malformed input or provider payload."""


class NotFoundError(HealthTrackerError):
    """Operating on a record that does not exist."""


class AnalysisError(HealthTrackerError):
    """The vision provider failed or returned unusable content."""


class DeliveryError(HealthTrackerError):
    """A single reminder SMS could not be dispatched."""

    def __init__(self, reminder_id: int, reason: str) -> None:
        super().__init__(f"reminder {reminder_id}: {reason}")
        self.reminder_id = reminder_id
        self.reason = reason


class Unauthorized(HealthTrackerError):
    """No valid session token on the request."""
