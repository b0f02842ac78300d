"""
Workflow errors.

Every failure in the application workflow is raised as a WorkflowError
subclass carrying a human-readable message for the initiating user.
"""

from __future__ import annotations

from typing import Optional


class WorkflowError(Exception):
    """Base class for all application workflow failures."""

    error_code: str = "workflow_error"

    def __init__(self, message: str, application_id: Optional[str] = None):
        self.message = message
        self.application_id = application_id
        super().__init__(message)

    def to_dict(self) -> dict:
        return {
            "detail": self.message,
            "error_code": self.error_code,
            "application_id": self.application_id,
        }


class ValidationError(WorkflowError):
    """Input is malformed: missing feedback, wrong file type, empty file."""

    error_code = "validation_error"


class PreconditionFailed(WorkflowError):
    """Action attempted outside the state in which it is valid."""

    error_code = "precondition_failed"


class ActionInProgress(PreconditionFailed):
    """Another action on the same application has not finished yet."""

    error_code = "action_in_progress"


class InvalidTransition(WorkflowError):
    """Decision already made, application rejected, or already completed."""

    error_code = "invalid_transition"


class StorageFailure(WorkflowError):
    """Document upload or record update failed."""

    error_code = "storage_failure"


class AuthorizationError(WorkflowError):
    """Caller does not hold the role the action requires."""

    error_code = "authorization_error"


class ApplicationNotFound(WorkflowError):
    """No application record with the given ID."""

    error_code = "not_found"
