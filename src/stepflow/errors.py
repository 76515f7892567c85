"""Custom exception types for stepflow."""

from __future__ import annotations


class StepflowError(Exception):
    """Base class for all stepflow errors."""


class NotAuthenticatedError(StepflowError):
    def __init__(self) -> None:
        super().__init__("Not authenticated.")


class UnauthorizedError(StepflowError):
    def __init__(self, message: str = "Unauthorized.") -> None:
        super().__init__(message)


class NotFoundError(StepflowError):
    """An entity does not exist, or the caller may not know that it does."""

    kind = "Entity"

    def __init__(self, entity_id: str) -> None:
        self.entity_id = entity_id
        super().__init__(f"{self.kind} {entity_id} not found.")


class ProjectNotFoundError(NotFoundError):
    kind = "Project"


class StepNotFoundError(NotFoundError):
    kind = "Step"


class SubtaskNotFoundError(NotFoundError):
    kind = "Subtask"


class InvitationNotFoundError(NotFoundError):
    kind = "Invitation"


class NoteNotFoundError(NotFoundError):
    kind = "Note"


class MemberNotFoundError(NotFoundError):
    kind = "Member"


class StepLockedError(StepflowError):
    def __init__(self, step_id: str) -> None:
        self.step_id = step_id
        super().__init__(f"Step {step_id} is locked.")


class InvitationNotAcceptableError(StepflowError):
    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"Invitation cannot be used: {reason}.")


class ValidationError(ValueError, StepflowError):
    """Rejected input: empty required field, order out of range, bad permutation."""


class ConfigError(ValueError, StepflowError):
    """Profile/configuration validation errors."""


class StorageError(StepflowError):
    """State file load/save failures."""
