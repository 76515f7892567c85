"""stepflow - workflow consistency engine for shared multi-step projects."""

from .clock import Clock, SystemClock
from .engine import Engine
from .errors import (
    InvitationNotAcceptableError,
    NotAuthenticatedError,
    NotFoundError,
    StepflowError,
    StepLockedError,
    UnauthorizedError,
    ValidationError,
)
from .models import InvitationStatus, Permission, Role
from .store import Store

__all__ = [
    "Clock",
    "Engine",
    "InvitationNotAcceptableError",
    "InvitationStatus",
    "NotAuthenticatedError",
    "NotFoundError",
    "Permission",
    "Role",
    "StepLockedError",
    "StepflowError",
    "Store",
    "SystemClock",
    "UnauthorizedError",
    "ValidationError",
]
