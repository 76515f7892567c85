"""Domain models for stepflow."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from enum import StrEnum

from pydantic import BaseModel


class Permission(StrEnum):
    VIEW = "view"
    MODIFY = "modify"


class Role(StrEnum):
    OWNER = "owner"
    MEMBER = "member"
    NONE = "none"


class InvitationStatus(StrEnum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    # Never written by the engine; expiry is derived from expires_utc at read time.
    EXPIRED = "expired"


class User(BaseModel):
    id: str
    name: str


class Project(BaseModel):
    id: str
    owner_id: str
    name: str
    description: str | None = None
    link: str | None = None
    color: str


class Step(BaseModel):
    id: str
    project_id: str
    title: str
    description: str | None = None
    order: int  # 0-based, dense within the project
    is_completed: bool = False
    is_unlocked: bool = False


class Subtask(BaseModel):
    id: str
    step_id: str
    title: str
    is_completed: bool = False
    order: int  # 0-based within the step


class ProjectMember(BaseModel):
    id: str
    project_id: str
    user_id: str
    permission: Permission
    added_utc: str
    added_by: str


class Invitation(BaseModel):
    id: str
    project_id: str
    invited_by: str
    permission: Permission
    token: str
    expires_utc: str
    status: InvitationStatus = InvitationStatus.PENDING
    accepted_by: str | None = None
    accepted_utc: str | None = None


class Note(BaseModel):
    id: str
    project_id: str
    content: str
    created_utc: str
    updated_utc: str
    user_id: str


class Database(BaseModel):
    # All tables are keyed by entity id for point lookups.
    users: dict[str, User] = {}
    projects: dict[str, Project] = {}
    steps: dict[str, Step] = {}
    subtasks: dict[str, Subtask] = {}
    members: dict[str, ProjectMember] = {}
    invitations: dict[str, Invitation] = {}
    notes: dict[str, Note] = {}


def new_id() -> str:
    """Return a fresh opaque identifier."""
    return uuid.uuid4().hex


def to_utc_iso_z(moment: datetime) -> str:
    """Format an aware datetime as ISO 8601 UTC with a 'Z' suffix."""
    return moment.astimezone(UTC).isoformat().replace("+00:00", "Z")


def parse_utc_iso_z(value: str) -> datetime:
    """Parse a stored '*_utc' string back into an aware datetime."""
    return datetime.fromisoformat(value.replace("Z", "+00:00"))
