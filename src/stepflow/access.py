"""Role/permission resolution and the guards every operation goes through."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import NoReturn

from .errors import NotAuthenticatedError, UnauthorizedError
from .logging_utils import log_event
from .models import Database, Permission, Project, Role
from .queries import find_membership


@dataclass(frozen=True)
class Access:
    role: Role
    permission: Permission | None

    @property
    def is_owner(self) -> bool:
        return self.role == Role.OWNER

    @property
    def can_read(self) -> bool:
        return self.role in (Role.OWNER, Role.MEMBER)


NO_ACCESS = Access(role=Role.NONE, permission=None)


def require_caller(caller_id: str | None) -> str:
    """Raise NotAuthenticatedError for an anonymous caller."""
    if not caller_id:
        raise NotAuthenticatedError()
    return caller_id


def resolve_access(db: Database, caller_id: str | None, project: Project) -> Access:
    """Compute the caller's effective role and permission for project."""
    if not caller_id:
        return NO_ACCESS
    if project.owner_id == caller_id:
        return Access(role=Role.OWNER, permission=Permission.MODIFY)
    membership = find_membership(db, project.id, caller_id)
    if membership is None:
        return NO_ACCESS
    return Access(role=Role.MEMBER, permission=membership.permission)


class AccessControl:
    """Guard policy shared by every engine operation.

    Structural project changes, invitations and member management are always
    owner-only. Step, subtask and note writes are owner-only too unless
    member_write_access lets members holding 'modify' make them.
    """

    def __init__(self, *, member_write_access: bool = False) -> None:
        self.member_write_access = member_write_access

    def resolve(self, db: Database, caller_id: str | None, project: Project) -> Access:
        return resolve_access(db, caller_id, project)

    def require_owner(
        self, db: Database, caller_id: str, project: Project, action: str
    ) -> Access:
        access = self.resolve(db, caller_id, project)
        if not access.is_owner:
            _deny(caller_id, project, access, action)
        return access

    def require_writer(
        self, db: Database, caller_id: str, project: Project, action: str
    ) -> Access:
        access = self.resolve(db, caller_id, project)
        if access.is_owner:
            return access
        if (
            self.member_write_access
            and access.role == Role.MEMBER
            and access.permission == Permission.MODIFY
        ):
            return access
        _deny(caller_id, project, access, action)

    def require_member(
        self, db: Database, caller_id: str, project: Project, action: str
    ) -> Access:
        access = self.resolve(db, caller_id, project)
        if access.role != Role.MEMBER:
            _deny(caller_id, project, access, action)
        return access


def _deny(caller_id: str, project: Project, access: Access, action: str) -> NoReturn:
    log_event(
        "access_denied",
        level=logging.WARNING,
        action=action,
        caller_id=caller_id,
        project_id=project.id,
        role=access.role,
        permission=access.permission,
    )
    raise UnauthorizedError(f"Not allowed to {action} in project {project.id}.")
