"""Membership management for collaborators who joined through an invitation."""

from __future__ import annotations

from .errors import MemberNotFoundError
from .models import Database, Permission, ProjectMember
from .queries import find_membership


def get_member(db: Database, project_id: str, user_id: str) -> ProjectMember:
    """Raise MemberNotFoundError if user_id is not a member of the project."""
    membership = find_membership(db, project_id, user_id)
    if membership is None:
        raise MemberNotFoundError(user_id)
    return membership


def set_permission(db: Database, project_id: str, user_id: str, permission: Permission) -> ProjectMember:
    membership = get_member(db, project_id, user_id)
    membership.permission = Permission(permission)
    return membership


def remove_member(db: Database, project_id: str, user_id: str) -> ProjectMember:
    membership = get_member(db, project_id, user_id)
    del db.members[membership.id]
    return membership
