"""Invitation tokens: issuance, lazy expiry, and the accept/decline transition."""

from __future__ import annotations

import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta

from .constants import (
    INVITATION_STATUS_INVALID,
    INVITATION_TOKEN_BYTES,
    TOKEN_HINT_LENGTH,
    UNKNOWN_USER_NAME,
)
from .errors import InvitationNotAcceptableError
from .models import (
    Database,
    Invitation,
    InvitationStatus,
    Permission,
    Project,
    ProjectMember,
    new_id,
    parse_utc_iso_z,
    to_utc_iso_z,
)
from .queries import find_invitation_by_token, find_membership, get_invitation_by_token, user_name


@dataclass(frozen=True)
class ProjectSummary:
    id: str
    name: str
    description: str | None
    color: str


@dataclass(frozen=True)
class InvitationDetails:
    """Public view of a token. status is 'invalid' when the token resolves to nothing."""

    status: str
    is_expired: bool = False
    project: ProjectSummary | None = None
    inviter_name: str | None = None
    permission: Permission | None = None
    expires_utc: str | None = None


@dataclass(frozen=True)
class InvitationView:
    invitation: Invitation
    is_expired: bool


def create_invitation(
    db: Database,
    project: Project,
    inviter_id: str,
    permission: Permission,
    now: datetime,
    ttl_days: int,
) -> Invitation:
    """Issue a pending invitation with an unguessable token."""
    invitation = Invitation(
        id=new_id(),
        project_id=project.id,
        invited_by=inviter_id,
        permission=Permission(permission),
        token=secrets.token_urlsafe(INVITATION_TOKEN_BYTES),
        expires_utc=to_utc_iso_z(now + timedelta(days=ttl_days)),
        status=InvitationStatus.PENDING,
    )
    db.invitations[invitation.id] = invitation
    return invitation


def is_expired(invitation: Invitation, now: datetime) -> bool:
    """True for a still-pending invitation whose expiry has passed."""
    return (
        invitation.status == InvitationStatus.PENDING
        and now > parse_utc_iso_z(invitation.expires_utc)
    )


def describe_invitation(db: Database, token: str, now: datetime) -> InvitationDetails:
    """Resolve a token for display without mutating anything."""
    invitation = find_invitation_by_token(db, token)
    if invitation is None:
        return InvitationDetails(status=INVITATION_STATUS_INVALID)
    project = db.projects.get(invitation.project_id)
    if project is None:
        return InvitationDetails(status=INVITATION_STATUS_INVALID)
    return InvitationDetails(
        status=invitation.status.value,
        is_expired=is_expired(invitation, now),
        project=ProjectSummary(
            id=project.id,
            name=project.name,
            description=project.description,
            color=project.color,
        ),
        inviter_name=user_name(db, invitation.invited_by, UNKNOWN_USER_NAME),
        permission=invitation.permission,
        expires_utc=invitation.expires_utc,
    )


def accept_invitation(db: Database, token: str, caller_id: str, now: datetime) -> Invitation:
    """Turn a pending, unexpired invitation into a membership for caller_id.

    An existing membership for the same (project, user) is updated in place
    rather than duplicated.
    """
    invitation = get_invitation_by_token(db, token)
    _require_actionable(invitation, now)
    project = db.projects.get(invitation.project_id)
    if project is None:
        raise InvitationNotAcceptableError("project no longer exists")
    if project.owner_id == caller_id:
        raise InvitationNotAcceptableError("the project owner already has access")

    now_utc = to_utc_iso_z(now)
    membership = find_membership(db, project.id, caller_id)
    if membership is None:
        membership = ProjectMember(
            id=new_id(),
            project_id=project.id,
            user_id=caller_id,
            permission=invitation.permission,
            added_utc=now_utc,
            added_by=invitation.invited_by,
        )
        db.members[membership.id] = membership
    else:
        membership.permission = invitation.permission

    invitation.status = InvitationStatus.ACCEPTED
    invitation.accepted_by = caller_id
    invitation.accepted_utc = now_utc
    return invitation


def decline_invitation(db: Database, token: str, now: datetime) -> Invitation:
    invitation = get_invitation_by_token(db, token)
    _require_actionable(invitation, now)
    invitation.status = InvitationStatus.DECLINED
    return invitation


def token_hint(token: str) -> str:
    """Short token prefix that is safe to log."""
    return token[:TOKEN_HINT_LENGTH]


def _require_actionable(invitation: Invitation, now: datetime) -> None:
    if invitation.status != InvitationStatus.PENDING:
        raise InvitationNotAcceptableError(f"invitation is already {invitation.status.value}")
    if is_expired(invitation, now):
        raise InvitationNotAcceptableError("invitation has expired")
