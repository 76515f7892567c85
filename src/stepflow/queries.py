"""Point lookups and ordered scans over a database snapshot."""

from __future__ import annotations

from .errors import (
    InvitationNotFoundError,
    NoteNotFoundError,
    ProjectNotFoundError,
    StepNotFoundError,
    SubtaskNotFoundError,
)
from .models import (
    Database,
    Invitation,
    Note,
    Project,
    ProjectMember,
    Step,
    Subtask,
)


def get_project(db: Database, project_id: str) -> Project:
    """Raise ProjectNotFoundError if not found."""
    project = db.projects.get(project_id)
    if project is None:
        raise ProjectNotFoundError(project_id)
    return project


def get_step(db: Database, step_id: str) -> Step:
    """Raise StepNotFoundError if not found."""
    step = db.steps.get(step_id)
    if step is None:
        raise StepNotFoundError(step_id)
    return step


def get_subtask(db: Database, subtask_id: str) -> Subtask:
    """Raise SubtaskNotFoundError if not found."""
    subtask = db.subtasks.get(subtask_id)
    if subtask is None:
        raise SubtaskNotFoundError(subtask_id)
    return subtask


def get_note(db: Database, note_id: str) -> Note:
    """Raise NoteNotFoundError if not found."""
    note = db.notes.get(note_id)
    if note is None:
        raise NoteNotFoundError(note_id)
    return note


def steps_for_project(db: Database, project_id: str) -> list[Step]:
    """Return a project's steps ordered by order asc."""
    steps = [s for s in db.steps.values() if s.project_id == project_id]
    steps.sort(key=lambda s: s.order)
    return steps


def step_at_order(db: Database, project_id: str, order: int) -> Step | None:
    for s in db.steps.values():
        if s.project_id == project_id and s.order == order:
            return s
    return None


def subtasks_for_step(db: Database, step_id: str) -> list[Subtask]:
    """Return a step's subtasks ordered by order asc."""
    subtasks = [t for t in db.subtasks.values() if t.step_id == step_id]
    subtasks.sort(key=lambda t: t.order)
    return subtasks


def subtasks_by_step(db: Database, steps: list[Step]) -> dict[str, list[Subtask]]:
    return {s.id: subtasks_for_step(db, s.id) for s in steps}


def find_membership(db: Database, project_id: str, user_id: str) -> ProjectMember | None:
    """Return the unique membership row for (project, user), if any."""
    for m in db.members.values():
        if m.project_id == project_id and m.user_id == user_id:
            return m
    return None


def members_for_project(db: Database, project_id: str) -> list[ProjectMember]:
    """Return a project's members ordered by added time."""
    members = [m for m in db.members.values() if m.project_id == project_id]
    members.sort(key=lambda m: m.added_utc)
    return members


def memberships_for_user(db: Database, user_id: str) -> list[ProjectMember]:
    return [m for m in db.members.values() if m.user_id == user_id]


def projects_owned_by(db: Database, user_id: str) -> list[Project]:
    return [p for p in db.projects.values() if p.owner_id == user_id]


def find_invitation_by_token(db: Database, token: str) -> Invitation | None:
    for inv in db.invitations.values():
        if inv.token == token:
            return inv
    return None


def get_invitation_by_token(db: Database, token: str) -> Invitation:
    """Raise InvitationNotFoundError if no invitation carries this token."""
    invitation = find_invitation_by_token(db, token)
    if invitation is None:
        raise InvitationNotFoundError("for this token")
    return invitation


def invitations_for_project(db: Database, project_id: str) -> list[Invitation]:
    """Return a project's invitations ordered by expiry asc."""
    invitations = [i for i in db.invitations.values() if i.project_id == project_id]
    invitations.sort(key=lambda i: i.expires_utc)
    return invitations


def notes_for_project(db: Database, project_id: str) -> list[Note]:
    """Return a project's notes ordered by creation time asc."""
    notes = [n for n in db.notes.values() if n.project_id == project_id]
    notes.sort(key=lambda n: n.created_utc)
    return notes


def user_name(db: Database, user_id: str, default: str) -> str:
    user = db.users.get(user_id)
    return user.name if user is not None else default
