"""Engine façade: the operations external callers invoke.

Every operation follows the same shape: check the caller's identity, open
one store transaction (or snapshot, for reads), resolve the project and run
the single access guard, call the domain function, then log the event once
the transaction has committed. Errors propagate unchanged.
"""

from __future__ import annotations

from collections.abc import Sequence

from .access import AccessControl, require_caller
from .clock import Clock, SystemClock
from .constants import DEFAULT_INVITATION_TTL_DAYS, DEFAULT_PROJECT_COLOR
from . import invitations, members, notes, projects, users, workflow
from .errors import ProjectNotFoundError, ValidationError
from .invitations import InvitationDetails, InvitationView, token_hint
from .logging_utils import log_event
from .models import (
    Database,
    Note,
    Permission,
    Project,
    ProjectMember,
    Step,
    Subtask,
    to_utc_iso_z,
)
from .projects import ProjectView
from .queries import (
    get_note,
    get_project,
    get_step,
    get_subtask,
    invitations_for_project,
    members_for_project,
    notes_for_project,
    steps_for_project,
    subtasks_for_step,
)
from .store import Store


class Engine:
    def __init__(
        self,
        store: Store,
        clock: Clock | None = None,
        *,
        invitation_ttl_days: int = DEFAULT_INVITATION_TTL_DAYS,
        member_write_access: bool = False,
        default_color: str = DEFAULT_PROJECT_COLOR,
    ) -> None:
        if invitation_ttl_days < 1:
            raise ValidationError("invitation_ttl_days must be at least 1")
        self.store = store
        self.clock = clock if clock is not None else SystemClock()
        self.access = AccessControl(member_write_access=member_write_access)
        self.invitation_ttl_days = invitation_ttl_days
        self.default_color = default_color

    # -----------------------------------------------------------------------
    # Users
    # -----------------------------------------------------------------------

    def set_display_name(self, caller_id: str | None, name: str) -> None:
        """Record the caller's own display name, shown to invitees as the inviter."""
        caller_id = require_caller(caller_id)
        with self.store.transaction() as db:
            user = users.set_display_name(db, caller_id, name)
        log_event("user_update", caller_id=caller_id, name=user.name)

    # -----------------------------------------------------------------------
    # Projects
    # -----------------------------------------------------------------------

    def get_project(self, caller_id: str | None, project_id: str) -> ProjectView:
        """Raise ProjectNotFoundError unless the caller owns or is a member of it."""
        with self.store.snapshot() as db:
            project = db.projects.get(project_id)
            if project is None:
                raise ProjectNotFoundError(project_id)
            access = self.access.resolve(db, caller_id, project)
            if not access.can_read:
                raise ProjectNotFoundError(project_id)
            return projects.build_view(db, project, access)

    def list_projects(self, caller_id: str | None) -> list[ProjectView]:
        if not caller_id:
            return []
        with self.store.snapshot() as db:
            return projects.list_views(db, caller_id)

    def create_project(
        self,
        caller_id: str | None,
        name: str,
        *,
        description: str | None = None,
        link: str | None = None,
        color: str | None = None,
    ) -> str:
        caller_id = require_caller(caller_id)
        with self.store.transaction() as db:
            project = projects.create_project(
                db,
                caller_id,
                name,
                color if color is not None else self.default_color,
                description=description,
                link=link,
            )
        log_event("project_create", caller_id=caller_id, project_id=project.id, name=project.name)
        return project.id

    def update_project(
        self,
        caller_id: str | None,
        project_id: str,
        *,
        name: str | None = None,
        description: str | None = None,
        link: str | None = None,
        color: str | None = None,
    ) -> str:
        caller_id = require_caller(caller_id)
        fields = {"name": name, "description": description, "link": link, "color": color}
        with self.store.transaction() as db:
            project = get_project(db, project_id)
            self.access.require_owner(db, caller_id, project, "update the project")
            projects.update_project(project, **fields)
        log_event(
            "project_update",
            caller_id=caller_id,
            project_id=project_id,
            fields=sorted(k for k, v in fields.items() if v is not None),
        )
        return project_id

    def delete_project(self, caller_id: str | None, project_id: str) -> None:
        caller_id = require_caller(caller_id)
        with self.store.transaction() as db:
            project = get_project(db, project_id)
            self.access.require_owner(db, caller_id, project, "delete the project")
            steps_deleted, subtasks_deleted = projects.delete_project(db, project)
        log_event(
            "project_delete",
            caller_id=caller_id,
            project_id=project_id,
            steps_deleted=steps_deleted,
            subtasks_deleted=subtasks_deleted,
        )

    # -----------------------------------------------------------------------
    # Steps
    # -----------------------------------------------------------------------

    def list_steps(self, caller_id: str | None, project_id: str) -> list[Step]:
        with self.store.snapshot() as db:
            if not self._readable(db, caller_id, project_id):
                return []
            return steps_for_project(db, project_id)

    def create_step(
        self,
        caller_id: str | None,
        project_id: str,
        title: str,
        description: str | None = None,
    ) -> str:
        caller_id = require_caller(caller_id)
        with self.store.transaction() as db:
            project = get_project(db, project_id)
            self.access.require_writer(db, caller_id, project, "create steps")
            step = workflow.create_step(db, project.id, title, description)
        log_event(
            "step_create",
            caller_id=caller_id,
            project_id=project_id,
            step_id=step.id,
            order=step.order,
        )
        return step.id

    def toggle_step_complete(self, caller_id: str | None, step_id: str) -> None:
        caller_id = require_caller(caller_id)
        with self.store.transaction() as db:
            step, project = self._step_context(db, step_id)
            self.access.require_writer(db, caller_id, project, "complete steps")
            workflow.toggle_step_complete(db, step)
        log_event(
            "step_toggle",
            caller_id=caller_id,
            project_id=project.id,
            step_id=step_id,
            order=step.order,
            is_completed=step.is_completed,
        )

    def remove_step(self, caller_id: str | None, step_id: str) -> None:
        caller_id = require_caller(caller_id)
        with self.store.transaction() as db:
            step, project = self._step_context(db, step_id)
            self.access.require_writer(db, caller_id, project, "remove steps")
            survivors = workflow.remove_step(db, step)
        log_event(
            "step_remove",
            caller_id=caller_id,
            project_id=project.id,
            step_id=step_id,
            remaining_steps=len(survivors),
        )

    def update_step(
        self,
        caller_id: str | None,
        step_id: str,
        title: str,
        description: str | None = None,
        order: int | None = None,
    ) -> str:
        caller_id = require_caller(caller_id)
        with self.store.transaction() as db:
            step, project = self._step_context(db, step_id)
            self.access.require_writer(db, caller_id, project, "update steps")
            workflow.update_step(db, step, title, description, order)
        log_event(
            "step_update",
            caller_id=caller_id,
            project_id=project.id,
            step_id=step_id,
            order=step.order,
        )
        return step_id

    def reorder_steps(
        self, caller_id: str | None, project_id: str, step_ids: Sequence[str]
    ) -> None:
        caller_id = require_caller(caller_id)
        with self.store.transaction() as db:
            project = get_project(db, project_id)
            self.access.require_writer(db, caller_id, project, "reorder steps")
            ordered = workflow.reorder_steps(db, project.id, step_ids)
        log_event(
            "steps_reorder",
            caller_id=caller_id,
            project_id=project_id,
            step_count=len(ordered),
        )

    # -----------------------------------------------------------------------
    # Subtasks
    # -----------------------------------------------------------------------

    def list_subtasks(self, caller_id: str | None, step_ids: Sequence[str]) -> list[Subtask]:
        """Subtasks of the given steps, by step then order. Unreadable steps are omitted."""
        results: list[Subtask] = []
        with self.store.snapshot() as db:
            for step_id in step_ids:
                step = db.steps.get(step_id)
                if step is None or not self._readable(db, caller_id, step.project_id):
                    continue
                results.extend(subtasks_for_step(db, step.id))
        return results

    def create_subtask(self, caller_id: str | None, step_id: str, title: str) -> str:
        caller_id = require_caller(caller_id)
        with self.store.transaction() as db:
            step, project = self._step_context(db, step_id)
            self.access.require_writer(db, caller_id, project, "create subtasks")
            subtask = workflow.create_subtask(db, step, title)
        log_event(
            "subtask_create",
            caller_id=caller_id,
            project_id=project.id,
            step_id=step_id,
            subtask_id=subtask.id,
        )
        return subtask.id

    def update_subtask(
        self,
        caller_id: str | None,
        subtask_id: str,
        title: str,
        is_completed: bool | None = None,
    ) -> str:
        caller_id = require_caller(caller_id)
        with self.store.transaction() as db:
            subtask = get_subtask(db, subtask_id)
            _step, project = self._step_context(db, subtask.step_id)
            self.access.require_writer(db, caller_id, project, "update subtasks")
            workflow.update_subtask(subtask, title, is_completed)
        log_event(
            "subtask_update",
            caller_id=caller_id,
            project_id=project.id,
            subtask_id=subtask_id,
            is_completed=subtask.is_completed,
        )
        return subtask_id

    def remove_subtask(self, caller_id: str | None, subtask_id: str) -> None:
        caller_id = require_caller(caller_id)
        with self.store.transaction() as db:
            subtask = get_subtask(db, subtask_id)
            _step, project = self._step_context(db, subtask.step_id)
            self.access.require_writer(db, caller_id, project, "remove subtasks")
            workflow.remove_subtask(db, subtask)
        log_event("subtask_remove", caller_id=caller_id, project_id=project.id, subtask_id=subtask_id)

    # -----------------------------------------------------------------------
    # Invitations
    # -----------------------------------------------------------------------

    def create_invitation(
        self, caller_id: str | None, project_id: str, permission: Permission | str
    ) -> str:
        caller_id = require_caller(caller_id)
        permission = _coerce_permission(permission)
        with self.store.transaction() as db:
            project = get_project(db, project_id)
            self.access.require_owner(db, caller_id, project, "invite collaborators")
            invitation = invitations.create_invitation(
                db,
                project,
                caller_id,
                permission,
                self.clock.now(),
                self.invitation_ttl_days,
            )
        log_event(
            "invitation_create",
            caller_id=caller_id,
            project_id=project_id,
            invitation_id=invitation.id,
            permission=invitation.permission,
            token_hint=token_hint(invitation.token),
            expires_utc=invitation.expires_utc,
        )
        return invitation.token

    def list_invitations(self, caller_id: str | None, project_id: str) -> list[InvitationView]:
        now = self.clock.now()
        with self.store.snapshot() as db:
            project = db.projects.get(project_id)
            if project is None or not self.access.resolve(db, caller_id, project).is_owner:
                return []
            return [
                InvitationView(invitation=inv, is_expired=invitations.is_expired(inv, now))
                for inv in invitations_for_project(db, project_id)
            ]

    def get_invitation_details(self, token: str) -> InvitationDetails:
        """Public lookup; never mutates storage, even for an expired invitation."""
        with self.store.snapshot() as db:
            return invitations.describe_invitation(db, token, self.clock.now())

    def accept_invitation(self, caller_id: str | None, token: str) -> str:
        caller_id = require_caller(caller_id)
        with self.store.transaction() as db:
            invitation = invitations.accept_invitation(db, token, caller_id, self.clock.now())
        log_event(
            "invitation_accept",
            caller_id=caller_id,
            project_id=invitation.project_id,
            invitation_id=invitation.id,
            permission=invitation.permission,
        )
        return invitation.project_id

    def decline_invitation(self, caller_id: str | None, token: str) -> None:
        caller_id = require_caller(caller_id)
        with self.store.transaction() as db:
            invitation = invitations.decline_invitation(db, token, self.clock.now())
        log_event(
            "invitation_decline",
            caller_id=caller_id,
            project_id=invitation.project_id,
            invitation_id=invitation.id,
        )

    # -----------------------------------------------------------------------
    # Members
    # -----------------------------------------------------------------------

    def list_members(self, caller_id: str | None, project_id: str) -> list[ProjectMember]:
        with self.store.snapshot() as db:
            if not self._readable(db, caller_id, project_id):
                return []
            return members_for_project(db, project_id)

    def update_member_permission(
        self,
        caller_id: str | None,
        project_id: str,
        user_id: str,
        permission: Permission | str,
    ) -> None:
        caller_id = require_caller(caller_id)
        permission = _coerce_permission(permission)
        with self.store.transaction() as db:
            project = get_project(db, project_id)
            self.access.require_owner(db, caller_id, project, "change member permissions")
            members.set_permission(db, project_id, user_id, permission)
        log_event(
            "member_update",
            caller_id=caller_id,
            project_id=project_id,
            user_id=user_id,
            permission=permission,
        )

    def remove_member(self, caller_id: str | None, project_id: str, user_id: str) -> None:
        caller_id = require_caller(caller_id)
        with self.store.transaction() as db:
            project = get_project(db, project_id)
            self.access.require_owner(db, caller_id, project, "remove members")
            members.remove_member(db, project_id, user_id)
        log_event("member_remove", caller_id=caller_id, project_id=project_id, user_id=user_id)

    def leave_project(self, caller_id: str | None, project_id: str) -> None:
        caller_id = require_caller(caller_id)
        with self.store.transaction() as db:
            project = get_project(db, project_id)
            self.access.require_member(db, caller_id, project, "leave the project")
            members.remove_member(db, project_id, caller_id)
        log_event("member_leave", caller_id=caller_id, project_id=project_id)

    # -----------------------------------------------------------------------
    # Notes
    # -----------------------------------------------------------------------

    def list_notes(self, caller_id: str | None, project_id: str) -> list[Note]:
        with self.store.snapshot() as db:
            if not self._readable(db, caller_id, project_id):
                return []
            return notes_for_project(db, project_id)

    def create_note(self, caller_id: str | None, project_id: str, content: str) -> str:
        caller_id = require_caller(caller_id)
        with self.store.transaction() as db:
            project = get_project(db, project_id)
            self.access.require_writer(db, caller_id, project, "add notes")
            note = notes.create_note(db, project.id, caller_id, content, self._now_utc())
        log_event("note_create", caller_id=caller_id, project_id=project_id, note_id=note.id)
        return note.id

    def update_note(self, caller_id: str | None, note_id: str, content: str) -> str:
        caller_id = require_caller(caller_id)
        with self.store.transaction() as db:
            note = get_note(db, note_id)
            notes.update_note(note, caller_id, content, self._now_utc())
        log_event("note_update", caller_id=caller_id, project_id=note.project_id, note_id=note_id)
        return note_id

    def remove_note(self, caller_id: str | None, note_id: str) -> None:
        caller_id = require_caller(caller_id)
        with self.store.transaction() as db:
            note = get_note(db, note_id)
            notes.remove_note(db, note, caller_id)
        log_event("note_remove", caller_id=caller_id, project_id=note.project_id, note_id=note_id)

    # -----------------------------------------------------------------------
    # Private helpers
    # -----------------------------------------------------------------------

    def _readable(self, db: Database, caller_id: str | None, project_id: str) -> bool:
        project = db.projects.get(project_id)
        if project is None:
            return False
        return self.access.resolve(db, caller_id, project).can_read

    def _step_context(self, db: Database, step_id: str) -> tuple[Step, Project]:
        step = get_step(db, step_id)
        return step, get_project(db, step.project_id)

    def _now_utc(self) -> str:
        return to_utc_iso_z(self.clock.now())


def _coerce_permission(value: Permission | str) -> Permission:
    try:
        return Permission(value)
    except ValueError as exc:
        raise ValidationError(
            f"permission must be one of: {', '.join(p.value for p in Permission)}"
        ) from exc
