"""Project aggregate: enriched views, project CRUD and cascade delete."""

from __future__ import annotations

from dataclasses import dataclass

from .access import Access, resolve_access
from .models import Database, Permission, Project, Role, new_id
from .progress import ProgressSummary, compute_progress
from .queries import (
    memberships_for_user,
    projects_owned_by,
    steps_for_project,
    subtasks_by_step,
)
from .workflow import require_text


@dataclass(frozen=True)
class ProjectView:
    project: Project
    role: Role
    # None for owners: their permission is implicit, not a constrained value.
    permission: Permission | None
    summary: ProgressSummary

    @property
    def progress(self) -> float:
        return self.summary.progress


def build_view(db: Database, project: Project, access: Access) -> ProjectView:
    steps = steps_for_project(db, project.id)
    return ProjectView(
        project=project,
        role=access.role,
        permission=None if access.is_owner else access.permission,
        summary=compute_progress(steps, subtasks_by_step(db, steps)),
    )


def list_views(db: Database, caller_id: str) -> list[ProjectView]:
    """Owned projects first, then member projects. Dangling memberships are skipped."""
    views: list[ProjectView] = []
    for project in projects_owned_by(db, caller_id):
        views.append(build_view(db, project, resolve_access(db, caller_id, project)))
    for membership in memberships_for_user(db, caller_id):
        project = db.projects.get(membership.project_id)
        if project is None or project.owner_id == caller_id:
            continue
        views.append(build_view(db, project, resolve_access(db, caller_id, project)))
    return views


def create_project(
    db: Database,
    owner_id: str,
    name: str,
    color: str,
    description: str | None = None,
    link: str | None = None,
) -> Project:
    project = Project(
        id=new_id(),
        owner_id=owner_id,
        name=require_text(name, "name"),
        description=description,
        link=link,
        color=require_text(color, "color"),
    )
    db.projects[project.id] = project
    return project


def update_project(
    project: Project,
    *,
    name: str | None = None,
    description: str | None = None,
    link: str | None = None,
    color: str | None = None,
) -> Project:
    """Partial update; None leaves a field unchanged."""
    if name is not None:
        project.name = require_text(name, "name")
    if description is not None:
        project.description = description
    if link is not None:
        project.link = link
    if color is not None:
        project.color = require_text(color, "color")
    return project


def delete_project(db: Database, project: Project) -> tuple[int, int]:
    """Delete the project with all its steps and subtasks as one batch.

    Memberships, invitations and notes of the project are left in place.
    Returns (steps_deleted, subtasks_deleted).
    """
    step_ids = [s.id for s in steps_for_project(db, project.id)]
    step_id_set = set(step_ids)
    subtask_ids = [t.id for t in db.subtasks.values() if t.step_id in step_id_set]

    for subtask_id in subtask_ids:
        del db.subtasks[subtask_id]
    for step_id in step_ids:
        del db.steps[step_id]
    del db.projects[project.id]
    return len(step_ids), len(subtask_ids)
