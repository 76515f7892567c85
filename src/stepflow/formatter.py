"""CLI output formatting helpers.

One blank line between semantic segments, explicit empty-state feedback,
no colors or text decorations.
"""

from __future__ import annotations

from collections.abc import Iterable

from .invitations import InvitationDetails, InvitationView
from .models import Note, ProjectMember, Step, Subtask
from .projects import ProjectView

_EMPTY = "(none)"


def print_segment(lines: Iterable[str], *, trailing_blank: bool = False) -> None:
    """Print a semantic output segment, with an empty-state line if it has none."""
    printed = False
    for line in lines:
        print(line)
        printed = True
    if not printed:
        print(_EMPTY)
    if trailing_blank:
        print()


def format_progress(progress: float) -> str:
    return f"{progress:.2f}%"


def format_project_line(view: ProjectView) -> str:
    role = view.role.value
    if view.permission is not None:
        role = f"{role}/{view.permission.value}"
    return (
        f"{view.project.name} ({view.project.id}) [{role}] "
        f"{format_progress(view.progress)}"
    )


def format_project_details(view: ProjectView) -> list[str]:
    project = view.project
    summary = view.summary
    lines = [format_project_line(view)]
    if project.description:
        lines.append(f"description: {project.description}")
    if project.link:
        lines.append(f"link: {project.link}")
    lines.append(f"color: {project.color}")
    lines.append(f"steps: {summary.completed_steps}/{summary.total_steps} completed")
    lines.append(f"subtasks: {summary.completed_subtasks}/{summary.total_subtasks} completed")
    return lines


def format_step(step: Step) -> str:
    if step.is_completed:
        marker = "[x]"
    elif step.is_unlocked:
        marker = "[ ]"
    else:
        marker = "[-]"
    return f"{step.order + 1}. {marker} {step.title} ({step.id})"


def format_subtask(subtask: Subtask) -> str:
    marker = "[x]" if subtask.is_completed else "[ ]"
    return f"  {marker} {subtask.title} ({subtask.id})"


def format_steps(steps: list[Step], subtasks: list[Subtask]) -> list[str]:
    by_step: dict[str, list[Subtask]] = {}
    for subtask in subtasks:
        by_step.setdefault(subtask.step_id, []).append(subtask)
    lines: list[str] = []
    for step in steps:
        lines.append(format_step(step))
        lines.extend(format_subtask(t) for t in by_step.get(step.id, []))
    return lines


def format_member(member: ProjectMember) -> str:
    return f"{member.user_id} [{member.permission.value}] added {member.added_utc} by {member.added_by}"


def format_invitation_view(view: InvitationView) -> str:
    inv = view.invitation
    status = "expired" if view.is_expired else inv.status.value
    return f"{inv.id} [{inv.permission.value}] {status} until {inv.expires_utc}"


def format_invitation_details(details: InvitationDetails) -> list[str]:
    lines = [f"status: {details.status}"]
    if details.project is None:
        return lines
    lines.append(f"project: {details.project.name} ({details.project.id})")
    lines.append(f"invited by: {details.inviter_name}")
    if details.permission is not None:
        lines.append(f"permission: {details.permission.value}")
    lines.append(f"expires: {details.expires_utc}")
    lines.append(f"expired: {'yes' if details.is_expired else 'no'}")
    return lines


def format_note(note: Note) -> str:
    return f"{note.created_utc} {note.user_id} ({note.id}): {note.content}"
