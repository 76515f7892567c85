"""Step/subtask state machine: creation order, completion cascade, delete reflow."""

from __future__ import annotations

from collections.abc import Sequence

from .errors import StepLockedError, ValidationError
from .models import Database, Step, Subtask, new_id
from .queries import step_at_order, steps_for_project, subtasks_for_step

# ---------------------------------------------------------------------------
# Steps
# ---------------------------------------------------------------------------


def create_step(
    db: Database,
    project_id: str,
    title: str,
    description: str | None = None,
) -> Step:
    """Append a step at the end of the project. Only a first step starts unlocked."""
    title = require_text(title, "title")
    order = len(steps_for_project(db, project_id))
    step = Step(
        id=new_id(),
        project_id=project_id,
        title=title,
        description=description,
        order=order,
        is_completed=False,
        is_unlocked=order == 0,
    )
    db.steps[step.id] = step
    return step


def toggle_step_complete(db: Database, step: Step) -> Step:
    """Flip completion of an unlocked step and cascade the consequences.

    Completing unlocks the next step. Undoing relocks and uncompletes every
    later step and resets this step's own subtasks.
    """
    if not step.is_unlocked:
        raise StepLockedError(step.id)

    step.is_completed = not step.is_completed

    if step.is_completed:
        next_step = step_at_order(db, step.project_id, step.order + 1)
        if next_step is not None and not next_step.is_unlocked:
            next_step.is_unlocked = True
        return step

    for later in steps_for_project(db, step.project_id):
        if later.order > step.order:
            later.is_completed = False
            later.is_unlocked = False
    for subtask in subtasks_for_step(db, step.id):
        if subtask.is_completed:
            subtask.is_completed = False
    return step


def remove_step(db: Database, step: Step) -> list[Step]:
    """Delete a step with its subtasks, then reflow the surviving steps."""
    for subtask_id in [t.id for t in subtasks_for_step(db, step.id)]:
        del db.subtasks[subtask_id]
    survivors = [s for s in steps_for_project(db, step.project_id) if s.id != step.id]
    del db.steps[step.id]
    reflow_steps(survivors)
    return survivors


def update_step(
    db: Database,
    step: Step,
    title: str,
    description: str | None = None,
    order: int | None = None,
) -> Step:
    """Update free-text fields and, optionally, the raw order value.

    A bare order change does not renormalize siblings; callers wanting a
    consistent sequence use reorder_steps.
    """
    step.title = require_text(title, "title")
    step.description = description
    if order is not None:
        count = len(steps_for_project(db, step.project_id))
        if not 0 <= order < count:
            raise ValidationError(f"order must be between 0 and {count - 1}, got {order}")
        step.order = order
    return step


def reorder_steps(db: Database, project_id: str, step_ids: Sequence[str]) -> list[Step]:
    """Apply a full permutation of the project's steps and reflow them."""
    steps = steps_for_project(db, project_id)
    by_id = {s.id: s for s in steps}
    if len(step_ids) != len(by_id) or set(step_ids) != set(by_id):
        raise ValidationError("step_ids must list every step of the project exactly once")
    ordered = [by_id[step_id] for step_id in step_ids]
    reflow_steps(ordered)
    return ordered


def reflow_steps(steps: Sequence[Step]) -> None:
    """Renumber steps densely in the given sequence and recompute unlock/completion.

    Each step is unlocked iff it is first or its predecessor (as already
    recomputed) is completed; a step that loses its unlock loses completion.
    """
    previous: Step | None = None
    for index, step in enumerate(steps):
        unlocked = previous is None or previous.is_completed
        step.order = index
        step.is_unlocked = unlocked
        step.is_completed = step.is_completed and unlocked
        previous = step


# ---------------------------------------------------------------------------
# Subtasks
# ---------------------------------------------------------------------------


def create_subtask(db: Database, step: Step, title: str) -> Subtask:
    """Append a subtask at the end of the step."""
    title = require_text(title, "title")
    subtask = Subtask(
        id=new_id(),
        step_id=step.id,
        title=title,
        is_completed=False,
        order=len(subtasks_for_step(db, step.id)),
    )
    db.subtasks[subtask.id] = subtask
    return subtask


def update_subtask(
    subtask: Subtask,
    title: str,
    is_completed: bool | None = None,
) -> Subtask:
    subtask.title = require_text(title, "title")
    if is_completed is not None:
        subtask.is_completed = is_completed
    return subtask


def remove_subtask(db: Database, subtask: Subtask) -> None:
    """Delete a subtask and close the gap in its step's order sequence."""
    del db.subtasks[subtask.id]
    for index, sibling in enumerate(subtasks_for_step(db, subtask.step_id)):
        sibling.order = index


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def require_text(value: str, field_name: str) -> str:
    """Strip value and raise ValidationError if nothing is left."""
    stripped = value.strip() if isinstance(value, str) else ""
    if not stripped:
        raise ValidationError(f"{field_name} must be a non-empty string")
    return stripped
