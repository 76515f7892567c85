"""Tests for step and subtask operations through the engine."""

import pytest

from helpers import MEMBER, OUTSIDER, OWNER, FakeClock, add_steps, join
from stepflow.engine import Engine
from stepflow.errors import (
    NotAuthenticatedError,
    ProjectNotFoundError,
    StepLockedError,
    StepNotFoundError,
    SubtaskNotFoundError,
    UnauthorizedError,
    ValidationError,
)
from stepflow.store import Store


def step_states(engine: Engine, project_id: str) -> list[tuple[int, bool, bool]]:
    return [
        (s.order, s.is_completed, s.is_unlocked)
        for s in engine.list_steps(OWNER, project_id)
    ]


def test_create_steps_are_dense_and_first_unlocked(engine: Engine, project_id: str) -> None:
    add_steps(engine, project_id, "A", "B", "C")
    assert step_states(engine, project_id) == [
        (0, False, True),
        (1, False, False),
        (2, False, False),
    ]


def test_create_step_unknown_project(engine: Engine) -> None:
    with pytest.raises(ProjectNotFoundError):
        engine.create_step(OWNER, "missing", "A")


def test_create_step_unauthenticated(engine: Engine, project_id: str) -> None:
    with pytest.raises(NotAuthenticatedError):
        engine.create_step(None, project_id, "A")


def test_view_member_cannot_create_step_but_can_read(engine: Engine, project_id: str) -> None:
    join(engine, project_id, MEMBER, "view")

    with pytest.raises(UnauthorizedError):
        engine.create_step(MEMBER, project_id, "A")

    view = engine.get_project(MEMBER, project_id)
    assert view.project.id == project_id


def test_modify_member_is_read_only_by_default(engine: Engine, project_id: str) -> None:
    (step_id,) = add_steps(engine, project_id, "A")
    join(engine, project_id, MEMBER, "modify")

    with pytest.raises(UnauthorizedError):
        engine.toggle_step_complete(MEMBER, step_id)
    with pytest.raises(UnauthorizedError):
        engine.remove_step(MEMBER, step_id)


def test_modify_member_can_write_when_enabled(store: Store, clock: FakeClock) -> None:
    engine = Engine(store, clock, member_write_access=True)
    project_id = engine.create_project(OWNER, "Shared")
    join(engine, project_id, MEMBER, "modify")
    join(engine, project_id, OUTSIDER, "view")

    step_id = engine.create_step(MEMBER, project_id, "A")
    engine.toggle_step_complete(MEMBER, step_id)
    assert step_states(engine, project_id) == [(0, True, True)]

    with pytest.raises(UnauthorizedError):
        engine.create_step(OUTSIDER, project_id, "B")
    with pytest.raises(UnauthorizedError):
        engine.delete_project(MEMBER, project_id)


def test_toggle_locked_step(engine: Engine, project_id: str) -> None:
    _a, b = add_steps(engine, project_id, "A", "B")
    with pytest.raises(StepLockedError):
        engine.toggle_step_complete(OWNER, b)


def test_toggle_unknown_step(engine: Engine) -> None:
    with pytest.raises(StepNotFoundError):
        engine.toggle_step_complete(OWNER, "missing")


def test_outsider_cannot_toggle(engine: Engine, project_id: str) -> None:
    (a,) = add_steps(engine, project_id, "A")
    with pytest.raises(UnauthorizedError):
        engine.toggle_step_complete(OUTSIDER, a)
    assert step_states(engine, project_id) == [(0, False, True)]


def test_undo_cascade_through_engine(engine: Engine, project_id: str) -> None:
    ids = add_steps(engine, project_id, "S0", "S1", "S2", "S3", "S4")
    for step_id in ids:
        engine.toggle_step_complete(OWNER, step_id)
    own = engine.create_subtask(OWNER, ids[1], "own")
    later = engine.create_subtask(OWNER, ids[3], "later")
    engine.update_subtask(OWNER, own, "own", is_completed=True)
    engine.update_subtask(OWNER, later, "later", is_completed=True)

    engine.toggle_step_complete(OWNER, ids[1])

    assert step_states(engine, project_id) == [
        (0, True, True),
        (1, False, True),
        (2, False, False),
        (3, False, False),
        (4, False, False),
    ]
    subtasks = {t.id: t for t in engine.list_subtasks(OWNER, ids)}
    assert not subtasks[own].is_completed
    assert subtasks[later].is_completed


def test_remove_step_reflows(engine: Engine, project_id: str) -> None:
    a, b, c = add_steps(engine, project_id, "A", "B", "C")
    engine.toggle_step_complete(OWNER, a)
    engine.toggle_step_complete(OWNER, b)

    engine.remove_step(OWNER, b)

    steps = engine.list_steps(OWNER, project_id)
    assert [s.id for s in steps] == [a, c]
    assert step_states(engine, project_id) == [(0, True, True), (1, False, True)]


def test_failed_operation_leaves_state_untouched(engine: Engine, project_id: str) -> None:
    a, _b = add_steps(engine, project_id, "A", "B")
    with pytest.raises(ValidationError):
        engine.update_step(OWNER, a, "Renamed", order=5)
    titles = [s.title for s in engine.list_steps(OWNER, project_id)]
    assert titles == ["A", "B"]


def test_update_step_returns_id(engine: Engine, project_id: str) -> None:
    (a,) = add_steps(engine, project_id, "A")
    assert engine.update_step(OWNER, a, "A2", "details") == a
    (step,) = engine.list_steps(OWNER, project_id)
    assert (step.title, step.description) == ("A2", "details")


def test_reorder_steps_through_engine(engine: Engine, project_id: str) -> None:
    a, b, c = add_steps(engine, project_id, "A", "B", "C")
    engine.reorder_steps(OWNER, project_id, [b, c, a])
    assert [s.id for s in engine.list_steps(OWNER, project_id)] == [b, c, a]
    assert step_states(engine, project_id) == [
        (0, False, True),
        (1, False, False),
        (2, False, False),
    ]


def test_list_steps_is_empty_for_outsiders(engine: Engine, project_id: str) -> None:
    add_steps(engine, project_id, "A")
    assert engine.list_steps(OUTSIDER, project_id) == []
    assert engine.list_steps(None, project_id) == []
    assert engine.list_steps(OWNER, "missing") == []


def test_list_steps_visible_to_members(engine: Engine, project_id: str) -> None:
    add_steps(engine, project_id, "A", "B")
    join(engine, project_id, MEMBER)
    assert [s.title for s in engine.list_steps(MEMBER, project_id)] == ["A", "B"]


def test_returned_steps_are_detached_copies(engine: Engine, project_id: str) -> None:
    add_steps(engine, project_id, "A")
    (step,) = engine.list_steps(OWNER, project_id)
    step.is_completed = True
    assert step_states(engine, project_id) == [(0, False, True)]


# ---------------------------------------------------------------------------
# Subtasks
# ---------------------------------------------------------------------------


def test_subtask_crud(engine: Engine, project_id: str) -> None:
    (a,) = add_steps(engine, project_id, "A")
    first = engine.create_subtask(OWNER, a, "one")
    second = engine.create_subtask(OWNER, a, "two")

    engine.update_subtask(OWNER, second, "two!", is_completed=True)
    engine.remove_subtask(OWNER, first)

    (remaining,) = engine.list_subtasks(OWNER, [a])
    assert remaining.id == second
    assert (remaining.title, remaining.is_completed, remaining.order) == ("two!", True, 0)


def test_subtask_unknown_ids(engine: Engine) -> None:
    with pytest.raises(StepNotFoundError):
        engine.create_subtask(OWNER, "missing", "x")
    with pytest.raises(SubtaskNotFoundError):
        engine.update_subtask(OWNER, "missing", "x")
    with pytest.raises(SubtaskNotFoundError):
        engine.remove_subtask(OWNER, "missing")


def test_subtask_mutations_are_owner_only(engine: Engine, project_id: str) -> None:
    (a,) = add_steps(engine, project_id, "A")
    subtask = engine.create_subtask(OWNER, a, "one")
    join(engine, project_id, MEMBER, "modify")

    with pytest.raises(UnauthorizedError):
        engine.create_subtask(MEMBER, a, "two")
    with pytest.raises(UnauthorizedError):
        engine.update_subtask(MEMBER, subtask, "renamed")
    with pytest.raises(UnauthorizedError):
        engine.remove_subtask(MEMBER, subtask)


def test_list_subtasks_skips_unreadable_steps(engine: Engine, project_id: str) -> None:
    (a,) = add_steps(engine, project_id, "A")
    engine.create_subtask(OWNER, a, "one")
    other_project = engine.create_project(OUTSIDER, "Private")
    other_step = engine.create_step(OUTSIDER, other_project, "Hidden")
    engine.create_subtask(OUTSIDER, other_step, "secret")

    titles = [t.title for t in engine.list_subtasks(OWNER, [a, other_step, "missing"])]
    assert titles == ["one"]
