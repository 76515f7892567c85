"""Tests for the project aggregate."""

import pytest

from helpers import MEMBER, OUTSIDER, OWNER, add_steps, join
from stepflow.constants import DEFAULT_PROJECT_COLOR
from stepflow.engine import Engine
from stepflow.errors import (
    NotAuthenticatedError,
    ProjectNotFoundError,
    UnauthorizedError,
    ValidationError,
)
from stepflow.models import Permission, Role
from stepflow.store import Store


def test_create_project_defaults(engine: Engine) -> None:
    project_id = engine.create_project(OWNER, "  Launch  ")

    view = engine.get_project(OWNER, project_id)
    assert view.project.name == "Launch"
    assert view.project.owner_id == OWNER
    assert view.project.color == DEFAULT_PROJECT_COLOR
    assert view.project.description is None
    assert view.role == Role.OWNER
    assert view.permission is None
    assert view.progress == 0


def test_create_project_optional_fields(engine: Engine) -> None:
    project_id = engine.create_project(
        OWNER, "Site", description="Marketing site", link="https://example.com", color="#ff0000"
    )
    project = engine.get_project(OWNER, project_id).project
    assert project.description == "Marketing site"
    assert project.link == "https://example.com"
    assert project.color == "#ff0000"


def test_create_project_requires_caller_and_name(engine: Engine) -> None:
    with pytest.raises(NotAuthenticatedError):
        engine.create_project(None, "Launch")
    with pytest.raises(NotAuthenticatedError):
        engine.create_project("", "Launch")
    with pytest.raises(ValidationError):
        engine.create_project(OWNER, "   ")


def test_get_project_hides_existence_from_outsiders(engine: Engine, project_id: str) -> None:
    with pytest.raises(ProjectNotFoundError):
        engine.get_project(OUTSIDER, project_id)
    with pytest.raises(ProjectNotFoundError):
        engine.get_project(None, project_id)
    with pytest.raises(ProjectNotFoundError):
        engine.get_project(OWNER, "missing")


def test_get_project_progress_from_steps(engine: Engine, project_id: str) -> None:
    a, _b = add_steps(engine, project_id, "A", "B")
    engine.toggle_step_complete(OWNER, a)

    view = engine.get_project(OWNER, project_id)
    assert view.progress == 50.0
    assert view.summary.completed_steps == 1
    assert view.summary.total_steps == 2


def test_get_project_progress_prefers_subtasks(engine: Engine, project_id: str) -> None:
    a, b = add_steps(engine, project_id, "A", "B")
    engine.toggle_step_complete(OWNER, a)
    done = engine.create_subtask(OWNER, b, "one")
    engine.create_subtask(OWNER, b, "two")
    engine.create_subtask(OWNER, b, "three")
    engine.update_subtask(OWNER, done, "one", is_completed=True)

    assert engine.get_project(OWNER, project_id).progress == 33.33


def test_list_projects_owned_then_member(engine: Engine) -> None:
    mine = engine.create_project(MEMBER, "Mine")
    shared = engine.create_project(OWNER, "Shared")
    join(engine, shared, MEMBER, "modify")

    views = engine.list_projects(MEMBER)

    assert [(v.project.id, v.role) for v in views] == [
        (mine, Role.OWNER),
        (shared, Role.MEMBER),
    ]
    assert views[1].permission == Permission.MODIFY


def test_list_projects_anonymous_and_unrelated(engine: Engine, project_id: str) -> None:
    assert engine.list_projects(None) == []
    assert engine.list_projects(OUTSIDER) == []


def test_update_project_is_partial(engine: Engine) -> None:
    project_id = engine.create_project(OWNER, "Launch", description="v1", link="https://a.example")

    assert engine.update_project(OWNER, project_id, name="Launch 2") == project_id

    project = engine.get_project(OWNER, project_id).project
    assert project.name == "Launch 2"
    assert project.description == "v1"
    assert project.link == "https://a.example"


def test_update_project_is_owner_only(engine: Engine, project_id: str) -> None:
    join(engine, project_id, MEMBER, "modify")
    with pytest.raises(UnauthorizedError):
        engine.update_project(MEMBER, project_id, name="Mine now")
    with pytest.raises(UnauthorizedError):
        engine.update_project(OUTSIDER, project_id, name="Mine now")
    with pytest.raises(ProjectNotFoundError):
        engine.update_project(OWNER, "missing", name="x")
    assert engine.get_project(OWNER, project_id).project.name == "Launch"


def test_update_project_rejects_blank_name(engine: Engine, project_id: str) -> None:
    with pytest.raises(ValidationError):
        engine.update_project(OWNER, project_id, name=" ")


def test_delete_project_cascades_steps_and_subtasks(engine: Engine, store: Store, project_id: str) -> None:
    a, b = add_steps(engine, project_id, "A", "B")
    engine.create_subtask(OWNER, a, "one")
    engine.create_subtask(OWNER, b, "two")
    other = engine.create_project(OWNER, "Other")
    (kept_step,) = add_steps(engine, other, "Kept")
    kept_subtask = engine.create_subtask(OWNER, kept_step, "kept")

    engine.delete_project(OWNER, project_id)

    with pytest.raises(ProjectNotFoundError):
        engine.get_project(OWNER, project_id)
    assert engine.list_steps(OWNER, project_id) == []
    with store.snapshot() as db:
        assert list(db.steps) == [kept_step]
        assert list(db.subtasks) == [kept_subtask]


def test_delete_project_leaves_memberships_but_hides_them(engine: Engine, store: Store, project_id: str) -> None:
    join(engine, project_id, MEMBER, "view")

    engine.delete_project(OWNER, project_id)

    with store.snapshot() as db:
        assert [m.user_id for m in db.members.values()] == [MEMBER]
    assert engine.list_projects(MEMBER) == []


def test_delete_project_is_owner_only(engine: Engine, project_id: str) -> None:
    join(engine, project_id, MEMBER, "modify")
    with pytest.raises(UnauthorizedError):
        engine.delete_project(MEMBER, project_id)
    with pytest.raises(NotAuthenticatedError):
        engine.delete_project(None, project_id)
    assert engine.get_project(OWNER, project_id).project.id == project_id
