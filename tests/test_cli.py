"""End-to-end tests for the stepflow CLI."""

import json
from pathlib import Path

import pytest

from stepflow import cli


@pytest.fixture
def profile_path(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> str:
    monkeypatch.setattr(cli, "setup_logging", lambda log_file=None: None)
    path = tmp_path / "profile.json"
    path.write_text(
        json.dumps({"data_path": "./data.json", "logs_dir": "./logs"}),
        encoding="utf-8",
    )
    return str(path)


def run(profile_path: str, user: str | None, *args: str) -> None:
    argv = ["-p", profile_path]
    if user is not None:
        argv += ["-u", user]
    cli.main([*argv, *args])


def last_line(capsys: pytest.CaptureFixture[str]) -> str:
    return capsys.readouterr().out.strip().splitlines()[-1]


def test_init_creates_profile(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    path = tmp_path / "new" / "profile.json"

    with pytest.raises(SystemExit) as exc_info:
        cli.main(["-p", str(path), "init"])

    assert exc_info.value.code == 0
    data = json.loads(path.read_text(encoding="utf-8"))
    assert data["data_path"] == "./stepflow.json"
    assert "Created profile" in capsys.readouterr().out


def test_init_refuses_existing_profile(profile_path: str, capsys: pytest.CaptureFixture[str]) -> None:
    with pytest.raises(SystemExit) as exc_info:
        cli.main(["-p", profile_path, "init"])
    assert exc_info.value.code == 1
    assert "already exists" in capsys.readouterr().err


def test_missing_profile_fails(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    with pytest.raises(SystemExit) as exc_info:
        cli.main(["-p", str(tmp_path / "absent.json"), "-u", "alice", "projects"])
    assert exc_info.value.code == 1
    assert "Profile not found" in capsys.readouterr().err


def test_project_and_step_workflow(profile_path: str, capsys: pytest.CaptureFixture[str]) -> None:
    run(profile_path, "alice", "create-project", "Launch")
    project_id = last_line(capsys)

    run(profile_path, "alice", "add-step", project_id, "Draft")
    first = last_line(capsys)
    run(profile_path, "alice", "add-step", project_id, "Review")
    run(profile_path, "alice", "toggle-step", first)
    capsys.readouterr()

    run(profile_path, "alice", "steps", project_id)
    out = capsys.readouterr().out
    assert f"1. [x] Draft ({first})" in out
    assert "2. [ ] Review" in out

    run(profile_path, "alice", "projects")
    assert f"Launch ({project_id}) [owner] 50.00%" in capsys.readouterr().out


def test_empty_listing_prints_none(profile_path: str, capsys: pytest.CaptureFixture[str]) -> None:
    run(profile_path, "alice", "projects")
    assert capsys.readouterr().out.strip() == "(none)"


def test_domain_error_exits_with_message(profile_path: str, capsys: pytest.CaptureFixture[str]) -> None:
    run(profile_path, "alice", "create-project", "Launch")
    project_id = last_line(capsys)
    run(profile_path, "alice", "add-step", project_id, "Draft")
    run(profile_path, "alice", "add-step", project_id, "Review")
    second = last_line(capsys)

    with pytest.raises(SystemExit) as exc_info:
        run(profile_path, "alice", "toggle-step", second)

    assert exc_info.value.code == 1
    assert f"ERROR: Step {second} is locked." in capsys.readouterr().err


def test_anonymous_write_is_rejected(
    profile_path: str, capsys: pytest.CaptureFixture[str], monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.delenv(cli.USER_ENV_VAR, raising=False)
    with pytest.raises(SystemExit) as exc_info:
        run(profile_path, None, "create-project", "Launch")
    assert exc_info.value.code == 1
    assert "Not authenticated" in capsys.readouterr().err


def test_invitation_flow(profile_path: str, capsys: pytest.CaptureFixture[str]) -> None:
    run(profile_path, "alice", "create-project", "Launch")
    project_id = last_line(capsys)
    run(profile_path, "alice", "invite", project_id, "view")
    token = last_line(capsys)

    run(profile_path, None, "invitation", token)
    out = capsys.readouterr().out
    assert "status: pending" in out
    assert f"project: Launch ({project_id})" in out

    assert "invited by: Unknown" in out

    run(profile_path, "alice", "set-name", "Alice")
    run(profile_path, None, "invitation", token)
    assert "invited by: Alice" in capsys.readouterr().out

    run(profile_path, "bob", "accept", token)
    assert last_line(capsys) == project_id

    run(profile_path, "bob", "projects")
    assert "[member/view]" in capsys.readouterr().out

    run(profile_path, "alice", "members", project_id)
    assert "bob [view]" in capsys.readouterr().out


def test_edit_subtask_flags(profile_path: str, capsys: pytest.CaptureFixture[str]) -> None:
    run(profile_path, "alice", "create-project", "Launch")
    project_id = last_line(capsys)
    run(profile_path, "alice", "add-step", project_id, "Draft")
    step_id = last_line(capsys)
    run(profile_path, "alice", "add-subtask", step_id, "Outline")
    subtask_id = last_line(capsys)

    run(profile_path, "alice", "edit-subtask", subtask_id, "Outline", "--done")
    run(profile_path, "alice", "edit-subtask", subtask_id, "Outline v2")
    capsys.readouterr()

    run(profile_path, "alice", "steps", project_id)
    assert f"  [x] Outline v2 ({subtask_id})" in capsys.readouterr().out


def test_invalid_permission_choice(profile_path: str) -> None:
    with pytest.raises(SystemExit) as exc_info:
        run(profile_path, "alice", "invite", "p1", "admin")
    assert exc_info.value.code == 2
