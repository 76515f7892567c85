"""CLI bootstrap entry point for stepflow."""

from __future__ import annotations

import argparse
import logging
import os
import sys
import time
from pathlib import Path
from typing import NoReturn

from .constants import CLI_HELP_HINT, STDERR_ERROR_PREFIX
from .engine import Engine
from .errors import StepflowError
from .formatter import (
    format_invitation_details,
    format_invitation_view,
    format_member,
    format_note,
    format_project_details,
    format_project_line,
    format_steps,
    print_segment,
)
from .logging_utils import build_run_log_path, log_event, setup_logging
from .models import Permission
from .profile import Profile, create_profile, load_profile
from .store import Store

USER_ENV_VAR = "STEPFLOW_USER"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="stepflow",
        description="stepflow - shared multi-step project tracker",
    )
    parser.add_argument("-p", "--profile", required=True, help="Path to profile file")
    parser.add_argument("-l", "--log", help="Path to log file (overrides the profile's logs_dir)")
    parser.add_argument(
        "-u",
        "--user",
        default=os.environ.get(USER_ENV_VAR),
        help=f"Caller id (defaults to ${USER_ENV_VAR})",
    )
    sub = parser.add_subparsers(dest="command", required=True, metavar="command")
    permissions = [p.value for p in Permission]

    sub.add_parser("init", help="Create a profile with defaults")

    p = sub.add_parser("set-name", help="Set your display name")
    p.add_argument("name")
    p.set_defaults(handler=_cmd_set_name)

    sub.add_parser("projects", help="List your projects").set_defaults(handler=_cmd_projects)

    p = sub.add_parser("show", help="Show one project")
    p.add_argument("project")
    p.set_defaults(handler=_cmd_show)

    p = sub.add_parser("create-project", help="Create a project")
    p.add_argument("name")
    p.add_argument("--description")
    p.add_argument("--link")
    p.add_argument("--color")
    p.set_defaults(handler=_cmd_create_project)

    p = sub.add_parser("update-project", help="Update project fields")
    p.add_argument("project")
    p.add_argument("--name")
    p.add_argument("--description")
    p.add_argument("--link")
    p.add_argument("--color")
    p.set_defaults(handler=_cmd_update_project)

    p = sub.add_parser("delete-project", help="Delete a project with its steps")
    p.add_argument("project")
    p.set_defaults(handler=_cmd_delete_project)

    p = sub.add_parser("steps", help="List steps and subtasks")
    p.add_argument("project")
    p.set_defaults(handler=_cmd_steps)

    p = sub.add_parser("add-step", help="Append a step")
    p.add_argument("project")
    p.add_argument("title")
    p.add_argument("--description")
    p.set_defaults(handler=_cmd_add_step)

    p = sub.add_parser("toggle-step", help="Complete or reopen a step")
    p.add_argument("step")
    p.set_defaults(handler=_cmd_toggle_step)

    p = sub.add_parser("edit-step", help="Edit a step")
    p.add_argument("step")
    p.add_argument("title")
    p.add_argument("--description")
    p.add_argument("--order", type=int)
    p.set_defaults(handler=_cmd_edit_step)

    p = sub.add_parser("remove-step", help="Remove a step")
    p.add_argument("step")
    p.set_defaults(handler=_cmd_remove_step)

    p = sub.add_parser("reorder-steps", help="Put all steps of a project in a new order")
    p.add_argument("project")
    p.add_argument("steps", nargs="+")
    p.set_defaults(handler=_cmd_reorder_steps)

    p = sub.add_parser("add-subtask", help="Append a subtask to a step")
    p.add_argument("step")
    p.add_argument("title")
    p.set_defaults(handler=_cmd_add_subtask)

    p = sub.add_parser("edit-subtask", help="Edit a subtask")
    p.add_argument("subtask")
    p.add_argument("title")
    done = p.add_mutually_exclusive_group()
    done.add_argument("--done", dest="is_completed", action="store_true", default=None)
    done.add_argument("--not-done", dest="is_completed", action="store_false", default=None)
    p.set_defaults(handler=_cmd_edit_subtask)

    p = sub.add_parser("remove-subtask", help="Remove a subtask")
    p.add_argument("subtask")
    p.set_defaults(handler=_cmd_remove_subtask)

    p = sub.add_parser("invite", help="Create an invitation token")
    p.add_argument("project")
    p.add_argument("permission", choices=permissions)
    p.set_defaults(handler=_cmd_invite)

    p = sub.add_parser("invitations", help="List a project's invitations")
    p.add_argument("project")
    p.set_defaults(handler=_cmd_invitations)

    p = sub.add_parser("invitation", help="Show what a token refers to")
    p.add_argument("token")
    p.set_defaults(handler=_cmd_invitation)

    p = sub.add_parser("accept", help="Accept an invitation")
    p.add_argument("token")
    p.set_defaults(handler=_cmd_accept)

    p = sub.add_parser("decline", help="Decline an invitation")
    p.add_argument("token")
    p.set_defaults(handler=_cmd_decline)

    p = sub.add_parser("members", help="List project members")
    p.add_argument("project")
    p.set_defaults(handler=_cmd_members)

    p = sub.add_parser("set-permission", help="Change a member's permission")
    p.add_argument("project")
    p.add_argument("member")
    p.add_argument("permission", choices=permissions)
    p.set_defaults(handler=_cmd_set_permission)

    p = sub.add_parser("remove-member", help="Remove a member")
    p.add_argument("project")
    p.add_argument("member")
    p.set_defaults(handler=_cmd_remove_member)

    p = sub.add_parser("leave", help="Leave a project you are a member of")
    p.add_argument("project")
    p.set_defaults(handler=_cmd_leave)

    p = sub.add_parser("notes", help="List project notes")
    p.add_argument("project")
    p.set_defaults(handler=_cmd_notes)

    p = sub.add_parser("add-note", help="Add a note")
    p.add_argument("project")
    p.add_argument("content")
    p.set_defaults(handler=_cmd_add_note)

    p = sub.add_parser("edit-note", help="Edit one of your notes")
    p.add_argument("note")
    p.add_argument("content")
    p.set_defaults(handler=_cmd_edit_note)

    p = sub.add_parser("remove-note", help="Remove one of your notes")
    p.add_argument("note")
    p.set_defaults(handler=_cmd_remove_note)

    return parser


def build_engine(profile: Profile) -> Engine:
    return Engine(
        Store(Path(profile.data_path)),
        invitation_ttl_days=profile.invitation_ttl_days,
        member_write_access=profile.member_write_access,
        default_color=profile.default_color,
    )


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the stepflow CLI."""
    args = build_parser().parse_args(argv)

    if args.command == "init":
        try:
            profile = create_profile(args.profile)
        except (StepflowError, OSError) as exc:
            _die(str(exc))
        print(f"Created profile: data at {profile.data_path}")
        sys.exit(0)

    try:
        profile = load_profile(args.profile)
        log_file = args.log
        if log_file is None and profile.logs_dir is not None:
            log_file = build_run_log_path(profile.logs_dir)
        setup_logging(log_file)
        engine = build_engine(profile)
    except (StepflowError, OSError) as exc:
        _die(str(exc))

    started = time.perf_counter()
    try:
        args.handler(engine, args.user, args)
    except StepflowError as exc:
        log_event(
            "command_error",
            level=logging.WARNING,
            command=args.command,
            caller_id=args.user,
            error_type=type(exc).__name__,
            error=str(exc),
        )
        print(f"{STDERR_ERROR_PREFIX}{exc}", file=sys.stderr)
        sys.exit(1)
    log_event(
        "command_exec",
        command=args.command,
        caller_id=args.user,
        elapsed_ms=round((time.perf_counter() - started) * 1000, 1),
    )


def _die(message: str) -> NoReturn:
    print(f"{STDERR_ERROR_PREFIX}{message}", file=sys.stderr)
    print(CLI_HELP_HINT, file=sys.stderr)
    sys.exit(1)


# ---------------------------------------------------------------------------
# Command handlers
# ---------------------------------------------------------------------------


def _cmd_set_name(engine: Engine, user: str | None, args: argparse.Namespace) -> None:
    engine.set_display_name(user, args.name)
    print("Display name updated.")


def _cmd_projects(engine: Engine, user: str | None, args: argparse.Namespace) -> None:
    print_segment(format_project_line(v) for v in engine.list_projects(user))


def _cmd_show(engine: Engine, user: str | None, args: argparse.Namespace) -> None:
    print_segment(format_project_details(engine.get_project(user, args.project)))


def _cmd_create_project(engine: Engine, user: str | None, args: argparse.Namespace) -> None:
    project_id = engine.create_project(
        user,
        args.name,
        description=args.description,
        link=args.link,
        color=args.color,
    )
    print(project_id)


def _cmd_update_project(engine: Engine, user: str | None, args: argparse.Namespace) -> None:
    engine.update_project(
        user,
        args.project,
        name=args.name,
        description=args.description,
        link=args.link,
        color=args.color,
    )
    print("Project updated.")


def _cmd_delete_project(engine: Engine, user: str | None, args: argparse.Namespace) -> None:
    engine.delete_project(user, args.project)
    print("Project deleted.")


def _cmd_steps(engine: Engine, user: str | None, args: argparse.Namespace) -> None:
    steps = engine.list_steps(user, args.project)
    subtasks = engine.list_subtasks(user, [s.id for s in steps])
    print_segment(format_steps(steps, subtasks))


def _cmd_add_step(engine: Engine, user: str | None, args: argparse.Namespace) -> None:
    print(engine.create_step(user, args.project, args.title, args.description))


def _cmd_toggle_step(engine: Engine, user: str | None, args: argparse.Namespace) -> None:
    engine.toggle_step_complete(user, args.step)
    print("Step toggled.")


def _cmd_edit_step(engine: Engine, user: str | None, args: argparse.Namespace) -> None:
    engine.update_step(user, args.step, args.title, args.description, args.order)
    print("Step updated.")


def _cmd_remove_step(engine: Engine, user: str | None, args: argparse.Namespace) -> None:
    engine.remove_step(user, args.step)
    print("Step removed.")


def _cmd_reorder_steps(engine: Engine, user: str | None, args: argparse.Namespace) -> None:
    engine.reorder_steps(user, args.project, args.steps)
    print("Steps reordered.")


def _cmd_add_subtask(engine: Engine, user: str | None, args: argparse.Namespace) -> None:
    print(engine.create_subtask(user, args.step, args.title))


def _cmd_edit_subtask(engine: Engine, user: str | None, args: argparse.Namespace) -> None:
    engine.update_subtask(user, args.subtask, args.title, args.is_completed)
    print("Subtask updated.")


def _cmd_remove_subtask(engine: Engine, user: str | None, args: argparse.Namespace) -> None:
    engine.remove_subtask(user, args.subtask)
    print("Subtask removed.")


def _cmd_invite(engine: Engine, user: str | None, args: argparse.Namespace) -> None:
    print(engine.create_invitation(user, args.project, args.permission))


def _cmd_invitations(engine: Engine, user: str | None, args: argparse.Namespace) -> None:
    print_segment(format_invitation_view(v) for v in engine.list_invitations(user, args.project))


def _cmd_invitation(engine: Engine, user: str | None, args: argparse.Namespace) -> None:
    print_segment(format_invitation_details(engine.get_invitation_details(args.token)))


def _cmd_accept(engine: Engine, user: str | None, args: argparse.Namespace) -> None:
    print(engine.accept_invitation(user, args.token))


def _cmd_decline(engine: Engine, user: str | None, args: argparse.Namespace) -> None:
    engine.decline_invitation(user, args.token)
    print("Invitation declined.")


def _cmd_members(engine: Engine, user: str | None, args: argparse.Namespace) -> None:
    print_segment(format_member(m) for m in engine.list_members(user, args.project))


def _cmd_set_permission(engine: Engine, user: str | None, args: argparse.Namespace) -> None:
    engine.update_member_permission(user, args.project, args.member, args.permission)
    print("Permission updated.")


def _cmd_remove_member(engine: Engine, user: str | None, args: argparse.Namespace) -> None:
    engine.remove_member(user, args.project, args.member)
    print("Member removed.")


def _cmd_leave(engine: Engine, user: str | None, args: argparse.Namespace) -> None:
    engine.leave_project(user, args.project)
    print("Left project.")


def _cmd_notes(engine: Engine, user: str | None, args: argparse.Namespace) -> None:
    print_segment(format_note(n) for n in engine.list_notes(user, args.project))


def _cmd_add_note(engine: Engine, user: str | None, args: argparse.Namespace) -> None:
    print(engine.create_note(user, args.project, args.content))


def _cmd_edit_note(engine: Engine, user: str | None, args: argparse.Namespace) -> None:
    engine.update_note(user, args.note, args.content)
    print("Note updated.")


def _cmd_remove_note(engine: Engine, user: str | None, args: argparse.Namespace) -> None:
    engine.remove_note(user, args.note)
    print("Note removed.")
