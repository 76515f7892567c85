"""Shared builders for stepflow tests."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

from stepflow.engine import Engine

OWNER = "user-owner"
MEMBER = "user-member"
OUTSIDER = "user-outsider"

START = datetime(2026, 3, 1, 9, 0, 0, tzinfo=UTC)


class FakeClock:
    """Settable clock for deterministic expiry checks."""

    def __init__(self, start: datetime = START) -> None:
        self.current = start

    def now(self) -> datetime:
        return self.current

    def advance(self, **kwargs: float) -> None:
        self.current = self.current + timedelta(**kwargs)


def add_steps(engine: Engine, project_id: str, *titles: str) -> list[str]:
    return [engine.create_step(OWNER, project_id, title) for title in titles]


def join(engine: Engine, project_id: str, user_id: str, permission: str = "view") -> None:
    """Make user_id a member through the invitation path."""
    token = engine.create_invitation(OWNER, project_id, permission)
    engine.accept_invitation(user_id, token)
