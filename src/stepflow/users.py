"""Display-name directory filled from the identity provider."""

from __future__ import annotations

from .models import Database, User
from .workflow import require_text


def set_display_name(db: Database, user_id: str, name: str) -> User:
    """Create or replace the directory entry for user_id."""
    user = User(id=user_id, name=require_text(name, "name"))
    db.users[user.id] = user
    return user
