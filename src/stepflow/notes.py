"""Project notes, owned by their author."""

from __future__ import annotations

from .errors import UnauthorizedError
from .models import Database, Note, new_id
from .workflow import require_text


def create_note(db: Database, project_id: str, author_id: str, content: str, now_utc: str) -> Note:
    note = Note(
        id=new_id(),
        project_id=project_id,
        content=require_text(content, "content"),
        created_utc=now_utc,
        updated_utc=now_utc,
        user_id=author_id,
    )
    db.notes[note.id] = note
    return note


def update_note(note: Note, caller_id: str, content: str, now_utc: str) -> Note:
    require_author(note, caller_id)
    note.content = require_text(content, "content")
    note.updated_utc = now_utc
    return note


def remove_note(db: Database, note: Note, caller_id: str) -> None:
    require_author(note, caller_id)
    del db.notes[note.id]


def require_author(note: Note, caller_id: str) -> None:
    if note.user_id != caller_id:
        raise UnauthorizedError(f"Only the author may change note {note.id}.")
