"""Logging utilities for stepflow."""

from __future__ import annotations

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any

from .constants import APP_NAME, DATETIME_FORMAT_FILENAME, LOG_FILE_EXTENSION


class StructuredTextFormatter(logging.Formatter):
    """Format all log records as human-readable structured blocks."""

    EVENT_KEY_ORDER: dict[str, list[str]] = {
        # Application lifecycle events
        "app_start": ["ts", "level", "profile_file", "data_file", "log_file", "caller_id"],
        "app_stop": ["ts", "level", "reason", "uptime_ms", "error_type", "error"],
        # Command execution events
        "command_exec": ["ts", "level", "command", "caller_id", "elapsed_ms"],
        "command_error": ["ts", "level", "command", "caller_id", "error_type", "error"],
        # Authorization
        "access_denied": [
            "ts",
            "level",
            "action",
            "caller_id",
            "project_id",
            "role",
            "permission",
        ],
        # Users
        "user_update": ["ts", "level", "caller_id", "name"],
        # Projects
        "project_create": ["ts", "level", "caller_id", "project_id", "name"],
        "project_update": ["ts", "level", "caller_id", "project_id", "fields"],
        "project_delete": [
            "ts",
            "level",
            "caller_id",
            "project_id",
            "steps_deleted",
            "subtasks_deleted",
        ],
        # Steps
        "step_create": ["ts", "level", "caller_id", "project_id", "step_id", "order"],
        "step_toggle": [
            "ts",
            "level",
            "caller_id",
            "project_id",
            "step_id",
            "order",
            "is_completed",
        ],
        "step_update": ["ts", "level", "caller_id", "project_id", "step_id", "order"],
        "step_remove": ["ts", "level", "caller_id", "project_id", "step_id", "remaining_steps"],
        "steps_reorder": ["ts", "level", "caller_id", "project_id", "step_count"],
        # Invitations
        "invitation_create": [
            "ts",
            "level",
            "caller_id",
            "project_id",
            "invitation_id",
            "permission",
            "token_hint",
            "expires_utc",
        ],
        "invitation_accept": [
            "ts",
            "level",
            "caller_id",
            "project_id",
            "invitation_id",
            "permission",
        ],
        "invitation_decline": ["ts", "level", "caller_id", "project_id", "invitation_id"],
    }

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        # Emit a blank line between entries without adding extra trailing lines.
        self._first_entry = True

    def _format_value(self, value: Any) -> str:
        return str(value).replace("\n", "\\n")

    def _ordered_keys(self, event_name: str, data: dict[str, Any]) -> list[str]:
        preferred = self.EVENT_KEY_ORDER.get(event_name, ["ts", "level", "logger"])
        preferred_present = [k for k in preferred if k in data and data[k] is not None]
        remaining = sorted(
            k for k in data.keys() if k not in preferred and data[k] is not None
        )
        return preferred_present + remaining

    def format(self, record: logging.LogRecord) -> str:
        base: dict[str, Any] = {
            "ts": datetime.now().astimezone().isoformat(),
            "level": record.levelname,
            "logger": record.name,
        }

        message = record.getMessage()
        parsed = None
        if message.startswith("{") and message.endswith("}"):
            try:
                parsed = json.loads(message)
            except json.JSONDecodeError:
                parsed = None

        if isinstance(parsed, dict):
            base.update(parsed)
        else:
            base["event"] = record.name
            base["message"] = message

        event_name = str(base.pop("event", record.name))
        lines = [f"=== {event_name} ==="]
        for key in self._ordered_keys(event_name, base):
            lines.append(f"{key}: {self._format_value(base[key])}")

        if record.exc_info:
            lines.append("traceback:")
            lines.append(self.formatException(record.exc_info))

        body = "\n".join(lines)
        if self._first_entry:
            self._first_entry = False
            return body
        return "\n" + body


def _to_log_safe(value: Any) -> Any:
    """Convert values to JSON-serializable, log-safe representations."""
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    if isinstance(value, Path):
        return str(value)
    if isinstance(value, dict):
        return {str(k): _to_log_safe(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [_to_log_safe(v) for v in value]
    return str(value)


def log_event(event: str, level: int = logging.INFO, **fields: Any) -> None:
    """Emit a structured log event."""
    payload: dict[str, Any] = {
        "ts": datetime.now().astimezone().isoformat(),
        "event": event,
    }
    for key, value in fields.items():
        payload[key] = _to_log_safe(value)
    logging.log(level, json.dumps(payload, ensure_ascii=False, separators=(",", ":")))


def build_run_log_path(logs_dir: str) -> str:
    """Build a unique run log path in the configured logs directory."""
    logs_dir_path = Path(logs_dir)
    logs_dir_path.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now().strftime(DATETIME_FORMAT_FILENAME)
    base_name = f"{APP_NAME}_{timestamp}"
    candidate = logs_dir_path / f"{base_name}{LOG_FILE_EXTENSION}"

    suffix = 1
    while candidate.exists():
        candidate = logs_dir_path / f"{base_name}_{suffix}{LOG_FILE_EXTENSION}"
        suffix += 1

    return str(candidate)


def setup_logging(log_file: str | None = None) -> None:
    """Log structured blocks to log_file, or disable logging entirely."""
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(str(log_path), encoding="utf-8")
        handler.setFormatter(StructuredTextFormatter())
        logging.basicConfig(level=logging.INFO, handlers=[handler], force=True)
    else:
        logging.disable(logging.CRITICAL)
