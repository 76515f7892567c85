"""Profile management: loading, validation, creation, and path mapping."""

from __future__ import annotations

import json
import re
import unicodedata
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Mapping

from .constants import DEFAULT_INVITATION_TTL_DAYS, DEFAULT_PROJECT_COLOR
from .errors import ConfigError

_WINDOWS_DRIVE_RELATIVE_RE = re.compile(r"^[A-Za-z]:[^/\\]")


@dataclass
class Profile:
    """In-memory profile model. Paths are absolute once loaded."""

    data_path: str
    logs_dir: str | None = None
    invitation_ttl_days: int = DEFAULT_INVITATION_TTL_DAYS
    member_write_access: bool = False
    default_color: str = DEFAULT_PROJECT_COLOR

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "Profile":
        return cls(
            data_path=str(payload["data_path"]),
            logs_dir=None if payload.get("logs_dir") is None else str(payload["logs_dir"]),
            invitation_ttl_days=payload.get("invitation_ttl_days", DEFAULT_INVITATION_TTL_DAYS),
            member_write_access=payload.get("member_write_access", False),
            default_color=payload.get("default_color", DEFAULT_PROJECT_COLOR),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "data_path": self.data_path,
            "logs_dir": self.logs_dir,
            "invitation_ttl_days": self.invitation_ttl_days,
            "member_write_access": self.member_write_access,
            "default_color": self.default_color,
        }


def _runtime_app_root() -> Path:
    return Path(__file__).resolve().parent


def map_path(path: str, profile_dir: str | None = None) -> str:
    """Resolve a path string to an absolute path string.

    ~ or ~/...  -> user home directory
    @ or @/...  -> runtime app root (package directory)
    Absolute    -> used as-is
    Relative    -> resolved relative to profile_dir if given; error otherwise
    """
    normalized = unicodedata.normalize("NFC", path)
    if "\0" in normalized:
        raise ConfigError("Path cannot contain NUL bytes")
    if _WINDOWS_DRIVE_RELATIVE_RE.match(normalized) or (
        normalized.startswith("\\") and not normalized.startswith("\\\\")
    ):
        raise ConfigError(
            f"Invalid path: {path}. Windows rooted path must be fully qualified "
            "(e.g. 'C:\\\\folder', not 'C:folder' or '\\folder')."
        )

    if normalized.startswith("@"):
        suffix = re.sub(r"[\\/]+", "/", normalized[1:]).lstrip("/")
        result = (_runtime_app_root() / suffix) if suffix else _runtime_app_root()
        return str(result.resolve())

    candidate = Path(re.sub(r"[\\/]+", "/", normalized)).expanduser()
    if candidate.is_absolute():
        return str(candidate.resolve())

    if profile_dir is not None:
        return str((Path(profile_dir) / candidate).resolve())

    raise ConfigError(
        "Relative profile paths are not supported. "
        "Use an absolute path or start with '~/' or '@/'."
    )


def validate_profile(profile: Any) -> None:
    """Validate profile structure.

    Raises:
        ConfigError: If profile is invalid
    """
    if not isinstance(profile, dict):
        raise ConfigError("Profile must be a JSON object")

    if "data_path" not in profile:
        raise ConfigError("Profile missing required fields: data_path")

    data_path = profile["data_path"]
    if not isinstance(data_path, str) or not data_path:
        raise ConfigError("data_path must be a non-empty string")

    logs_dir = profile.get("logs_dir")
    if logs_dir is not None and (not isinstance(logs_dir, str) or not logs_dir):
        raise ConfigError("logs_dir must be a non-empty string or null")

    if "invitation_ttl_days" in profile:
        ttl = profile["invitation_ttl_days"]
        # bool is an int subclass; reject it explicitly.
        if isinstance(ttl, bool) or not isinstance(ttl, int) or ttl < 1:
            raise ConfigError("invitation_ttl_days must be a positive integer")

    if "member_write_access" in profile and not isinstance(profile["member_write_access"], bool):
        raise ConfigError("member_write_access must be a boolean")

    if "default_color" in profile:
        color = profile["default_color"]
        if not isinstance(color, str) or not color.strip():
            raise ConfigError("default_color must be a non-empty string")


def load_profile(path: str) -> Profile:
    """Load and validate profile from JSON file.

    Raises:
        FileNotFoundError: If profile doesn't exist
        ConfigError: If profile path/profile data is invalid
    """
    profile_path = Path(map_path(path))

    if not profile_path.exists():
        raise FileNotFoundError(
            f"Profile not found: {profile_path}\n"
            "Use 'init' command to create a profile"
        )

    try:
        with open(profile_path, "r", encoding="utf-8") as f:
            raw = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid JSON in profile: {e}") from e

    validate_profile(raw)

    profile_dir = str(profile_path.parent)
    raw["data_path"] = map_path(raw["data_path"], profile_dir)
    if raw.get("logs_dir") is not None:
        raw["logs_dir"] = map_path(raw["logs_dir"], profile_dir)

    return Profile.from_dict(raw)


def create_profile(path: str) -> Profile:
    """Create new profile with defaults next to the given path.

    Defaults:
        - data_path: same directory as profile, "stepflow.json"
        - logs_dir: same directory as profile, "logs"
        - invitation_ttl_days: 7
        - member_write_access: false
    """
    profile_path = Path(map_path(path))
    if profile_path.exists():
        raise ConfigError(f"Profile already exists: {profile_path}")

    profile_path.parent.mkdir(parents=True, exist_ok=True)

    data_path, logs_dir = "./stepflow.json", "./logs"
    defaults = Profile(data_path=data_path, logs_dir=logs_dir)

    with open(profile_path, "w", encoding="utf-8") as f:
        json.dump(defaults.to_dict(), f, indent=2, ensure_ascii=False)

    profile_dir = str(profile_path.parent)
    return replace(
        defaults,
        data_path=map_path(data_path, profile_dir),
        logs_dir=map_path(logs_dir, profile_dir),
    )
