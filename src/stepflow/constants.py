"""Centralized constants for stepflow."""

from __future__ import annotations

APP_NAME = "stepflow"

# Invitations
DEFAULT_INVITATION_TTL_DAYS = 7
INVITATION_TOKEN_BYTES = 32
TOKEN_HINT_LENGTH = 6
INVITATION_STATUS_INVALID = "invalid"
UNKNOWN_USER_NAME = "Unknown"

# Projects
DEFAULT_PROJECT_COLOR = "#3b82f6"
PROGRESS_DECIMALS = 2

# Storage and logging
LOCK_FILE_SUFFIX = ".lock"
LOG_FILE_EXTENSION = ".log"
DATETIME_FORMAT_FILENAME = "%Y-%m-%d_%H-%M-%S"

# CLI
CLI_HELP_HINT = "Run 'stepflow --help' for usage."
STDERR_ERROR_PREFIX = "ERROR: "
