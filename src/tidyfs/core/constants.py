"""Core constants for tidyfs.

This module defines constants used throughout the engine:
- Filename validation rules
- Default locations for the transaction log and trash
- Concurrency and permission defaults
"""

from pathlib import Path

# ============================================================================
# Filename Validation
# ============================================================================

#: Characters that may never appear in a filename on any supported platform
INVALID_FILENAME_CHARS: tuple[str, ...] = (
    "/",
    "\\",
    ":",
    "*",
    "?",
    '"',
    "<",
    ">",
    "|",
    "\x00",
)

#: Windows device names that cannot be used as a file stem
RESERVED_FILENAMES: frozenset[str] = frozenset(
    {"CON", "PRN", "AUX", "NUL"}
    | {f"COM{i}" for i in range(1, 10)}
    | {f"LPT{i}" for i in range(1, 10)}
)

#: Maximum filename length supported by common filesystems
MAX_FILENAME_LENGTH = 255

#: Replacement name used when sanitizing leaves nothing behind
SANITIZED_FALLBACK_NAME = "unnamed"

# ============================================================================
# Operation Defaults
# ============================================================================

#: Suffix appended to a file temporarily moved aside before it is replaced
BACKUP_SUFFIX = ".backup"

#: Worker pool size used when a strategy does not set a positive value
DEFAULT_CONCURRENCY = 4

#: Permission bits for directories created by the engine
DEFAULT_DIR_PERMISSIONS = 0o755

#: Permission bits for the transaction log file
DEFAULT_FILE_PERMISSIONS = 0o644

#: Prefix for generated transaction identifiers
TRANSACTION_ID_PREFIX = "txn_"

# ============================================================================
# Storage Locations
# ============================================================================

#: Directory holding the transaction log and trash by default
DEFAULT_STATE_DIR: Path = Path("~/.tidyfs")

#: Default transaction log file
DEFAULT_LOG_PATH: Path = DEFAULT_STATE_DIR / "transactions.json"

#: Default trash directory used by delete
DEFAULT_TRASH_DIR: Path = DEFAULT_STATE_DIR / "trash"

# ============================================================================
# Environment Variables
# ============================================================================

ENV_LOG_PATH = "TIDYFS_LOG_PATH"
ENV_TRASH_DIR = "TIDYFS_TRASH_DIR"
ENV_MAX_CONCURRENCY = "TIDYFS_MAX_CONCURRENCY"
ENV_CONFLICT_STRATEGY = "TIDYFS_CONFLICT_STRATEGY"
ENV_DEBUG = "TIDYFS_DEBUG"
