"""Debug tracing for low-level filesystem steps.

The ``debug()`` helper is switched on with the ``TIDYFS_DEBUG`` environment
variable and writes one line per call to stderr, so traces never mix with
``--json`` output on stdout.

Usage:
    from tidyfs.utils.debug import debug

    debug(f"Renamed {src} -> {dst}")

Environment:
    TIDYFS_DEBUG: '1', 'true' or 'yes' (case-insensitive) enables output.
"""

import os
import sys
from typing import Any

from tidyfs.core.constants import ENV_DEBUG


def debug_enabled() -> bool:
    """Return True when ``TIDYFS_DEBUG`` is set to a truthy value."""
    return os.environ.get(ENV_DEBUG, "").lower() in ("1", "true", "yes")


def debug(msg: Any) -> None:
    """Print a debug trace line if ``TIDYFS_DEBUG`` is enabled.

    The variable is read on every call, so tests and long-running callers can
    toggle it without reloading the module.

    Args:
        msg: Message to print. Will be converted to string.
    """
    if debug_enabled():
        print(f"[tidyfs] {msg}", file=sys.stderr)
