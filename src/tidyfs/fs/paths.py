"""Path utilities for filesystem operations.

This module provides path normalization, containment checks and the helpers
that derive backup and suffixed paths for conflict handling.
"""

import errno
import os
import shutil
import unicodedata
from pathlib import Path

from tidyfs.core.constants import BACKUP_SUFFIX, DEFAULT_DIR_PERMISSIONS
from tidyfs.utils.clock import unique_ns


def normalize_path(path: str | Path, root: Path | None = None) -> Path:
    """Normalize a path for consistent handling.

    ``..`` components are collapsed lexically and symlinks are left alone, so
    the result still names the link itself rather than its target.

    Args:
        path: Path to normalize
        root: Optional root directory for relative paths

    Returns:
        Normalized absolute path
    """
    if not isinstance(path, Path):
        path = Path(path)

    if not path.is_absolute():
        path = (root if root is not None else Path.cwd()) / path

    normalized = os.path.normpath(path)

    # Normalize Unicode (NFC) so composed and decomposed names compare equal
    if os.name == "posix":
        normalized = unicodedata.normalize("NFC", normalized)

    return Path(normalized)


def is_within(path: Path, directory: Path) -> bool:
    """Return True if ``path`` is ``directory`` itself or lies beneath it.

    Both paths are compared after normalization, component by component, so
    ``/data/docs-evil`` is not considered inside ``/data/docs``.
    """
    path = normalize_path(path)
    directory = normalize_path(directory)
    return path == directory or directory in path.parents


def split_extension(name: str) -> tuple[str, str]:
    """Split a filename into stem and extension (extension keeps its dot)."""
    return os.path.splitext(name)


def unique_suffix_path(target: Path) -> Path:
    """Build ``<stem>_<nanoseconds><ext>`` next to ``target``.

    The result is not checked against disk; nanosecond readings issued one
    after another make a collision negligible.
    """
    stem, ext = split_extension(target.name)
    return target.with_name(f"{stem}_{unique_ns()}{ext}")


def get_backup_path(target: Path) -> Path:
    """Return the compensating backup location for ``target``."""
    return target.with_name(target.name + BACKUP_SUFFIX)


def ensure_dir(directory: Path) -> bool:
    """Create ``directory`` and any missing parents.

    Safe to race: two workers creating the same directory both succeed.

    Args:
        directory: Directory that must exist afterwards

    Returns:
        True if the directory did not exist before the call

    Raises:
        OSError: If the directory cannot be created
    """
    existed = directory.is_dir()
    directory.mkdir(mode=DEFAULT_DIR_PERMISSIONS, parents=True, exist_ok=True)
    return not existed


def lexists(path: Path) -> bool:
    """Return True if something occupies ``path``, including a dangling symlink."""
    return os.path.lexists(path)


def move_path(src: Path, dst: Path) -> None:
    """Rename ``src`` to ``dst``, falling back to copy+delete across devices.

    Raises:
        OSError: If the rename (or the cross-device fallback) fails
    """
    try:
        os.rename(src, dst)
    except OSError as e:
        if e.errno != errno.EXDEV:
            raise
        # Cross-device move: copy then remove the original
        shutil.move(str(src), str(dst))
