"""Filename and path validation.

These checks run before any filesystem mutation so that a bad name or an
escaping path is rejected without side effects.
"""

import os
from pathlib import Path

from tidyfs.core.constants import (
    INVALID_FILENAME_CHARS,
    MAX_FILENAME_LENGTH,
    RESERVED_FILENAMES,
    SANITIZED_FALLBACK_NAME,
)
from tidyfs.core.errors import InvalidFilenameError, PathTraversalError, ValidationError

__all__ = ["sanitize_filename", "validate_filename", "validate_path"]


def validate_filename(name: str) -> None:
    """Check that ``name`` is a safe single path component.

    Args:
        name: Candidate filename (no directory part)

    Raises:
        InvalidFilenameError: If the name is empty, contains a path separator
            or another illegal character, is a reserved device name, consists
            only of dots, or is longer than 255 characters
    """
    if not name:
        raise InvalidFilenameError(name, "filename cannot be empty")

    for char in INVALID_FILENAME_CHARS:
        if char in name:
            raise InvalidFilenameError(
                name, f"filename contains invalid character: {char!r}"
            )

    stem, _ = os.path.splitext(name)
    if stem.upper() in RESERVED_FILENAMES:
        raise InvalidFilenameError(name, "filename is a reserved name")

    if not name.strip("."):
        raise InvalidFilenameError(name, "filename cannot consist only of dots")

    if len(name) > MAX_FILENAME_LENGTH:
        raise InvalidFilenameError(
            name, f"filename is too long (max {MAX_FILENAME_LENGTH} characters)"
        )


def validate_path(path: str | Path) -> None:
    """Reject empty paths and paths containing parent directory references.

    Raises:
        ValidationError: If the path is empty
        PathTraversalError: If ``..`` remains after normalization
    """
    raw = str(path)
    if not raw:
        raise ValidationError("path cannot be empty")

    cleaned = os.path.normpath(raw)
    if ".." in Path(cleaned).parts:
        raise PathTraversalError(raw, os.getcwd())


def sanitize_filename(name: str) -> str:
    """Turn an arbitrary string into a name that passes ``validate_filename``.

    Illegal characters become underscores, leading/trailing dots and spaces are
    trimmed, and over-long names are truncated while keeping the extension.
    """
    sanitized = name.strip(" .")
    for char in INVALID_FILENAME_CHARS:
        sanitized = sanitized.replace(char, "_")
    sanitized = sanitized.strip(" ._")

    if not sanitized:
        return SANITIZED_FALLBACK_NAME

    stem, _ = os.path.splitext(sanitized)
    if stem.upper() in RESERVED_FILENAMES:
        sanitized = f"_{sanitized}"

    if len(sanitized) > MAX_FILENAME_LENGTH:
        stem, ext = os.path.splitext(sanitized)
        max_stem = MAX_FILENAME_LENGTH - len(ext)
        if max_stem > 0:
            sanitized = stem[:max_stem] + ext
        else:
            sanitized = sanitized[:MAX_FILENAME_LENGTH]

    return sanitized
