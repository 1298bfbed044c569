"""Filesystem helpers for safe, reversible file operations.

This package provides path normalization, filename validation and conflict
resolution. The transactional move/rename/delete executor lives in
``tidyfs.fs.executor``.
"""

from tidyfs.fs.conflicts import SKIP, ConflictResolver, ConflictStrategy
from tidyfs.fs.paths import normalize_path
from tidyfs.fs.validators import sanitize_filename, validate_filename, validate_path

__all__ = [
    "SKIP",
    "ConflictResolver",
    "ConflictStrategy",
    "normalize_path",
    "sanitize_filename",
    "validate_filename",
    "validate_path",
]
