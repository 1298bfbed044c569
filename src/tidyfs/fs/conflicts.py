"""Conflict resolution for occupied target paths.

A ``ConflictResolver`` turns a desired target path plus a strategy into the
path that will actually be written, or the ``SKIP`` sentinel.
"""

from __future__ import annotations

from enum import Enum
from collections.abc import Callable
from pathlib import Path
from typing import Final, Protocol

import structlog

from tidyfs.core.errors import ConflictPromptError, UnknownConflictStrategyError
from tidyfs.fs.paths import lexists, unique_suffix_path

__all__ = [
    "SKIP",
    "ConflictPrompter",
    "ConflictResolver",
    "ConflictStrategy",
    "Skip",
]

logger = structlog.get_logger(__name__)


class ConflictStrategy(str, Enum):
    """Policy applied when a target path already exists.

    Attributes:
        SKIP: Leave both files alone and report a successful no-op
        SUFFIX: Write to ``<stem>_<nanoseconds><ext>`` next to the target
        OVERWRITE: Replace the existing file
        PROMPT: Ask a ``ConflictPrompter``; without one, behaves as SUFFIX
    """

    SKIP = "skip"
    SUFFIX = "suffix"
    OVERWRITE = "overwrite"
    PROMPT = "prompt"


class Skip:
    """Type of the ``SKIP`` sentinel returned by ``ConflictResolver.resolve``."""

    _instance: Skip | None = None

    def __new__(cls) -> Skip:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "SKIP"

    def __bool__(self) -> bool:
        return False


SKIP: Final = Skip()


class ConflictPrompter(Protocol):
    """Optional interactive capability consulted for the PROMPT strategy."""

    def __call__(self, target: Path) -> ConflictStrategy:
        """Return SKIP, SUFFIX or OVERWRITE for an occupied ``target``."""
        ...


class ConflictResolver:
    """Decide the final path for an operation whose target may be occupied."""

    def __init__(self, prompter: ConflictPrompter | None = None) -> None:
        """Initialize conflict resolver.

        Args:
            prompter: Optional callback used for the PROMPT strategy. When it
                is absent, PROMPT degrades to SUFFIX and the degradation is
                logged.
        """
        self._prompter = prompter

    def resolve(
        self,
        target: Path,
        strategy: ConflictStrategy | str,
        occupied: Callable[[Path], bool] = lexists,
    ) -> Path | Skip:
        """Resolve ``target`` under ``strategy``.

        Args:
            target: Desired target path
            strategy: Conflict strategy (enum member or its string value)
            occupied: Predicate deciding whether a path is taken; defaults to
                checking the filesystem

        Returns:
            The path to write to, or ``SKIP`` when the caller should do nothing

        Raises:
            UnknownConflictStrategyError: If ``strategy`` or the prompter's
                answer is not recognised
            ConflictPromptError: If the prompter raises
        """
        try:
            strategy = ConflictStrategy(strategy)
        except ValueError as exc:
            raise UnknownConflictStrategyError(strategy) from exc

        if not occupied(target):
            return target

        if strategy is ConflictStrategy.PROMPT:
            strategy = self._ask(target)

        if strategy is ConflictStrategy.SKIP:
            logger.debug("conflict.skip", target=str(target))
            return SKIP
        if strategy is ConflictStrategy.OVERWRITE:
            logger.debug("conflict.overwrite", target=str(target))
            return target

        resolved = unique_suffix_path(target)
        logger.debug("conflict.suffix", target=str(target), resolved=str(resolved))
        return resolved

    def _ask(self, target: Path) -> ConflictStrategy:
        if self._prompter is None:
            logger.info("conflict.prompt_degraded", target=str(target))
            return ConflictStrategy.SUFFIX

        try:
            raw = self._prompter(target)
        except Exception as exc:
            logger.warning(
                "conflict.prompt_failed", target=str(target), error=str(exc)
            )
            raise ConflictPromptError(str(target), exc) from exc

        try:
            answer = ConflictStrategy(raw)
        except ValueError as exc:
            raise UnknownConflictStrategyError(raw) from exc
        if answer is ConflictStrategy.PROMPT:
            return ConflictStrategy.SUFFIX
        return answer
