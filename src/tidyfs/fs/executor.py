"""Transactional move, rename and delete.

Every public operation runs the same protocol as its own one-operation
transaction:

1. validate inputs
2. resolve the final target through the ConflictResolver
3. return early for a skip or a dry run
4. move any occupant of the final target aside to ``<target>.backup``
5. perform the rename
6. log it in the ledger and commit
7. drop the backup, or put everything back if a later step failed
"""

from __future__ import annotations

import os
import shutil
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import structlog

from tidyfs.core.errors import (
    FileOperationError,
    LedgerError,
    PathTraversalError,
    SourceNotFoundError,
    TargetDirectoryError,
    TidyFSError,
    TrashUnavailableError,
    UndoError,
    ValidationError,
)
from tidyfs.fs.conflicts import SKIP, ConflictResolver, ConflictStrategy
from tidyfs.fs.paths import (
    ensure_dir,
    get_backup_path,
    is_within,
    lexists,
    move_path,
    normalize_path,
    split_extension,
)
from tidyfs.fs.validators import validate_filename
from tidyfs.ledger import (
    ExecutedOperation,
    OperationType,
    Transaction,
    TransactionLedger,
)
from tidyfs.utils.debug import debug

__all__ = [
    "MoveOptions",
    "OperationExecutor",
    "OperationResult",
    "RenameOptions",
]


@dataclass
class MoveOptions:
    """Options for move operations.

    Attributes:
        dry_run: Compute the target without touching the filesystem or ledger
        create_target_dir: Create the target directory if it is missing
        conflict_strategy: What to do when the target path is occupied
    """

    dry_run: bool = False
    create_target_dir: bool = True
    conflict_strategy: ConflictStrategy | str = ConflictStrategy.SKIP


@dataclass
class RenameOptions:
    """Options for rename operations.

    Attributes:
        dry_run: Compute the target without touching the filesystem or ledger
        preserve_extension: Keep the source file's extension, discarding any
            extension given in the new name
        conflict_strategy: What to do when the target path is occupied
    """

    dry_run: bool = False
    preserve_extension: bool = True
    conflict_strategy: ConflictStrategy | str = ConflictStrategy.SKIP


@dataclass
class OperationResult:
    """Result of a single move, rename or delete.

    ``transaction_id`` is only set once the operation has been committed.
    """

    success: bool
    source: Path
    target: Path | None = None
    error: TidyFSError | None = None
    transaction_id: str | None = None
    skipped: bool = False
    dry_run: bool = False


class OperationExecutor:
    """Perform single file operations as self-contained transactions."""

    def __init__(
        self,
        ledger: TransactionLedger,
        resolver: ConflictResolver | None = None,
        logger: Any = None,
    ) -> None:
        """Initialize operation executor.

        Args:
            ledger: Ledger that records and commits each operation
            resolver: Conflict resolver; a default one (no prompter) if omitted
            logger: Optional structlog logger instance
        """
        self._ledger = ledger
        self._resolver = resolver or ConflictResolver()
        self._logger = logger or structlog.get_logger(__name__)
        # Targets claimed by operations that are resolved but not yet applied
        self._claims_lock = threading.Lock()
        self._claimed: set[Path] = set()

    @property
    def ledger(self) -> TransactionLedger:
        return self._ledger

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    def move(
        self,
        source: str | Path,
        target_dir: str | Path,
        options: MoveOptions | None = None,
    ) -> OperationResult:
        """Move ``source`` into ``target_dir`` keeping its file name.

        Args:
            source: File or directory to move
            target_dir: Destination directory
            options: Move options; defaults create the directory and skip
                on conflict

        Returns:
            OperationResult describing the outcome
        """
        opts = options or MoveOptions()
        src = normalize_path(source)
        log = self._logger.bind(op="move", source=str(src))

        if not lexists(src):
            return self._fail(log, src, None, SourceNotFoundError(str(src)))

        directory = normalize_path(target_dir)
        file_name = src.name
        if not file_name:
            return self._fail(
                log, src, None, ValidationError(f"cannot move {src}: no file name")
            )

        target = normalize_path(directory / file_name)
        if not is_within(target, directory):
            return self._fail(
                log, src, None, PathTraversalError(str(target), str(directory))
            )

        if not directory.is_dir():
            if not opts.create_target_dir:
                return self._fail(
                    log, src, directory, TargetDirectoryError(str(directory))
                )
            if not opts.dry_run:
                try:
                    if ensure_dir(directory):
                        debug(f"Created target directory: {directory}")
                except OSError as exc:
                    return self._fail(
                        log,
                        src,
                        directory,
                        FileOperationError("create directory", str(directory), exc),
                    )

        return self._run(
            log,
            OperationType.MOVE,
            src,
            target,
            opts.conflict_strategy,
            dry_run=opts.dry_run,
        )

    def rename(
        self,
        source: str | Path,
        new_name: str,
        options: RenameOptions | None = None,
    ) -> OperationResult:
        """Rename ``source`` in place to ``new_name``.

        Args:
            source: File or directory to rename
            new_name: New file name (a single path component)
            options: Rename options; defaults preserve the extension and skip
                on conflict

        Returns:
            OperationResult describing the outcome
        """
        opts = options or RenameOptions()
        src = normalize_path(source)
        log = self._logger.bind(op="rename", source=str(src), new_name=new_name)

        try:
            validate_filename(new_name)
        except ValidationError as exc:
            return self._fail(log, src, None, exc)

        if not lexists(src):
            return self._fail(log, src, None, SourceNotFoundError(str(src)))

        target_name = new_name
        if opts.preserve_extension:
            stem, _ = split_extension(new_name)
            _, ext = split_extension(src.name)
            target_name = stem + ext
            try:
                validate_filename(target_name)
            except ValidationError as exc:
                return self._fail(log, src, None, exc)

        target = src.with_name(target_name)
        return self._run(
            log,
            OperationType.RENAME,
            src,
            target,
            opts.conflict_strategy,
            dry_run=opts.dry_run,
        )

    def delete(self, source: str | Path, trash_dir: str | Path) -> OperationResult:
        """Relocate ``source`` into ``trash_dir``; nothing is removed for good.

        Same-named files never collide in the trash: the conflict strategy
        is always SUFFIX.

        Args:
            source: File or directory to delete
            trash_dir: Trash directory, created if missing

        Returns:
            OperationResult whose target is the file's location in the trash

        Raises:
            TrashUnavailableError: If the trash directory cannot be created
        """
        src = normalize_path(source)
        trash = normalize_path(trash_dir)
        log = self._logger.bind(op="delete", source=str(src), trash_dir=str(trash))

        if not lexists(src):
            return self._fail(log, src, None, SourceNotFoundError(str(src)))

        try:
            ensure_dir(trash)
        except OSError as exc:
            log.error("executor.trash_unavailable", error=str(exc))
            raise TrashUnavailableError(str(trash), exc) from exc

        return self._run(
            log,
            OperationType.DELETE,
            src,
            trash / src.name,
            ConflictStrategy.SUFFIX,
            dry_run=False,
        )

    # ------------------------------------------------------------------
    # Protocol
    # ------------------------------------------------------------------

    def _run(
        self,
        log: Any,
        op_type: OperationType,
        src: Path,
        target: Path,
        strategy: ConflictStrategy | str,
        *,
        dry_run: bool,
    ) -> OperationResult:
        if target == src:
            log.debug("executor.noop", reason="target is source")
            return OperationResult(
                success=True, source=src, target=target, skipped=True, dry_run=dry_run
            )

        with self._claims_lock:
            try:
                resolved = self._resolver.resolve(target, strategy, self._occupied)
            except TidyFSError as exc:
                return self._fail(log, src, target, exc)
            if resolved is not SKIP and not dry_run:
                self._claimed.add(Path(resolved))

        if resolved is SKIP:
            log.info("executor.skipped", target=str(target))
            return OperationResult(
                success=True, source=src, target=target, skipped=True, dry_run=dry_run
            )

        final = Path(resolved)
        if dry_run:
            log.info("executor.dry_run", target=str(final))
            return OperationResult(success=True, source=src, target=final, dry_run=True)

        try:
            return self._apply(log, op_type, src, final)
        finally:
            with self._claims_lock:
                self._claimed.discard(final)

    def _occupied(self, path: Path) -> bool:
        return path in self._claimed or lexists(path)

    def _apply(
        self, log: Any, op_type: OperationType, src: Path, target: Path
    ) -> OperationResult:
        # Compensating backup of whatever currently occupies the target
        backup: Path | None = None
        if lexists(target):
            backup = get_backup_path(target)
            if lexists(backup):
                return self._fail(
                    log,
                    src,
                    target,
                    FileOperationError(
                        "back up",
                        str(target),
                        FileExistsError(f"backup path already exists: {backup}"),
                    ),
                )
            try:
                move_path(target, backup)
                debug(f"Backed up existing file to: {backup}")
            except OSError as exc:
                return self._fail(
                    log, src, target, FileOperationError("back up", str(target), exc)
                )

        try:
            move_path(src, target)
            debug(f"{op_type.value}: {src} -> {target}")
        except OSError as exc:
            if backup is not None:
                self._restore_backup(log, backup, target)
            return self._fail(
                log, src, target, FileOperationError(op_type.value, str(src), exc)
            )

        if op_type is OperationType.DELETE:
            record_backup = str(target)
        else:
            record_backup = str(backup) if backup is not None else ""

        tx = self._ledger.begin()
        self._ledger.add_operation(
            tx,
            ExecutedOperation(
                type=op_type,
                source=str(src),
                target=str(target),
                backup=record_backup,
            ),
        )

        try:
            self._ledger.commit(tx)
        except LedgerError as exc:
            self._compensate(log, tx, target, backup)
            return self._fail(log, src, target, exc)

        if backup is not None:
            self._discard_backup(log, backup)

        log.info(
            "executor.applied",
            target=str(target),
            transaction_id=tx.id,
            replaced=backup is not None,
        )
        return OperationResult(
            success=True, source=src, target=target, transaction_id=tx.id
        )

    # ------------------------------------------------------------------
    # Compensation helpers
    # ------------------------------------------------------------------

    def _compensate(
        self, log: Any, tx: Transaction, target: Path, backup: Path | None
    ) -> None:
        """Reverse an applied change whose commit failed."""
        try:
            self._ledger.rollback(tx)
        except UndoError as exc:
            log.error(
                "executor.compensation_failed",
                target=str(target),
                backup=str(backup) if backup else None,
                error=str(exc),
            )
        except LedgerError as exc:
            # Files are back in place; only the rolled-back record is missing
            log.warning("executor.rollback_not_logged", error=str(exc))

    def _restore_backup(self, log: Any, backup: Path, target: Path) -> None:
        try:
            move_path(backup, target)
        except OSError as exc:
            log.error(
                "executor.backup_restore_failed",
                backup=str(backup),
                target=str(target),
                error=str(exc),
            )

    def _discard_backup(self, log: Any, backup: Path) -> None:
        try:
            if backup.is_dir() and not backup.is_symlink():
                shutil.rmtree(backup)
            else:
                os.unlink(backup)
        except OSError as exc:
            log.warning(
                "executor.backup_cleanup_failed", backup=str(backup), error=str(exc)
            )

    @staticmethod
    def _fail(
        log: Any, src: Path, target: Path | None, error: TidyFSError
    ) -> OperationResult:
        log.warning(
            "executor.failed",
            target=str(target) if target else None,
            error=str(error),
            error_code=error.code,
        )
        return OperationResult(success=False, source=src, target=target, error=error)
