"""Durable transaction ledger with rollback and undo.

The ledger keeps pending transactions in memory and persists committed and
rolled-back transactions to a single JSON file. Every mutation reloads the
file, upserts the transaction by id and rewrites the whole file, all under one
in-process lock. Separate processes sharing a log file are not coordinated.
"""

from __future__ import annotations

import errno
import os
import threading
import uuid
from collections.abc import Iterable
from pathlib import Path
from typing import Any

import structlog
from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from tidyfs.core.constants import DEFAULT_FILE_PERMISSIONS, TRANSACTION_ID_PREFIX
from tidyfs.core.errors import (
    InvalidTransactionStateError,
    LedgerError,
    LedgerReadError,
    LedgerWriteError,
    TransactionNotFoundError,
    UndoError,
)
from tidyfs.fs.paths import ensure_dir, lexists, move_path
from tidyfs.ledger.models import (
    ExecutedOperation,
    OperationType,
    Transaction,
    TransactionStatus,
)
from tidyfs.utils.clock import unique_ns
from tidyfs.utils.debug import debug

__all__ = ["TransactionLedger"]

_TRANSACTIONS = TypeAdapter(list[Transaction])

#: rmdir failures that leave a created directory in place without an error
_KEEP_DIRECTORY_ERRNOS = frozenset({errno.ENOTEMPTY, errno.EEXIST, errno.ENOENT})


class TransactionLedger:
    """Begin, commit, roll back and undo file operation transactions.

    Each transaction is reversed last-applied-first: later operations may
    depend on directories that earlier operations created.
    """

    def __init__(self, log_path: Path, logger: Any = None) -> None:
        """Initialize transaction ledger.

        Args:
            log_path: JSON file holding every persisted transaction. It and
                its parent directory are created on first write.
            logger: Optional structlog logger instance
        """
        self.log_path = Path(log_path).expanduser()
        self._logger = (logger or structlog.get_logger(__name__)).bind(
            log_path=str(self.log_path)
        )
        self._lock = threading.Lock()
        self._pending: dict[str, Transaction] = {}

    # ------------------------------------------------------------------
    # Transaction lifecycle
    # ------------------------------------------------------------------

    def begin(self) -> Transaction:
        """Start a new pending transaction held in memory only."""
        with self._lock:
            tx = Transaction(id=f"{TRANSACTION_ID_PREFIX}{unique_ns()}")
            self._pending[tx.id] = tx
        self._logger.debug("ledger.begin", transaction_id=tx.id)
        return tx

    def add_operation(
        self, tx: Transaction | None, op: ExecutedOperation | None
    ) -> None:
        """Append ``op`` to a pending transaction.

        Does nothing if either argument is ``None``.

        Raises:
            InvalidTransactionStateError: If ``tx`` is no longer pending
        """
        if tx is None or op is None:
            return
        if not tx.is_pending:
            raise InvalidTransactionStateError(tx.id, tx.status.value, "modify")
        tx.operations.append(op)

    def commit(self, tx: Transaction) -> None:
        """Mark ``tx`` committed and persist it.

        On a write failure the transaction is left pending in memory; the
        caller decides whether to compensate.

        Raises:
            InvalidTransactionStateError: If ``tx`` is not pending
            LedgerWriteError: If the log cannot be written
            LedgerReadError: If the existing log cannot be read
        """
        if tx is None:
            raise LedgerError("transaction is None")

        with self._lock:
            if not tx.is_pending:
                raise InvalidTransactionStateError(tx.id, tx.status.value, "commit")

            tx.status = TransactionStatus.COMMITTED
            try:
                self._persist(tx)
            except LedgerError:
                tx.status = TransactionStatus.PENDING
                raise
            self._pending.pop(tx.id, None)

        self._logger.info(
            "ledger.commit", transaction_id=tx.id, operations=len(tx.operations)
        )

    def rollback(self, tx: Transaction) -> None:
        """Reverse a pending transaction and persist it as rolled back.

        Raises:
            InvalidTransactionStateError: If ``tx`` is not pending
            UndoError: If reversing an operation fails
            LedgerWriteError: If the log cannot be written
        """
        if tx is None:
            raise LedgerError("transaction is None")

        with self._lock:
            if not tx.is_pending:
                raise InvalidTransactionStateError(
                    tx.id, tx.status.value, "roll back"
                )

            self._reverse(tx)
            tx.status = TransactionStatus.ROLLED_BACK
            self._pending.pop(tx.id, None)
            self._persist(tx)

        self._logger.info(
            "ledger.rollback", transaction_id=tx.id, operations=len(tx.operations)
        )

    def undo(self, transaction_id: str) -> Transaction:
        """Reverse a committed transaction loaded from the log.

        The transaction is read from disk, so transactions committed by an
        earlier process can be undone. If a reversal step fails the
        transaction may be left partially reversed and still marked committed.

        Args:
            transaction_id: Id of the transaction to undo

        Returns:
            The transaction, now marked rolled back

        Raises:
            TransactionNotFoundError: If no transaction has that id
            InvalidTransactionStateError: If it is not committed
            UndoError: If reversing an operation fails
            LedgerWriteError: If the log cannot be written
        """
        with self._lock:
            tx = self._find(self._load(), transaction_id)
            if tx is None:
                raise TransactionNotFoundError(transaction_id)
            if not tx.is_committed:
                raise InvalidTransactionStateError(tx.id, tx.status.value, "undo")

            self._reverse(tx)
            tx.status = TransactionStatus.ROLLED_BACK
            self._persist(tx)

        self._logger.info(
            "ledger.undo", transaction_id=tx.id, operations=len(tx.operations)
        )
        return tx

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_history(self, limit: int = 0) -> list[Transaction]:
        """Return the most recent ``limit`` persisted transactions.

        Args:
            limit: Maximum number of transactions; 0 returns all of them

        Returns:
            Transactions ordered oldest to newest, as stored
        """
        with self._lock:
            txns = self._load()
        if limit > 0:
            txns = txns[-limit:]
        return txns

    def get(self, transaction_id: str) -> Transaction | None:
        """Look up a persisted transaction by id."""
        with self._lock:
            return self._find(self._load(), transaction_id)

    def last_committed(self) -> Transaction | None:
        """Return the newest transaction that can still be undone."""
        for tx in reversed(self.get_history()):
            if tx.is_committed:
                return tx
        return None

    def pending(self) -> list[Transaction]:
        """Return transactions begun in this process but not yet persisted."""
        with self._lock:
            return list(self._pending.values())

    # ------------------------------------------------------------------
    # Reversal
    # ------------------------------------------------------------------

    def _reverse(self, tx: Transaction) -> None:
        for op in reversed(tx.operations):
            try:
                self._reverse_operation(op)
            except OSError as exc:
                self._logger.error(
                    "ledger.reverse_failed",
                    transaction_id=tx.id,
                    op=op.type.value,
                    source=op.source,
                    target=op.target,
                    error=str(exc),
                )
                raise UndoError(tx.id, op.type.value, op.target, exc) from exc

    @staticmethod
    def _reverse_operation(op: ExecutedOperation) -> None:
        source = Path(op.source)
        target = Path(op.target)

        if op.type in (OperationType.MOVE, OperationType.RENAME):
            _restore(target, source)
            # Put back whatever the operation replaced, if it is still around
            if op.backup and lexists(Path(op.backup)):
                _restore(Path(op.backup), target)

        elif op.type is OperationType.DELETE:
            if op.backup:
                _restore(Path(op.backup), source)

        elif op.type is OperationType.MKDIR:
            try:
                target.rmdir()
                debug(f"Removed directory: {target}")
            except OSError as exc:
                # Not empty or already gone
                if exc.errno not in _KEEP_DIRECTORY_ERRNOS:
                    raise

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    @staticmethod
    def _find(txns: Iterable[Transaction], transaction_id: str) -> Transaction | None:
        for tx in txns:
            if tx.id == transaction_id:
                return tx
        return None

    def _load(self) -> list[Transaction]:
        if not self.log_path.exists():
            return []

        try:
            data = self.log_path.read_bytes()
        except OSError as exc:
            raise LedgerReadError(
                f"failed to read log file {self.log_path}: {exc}"
            ) from exc

        if not data.strip():
            return []

        try:
            return _TRANSACTIONS.validate_json(data)
        except PydanticValidationError as exc:
            raise LedgerReadError(
                f"failed to parse log file {self.log_path}: {exc}"
            ) from exc

    def _persist(self, tx: Transaction) -> None:
        try:
            ensure_dir(self.log_path.parent)
        except OSError as exc:
            raise LedgerWriteError(
                f"failed to create log directory {self.log_path.parent}: {exc}"
            ) from exc

        txns = self._load()
        for index, existing in enumerate(txns):
            if existing.id == tx.id:
                txns[index] = tx
                break
        else:
            txns.append(tx)

        self._write(txns)

    def _write(self, txns: list[Transaction]) -> None:
        data = _TRANSACTIONS.dump_json(txns, indent=2)
        tmp_path = self.log_path.with_name(
            f".{self.log_path.name}.{uuid.uuid4().hex[:8]}.tmp"
        )

        try:
            fd = os.open(
                tmp_path,
                os.O_WRONLY | os.O_CREAT | os.O_EXCL,
                DEFAULT_FILE_PERMISSIONS,
            )
            with os.fdopen(fd, "wb") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self.log_path)
        except OSError as exc:
            try:
                tmp_path.unlink(missing_ok=True)
            except OSError:
                pass
            raise LedgerWriteError(
                f"failed to write log file {self.log_path}: {exc}"
            ) from exc

        debug(f"Wrote {len(txns)} transactions to {self.log_path}")


def _restore(current: Path, original: Path) -> None:
    """Rename ``current`` back to ``original`` without clobbering anything."""
    if lexists(original):
        raise FileExistsError(f"refusing to overwrite existing path: {original}")
    ensure_dir(original.parent)
    move_path(current, original)
    debug(f"Restored {current} -> {original}")
