"""Custom exceptions for tidyfs.

This module defines typed exceptions used throughout the engine. Validation
errors are raised before any filesystem mutation, filesystem errors wrap the
underlying ``OSError``, and ledger errors describe persistence and undo
failures.
"""

from typing import Any


class TidyFSError(Exception):
    """Base exception for all tidyfs errors.

    All custom exceptions inherit from this base class so callers can catch
    every engine failure with a single ``except`` clause.
    """

    code = "tidyfs_error"

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for JSON output.

        Returns:
            Dictionary with the error code and message
        """
        return {"error": self.code, "message": str(self)}


# ============================================================================
# Validation errors
# ============================================================================


class ValidationError(TidyFSError):
    """Raised when an input is rejected before touching the filesystem."""

    code = "validation_error"


class InvalidFilenameError(ValidationError):
    """Raised when a filename fails validation.

    Attributes:
        name: The rejected filename
        reason: Why the filename was rejected
    """

    code = "invalid_filename"

    def __init__(self, name: str, reason: str) -> None:
        self.name = name
        self.reason = reason
        super().__init__(f"invalid filename {name!r}: {reason}")

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.code, "name": self.name, "reason": self.reason}


class PathTraversalError(ValidationError):
    """Raised when a computed path escapes the directory it must stay in.

    Attributes:
        path: The offending path
        root: The directory the path had to stay inside
    """

    code = "path_traversal"

    def __init__(self, path: str, root: str) -> None:
        self.path = path
        self.root = root
        super().__init__(f"path traversal detected: {path} is outside {root}")

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.code, "path": self.path, "root": self.root}


class SourceNotFoundError(ValidationError):
    """Raised when the source of an operation does not exist."""

    code = "source_not_found"

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"source file not found: {path}")


class TargetDirectoryError(ValidationError):
    """Raised when a move target directory is missing and may not be created."""

    code = "target_directory_missing"

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"target directory does not exist: {path}")


class PlanValidationError(ValidationError):
    """Raised when a plan or planned operation is malformed."""

    code = "invalid_plan"


class UnknownConflictStrategyError(ValidationError):
    """Raised when a conflict strategy name is not recognised."""

    code = "unknown_conflict_strategy"

    def __init__(self, strategy: object) -> None:
        self.strategy = strategy
        super().__init__(f"unknown conflict strategy: {strategy}")


class ConflictPromptError(ValidationError):
    """Raised when the interactive conflict prompter fails.

    Attributes:
        target: The occupied target the prompter was asked about
        cause: The exception raised by the prompter
    """

    code = "conflict_prompt_failed"

    def __init__(self, target: str, cause: Exception) -> None:
        self.target = target
        self.cause = cause
        super().__init__(f"conflict prompt failed for {target}: {cause}")


# ============================================================================
# Filesystem errors
# ============================================================================


class FileOperationError(TidyFSError):
    """Raised when a filesystem call fails during an operation.

    Attributes:
        op: Short description of the step that failed (e.g. 'move', 'backup')
        path: Path the step was operating on
    """

    code = "file_operation_failed"

    def __init__(self, op: str, path: str, cause: OSError) -> None:
        self.op = op
        self.path = path
        self.cause = cause
        super().__init__(f"failed to {op} {path}: {cause}")

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": self.code,
            "op": self.op,
            "path": self.path,
            "reason": str(self.cause),
        }


class TrashUnavailableError(TidyFSError):
    """Raised when the trash directory cannot be created."""

    code = "trash_unavailable"

    def __init__(self, path: str, cause: OSError) -> None:
        self.path = path
        self.cause = cause
        super().__init__(f"failed to create trash directory {path}: {cause}")


# ============================================================================
# Ledger errors
# ============================================================================


class LedgerError(TidyFSError):
    """Base class for transaction ledger failures."""

    code = "ledger_error"


class LedgerWriteError(LedgerError):
    """Raised when the transaction log cannot be written."""

    code = "ledger_write_failed"


class LedgerReadError(LedgerError):
    """Raised when the transaction log exists but cannot be read or parsed."""

    code = "ledger_read_failed"


class TransactionNotFoundError(LedgerError):
    """Raised when a transaction id is not present in the log."""

    code = "transaction_not_found"

    def __init__(self, transaction_id: str) -> None:
        self.transaction_id = transaction_id
        super().__init__(f"transaction not found: {transaction_id}")


class InvalidTransactionStateError(LedgerError):
    """Raised when a transaction is not in the state an action requires.

    Attributes:
        transaction_id: The transaction that was rejected
        status: Its current status
    """

    code = "invalid_transaction_state"

    def __init__(self, transaction_id: str, status: str, action: str) -> None:
        self.transaction_id = transaction_id
        self.status = status
        self.action = action
        super().__init__(
            f"cannot {action} transaction {transaction_id} with status: {status}"
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": self.code,
            "transaction_id": self.transaction_id,
            "status": self.status,
            "action": self.action,
        }


class UndoError(LedgerError):
    """Raised when reversing an operation fails part-way through.

    The transaction may be left partially reversed and needs manual
    inspection.
    """

    code = "undo_failed"

    def __init__(
        self, transaction_id: str, op_type: str, path: str, cause: OSError
    ) -> None:
        self.transaction_id = transaction_id
        self.op_type = op_type
        self.path = path
        self.cause = cause
        super().__init__(
            f"failed to reverse {op_type} of {path} in {transaction_id}: {cause}"
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": self.code,
            "transaction_id": self.transaction_id,
            "op": self.op_type,
            "path": self.path,
            "reason": str(self.cause),
        }


# ============================================================================
# Batch execution
# ============================================================================


class PlanCancelledError(TidyFSError):
    """Raised when plan execution stops early because of a cancellation.

    Attributes:
        result: The partially filled BatchResult at the time of cancellation
    """

    code = "plan_cancelled"

    def __init__(self, result: Any, reason: str = "cancelled") -> None:
        self.result = result
        self.reason = reason
        super().__init__(f"plan execution {reason}")

    def __repr__(self) -> str:
        return f"PlanCancelledError(reason={self.reason!r})"
