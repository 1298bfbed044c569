"""Pydantic models for the transaction ledger.

These models define what is written to the JSON transaction log:
- ExecutedOperation: One filesystem change and how to reverse it
- Transaction: An ordered group of executed operations with a status
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

from tidyfs.utils.clock import now_utc


class TransactionStatus(str, Enum):
    """Lifecycle state of a transaction.

    Allowed transitions are PENDING → COMMITTED, PENDING → ROLLED_BACK and
    COMMITTED → ROLLED_BACK. Nothing leaves ROLLED_BACK.
    """

    PENDING = "pending"
    COMMITTED = "committed"
    ROLLED_BACK = "rolledback"


class OperationType(str, Enum):
    """Kind of filesystem change recorded in a transaction."""

    MOVE = "move"
    RENAME = "rename"
    DELETE = "delete"
    MKDIR = "mkdir"


class ExecutedOperation(BaseModel):
    """A single filesystem change that has been performed.

    Attributes:
        type: Kind of change
        source: Path before the change
        target: Path after the change (the directory itself for MKDIR)
        backup: Where the pre-operation state was preserved; empty when the
            previous state is not recoverable
    """

    type: OperationType
    source: str
    target: str
    backup: str = ""

    model_config = {"frozen": True}


class Transaction(BaseModel):
    """A named, ordered group of executed operations.

    Attributes:
        id: Unique identifier (``txn_<nanoseconds>``)
        timestamp: When the transaction was begun
        operations: Operations in the order they were applied
        status: Current lifecycle state
    """

    id: str
    timestamp: datetime = Field(default_factory=now_utc)
    operations: list[ExecutedOperation] = Field(default_factory=list)
    status: TransactionStatus = TransactionStatus.PENDING

    @property
    def is_pending(self) -> bool:
        return self.status is TransactionStatus.PENDING

    @property
    def is_committed(self) -> bool:
        return self.status is TransactionStatus.COMMITTED
