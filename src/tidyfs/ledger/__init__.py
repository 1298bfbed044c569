"""Transaction ledger for reversible filesystem operations.

The ledger records every committed operation in a durable JSON log so that
it can be rolled back in-process or undone later by id.
"""

from tidyfs.ledger.ledger import TransactionLedger
from tidyfs.ledger.models import (
    ExecutedOperation,
    OperationType,
    Transaction,
    TransactionStatus,
)

__all__ = [
    "ExecutedOperation",
    "OperationType",
    "Transaction",
    "TransactionLedger",
    "TransactionStatus",
]
