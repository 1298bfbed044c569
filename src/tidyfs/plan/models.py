"""Schemas for planned operations and batch results.

- PlannedOperation: One move or rename proposed by an upstream planner
- OrganizePlan: An ordered list of planned operations plus a summary
- OrganizeStrategy: How a plan is executed
- BatchResult: Aggregated outcome of executing a plan
"""

from __future__ import annotations

import json
import threading
from dataclasses import dataclass, field
from pathlib import Path

from pydantic import BaseModel, Field, field_validator

from tidyfs.core.constants import DEFAULT_CONCURRENCY
from tidyfs.core.errors import PlanValidationError, TidyFSError
from tidyfs.fs.conflicts import ConflictStrategy
from tidyfs.fs.executor import OperationResult
from tidyfs.ledger.models import OperationType

__all__ = [
    "BatchResult",
    "OrganizePlan",
    "OrganizeStrategy",
    "PlanSummary",
    "PlannedOperation",
]


class PlannedOperation(BaseModel):
    """A single planned file operation.

    Attributes:
        type: MOVE or RENAME; other types are rejected when executed
        source: Current file path
        target: Full path the file should end up at
        reason: Human-readable explanation (rule name, AI suggestion, ...)
    """

    type: OperationType
    source: str
    target: str
    reason: str = ""

    model_config = {"frozen": True}

    @field_validator("source", "target")
    @classmethod
    def validate_not_empty(cls, v: str) -> str:
        """Reject empty paths."""
        if not v.strip():
            raise ValueError("path cannot be empty")
        return v


class PlanSummary(BaseModel):
    """Statistics about an organization plan."""

    total_files: int = 0
    total_operations: int = 0
    move_count: int = 0
    rename_count: int = 0
    skip_count: int = 0
    estimated_size: int = 0


class OrganizePlan(BaseModel):
    """An ordered list of planned operations."""

    operations: list[PlannedOperation] = Field(default_factory=list)
    summary: PlanSummary = Field(default_factory=PlanSummary)

    @classmethod
    def from_operations(
        cls, operations: list[PlannedOperation], total_files: int | None = None
    ) -> OrganizePlan:
        """Build a plan and compute its summary.

        Args:
            operations: Planned operations in execution order
            total_files: Number of files the planner looked at; defaults to
                the number of distinct sources

        Returns:
            OrganizePlan with a filled-in PlanSummary
        """
        sources = {op.source for op in operations}
        estimated_size = 0
        for source in sources:
            try:
                estimated_size += Path(source).stat().st_size
            except OSError:
                continue

        moves = sum(1 for op in operations if op.type is OperationType.MOVE)
        renames = sum(1 for op in operations if op.type is OperationType.RENAME)
        files = len(sources) if total_files is None else total_files

        return cls(
            operations=list(operations),
            summary=PlanSummary(
                total_files=files,
                total_operations=len(operations),
                move_count=moves,
                rename_count=renames,
                skip_count=max(files - len(sources), 0),
                estimated_size=estimated_size,
            ),
        )

    @classmethod
    def load(cls, path: Path) -> OrganizePlan:
        """Load a plan from a JSON file.

        Accepts either a full plan object or a bare list of operations.

        Raises:
            PlanValidationError: If the file cannot be read or is malformed
        """
        try:
            data = json.loads(Path(path).read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise PlanValidationError(f"cannot read plan {path}: {exc}") from exc

        try:
            if isinstance(data, list):
                ops = [PlannedOperation.model_validate(item) for item in data]
                return cls.from_operations(ops)
            return cls.model_validate(data)
        except ValueError as exc:
            raise PlanValidationError(f"invalid plan {path}: {exc}") from exc


class OrganizeStrategy(BaseModel):
    """Execution strategy for a plan.

    Attributes:
        dry_run: Report every operation as successful without executing it
        max_concurrency: Worker pool size; values <= 0 use the default of 4
        conflict_strategy: Conflict policy passed to every operation
        create_folders: Whether moves may create missing target directories
    """

    dry_run: bool = False
    max_concurrency: int = DEFAULT_CONCURRENCY
    conflict_strategy: ConflictStrategy = ConflictStrategy.SUFFIX
    create_folders: bool = True

    @property
    def effective_concurrency(self) -> int:
        return self.max_concurrency if self.max_concurrency > 0 else DEFAULT_CONCURRENCY


@dataclass
class BatchResult:
    """Aggregated outcome of a batch.

    ``successful + failed + skipped`` equals the number of planned operations
    for every run that was not cancelled. Recording is thread-safe.
    """

    successful: int = 0
    failed: int = 0
    skipped: int = 0
    errors: list[TidyFSError] = field(default_factory=list)
    transaction_ids: list[str] = field(default_factory=list)
    failed_files: dict[str, TidyFSError] = field(default_factory=dict)
    _lock: threading.Lock = field(
        default_factory=threading.Lock, repr=False, compare=False
    )

    @property
    def total(self) -> int:
        return self.successful + self.failed + self.skipped

    def record(self, planned: PlannedOperation, result: OperationResult) -> None:
        """Fold one operation's result into the batch."""
        with self._lock:
            if not result.success:
                error = result.error or TidyFSError(f"{planned.type.value} failed")
                self.failed += 1
                self.errors.append(error)
                self.failed_files[planned.source] = error
            elif result.skipped:
                self.skipped += 1
            else:
                self.successful += 1
                if result.transaction_id:
                    self.transaction_ids.append(result.transaction_id)

    def to_dict(self) -> dict[str, object]:
        """Convert to a JSON-friendly dictionary."""
        with self._lock:
            return {
                "successful": self.successful,
                "failed": self.failed,
                "skipped": self.skipped,
                "errors": [str(e) for e in self.errors],
                "transaction_ids": list(self.transaction_ids),
                "failed_files": {k: str(v) for k, v in self.failed_files.items()},
            }
