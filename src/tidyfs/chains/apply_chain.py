"""Apply chain for orchestrating plan execution with undo.

This module provides the ApplyChain class that wires an EngineConfig into a
ledger, an operation executor and a plan executor, and runs plans with
structured logging and Rich console output.
"""

import uuid
from collections.abc import Sequence
from pathlib import Path
from typing import Any

import structlog
from rich.console import Console
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TaskProgressColumn,
    TextColumn,
)

from tidyfs.core.config import EngineConfig
from tidyfs.core.errors import LedgerError, PlanCancelledError
from tidyfs.fs.conflicts import ConflictPrompter, ConflictResolver
from tidyfs.fs.executor import OperationExecutor, OperationResult
from tidyfs.ledger import Transaction, TransactionLedger
from tidyfs.plan import (
    BatchResult,
    CancelToken,
    OrganizePlan,
    OrganizeStrategy,
    PlanExecutor,
    PlannedOperation,
)


class ApplyChain:
    """Orchestrates plan execution, deletes, history and undo.

    The chain owns one ledger per log path; every committed operation of a
    run is recorded there and can be reversed with ``undo``.
    """

    def __init__(
        self,
        config: EngineConfig | None = None,
        *,
        prompter: ConflictPrompter | None = None,
        logger: Any = None,
        ui: Console | None = None,
    ) -> None:
        """Initialize apply chain.

        Args:
            config: Engine configuration; defaults to EngineConfig.from_env()
            prompter: Optional interactive conflict prompter
            logger: Optional structlog logger instance
            ui: Optional Rich console for output
        """
        self._config = config or EngineConfig.from_env()
        self._logger = logger or structlog.get_logger()
        self._ui = ui or Console()
        self._ledger = TransactionLedger(self._config.log_path)
        self._executor = OperationExecutor(
            self._ledger, ConflictResolver(prompter=prompter)
        )
        self._plan_executor = PlanExecutor(self._executor)

    @property
    def config(self) -> EngineConfig:
        return self._config

    @property
    def ledger(self) -> TransactionLedger:
        return self._ledger

    @property
    def executor(self) -> OperationExecutor:
        return self._executor

    def strategy(self, dry_run: bool = False) -> OrganizeStrategy:
        """Build the execution strategy implied by the configuration."""
        return OrganizeStrategy(
            dry_run=dry_run,
            max_concurrency=self._config.max_concurrency,
            conflict_strategy=self._config.conflict_strategy,
            create_folders=self._config.create_folders,
        )

    def apply(
        self,
        plan: OrganizePlan | Sequence[PlannedOperation],
        strategy: OrganizeStrategy | None = None,
        *,
        cancel: CancelToken | None = None,
        show_progress: bool = True,
    ) -> BatchResult:
        """Execute a plan with a progress bar and a summary log line.

        Args:
            plan: Plan or sequence of planned operations
            strategy: Execution strategy; defaults to ``self.strategy()``
            cancel: Optional cancellation token
            show_progress: Render a Rich progress bar and per-item lines

        Returns:
            BatchResult for the run

        Raises:
            PlanCancelledError: If ``cancel`` fired before the plan finished
        """
        strategy = strategy or self.strategy()
        operations = list(plan.operations if isinstance(plan, OrganizePlan) else plan)
        report_id = str(uuid.uuid4())

        bound_logger = self._logger.bind(
            report_id=report_id,
            log_path=str(self._config.log_path),
            dry_run=strategy.dry_run,
            conflict_strategy=strategy.conflict_strategy.value,
        )

        with self._create_progress(disable=not show_progress) as progress:
            mode = "dry run" if strategy.dry_run else "apply"
            task = progress.add_task(f"Apply: {mode}", total=len(operations))

            def on_result(
                planned: PlannedOperation,
                result: OperationResult,
                completed: int,
                total: int,
            ) -> None:
                progress.update(task, completed=completed)
                if show_progress:
                    self._show_item_result(planned, result)

            try:
                result = self._plan_executor.run_plan(
                    operations, strategy, cancel=cancel, on_result=on_result
                )
            except PlanCancelledError as exc:
                bound_logger.warning(
                    "apply.cancelled",
                    reason=exc.reason,
                    successful=exc.result.successful,
                    failed=exc.result.failed,
                    skipped=exc.result.skipped,
                )
                raise

            if strategy.dry_run:
                progress.update(task, completed=len(operations))

        bound_logger.info(
            "apply.summary",
            total_items=len(operations),
            successful=result.successful,
            failed=result.failed,
            skipped=result.skipped,
            transactions=len(result.transaction_ids),
        )
        return result

    def delete(self, source: str | Path) -> OperationResult:
        """Move ``source`` into the configured trash directory.

        Raises:
            TrashUnavailableError: If the trash directory cannot be created
        """
        result = self._executor.delete(source, self._config.trash_dir)
        self._logger.info(
            "apply.delete",
            source=str(result.source),
            target=str(result.target) if result.target else None,
            success=result.success,
            transaction_id=result.transaction_id,
        )
        return result

    def history(self, limit: int = 0) -> list[Transaction]:
        """Return persisted transactions, oldest first."""
        return self._ledger.get_history(limit)

    def undo(self, transaction_id: str | None = None) -> Transaction:
        """Undo one committed transaction.

        Args:
            transaction_id: Transaction to undo; the newest committed one if
                omitted

        Returns:
            The transaction, now marked rolled back

        Raises:
            LedgerError: If there is nothing to undo or reversal fails
        """
        if transaction_id is None:
            latest = self._ledger.last_committed()
            if latest is None:
                raise LedgerError("no committed transaction to undo")
            transaction_id = latest.id

        tx = self._ledger.undo(transaction_id)
        self._logger.info(
            "apply.undo", transaction_id=tx.id, operations=len(tx.operations)
        )
        return tx

    def _create_progress(self, disable: bool = False) -> Progress:
        """Create Rich progress display."""
        return Progress(
            SpinnerColumn(),
            TextColumn("[bold blue]{task.description}"),
            BarColumn(),
            TaskProgressColumn(),
            console=self._ui,
            transient=False,
            disable=disable,
        )

    def _show_item_result(
        self, planned: PlannedOperation, result: OperationResult
    ) -> None:
        """Show Rich output for item result."""
        name = result.source.name
        new_name = result.target.name if result.target else name
        if not result.success:
            self._ui.print(
                f"❌ [red]FAILED[/red] {planned.type.value}: {name} ({result.error})"
            )
        elif result.skipped:
            self._ui.print(f"⚠️ [yellow]SKIPPED[/yellow] {name} → {new_name}")
        else:
            self._ui.print(
                f"✅ [green]{planned.type.value.upper()}[/green] {name} → {new_name}"
            )
