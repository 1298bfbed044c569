"""Bounded-concurrency execution of organization plans.

Each planned operation is handed to the OperationExecutor on a worker thread.
At most ``max_concurrency`` operations run at once, and a failing operation is
recorded in the BatchResult without stopping the rest of the batch.
"""

from __future__ import annotations

import functools
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Any

import anyio
import structlog

from tidyfs.core.errors import PlanCancelledError, PlanValidationError, TidyFSError
from tidyfs.fs.executor import (
    MoveOptions,
    OperationExecutor,
    OperationResult,
    RenameOptions,
)
from tidyfs.ledger.models import OperationType
from tidyfs.plan.cancel import CancelToken
from tidyfs.plan.models import (
    BatchResult,
    OrganizePlan,
    OrganizeStrategy,
    PlannedOperation,
)

__all__ = ["PlanExecutor", "ProgressCallback"]

#: Called after each operation with (planned, result, completed, total)
ProgressCallback = Callable[[PlannedOperation, OperationResult, int, int], None]


class PlanExecutor:
    """Execute a plan through an OperationExecutor with a bounded worker pool."""

    def __init__(self, executor: OperationExecutor, logger: Any = None) -> None:
        """Initialize plan executor.

        Args:
            executor: Executor that performs each individual operation
            logger: Optional structlog logger instance
        """
        self._executor = executor
        self._logger = logger or structlog.get_logger(__name__)

    async def execute_plan(
        self,
        plan: OrganizePlan | Sequence[PlannedOperation] | None,
        strategy: OrganizeStrategy | None = None,
        *,
        cancel: CancelToken | None = None,
        on_result: ProgressCallback | None = None,
    ) -> BatchResult:
        """Execute every operation of ``plan``.

        Args:
            plan: Plan or plain sequence of planned operations
            strategy: Execution strategy; defaults to OrganizeStrategy()
            cancel: Optional token polled before each dispatch
            on_result: Optional progress hook called after each operation

        Returns:
            BatchResult aggregating all outcomes

        Raises:
            PlanValidationError: If ``plan`` is None
            PlanCancelledError: If ``cancel`` fired; carries the partial result
        """
        if plan is None:
            raise PlanValidationError("plan is None")

        operations = list(plan.operations if isinstance(plan, OrganizePlan) else plan)
        strategy = strategy or OrganizeStrategy()
        result = BatchResult()
        total = len(operations)

        log = self._logger.bind(
            total=total,
            dry_run=strategy.dry_run,
            conflict_strategy=strategy.conflict_strategy.value,
        )

        if strategy.dry_run:
            result.successful = total
            log.info("plan.dry_run")
            return result

        concurrency = strategy.effective_concurrency
        slots = anyio.Semaphore(concurrency)
        limiter = anyio.CapacityLimiter(concurrency)
        completed = 0
        cancelled_reason = ""

        async def run_one(planned: PlannedOperation) -> None:
            nonlocal completed
            try:
                op_result = await anyio.to_thread.run_sync(
                    functools.partial(self._dispatch, planned, strategy),
                    limiter=limiter,
                )
            except Exception as exc:
                log.exception("plan.unexpected_error", source=planned.source)
                error = TidyFSError(f"{planned.source}: unexpected error: {exc}")
                op_result = OperationResult(
                    success=False, source=Path(planned.source), error=error
                )
            finally:
                slots.release()

            result.record(planned, op_result)
            completed += 1
            if on_result is not None:
                try:
                    on_result(planned, op_result, completed, total)
                except Exception:
                    log.exception(
                        "plan.progress_hook_failed",
                        source=planned.source,
                        completed=completed,
                    )

        log.info("plan.start", max_concurrency=concurrency)
        async with anyio.create_task_group() as tg:
            for planned in operations:
                if cancel is not None and cancel.cancelled:
                    cancelled_reason = cancel.reason
                    break
                await slots.acquire()
                if cancel is not None and cancel.cancelled:
                    slots.release()
                    cancelled_reason = cancel.reason
                    break
                tg.start_soon(run_one, planned)

        log.info(
            "plan.summary",
            successful=result.successful,
            failed=result.failed,
            skipped=result.skipped,
            transactions=len(result.transaction_ids),
        )

        if cancelled_reason:
            log.warning("plan.cancelled", reason=cancelled_reason, completed=completed)
            raise PlanCancelledError(result, cancelled_reason)

        return result

    def run_plan(
        self,
        plan: OrganizePlan | Sequence[PlannedOperation] | None,
        strategy: OrganizeStrategy | None = None,
        *,
        cancel: CancelToken | None = None,
        on_result: ProgressCallback | None = None,
    ) -> BatchResult:
        """Blocking wrapper around ``execute_plan`` for synchronous callers."""
        return anyio.run(
            functools.partial(
                self.execute_plan,
                plan,
                strategy,
                cancel=cancel,
                on_result=on_result,
            )
        )

    def _dispatch(
        self, planned: PlannedOperation, strategy: OrganizeStrategy
    ) -> OperationResult:
        target = Path(planned.target)

        if planned.type is OperationType.MOVE:
            return self._executor.move(
                planned.source,
                target.parent,
                MoveOptions(
                    create_target_dir=strategy.create_folders,
                    conflict_strategy=strategy.conflict_strategy,
                ),
            )

        if planned.type is OperationType.RENAME:
            return self._executor.rename(
                planned.source,
                target.name,
                RenameOptions(
                    preserve_extension=True,
                    conflict_strategy=strategy.conflict_strategy,
                ),
            )

        return OperationResult(
            success=False,
            source=Path(planned.source),
            target=target,
            error=PlanValidationError(
                f"unknown operation type: {planned.type.value}"
            ),
        )
