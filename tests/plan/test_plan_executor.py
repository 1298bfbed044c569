"""Tests for bounded-concurrency plan execution."""

import threading
import time
from pathlib import Path
from unittest.mock import patch

import pytest

from tidyfs.core.errors import PlanCancelledError, PlanValidationError, TidyFSError
from tidyfs.fs.conflicts import ConflictStrategy
from tidyfs.fs.executor import OperationExecutor, OperationResult
from tidyfs.ledger import OperationType, TransactionLedger
from tidyfs.plan import (
    CancelToken,
    OrganizePlan,
    OrganizeStrategy,
    PlanExecutor,
    PlannedOperation,
)


def _move(src: Path, dst: Path) -> PlannedOperation:
    return PlannedOperation(type=OperationType.MOVE, source=str(src), target=str(dst))


def _files(root: Path, count: int, prefix: str = "file") -> list[Path]:
    paths = []
    for i in range(count):
        path = root / f"{prefix}{i}.txt"
        path.write_text(str(i))
        paths.append(path)
    return paths


@pytest.fixture
def plan_executor(executor: OperationExecutor) -> PlanExecutor:
    return PlanExecutor(executor)


class TestExecutePlan:
    """Test plan execution outcomes."""

    @pytest.mark.asyncio
    async def test_none_plan_rejected(self, plan_executor: PlanExecutor) -> None:
        with pytest.raises(PlanValidationError):
            await plan_executor.execute_plan(None)

    @pytest.mark.asyncio
    async def test_empty_plan(self, plan_executor: PlanExecutor) -> None:
        result = await plan_executor.execute_plan([])

        assert result.total == 0
        assert result.errors == []

    @pytest.mark.asyncio
    async def test_moves_into_created_folders(
        self, workspace: Path, plan_executor: PlanExecutor, ledger: TransactionLedger
    ) -> None:
        """Test that missing nested target folders are created."""
        sources = _files(workspace, 6)
        plan = [
            _move(src, workspace / "sorted" / f"group{i % 3}" / src.name)
            for i, src in enumerate(sources)
        ]

        result = await plan_executor.execute_plan(plan)

        assert result.successful == 6
        assert result.failed == 0
        assert len(result.transaction_ids) == 6
        assert len(set(result.transaction_ids)) == 6
        for i, src in enumerate(sources):
            assert not src.exists()
            assert (workspace / "sorted" / f"group{i % 3}" / src.name).exists()
        assert len(ledger.get_history()) == 6

    @pytest.mark.asyncio
    async def test_batch_resilience(
        self, workspace: Path, plan_executor: PlanExecutor
    ) -> None:
        """Test that failing operations do not stop the rest of the batch."""
        good = _files(workspace, 5)
        missing = [workspace / f"missing{i}.txt" for i in range(3)]
        plan = [_move(src, workspace / "out" / src.name) for src in good + missing]

        result = await plan_executor.execute_plan(
            plan, OrganizeStrategy(max_concurrency=2)
        )

        assert result.successful == 5
        assert result.failed == 3
        assert len(result.errors) == 3
        assert set(result.failed_files) == {str(p) for p in missing}
        assert all(isinstance(e, TidyFSError) for e in result.errors)

    @pytest.mark.asyncio
    async def test_dry_run_touches_nothing(
        self, workspace: Path, plan_executor: PlanExecutor, log_path: Path
    ) -> None:
        sources = _files(workspace, 3)
        plan = [_move(src, workspace / "out" / src.name) for src in sources]

        result = await plan_executor.execute_plan(plan, OrganizeStrategy(dry_run=True))

        assert result.successful == 3
        assert result.transaction_ids == []
        assert all(src.exists() for src in sources)
        assert not (workspace / "out").exists()
        assert not log_path.exists()

    @pytest.mark.asyncio
    async def test_rename_uses_target_basename(
        self, workspace: Path, plan_executor: PlanExecutor
    ) -> None:
        """Test that renames keep the source extension."""
        src = workspace / "IMG_0001.jpeg"
        src.write_text("img")
        plan = [
            PlannedOperation(
                type=OperationType.RENAME,
                source=str(src),
                target=str(workspace / "holiday.jpg"),
                reason="date rule",
            )
        ]

        result = await plan_executor.execute_plan(plan)

        assert result.successful == 1
        assert (workspace / "holiday.jpeg").exists()

    @pytest.mark.asyncio
    async def test_unsupported_type_is_a_failure(
        self, workspace: Path, plan_executor: PlanExecutor
    ) -> None:
        src = workspace / "a.txt"
        src.write_text("a")
        plan = [
            PlannedOperation(
                type=OperationType.DELETE, source=str(src), target=str(src)
            )
        ]

        result = await plan_executor.execute_plan(plan)

        assert result.failed == 1
        assert isinstance(result.errors[0], PlanValidationError)
        assert src.exists()

    @pytest.mark.asyncio
    async def test_folder_creation_disabled(
        self, workspace: Path, plan_executor: PlanExecutor
    ) -> None:
        sources = _files(workspace, 2)
        plan = [_move(src, workspace / "nope" / src.name) for src in sources]

        result = await plan_executor.execute_plan(
            plan, OrganizeStrategy(create_folders=False)
        )

        assert result.failed == 2
        assert all(src.exists() for src in sources)

    @pytest.mark.asyncio
    async def test_skip_conflicts_are_counted(
        self, workspace: Path, plan_executor: PlanExecutor
    ) -> None:
        out = workspace / "out"
        out.mkdir()
        (out / "file0.txt").write_text("existing")
        sources = _files(workspace, 2)
        plan = [_move(src, out / src.name) for src in sources]

        result = await plan_executor.execute_plan(
            plan, OrganizeStrategy(conflict_strategy=ConflictStrategy.SKIP)
        )

        assert result.successful == 1
        assert result.skipped == 1
        assert result.total == 2
        assert (out / "file0.txt").read_text() == "existing"

    @pytest.mark.asyncio
    async def test_suffix_keeps_every_file_under_concurrency(
        self, workspace: Path, plan_executor: PlanExecutor
    ) -> None:
        """Test that same-named files moved in parallel never replace each other."""
        plan = []
        for i in range(12):
            folder = workspace / f"cam{i}"
            folder.mkdir()
            src = folder / "photo.jpg"
            src.write_text(str(i))
            plan.append(_move(src, workspace / "photos" / "photo.jpg"))

        result = await plan_executor.execute_plan(
            plan,
            OrganizeStrategy(max_concurrency=8, conflict_strategy="suffix"),
        )

        assert result.successful == 12
        contents = sorted(p.read_text() for p in (workspace / "photos").iterdir())
        assert contents == sorted(str(i) for i in range(12))

    @pytest.mark.asyncio
    async def test_unexpected_exception_is_recorded(
        self, workspace: Path, executor: OperationExecutor
    ) -> None:
        src = workspace / "a.txt"
        src.write_text("a")

        with patch.object(executor, "move", side_effect=RuntimeError("boom")):
            result = await PlanExecutor(executor).execute_plan(
                [_move(src, workspace / "out" / "a.txt")]
            )

        assert result.failed == 1
        assert "boom" in str(result.errors[0])

    @pytest.mark.asyncio
    async def test_accepts_organize_plan(
        self, workspace: Path, plan_executor: PlanExecutor
    ) -> None:
        sources = _files(workspace, 2)
        plan = OrganizePlan.from_operations(
            [_move(src, workspace / "out" / src.name) for src in sources]
        )

        result = await plan_executor.execute_plan(plan)

        assert result.successful == 2


class TestConcurrencyAndProgress:
    """Test the worker bound, progress hook and cancellation."""

    @pytest.mark.asyncio
    async def test_never_exceeds_max_concurrency(
        self, workspace: Path, executor: OperationExecutor
    ) -> None:
        active = 0
        peak = 0
        lock = threading.Lock()
        original_move = executor.move

        def slow_move(*args, **kwargs) -> OperationResult:
            nonlocal active, peak
            with lock:
                active += 1
                peak = max(peak, active)
            time.sleep(0.02)
            try:
                return original_move(*args, **kwargs)
            finally:
                with lock:
                    active -= 1

        sources = _files(workspace, 10)
        plan = [_move(src, workspace / "out" / src.name) for src in sources]

        with patch.object(executor, "move", side_effect=slow_move):
            result = await PlanExecutor(executor).execute_plan(
                plan, OrganizeStrategy(max_concurrency=3)
            )

        assert result.successful == 10
        assert 1 <= peak <= 3

    @pytest.mark.asyncio
    async def test_zero_concurrency_uses_default(
        self, workspace: Path, plan_executor: PlanExecutor
    ) -> None:
        sources = _files(workspace, 3)
        plan = [_move(src, workspace / "out" / src.name) for src in sources]

        result = await plan_executor.execute_plan(
            plan, OrganizeStrategy(max_concurrency=0)
        )

        assert result.successful == 3

    @pytest.mark.asyncio
    async def test_progress_hook(
        self, workspace: Path, plan_executor: PlanExecutor
    ) -> None:
        """Test that the hook sees every operation with a running count."""
        calls: list[tuple[str, bool, int, int]] = []
        sources = _files(workspace, 4)
        plan = [_move(src, workspace / "out" / src.name) for src in sources]

        await plan_executor.execute_plan(
            plan,
            on_result=lambda planned, result, done, total: calls.append(
                (planned.source, result.success, done, total)
            ),
        )

        assert sorted(c[0] for c in calls) == sorted(str(s) for s in sources)
        assert [c[2] for c in calls] == [1, 2, 3, 4]
        assert all(c[1] and c[3] == 4 for c in calls)

    @pytest.mark.asyncio
    async def test_failing_progress_hook_does_not_stop_batch(
        self, workspace: Path, plan_executor: PlanExecutor, ledger: TransactionLedger
    ) -> None:
        """Test that a hook error is logged and the batch result still returned."""
        sources = _files(workspace, 5)
        plan = [_move(src, workspace / "out" / src.name) for src in sources]
        calls: list[int] = []

        def on_result(
            planned: PlannedOperation, result: OperationResult, done: int, total: int
        ) -> None:
            calls.append(done)
            if done == 1:
                raise ValueError("display failed")

        result = await plan_executor.execute_plan(plan, on_result=on_result)

        assert result.successful == 5
        assert len(result.transaction_ids) == 5
        assert sorted(calls) == [1, 2, 3, 4, 5]
        assert all((workspace / "out" / src.name).exists() for src in sources)
        assert len(ledger.get_history()) == 5

    @pytest.mark.asyncio
    async def test_cancel_before_start(
        self, workspace: Path, plan_executor: PlanExecutor
    ) -> None:
        sources = _files(workspace, 3)
        plan = [_move(src, workspace / "out" / src.name) for src in sources]
        token = CancelToken()
        token.cancel()

        with pytest.raises(PlanCancelledError) as exc_info:
            await plan_executor.execute_plan(plan, cancel=token)

        assert exc_info.value.result.total == 0
        assert exc_info.value.reason == "cancelled"
        assert all(src.exists() for src in sources)

    @pytest.mark.asyncio
    async def test_cancel_mid_batch_keeps_partial_result(
        self, workspace: Path, plan_executor: PlanExecutor
    ) -> None:
        """Test that in-flight work finishes and nothing new is dispatched."""
        sources = _files(workspace, 20)
        plan = [_move(src, workspace / "out" / src.name) for src in sources]
        token = CancelToken()

        def cancel_after_first(planned, result, done, total) -> None:
            if done == 1:
                token.cancel()

        with pytest.raises(PlanCancelledError) as exc_info:
            await plan_executor.execute_plan(
                plan,
                OrganizeStrategy(max_concurrency=1),
                cancel=token,
                on_result=cancel_after_first,
            )

        partial = exc_info.value.result
        assert 1 <= partial.successful < 20
        assert partial.failed == 0
        moved = list((workspace / "out").iterdir())
        assert len(moved) == partial.successful

    @pytest.mark.asyncio
    async def test_deadline(self, workspace: Path, plan_executor: PlanExecutor) -> None:
        sources = _files(workspace, 2)
        plan = [_move(src, workspace / "out" / src.name) for src in sources]

        with pytest.raises(PlanCancelledError) as exc_info:
            await plan_executor.execute_plan(plan, cancel=CancelToken(timeout=0))

        assert exc_info.value.reason == "deadline exceeded"


class TestRunPlan:
    """Test the blocking wrapper."""

    def test_run_plan(self, workspace: Path, plan_executor: PlanExecutor) -> None:
        sources = _files(workspace, 3)
        plan = [_move(src, workspace / "out" / src.name) for src in sources]

        result = plan_executor.run_plan(plan)

        assert result.successful == 3
        assert all((workspace / "out" / src.name).exists() for src in sources)


class TestCancelToken:
    """Test the cancellation token."""

    def test_not_cancelled_initially(self) -> None:
        token = CancelToken()

        assert not token.cancelled
        assert token.reason == ""

    def test_cancel(self) -> None:
        token = CancelToken()
        token.cancel()

        assert token.cancelled
        assert token.reason == "cancelled"

    def test_future_deadline(self) -> None:
        token = CancelToken(timeout=60)

        assert not token.cancelled
        assert not token.deadline_exceeded
