"""Pytest configuration and fixtures for tidyfs tests."""

from pathlib import Path

import pytest

from tidyfs.fs.executor import OperationExecutor
from tidyfs.ledger import TransactionLedger


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Keep tests away from the real ``~/.tidyfs`` state directory."""
    for name in (
        "TIDYFS_LOG_PATH",
        "TIDYFS_TRASH_DIR",
        "TIDYFS_MAX_CONCURRENCY",
        "TIDYFS_CONFLICT_STRATEGY",
        "TIDYFS_DEBUG",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("HOME", str(tmp_path / "home"))


@pytest.fixture
def log_path(tmp_path: Path) -> Path:
    """Transaction log location inside the test directory."""
    return tmp_path / "state" / "transactions.json"


@pytest.fixture
def ledger(log_path: Path) -> TransactionLedger:
    return TransactionLedger(log_path)


@pytest.fixture
def executor(ledger: TransactionLedger) -> OperationExecutor:
    return OperationExecutor(ledger)


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    """Directory holding the files a test operates on."""
    root = tmp_path / "files"
    root.mkdir()
    return root
