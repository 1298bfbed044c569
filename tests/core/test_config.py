"""Tests for engine configuration."""

from pathlib import Path

import pytest
from pydantic import ValidationError as PydanticValidationError

from tidyfs.core.config import EngineConfig
from tidyfs.fs.conflicts import ConflictStrategy


def test_defaults_live_in_home(tmp_path: Path) -> None:
    """Test that defaults expand into the (test) home directory."""
    config = EngineConfig()

    home = tmp_path / "home"
    assert config.log_path == home / ".tidyfs" / "transactions.json"
    assert config.trash_dir == home / ".tidyfs" / "trash"
    assert config.max_concurrency == 4
    assert config.conflict_strategy is ConflictStrategy.SUFFIX
    assert config.create_folders is True


def test_from_env_reads_variables(tmp_path: Path) -> None:
    env = {
        "TIDYFS_LOG_PATH": str(tmp_path / "log.json"),
        "TIDYFS_TRASH_DIR": str(tmp_path / "bin"),
        "TIDYFS_MAX_CONCURRENCY": "8",
        "TIDYFS_CONFLICT_STRATEGY": "overwrite",
    }

    config = EngineConfig.from_env(env)

    assert config.log_path == tmp_path / "log.json"
    assert config.trash_dir == tmp_path / "bin"
    assert config.max_concurrency == 8
    assert config.conflict_strategy is ConflictStrategy.OVERWRITE


def test_from_env_uses_process_environment(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    monkeypatch.setenv("TIDYFS_LOG_PATH", str(tmp_path / "env.json"))

    assert EngineConfig.from_env().log_path == tmp_path / "env.json"


def test_overrides_win_and_none_is_ignored(tmp_path: Path) -> None:
    """Test that explicit values beat the environment and None is skipped."""
    env = {"TIDYFS_MAX_CONCURRENCY": "8", "TIDYFS_CONFLICT_STRATEGY": "skip"}

    config = EngineConfig.from_env(env, max_concurrency=2, conflict_strategy=None)

    assert config.max_concurrency == 2
    assert config.conflict_strategy is ConflictStrategy.SKIP


def test_invalid_values_rejected() -> None:
    with pytest.raises(PydanticValidationError):
        EngineConfig.from_env({"TIDYFS_MAX_CONCURRENCY": "0"})
    with pytest.raises(PydanticValidationError):
        EngineConfig.from_env({"TIDYFS_CONFLICT_STRATEGY": "merge"})


def test_paths_serialize_as_strings(tmp_path: Path) -> None:
    config = EngineConfig(log_path=tmp_path / "l.json", trash_dir=tmp_path / "t")

    data = config.model_dump()

    assert data["log_path"] == str(tmp_path / "l.json")
    assert data["trash_dir"] == str(tmp_path / "t")
