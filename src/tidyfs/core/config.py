"""Engine configuration.

Settings are carried by an explicit ``EngineConfig`` passed into the ledger,
executors and CLI. Nothing is read from module-level state after import.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path

from pydantic import BaseModel, Field, field_serializer, field_validator

from tidyfs.core.constants import (
    DEFAULT_CONCURRENCY,
    DEFAULT_LOG_PATH,
    DEFAULT_TRASH_DIR,
    ENV_CONFLICT_STRATEGY,
    ENV_LOG_PATH,
    ENV_MAX_CONCURRENCY,
    ENV_TRASH_DIR,
)
from tidyfs.fs.conflicts import ConflictStrategy

__all__ = ["EngineConfig"]


class EngineConfig(BaseModel):
    """Configuration shared by the ledger, the executors and the CLI.

    Attributes:
        log_path: Location of the JSON transaction log
        trash_dir: Directory that deleted files are relocated into
        max_concurrency: Worker pool size for plan execution
        conflict_strategy: Default policy when a target path is occupied
        create_folders: Whether moves may create missing target directories
    """

    log_path: Path = Field(default=DEFAULT_LOG_PATH)
    trash_dir: Path = Field(default=DEFAULT_TRASH_DIR)
    max_concurrency: int = Field(default=DEFAULT_CONCURRENCY, ge=1)
    conflict_strategy: ConflictStrategy = ConflictStrategy.SUFFIX
    create_folders: bool = True

    @field_validator("log_path", "trash_dir")
    @classmethod
    def expand_user(cls, v: Path) -> Path:
        """Expand ``~`` so defaults point into the user's home directory."""
        return Path(v).expanduser()

    @field_serializer("log_path", "trash_dir")
    def serialize_paths(self, path: Path) -> str:
        """Serialize Path to string for JSON."""
        return str(path)

    @classmethod
    def from_env(
        cls, environ: Mapping[str, str] | None = None, **overrides: object
    ) -> EngineConfig:
        """Build a config from ``TIDYFS_*`` environment variables.

        Explicit keyword overrides win over the environment, which wins over
        the defaults. ``None`` overrides are ignored so CLI options can be
        passed straight through.

        Args:
            environ: Mapping to read instead of ``os.environ``
            **overrides: Field values that take precedence

        Returns:
            A validated EngineConfig
        """
        env = os.environ if environ is None else environ
        values: dict[str, object] = {}

        if env.get(ENV_LOG_PATH):
            values["log_path"] = env[ENV_LOG_PATH]
        if env.get(ENV_TRASH_DIR):
            values["trash_dir"] = env[ENV_TRASH_DIR]
        if env.get(ENV_MAX_CONCURRENCY):
            values["max_concurrency"] = env[ENV_MAX_CONCURRENCY]
        if env.get(ENV_CONFLICT_STRATEGY):
            values["conflict_strategy"] = env[ENV_CONFLICT_STRATEGY]

        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls.model_validate(values)
