"""CLI command for reversible deletes."""

from __future__ import annotations

import importlib
from pathlib import Path
from typing import TYPE_CHECKING, Annotated

if TYPE_CHECKING:  # pragma: no cover - typing only
    import typer
else:  # pragma: no cover - runtime fallback for typing
    typer = importlib.import_module("typer")

from tidyfs.chains.apply_chain import ApplyChain
from tidyfs.cli.apply import LogPathOption, fail, load_config
from tidyfs.core.errors import TidyFSError

PathsArgument = Annotated[
    list[Path],
    typer.Argument(help="Files or directories to move into the trash."),
]
TrashDirOption = Annotated[
    Path | None,
    typer.Option("--trash-dir", help="Optional override for the trash directory."),
]


def delete_paths(
    paths: PathsArgument,
    trash_dir: TrashDirOption = None,
    log_path: LogPathOption = None,
) -> None:
    """Move paths into the trash; each delete can be undone."""

    chain = ApplyChain(load_config(log_path=log_path, trash_dir=trash_dir))
    failed = 0
    for path in paths:
        try:
            result = chain.delete(path)
        except TidyFSError as exc:
            fail(exc)

        if result.success:
            typer.secho(
                f"Deleted {result.source} → {result.target} ({result.transaction_id})",
                fg=typer.colors.GREEN,
            )
        else:
            failed += 1
            typer.secho(f"Error: {result.error}", err=True, fg=typer.colors.RED)

    if failed:
        raise typer.Exit(code=1)
