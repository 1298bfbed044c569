"""CLI command for executing organization plans."""

from __future__ import annotations

import importlib
import json
from pathlib import Path
from typing import TYPE_CHECKING, Annotated, Any, NoReturn

if TYPE_CHECKING:  # pragma: no cover - typing only
    import typer
else:  # pragma: no cover - runtime fallback for typing
    typer = importlib.import_module("typer")

from pydantic import ValidationError as PydanticValidationError
from rich.console import Console

from tidyfs.chains.apply_chain import ApplyChain
from tidyfs.core.config import EngineConfig
from tidyfs.core.errors import PlanCancelledError, TidyFSError
from tidyfs.fs.conflicts import ConflictStrategy
from tidyfs.plan import BatchResult, OrganizePlan

PlanArgument = Annotated[
    Path,
    typer.Argument(help="JSON plan file (a plan object or a list of operations)."),
]
DryRunFlag = Annotated[
    bool,
    typer.Option("--dry-run", help="Report what would happen without changes."),
]
ConflictOption = Annotated[
    ConflictStrategy | None,
    typer.Option("--conflict", help="Policy when a target path already exists."),
]
ConcurrencyOption = Annotated[
    int | None,
    typer.Option("--concurrency", min=1, help="Number of parallel workers."),
]
NoCreateFoldersFlag = Annotated[
    bool,
    typer.Option(
        "--no-create-folders", help="Fail moves whose target folder is missing."
    ),
]
LogPathOption = Annotated[
    Path | None,
    typer.Option("--log-path", help="Optional override for the transaction log."),
]
JsonFlag = Annotated[
    bool,
    typer.Option("--json", help="Emit the batch result as JSON."),
]


def load_config(**overrides: Any) -> EngineConfig:
    """Build the engine config, exiting with code 1 on invalid settings."""
    try:
        return EngineConfig.from_env(**overrides)
    except PydanticValidationError as exc:
        typer.secho(f"Invalid configuration: {exc}", err=True, fg=typer.colors.RED)
        raise typer.Exit(code=1) from exc


def fail(exc: TidyFSError) -> NoReturn:
    typer.secho(f"Error: {exc}", err=True, fg=typer.colors.RED)
    raise typer.Exit(code=1) from exc


def apply_plan(
    plan_path: PlanArgument,
    dry_run: DryRunFlag = False,
    conflict: ConflictOption = None,
    concurrency: ConcurrencyOption = None,
    no_create_folders: NoCreateFoldersFlag = False,
    log_path: LogPathOption = None,
    json_output: JsonFlag = False,
) -> None:
    """Execute a plan file; each operation is committed as its own transaction."""

    config = load_config(
        log_path=log_path,
        conflict_strategy=conflict,
        max_concurrency=concurrency,
        create_folders=False if no_create_folders else None,
    )

    try:
        plan = OrganizePlan.load(plan_path)
    except TidyFSError as exc:
        fail(exc)

    chain = ApplyChain(config)
    try:
        result = chain.apply(
            plan, chain.strategy(dry_run=dry_run), show_progress=not json_output
        )
    except PlanCancelledError as exc:
        _print_result(exc.result, json_output)
        fail(exc)
    except TidyFSError as exc:
        fail(exc)

    _print_result(result, json_output)
    if result.failed:
        raise typer.Exit(code=1)


def _print_result(result: BatchResult, json_output: bool) -> None:
    if json_output:
        typer.echo(json.dumps(result.to_dict(), indent=2, sort_keys=True))
        return

    console = Console()
    console.print(
        f"[green]{result.successful} succeeded[/green], "
        f"[red]{result.failed} failed[/red], "
        f"[yellow]{result.skipped} skipped[/yellow]"
    )
    for source, error in result.failed_files.items():
        console.print(f"  [red]✗[/red] {source}: {error}")
