"""Top-level ``tidyfs`` command."""

from __future__ import annotations

import importlib
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:  # pragma: no cover - typing only
    import typer
    from typer import Typer as TyperType
else:  # pragma: no cover - runtime fallback for typing
    typer = importlib.import_module("typer")
    TyperType = Any

from tidyfs.cli.apply import apply_plan
from tidyfs.cli.delete import delete_paths
from tidyfs.cli.history import show_history, undo_transaction

app: TyperType = typer.Typer(
    help="Apply file organization plans as reversible transactions.",
    no_args_is_help=True,
)


def run_cli(args: Sequence[str] | None = None) -> None:
    app(args=args)


app.command("apply")(apply_plan)
app.command("delete")(delete_paths)
app.command("history")(show_history)
app.command("undo")(undo_transaction)
