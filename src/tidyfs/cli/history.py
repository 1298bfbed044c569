"""CLI commands for inspecting and undoing transactions."""

from __future__ import annotations

import importlib
import json
from typing import TYPE_CHECKING, Annotated

if TYPE_CHECKING:  # pragma: no cover - typing only
    import typer
else:  # pragma: no cover - runtime fallback for typing
    typer = importlib.import_module("typer")

from rich.console import Console
from rich.table import Table

from tidyfs.chains.apply_chain import ApplyChain
from tidyfs.cli.apply import JsonFlag, LogPathOption, fail, load_config
from tidyfs.core.errors import TidyFSError
from tidyfs.ledger import Transaction, TransactionStatus

LimitOption = Annotated[
    int,
    typer.Option("--limit", min=0, help="Show only the newest N transactions."),
]
TransactionArgument = Annotated[
    str | None,
    typer.Argument(help="Transaction id; defaults to the newest committed one."),
]

_STATUS_STYLES = {
    TransactionStatus.COMMITTED: "green",
    TransactionStatus.ROLLED_BACK: "yellow",
    TransactionStatus.PENDING: "blue",
}


def show_history(
    limit: LimitOption = 20,
    log_path: LogPathOption = None,
    json_output: JsonFlag = False,
) -> None:
    """List recorded transactions, oldest first."""

    chain = ApplyChain(load_config(log_path=log_path))
    try:
        txns = chain.history(limit)
    except TidyFSError as exc:
        fail(exc)

    if json_output:
        payload = [tx.model_dump(mode="json") for tx in txns]
        typer.echo(json.dumps(payload, indent=2))
        return

    if not txns:
        typer.echo("No transactions recorded.")
        return

    Console().print(_history_table(txns))


def undo_transaction(
    transaction_id: TransactionArgument = None,
    log_path: LogPathOption = None,
) -> None:
    """Reverse a committed transaction."""

    chain = ApplyChain(load_config(log_path=log_path))
    try:
        tx = chain.undo(transaction_id)
    except TidyFSError as exc:
        fail(exc)

    typer.secho(
        f"Undid transaction {tx.id} ({len(tx.operations)} operation(s))",
        fg=typer.colors.GREEN,
    )


def _history_table(txns: list[Transaction]) -> Table:
    table = Table(title="Transaction history")
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Time")
    table.add_column("Status")
    table.add_column("Operations")

    for tx in txns:
        style = _STATUS_STYLES.get(tx.status, "white")
        ops = "\n".join(
            f"{op.type.value}: {op.source} → {op.target}" for op in tx.operations
        )
        table.add_row(
            tx.id,
            tx.timestamp.strftime("%Y-%m-%d %H:%M:%S"),
            f"[{style}]{tx.status.value}[/{style}]",
            ops,
        )
    return table
