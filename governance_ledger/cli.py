"""Operator CLI for the governance ledger.

Commands:
    reconcile-user      Rebuild one user's balance from the ledger
    reconcile-proposal  Rebuild one proposal's tally from its votes
    reconcile-all       Rebuild every balance and/or tally
    verify-user         Report balance drift without changing anything
    stats               Show a user's balance and lifetime ledger totals
    sequence-status     Sync with the chain and show the proposal id counter

Reads DATABASE_URL, CHAIN_GATEWAY_URL and the LEDGER_* variables.
"""

import asyncio
import json
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import Any, TypeVar

import typer
from rich.console import Console
from rich.table import Table

from governance_ledger import __version__
from governance_ledger.bootstrap.database import (
    close_database_engine,
    get_session_factory,
)
from governance_ledger.bootstrap.logging import configure_structlog
from governance_ledger.bootstrap.services import LedgerServices, build_ledger_services
from governance_ledger.domain.exceptions import LedgerError
from governance_ledger.infrastructure.adapters.external import ChainGatewayClient
from governance_ledger.infrastructure.observability import operation_context

T = TypeVar("T")


class OutputFormat(str, Enum):
    """Output format options."""

    text = "text"
    json = "json"


app = typer.Typer(
    name="governance-ledger",
    help="Operator tools for the governance ledger",
    add_completion=False,
)
console = Console()


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"governance-ledger version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None,
        "--version",
        "-v",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
) -> None:
    """Governance ledger operator toolkit."""
    pass


def _build_services() -> LedgerServices:
    return build_ledger_services(get_session_factory())


async def _shutdown(services: LedgerServices) -> None:
    if isinstance(services.authority, ChainGatewayClient):
        await services.authority.aclose()
    await close_database_engine()


def _run(operation: str, action: Callable[[LedgerServices], Awaitable[T]]) -> T:
    """Run an async action against freshly wired services.

    Logs emitted while it runs carry the operation name and one correlation
    id. Domain errors become a red message and exit code 1.
    """
    configure_structlog()

    async def runner() -> T:
        services = _build_services()
        try:
            return await action(services)
        finally:
            await _shutdown(services)

    try:
        with operation_context(operation):
            return asyncio.run(runner())
    except LedgerError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(code=1) from exc


def _print_json(data: Any) -> None:
    console.print_json(json.dumps(data, default=str))


def _print_mapping(title: str, data: dict[str, Any]) -> None:
    table = Table(title=title)
    table.add_column("Field")
    table.add_column("Value", justify="right")
    for key, value in data.items():
        table.add_row(key, "" if value is None else str(value))
    console.print(table)


@app.command()
def reconcile_user(
    subject_id: str = typer.Argument(..., help="User whose balance to rebuild"),
    output_format: OutputFormat = typer.Option(
        OutputFormat.text, "--format", "-o", help="Output format: text or json"
    ),
) -> None:
    """Rebuild a user's balance from CONFIRMED ledger entries."""
    balance = _run("reconcile-user", lambda s: s.reconciliation.recompute(subject_id))
    if output_format == OutputFormat.json:
        _print_json(balance.to_dict())
    else:
        _print_mapping(f"Balance for {subject_id}", balance.to_dict())


@app.command()
def reconcile_proposal(
    proposal_id: int = typer.Argument(..., help="Proposal whose tally to rebuild"),
    output_format: OutputFormat = typer.Option(
        OutputFormat.text, "--format", "-o", help="Output format: text or json"
    ),
) -> None:
    """Rebuild a proposal's tally from its votes."""
    tally = _run(
        "reconcile-proposal", lambda s: s.reconciliation.recompute_proposal(proposal_id)
    )
    if output_format == OutputFormat.json:
        _print_json(tally.to_dict())
    else:
        _print_mapping(f"Tally for proposal {proposal_id}", tally.to_dict())


@app.command()
def reconcile_all(
    balances: bool = typer.Option(True, "--balances/--no-balances", help="Rebuild balances"),
    proposals: bool = typer.Option(
        True, "--proposals/--no-proposals", help="Rebuild vote tallies"
    ),
) -> None:
    """Rebuild every balance and every proposal tally."""

    async def action(services: LedgerServices) -> tuple[int, int]:
        balance_count = proposal_count = 0
        if balances:
            balance_count = len(await services.reconciliation.recompute_all())
        if proposals:
            proposal_count = len(await services.reconciliation.recompute_all_proposals())
        return balance_count, proposal_count

    balance_count, proposal_count = _run("reconcile-all", action)
    console.print(
        f"[green]Reconciled[/green] {balance_count} balance(s) "
        f"and {proposal_count} proposal tally(ies)"
    )


@app.command()
def verify_user(
    subject_id: str = typer.Argument(..., help="User whose balance to check"),
) -> None:
    """Compare a stored balance with the ledger. Exit code 2 on drift."""
    result = _run("verify-user", lambda s: s.reconciliation.verify(subject_id))
    table = Table(title=f"Balance check for {subject_id}")
    table.add_column("Counter")
    table.add_column("Stored", justify="right")
    table.add_column("Ledger", justify="right")
    for name in ("main_point", "sub_point", "token_balance"):
        stored = getattr(result.stored, name) if result.stored else "-"
        table.add_row(name, str(stored), str(getattr(result.expected, name)))
    console.print(table)
    if result.is_consistent:
        console.print("[green]Consistent[/green]")
    else:
        console.print("[yellow]Drift detected[/yellow] (run reconcile-user to repair)")
        raise typer.Exit(code=2)


@app.command()
def stats(
    subject_id: str = typer.Argument(..., help="User to report on"),
    output_format: OutputFormat = typer.Option(
        OutputFormat.text, "--format", "-o", help="Output format: text or json"
    ),
) -> None:
    """Show a user's balance and lifetime ledger totals."""

    async def action(services: LedgerServices) -> dict[str, Any]:
        balance = await services.queries.get_balance(subject_id)
        statistics = await services.queries.get_statistics(subject_id)
        return {"balance": balance.to_dict(), "statistics": statistics.to_dict()}

    report = _run("stats", action)
    if output_format == OutputFormat.json:
        _print_json(report)
    else:
        _print_mapping(f"Balance for {subject_id}", report["balance"])
        _print_mapping(f"Ledger totals for {subject_id}", report["statistics"])


@app.command()
def sequence_status(
    output_format: OutputFormat = typer.Option(
        OutputFormat.text, "--format", "-o", help="Output format: text or json"
    ),
) -> None:
    """Query the chain for the highest proposal id and show the counter."""

    async def action(services: LedgerServices) -> dict[str, object]:
        await services.synchronizer.initialize()
        return services.synchronizer.status().to_dict()

    status = _run("sequence-status", action)
    if output_format == OutputFormat.json:
        _print_json(status)
    else:
        _print_mapping("Proposal id sequence", status)
        if status["degraded"]:
            console.print("[yellow]Chain unreachable: counter fell back to 0[/yellow]")


if __name__ == "__main__":
    app()
