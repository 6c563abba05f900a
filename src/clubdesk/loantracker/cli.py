"""Command-line interface for loantracker.

Built with Typer for commands and Rich for output.
"""

from datetime import datetime
from typing import Any, Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .config import get_config
from .db import DocumentStore, get_db
from .exceptions import ConfigValidationError, LoanTrackerError
from .lending import LendingManager, Loan, OperationError
from .log import configure_logging
from .materials import Incident, IncidentKind, IncidentSeverity
from .notifications import NotificationManager, plan_notifications
from .settings import SYSTEM_VARIABLES_METADATA, SettingsManager, ThresholdConfig
from .settings.schemas import utc_now

# Create the main app
app = typer.Typer(
    name="clubdesk",
    help="Track club material loans, returns and overdue items.",
    no_args_is_help=True,
)

# Sub-app for system variables
config_app = typer.Typer(help="Show and change system variables.")
app.add_typer(config_app, name="config")

# Rich console for pretty output
console = Console()


@app.callback()
def main_callback() -> None:
    """Check the environment and set up logging."""
    config = get_config()
    errors = config.validate()
    if errors:
        for error in errors:
            print_error(error)
        raise typer.Exit(1)
    configure_logging(config.log_level)


# ============================================================================
# Helper Functions
# ============================================================================


def print_error(message: str) -> None:
    """Print an error message."""
    console.print(f"[bold red]Error:[/bold red] {message}")


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[bold green]Success:[/bold green] {message}")


def print_warning(message: str) -> None:
    """Print a warning message."""
    console.print(f"[bold yellow]Warning:[/bold yellow] {message}")


def print_operation_errors(errors: list[OperationError]) -> None:
    for error in errors:
        print_warning(f"{error.operation} failed for {error.target_id}: {error.message}")


def get_store() -> DocumentStore:
    return DocumentStore(get_db(str(get_config().db_path)))


def get_lending(store: DocumentStore) -> LendingManager:
    """Lending manager bound to the stored system variables."""
    settings = SettingsManager(store, actor=get_config().actor)
    return LendingManager(store, settings.load())


def parse_assignments(assignments: list[str]) -> dict[str, Any]:
    """Turn ``name=value`` arguments into a change set (integers where possible)."""
    changes: dict[str, Any] = {}
    for item in assignments:
        if "=" not in item:
            raise typer.BadParameter(f"Expected name=value, got '{item}'")
        name, raw = item.split("=", 1)
        raw = raw.strip()
        try:
            changes[name.strip()] = int(raw)
        except ValueError:
            changes[name.strip()] = raw
    return changes


def format_loan_table(loans: list[Loan], manager: LendingManager, now: datetime, title: str = "Loans") -> Table:
    """Create a rich table for displaying loans with their derived state."""
    table = Table(title=title, show_header=True, header_style="bold magenta")
    table.add_column("ID", style="dim", max_width=8)
    table.add_column("Material", style="cyan", max_width=30)
    table.add_column("User")
    table.add_column("Qty", justify="right")
    table.add_column("Due")
    table.add_column("State")
    table.add_column("Penalty", justify="right")

    for loan in loans:
        state = manager.derive_state(loan, now)
        if state.block_eligible:
            state_str = f"[bold red]{state.status.value} ({state.days_late}d)[/bold red]"
        elif state.days_late:
            state_str = f"[red]{state.status.value} ({state.days_late}d)[/red]"
        else:
            state_str = f"[green]{state.status.value}[/green]"

        table.add_row(
            loan.id[:8],
            loan.material_name or loan.material_id,
            loan.user_name or loan.user_id,
            str(loan.quantity_borrowed),
            state.due_date.date().isoformat(),
            state_str,
            str(state.penalty_applied) if state.penalty_applied else "-",
        )

    return table


# ============================================================================
# Loan Commands
# ============================================================================


@app.command()
def overdue() -> None:
    """Show outstanding loans past their return deadline."""
    store = get_store()
    manager = get_lending(store)

    try:
        loans = manager.get_overdue_loans()
    except LoanTrackerError as e:
        print_error(f"Could not list overdue loans: {e}")
        raise typer.Exit(1)

    if not loans:
        print_success("No overdue loans!")
        return

    now = utc_now()
    grave = sum(1 for l in loans if manager.derive_state(l, now).block_eligible)
    console.print(Panel(
        f"[bold red]Overdue Loans: {len(loans)}[/bold red]\n"
        f"Blocking new loans: {grave}",
        style="red",
    ))
    console.print(format_loan_table(loans, manager, now, title="Overdue Loans"))


@app.command()
def sweep(
    now: Optional[datetime] = typer.Option(None, "--now", help="Evaluate as of this instant (UTC)"),
) -> None:
    """Mark loans of long-finished activities for return."""
    store = get_store()
    manager = get_lending(store)

    try:
        result = manager.auto_mark_overdue_sweep(now)
    except LoanTrackerError as e:
        print_error(f"Sweep failed: {e}")
        raise typer.Exit(1)

    print_success(
        f"{result.marked_loans} loan(s) marked for return across "
        f"{result.processed_activities} activit(ies)"
    )
    print_operation_errors(result.errors)


@app.command("return")
def return_loan(
    loan_id: str = typer.Argument(..., help="Loan ID to return"),
    notes: Optional[str] = typer.Option(None, "--notes", "-n", help="Observations"),
    incident: Optional[IncidentKind] = typer.Option(None, "--incident", "-i", help="Incident kind"),
    severity: IncidentSeverity = typer.Option(IncidentSeverity.LOW, "--severity", "-s", help="Incident severity"),
    description: str = typer.Option("", "--description", "-d", help="Incident description"),
) -> None:
    """Register the return of a loan."""
    store = get_store()
    manager = get_lending(store)

    reported = Incident(kind=incident, severity=severity, description=description) if incident else None
    try:
        result = manager.register_return(loan_id, observations=notes, incident=reported)
    except LoanTrackerError as e:
        print_error(str(e))
        raise typer.Exit(1)

    print_success(f"Loan {loan_id} registered as {result.loan.status.value}")
    print_operation_errors(result.errors)


@app.command("bulk-return")
def bulk_return(
    activity_id: str = typer.Argument(..., help="Activity whose loans are returned"),
    notes: Optional[str] = typer.Option(None, "--notes", "-n", help="Observations for every loan"),
) -> None:
    """Return every outstanding loan of an activity."""
    store = get_store()
    manager = get_lending(store)

    try:
        result = manager.bulk_return_by_activity(activity_id, observations=notes)
    except LoanTrackerError as e:
        print_error(str(e))
        raise typer.Exit(1)

    print_success(f"{result.success_count} of {result.total} loan(s) returned")
    print_operation_errors(result.errors)
    print_operation_errors(result.inventory_errors)
    if result.errors:
        raise typer.Exit(1)


@app.command()
def notify(
    now: Optional[datetime] = typer.Option(None, "--now", help="Evaluate as of this instant (UTC)"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Show notifications without queueing them"),
) -> None:
    """Plan reminder, overdue and grave notifications for outstanding loans."""
    store = get_store()
    manager = get_lending(store)

    planned = plan_notifications(manager.list_outstanding_loans(), manager.config, now)
    if not planned:
        console.print("[dim]No notifications needed[/dim]")
        return

    table = Table(title="Notifications", show_header=True, header_style="bold magenta")
    table.add_column("Loan", style="dim", max_width=8)
    table.add_column("User")
    table.add_column("Kind")
    table.add_column("Message")
    for item in planned:
        table.add_row(item.loan_id[:8], item.user_id, item.kind.value, item.message)
    console.print(table)

    if dry_run:
        return

    result = NotificationManager(store).queue(planned)
    print_success(f"{result.queued} notification(s) queued")
    print_operation_errors(result.errors)


# ============================================================================
# Config Commands
# ============================================================================


@config_app.command("show")
def config_show() -> None:
    """Show the current system variables."""
    store = get_store()
    snapshot = SettingsManager(store).load()
    defaults = ThresholdConfig()

    table = Table(title="System Variables", show_header=True, header_style="bold magenta")
    table.add_column("Variable", style="cyan")
    table.add_column("Value", justify="right")
    table.add_column("Range", justify="center", style="dim")
    table.add_column("Description")

    for name, meta in SYSTEM_VARIABLES_METADATA.items():
        value = getattr(snapshot, name)
        value_str = str(value) if value == getattr(defaults, name) else f"[yellow]{value}[/yellow]"
        table.add_row(name, value_str, f"{meta['min']}-{meta['max']}", meta["description"])

    console.print(table)


@config_app.command("validate")
def config_validate(
    assignments: Optional[list[str]] = typer.Argument(None, help="Proposed changes as name=value"),
) -> None:
    """Validate the stored variables, optionally with proposed changes applied."""
    result = SettingsManager(get_store()).validate(parse_assignments(assignments or []))

    for warning in result.warnings:
        print_warning(warning)
    if not result.is_valid:
        for error in result.errors:
            print_error(error)
        raise typer.Exit(1)
    print_success("Configuration is valid")


@config_app.command("set")
def config_set(
    assignments: list[str] = typer.Argument(..., help="Changes as name=value"),
) -> None:
    """Change one or more system variables."""
    store = get_store()
    settings = SettingsManager(store, actor=get_config().actor)

    try:
        settings.update(parse_assignments(assignments))
    except ConfigValidationError as e:
        for error in e.errors:
            print_error(error)
        raise typer.Exit(1)

    print_success(f"Updated {', '.join(a.split('=', 1)[0] for a in assignments)}")


@config_app.command("reset")
def config_reset(
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
) -> None:
    """Restore every system variable to its default."""
    if not yes and not typer.confirm("Reset all system variables to defaults?"):
        raise typer.Abort()

    SettingsManager(get_store(), actor=get_config().actor).reset_to_defaults()
    print_success("System variables reset to defaults")


# ============================================================================
# Main Entry Point
# ============================================================================


def main() -> None:
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
