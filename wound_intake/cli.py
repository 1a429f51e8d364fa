"""Command Line Interface for the Wound Intake session engine.

This module provides a CLI using Typer for driving one intake case through
its workflow: inspecting the session, patching the biography, confirming it,
applying workflow events and issuing the clinician PIN.

Security Impact:
    - Identifiers are validated before storage is touched
    - PINs are printed once and only their hash is stored
    - Patient field values are never echoed back, only field names

Note:
    With the default in-memory backend every invocation starts from a blank
    case. Set ``WI_STORAGE_BACKEND=duckdb`` and ``WI_DB_PATH`` to resume
    sessions across invocations.
"""

import asyncio
from typing import Any, Awaitable, Callable, Optional

import typer
from rich.console import Console
from rich.table import Table

from wound_intake import __version__
from wound_intake.domain.enums import SessionEvent
from wound_intake.domain.ports import WoundIntakeError
from wound_intake.infrastructure.encryption.field_encryption import generate_field_key
from wound_intake.infrastructure.encryption.pin_hash import generate_pin
from wound_intake.infrastructure.logging_config import setup_logging
from wound_intake.infrastructure.settings import APP_NAME, get_settings
from wound_intake.main import (
    create_agent_dependencies,
    create_pin_hasher,
    create_repository_registry,
    open_case_session,
)
from wound_intake.session.controller import SessionController, SessionSnapshot

# Initialize Typer app and Rich console
app = typer.Typer(
    name="wound-intake",
    help="Wound Intake: guided clinical wound-intake sessions",
    add_completion=False
)
console = Console()

TRUE_VALUES = {"true", "yes", "y", "1", "on"}
CONSENT_FLAGS = {"dataStorage", "data_storage", "photography", "sharingToTeamBoard", "sharing_to_team_board"}

CASE_OPTION = typer.Option(..., "--case-id", envvar="WI_CASE_ID", help="Case identifier (UUID, optional case-/session-/sid- prefix)")
CLINICIAN_OPTION = typer.Option(..., "--clinician-id", envvar="WI_CLINICIAN_ID", help="Clinician identifier (UUID, optional clinician-/cid- prefix)")


def parse_assignments(values: Optional[list[str]], label: str) -> dict[str, str]:
    """Parse repeated ``KEY=VALUE`` options.

    Raises:
        typer.BadParameter: If an entry has no ``=``
    """
    parsed: dict[str, str] = {}
    for entry in values or []:
        key, separator, value = entry.partition("=")
        if not separator or not key.strip():
            raise typer.BadParameter(f"Expected KEY=VALUE, got '{entry}'", param_hint=label)
        parsed[key.strip()] = value
    return parsed


def parse_consent(values: Optional[list[str]]) -> dict[str, Any]:
    consent: dict[str, Any] = parse_assignments(values, "--consent")
    for key in list(consent):
        if key in CONSENT_FLAGS:
            consent[key] = consent[key].strip().lower() in TRUE_VALUES
    return consent


def run_session_command(
    case_id: str,
    clinician_id: str,
    operation: Callable[[SessionController], Awaitable[Any]],
) -> Any:
    """Open the case session, run ``operation`` on it and map failures to exit code 1."""
    try:
        registry = create_repository_registry()
    except Exception as e:
        console.print(f"[red]✗[/red] Failed to initialize storage: {str(e)}")
        raise typer.Exit(code=1)

    async def _run() -> Any:
        controller = await open_case_session(case_id, clinician_id, registry, create_agent_dependencies())
        return await operation(controller)

    try:
        return asyncio.run(_run())
    except (WoundIntakeError, ValueError) as e:
        console.print(f"[red]✗[/red] {type(e).__name__}: {str(e)}")
        raise typer.Exit(code=1)
    finally:
        registry.close()


def render_snapshot(snapshot: SessionSnapshot) -> None:
    record = snapshot.record
    bio = snapshot.bio_result

    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_row("Case:", record.case_id)
    table.add_row("Clinician:", record.clinician_id)
    table.add_row("State:", f"[bold]{snapshot.state.value}[/bold]")
    table.add_row("Status:", record.status.value)
    table.add_row("Consent:", "[green]valid[/green]" if bio.consent_validated else "[yellow]incomplete[/yellow]")
    table.add_row(
        "Missing:",
        ", ".join(bio.missing_fields) if bio.missing_fields else "[green]none[/green]",
    )
    table.add_row("Photos:", str(len(record.wounds.photos)))
    table.add_row("Follow-ups:", str(len(record.follow_ups)))
    table.add_row("Provenance entries:", str(len(record.provenance_log)))
    table.add_row("Updated:", record.updated_at.isoformat())
    console.print(table)


@app.command()
def snapshot(
    case_id: str = CASE_OPTION,
    clinician_id: str = CLINICIAN_OPTION,
) -> None:
    """Show the current session (creating the case if it does not exist)."""
    result = run_session_command(case_id, clinician_id, lambda controller: controller.get_snapshot())
    console.print("\n[bold]Session Snapshot:[/bold]")
    render_snapshot(result)


@app.command("update-bio")
def update_bio(
    case_id: str = CASE_OPTION,
    clinician_id: str = CLINICIAN_OPTION,
    patient: Optional[list[str]] = typer.Option(None, "--patient", "-p", help="Patient field KEY=VALUE (repeatable; empty value clears)"),
    consent: Optional[list[str]] = typer.Option(None, "--consent", "-c", help="Consent field KEY=VALUE (repeatable)"),
) -> None:
    """Patch the patient biography and consent.

    Examples:
        wound-intake update-bio --case-id ... --clinician-id ... -p firstName=Ada -p age=36
        wound-intake update-bio --case-id ... --clinician-id ... -c dataStorage=true -c photography=true
    """
    payload = {"patient": parse_assignments(patient, "--patient"), "consent": parse_consent(consent)}
    result = run_session_command(case_id, clinician_id, lambda controller: controller.update_bio(payload))
    console.print(f"[green]✓[/green] Biography updated ({len(payload['patient'])} patient, {len(payload['consent'])} consent fields)")
    render_snapshot(result)


@app.command("confirm-bio")
def confirm_bio(
    case_id: str = CASE_OPTION,
    clinician_id: str = CLINICIAN_OPTION,
) -> None:
    """Confirm the biography and move on to wound imaging."""
    confirmation = run_session_command(case_id, clinician_id, lambda controller: controller.confirm_bio())
    if not confirmation.ok and not confirmation.missing_fields:
        console.print(f"[yellow]⚠[/yellow] Biography cannot be confirmed from state {confirmation.state.value}")
        raise typer.Exit(code=1)
    if not confirmation.ok:
        console.print("[yellow]⚠[/yellow] Biography incomplete:")
        for item in confirmation.missing_fields:
            console.print(f"  • {item}")
        raise typer.Exit(code=1)
    console.print(f"[green]✓[/green] Biography confirmed (state: {confirmation.state.value})")


@app.command()
def event(
    name: str = typer.Argument(..., help="Workflow event, e.g. IMAGING_CONFIRMED or ROLLBACK"),
    case_id: str = CASE_OPTION,
    clinician_id: str = CLINICIAN_OPTION,
) -> None:
    """Apply a workflow event to the session."""
    event_name = name.strip().upper()
    if event_name not in SessionEvent.__members__:
        console.print(f"[red]✗[/red] Unknown event: {name}")
        raise typer.Exit(code=1)
    step = run_session_command(
        case_id, clinician_id, lambda controller: controller.trigger_event(SessionEvent[event_name])
    )
    console.print(f"[green]✓[/green] {event_name} applied (state: {step.snapshot.state.value})")


@app.command("assign-pin")
def assign_pin(
    case_id: str = CASE_OPTION,
    clinician_id: str = CLINICIAN_OPTION,
    length: int = typer.Option(6, "--length", "-l", min=4, help="Number of PIN digits"),
) -> None:
    """Issue a new clinician PIN for the case (printed once)."""
    try:
        hasher = create_pin_hasher()
    except ValueError as e:
        console.print(f"[red]✗[/red] {str(e)}")
        raise typer.Exit(code=1)

    pin = generate_pin(length)
    hashed = hasher.hash_pin(pin)
    run_session_command(case_id, clinician_id, lambda controller: controller.assign_pin(hashed.hash))
    console.print(f"[green]✓[/green] PIN issued: [bold]{pin}[/bold]")
    console.print("[dim]Store it now; it cannot be shown again.[/dim]")


@app.command("generate-key")
def generate_key() -> None:
    """Generate a base64 AES-256 key for FIELD_ENCRYPTION_KEY."""
    console.print(generate_field_key())


def version_callback(value: bool) -> None:
    if value:
        console.print(f"{APP_NAME} v{__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    version: bool = typer.Option(False, "--version", callback=version_callback, is_eager=True, help="Show version and exit"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
) -> None:
    """Wound Intake session engine."""
    settings = get_settings()
    setup_logging(use_json=settings.log_json, log_level="DEBUG" if verbose else settings.log_level)


if __name__ == "__main__":
    app()
