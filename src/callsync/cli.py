from __future__ import annotations

import json
import logging
from dataclasses import asdict
from datetime import UTC, datetime
from pathlib import Path
from typing import NoReturn

import typer

from callsync import __version__
from callsync.adapters.hubspot.client import HubspotError
from callsync.config import (
    WorkspaceError,
    ensure_workspaces_dir,
    load_workspace,
    set_current_workspace,
    workspace_config_path,
    write_workspace_config,
)
from callsync.domain import phone
from callsync.domain.rules import ValidationError
from callsync.services import exports, sync_service
from callsync.services.events import EventLogger
from callsync.services.sync import SyncError, build_summary, format_summary
from callsync.services.sync_state import load_sync_state

app = typer.Typer(help="Santral to HubSpot call sync")
workspace_app = typer.Typer(help="Workspace management")
sync_app = typer.Typer(help="Call synchronization")
phone_app = typer.Typer(help="Phone number helpers")
contact_app = typer.Typer(help="HubSpot contact lookups")
export_app = typer.Typer(help="Exports")

app.add_typer(workspace_app, name="workspace")
app.add_typer(sync_app, name="sync")
app.add_typer(phone_app, name="phone")
app.add_typer(contact_app, name="contact")
app.add_typer(export_app, name="export")


@app.callback(invoke_without_command=True)
def main_callback(
    version: bool = typer.Option(False, "--version", help="Show version and exit."),
    log_level: str = typer.Option("WARNING", "--log-level", help="Python logging level."),
):
    if version:
        typer.echo(__version__)
        raise typer.Exit()
    logging.basicConfig(
        level=getattr(logging, log_level.upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@app.command("init")
def init() -> None:
    """Initialize directories for workspaces and outputs."""
    ensure_workspaces_dir()
    Path("exports").mkdir(exist_ok=True)
    typer.echo("Initialized callsync directories.")


@workspace_app.command("add")
def workspace_add(
    name: str = typer.Argument(...),
    max_rpm: int | None = typer.Option(
        None, "--max-rpm", help="Santral requests per minute ceiling."
    ),
    use: bool = typer.Option(True, "--use/--no-use", help="Set as current workspace."),
    force: bool = typer.Option(
        False, "--force", help="Overwrite existing workspace config if it exists."
    ),
) -> None:
    config_path = workspace_config_path(name)
    if config_path.exists() and not force:
        raise typer.BadParameter(
            f"Workspace already exists: {config_path}. Use --force to overwrite."
        )
    config_path = write_workspace_config(name, max_rpm)
    if use:
        set_current_workspace(name)
    typer.echo(f"Workspace created: {config_path}")


@workspace_app.command("use")
def workspace_use(name: str = typer.Argument(...)) -> None:
    if not workspace_config_path(name).exists():
        raise typer.BadParameter(f"Workspace config not found: {workspace_config_path(name)}")
    set_current_workspace(name)
    typer.echo(f"Active workspace: {name}")


@sync_app.command("run")
def sync_run(
    start: str | None = typer.Option(None, "--from", help="Window start (ISO 8601, UTC if no offset)."),
    end: str | None = typer.Option(None, "--to", help="Window end (ISO 8601, UTC if no offset)."),
    limit: int | None = typer.Option(None, "--limit", help="Maximum calls to fetch."),
    json_output: bool = typer.Option(False, "--json", help="Emit JSON output."),
    events: bool = typer.Option(
        True, "--events/--no-events", help="Write call events to the workspace log."
    ),
) -> None:
    """Fetch one window of Santral calls and log them in HubSpot."""
    ws = _load_workspace()
    try:
        window_start = _parse_window(start, "--from")
        window_end = _parse_window(end, "--to")
        stats, error_log = sync_service.run(
            ws,
            window_start,
            window_end,
            page_limit=limit,
            logger=_event_logger(ws, enabled=events),
        )
    except (SyncError, ValidationError, HubspotError) as exc:
        _exit_with_error(str(exc))
    if json_output:
        payload = {
            "summary": asdict(build_summary(stats)),
            "errors": [asdict(failure) for failure in stats.errors],
            "api_errors": len(error_log),
        }
        typer.echo(json.dumps(payload, indent=2, ensure_ascii=False))
    else:
        for line in format_summary(stats):
            typer.echo(line)
    if stats.failed:
        raise typer.Exit(code=1)


@sync_app.command("status")
def sync_status() -> None:
    ws = _load_workspace()
    state = load_sync_state(ws.path)
    if state.last_run_at is None:
        typer.echo("No sync has run in this workspace.")
        return
    typer.echo(f"last_run_at={state.last_run_at}")
    if state.last_window:
        typer.echo(f"window={state.last_window.get('start')} -> {state.last_window.get('end')}")
    if state.last_stats is not None:
        for line in format_summary(state.last_stats):
            typer.echo(line)


@phone_app.command("normalize")
def phone_normalize(number: str = typer.Argument(...)) -> None:
    normalized = phone.normalize(number)
    if normalized is None:
        _exit_with_error(f"Cannot normalize phone number: {number}")
    typer.echo(f"{normalized} | {phone.to_display_form(number)}")


@contact_app.command("find")
def contact_find(number: str = typer.Argument(...)) -> None:
    """Look up the HubSpot contact for a phone number."""
    ws = _load_workspace()
    try:
        stack = sync_service.build_hubspot_stack(ws)
        contact = stack.resolver.find_contact_by_phone(number)
    except (SyncError, HubspotError) as exc:
        _exit_with_error(str(exc))
    if contact is None:
        typer.echo("No contact found.")
        raise typer.Exit(code=1)
    typer.echo(f"{contact.id} | {contact.display_name} | {contact.phone or ''} | {contact.mobilephone or ''}")


@export_app.command("failures")
def export_failures(out: str = typer.Option(..., "--out")) -> None:
    """Export the last run's summary and failures (.xlsx or .csv)."""
    ws = _load_workspace()
    state = load_sync_state(ws.path)
    if state.last_stats is None:
        _exit_with_error("No sync results to export.")
    exports.export_failures(state.last_stats, Path(out))
    typer.echo(f"Exported failures to {out}")


def _parse_window(value: str | None, option: str) -> datetime | None:
    if value is None:
        return None
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError as exc:
        raise ValidationError(f"{option} must be ISO 8601.") from exc
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def _load_workspace():
    try:
        return load_workspace()
    except WorkspaceError as exc:
        _exit_with_error(str(exc))


def _exit_with_error(message: str) -> NoReturn:
    typer.echo(f"Error: {message}", err=True)
    raise typer.Exit(code=1)


def _event_logger(ws, enabled: bool) -> EventLogger:
    return EventLogger(path=ws.path / "events.ndjson", workspace=ws.name, enabled=enabled)


if __name__ == "__main__":
    app()
