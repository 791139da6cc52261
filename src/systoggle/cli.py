import asyncio
import logging
import shutil
from pathlib import Path
from typing import Optional

import typer

from . import __version__
from .diff import pending_changes
from .errors import QueryError
from .models import SCOPES, ApplyOutcome, Scope
from .orchestrator import ApplyOrchestrator, CycleFinished, apply_cycle
from .overlay import visible
from .registry import Registry, load_all
from .systemd_bus import connect_bus, list_units
from .transport import query_units, set_enabled, unit_info
from .util import (
    apply_concurrency,
    is_tty,
    json_line,
    resolve_elevate_bin,
    resolve_systemctl_bin,
    setup_logging,
)


logger = logging.getLogger(__name__)

app = typer.Typer(
    name="systoggle",
    add_completion=False,
    no_args_is_help=True,
    help=(
        "Toggle systemd services on/off, batch the edits, apply them in one go.\n\n"
        "Usage:\n"
        "  systoggle                       Open the dashboard (Textual UI)\n"
        "  systoggle ls [--scope S] [-f Q]  List toggleable units by category\n"
        "  systoggle info <unit> [--user]  Show unit details\n"
        "  systoggle apply -e U -d U       Enable/disable units without the UI\n"
        "  systoggle doctor                Check buses and helper binaries\n\n"
        "System units are changed through pkexec (SYSTOGGLE_ELEVATE), user units directly."
    ),
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _version_callback(value: Optional[bool]) -> None:
    if value:
        typer.echo(__version__)
        raise typer.Exit()


@app.callback()
def _root(
    ctx: typer.Context,
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        help="Show version and exit",
        callback=_version_callback,
        is_eager=True,
    ),
    debug: bool = typer.Option(False, "--debug", help="Verbose logging"),
    log_file: Optional[Path] = typer.Option(None, "--log-file", help="Write log records to this file"),
):
    # the dashboard owns the terminal; its logs only go to --log-file
    setup_logging(debug=debug, log_file=log_file, quiet=ctx.invoked_subcommand == "dash")


def _parse_scopes(value: str) -> tuple[Scope, ...]:
    v = value.strip().lower()
    if v == "all":
        return SCOPES
    if v in SCOPES:
        return (v,)  # type: ignore[return-value]
    raise typer.BadParameter(f"expected all|system|user, got {value!r}", param_hint="--scope")


def _unit_name(name: str) -> str:
    return name if name.endswith(".service") else f"{name}.service"


def _format_outcome(outcome: ApplyOutcome) -> str:
    if outcome.ok:
        return f"{outcome.action}d {outcome.unit_name} ({outcome.scope})"
    if outcome.cancelled:
        return f"skipped {outcome.unit_name} ({outcome.scope}): authorization cancelled"
    return f"failed to {outcome.action} {outcome.unit_name} ({outcome.scope}): {outcome.error}"


def _load_registry(scopes: tuple[Scope, ...]) -> Registry:
    try:
        return Registry(asyncio.run(load_all(query_units, scopes)))
    except QueryError as e:
        typer.echo(str(e), err=True)
        raise typer.Exit(code=1)


@app.command(context_settings={"allow_extra_args": True, "ignore_unknown_options": True})
def version():
    """Show CLI version (semver)."""
    typer.echo(__version__)


@app.command("ls")
def ls(
    scope: str = typer.Option("all", "--scope", help="all|system|user"),
    query: str = typer.Option("", "--filter", "-f", help="Case-insensitive substring of the unit name"),
    as_json: bool = typer.Option(False, "--json", help="One JSON object per line"),
):
    """List toggleable units. Prints: scope\tcategory\tunit\tstate\tactive"""
    scopes = _parse_scopes(scope)
    registry = _load_registry(scopes)
    for s in scopes:
        for view in visible(registry, query, s):
            for name in view.matches:
                u = registry.get(name, s)
                if u is None:
                    continue
                if as_json:
                    typer.echo(
                        json_line(
                            {
                                "scope": s,
                                "category": view.label,
                                "unit": u.name,
                                "state": u.actual_state,
                                "active": u.active,
                                "description": u.description,
                            }
                        )
                    )
                else:
                    running = "active" if u.active else "inactive"
                    typer.echo(f"{s}\t{view.label}\t{u.name}\t{u.actual_state}\t{running}")


@app.command()
def info(
    unit: str,
    user: bool = typer.Option(False, "--user", help="Look the unit up in the user manager"),
):
    """Show details for one unit."""
    scope: Scope = "user" if user else "system"
    name = _unit_name(unit)
    try:
        details = asyncio.run(unit_info(scope, name))
    except QueryError as e:
        typer.echo(str(e), err=True)
        raise typer.Exit(code=1)
    typer.echo(f"name: {details.name} ({details.scope})")
    for label, value in (
        ("description", details.description),
        ("state", f"{details.active_state} ({details.sub_state})" if details.sub_state else details.active_state),
        ("path", details.fragment_path),
        ("triggered by", details.triggered_by),
        ("docs", details.documentation),
        ("about", details.extra),
    ):
        if value:
            typer.echo(f"{label}: {value}")


@app.command()
def apply(
    enable: list[str] = typer.Option([], "--enable", "-e", help="Unit to enable and start", show_default=False),
    disable: list[str] = typer.Option([], "--disable", "-d", help="Unit to disable and stop", show_default=False),
    user: bool = typer.Option(False, "--user", help="Units belong to the user manager"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
):
    """Enable/disable units as one batch, then report what is still pending."""
    if not enable and not disable:
        typer.echo("Nothing to do: pass --enable and/or --disable.", err=True)
        raise typer.Exit(code=2)
    scope: Scope = "user" if user else "system"
    scopes = (scope,)
    registry = _load_registry(scopes)

    wanted = [(_unit_name(n), "enabled") for n in enable] + [(_unit_name(n), "disabled") for n in disable]
    for name, state in wanted:
        u = registry.get(name, scope)
        if u is None:
            typer.echo(f"Not found or not toggleable: {name} ({scope})", err=True)
            raise typer.Exit(code=2)
        if u.desired_state != state:
            registry.toggle(name, scope)

    changes = pending_changes(registry)
    if not changes:
        typer.echo("Nothing to change.")
        return
    for c in changes:
        typer.echo(f"{c.action} {c.unit_name} ({c.scope})")
    if not yes and not typer.confirm(f"Apply {len(changes)} change(s)?", default=True):
        typer.echo("Aborted.")
        raise typer.Exit(code=1)

    async def _apply() -> CycleFinished:
        channel: asyncio.Queue = asyncio.Queue(maxsize=16)
        orchestrator = ApplyOrchestrator(set_enabled, concurrency=apply_concurrency())
        producer = asyncio.create_task(apply_cycle(changes, orchestrator, query_units, channel, scopes))
        while True:
            msg = await channel.get()
            if isinstance(msg, CycleFinished):
                break
            typer.echo(_format_outcome(msg))
        return await producer

    finished = asyncio.run(_apply())
    if finished.error is not None:
        typer.echo(f"Refresh failed: {finished.error}", err=True)
    registry = finished.swap(registry)
    for c in pending_changes(registry):
        typer.echo(f"still pending: {c.action} {c.unit_name}")
    if not is_tty():
        typer.echo(
            json_line(
                {
                    "applied": sorted(name for _, name in finished.applied),
                    "failed": sorted(o.unit_name for o in finished.failed),
                }
            )
        )
    if finished.failed:
        raise typer.Exit(code=1)


@app.command()
def doctor():
    """Diagnose system/session bus access and helper binaries."""
    async def _check_bus(scope: Scope) -> bool:
        try:
            bus = await connect_bus(scope)
        except Exception as e:
            logger.debug("%s bus connect failed: %s", scope, e)
            return False
        try:
            await list_units(bus)
            return True
        except Exception as e:
            logger.debug("%s bus ListUnits failed: %s", scope, e)
            return False
        finally:
            bus.disconnect()

    ok_system = asyncio.run(_check_bus("system"))
    ok_user = asyncio.run(_check_bus("user"))
    systemctl = resolve_systemctl_bin()
    elevate = resolve_elevate_bin()
    ok_systemctl = bool(shutil.which(systemctl))
    ok_elevate = bool(shutil.which(elevate))

    typer.echo(f"system D-Bus: {'ok' if ok_system else 'FAIL'}")
    typer.echo(f"session D-Bus: {'ok' if ok_user else 'FAIL'}")
    typer.echo(f"systemctl: {'ok' if ok_systemctl else 'FAIL'} ({systemctl})")
    typer.echo(f"elevation helper: {'ok' if ok_elevate else 'FAIL'} ({elevate})")
    if not ok_elevate:
        typer.echo("  system units cannot be changed; set SYSTOGGLE_ELEVATE or install polkit", err=True)


@app.command()
def dash(
    scope: str = typer.Option("all", "--scope", help="Scopes to load: all|system|user"),
):
    """Open the dashboard (Textual UI)."""
    scopes = _parse_scopes(scope)
    # Lazy import to avoid importing Textual at module import time
    try:
        from .dash.app import run_dash
    except Exception as e:
        typer.echo(f"Failed to load dashboard: {e}", err=True)
        raise typer.Exit(code=1)

    try:
        run_dash(scopes=scopes)
    except QueryError as e:
        typer.echo(str(e), err=True)
        raise typer.Exit(code=1)
