"""systemd side of the tool: listing units, enabling/disabling them, unit details.

Listing and details go over D-Bus. Enable/disable shells out to systemctl,
through the elevation helper (pkexec) for system units, because that is
where the interactive authorization prompt lives.
"""
from __future__ import annotations

import asyncio
import logging

from .commands import cat_argv, run_command, set_enabled_argv
from .descriptions import describe
from .errors import ApplyError, PrivilegeCancelled, QueryError
from .models import RawUnitStatus, Scope, UnitInfo
from .systemd_bus import connect_bus, get_unit_path, get_unit_properties, list_unit_files, list_units
from .util import command_timeout


logger = logging.getLogger(__name__)

# pkexec: 126 = authorization dialog dismissed, 127 = not authorized
ELEVATE_CANCEL_CODES = frozenset({126, 127})


async def query_units(scope: Scope) -> list[RawUnitStatus]:
    try:
        bus = await connect_bus(scope)
    except Exception as e:
        raise QueryError(f"cannot connect to the {scope} bus: {e}") from e
    try:
        files = await list_unit_files(bus)
        active = {u["Name"] for u in await list_units(bus) if u.get("ActiveState") == "active"}
    except Exception as e:
        raise QueryError(f"listing {scope} units failed: {e}") from e
    finally:
        bus.disconnect()
    return [RawUnitStatus(name, state, name in active) for name, state in files]


async def set_enabled(scope: Scope, unit: str, enabled: bool) -> None:
    argv = set_enabled_argv(scope, unit, enabled)
    logger.debug("running %s", " ".join(argv))
    err: list[str] = []
    try:
        rc = await run_command(argv, timeout=command_timeout(), on_stderr_line=err.append)
    except asyncio.TimeoutError:
        raise ApplyError(unit, f"timed out after {command_timeout():g}s")
    except OSError as e:
        raise ApplyError(unit, f"cannot run {argv[0]}: {e}") from e
    if rc == 0:
        return
    reason = "".join(err).strip() or f"exit status {rc}"
    if scope == "system" and rc in ELEVATE_CANCEL_CODES:
        raise PrivilegeCancelled(unit, reason)
    raise ApplyError(unit, reason)


def parse_unit_file(text: str) -> dict[str, str]:
    """Description= and Documentation= from `systemctl cat` output; first value wins."""
    found: dict[str, str] = {}
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith(("#", ";", "[")) or "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        if key in ("Description", "Documentation") and key not in found:
            found[key] = value.strip()
    return found


async def unit_info(scope: Scope, unit: str) -> UnitInfo:
    """Details for the info panel. Template units are read from their unit file."""
    info = UnitInfo(name=unit, scope=scope, extra=describe(unit))
    if "@" in unit:
        out: list[str] = []
        try:
            rc = await run_command(cat_argv(scope, unit), timeout=command_timeout(), on_stdout_line=out.append)
        except (OSError, asyncio.TimeoutError) as e:
            logger.warning("systemctl cat %s failed: %s", unit, e)
            return info
        if rc == 0:
            fields = parse_unit_file("".join(out))
            info.description = fields.get("Description", "")
            info.documentation = fields.get("Documentation", "")
            info.active_state = "template"
        return info

    try:
        bus = await connect_bus(scope)
    except Exception as e:
        raise QueryError(f"cannot connect to the {scope} bus: {e}") from e
    try:
        path = await get_unit_path(bus, unit)
        if not path:
            return info
        props = await get_unit_properties(bus, path)
    except Exception as e:
        raise QueryError(f"reading {unit} failed: {e}") from e
    finally:
        bus.disconnect()
    info.description = props.get("Description", "")
    info.active_state = props.get("ActiveState", "")
    info.sub_state = props.get("SubState", "")
    info.fragment_path = props.get("FragmentPath", "")
    info.triggered_by = props.get("TriggeredBy", "")
    info.documentation = props.get("Documentation", "")
    return info
