from typing import Any, Optional

from dbus_next import BusType, Variant
from dbus_next.aio import MessageBus

from .models import Scope


SYSTEMD_DEST = "org.freedesktop.systemd1"
SYSTEMD_PATH = "/org/freedesktop/systemd1"
IFACE_MANAGER = "org.freedesktop.systemd1.Manager"
IFACE_PROPERTIES = "org.freedesktop.DBus.Properties"
IFACE_UNIT = "org.freedesktop.systemd1.Unit"

UNIT_PROPERTIES = (
    "Description",
    "ActiveState",
    "SubState",
    "FragmentPath",
    "TriggeredBy",
    "Documentation",
)


async def connect_bus(scope: Scope) -> MessageBus:
    bus_type = BusType.SYSTEM if scope == "system" else BusType.SESSION
    bus = await MessageBus(bus_type=bus_type).connect()
    return bus


async def get_manager(bus: MessageBus):
    intro = await bus.introspect(SYSTEMD_DEST, SYSTEMD_PATH)
    obj = bus.get_proxy_object(SYSTEMD_DEST, SYSTEMD_PATH, intro)
    return obj.get_interface(IFACE_MANAGER)


async def list_unit_files(bus: MessageBus, pattern: str = "*.service") -> list[tuple[str, str]]:
    """Return (unit name, unit-file state) for every unit file matching pattern."""
    mgr = await get_manager(bus)
    rows = await mgr.call_list_unit_files_by_patterns([], [pattern])
    result = []
    for row in rows:
        # (path, state); the unit name is the file name
        path, state = row[0], row[1]
        result.append((path.rsplit("/", 1)[-1], state))
    return result


async def list_units(bus: MessageBus) -> list[dict[str, Any]]:
    mgr = await get_manager(bus)
    rows = await mgr.call_list_units()
    result = []
    for row in rows:
        # name, description, load_state, active_state, sub_state, following, unit_path, ...
        result.append(
            {
                "Name": row[0],
                "Description": row[1],
                "LoadState": row[2],
                "ActiveState": row[3],
                "SubState": row[4],
                "Path": row[6],
            }
        )
    return result


async def get_unit_path(bus: MessageBus, unit_name: str) -> Optional[str]:
    mgr = await get_manager(bus)
    try:
        # LoadUnit also works for units that are not currently loaded
        return await mgr.call_load_unit(unit_name)
    except Exception:
        return None


async def get_unit_properties(bus: MessageBus, unit_path: str) -> dict[str, str]:
    """Fetch the Unit properties shown in the info panel, stringified.

    Missing properties are left out rather than failing the whole lookup.
    """
    intro = await bus.introspect(SYSTEMD_DEST, unit_path)
    obj = bus.get_proxy_object(SYSTEMD_DEST, unit_path, intro)
    props = obj.get_interface(IFACE_PROPERTIES)

    def _val(v):
        v = v.value if isinstance(v, Variant) else v
        if isinstance(v, (list, tuple)):
            return " ".join(str(x) for x in v)
        return str(v)

    st: dict[str, str] = {}
    for key in UNIT_PROPERTIES:
        try:
            st[key] = _val(await props.call_get(IFACE_UNIT, key))
        except Exception:
            # older systemd lacks TriggeredBy
            pass
    return st
