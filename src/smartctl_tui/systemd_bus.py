from __future__ import annotations

import logging
from pathlib import PurePosixPath
from typing import Any, Optional

from dbus_next import BusType
from dbus_next.aio import MessageBus
from dbus_next.errors import DBusError

from .config import Settings
from .errors import AdapterError, StartupError
from .models import ServiceAction, ServiceRecord
from .systemctl import UnitRow, build_records

logger = logging.getLogger(__name__)

SYSTEMD_DEST = "org.freedesktop.systemd1"
SYSTEMD_PATH = "/org/freedesktop/systemd1"
IFACE_MANAGER = "org.freedesktop.systemd1.Manager"


async def connect_bus(user: bool) -> MessageBus:
    bus_type = BusType.SESSION if user else BusType.SYSTEM
    bus = await MessageBus(bus_type=bus_type).connect()
    return bus


async def get_manager(bus: MessageBus):
    intro = await bus.introspect(SYSTEMD_DEST, SYSTEMD_PATH)
    obj = bus.get_proxy_object(SYSTEMD_DEST, SYSTEMD_PATH, intro)
    return obj.get_interface(IFACE_MANAGER)


async def list_units(bus: MessageBus) -> list[dict[str, Any]]:
    mgr = await get_manager(bus)
    rows = await mgr.call_list_units()
    result = []
    for row in rows:
        # name, description, load_state, active_state, sub_state, following, unit_path, job_id, job_type, job_path
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


async def list_unit_files(bus: MessageBus) -> dict[str, str]:
    """Map unit file name -> enablement state ("enabled", "disabled", ...)."""
    mgr = await get_manager(bus)
    rows = await mgr.call_list_unit_files()
    return {PurePosixPath(path).name: state for path, state in rows}


async def start_unit(bus: MessageBus, unit_name: str, mode: str = "replace"):
    mgr = await get_manager(bus)
    return await mgr.call_start_unit(unit_name, mode)


async def stop_unit(bus: MessageBus, unit_name: str, mode: str = "replace"):
    mgr = await get_manager(bus)
    return await mgr.call_stop_unit(unit_name, mode)


async def restart_unit(bus: MessageBus, unit_name: str, mode: str = "replace"):
    mgr = await get_manager(bus)
    return await mgr.call_restart_unit(unit_name, mode)


async def enable_unit(bus: MessageBus, unit_name: str):
    mgr = await get_manager(bus)
    # EnableUnitFiles(files, runtime, force) -> (carries_install_info, changes)
    result = await mgr.call_enable_unit_files([unit_name], False, False)
    await mgr.call_reload()
    return result


async def disable_unit(bus: MessageBus, unit_name: str):
    mgr = await get_manager(bus)
    result = await mgr.call_disable_unit_files([unit_name], False)
    await mgr.call_reload()
    return result


_ACTIONS = {
    ServiceAction.START: start_unit,
    ServiceAction.STOP: stop_unit,
    ServiceAction.RESTART: restart_unit,
    ServiceAction.ENABLE: enable_unit,
    ServiceAction.DISABLE: disable_unit,
}


class DbusServiceManager:
    """Service manager talking to systemd over D-Bus.

    One connection is opened lazily and reused for the session.
    """

    name = "dbus"

    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self._bus: Optional[MessageBus] = None

    async def _get_bus(self) -> MessageBus:
        if self._bus is None or not self._bus.connected:
            try:
                self._bus = await connect_bus(self.settings.user)
            except (OSError, ValueError, DBusError) as e:
                raise AdapterError(f"cannot connect to the {self.settings.scope} bus: {e}") from e
        return self._bus

    async def check(self) -> None:
        try:
            bus = await self._get_bus()
            await get_manager(bus)
        except (AdapterError, DBusError) as e:
            raise StartupError(f"systemd D-Bus manager is not reachable: {e}") from e
        finally:
            await self.close()

    async def list_services(self) -> list[ServiceRecord]:
        bus = await self._get_bus()
        try:
            units = await list_units(bus)
        except DBusError as e:
            raise AdapterError(f"error on fetching list of services: {e.text}") from e
        try:
            unit_files = await list_unit_files(bus)
        except DBusError as e:
            logger.warning("could not read unit file states: %s", e.text)
            unit_files = {}
        rows = [
            UnitRow(
                name=u["Name"],
                load=u["LoadState"],
                active=u["ActiveState"],
                sub=u["SubState"],
                description=u["Description"],
            )
            for u in units
            if u["Name"].endswith(".service")
        ]
        # ListUnits has no stable order; match systemctl's sorted listing
        rows.sort(key=lambda r: r.name)
        return build_records(rows, unit_files)

    async def run(self, action: ServiceAction, name: str) -> None:
        bus = await self._get_bus()
        try:
            await _ACTIONS[action](bus, name)
        except DBusError as e:
            logger.warning("%s %s failed: %s", action.value, name, e.text)
            raise AdapterError(e.text or e.type, action=action, target=name) from e
        logger.info("%s %s", action.value, name)

    async def start(self, name: str) -> None:
        await self.run(ServiceAction.START, name)

    async def stop(self, name: str) -> None:
        await self.run(ServiceAction.STOP, name)

    async def enable(self, name: str) -> None:
        await self.run(ServiceAction.ENABLE, name)

    async def disable(self, name: str) -> None:
        await self.run(ServiceAction.DISABLE, name)

    async def restart(self, name: str) -> None:
        await self.run(ServiceAction.RESTART, name)

    async def close(self) -> None:
        if self._bus is not None:
            self._bus.disconnect()
            self._bus = None
