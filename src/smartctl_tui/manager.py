from __future__ import annotations

from typing import Protocol

from .config import Settings
from .models import ServiceAction, ServiceRecord


class ServiceManager(Protocol):
    """What the session needs from a service manager backend.

    Queries and commands raise AdapterError; ``check`` raises StartupError.
    """

    name: str

    async def check(self) -> None: ...

    async def list_services(self) -> list[ServiceRecord]: ...

    async def run(self, action: ServiceAction, name: str) -> None: ...

    async def start(self, name: str) -> None: ...

    async def stop(self, name: str) -> None: ...

    async def enable(self, name: str) -> None: ...

    async def disable(self, name: str) -> None: ...

    async def restart(self, name: str) -> None: ...

    async def close(self) -> None: ...


def make_manager(settings: Settings) -> ServiceManager:
    if settings.backend == "dbus":
        from .systemd_bus import DbusServiceManager

        return DbusServiceManager(settings)
    from .systemctl import SystemctlManager

    return SystemctlManager(settings)
