from __future__ import annotations

import asyncio
import logging
from asyncio.subprocess import PIPE
from contextlib import suppress
from dataclasses import dataclass

from .config import Settings
from .errors import AdapterError, StartupError
from .models import RunStatus, ServiceAction, ServiceRecord, unique_by_name

logger = logging.getLogger(__name__)

# Status glyphs systemctl may print in front of failed/not-found units
_BULLETS = ("●", "*", "○")

_STOPPED_ACTIVE = {"inactive", "failed"}
_STOPPED_SUB = {"dead", "exited", "failed"}


@dataclass(frozen=True, slots=True)
class UnitRow:
    name: str
    load: str
    active: str
    sub: str
    description: str


def parse_list_units(text: str) -> list[UnitRow]:
    """Parse ``systemctl list-units --no-legend`` output.

    Columns: UNIT LOAD ACTIVE SUB DESCRIPTION...; short lines are skipped.
    """
    rows: list[UnitRow] = []
    for line in text.splitlines():
        fields = line.split()
        if fields and fields[0] in _BULLETS:
            fields = fields[1:]
        if len(fields) < 4:
            continue
        rows.append(
            UnitRow(
                name=fields[0],
                load=fields[1],
                active=fields[2],
                sub=fields[3],
                description=" ".join(fields[4:]),
            )
        )
    return rows


def parse_unit_files(text: str) -> dict[str, str]:
    """Parse ``systemctl list-unit-files --no-legend`` into unit -> state."""
    states: dict[str, str] = {}
    for line in text.splitlines():
        fields = line.split()
        if len(fields) < 2:
            continue
        states[fields[0]] = fields[1]
    return states


def run_status_from(active: str, sub: str) -> RunStatus:
    if sub == "running":
        return RunStatus.RUNNING
    if active in _STOPPED_ACTIVE or sub in _STOPPED_SUB:
        return RunStatus.STOPPED
    return RunStatus.UNKNOWN


def is_enabled(name: str, unit_files: dict[str, str]) -> bool:
    state = unit_files.get(name)
    if state is None and "@" in name:
        # foo@bar.service -> foo@.service
        prefix, _, rest = name.partition("@")
        _, dot, suffix = rest.rpartition(".")
        state = unit_files.get(f"{prefix}@{dot}{suffix}")
    return state == "enabled"


def build_records(rows: list[UnitRow], unit_files: dict[str, str]) -> list[ServiceRecord]:
    return unique_by_name(
        [
            ServiceRecord(
                name=row.name,
                description=row.description,
                run_status=run_status_from(row.active, row.sub),
                enabled=is_enabled(row.name, unit_files),
            )
            for row in rows
        ]
    )


def _kill(proc: asyncio.subprocess.Process) -> None:
    # the child may already be gone
    with suppress(ProcessLookupError):
        proc.kill()


class SystemctlManager:
    """Service manager backed by the ``systemctl`` binary."""

    name = "systemctl"

    def __init__(self, settings: Settings) -> None:
        self.settings = settings

    def argv(self, *args: str) -> list[str]:
        base = [self.settings.systemctl_bin]
        if self.settings.user:
            base.append("--user")
        return base + list(args)

    async def _run(self, *args: str) -> tuple[int, str, str]:
        argv = self.argv(*args)
        logger.debug("exec %s", " ".join(argv))
        try:
            proc = await asyncio.create_subprocess_exec(*argv, stdout=PIPE, stderr=PIPE)
        except FileNotFoundError:
            raise AdapterError(f"{argv[0]} not found") from None
        except OSError as e:
            raise AdapterError(f"cannot execute {argv[0]}: {e}") from e
        try:
            stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=self.settings.timeout)
        except asyncio.TimeoutError:
            _kill(proc)
            await proc.wait()
            raise AdapterError(f"{' '.join(argv)} timed out after {self.settings.timeout:g}s") from None
        except asyncio.CancelledError:
            _kill(proc)
            raise
        return proc.returncode or 0, stdout.decode(errors="ignore"), stderr.decode(errors="ignore")

    async def _checked(self, *args: str) -> str:
        rc, out, err = await self._run(*args)
        if rc != 0:
            msg = err.strip() or out.strip() or f"exit status {rc}"
            logger.warning("systemctl %s failed (%s): %s", " ".join(args), rc, msg)
            raise AdapterError(msg)
        return out

    async def check(self) -> None:
        try:
            await self._checked("--version")
        except AdapterError as e:
            raise StartupError(f"systemctl is not usable: {e}") from e

    async def list_services(self) -> list[ServiceRecord]:
        try:
            out = await self._checked("list-units", "--type=service", "--all", "--no-legend", "--plain")
        except AdapterError as e:
            raise AdapterError(f"error on fetching list of services: {e.message}") from e
        rows = parse_list_units(out)
        try:
            unit_files = parse_unit_files(
                await self._checked("list-unit-files", "--type=service", "--no-legend", "--plain")
            )
        except AdapterError as e:
            # Enabled flags are secondary; keep the list usable
            logger.warning("could not read unit file states: %s", e)
            unit_files = {}
        records = build_records(rows, unit_files)
        logger.debug("found %d services", len(records))
        return records

    async def run(self, action: ServiceAction, name: str) -> None:
        try:
            await self._checked(action.value, name)
        except AdapterError as e:
            raise e.with_context(action, name) from e
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
        return None
