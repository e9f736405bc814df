from __future__ import annotations

import logging
import os
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Literal, Mapping, Optional

from .errors import ConfigError

Backend = Literal["systemctl", "dbus"]
Scope = Literal["system", "user"]

_BACKENDS: tuple[str, ...] = ("systemctl", "dbus")
_SCOPES: tuple[str, ...] = ("system", "user")


@dataclass(frozen=True)
class Settings:
    backend: Backend = "systemctl"
    scope: Scope = "system"
    systemctl_bin: str = "systemctl"
    timeout: float = 30.0
    log_file: Optional[Path] = None
    log_level: int = logging.INFO

    @property
    def user(self) -> bool:
        return self.scope == "user"

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> "Settings":
        """Read SMARTCTL_* variables. Raises ConfigError on bad values."""
        if env is None:
            env = os.environ

        backend = env.get("SMARTCTL_BACKEND", "systemctl").strip().lower() or "systemctl"
        if backend not in _BACKENDS:
            raise ConfigError(f"SMARTCTL_BACKEND must be one of {', '.join(_BACKENDS)}, got '{backend}'")

        scope = env.get("SMARTCTL_SCOPE", "system").strip().lower() or "system"
        if scope not in _SCOPES:
            raise ConfigError(f"SMARTCTL_SCOPE must be one of {', '.join(_SCOPES)}, got '{scope}'")

        raw_timeout = env.get("SMARTCTL_TIMEOUT", "30").strip() or "30"
        try:
            timeout = float(raw_timeout)
        except ValueError:
            raise ConfigError(f"SMARTCTL_TIMEOUT must be a number of seconds, got '{raw_timeout}'") from None
        if timeout <= 0:
            raise ConfigError("SMARTCTL_TIMEOUT must be positive")

        level_name = env.get("SMARTCTL_LOG_LEVEL", "INFO").strip().upper() or "INFO"
        level = logging.getLevelName(level_name)
        if not isinstance(level, int):
            raise ConfigError(f"SMARTCTL_LOG_LEVEL is not a logging level: '{level_name}'")

        log_file = env.get("SMARTCTL_LOG_FILE", "").strip()

        return cls(
            backend=backend,  # type: ignore[arg-type]
            scope=scope,  # type: ignore[arg-type]
            systemctl_bin=_resolve_systemctl_bin(env.get("SMARTCTL_SYSTEMCTL", "systemctl")),
            timeout=timeout,
            log_file=Path(log_file).expanduser() if log_file else None,
            log_level=level,
        )


def _resolve_systemctl_bin(prefer: str) -> str:
    """Honor an absolute path, otherwise look the name up on PATH."""
    prefer = prefer.strip() or "systemctl"
    if os.path.sep in prefer:
        return prefer
    which = shutil.which(prefer)
    return which or prefer
