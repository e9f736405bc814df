from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models import ServiceAction


class AdapterError(Exception):
    """A service-manager query or command failed.

    ``action`` and ``target`` are set for per-service commands so the message
    shown to the user says what was attempted and on which unit.
    """

    def __init__(
        self,
        message: str,
        action: ServiceAction | None = None,
        target: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.action = action
        self.target = target

    def __str__(self) -> str:
        if self.action is not None and self.target:
            return f"error on {self.action.gerund} the service {self.target}: {self.message}"
        return self.message

    def with_context(self, action: ServiceAction, target: str) -> AdapterError:
        return AdapterError(self.message, action=action, target=target)


class StartupError(Exception):
    """The service manager cannot be reached; the session never starts."""


class ConfigError(ValueError):
    """An invalid SMARTCTL_* setting."""
