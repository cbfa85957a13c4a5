"""ILayoutResetAction interface and the three reset methods.

All of them ask the desktop to activate the first configured input source
and return immediately.  Failures are reported through the log; nothing is
retried, the next genuine notification gets another chance.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Callable

import imsync.log  # registers TRACE level and logger.trace()
from imsync.exceptions import ActionFailure
from imsync.platform.shell import SHELL_BUS, SHELL_INTERFACE, SHELL_PATH
from imsync.platform.system_adapter import ISystemAdapter

logger = logging.getLogger(__name__)

INPUT_SOURCES_SCHEMA = "org.gnome.desktop.input-sources"

SETTINGS_DAEMON_BUS = "org.gnome.SettingsDaemon.Keyboard"
SETTINGS_DAEMON_PATH = "/org/gnome/SettingsDaemon/Keyboard"
SETTINGS_DAEMON_INTERFACE = "org.gnome.SettingsDaemon.Keyboard"

ACTIVATE_SOURCE_SCRIPT = (
    "imports.ui.status.keyboard.getInputSourceManager()"
    ".inputSources[{index}].activate()"
)


class ILayoutResetAction(ABC):
    @abstractmethod
    def reset(self, target: int = 0) -> None:
        """Request input source *target*; raises ``ActionFailure`` if the request cannot be sent."""


class GSettingsLayoutReset(ILayoutResetAction):
    """``gsettings set org.gnome.desktop.input-sources current N`` in the background."""

    def __init__(self, system: ISystemAdapter) -> None:
        self._system = system

    def command(self, target: int = 0) -> list[str]:
        return ["gsettings", "set", INPUT_SOURCES_SCHEMA, "current", str(target)]

    def reset(self, target: int = 0) -> None:
        if not self._system.spawn(self.command(target)):
            raise ActionFailure("cannot start gsettings", action="reset")


class _AsyncDBusReset(ILayoutResetAction):
    """Base for resets sent as asynchronous method calls on the session bus."""

    bus_name = ""
    object_path = ""
    interface = ""
    method = ""
    signature = ""

    def __init__(self, bus_provider: Callable[[], Any]) -> None:
        self._bus_provider = bus_provider

    def _args(self, target: int) -> tuple:
        raise NotImplementedError

    def _on_reply(self, *result) -> None:
        logger.trace("%s reply: %r", self.method, result)  # type: ignore[attr-defined]

    def _on_error(self, error) -> None:
        logger.warning("%s.%s failed: %s", self.interface, self.method, error)

    def reset(self, target: int = 0) -> None:
        try:
            bus = self._bus_provider()
            bus.call_async(
                self.bus_name, self.object_path, self.interface, self.method,
                self.signature, self._args(target),
                self._on_reply, self._on_error,
            )
        except Exception as exc:
            raise ActionFailure(f"{self.method} not sent: {exc}", action="reset") from exc


class SettingsDaemonLayoutReset(_AsyncDBusReset):
    """``SetInputSource(u)`` on the settings daemon's keyboard plugin."""

    bus_name = SETTINGS_DAEMON_BUS
    object_path = SETTINGS_DAEMON_PATH
    interface = SETTINGS_DAEMON_INTERFACE
    method = "SetInputSource"
    signature = "u"

    def _args(self, target: int) -> tuple:
        return (target,)


class ShellEvalLayoutReset(_AsyncDBusReset):
    """Activate ``inputSources[N]`` from inside GNOME Shell."""

    bus_name = SHELL_BUS
    object_path = SHELL_PATH
    interface = SHELL_INTERFACE
    method = "Eval"
    signature = "s"

    def _args(self, target: int) -> tuple:
        return (ACTIVATE_SOURCE_SCRIPT.format(index=int(target)),)

    def _on_reply(self, success=True, result="") -> None:
        if not success:
            logger.warning("Shell refused input source activation: %s", result or "Eval disabled")


def create_layout_reset(method: str, system: ISystemAdapter,
                        bus_provider: Callable[[], Any]) -> ILayoutResetAction:
    """Build the reset action named by the ``reset_method`` config value."""
    if method == 'gsettings':
        return GSettingsLayoutReset(system)
    if method == 'settings-daemon':
        return SettingsDaemonLayoutReset(bus_provider)
    if method == 'shell-eval':
        return ShellEvalLayoutReset(bus_provider)
    raise ValueError(f"unknown reset method {method!r}")
