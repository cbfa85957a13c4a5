"""IFocusOracle interface and per-backend implementations.

Answers one question: does the host window currently have input focus?
Every backend fails closed — if the windowing system cannot be queried the
answer is ``False``, so no correction fires on a guess.

Backends:
    X11FocusOracle    compares the host's X11 window id with the root
                      window's ``_NET_ACTIVE_WINDOW`` (EWMH).
    ShellFocusOracle  no stable window id (GNOME on Wayland): caches the
                      shell's opaque id of the focused window when the host
                      reports focus-in, then compares against it.
    NullFocusOracle   unknown backend, always unfocused.
    AutoFocusOracle   picks one of the above by probing the session.
"""

from __future__ import annotations

import logging
import os
from abc import ABC, abstractmethod
from typing import Callable, Mapping, Optional, Union

import imsync.log  # registers TRACE level and logger.trace()
from imsync.exceptions import FocusQueryFailure
from imsync.platform.shell import SHELL_BUS, SHELL_EVAL, SHELL_PATH, parse_eval_reply
from imsync.platform.system_adapter import ISystemAdapter
from imsync.utils.desktop import detect_desktop_environment, detect_display_server

logger = logging.getLogger(__name__)

WindowIdSource = Union[int, Callable[[], Optional[int]], None]


class IFocusOracle(ABC):
    @abstractmethod
    def is_host_focused(self) -> bool: ...

    def remember_host(self) -> None:
        """Host reports it has just received focus. Most backends ignore this."""


class NullFocusOracle(IFocusOracle):
    def is_host_focused(self) -> bool:
        return False


# ---------------------------------------------------------------------------
# Backend A — X11 / EWMH
# ---------------------------------------------------------------------------

def _open_display():
    from Xlib import display as xdisplay
    return xdisplay.Display()


class X11FocusOracle(IFocusOracle):
    """Compare host window id against ``_NET_ACTIVE_WINDOW``.

    *host_window* is either a fixed id or a callable asked once for it
    (e.g. the editor reporting its own frame id).  A callable returning
    ``None`` is asked again on the next query.
    """

    def __init__(self, host_window: WindowIdSource = None,
                 display_factory: Callable = _open_display,
                 debug: bool = False) -> None:
        self._host_source = host_window
        self._host_id: Optional[int] = host_window if isinstance(host_window, int) and host_window else None
        self._display_factory = display_factory
        self._debug = debug

    def _resolve_host_id(self) -> int:
        if self._host_id is None and callable(self._host_source):
            try:
                self._host_id = self._host_source() or None
            except Exception as exc:
                raise FocusQueryFailure(f"host window id lookup failed: {exc}") from exc
            if self._host_id is not None:
                logger.info("Host window id 0x%x", self._host_id)
        if self._host_id is None:
            raise FocusQueryFailure("host window id unknown")
        return self._host_id

    def active_window_id(self) -> int:
        try:
            from Xlib import X
            d = self._display_factory()
        except Exception as exc:
            raise FocusQueryFailure(f"cannot open X display: {exc}") from exc
        try:
            root = d.screen().root
            atom = d.intern_atom('_NET_ACTIVE_WINDOW')
            prop = root.get_full_property(atom, X.AnyPropertyType)
        except Exception as exc:
            raise FocusQueryFailure(f"_NET_ACTIVE_WINDOW query failed: {exc}") from exc
        finally:
            d.close()
        if prop is None or not len(prop.value):
            raise FocusQueryFailure("_NET_ACTIVE_WINDOW not set")
        return int(prop.value[0])

    def is_host_focused(self) -> bool:
        try:
            host = self._resolve_host_id()
            active = self.active_window_id()
        except FocusQueryFailure as exc:
            logger.trace("X11 focus query failed: %s", exc)  # type: ignore[attr-defined]
            return False
        if self._debug:
            logger.debug("Focus: host=0x%x active=0x%x", host, active)
        return host == active


# ---------------------------------------------------------------------------
# Backend B — GNOME Shell, opaque focus token
# ---------------------------------------------------------------------------

FOCUSED_WINDOW_SCRIPT = (
    "global.display.focus_window ? "
    "String(global.display.focus_window.get_id()) : ''"
)


class ShellFocusOracle(IFocusOracle):
    """Cache the shell's id for the host window on focus-in, compare later."""

    def __init__(self, system: ISystemAdapter, timeout: float = 1.0, debug: bool = False) -> None:
        self._system = system
        self._timeout = timeout
        self._debug = debug
        self._host_token: Optional[str] = None

    @property
    def host_token(self) -> Optional[str]:
        return self._host_token

    def current_token(self) -> str:
        result = self._system.gdbus_call(
            SHELL_BUS, SHELL_PATH, SHELL_EVAL, FOCUSED_WINDOW_SCRIPT,
            timeout=self._timeout,
        )
        if not result.ok:
            raise FocusQueryFailure(f"Shell.Eval failed: {result.stderr.strip()}")
        success, token = parse_eval_reply(result.stdout)
        if not success:
            raise FocusQueryFailure("Shell.Eval refused (unsafe mode disabled?)")
        if not token:
            raise FocusQueryFailure("no focused window")
        return token

    def remember_host(self) -> None:
        try:
            token = self.current_token()
        except FocusQueryFailure as exc:
            logger.warning("Cannot remember host window: %s", exc)
            return
        if token != self._host_token:
            logger.info("Host window token %s", token)
        self._host_token = token

    def is_host_focused(self) -> bool:
        if self._host_token is None:
            return False
        try:
            token = self.current_token()
        except FocusQueryFailure as exc:
            logger.trace("Shell focus query failed: %s", exc)  # type: ignore[attr-defined]
            return False
        if self._debug:
            logger.debug("Focus: host=%s active=%s", self._host_token, token)
        return token == self._host_token


# ---------------------------------------------------------------------------
# Capability probe
# ---------------------------------------------------------------------------

def probe_backend(environ: Mapping[str, str] | None = None) -> str:
    """Return 'x11', 'shell' or 'none' for the current session."""
    env = os.environ if environ is None else environ
    server = detect_display_server(env)
    if server == 'x11':
        return 'x11'
    if server == 'wayland' and detect_desktop_environment(env) in ('gnome', 'unity'):
        return 'shell'
    return 'none'


class AutoFocusOracle(IFocusOracle):
    """Select a backend on first use and delegate to it."""

    def __init__(self, factories: Mapping[str, Callable[[], IFocusOracle]],
                 environ: Mapping[str, str] | None = None) -> None:
        self._factories = factories
        self._environ = environ
        self._backend: Optional[IFocusOracle] = None

    @property
    def backend(self) -> IFocusOracle:
        if self._backend is None:
            name = probe_backend(self._environ)
            factory = self._factories.get(name)
            self._backend = factory() if factory else NullFocusOracle()
            logger.info("Focus backend: %s (%s)", name, type(self._backend).__name__)
        return self._backend

    def remember_host(self) -> None:
        self.backend.remember_host()

    def is_host_focused(self) -> bool:
        return self.backend.is_host_focused()


def create_focus_oracle(backend: str, system: ISystemAdapter,
                        host_window: WindowIdSource = None,
                        environ: Mapping[str, str] | None = None,
                        debug: bool = False) -> IFocusOracle:
    """Build the oracle named by the ``focus_backend`` config value."""
    factories: dict[str, Callable[[], IFocusOracle]] = {
        'x11': lambda: X11FocusOracle(host_window, debug=debug),
        'shell': lambda: ShellFocusOracle(system, debug=debug),
        'none': NullFocusOracle,
    }
    if backend == 'auto':
        return AutoFocusOracle(factories, environ=environ)
    return factories[backend]()
