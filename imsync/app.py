"""ImSyncApp — wires config, platform adapters, debouncer and subscription."""

from __future__ import annotations

import logging
import os
import signal

import imsync.log  # registers TRACE level and logger.trace()
from imsync.config import ConfigManager
from imsync.core.debouncer import EventDebouncer
from imsync.core.events import SIGNATURES

logger = logging.getLogger(__name__)

# Read only when the components are built
RESTART_KEYS = ('transport', 'reset_method', 'focus_backend', 'toggle_command', 'host_window_id')


class ImSyncApp:
    """Long-running listener process.

    ``_init_platform()`` is separated from ``__init__`` so that tests
    can inject mocks without touching a real session bus or X display.
    """

    def __init__(
        self,
        debug: bool = False,
        config_path: str | None = None,
        overrides: dict | None = None,
    ):
        self.debug = debug
        self._running = False

        self._overrides = dict(overrides or {})
        if debug:
            self._overrides['debug'] = True
        self.config = ConfigManager(config_path=config_path, debug=debug)
        self.config.update(self._overrides)

        # Created by _init_platform()
        self.system = None
        self.focus = None
        self.reset_action = None
        self.toggle = None
        self.layout_query = None
        self.debouncer = None
        self.subscription = None
        self._loop = None

    @property
    def transport(self) -> str:
        return self.config.get('transport', 'portal')

    # ------------------------------------------------------------------
    # Platform initialisation (lazy — for testability)
    # ------------------------------------------------------------------

    def _host_window_source(self):
        configured = self.config.get('host_window_id', 0)
        if configured:
            return configured
        env_id = os.environ.get('WINDOWID', '')
        if env_id.isdigit() and int(env_id):
            return int(env_id)

        from imsync.platform.input_method import emacs_window_id, is_emacsclient

        command = self.config.get('toggle_command')
        if is_emacsclient(command):
            return lambda: emacs_window_id(self.system, client=command[0])
        return None

    def _host_has_focus(self) -> bool:
        """Ask the host itself; a host that cannot answer is not focused."""
        from imsync.platform.input_method import emacs_has_focus, is_emacsclient

        command = self.config.get('toggle_command')
        if not is_emacsclient(command):
            logger.debug("Cannot confirm focus of %s at startup", command[0] if command else None)
            return False
        return emacs_has_focus(self.system, client=command[0])

    def _init_platform(self):
        from imsync.platform.focus import create_focus_oracle
        from imsync.platform.input_method import HostCommandToggle
        from imsync.platform.layout_query import LayoutQuery
        from imsync.platform.layout_reset import create_layout_reset
        from imsync.platform.subprocess_impl import SubprocessSystemAdapter
        from imsync.transport import SignalSubscription

        self.system = SubprocessSystemAdapter(debug=self.debug)
        self.focus = create_focus_oracle(
            self.config.get('focus_backend'), self.system,
            host_window=self._host_window_source(), debug=self.debug,
        )
        self.toggle = HostCommandToggle(self.system, self.config.get('toggle_command'))
        self.layout_query = LayoutQuery(self.system)
        # D-Bus resets share the subscription's connection, opened by then
        self.reset_action = create_layout_reset(
            self.config.get('reset_method'), self.system,
            bus_provider=lambda: self.subscription.bus,
        )
        self._build_core()
        self.subscription = SignalSubscription(
            SIGNATURES[self.transport],
            self.debouncer.handle,
            on_release=self.debouncer.clear,
        )

    def _build_core(self):
        signature = SIGNATURES[self.transport]
        self.debouncer = EventDebouncer(
            focus=self.focus,
            reset_action=self.reset_action,
            toggle=self.toggle,
            signature=signature,
            avoid_layout=self.config.get('avoid_layout'),
            default_layout=self.config.get('default_layout_index', 0),
            echo_window=self.config.get('echo_window', 1.0),
            debug=self.debug,
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> bool:
        """Prime state and subscribe. Returns False if the feature is disabled."""
        if self.config.get('prime_focus'):
            if self._host_has_focus():
                self.focus.remember_host()
            else:
                logger.info("Host not focused at startup, waiting for focus-in")
        if self.config.get('prime_layout') and self.layout_query is not None:
            layout = self.layout_query.current_layout(self.transport)
            self.debouncer.prime(layout)

        handle = self.subscription.register()
        if handle is None:
            logger.warning("Transport %r unavailable, running disabled", self.transport)
            return False
        self._running = True
        return True

    def on_focus_in(self) -> None:
        """Host gained focus (SIGUSR1 from the editor's focus-in hook)."""
        logger.debug("Host focus-in")
        self.focus.remember_host()

    def reload_config(self) -> None:
        """Re-read the config file and apply the values the debouncer uses."""
        before = {key: self.config.get(key) for key in RESTART_KEYS}
        if not self.config.reload():
            return
        self.config.update(self._overrides)
        changed = [key for key in RESTART_KEYS if self.config.get(key) != before[key]]
        if changed:
            logger.warning("Changes to %s take effect after a restart", ", ".join(changed))
            # the running components still use these
            self.config.update(before)
        self.debouncer.avoid_layout = self.config.get('avoid_layout')
        self.debouncer.default_layout = self.config.get('default_layout_index', 0)
        self.debouncer.echo_window = self.config.get('echo_window', 1.0)
        logger.info("Config reloaded from %s (avoid_layout=%r)",
                    self.config.config_path, self.debouncer.avoid_layout)

    def run(self) -> int:
        """Blocking main loop. Returns a process exit code."""
        from gi.repository import GLib

        self._init_platform()
        if not self.start():
            return 2

        self._loop = GLib.MainLoop()

        def _quit():
            logger.info("Stop requested")
            self.stop()
            return GLib.SOURCE_REMOVE

        def _reload():
            self.reload_config()
            return GLib.SOURCE_CONTINUE

        def _focus_in():
            self.on_focus_in()
            return GLib.SOURCE_CONTINUE

        GLib.unix_signal_add(GLib.PRIORITY_DEFAULT, signal.SIGINT, _quit)
        GLib.unix_signal_add(GLib.PRIORITY_DEFAULT, signal.SIGTERM, _quit)
        GLib.unix_signal_add(GLib.PRIORITY_DEFAULT, signal.SIGHUP, _reload)
        GLib.unix_signal_add(GLib.PRIORITY_DEFAULT, signal.SIGUSR1, _focus_in)

        logger.info("imsync running (transport=%s, pid=%d)", self.transport, os.getpid())
        try:
            self._loop.run()
        finally:
            self.stop()
        return 0

    # ------------------------------------------------------------------
    # Shutdown
    # ------------------------------------------------------------------

    def stop(self):
        """Graceful shutdown — safe to call multiple times."""
        self._running = False
        if self.subscription is not None:
            self.subscription.unregister()
        if self._loop is not None and self._loop.is_running():
            self._loop.quit()
