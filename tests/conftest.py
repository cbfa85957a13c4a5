"""Shared test doubles for imsync tests.

Nothing here touches a real session bus, X display or subprocess.
"""

import pytest

from imsync.core.events import (
    LEGACY_SIGNATURE,
    PORTAL_SIGNATURE,
    LegacyPayload,
    NotificationEvent,
    PortalPayload,
)
from imsync.platform.focus import IFocusOracle
from imsync.platform.input_method import IInputMethodToggle
from imsync.platform.layout_reset import ILayoutResetAction
from imsync.platform.system_adapter import CommandResult, ISystemAdapter


class MockSystemAdapter(ISystemAdapter):
    """Records every command; answers from a prefix → CommandResult table."""

    def __init__(self, responses=None, spawn_ok=True):
        self.commands = []
        self.spawned = []
        self.responses = dict(responses or {})
        self.spawn_ok = spawn_ok

    def run_command(self, args, timeout=1.0):
        self.commands.append(list(args))
        for prefix, result in self.responses.items():
            if tuple(args[:len(prefix)]) == prefix:
                return result
        return CommandResult(stdout="", stderr="", returncode=0)

    def spawn(self, args):
        self.spawned.append(list(args))
        return self.spawn_ok

    def gdbus_call(self, dest, path, method, *args, timeout=1.0):
        return self.run_command(
            ["gdbus", "call", "--session", "--dest", dest,
             "--object-path", path, "--method", method, *args],
            timeout=timeout,
        )


class StaticFocus(IFocusOracle):
    def __init__(self, focused=True):
        self.focused = focused
        self.queries = 0
        self.remembered = 0

    def is_host_focused(self):
        self.queries += 1
        return self.focused

    def remember_host(self):
        self.remembered += 1


class RecordingReset(ILayoutResetAction):
    def __init__(self, error=None):
        self.calls = []
        self.error = error

    def reset(self, target=0):
        self.calls.append(target)
        if self.error is not None:
            raise self.error


class RecordingToggle(IInputMethodToggle):
    def __init__(self, error=None):
        self.calls = 0
        self.error = error

    def toggle(self):
        self.calls += 1
        if self.error is not None:
            raise self.error


class FakeMatch:
    def __init__(self, bus, handler, kwargs):
        self.bus = bus
        self.handler = handler
        self.kwargs = kwargs
        self.removed = False

    def remove(self):
        self.removed = True
        self.bus.matches.remove(self)


class FakeBus:
    """Just enough of ``dbus.bus.BusConnection`` for SignalSubscription."""

    def __init__(self, ping_error=None, receiver_error=None):
        self.matches = []
        self.rules = []
        self.pings = []
        self.async_calls = []
        self.ping_error = ping_error
        self.receiver_error = receiver_error

    def add_signal_receiver(self, handler, **kwargs):
        if self.receiver_error is not None:
            raise self.receiver_error
        match = FakeMatch(self, handler, kwargs)
        self.matches.append(match)
        return match

    def add_match_string(self, rule):
        self.rules.append(rule)

    def remove_match_string(self, rule):
        self.rules.remove(rule)

    def call_blocking(self, bus_name, object_path, dbus_interface, method,
                      signature, args, timeout=-1.0):
        self.pings.append((bus_name, object_path, dbus_interface, method))
        if self.ping_error is not None:
            raise self.ping_error
        return ()

    def call_async(self, bus_name, object_path, dbus_interface, method,
                   signature, args, reply_handler, error_handler, timeout=-1.0):
        self.async_calls.append((bus_name, object_path, dbus_interface, method, signature, args))
        self.last_handlers = (reply_handler, error_handler)

    def emit(self, *args, interface=None, member=None):
        """Deliver a signal to every live receiver, like the GLib loop would."""
        for match in list(self.matches):
            match.handler(*args, interface=interface, member=member)


SESSION_ENV = {'DBUS_SESSION_BUS_ADDRESS': 'unix:path=/run/user/1000/bus'}


def portal_event(layout=None, group="org.gnome.desktop.input-sources", setting="mru-sources",
                 sources=None):
    if sources is None:
        sources = () if layout is None else (("xkb", layout), ("xkb", "us"))
    return NotificationEvent(
        interface=PORTAL_SIGNATURE.interface,
        member=PORTAL_SIGNATURE.member,
        payload=PortalPayload(group=group, setting=setting, sources=tuple(sources)),
    )


def legacy_event(layout=None):
    return NotificationEvent(
        interface=LEGACY_SIGNATURE.interface,
        member=LEGACY_SIGNATURE.member,
        payload=LegacyPayload(current=layout),
    )


@pytest.fixture
def system():
    return MockSystemAdapter()


@pytest.fixture
def focus():
    return StaticFocus(focused=True)


@pytest.fixture
def reset_action():
    return RecordingReset()


@pytest.fixture
def toggle():
    return RecordingToggle()


@pytest.fixture
def fake_bus():
    return FakeBus()
