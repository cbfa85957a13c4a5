"""SignalSubscription — owns the D-Bus signal match that feeds the debouncer.

The bus object only needs the handful of ``dbus.bus.BusConnection`` methods
used below (``add_signal_receiver``, ``add_match_string``,
``remove_match_string``, ``call_blocking``), so tests hand in a fake one.
"""

from __future__ import annotations

import atexit
import logging
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional

import imsync.log  # registers TRACE level and logger.trace()
from imsync.core.events import NotificationEvent, SignalSignature
from imsync.exceptions import MalformedNotification, TransportUnavailable
from imsync.utils.desktop import session_bus_address

logger = logging.getLogger(__name__)

PEER_INTERFACE = "org.freedesktop.DBus.Peer"
PROBE_TIMEOUT = 2.0


def session_bus():
    """Return the session bus connection, dispatching through the GLib main loop."""
    import dbus
    from dbus.mainloop.glib import DBusGMainLoop

    DBusGMainLoop(set_as_default=True)
    return dbus.SessionBus()


def eavesdrop_rule(signature: SignalSignature) -> str:
    return (
        f"type='signal',interface='{signature.interface}',"
        f"member='{signature.member}',eavesdrop='true'"
    )


@dataclass
class SubscriptionHandle:
    signature: SignalSignature
    bus: Any
    match: Any                  # dbus.connection.SignalMatch
    rule: Optional[str] = None  # extra eavesdrop match rule

    def release(self) -> None:
        try:
            self.match.remove()
        except Exception as exc:
            logger.warning("Removing signal match failed: %s", exc)
        if self.rule:
            try:
                self.bus.remove_match_string(self.rule)
            except Exception as exc:
                logger.warning("Removing eavesdrop rule failed: %s", exc)


class SignalSubscription:
    """Idempotent register/unregister of one signal subscription.

    ``disabled`` is set when the transport turned out to be unavailable;
    the feature then stays off until ``register()`` succeeds.
    """

    def __init__(
        self,
        signature: SignalSignature,
        handler: Callable[[NotificationEvent], Any],
        bus_factory: Callable[[], Any] = session_bus,
        environ: Mapping[str, str] | None = None,
        at_exit: Callable[[Callable], Any] = atexit.register,
        on_release: Callable[[], Any] | None = None,
    ):
        self.signature = signature
        self.disabled = False
        self._handler = handler
        self._bus_factory = bus_factory
        self._environ = environ
        self._at_exit = at_exit
        self._on_release = on_release
        self._bus = None
        self._handle: Optional[SubscriptionHandle] = None
        self._exit_hook_installed = False

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def handle(self) -> Optional[SubscriptionHandle]:
        return self._handle

    @property
    def active(self) -> bool:
        return self._handle is not None

    @property
    def bus(self):
        """Session bus connection, opened on first use."""
        if self._bus is None:
            if not session_bus_address(self._environ):
                raise TransportUnavailable("DBUS_SESSION_BUS_ADDRESS is not set")
            try:
                self._bus = self._bus_factory()
            except Exception as exc:
                raise TransportUnavailable(f"cannot connect to session bus: {exc}") from exc
        return self._bus

    # ------------------------------------------------------------------
    # Register / unregister
    # ------------------------------------------------------------------

    def register(self) -> Optional[SubscriptionHandle]:
        if self._handle is not None:
            return self._handle

        try:
            bus = self.bus
            if self.signature.probe:
                self._probe(bus)
            handle = self._subscribe(bus)
        except TransportUnavailable as exc:
            self.disabled = True
            logger.warning("%s — layout sync disabled", exc)
            return None

        self.disabled = False
        self._handle = handle
        if not self._exit_hook_installed:
            self._at_exit(self.unregister)
            self._exit_hook_installed = True
        logger.info("Subscribed to %s.%s (%s transport)",
                    self.signature.interface, self.signature.member, self.signature.name)
        return handle

    def unregister(self, handle: Optional[SubscriptionHandle] = None) -> None:
        current = self._handle
        if current is None or (handle is not None and handle is not current):
            return
        self._handle = None
        current.release()
        if self._on_release is not None:
            self._on_release()
        logger.info("Unsubscribed from %s.%s", self.signature.interface, self.signature.member)

    def _probe(self, bus) -> None:
        sig = self.signature
        try:
            bus.call_blocking(sig.service, sig.path, PEER_INTERFACE, "Ping", "", (),
                              timeout=PROBE_TIMEOUT)
        except Exception as exc:
            raise TransportUnavailable(
                f"{sig.service} does not answer: {exc}", service=sig.service,
            ) from exc

    def _subscribe(self, bus) -> SubscriptionHandle:
        sig = self.signature
        keywords = {}
        if sig.arg0 is not None:
            keywords["arg0"] = sig.arg0
        rule = eavesdrop_rule(sig) if sig.eavesdrop else None
        try:
            if rule:
                bus.add_match_string(rule)
            match = bus.add_signal_receiver(
                self._on_signal,
                signal_name=sig.member,
                dbus_interface=sig.interface,
                path=sig.path,
                interface_keyword="interface",
                member_keyword="member",
                **keywords,
            )
        except Exception as exc:
            if rule:
                try:
                    bus.remove_match_string(rule)
                except Exception:
                    logger.debug("Rollback of eavesdrop rule failed", exc_info=True)
            raise TransportUnavailable(f"cannot subscribe to {sig.interface}: {exc}") from exc
        return SubscriptionHandle(signature=sig, bus=bus, match=match, rule=rule)

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def _on_signal(self, *args, interface: str | None = None, member: str | None = None) -> None:
        if self._handle is None:
            return
        sig = self.signature
        logger.trace("Signal %s.%s %r", interface, member, args)  # type: ignore[attr-defined]
        try:
            payload = sig.decode(args)
        except MalformedNotification as exc:
            logger.debug("Malformed %s.%s dropped: %s", sig.interface, sig.member, exc)
            return
        event = NotificationEvent(
            interface=str(interface or sig.interface),
            member=str(member or sig.member),
            payload=payload,
        )
        try:
            self._handler(event)
        except Exception:
            logger.exception("Notification handler failed")
