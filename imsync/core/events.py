"""Typed notification definitions and payload decoders.

D-Bus hands signal arguments over as loosely typed containers
(``dbus.Array``, ``dbus.Struct``, ``dbus.Dictionary``, variants).  They are
decoded here, once, into ``LegacyPayload`` / ``PortalPayload``; everything
past this module works with plain ``LayoutId`` values.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Sequence, Union

from imsync.exceptions import MalformedNotification

# int slot index (legacy indicator) or str language tag (portal)
LayoutId = Union[int, str]

INPUT_SOURCES_GROUP = "org.gnome.desktop.input-sources"
MRU_SOURCES_SETTING = "mru-sources"
LEGACY_CURRENT_KEY = "current"


@dataclass(frozen=True)
class LegacyPayload:
    """State of the keyboard indicator's ``current`` action, if it changed."""
    current: Optional[int] = None

    @property
    def layout(self) -> Optional[LayoutId]:
        return self.current


@dataclass(frozen=True)
class PortalPayload:
    group: str
    setting: str
    # (transport-tag, layout) pairs, most recently used first
    sources: tuple[tuple[str, str], ...] = ()

    @property
    def layout(self) -> Optional[LayoutId]:
        if not self.sources:
            return None
        return self.sources[0][1]


Payload = Union[LegacyPayload, PortalPayload]


@dataclass(frozen=True)
class NotificationEvent:
    interface: str
    member: str
    payload: Optional[Payload]

    @property
    def layout(self) -> Optional[LayoutId]:
        if self.payload is None:
            return None
        return self.payload.layout


# ---------------------------------------------------------------------------
# Decoders
# ---------------------------------------------------------------------------

def _as_layout_int(value: Any) -> int:
    # GVariant state may arrive wrapped one level deeper than expected
    if isinstance(value, (list, tuple)) and len(value) == 1:
        value = value[0]
    if isinstance(value, bool) or not isinstance(value, int):
        raise MalformedNotification(f"'current' state is not an ordinal: {value!r}")
    if value < 0:
        raise MalformedNotification(f"negative layout ordinal: {value}")
    return int(value)


def decode_legacy(args: Sequence[Any]) -> LegacyPayload:
    """Decode ``org.gtk.Actions.Changed`` arguments.

    Signature ``(as removals, a{sb} enable_changes, a{sv} state_changes,
    a{s(bgav)} additions)``.  The layout ordinal is the state of the
    ``current`` action, found either among state changes or, when the action
    is (re)added, as the first element of its state list.

    Raises ``MalformedNotification`` if the arguments have the wrong shape.
    A well-formed signal that does not touch ``current`` decodes to an empty
    payload.
    """
    if len(args) != 4:
        raise MalformedNotification(f"expected 4 arguments, got {len(args)}")
    _removals, _enabled, state_changes, additions = args
    if not isinstance(state_changes, dict) or not isinstance(additions, dict):
        raise MalformedNotification("state_changes/additions are not dictionaries")

    if LEGACY_CURRENT_KEY in state_changes:
        return LegacyPayload(current=_as_layout_int(state_changes[LEGACY_CURRENT_KEY]))

    added = additions.get(LEGACY_CURRENT_KEY)
    if added is not None:
        try:
            _enabled_flag, _param_type, state = added
        except (TypeError, ValueError):
            raise MalformedNotification(f"bad action description: {added!r}")
        if state:
            return LegacyPayload(current=_as_layout_int(state[0]))

    return LegacyPayload()


def decode_portal(args: Sequence[Any]) -> PortalPayload:
    """Decode ``org.freedesktop.portal.Settings.SettingChanged`` arguments.

    Signature ``(s namespace, s key, v value)``.  For ``mru-sources`` the
    value is ``a(ss)``: ``[('xkb', 'ru'), ('xkb', 'us'), ...]``.  Other
    settings decode with an empty source list; the debouncer discards them
    on the group/setting check.
    """
    if len(args) != 3:
        raise MalformedNotification(f"expected 3 arguments, got {len(args)}")
    group, setting, value = args
    if not isinstance(group, str) or not isinstance(setting, str):
        raise MalformedNotification("namespace/key are not strings")

    if group != INPUT_SOURCES_GROUP or setting != MRU_SOURCES_SETTING:
        return PortalPayload(group=str(group), setting=str(setting))

    if not isinstance(value, (list, tuple)):
        raise MalformedNotification(f"mru-sources value is not a list: {value!r}")
    sources = []
    for pair in value:
        if not isinstance(pair, (list, tuple)) or len(pair) != 2:
            raise MalformedNotification(f"bad input source entry: {pair!r}")
        tag, layout = pair
        sources.append((str(tag), str(layout)))
    return PortalPayload(group=str(group), setting=str(setting), sources=tuple(sources))


# ---------------------------------------------------------------------------
# Signal signatures
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SignalSignature:
    """Where a transport variant's layout-change signal comes from."""
    name: str
    service: str
    path: str
    interface: str
    member: str
    eavesdrop: bool = False
    # ping the service before subscribing
    probe: bool = False
    arg0: Optional[str] = None

    def decode(self, args: Sequence[Any]) -> Payload:
        if self.name == "legacy":
            return decode_legacy(args)
        return decode_portal(args)

    def matches(self, event: NotificationEvent) -> bool:
        """True if *event* is this transport's input-sources-changed signal."""
        if event.interface != self.interface or event.member != self.member:
            return False
        payload = event.payload
        if self.name == "legacy":
            return isinstance(payload, LegacyPayload)
        return (
            isinstance(payload, PortalPayload)
            and payload.group == INPUT_SOURCES_GROUP
            and payload.setting == MRU_SOURCES_SETTING
        )


LEGACY_SIGNATURE = SignalSignature(
    name="legacy",
    service="com.canonical.indicator.keyboard",
    path="/com/canonical/indicator/keyboard",
    interface="org.gtk.Actions",
    member="Changed",
    eavesdrop=True,
    probe=True,
)

PORTAL_SIGNATURE = SignalSignature(
    name="portal",
    service="org.freedesktop.portal.Desktop",
    path="/org/freedesktop/portal/desktop",
    interface="org.freedesktop.portal.Settings",
    member="SettingChanged",
    arg0=INPUT_SOURCES_GROUP,
)

SIGNATURES = {s.name: s for s in (LEGACY_SIGNATURE, PORTAL_SIGNATURE)}
