"""Tests for payload decoders and signal signatures."""

from __future__ import annotations

import pytest

from imsync.core.events import (
    LEGACY_SIGNATURE,
    PORTAL_SIGNATURE,
    SIGNATURES,
    LegacyPayload,
    NotificationEvent,
    PortalPayload,
    decode_legacy,
    decode_portal,
)
from imsync.exceptions import MalformedNotification


class TestDecodePortal:
    def test_mru_sources_first_pair_wins(self):
        payload = decode_portal((
            "org.gnome.desktop.input-sources", "mru-sources",
            [("xkb", "ru"), ("xkb", "us")],
        ))
        assert payload.layout == "ru"
        assert payload.sources == (("xkb", "ru"), ("xkb", "us"))

    def test_empty_mru_has_no_layout(self):
        payload = decode_portal(("org.gnome.desktop.input-sources", "mru-sources", []))
        assert payload.layout is None

    def test_other_setting_keeps_group_and_drops_value(self):
        payload = decode_portal(("org.gnome.desktop.interface", "color-scheme", 1))
        assert payload == PortalPayload(group="org.gnome.desktop.interface", setting="color-scheme")

    def test_ibus_source_tag_kept(self):
        payload = decode_portal((
            "org.gnome.desktop.input-sources", "mru-sources",
            [["ibus", "mozc-jp"], ["xkb", "us"]],
        ))
        assert payload.layout == "mozc-jp"

    @pytest.mark.parametrize("args", [
        (),
        ("org.gnome.desktop.input-sources", "mru-sources"),
        (1, "mru-sources", []),
        ("org.gnome.desktop.input-sources", "mru-sources", "xkb:ru"),
        ("org.gnome.desktop.input-sources", "mru-sources", [("xkb",)]),
    ])
    def test_malformed(self, args):
        with pytest.raises(MalformedNotification):
            decode_portal(args)


class TestDecodeLegacy:
    def test_state_change_current(self):
        payload = decode_legacy(([], {}, {"current": 1}, {}))
        assert payload == LegacyPayload(current=1)

    def test_current_added_with_state(self):
        payload = decode_legacy(([], {}, {}, {"current": (True, "u", [2])}))
        assert payload.layout == 2

    def test_unrelated_action_has_no_layout(self):
        payload = decode_legacy(([], {"scroll": True}, {"other": 5}, {}))
        assert payload.layout is None

    def test_wrapped_state_value(self):
        assert decode_legacy(([], {}, {"current": [3]}, {})).layout == 3

    @pytest.mark.parametrize("args", [
        ([], {}, {}),
        ([], {}, [], {}),
        ([], {}, {"current": "ru"}, {}),
        ([], {}, {"current": -1}, {}),
        ([], {}, {"current": True}, {}),
        ([], {}, {}, {"current": "bad"}),
    ])
    def test_malformed(self, args):
        with pytest.raises(MalformedNotification):
            decode_legacy(args)


class TestSignatures:
    def test_lookup_by_name(self):
        assert SIGNATURES["portal"] is PORTAL_SIGNATURE
        assert SIGNATURES["legacy"] is LEGACY_SIGNATURE

    def test_legacy_needs_eavesdrop_and_probe(self):
        assert LEGACY_SIGNATURE.eavesdrop is True
        assert LEGACY_SIGNATURE.probe is True
        assert PORTAL_SIGNATURE.eavesdrop is False
        assert PORTAL_SIGNATURE.arg0 == "org.gnome.desktop.input-sources"

    def test_decode_dispatches_by_transport(self):
        assert isinstance(LEGACY_SIGNATURE.decode(([], {}, {"current": 0}, {})), LegacyPayload)
        assert isinstance(
            PORTAL_SIGNATURE.decode(("org.gnome.desktop.input-sources", "mru-sources", [])),
            PortalPayload,
        )

    def test_matches_requires_interface_and_member(self):
        payload = PortalPayload("org.gnome.desktop.input-sources", "mru-sources", (("xkb", "ru"),))
        good = NotificationEvent(PORTAL_SIGNATURE.interface, "SettingChanged", payload)
        wrong_member = NotificationEvent(PORTAL_SIGNATURE.interface, "Changed", payload)
        assert PORTAL_SIGNATURE.matches(good)
        assert not PORTAL_SIGNATURE.matches(wrong_member)

    def test_none_payload_never_matches(self):
        event = NotificationEvent(LEGACY_SIGNATURE.interface, LEGACY_SIGNATURE.member, None)
        assert not LEGACY_SIGNATURE.matches(event)
        assert event.layout is None
