"""Desktop environment, display server and session bus detection."""

from __future__ import annotations

import os
from typing import Mapping


def detect_desktop_environment(environ: Mapping[str, str] | None = None) -> str:
    """
    Determine the current desktop environment.

    Returns:
        str: 'gnome', 'unity', 'cinnamon', 'kde', 'xfce', 'mate' or 'generic'
    """
    env = os.environ if environ is None else environ
    desktop = env.get('XDG_CURRENT_DESKTOP', '').lower()
    session = env.get('DESKTOP_SESSION', '').lower()

    if 'unity' in desktop or 'unity' in session:
        return 'unity'
    elif 'cinnamon' in desktop or 'cinnamon' in session:
        return 'cinnamon'
    elif 'gnome' in desktop or 'gnome' in session:
        return 'gnome'
    elif 'kde' in desktop or 'plasma' in desktop:
        return 'kde'
    elif 'xfce' in desktop:
        return 'xfce'
    elif 'mate' in desktop:
        return 'mate'

    return 'generic'


def detect_display_server(environ: Mapping[str, str] | None = None) -> str:
    """
    Determine the display server in use.

    Returns:
        str: 'wayland', 'x11' or 'none'
    """
    env = os.environ if environ is None else environ
    session_type = env.get('XDG_SESSION_TYPE', '').lower()

    if 'wayland' in session_type or env.get('WAYLAND_DISPLAY'):
        return 'wayland'
    if session_type == 'x11' or env.get('DISPLAY'):
        return 'x11'
    return 'none'


def session_bus_address(environ: Mapping[str, str] | None = None) -> str:
    """Return the D-Bus session bus address, or '' if the session has none."""
    env = os.environ if environ is None else environ
    return env.get('DBUS_SESSION_BUS_ADDRESS', '')


def get_environment_info(environ: Mapping[str, str] | None = None) -> dict[str, str]:
    """
    Return a summary of the environment, used for startup logging.

    Returns:
        dict: {'de': str, 'display_server': str, 'session_bus': str}
    """
    return {
        'de': detect_desktop_environment(environ),
        'display_server': detect_display_server(environ),
        'session_bus': 'yes' if session_bus_address(environ) else 'no',
    }
