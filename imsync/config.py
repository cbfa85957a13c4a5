"""Configuration loader and validator for imsync.

Provides ``load_config(path)`` which reads a JSON config (with
comment and trailing-comma tolerant sanitizer) and merges user
overrides from ``~/.config/imsync/config.json``.

Also provides ``validate_config(conf)`` which normalizes and
validates config keys, raising ``ValueError`` on invalid values.
"""

from __future__ import annotations

import json
import logging
import os
import re

logger = logging.getLogger(__name__)

USER_CONFIG_PATH = '~/.config/imsync/config.json'

TRANSPORTS = ('portal', 'legacy')
RESET_METHODS = ('gsettings', 'settings-daemon', 'shell-eval')
FOCUS_BACKENDS = ('auto', 'x11', 'shell', 'none')

# Single source of truth for default configuration
DEFAULT_CONFIG: dict = {
    'transport': 'portal',
    'avoid_layout': 'ru',
    'default_layout_index': 0,
    'reset_method': 'gsettings',
    'focus_backend': 'auto',
    'host_window_id': 0,
    'toggle_command': ['emacsclient', '--eval', '(toggle-input-method)'],
    'echo_window': 1.0,
    'prime_layout': True,
    'prime_focus': False,
    'debug': False,
}


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------

def _sanitize_json_text(s: str) -> str:
    """Remove ``#``/``//`` comments and trailing commas from JSON-like text."""
    # Hash-style line comments
    s = re.sub(r"^[ \t]*#.*$", "", s, flags=re.MULTILINE)
    # C++-style line comments
    s = re.sub(r"^[ \t]*//.*$", "", s, flags=re.MULTILINE)
    # Trailing commas before } or ]
    s = re.sub(r",[ \t\r\n]+(\}|\])", r"\1", s)
    return s


def _choice(conf: dict, key: str, choices: tuple) -> str:
    value = conf.get(key, DEFAULT_CONFIG[key])
    if value not in choices:
        raise ValueError(f"Invalid '{key}': {value!r} (expected one of {', '.join(choices)})")
    return value


def _flag(conf: dict, key: str) -> bool:
    value = conf.get(key, DEFAULT_CONFIG[key])
    if not isinstance(value, bool):
        raise ValueError(f"Invalid '{key}': must be boolean")
    return value


def _non_negative_int(conf: dict, key: str) -> int:
    raw = conf.get(key, DEFAULT_CONFIG[key])
    if isinstance(raw, bool):
        raise ValueError(f"Invalid '{key}': {raw}")
    try:
        value = int(raw)
    except (TypeError, ValueError):
        raise ValueError(f"Invalid '{key}': {raw}")
    if value < 0:
        raise ValueError(f"Invalid '{key}': must be >= 0")
    return value


# ------------------------------------------------------------------
# Validation
# ------------------------------------------------------------------

def validate_config(conf: dict | None) -> dict:
    """Validate and normalize configuration dictionary.

    Returns a normalized dict with all expected keys.
    Raises ``ValueError`` on invalid values.
    """
    if conf is None:
        conf = {}

    out = dict(DEFAULT_CONFIG)

    out['transport'] = _choice(conf, 'transport', TRANSPORTS)
    out['reset_method'] = _choice(conf, 'reset_method', RESET_METHODS)
    out['focus_backend'] = _choice(conf, 'focus_backend', FOCUS_BACKENDS)

    # avoid_layout — non-empty string (language tag)
    avoid = conf.get('avoid_layout', DEFAULT_CONFIG['avoid_layout'])
    if not isinstance(avoid, str) or not avoid.strip():
        raise ValueError("Invalid 'avoid_layout': must be a non-empty string")
    out['avoid_layout'] = avoid.strip()

    out['default_layout_index'] = _non_negative_int(conf, 'default_layout_index')
    out['host_window_id'] = _non_negative_int(conf, 'host_window_id')

    # toggle_command — non-empty list of strings
    cmd = conf.get('toggle_command', DEFAULT_CONFIG['toggle_command'])
    if isinstance(cmd, str):
        cmd = cmd.split()
    if not isinstance(cmd, list) or not cmd or not all(isinstance(p, str) and p for p in cmd):
        raise ValueError("Invalid 'toggle_command': must be a non-empty list of strings")
    out['toggle_command'] = list(cmd)

    # echo_window — float seconds in [0, 10]; 0 disables expiry of the skip flag
    ew = conf.get('echo_window', DEFAULT_CONFIG['echo_window'])
    try:
        ew_val = float(ew)
    except (TypeError, ValueError):
        raise ValueError(f"Invalid 'echo_window': {ew}")
    if not (0.0 <= ew_val <= 10.0):
        raise ValueError(f"Invalid 'echo_window': {ew} (must be between 0 and 10.0)")
    out['echo_window'] = ew_val

    out['prime_layout'] = _flag(conf, 'prime_layout')
    out['prime_focus'] = _flag(conf, 'prime_focus')
    out['debug'] = _flag(conf, 'debug')

    return out


def _read_and_merge(path: str, target_config: dict, debug: bool = False) -> bool:
    """Read a JSON file, validate, and merge into *target_config*.

    Returns True on success, False on any error.
    """
    try:
        with open(path, 'r', encoding='utf-8') as f:
            raw = f.read()
    except OSError as exc:
        logger.warning("Cannot read config %s: %s", path, exc)
        return False

    try:
        cfg = json.loads(raw)
    except json.JSONDecodeError:
        try:
            cfg = json.loads(_sanitize_json_text(raw))
        except json.JSONDecodeError as exc:
            logger.warning("JSON parse error in %s: %s", path, exc)
            return False

    if not isinstance(cfg, dict):
        logger.warning("Config %s must contain a JSON object", path)
        return False

    try:
        validated = validate_config(cfg)
    except ValueError as verr:
        logger.warning("Invalid config %s: %s", path, verr)
        return False

    # Only override keys explicitly present in source
    for k in cfg:
        if k in validated:
            target_config[k] = validated[k]
        elif debug:
            logger.debug("Unknown config key %r in %s ignored", k, path)
    return True


# ------------------------------------------------------------------
# Top-level loader
# ------------------------------------------------------------------

def load_config(config_path: str | None = None, debug: bool = False) -> dict:
    """Load and merge configuration.

    If *config_path* is given, uses only that file (returns defaults if
    the file does not exist).  Otherwise falls back to
    ``~/.config/imsync/config.json``.

    Returns the effective configuration dict (always has all default keys).
    """
    config = dict(DEFAULT_CONFIG)
    path = config_path if config_path is not None else os.path.expanduser(USER_CONFIG_PATH)
    if os.path.exists(path):
        _read_and_merge(path, config, debug=debug)
    return config


# ------------------------------------------------------------------
# ConfigManager
# ------------------------------------------------------------------

class ConfigManager:
    """Runtime view of the config file: defaults, file values, command-line overrides."""

    def __init__(self, config_path: str | None = None, debug: bool = False):
        self._config_path = config_path or os.path.expanduser(USER_CONFIG_PATH)
        self._debug = debug
        self._config: dict = dict(DEFAULT_CONFIG)
        self._load_config()

    # -- internal -------------------------------------------------------

    def _load_config(self) -> None:
        """Reset to defaults, then overlay from file (if exists)."""
        self._config = dict(DEFAULT_CONFIG)
        if self._config_path and os.path.exists(self._config_path):
            _read_and_merge(self._config_path, self._config, debug=self._debug)

    # -- public ---------------------------------------------------------

    def reload(self) -> bool:
        """Reload configuration from file. Returns True on success."""
        try:
            self._load_config()
            return True
        except Exception:
            logger.exception("Config reload failed")
            return False

    def get(self, key: str, default=None):
        """Get a single configuration value."""
        return self._config.get(key, default)

    def update(self, updates: dict) -> None:
        """Update multiple configuration values."""
        self._config.update(updates)

    @property
    def config_path(self) -> str:
        """Current config file path."""
        return self._config_path
