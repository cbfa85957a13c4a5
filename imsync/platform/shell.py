"""GNOME Shell ``Eval`` helpers.

``org.gnome.Shell.Eval(s script) -> (b success, s result)`` runs JavaScript
inside the shell.  Newer GNOME releases only allow it in unsafe mode; a
refusal comes back as ``(false, '')``.
"""

from __future__ import annotations

import json
import re

SHELL_BUS = "org.gnome.Shell"
SHELL_PATH = "/org/gnome/Shell"
SHELL_INTERFACE = "org.gnome.Shell"
SHELL_EVAL = "org.gnome.Shell.Eval"

# gdbus prints GVariant text: (true, '"12345"')
_REPLY_RE = re.compile(r"^\((true|false),\s*(['\"])(.*)\2\)\s*$", re.DOTALL)


def parse_eval_reply(text: str) -> tuple[bool, str]:
    """Parse ``gdbus call`` output of ``Eval`` into ``(success, result)``.

    The result is JSON-encoded by the shell; strings are unwrapped, anything
    else is returned as its JSON text.  Unparseable output is ``(False, '')``.
    """
    m = _REPLY_RE.match(text.strip())
    if not m:
        return False, ""
    success = m.group(1) == "true"
    raw = m.group(3)
    try:
        value = json.loads(raw)
    except ValueError:
        return success, raw
    if isinstance(value, str):
        return success, value
    return success, raw
