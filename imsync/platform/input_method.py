"""IInputMethodToggle interface and the host-command implementation.

The host is reached through a short command line, by default
``emacsclient --eval "(toggle-input-method)"``.  The call is synchronous:
when ``toggle()`` returns the host has flipped its input method once.
"""

from __future__ import annotations

import logging
import os
import re
from abc import ABC, abstractmethod
from typing import Optional

import imsync.log  # registers TRACE level and logger.trace()
from imsync.exceptions import ActionFailure
from imsync.platform.system_adapter import ISystemAdapter

logger = logging.getLogger(__name__)

DEFAULT_TOGGLE_COMMAND = ["emacsclient", "--eval", "(toggle-input-method)"]
EMACS_WINDOW_ID_FORM = "(frame-parameter nil 'outer-window-id)"
EMACS_FOCUS_FORM = "(frame-focus-state)"


class IInputMethodToggle(ABC):
    @abstractmethod
    def toggle(self) -> None: ...


class HostCommandToggle(IInputMethodToggle):
    def __init__(self, system: ISystemAdapter, command: list[str] | None = None,
                 timeout: float = 2.0) -> None:
        self._system = system
        self.command = list(command or DEFAULT_TOGGLE_COMMAND)
        self._timeout = timeout

    def toggle(self) -> None:
        result = self._system.run_command(self.command, timeout=self._timeout)
        if not result.ok:
            raise ActionFailure(
                f"{self.command[0]} exited with {result.returncode}: {result.stderr.strip()}",
                action="toggle", returncode=result.returncode,
            )
        logger.trace("toggle output: %r", result.stdout)  # type: ignore[attr-defined]


def is_emacsclient(command: list[str]) -> bool:
    return bool(command) and os.path.basename(command[0]).startswith("emacsclient")


def emacs_window_id(system: ISystemAdapter, client: str = "emacsclient",
                    timeout: float = 2.0) -> Optional[int]:
    """Ask Emacs for the X11 id of its selected frame; None if unavailable."""
    result = system.run_command([client, "--eval", EMACS_WINDOW_ID_FORM], timeout=timeout)
    if not result.ok:
        logger.debug("emacsclient window id query failed: %s", result.stderr.strip())
        return None
    # prints the id as a Lisp string: "41943046"
    m = re.search(r'"?(\d+)"?', result.stdout.strip())
    return int(m.group(1)) if m else None


def emacs_has_focus(system: ISystemAdapter, client: str = "emacsclient",
                    timeout: float = 2.0) -> bool:
    """True only if Emacs reports its selected frame as focused.

    ``frame-focus-state`` answers ``t``, ``nil`` or ``unknown``; anything
    but ``t`` (or a failed call) counts as not focused.
    """
    result = system.run_command([client, "--eval", EMACS_FOCUS_FORM], timeout=timeout)
    if not result.ok:
        logger.debug("emacsclient focus query failed: %s", result.stderr.strip())
        return False
    return result.stdout.strip() == "t"
