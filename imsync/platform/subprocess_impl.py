"""SubprocessSystemAdapter — real implementation of ISystemAdapter."""

from __future__ import annotations

import logging
import subprocess

import imsync.log  # registers TRACE level and logger.trace()
from imsync.platform.system_adapter import CommandResult, ISystemAdapter

logger = logging.getLogger(__name__)


class SubprocessSystemAdapter(ISystemAdapter):
    """Executes real subprocess calls."""

    def __init__(self, debug: bool = False) -> None:
        self.debug = debug

    def run_command(self, args: list[str], timeout: float = 1.0) -> CommandResult:
        logger.trace("run %s", args)  # type: ignore[attr-defined]
        try:
            r = subprocess.run(args, capture_output=True, text=True, timeout=timeout)
            return CommandResult(stdout=r.stdout, stderr=r.stderr, returncode=r.returncode)
        except subprocess.TimeoutExpired:
            return CommandResult(stdout="", stderr="timeout", returncode=-1)
        except OSError as e:
            return CommandResult(stdout="", stderr=str(e), returncode=-1)

    def spawn(self, args: list[str]) -> bool:
        logger.trace("spawn %s", args)  # type: ignore[attr-defined]
        try:
            subprocess.Popen(
                args,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                start_new_session=True,
            )
            return True
        except OSError as e:
            if self.debug:
                logger.debug("spawn %s failed: %s", args[0], e)
            return False

    def gdbus_call(self, dest: str, path: str, method: str, *args: str,
                   timeout: float = 1.0) -> CommandResult:
        return self.run_command(
            ["gdbus", "call", "--session",
             "--dest", dest,
             "--object-path", path,
             "--method", method,
             *args],
            timeout=timeout,
        )
