"""Exception hierarchy for imsync.

None of these ever reach an interactive caller: every layer that raises
one has a counterpart that catches it and degrades to "do nothing this time".
"""

from __future__ import annotations


class ImSyncError(Exception):
    """Base exception for all imsync errors."""


class TransportUnavailable(ImSyncError):
    """Session bus or notification source cannot be reached."""

    def __init__(self, message: str, *, service: str = "") -> None:
        self.service = service
        super().__init__(message)


class MalformedNotification(ImSyncError):
    """Signal payload does not have the expected shape."""


class ActionFailure(ImSyncError):
    """Layout reset or input-method toggle failed."""

    def __init__(self, message: str, *, action: str = "", returncode: int | None = None) -> None:
        self.action = action
        self.returncode = returncode
        super().__init__(message)


class FocusQueryFailure(ImSyncError):
    """The windowing system could not answer a focus query."""
