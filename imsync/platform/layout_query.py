"""Synchronous lookup of the currently active layout, used to prime the debouncer."""

from __future__ import annotations

import logging
import re
from typing import Optional

from imsync.core.events import INPUT_SOURCES_GROUP, LayoutId
from imsync.platform.system_adapter import ISystemAdapter

logger = logging.getLogger(__name__)

_UINT_RE = re.compile(r"^(?:uint32\s+)?(\d+)$")
_PAIR_RE = re.compile(r"\(\s*'([^']*)'\s*,\s*'([^']*)'\s*\)")


def parse_current(text: str) -> Optional[int]:
    """``uint32 1`` → 1."""
    m = _UINT_RE.match(text.strip())
    return int(m.group(1)) if m else None


def parse_mru_sources(text: str) -> list[tuple[str, str]]:
    """``[('xkb', 'us'), ('xkb', 'ru')]`` → list of pairs; ``@a(ss) []`` → []."""
    return _PAIR_RE.findall(text)


class LayoutQuery:
    """Reads the input-sources schema through ``gsettings get``."""

    def __init__(self, system: ISystemAdapter, timeout: float = 2.0) -> None:
        self._system = system
        self._timeout = timeout

    def _get(self, key: str) -> Optional[str]:
        result = self._system.run_command(
            ["gsettings", "get", INPUT_SOURCES_GROUP, key], timeout=self._timeout,
        )
        if not result.ok:
            logger.debug("gsettings get %s failed: %s", key, result.stderr.strip())
            return None
        return result.stdout

    def current_index(self) -> Optional[int]:
        raw = self._get("current")
        return parse_current(raw) if raw is not None else None

    def most_recent_source(self) -> Optional[str]:
        raw = self._get("mru-sources")
        if raw is None:
            return None
        pairs = parse_mru_sources(raw)
        return pairs[0][1] if pairs else None

    def current_layout(self, transport: str) -> Optional[LayoutId]:
        """Layout id in the form the given transport reports it."""
        if transport == 'legacy':
            return self.current_index()
        return self.most_recent_source()
