"""EventDebouncer — turns layout-change notifications into host toggles.

Each notification is evaluated against ``SuppressionState``:

    unfocused                  → discard, state untouched
    not an input-sources signal → discard
    no layout in payload       → discard (echoing policy: consume skip flag)
    echo-free policy           → reset if layout == avoid layout, always toggle
    echoing policy             → duplicate/echo: swallow; otherwise reset,
                                 arm skip flag, toggle

Two policies exist because the transports differ in whether our own reset
shows up on the same channel.  The policy is fixed at construction; mixing
them either loops (missed suppression) or misses genuine switches.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from enum import Enum, auto
from typing import Callable, Optional

import imsync.log  # registers TRACE level and logger.trace()
from imsync.core.events import LayoutId, NotificationEvent, SignalSignature
from imsync.exceptions import ActionFailure
from imsync.platform.focus import IFocusOracle
from imsync.platform.input_method import IInputMethodToggle
from imsync.platform.layout_reset import ILayoutResetAction

logger = logging.getLogger(__name__)


class Policy(Enum):
    ECHO_FREE = auto()
    ECHOING = auto()


class Decision(Enum):
    UNFOCUSED = auto()
    IGNORED = auto()
    EMPTY = auto()
    SUPPRESSED = auto()
    TOGGLED = auto()
    RESET_AND_TOGGLED = auto()


POLICY_FOR_TRANSPORT = {
    'portal': Policy.ECHO_FREE,
    'legacy': Policy.ECHOING,
}


@dataclass
class SuppressionState:
    last_layout: Optional[LayoutId] = None
    skip_next: bool = False
    skip_set_at: float = 0.0

    def arm_skip(self, now: float) -> None:
        self.skip_next = True
        self.skip_set_at = now

    def clear_skip(self) -> None:
        self.skip_next = False
        self.skip_set_at = 0.0

    def reset(self) -> None:
        self.last_layout = None
        self.clear_skip()


class EventDebouncer:
    """Owns ``SuppressionState`` and drives reset/toggle actions.

    ``handle()`` is serialized with a lock; the GLib loop already delivers
    signals one at a time, the lock covers callers outside the loop.
    """

    def __init__(
        self,
        focus: IFocusOracle,
        reset_action: ILayoutResetAction,
        toggle: IInputMethodToggle,
        signature: SignalSignature,
        policy: Policy | None = None,
        avoid_layout: LayoutId | None = None,
        default_layout: int = 0,
        echo_window: float = 1.0,
        clock: Callable[[], float] = time.monotonic,
        debug: bool = False,
    ):
        self.focus = focus
        self.reset_action = reset_action
        self.toggle = toggle
        self.signature = signature
        self.policy = policy or POLICY_FOR_TRANSPORT[signature.name]
        if self.policy is Policy.ECHO_FREE and avoid_layout is None:
            raise ValueError("echo-free policy needs an avoid layout")
        self.avoid_layout = avoid_layout
        self.default_layout = default_layout
        self.echo_window = echo_window
        self.debug = debug
        self.state = SuppressionState()
        self._clock = clock
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def prime(self, layout: LayoutId | None) -> None:
        """Seed ``last_layout`` with the layout active before subscribing."""
        with self._lock:
            self.state.reset()
            self.state.last_layout = layout
        logger.debug("Suppression state primed with layout %r", layout)

    def clear(self) -> None:
        with self._lock:
            self.state.reset()

    # ------------------------------------------------------------------
    # Notification handling
    # ------------------------------------------------------------------

    def handle(self, event: NotificationEvent) -> Decision:
        with self._lock:
            decision = self._evaluate(event)
            if self.debug:
                logger.debug("%s.%s layout=%r → %s (state=%s)",
                             event.interface, event.member, event.layout,
                             decision.name, self.state)
        return decision

    def _evaluate(self, event: NotificationEvent) -> Decision:
        if not self.focus.is_host_focused():
            logger.trace("Host not focused, notification dropped")  # type: ignore[attr-defined]
            return Decision.UNFOCUSED

        if not self.signature.matches(event):
            logger.trace("Not an input-sources signal: %s", event)  # type: ignore[attr-defined]
            return Decision.IGNORED

        new_layout = event.layout
        if new_layout is None:
            if self.policy is Policy.ECHOING and self.state.skip_next:
                self.state.clear_skip()
                logger.debug("Empty notification consumed pending skip")
            return Decision.EMPTY

        if self.policy is Policy.ECHO_FREE:
            return self._reconcile_echo_free(new_layout)
        return self._reconcile_echoing(new_layout)

    def _reconcile_echo_free(self, new_layout: LayoutId) -> Decision:
        self.state.last_layout = new_layout
        fired_reset = False
        if new_layout == self.avoid_layout:
            self._run("layout reset", self.reset_action.reset, self.default_layout)
            fired_reset = True
        self._run("input method toggle", self.toggle.toggle)
        return Decision.RESET_AND_TOGGLED if fired_reset else Decision.TOGGLED

    def _reconcile_echoing(self, new_layout: LayoutId) -> Decision:
        now = self._clock()
        skipping = self._skip_pending(now)
        if new_layout == self.state.last_layout or skipping:
            self.state.clear_skip()
            self.state.last_layout = new_layout
            return Decision.SUPPRESSED

        # Bookkeeping first: the notification was observed even if an action fails
        self.state.last_layout = new_layout
        self.state.arm_skip(now)
        self._run("layout reset", self.reset_action.reset, self.default_layout)
        self._run("input method toggle", self.toggle.toggle)
        return Decision.RESET_AND_TOGGLED

    def _skip_pending(self, now: float) -> bool:
        if not self.state.skip_next:
            return False
        if self.echo_window <= 0:
            return True
        if now - self.state.skip_set_at <= self.echo_window:
            return True
        logger.debug("Skip flag expired after %.2fs, echo never arrived",
                     now - self.state.skip_set_at)
        self.state.clear_skip()
        return False

    @staticmethod
    def _run(name: str, action: Callable, *args) -> None:
        try:
            action(*args)
            logger.info("%s invoked", name.capitalize())
        except ActionFailure as exc:
            logger.error("%s failed: %s", name.capitalize(), exc)
        except Exception:
            logger.exception("%s raised", name.capitalize())
