"""Chat / story-display view switching with an exit-animation window."""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from itertools import count
from typing import Callable

from app_constants import TRANSITION_DELAY_SECONDS

logger = logging.getLogger(__name__)


class ViewMode(str, Enum):
    CHAT_INPUT = "chatInput"
    STORY_DISPLAY = "storyDisplay"


@dataclass(slots=True)
class _ScheduledCall:
    handle: int
    due_at: float
    callback: Callable[[], None]


class DeferredScheduler:
    """Cancelable delayed callbacks, fired explicitly through :meth:`run_due`.

    Nothing runs on a background thread. The owner pumps the scheduler (each
    Streamlit rerun, or a test with a fake clock) and due callbacks execute on
    the caller's thread in deadline order.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._pending: dict[int, _ScheduledCall] = {}
        self._handles = count(1)

    def call_later(self, delay: float, callback: Callable[[], None]) -> int:
        handle = next(self._handles)
        self._pending[handle] = _ScheduledCall(handle, self._clock() + max(delay, 0.0), callback)
        return handle

    def cancel(self, handle: int | None) -> bool:
        if handle is None:
            return False
        return self._pending.pop(handle, None) is not None

    def time_until_next(self) -> float | None:
        if not self._pending:
            return None
        soonest = min(call.due_at for call in self._pending.values())
        return max(soonest - self._clock(), 0.0)

    def run_due(self) -> int:
        now = self._clock()
        due = sorted(
            (call for call in self._pending.values() if call.due_at <= now),
            key=lambda call: (call.due_at, call.handle),
        )
        for call in due:
            if self._pending.pop(call.handle, None) is not None:
                call.callback()
        return len(due)

    def run_all(self) -> int:
        ran = 0
        while self._pending:
            call = min(self._pending.values(), key=lambda item: (item.due_at, item.handle))
            del self._pending[call.handle]
            call.callback()
            ran += 1
        return ran

    def __len__(self) -> int:
        return len(self._pending)


@dataclass(slots=True)
class _PendingTransition:
    target: ViewMode
    handle: int
    on_settled: list[Callable[[], None]] = field(default_factory=list)


class ViewModeController:
    """Two-state view machine guarded against overlapping transitions.

    A transition sets ``animating_out``; once the delay elapses the view flips
    to the target and the flag clears. Requests made while a transition is in
    flight are dropped, so only one scheduled flip can ever resolve.
    """

    def __init__(
        self,
        initial: ViewMode = ViewMode.STORY_DISPLAY,
        *,
        scheduler: DeferredScheduler | None = None,
        delay: float = TRANSITION_DELAY_SECONDS,
    ) -> None:
        self.view_mode = initial
        self.animating_out = False
        self.focus_requested = initial is ViewMode.CHAT_INPUT
        self.delay = delay
        self.scheduler = scheduler if scheduler is not None else DeferredScheduler()
        self._pending: _PendingTransition | None = None

    @property
    def pending_target(self) -> ViewMode | None:
        return self._pending.target if self._pending else None

    def request(self, target: ViewMode, on_settled: Callable[[], None] | None = None) -> bool:
        """Start animating towards ``target``; ``False`` when the request is dropped."""

        target = ViewMode(target)
        if self._pending is not None:
            logger.debug(
                "Dropping transition to %s while %s is in flight",
                target.value,
                self._pending.target.value,
            )
            return False

        self.animating_out = True
        handle = self.scheduler.call_later(self.delay, self._complete)
        self._pending = _PendingTransition(target=target, handle=handle)
        if on_settled is not None:
            self._pending.on_settled.append(on_settled)
        return True

    def settle(self) -> bool:
        """Resolve the in-flight transition now instead of waiting for the timer."""

        if self._pending is None:
            return False
        self.scheduler.cancel(self._pending.handle)
        self._complete()
        return True

    def tick(self) -> bool:
        """Pump the scheduler; ``True`` when a transition resolved."""

        before = self.view_mode, self.animating_out
        self.scheduler.run_due()
        return (self.view_mode, self.animating_out) != before

    def show_immediately(self, target: ViewMode) -> None:
        """Set the view without animation (initial load); cancels any pending flip."""

        self.dispose()
        self.view_mode = ViewMode(target)
        self.focus_requested = self.view_mode is ViewMode.CHAT_INPUT

    def consume_focus_request(self) -> bool:
        requested = self.focus_requested
        self.focus_requested = False
        return requested

    def dispose(self) -> None:
        if self._pending is not None:
            self.scheduler.cancel(self._pending.handle)
        self._pending = None
        self.animating_out = False

    def _complete(self) -> None:
        pending = self._pending
        if pending is None:
            return
        self._pending = None
        self.view_mode = pending.target
        self.animating_out = False
        if pending.target is ViewMode.CHAT_INPUT:
            self.focus_requested = True
        for callback in pending.on_settled:
            callback()


__all__ = ["DeferredScheduler", "ViewMode", "ViewModeController"]
