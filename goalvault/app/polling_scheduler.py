"""Scheduler helper that owns step timers for UI-driven transaction flows.

Presenters pass a UI toolkit's ``after``/``after_cancel`` pair (or any
compatible callables) into this class so timer state is tracked in one place
and cancelled when a dialog closes.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Dict, Optional

log = logging.getLogger(__name__)

ScheduleFn = Callable[[int, Callable[[], None]], object]
CancelFn = Callable[[object], None]


@dataclass
class PollHandle:
    """Timer token associated with a single channel.

    Attributes:
        channel: Channel key, e.g. the operation kind of a dialog.
        token: Token returned by the UI scheduler implementation.
    """
    channel: str
    token: object


class PollingScheduler:
    """Manage per-channel timers using a UI scheduler."""

    def __init__(self, schedule: ScheduleFn, cancel: CancelFn) -> None:
        """
        Args:
            schedule: Function compatible with ``after(delay_ms, callback)``.
            cancel: Function compatible with ``after_cancel(token)``.
        """
        self._schedule = schedule
        self._cancel = cancel
        self._handles: Dict[str, PollHandle] = {}

    def schedule(self, channel: str, delay_ms: int, callback: Callable[[], None]) -> None:
        """Schedule or reschedule the next callback for a channel."""
        delay = max(1, int(delay_ms))
        self.cancel(channel)

        def _fire() -> None:
            handle = self._handles.get(channel)
            if handle is None or handle.token is not token_box[0]:
                return  # cancelled or superseded
            del self._handles[channel]
            callback()

        token_box: list = [None]
        token = self._schedule(delay, _fire)
        token_box[0] = token
        self._handles[channel] = PollHandle(channel=channel, token=token)

    def cancel(self, channel: str) -> None:
        """Cancel the pending callback for a channel, if any."""
        handle = self._handles.pop(channel, None)
        if not handle:
            return
        try:
            self._cancel(handle.token)
        except (ValueError, RuntimeError) as exc:
            # The UI toolkit may already have fired or destroyed the timer.
            log.debug("Cancel of %s timer failed: %s", channel, exc)

    def cancel_all(self) -> None:
        """Cancel all pending callbacks across all channels."""
        for channel in list(self._handles.keys()):
            self.cancel(channel)

    def handle_for(self, channel: str) -> Optional[PollHandle]:
        return self._handles.get(channel)

    @property
    def pending(self) -> int:
        return len(self._handles)


__all__ = ["PollHandle", "PollingScheduler"]
