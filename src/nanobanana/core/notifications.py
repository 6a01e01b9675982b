"""
Single-slot, self-dismissing user notifications (toasts).

A new notification replaces the current one immediately; there is no queue.
Each notification starts a timer that clears the slot after its duration.
Timers are not cancelled when a newer notification arrives, so an older
timer can clear a newer message early.
"""

import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Literal

from nanobanana.core.config import DEFAULT_NOTIFICATION_DURATION_MS
from nanobanana.logging_config import get_logger

logger = get_logger(__name__)

NotificationKind = Literal["success", "error", "info"]
NOTIFICATION_KINDS: tuple[str, ...] = ("success", "error", "info")

Listener = Callable[["Notification | None"], None]
TimerFactory = Callable[[float, Callable[[], None]], Any]


@dataclass(frozen=True)
class Notification:
    message: str
    kind: NotificationKind = "info"
    duration_ms: int = DEFAULT_NOTIFICATION_DURATION_MS
    created_at: float = field(default_factory=time.time)


def _daemon_timer(interval: float, fn: Callable[[], None]) -> threading.Timer:
    timer = threading.Timer(interval, fn)
    timer.daemon = True
    return timer


class NotificationChannel:
    """Holds at most one notification and tells subscribers when it changes."""

    def __init__(
        self,
        default_duration_ms: int = DEFAULT_NOTIFICATION_DURATION_MS,
        timer_factory: TimerFactory = _daemon_timer,
    ) -> None:
        self.default_duration_ms = default_duration_ms
        self._timer_factory = timer_factory
        self._current: Notification | None = None
        self._listeners: list[Listener] = []
        self._lock = threading.Lock()

    @property
    def current(self) -> Notification | None:
        return self._current

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register listener; return a function that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _publish(self, notification: Notification | None) -> None:
        for listener in list(self._listeners):
            listener(notification)

    def notify(
        self,
        message: str,
        kind: NotificationKind = "info",
        duration_ms: int | None = None,
    ) -> Notification:
        """
        Show message, replacing whatever is currently shown.

        Raises:
            ValueError: If kind is not one of success, error, info
        """
        if kind not in NOTIFICATION_KINDS:
            raise ValueError(f"Unknown notification kind: {kind!r}")
        duration = self.default_duration_ms if duration_ms is None else duration_ms
        notification = Notification(message=message, kind=kind, duration_ms=duration)
        with self._lock:
            self._current = notification
        log = logger.warning if kind == "error" else logger.debug
        log("Notification [%s]: %s", kind, message)
        self._publish(notification)

        timer = self._timer_factory(duration / 1000, self.dismiss)
        timer.start()
        return notification

    def dismiss(self) -> None:
        """Clear the slot, whatever it currently holds."""
        with self._lock:
            if self._current is None:
                return
            self._current = None
        self._publish(None)
