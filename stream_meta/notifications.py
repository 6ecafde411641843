from __future__ import annotations

import logging
from threading import Lock
from typing import Callable, Protocol

logger = logging.getLogger(__name__)


class NotificationSink(Protocol):
    def notify_active_item_updated(self) -> None: ...


class CallbackNotifier:
    def __init__(self, callback: Callable[[], None]) -> None:
        self.callback = callback

    def notify_active_item_updated(self) -> None:
        self.callback()


class BroadcastNotifier:
    """Fans the "metadata updated" signal out to every registered listener.

    Listeners run on the batch thread; a listener that needs the UI thread has
    to hand the call over itself.
    """

    def __init__(self) -> None:
        self._listeners: list[Callable[[], None]] = []
        self._lock = Lock()

    def subscribe(self, listener: Callable[[], None]) -> None:
        with self._lock:
            self._listeners.append(listener)

    def unsubscribe(self, listener: Callable[[], None]) -> None:
        with self._lock:
            try:
                self._listeners.remove(listener)
            except ValueError:
                pass

    def notify_active_item_updated(self) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener()
            except Exception:
                logger.exception("Metadata listener %r failed", listener)
