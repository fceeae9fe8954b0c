"""
DiscForge notification sinks.

Burn and device services publish named events with JSON-serializable
payloads. A front end subscribes through one of the sinks below.
"""

from __future__ import annotations

import queue
import threading
from collections.abc import Callable
from enum import Enum
from typing import Any, Protocol

from discforge.core.logging import get_logger

logger = get_logger(__name__)


class EventName(str, Enum):
    """Names of published events."""

    DEVICE_LIST_UPDATED = "device:list-updated"
    DEVICE_MEDIA_CHANGED = "device:media-changed"

    BURN_PROGRESS = "burn:progress"
    BURN_STATE_CHANGED = "burn:state-changed"
    BURN_LOG_LINE = "burn:log-line"
    BURN_COMPLETE = "burn:complete"
    BURN_ERROR = "burn:error"

    VERIFY_PROGRESS = "verify:progress"
    VERIFY_COMPLETE = "verify:complete"


class EventSink(Protocol):
    """Receiver of published events."""

    def emit(self, event: str, payload: Any = None) -> None: ...


class NullEventSink:
    """Discards all events."""

    def emit(self, event: str, payload: Any = None) -> None:
        return None


class CallbackEventSink:
    """Fans events out to subscribed callbacks in subscription order."""

    def __init__(self) -> None:
        self._callbacks: list[tuple[str | None, Callable[[str, Any], None]]] = []
        self._lock = threading.Lock()

    def subscribe(
        self,
        callback: Callable[[str, Any], None],
        event: str | None = None,
    ) -> None:
        """Subscribe to one event name, or to every event when ``event`` is None."""
        with self._lock:
            self._callbacks.append((_name(event) if event else None, callback))

    def unsubscribe(self, callback: Callable[[str, Any], None]) -> None:
        with self._lock:
            self._callbacks = [(e, cb) for e, cb in self._callbacks if cb is not callback]

    def emit(self, event: str, payload: Any = None) -> None:
        name = _name(event)
        with self._lock:
            targets = [cb for e, cb in self._callbacks if e is None or e == name]

        for callback in targets:
            try:
                callback(name, payload)
            except Exception as e:
                logger.warning("Event callback error", event_name=name, error=str(e))


class QueueEventSink:
    """Buffers events for a consumer on another thread.

    ``emit`` blocks when the queue is full, so events are never dropped
    or reordered.
    """

    def __init__(self, maxsize: int = 1024) -> None:
        self._queue: queue.Queue[tuple[str, Any]] = queue.Queue(maxsize=maxsize)

    def emit(self, event: str, payload: Any = None) -> None:
        self._queue.put((_name(event), payload))

    def get(self, timeout: float | None = None) -> tuple[str, Any] | None:
        """Next event, or None if none arrived within ``timeout``."""
        try:
            return self._queue.get(timeout=timeout)
        except queue.Empty:
            return None

    def drain(self) -> list[tuple[str, Any]]:
        """All events currently queued."""
        events: list[tuple[str, Any]] = []
        while True:
            try:
                events.append(self._queue.get_nowait())
            except queue.Empty:
                return events


def _name(event: str) -> str:
    return event.value if isinstance(event, EventName) else str(event)
