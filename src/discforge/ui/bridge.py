"""
DiscForge Qt event bridge.

Re-emits service events as Qt signals. Services publish from worker
threads; Qt delivers the signals to receivers in the GUI thread through
queued connections.
"""

from __future__ import annotations

from typing import Any

from PySide6.QtCore import QObject, Signal

from discforge.core.events import EventName


class QtEventSink(QObject):
    """EventSink that turns events into Qt signals."""

    burnProgress = Signal(dict)
    burnStateChanged = Signal(str)
    burnLogLine = Signal(str, str)
    burnComplete = Signal(object)
    burnError = Signal(str)
    verifyProgress = Signal(dict)
    verifyComplete = Signal(dict)
    deviceListUpdated = Signal(list)
    deviceMediaChanged = Signal(dict)
    eventEmitted = Signal(str, object)

    def __init__(self, parent: Any = None) -> None:
        super().__init__(parent)

    def emit(self, event: str, payload: Any = None) -> None:
        name = event.value if isinstance(event, EventName) else str(event)

        if name == EventName.BURN_PROGRESS.value:
            self.burnProgress.emit(payload)
        elif name == EventName.BURN_STATE_CHANGED.value:
            self.burnStateChanged.emit(payload)
        elif name == EventName.BURN_LOG_LINE.value:
            self.burnLogLine.emit(payload["channel"], payload["text"])
        elif name == EventName.BURN_COMPLETE.value:
            self.burnComplete.emit(payload)
        elif name == EventName.BURN_ERROR.value:
            self.burnError.emit(payload or "")
        elif name == EventName.VERIFY_PROGRESS.value:
            self.verifyProgress.emit(payload)
        elif name == EventName.VERIFY_COMPLETE.value:
            self.verifyComplete.emit(payload)
        elif name == EventName.DEVICE_LIST_UPDATED.value:
            self.deviceListUpdated.emit(payload)
        elif name == EventName.DEVICE_MEDIA_CHANGED.value:
            self.deviceMediaChanged.emit(payload)

        self.eventEmitted.emit(name, payload)
