"""
Tests for the Qt event bridge.
"""

import pytest

from discforge.core.events import EventName

pytestmark = pytest.mark.gui


@pytest.fixture
def sink(qapp):
    from discforge.ui.bridge import QtEventSink

    return QtEventSink()


class TestQtEventSink:
    """Tests for QtEventSink."""

    def test_progress_signal(self, sink) -> None:
        received = []
        sink.burnProgress.connect(received.append)

        sink.emit(EventName.BURN_PROGRESS, {"phase": "writing", "percent": 42.5})

        assert received == [{"phase": "writing", "percent": 42.5}]

    def test_state_signal(self, sink) -> None:
        received = []
        sink.burnStateChanged.connect(received.append)

        sink.emit(EventName.BURN_STATE_CHANGED, "verifying")

        assert received == ["verifying"]

    def test_log_line_signal(self, sink) -> None:
        received = []
        sink.burnLogLine.connect(lambda channel, text: received.append((channel, text)))

        sink.emit(EventName.BURN_LOG_LINE, {"channel": "I", "text": "xorriso : NOTE : ok"})

        assert received == [("I", "xorriso : NOTE : ok")]

    def test_error_signal(self, sink) -> None:
        received = []
        sink.burnError.connect(received.append)

        sink.emit("burn:error", "Medium is not writable")
        sink.emit(EventName.BURN_ERROR, None)

        assert received == ["Medium is not writable", ""]

    def test_device_list_signal(self, sink) -> None:
        received = []
        sink.deviceListUpdated.connect(received.append)

        sink.emit(EventName.DEVICE_LIST_UPDATED, [{"path": "/dev/sr0"}])

        assert received == [[{"path": "/dev/sr0"}]]

    def test_media_changed_signal(self, sink) -> None:
        received = []
        sink.deviceMediaChanged.connect(received.append)

        sink.emit(EventName.DEVICE_MEDIA_CHANGED, {"device_path": "/dev/sr0", "media_type": "BD-RE"})

        assert received == [{"device_path": "/dev/sr0", "media_type": "BD-RE"}]

    def test_every_event_has_a_typed_signal(self, sink) -> None:
        received = []
        for signal in (
            sink.burnProgress,
            sink.burnStateChanged,
            sink.burnComplete,
            sink.burnError,
            sink.verifyProgress,
            sink.verifyComplete,
            sink.deviceListUpdated,
            sink.deviceMediaChanged,
        ):
            signal.connect(lambda *args: received.append(args))
        sink.burnLogLine.connect(lambda *args: received.append(args))

        payloads = {
            EventName.BURN_STATE_CHANGED: "writing",
            EventName.BURN_LOG_LINE: {"channel": "I", "text": "x"},
            EventName.BURN_ERROR: "failed",
            EventName.DEVICE_LIST_UPDATED: [],
        }
        for event in EventName:
            sink.emit(event, payloads.get(event, {}))

        assert len(received) == len(EventName)

    def test_generic_signal_for_every_event(self, sink) -> None:
        received = []
        sink.eventEmitted.connect(lambda name, payload: received.append(name))

        sink.emit(EventName.BURN_COMPLETE, {"success": True})
        sink.emit(EventName.DEVICE_MEDIA_CHANGED, {"device": "/dev/sr0"})

        assert received == ["burn:complete", "device:media-changed"]
