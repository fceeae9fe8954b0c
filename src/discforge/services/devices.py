"""
DiscForge device service.

Drive and media queries answered by short buffered xorriso runs. They share
the burn executor, so a query issued during a burn waits for it to finish.
"""

from __future__ import annotations

import threading

from discforge.core.events import EventName, EventSink, NullEventSink
from discforge.core.logging import get_logger
from discforge.core.models import Device, MediaInfo, MediaProfile, SpeedDescriptor
from discforge.xorriso.commands import CommandBuilder
from discforge.xorriso.executor import XorrisoError, XorrisoExecutor
from discforge.xorriso.parser import (
    BLOCK_SIZE,
    ProcessOutcome,
    parse_devices,
    parse_media_space,
    parse_profiles,
    parse_speeds,
    parse_toc,
    value_after_colon,
)

logger = get_logger(__name__)


class DeviceQueryError(XorrisoError):
    """xorriso ran but the query failed."""


class DeviceService:
    """Drive and media queries."""

    def __init__(self, executor: XorrisoExecutor, timeout: float = 15.0) -> None:
        self._executor = executor
        self.timeout = timeout

    def _query(self, args: tuple[str, ...], require_success: bool = True) -> ProcessOutcome:
        outcome = self._executor.run(args, timeout=self.timeout)
        if require_success and not outcome.success:
            raise DeviceQueryError(
                outcome.last_info or f"xorriso exited with code {outcome.exit_code}"
            )
        return outcome

    def list_devices(self) -> list[Device]:
        """Optical drives visible to xorriso."""
        outcome = self._query(CommandBuilder().device_links().build())
        return parse_devices(outcome.result_lines)

    def get_drive_profiles(self, device_path: str) -> list[MediaProfile]:
        """Media profiles the drive supports, with the loaded one marked current."""
        outcome = self._query(
            CommandBuilder().out_device(device_path).list_profiles("all").build()
        )
        return parse_profiles(outcome.result_lines)

    def get_speeds(self, device_path: str) -> list[SpeedDescriptor]:
        """Write speeds offered for the loaded medium."""
        outcome = self._query(CommandBuilder().device(device_path).list_speeds().build())
        return parse_speeds(outcome.result_lines)

    def get_media_info(self, device_path: str) -> MediaInfo:
        """Type, status, free space and sessions of the loaded medium."""
        # -toc on blank media exits nonzero but still reports status and space
        outcome = self._query(
            CommandBuilder().device(device_path).toc().tell_media_space().build(),
            require_success=False,
        )

        info = MediaInfo(device_path=device_path)
        lines = outcome.result_lines + outcome.info_lines
        info.free_bytes = parse_media_space(outcome.result_lines) * BLOCK_SIZE
        info.sessions = parse_toc(outcome.result_lines)

        for line in lines:
            if "Media current:" in line:
                info.media_type = value_after_colon(line)
            elif "Media status :" in line:
                info.media_status = value_after_colon(line)
            elif "Media erasable" in line:
                info.erasable = "is erasable" in line

        if not outcome.success and not info.media_type:
            raise DeviceQueryError(
                outcome.last_info or f"xorriso exited with code {outcome.exit_code}"
            )
        return info

    def eject_disc(self, device_path: str) -> None:
        """Open the tray of ``device_path``."""
        self._query(CommandBuilder().device(device_path).eject("all").build())
        logger.info("Medium ejected", device=device_path)


class DeviceMonitor:
    """Polls the device list in the background and publishes it.

    With ``watch_media`` set, each poll also reads the medium of every
    listed drive and publishes ``device:media-changed`` when its type or
    status differs from the previous poll.
    """

    def __init__(
        self,
        devices: DeviceService,
        events: EventSink | None = None,
        interval: float = 5.0,
        watch_media: bool = False,
    ) -> None:
        self._devices = devices
        self._events: EventSink = events or NullEventSink()
        self.interval = interval
        self.watch_media = watch_media
        self._media: dict[str, tuple[str, str]] = {}
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.is_running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="device-monitor", daemon=True)
        self._thread.start()

    def stop(self, timeout: float | None = None) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    def poll_once(self) -> list[Device] | None:
        """Query and publish the device list once. None if the query failed."""
        try:
            devices = self._devices.list_devices()
        except XorrisoError as e:
            logger.debug("Device poll failed", error=str(e))
            return None
        self._events.emit(EventName.DEVICE_LIST_UPDATED, [d.to_dict() for d in devices])

        if self.watch_media:
            for device in devices:
                self._check_media(device.path)
        return devices

    def _check_media(self, device_path: str) -> None:
        try:
            info = self._devices.get_media_info(device_path)
        except XorrisoError as e:
            logger.debug("Media poll failed", device=device_path, error=str(e))
            return

        state = (info.media_type, info.media_status)
        if self._media.get(device_path) == state:
            return
        self._media[device_path] = state
        self._events.emit(EventName.DEVICE_MEDIA_CHANGED, info.to_dict())

    def _run(self) -> None:
        while not self._stop.wait(self.interval):
            self.poll_once()
