"""
DiscForge Session Management.

A session wires one xorriso executor to the services that share it. Each
session owns its own executor lock and current-job slot, so several
sessions can coexist in one process.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from discforge.core.config import DiscForgeConfig, load_config
from discforge.core.events import CallbackEventSink, EventSink
from discforge.core.logging import get_logger, setup_logging
from discforge.services.burn import BurnService
from discforge.services.devices import DeviceMonitor, DeviceService
from discforge.xorriso.executor import XorrisoExecutor

logger = get_logger(__name__)


class Session:
    """
    Owns the executor, services and event sink of a DiscForge front end.

    This is the main entry point for all DiscForge operations.
    """

    def __init__(
        self,
        config: DiscForgeConfig | None = None,
        events: EventSink | None = None,
        session_id: str | None = None,
    ) -> None:
        self.id = session_id or str(uuid.uuid4())
        self.config = config or load_config()
        self.started_at = datetime.now()

        setup_logging(self.config.logging)

        self.events: EventSink = events if events is not None else CallbackEventSink()

        xorriso = self.config.xorriso
        self.executor = XorrisoExecutor(
            binary_path=xorriso.binary_path,
            kill_grace_seconds=xorriso.kill_grace_seconds,
        )
        self.devices = DeviceService(self.executor, timeout=xorriso.query_timeout_seconds)
        self.burner = BurnService(
            self.executor,
            events=self.events,
            blank_timeout=xorriso.blank_timeout_seconds,
            format_timeout=xorriso.format_timeout_seconds,
            verify_timeout=xorriso.verify_timeout_seconds,
            eject_timeout=xorriso.query_timeout_seconds,
        )
        self.monitor = DeviceMonitor(
            self.devices,
            events=self.events,
            interval=self.config.device_poll_interval_seconds,
            watch_media=self.config.watch_media,
        )

        logger.info(
            "Session started",
            session_id=self.id,
            xorriso=xorriso.binary_path,
        )

    def xorriso_version(self) -> str:
        """Version banner of the configured xorriso."""
        return self.executor.version(timeout=self.config.xorriso.query_timeout_seconds)

    def close(self) -> None:
        """Stop polling and cancel any active burn."""
        self.monitor.stop(timeout=self.config.xorriso.query_timeout_seconds)
        self.burner.shutdown()

        logger.info(
            "Session closed",
            session_id=self.id,
            duration_seconds=(datetime.now() - self.started_at).total_seconds(),
        )

    def __enter__(self) -> Session:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()
