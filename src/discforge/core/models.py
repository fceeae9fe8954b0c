"""
DiscForge data models.

Defines the runtime structures for burn jobs, progress snapshots,
drives and media.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from discforge.xorriso.progress import ProgressUpdate


class BurnState(Enum):
    """Lifecycle state of a burn job.

    ``FORMATTING`` is never held by a job: blank and format publish it as
    their state while they run, followed by the state they ended in.
    """

    PENDING = "pending"
    FORMATTING = "formatting"
    WRITING = "writing"
    VERIFYING = "verifying"
    DONE = "done"
    ERROR = "error"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (BurnState.DONE, BurnState.ERROR, BurnState.CANCELLED)


class BurnPhase(Enum):
    """Phase reported in a progress snapshot."""

    WRITING = "writing"
    FORMATTING = "formatting"
    BLANKING = "blanking"
    VERIFYING = "verifying"


@dataclass(frozen=True)
class BurnProgress:
    """Latest known progress of a running operation."""

    phase: str = ""
    percent: float = 0.0
    buffer_fill_percent: int = 0
    speed_label: str = ""
    bytes_written: int = 0
    bytes_total: int = 0
    eta: str = ""

    def merged(self, update: ProgressUpdate) -> BurnProgress:
        """Return a new snapshot with the fields ``update`` observed.

        Fields the update did not observe keep their current value.
        """
        changes = {
            f.name: getattr(update, f.name)
            for f in fields(self)
            if getattr(update, f.name, None) is not None
        }
        return replace(self, **changes)

    def to_dict(self) -> dict[str, Any]:
        return {
            "phase": self.phase,
            "percent": self.percent,
            "buffer_fill_percent": self.buffer_fill_percent,
            "speed_label": self.speed_label,
            "bytes_written": self.bytes_written,
            "bytes_total": self.bytes_total,
            "eta": self.eta,
        }


@dataclass
class BurnResult:
    """Summary of a finished burn."""

    success: bool
    bytes_written: int = 0
    duration_seconds: float = 0.0
    average_speed: str = ""
    md5_match: bool | None = None
    verify_errors: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "bytes_written": self.bytes_written,
            "duration_seconds": self.duration_seconds,
            "average_speed": self.average_speed,
            "md5_match": self.md5_match,
            "verify_errors": self.verify_errors,
        }


@dataclass
class BurnJob:
    """A tracked burn operation."""

    id: str
    state: BurnState = BurnState.PENDING
    progress: BurnProgress = field(default_factory=BurnProgress)
    result: BurnResult | None = None
    started_at: datetime = field(default_factory=datetime.now)
    finished_at: datetime | None = None
    error: str | None = None

    @property
    def is_terminal(self) -> bool:
        return self.state.is_terminal

    @property
    def duration_seconds(self) -> float | None:
        if self.finished_at is None:
            return None
        return (self.finished_at - self.started_at).total_seconds()

    def copy(self) -> BurnJob:
        """Detached copy safe to hand to other threads."""
        result = replace(self.result) if self.result is not None else None
        return replace(self, result=result)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "state": self.state.value,
            "progress": self.progress.to_dict(),
            "result": self.result.to_dict() if self.result else None,
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "error": self.error,
        }


@dataclass
class MediaProfile:
    """A media profile a drive supports (e.g. BD-RE)."""

    name: str
    code: int | None = None
    current: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "code": self.code, "current": self.current}


@dataclass
class SpeedDescriptor:
    """A write speed offered by drive and media."""

    write_speed_kbps: float
    display_name: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "write_speed_kbps": self.write_speed_kbps,
            "display_name": self.display_name,
        }


@dataclass
class Device:
    """An optical drive."""

    path: str
    vendor: str = ""
    model: str = ""
    index: int | None = None
    profiles: list[MediaProfile] = field(default_factory=list)

    @property
    def display_name(self) -> str:
        name = f"{self.vendor} {self.model}".strip()
        return name or self.path

    def to_dict(self) -> dict[str, Any]:
        return {
            "path": self.path,
            "vendor": self.vendor,
            "model": self.model,
            "index": self.index,
            "profiles": [p.to_dict() for p in self.profiles],
        }


@dataclass
class TocSession:
    """One ISO session from the disc table of contents."""

    number: int
    start_lba: int
    size_blocks: int
    volume_id: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "number": self.number,
            "start_lba": self.start_lba,
            "size_blocks": self.size_blocks,
            "volume_id": self.volume_id,
        }


@dataclass
class MediaInfo:
    """State of the medium loaded in a drive."""

    device_path: str
    media_type: str = ""
    media_status: str = ""
    erasable: bool = False
    free_bytes: int = 0
    sessions: list[TocSession] = field(default_factory=list)
    timestamp: datetime = field(default_factory=datetime.now)

    @property
    def is_blank(self) -> bool:
        return self.media_status.lower().startswith("is blank")

    def to_dict(self) -> dict[str, Any]:
        return {
            "device_path": self.device_path,
            "media_type": self.media_type,
            "media_status": self.media_status,
            "erasable": self.erasable,
            "free_bytes": self.free_bytes,
            "sessions": [s.to_dict() for s in self.sessions],
            "timestamp": self.timestamp.isoformat(),
        }
