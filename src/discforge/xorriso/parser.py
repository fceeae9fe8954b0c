"""
xorriso pkt_output parsers.

With ``-pkt_output on`` every output line is framed as
``<channel>:<mode>:<text>``. The channel is R (result), I (info) or
M (mark). Mode 0 means the line terminator is not part of the payload.

The query parsers below read the result lines of -device_links,
-list_speeds, -list_profiles, -tell_media_space and -toc.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum

from discforge.core.models import Device, MediaProfile, SpeedDescriptor, TocSession

BLOCK_SIZE = 2048


class Channel(Enum):
    """pkt_output channel of a line."""

    RESULT = "R"
    INFO = "I"
    MARK = "M"


_CHANNELS = {c.value: c for c in Channel}


@dataclass(frozen=True)
class PktLine:
    """One classified pkt_output line."""

    channel: Channel
    mode: int
    text: str


@dataclass
class ProcessOutcome:
    """Everything captured from one xorriso invocation."""

    result_lines: list[str] = field(default_factory=list)
    info_lines: list[str] = field(default_factory=list)
    mark_lines: list[str] = field(default_factory=list)
    exit_code: int = 0
    raw_output: str = ""
    command: tuple[str, ...] = ()
    duration_seconds: float = 0.0

    @property
    def success(self) -> bool:
        return self.exit_code == 0

    @property
    def last_info(self) -> str | None:
        """Last non-blank info text, stripped."""
        for line in reversed(self.info_lines):
            if line.strip():
                return line.strip()
        return None

    def append(self, pkt: PktLine) -> None:
        if pkt.channel is Channel.RESULT:
            self.result_lines.append(pkt.text)
        elif pkt.channel is Channel.INFO:
            self.info_lines.append(pkt.text)
        else:
            self.mark_lines.append(pkt.text)

    def __repr__(self) -> str:
        cmd = " ".join(self.command)
        return f"ProcessOutcome(rc={self.exit_code}, cmd='{cmd[:50]}...')"


def _strip_terminator(text: str) -> str:
    if text.endswith("\r\n"):
        return text[:-2]
    if text.endswith("\n"):
        return text[:-1]
    return text


def parse_pkt_line(line: str) -> PktLine | None:
    """
    Parse a single pkt_output line.

    Example input:
    R:1: Drive current: -dev '/dev/sr0'

    Returns None for anything that is not protocol data.
    """
    if len(line) < 4 or line[1] != ":" or line[3] != ":":
        return None

    channel = _CHANNELS.get(line[0])
    if channel is None:
        return None

    mode_char = line[2]
    if not ("0" <= mode_char <= "9"):
        return None
    mode = int(mode_char)

    text = line[4:]
    if mode == 0:
        text = _strip_terminator(text)

    return PktLine(channel=channel, mode=mode, text=text)


# Lines end at "\n" only; a lone "\r" belongs to the packet text
_OUTPUT_LINE = re.compile(r"[^\n]*\n|[^\n]+")


def parse_pkt_output(output: str) -> ProcessOutcome:
    """Classify all pkt_output lines of a buffered invocation."""
    outcome = ProcessOutcome(raw_output=output)
    for line in _OUTPUT_LINE.findall(output):
        pkt = parse_pkt_line(line)
        if pkt is not None:
            outcome.append(pkt)
    return outcome


# 0  -dev '/dev/sr0' rwrw-- :  'HL-DT-ST' 'BD-RE  WH16NS60'
_DEVICE_LINE = re.compile(r"^\s*(\d+)\s+-dev\s+'([^']+)'\s+\S+\s+:\s+'([^']*)'\s+'([^']*)'")


def parse_devices(lines: list[str]) -> list[Device]:
    """Parse output of -devices or -device_links."""
    devices = []
    for line in lines:
        match = _DEVICE_LINE.search(line)
        if not match:
            continue
        devices.append(
            Device(
                path=match.group(2),
                vendor=match.group(3).strip(),
                model=match.group(4).strip(),
                index=int(match.group(1)),
            )
        )
    return devices


# Write speed  :   4234kB/s  (BD  1x)
_SPEED_LINE = re.compile(r"(\d+)kB/s\s+\(([^)]+)\)")


def parse_speeds(lines: list[str]) -> list[SpeedDescriptor]:
    """Parse output of -list_speeds."""
    speeds = []
    for line in lines:
        if "kB/s" not in line:
            continue
        match = _SPEED_LINE.search(line)
        if not match:
            continue
        speeds.append(
            SpeedDescriptor(
                write_speed_kbps=float(match.group(1)),
                display_name=" ".join(match.group(2).split()),
            )
        )
    return speeds


# Profile      : 0x0041 (BD-R sequential recording) (current)
_PROFILE_LINE = re.compile(r"Profile\s+:\s+0x([0-9A-Fa-f]+)\s+\(([^)]+)\)")


def parse_profiles(lines: list[str]) -> list[MediaProfile]:
    """Parse output of -list_profiles."""
    profiles = []
    for line in lines:
        match = _PROFILE_LINE.search(line)
        if not match:
            continue
        profiles.append(
            MediaProfile(
                name=match.group(2).strip(),
                code=int(match.group(1), 16),
                current="(current)" in line,
            )
        )
    return profiles


# Media space  : 12219392s  (free blocks), or bare "Media space  : 12219392s"
_MEDIA_SPACE = re.compile(r"(\d+)s(?:\s+\(|\s*$)")


def parse_media_space(lines: list[str]) -> int:
    """Free blocks reported by -tell_media_space, 0 if not reported."""
    for line in lines:
        match = _MEDIA_SPACE.search(line)
        if match:
            return int(match.group(1))
    return 0


# ISO session  :   1 ,        32 ,    123456s , MY_VOLUME
_TOC_SESSION = re.compile(r"^ISO session\s*:\s*(\d+)\s*,\s*(\d+)\s*,\s*(\d+)s\s*,\s*(.*?)\s*$")


def parse_toc(lines: list[str]) -> list[TocSession]:
    """Parse ISO session lines of -toc."""
    sessions = []
    for line in lines:
        match = _TOC_SESSION.match(line.strip())
        if not match:
            continue
        sessions.append(
            TocSession(
                number=int(match.group(1)),
                start_lba=int(match.group(2)),
                size_blocks=int(match.group(3)),
                volume_id=match.group(4).strip("'"),
            )
        )
    return sessions


# Media region :         0 ,     12345 , + good
_MEDIA_REGION = re.compile(r"Media region\s*:\s*(\d+)\s*,\s*(\d+)\s*,\s*([-+0])\s*(.*?)\s*$")


@dataclass
class CheckMediaSummary:
    """Condensed result of a -check_media run."""

    regions: int = 0
    bad_regions: int = 0
    bad_blocks: int = 0
    md5_match: bool | None = None


def parse_check_media(outcome: ProcessOutcome) -> CheckMediaSummary:
    """Count unreadable regions and read the MD5 verdict of -check_media."""
    summary = CheckMediaSummary()
    for line in outcome.result_lines:
        match = _MEDIA_REGION.search(line)
        if not match:
            continue
        summary.regions += 1
        if match.group(3) == "-":
            summary.bad_regions += 1
            summary.bad_blocks += int(match.group(2))

    for line in outcome.info_lines + outcome.result_lines:
        lowered = line.lower()
        if "md5" not in lowered:
            continue
        if "mismatch" in lowered:
            summary.md5_match = False
            break
        if "match" in lowered:
            summary.md5_match = True
    return summary


def value_after_colon(line: str) -> str:
    """Text after the first colon, stripped."""
    _, sep, rest = line.partition(":")
    return rest.strip() if sep else ""
