"""
Progress extraction from xorriso pacifier lines.

xorriso reports progress as free-form Info text, for example::

    xorriso : UPDATE : Writing:   13582s   42.5%   fifo  87%  buf  50%   4.2xD
    xorriso : UPDATE : 42.5% done, fifo 87%, 4.2xD
    xorriso : UPDATE : 1200 of 2400 MB written (fifo 97%) [buf 86%] 4.1xD.

The wording is not a stable interface, so the recognition markers, phase
keywords and field patterns are kept as data on ``ProgressExtractor``.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from discforge.core.models import BurnPhase

MEBIBYTE = 1024 * 1024


@dataclass(frozen=True)
class ProgressUpdate:
    """Fields observed in one pacifier line. Unobserved fields are None."""

    phase: str
    percent: float | None = None
    buffer_fill_percent: int | None = None
    speed_label: str | None = None
    bytes_written: int | None = None
    bytes_total: int | None = None
    eta: str | None = None

    def with_phase(self, phase: BurnPhase | str) -> ProgressUpdate:
        value = phase.value if isinstance(phase, BurnPhase) else phase
        return ProgressUpdate(
            phase=value,
            percent=self.percent,
            buffer_fill_percent=self.buffer_fill_percent,
            speed_label=self.speed_label,
            bytes_written=self.bytes_written,
            bytes_total=self.bytes_total,
            eta=self.eta,
        )


@dataclass(frozen=True)
class PhaseRule:
    """Assigns ``phase`` when any keyword occurs in the line."""

    phase: BurnPhase
    keywords: tuple[str, ...]


@dataclass(frozen=True)
class FieldRule:
    """Fills one or more update fields from a regex match.

    ``convert`` receives the match and returns a field -> value mapping.
    """

    pattern: re.Pattern[str]
    convert: Callable[[re.Match[str]], dict[str, Any]]


def _mb_written(match: re.Match[str]) -> dict[str, Any]:
    return {
        "bytes_written": int(match.group(1)) * MEBIBYTE,
        "bytes_total": int(match.group(2)) * MEBIBYTE,
    }


PACIFIER_MARKERS: tuple[str, ...] = ("UPDATE", "Writing:", "Verifying")

# Checked in order; first match wins
PHASE_RULES: tuple[PhaseRule, ...] = (
    PhaseRule(BurnPhase.WRITING, ("Writing",)),
    PhaseRule(BurnPhase.FORMATTING, ("Blanking", "Formatting")),
    PhaseRule(BurnPhase.VERIFYING, ("Verifying", "check_media")),
)

FIELD_RULES: tuple[FieldRule, ...] = (
    FieldRule(
        re.compile(r"(\d+\.?\d*)%\s+done"),
        lambda m: {"percent": float(m.group(1))},
    ),
    FieldRule(
        re.compile(r"fifo\s+(\d+)%"),
        lambda m: {"buffer_fill_percent": int(m.group(1))},
    ),
    FieldRule(
        re.compile(r"(\d+\.?\d*x[A-Z]+|\d+\.?\d*\s*[kMG]B/s)"),
        lambda m: {"speed_label": m.group(1)},
    ),
    FieldRule(re.compile(r"(\d+)\s+of\s+(\d+)\s+MB\s+written"), _mb_written),
    FieldRule(
        re.compile(r"estimate finish\s+(.+?)\s*$"),
        lambda m: {"eta": m.group(1)},
    ),
)


class ProgressExtractor:
    """Turns a single Info line into a ProgressUpdate.

    Extraction is per line; merging with earlier values is up to the caller
    (see ``BurnProgress.merged``).
    """

    def __init__(
        self,
        markers: tuple[str, ...] = PACIFIER_MARKERS,
        phase_rules: tuple[PhaseRule, ...] = PHASE_RULES,
        field_rules: tuple[FieldRule, ...] = FIELD_RULES,
        default_phase: BurnPhase = BurnPhase.WRITING,
    ) -> None:
        self.markers = markers
        self.phase_rules = phase_rules
        self.field_rules = field_rules
        self.default_phase = default_phase

    def is_pacifier(self, text: str) -> bool:
        return any(marker in text for marker in self.markers)

    def classify_phase(self, text: str) -> BurnPhase:
        for rule in self.phase_rules:
            if any(keyword in text for keyword in rule.keywords):
                return rule.phase
        return self.default_phase

    def extract(self, text: str) -> ProgressUpdate | None:
        """Extract progress, or None if ``text`` is not a pacifier line."""
        if not self.is_pacifier(text):
            return None

        values: dict[str, Any] = {}
        for rule in self.field_rules:
            match = rule.pattern.search(text)
            if match:
                values.update(rule.convert(match))

        return ProgressUpdate(phase=self.classify_phase(text).value, **values)


DEFAULT_EXTRACTOR = ProgressExtractor()


def parse_pacifier_line(text: str) -> ProgressUpdate | None:
    """Extract progress from an Info line using the default rules."""
    return DEFAULT_EXTRACTOR.extract(text)
