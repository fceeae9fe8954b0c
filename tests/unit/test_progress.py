"""
Tests for discforge.xorriso.progress module.
"""

import re

from discforge.core.models import BurnPhase, BurnProgress
from discforge.xorriso.progress import (
    FieldRule,
    PhaseRule,
    ProgressExtractor,
    ProgressUpdate,
    parse_pacifier_line,
)


class TestPacifierRecognition:
    """Tests for recognizing pacifier lines."""

    def test_update_line(self) -> None:
        update = parse_pacifier_line("xorriso : UPDATE : 42.5% done, fifo 87%, 4.2xD")
        assert update is not None
        assert update.phase == "writing"
        assert update.percent == 42.5
        assert update.buffer_fill_percent == 87
        assert "4.2xD" in update.speed_label

    def test_not_a_pacifier(self) -> None:
        assert parse_pacifier_line("xorriso : NOTE : Disc status: is blank") is None
        assert parse_pacifier_line("Drive current: -dev '/dev/sr0'") is None

    def test_missing_fields_stay_absent(self) -> None:
        update = parse_pacifier_line("xorriso : UPDATE : Thank you for being patient")
        assert update is not None
        assert update.percent is None
        assert update.buffer_fill_percent is None
        assert update.speed_label is None
        assert update.bytes_written is None
        assert update.eta is None

    def test_throughput_speed(self) -> None:
        update = parse_pacifier_line("xorriso : UPDATE : 10.0% done, fifo 50%, 5.6 MB/s")
        assert update.speed_label == "5.6 MB/s"

    def test_mb_written(self) -> None:
        update = parse_pacifier_line(
            "xorriso : UPDATE : 1200 of 2400 MB written (fifo 97%) [buf 86%] 4.1xD."
        )
        assert update.bytes_written == 1200 * 1024 * 1024
        assert update.bytes_total == 2400 * 1024 * 1024
        assert update.buffer_fill_percent == 97
        assert update.speed_label == "4.1xD"

    def test_eta(self) -> None:
        update = parse_pacifier_line(
            "xorriso : UPDATE : 50.0% done, estimate finish Sat Mar  2 10:15:00 2024"
        )
        assert update.eta == "Sat Mar  2 10:15:00 2024"


class TestPhaseClassification:
    """Tests for phase keyword priority."""

    def test_writing_beats_formatting(self) -> None:
        update = parse_pacifier_line("xorriso : UPDATE : Writing after Formatting 10.0% done")
        assert update.phase == "writing"

    def test_formatting(self) -> None:
        assert parse_pacifier_line("xorriso : UPDATE : Formatting 3.0% done").phase == "formatting"
        assert parse_pacifier_line("xorriso : UPDATE : Blanking 3.0% done").phase == "formatting"

    def test_formatting_beats_verifying(self) -> None:
        update = parse_pacifier_line("xorriso : UPDATE : Formatting before Verifying")
        assert update.phase == "formatting"

    def test_verifying(self) -> None:
        update = parse_pacifier_line("xorriso : UPDATE : Verifying 12.0% done")
        assert update.phase == "verifying"

    def test_check_media_marker(self) -> None:
        update = parse_pacifier_line("xorriso : UPDATE : check_media 1000 blocks read")
        assert update.phase == "verifying"

    def test_default_writing(self) -> None:
        assert parse_pacifier_line("xorriso : UPDATE : 1.0% done").phase == "writing"


class TestCustomExtractor:
    """Tests for a reconfigured extractor."""

    def test_custom_rules(self) -> None:
        extractor = ProgressExtractor(
            markers=("PROGRESS",),
            phase_rules=(PhaseRule(BurnPhase.BLANKING, ("erase",)),),
            field_rules=(
                FieldRule(re.compile(r"(\d+)/100"), lambda m: {"percent": float(m.group(1))}),
            ),
        )
        update = extractor.extract("PROGRESS erase 37/100")
        assert update == ProgressUpdate(phase="blanking", percent=37.0)
        assert extractor.extract("xorriso : UPDATE : 42.5% done") is None

    def test_with_phase(self) -> None:
        update = ProgressUpdate(phase="writing", percent=5.0).with_phase(BurnPhase.VERIFYING)
        assert update.phase == "verifying"
        assert update.percent == 5.0


class TestMergedProgress:
    """Tests for merging updates into a snapshot."""

    def test_unobserved_fields_retained(self) -> None:
        snapshot = BurnProgress().merged(
            parse_pacifier_line("xorriso : UPDATE : 10.0% done, fifo 90%, 4.0xD")
        )
        snapshot = snapshot.merged(parse_pacifier_line("xorriso : UPDATE : 20.0% done"))

        assert snapshot.percent == 20.0
        assert snapshot.buffer_fill_percent == 90
        assert snapshot.speed_label == "4.0xD"
        assert snapshot.phase == "writing"

    def test_merge_returns_new_snapshot(self) -> None:
        original = BurnProgress()
        merged = original.merged(ProgressUpdate(phase="writing", percent=1.0))
        assert original.percent == 0.0
        assert merged.percent == 1.0
