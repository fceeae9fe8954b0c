"""
DiscForge burn service.

Runs burn, blank and format operations against a drive and tracks the
current burn as a job. Only one burn job is active per service; the
finished job stays queryable until the next burn replaces it.
"""

from __future__ import annotations

import threading
import uuid
from collections.abc import Callable
from datetime import datetime

from discforge.core.events import EventName, EventSink, NullEventSink
from discforge.core.logging import get_logger
from discforge.core.models import BurnJob, BurnPhase, BurnProgress, BurnResult, BurnState
from discforge.core.project import BurnOptions, Project
from discforge.xorriso.commands import CommandBuilder
from discforge.xorriso.executor import CancellationToken, XorrisoError, XorrisoExecutor
from discforge.xorriso.parser import PktLine, ProcessOutcome, parse_check_media
from discforge.xorriso.progress import ProgressUpdate

logger = get_logger(__name__)


class BurnBusyError(Exception):
    """A burn was requested while another job is still active."""


class UnknownJobError(LookupError):
    """The job id does not name the current job."""


def build_burn_command(
    project: Project,
    device_path: str,
    options: BurnOptions,
    eject: bool | None = None,
) -> tuple[str, ...]:
    """Arguments that write ``project`` to the medium in ``device_path``.

    ``eject`` overrides ``options.eject``.
    """
    iso = project.iso_options
    cmd = CommandBuilder().device(device_path)

    if project.volume_id:
        cmd.volume_id(project.volume_id)
    cmd.rock_ridge(iso.rock_ridge).joliet(iso.joliet)
    if iso.hfs_plus:
        cmd.hfs_plus(True)
    if iso.md5:
        cmd.md5("on")
    if iso.backup_mode:
        cmd.for_backup()

    for entry in project.entries:
        cmd.map(entry.source_path, entry.dest_path)

    cmd.write_speed(options.speed)
    if options.write_type != "auto":
        cmd.write_type(options.write_type)
    if options.padding_kb is not None:
        cmd.padding(options.padding_kb)
    cmd.dummy(options.dummy_mode)
    cmd.close(options.close_disc)
    cmd.stream_recording(options.stream_recording)

    cmd.commit()

    do_eject = options.eject if eject is None else eject
    if do_eject:
        cmd.eject("all")

    return cmd.build()


def build_verify_command(device_path: str) -> tuple[str, ...]:
    """Arguments that read back the whole medium in ``device_path``."""
    return (
        CommandBuilder()
        .in_device(device_path)
        .check_media({"use": "indev", "what": "disc"})
        .build()
    )


class _RunningProgress:
    """Progress sink for operations that keep no BurnJob."""

    def __init__(self, events: EventSink, event: EventName, phase: BurnPhase) -> None:
        self.events = events
        self.event = event
        self.phase = phase
        self.snapshot = BurnProgress(phase=phase.value)

    def __call__(self, update: ProgressUpdate) -> None:
        self.snapshot = self.snapshot.merged(update.with_phase(self.phase))
        self.events.emit(self.event, self.snapshot.to_dict())


class BurnService:
    """Burn job controller.

    Holds the current-job slot and the job-state lock; the executor's own
    lock serializes the xorriso processes behind it.
    """

    def __init__(
        self,
        executor: XorrisoExecutor,
        events: EventSink | None = None,
        blank_timeout: float = 1800.0,
        format_timeout: float = 1800.0,
        verify_timeout: float | None = None,
        eject_timeout: float = 60.0,
    ) -> None:
        self._executor = executor
        self._events: EventSink = events or NullEventSink()
        self.blank_timeout = blank_timeout
        self.format_timeout = format_timeout
        self.verify_timeout = verify_timeout
        self.eject_timeout = eject_timeout

        self._lock = threading.Lock()
        self._current: BurnJob | None = None
        self._token: CancellationToken | None = None
        self._thread: threading.Thread | None = None

    @property
    def current_job_id(self) -> str | None:
        with self._lock:
            return self._current.id if self._current else None

    # ==================== Job Control ====================

    def start_burn(
        self,
        project: Project,
        device_path: str,
        options: BurnOptions | None = None,
    ) -> str:
        """Start burning ``project`` and return the new job id.

        Raises BurnBusyError if the current job has not finished.
        """
        options = options or project.burn_options

        with self._lock:
            if self._current is not None and not self._current.is_terminal:
                raise BurnBusyError(f"burn {self._current.id} is already in progress")

            job = BurnJob(id=str(uuid.uuid4()))
            token = self._executor.new_token()
            thread = threading.Thread(
                target=self._run_burn,
                args=(job.id, project, device_path, options, token),
                name=f"burn-{job.id[:8]}",
                daemon=True,
            )
            self._current = job
            self._token = token
            self._thread = thread

        logger.info(
            "Burn submitted",
            job_id=job.id,
            device=device_path,
            project=project.name,
            entries=len(project.entries),
        )
        thread.start()
        return job.id

    def cancel_burn(self, job_id: str) -> bool:
        """Cancel the current job.

        Returns False if the job had already finished. Raises
        UnknownJobError if ``job_id`` is not the current job.
        """
        with self._lock:
            job = self._require(job_id)
            if job.is_terminal:
                return False
            job.state = BurnState.CANCELLED
            job.finished_at = datetime.now()
            token = self._token

        if token is not None:
            token.cancel()

        logger.info("Burn cancelled", job_id=job_id)
        self._events.emit(EventName.BURN_STATE_CHANGED, BurnState.CANCELLED.value)
        return True

    def get_job_status(self, job_id: str) -> BurnJob:
        """Copy of the current job. Raises UnknownJobError for any other id."""
        with self._lock:
            return self._require(job_id).copy()

    def wait(self, job_id: str, timeout: float | None = None) -> BurnJob:
        """Block until the job's worker thread exits, then return its status."""
        with self._lock:
            self._require(job_id)
            thread = self._thread

        if thread is not None:
            thread.join(timeout)
        return self.get_job_status(job_id)

    def shutdown(self) -> None:
        """Cancel any active job."""
        job_id = self.current_job_id
        if job_id is not None:
            self.cancel_burn(job_id)

    def _require(self, job_id: str) -> BurnJob:
        if self._current is None or self._current.id != job_id:
            raise UnknownJobError(f"Job not found: {job_id}")
        return self._current

    # ==================== Blank / Format ====================

    def blank_disc(
        self,
        device_path: str,
        mode: str = "as_needed",
        token: CancellationToken | None = None,
    ) -> ProcessOutcome:
        """Blank a rewritable medium. Progress is published with phase "blanking"."""
        args = CommandBuilder().device(device_path).blank(mode).build()
        logger.info("Blanking medium", device=device_path, mode=mode)
        return self._run_media_operation(args, BurnPhase.BLANKING, self.blank_timeout, token)

    def format_disc(
        self,
        device_path: str,
        mode: str = "as_needed",
        token: CancellationToken | None = None,
    ) -> ProcessOutcome:
        """Format a BD-RE, DVD-RAM or DVD+RW. Progress is published with phase "formatting"."""
        args = CommandBuilder().device(device_path).format(mode).build()
        logger.info("Formatting medium", device=device_path, mode=mode)
        return self._run_media_operation(args, BurnPhase.FORMATTING, self.format_timeout, token)

    def _run_media_operation(
        self,
        args: tuple[str, ...],
        phase: BurnPhase,
        timeout: float,
        token: CancellationToken | None,
    ) -> ProcessOutcome:
        """Run a blank or format, publishing "formatting" then its final state.

        These operations keep no job, so the published states are
        informational and never touch the current-job slot.
        """
        self._events.emit(EventName.BURN_STATE_CHANGED, BurnState.FORMATTING.value)
        try:
            outcome = self._executor.run_with_progress(
                args,
                on_progress=_RunningProgress(self._events, EventName.BURN_PROGRESS, phase),
                on_line=self._publish_line,
                timeout=timeout,
                token=token,
            )
        except XorrisoError:
            self._events.emit(EventName.BURN_STATE_CHANGED, BurnState.ERROR.value)
            raise

        if outcome.success:
            state = BurnState.DONE
        elif token is not None and token.is_cancelled:
            state = BurnState.CANCELLED
        else:
            state = BurnState.ERROR
        self._events.emit(EventName.BURN_STATE_CHANGED, state.value)
        return outcome

    # ==================== Worker ====================

    def _run_burn(
        self,
        job_id: str,
        project: Project,
        device_path: str,
        options: BurnOptions,
        token: CancellationToken,
    ) -> None:
        if not self._set_state(job_id, BurnState.WRITING):
            return

        # Ejecting before read-back would make verification impossible
        args = build_burn_command(
            project, device_path, options, eject=options.eject and not options.verify
        )
        logger.info("Burn started", job_id=job_id, device=device_path)

        try:
            outcome = self._executor.run_with_progress(
                args,
                on_progress=self._progress_sink(job_id, EventName.BURN_PROGRESS),
                on_line=self._publish_line,
                token=token,
            )
        except XorrisoError as e:
            self._finish(job_id, BurnState.ERROR, error=str(e))
            return

        if not outcome.success:
            self._finish(job_id, BurnState.ERROR, error=_failure_message(outcome))
            return

        with self._lock:
            progress = self._current.progress if self._current else BurnProgress()
        result = BurnResult(
            success=True,
            bytes_written=progress.bytes_written,
            duration_seconds=outcome.duration_seconds,
            average_speed=progress.speed_label,
        )

        if options.verify:
            if not self._verify(job_id, device_path, token, result):
                return
            if options.eject:
                self._eject(device_path)

        self._finish(job_id, BurnState.DONE, result=result)

    def _verify(
        self,
        job_id: str,
        device_path: str,
        token: CancellationToken,
        result: BurnResult,
    ) -> bool:
        """Read the medium back. Returns False if the job ended here."""
        if not self._set_state(job_id, BurnState.VERIFYING):
            return False

        publish = self._progress_sink(job_id, EventName.VERIFY_PROGRESS)
        try:
            outcome = self._executor.run_with_progress(
                build_verify_command(device_path),
                on_progress=lambda u: publish(u.with_phase(BurnPhase.VERIFYING)),
                on_line=self._publish_line,
                timeout=self.verify_timeout,
                token=token,
            )
        except XorrisoError as e:
            self._finish(job_id, BurnState.ERROR, error=f"Verification failed: {e}")
            return False

        if not outcome.success:
            self._finish(
                job_id,
                BurnState.ERROR,
                error=f"Verification failed: {_failure_message(outcome)}",
            )
            return False

        summary = parse_check_media(outcome)
        result.verify_errors = summary.bad_regions
        result.md5_match = summary.md5_match
        self._events.emit(EventName.VERIFY_COMPLETE, result.to_dict())

        if summary.bad_regions:
            result.success = False
            self._finish(
                job_id,
                BurnState.ERROR,
                result=result,
                error=f"Verification found {summary.bad_regions} unreadable region(s)",
            )
            return False
        if summary.md5_match is False:
            result.success = False
            self._finish(job_id, BurnState.ERROR, result=result, error="MD5 checksum mismatch")
            return False
        return True

    def _eject(self, device_path: str) -> None:
        try:
            outcome = self._executor.run(
                CommandBuilder().device(device_path).eject("all").build(),
                timeout=self.eject_timeout,
            )
        except XorrisoError as e:
            logger.warning("Eject failed", device=device_path, error=str(e))
            return
        if not outcome.success:
            logger.warning("Eject failed", device=device_path, error=outcome.last_info)

    # ==================== State ====================

    def _progress_sink(
        self, job_id: str, event: EventName
    ) -> Callable[[ProgressUpdate], None]:
        def on_progress(update: ProgressUpdate) -> None:
            with self._lock:
                job = self._current
                if job is None or job.id != job_id or job.is_terminal:
                    return
                job.progress = job.progress.merged(update)
                snapshot = job.progress
            self._events.emit(event, snapshot.to_dict())

        return on_progress

    def _publish_line(self, pkt: PktLine) -> None:
        self._events.emit(
            EventName.BURN_LOG_LINE,
            {"channel": pkt.channel.value, "text": pkt.text.rstrip("\r\n")},
        )

    def _set_state(self, job_id: str, state: BurnState) -> bool:
        with self._lock:
            job = self._current
            if job is None or job.id != job_id or job.is_terminal:
                return False
            job.state = state

        logger.debug("Burn state changed", job_id=job_id, state=state.value)
        self._events.emit(EventName.BURN_STATE_CHANGED, state.value)
        return True

    def _finish(
        self,
        job_id: str,
        state: BurnState,
        result: BurnResult | None = None,
        error: str | None = None,
    ) -> bool:
        with self._lock:
            job = self._current
            if job is None or job.id != job_id or job.is_terminal:
                return False
            job.state = state
            job.result = result
            job.error = error
            job.finished_at = datetime.now()
            duration = job.duration_seconds

        if state is BurnState.DONE:
            logger.info("Burn completed", job_id=job_id, duration_seconds=duration)
        else:
            logger.error("Burn failed", job_id=job_id, error=error)

        self._events.emit(EventName.BURN_STATE_CHANGED, state.value)
        if state is BurnState.DONE:
            self._events.emit(EventName.BURN_COMPLETE, result.to_dict() if result else None)
        else:
            self._events.emit(EventName.BURN_ERROR, error)
        return True


def _failure_message(outcome: ProcessOutcome) -> str:
    return outcome.last_info or f"xorriso exited with code {outcome.exit_code}"
