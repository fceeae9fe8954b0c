"""
xorriso process execution.

One executor owns one command channel to xorriso: invocations are
serialized by an instance lock, whatever drive they target. Long
operations stream their output line by line so progress can be reported
while the burn runs.
"""

from __future__ import annotations

import subprocess
import threading
import time
from collections.abc import Callable, Sequence

from discforge.core.logging import OperationLogger, get_logger
from discforge.xorriso.commands import PKT_OUTPUT
from discforge.xorriso.parser import (
    Channel,
    PktLine,
    ProcessOutcome,
    parse_pkt_line,
    parse_pkt_output,
)
from discforge.xorriso.progress import DEFAULT_EXTRACTOR, ProgressExtractor, ProgressUpdate

logger = get_logger(__name__)

ProgressCallback = Callable[[ProgressUpdate], None]
LineCallback = Callable[[PktLine], None]


class XorrisoError(Exception):
    """Raised when xorriso could not be run to completion."""


class XorrisoStartError(XorrisoError):
    """The xorriso binary could not be launched."""


class XorrisoPipeError(XorrisoError):
    """Reading xorriso's output failed."""


class CancellationToken:
    """Cancels the xorriso process bound to it.

    Cancelling terminates the child, then kills it if it is still alive
    after ``grace_seconds``. A token cancelled before a process is bound
    terminates that process as soon as it is bound.
    """

    def __init__(self, grace_seconds: float = 5.0) -> None:
        self.grace_seconds = grace_seconds
        self._cancelled = threading.Event()
        self._lock = threading.Lock()
        self._process: subprocess.Popen[bytes] | None = None

    @property
    def is_cancelled(self) -> bool:
        return self._cancelled.is_set()

    def cancel(self) -> None:
        """Request cancellation and stop the bound process."""
        with self._lock:
            self._cancelled.set()
            process = self._process
        if process is not None:
            self._stop(process)

    def bind(self, process: subprocess.Popen[bytes]) -> None:
        with self._lock:
            self._process = process
            cancelled = self._cancelled.is_set()
        if cancelled:
            self._stop(process)

    def unbind(self) -> None:
        with self._lock:
            self._process = None

    def _stop(self, process: subprocess.Popen[bytes]) -> None:
        if process.poll() is not None:
            return
        logger.info("Terminating xorriso", pid=process.pid)
        try:
            process.terminate()
        except ProcessLookupError:
            return
        # Escalate without blocking the cancelling thread
        killer = threading.Timer(self.grace_seconds, self._kill_if_alive, args=(process,))
        killer.daemon = True
        killer.start()

    @staticmethod
    def _kill_if_alive(process: subprocess.Popen[bytes]) -> None:
        if process.poll() is None:
            logger.warning("xorriso ignored SIGTERM, killing", pid=process.pid)
            try:
                process.kill()
            except ProcessLookupError:
                pass


class XorrisoExecutor:
    """Runs xorriso with ``-pkt_output on`` and classifies its output."""

    def __init__(
        self,
        binary_path: str = "xorriso",
        extractor: ProgressExtractor = DEFAULT_EXTRACTOR,
        kill_grace_seconds: float = 5.0,
    ) -> None:
        self.binary_path = binary_path
        self.extractor = extractor
        self.kill_grace_seconds = kill_grace_seconds
        self._lock = threading.Lock()

    def new_token(self) -> CancellationToken:
        """Create a token using this executor's kill grace period."""
        return CancellationToken(grace_seconds=self.kill_grace_seconds)

    def _command(self, args: Sequence[str]) -> list[str]:
        return [self.binary_path, *PKT_OUTPUT, *args]

    def _spawn(self, command: list[str]) -> subprocess.Popen[bytes]:
        try:
            return subprocess.Popen(
                command,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
            )
        except OSError as e:
            raise XorrisoStartError(f"failed to start xorriso: {e}") from e

    @staticmethod
    def _decode(data: bytes | None) -> str:
        # No newline translation: "\r" and "\r\n" are part of the packet text
        return (data or b"").decode("utf-8", errors="replace")

    @staticmethod
    def _require_bound(timeout: float | None, token: CancellationToken | None) -> None:
        if timeout is None and token is None:
            raise ValueError("a timeout or a cancellation token is required")

    def run(
        self,
        args: Sequence[str],
        timeout: float | None = None,
        token: CancellationToken | None = None,
    ) -> ProcessOutcome:
        """Run a short query to completion and return its classified output.

        A nonzero exit code, including a kill on timeout, is reported in
        the outcome rather than raised.
        """
        self._require_bound(timeout, token)
        command = self._command(args)

        with self._lock, OperationLogger("xorriso query", logger, command=command) as op:
            start = time.monotonic()
            process = self._spawn(command)
            if token is not None:
                token.bind(process)
            try:
                try:
                    output, _ = process.communicate(timeout=timeout)
                except subprocess.TimeoutExpired:
                    logger.warning("xorriso query timed out", command=command, timeout=timeout)
                    process.kill()
                    output, _ = process.communicate()
            except OSError as e:
                process.kill()
                process.wait()
                raise XorrisoPipeError(f"xorriso output error: {e}") from e
            finally:
                if token is not None:
                    token.unbind()

            outcome = parse_pkt_output(self._decode(output))
            outcome.exit_code = process.returncode
            outcome.command = tuple(command)
            outcome.duration_seconds = time.monotonic() - start
            op.update(exit_code=outcome.exit_code)

        if not outcome.success:
            logger.warning(
                "xorriso exited with error",
                command=command,
                exit_code=outcome.exit_code,
                last_info=outcome.last_info,
            )
        return outcome

    def run_with_progress(
        self,
        args: Sequence[str],
        on_progress: ProgressCallback | None = None,
        on_line: LineCallback | None = None,
        timeout: float | None = None,
        token: CancellationToken | None = None,
    ) -> ProcessOutcome:
        """Run a long operation, streaming classified lines and progress.

        Callbacks run on the calling thread, in output order, before the
        next line is read.
        """
        self._require_bound(timeout, token)
        command = self._command(args)
        if token is None:
            token = self.new_token()

        with self._lock, OperationLogger("xorriso stream", logger, command=command) as op:
            start = time.monotonic()
            process = self._spawn(command)
            token.bind(process)

            timer: threading.Timer | None = None
            if timeout is not None:
                timer = threading.Timer(timeout, self._expire, args=(token, command, timeout))
                timer.daemon = True
                timer.start()

            outcome = ProcessOutcome(command=tuple(command))
            raw_lines: list[str] = []
            try:
                assert process.stdout is not None
                try:
                    # Binary readline splits on b"\n" only
                    for data in process.stdout:
                        line = self._decode(data)
                        raw_lines.append(line)
                        pkt = parse_pkt_line(line)
                        if pkt is None:
                            continue
                        outcome.append(pkt)
                        if on_line is not None:
                            on_line(pkt)
                        if pkt.channel is Channel.INFO and on_progress is not None:
                            update = self.extractor.extract(pkt.text)
                            if update is not None:
                                on_progress(update)
                except OSError as e:
                    token.cancel()
                    process.wait()
                    raise XorrisoPipeError(f"xorriso output error: {e}") from e
                outcome.exit_code = process.wait()
            finally:
                if timer is not None:
                    timer.cancel()
                token.unbind()
                if process.poll() is None:
                    # Callback raised mid-stream; don't leave xorriso holding the drive
                    process.kill()
                    process.wait()
                if process.stdout is not None:
                    process.stdout.close()

            outcome.raw_output = "".join(raw_lines)
            outcome.duration_seconds = time.monotonic() - start
            op.update(
                exit_code=outcome.exit_code,
                result_lines=len(outcome.result_lines),
                info_lines=len(outcome.info_lines),
            )

        if not outcome.success:
            logger.warning(
                "xorriso exited with error",
                command=command,
                exit_code=outcome.exit_code,
                cancelled=token.is_cancelled,
                last_info=outcome.last_info,
            )
        return outcome

    @staticmethod
    def _expire(token: CancellationToken, command: list[str], timeout: float) -> None:
        logger.warning("xorriso operation timed out", command=command, timeout=timeout)
        token.cancel()

    def version(self, timeout: float = 10.0) -> str:
        """Version banner of the xorriso binary."""
        command = [self.binary_path, "-version"]
        with self._lock:
            process = self._spawn(command)
            try:
                output, _ = process.communicate(timeout=timeout)
            except subprocess.TimeoutExpired:
                process.kill()
                process.communicate()
                raise XorrisoError(f"xorriso -version timed out after {timeout}s")
        if process.returncode != 0:
            raise XorrisoError(f"xorriso -version exited with code {process.returncode}")
        return self._decode(output).strip()

    def __repr__(self) -> str:
        return f"XorrisoExecutor(binary_path={self.binary_path!r})"
