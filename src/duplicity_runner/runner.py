"""duplicity process runner.

Runs one duplicity process at a time per runner instance, relays its
output to a registered sink and turns the exit into a RunResult.
"""

from __future__ import annotations

import asyncio
import codecs
import logging
import os
import signal
import tempfile
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable

from duplicity_runner.commands import (
    backup_command,
    list_files_command,
    restore_file_command,
    restore_tree_command,
    status_commands,
)
from duplicity_runner.config import get_runner_config
from duplicity_runner.errors import (
    BusyError,
    ErrorCode,
    InvalidOptionsError,
    OutputOverflowError,
    ProcessSpawnError,
    RunnerError,
)
from duplicity_runner.logging_schema import LogEvent
from duplicity_runner.metrics import (
    RUNNER_OPERATION_DURATION,
    RUNNER_OPERATIONS,
    RUNNER_OUTPUT_BYTES,
)
from duplicity_runner.models import (
    BackupMode,
    FileListResult,
    JobDescriptor,
    RunResult,
    RunStatus,
    StatusResult,
)
from duplicity_runner.parsing import parse_file_list, parse_status_report

if TYPE_CHECKING:
    from duplicity_runner.config import DuplicityConfig

logger = logging.getLogger(__name__)

OutputCallback = Callable[[str], None]

# Markers around stderr chunks so a single text channel keeps stream origin
ERROR_OPEN = "<!--:error-->"
ERROR_CLOSE = "<!--error:-->"


def wrap_stderr(chunk: str) -> str:
    return f"{ERROR_OPEN}{chunk}{ERROR_CLOSE}"


def split_output(chunk: str) -> tuple[bool, str]:
    """Undo the stderr wrapping.

    Returns:
        (is_error, text) where is_error is True for stderr chunks.
    """
    if chunk.startswith(ERROR_OPEN) and chunk.endswith(ERROR_CLOSE):
        return True, chunk[len(ERROR_OPEN) : len(chunk) - len(ERROR_CLOSE)]
    return False, chunk


@dataclass
class RunState:
    """State of the operation in flight. Discarded when it finishes."""

    operation: str
    process: asyncio.subprocess.Process | None = None
    cancelled: bool = False
    output_bytes: int = 0
    overflowed: bool = False


@dataclass
class _ProcessOutcome:
    exit_code: int | None
    stdout: str
    error: RunnerError | None = None


class DuplicityRunner:
    """Runs duplicity commands for backup jobs.

    Only one operation may run at a time; starting another while
    is_processing() is True raises BusyError. Every other outcome
    (spawn failure, non-zero exit, cancellation, output overflow)
    is reported through the returned result.
    """

    def __init__(self, config: DuplicityConfig | None = None) -> None:
        self._config = config or get_runner_config().duplicity
        self._state: RunState | None = None
        self._output_callback: OutputCallback | None = None

    @property
    def config(self) -> DuplicityConfig:
        return self._config

    @property
    def active_operation(self) -> str | None:
        return self._state.operation if self._state else None

    def is_processing(self) -> bool:
        return self._state is not None

    def on_output(self, callback: OutputCallback | None) -> None:
        """Register the output sink, replacing any previous one.

        stdout chunks are passed as-is, stderr chunks are wrapped in
        ERROR_OPEN/ERROR_CLOSE markers.
        """
        self._output_callback = callback

    def cancel(self) -> bool:
        """Interrupt the active operation with SIGINT.

        Returns False (and does nothing) when no operation is active.
        """
        state = self._state
        if state is None:
            logger.debug("Cancel requested with no active operation")
            return False

        state.cancelled = True
        logger.info(
            "Cancelling operation",
            extra={"event": LogEvent.JOB_CANCELLED, "operation": state.operation},
        )
        # Spawn still in progress: _execute interrupts once the handle exists
        if state.process is not None:
            self._interrupt(state.process)
        return True

    # =========================================================================
    # Operations
    # =========================================================================

    async def backup(
        self,
        job: JobDescriptor,
        mode: BackupMode | str = BackupMode.INCREMENTAL,
    ) -> RunResult:
        """Back up job.path to job.url (incremental unless mode is full)."""
        result, _ = await self._run(
            "backup", lambda: [backup_command(job, mode, self._config)], job
        )
        return result

    async def restore_file(
        self, job: JobDescriptor, source_path: str, dest_path: str
    ) -> RunResult:
        """Restore a single file from the backup to dest_path."""
        result, _ = await self._run(
            "restore_file",
            lambda: [restore_file_command(job, source_path, dest_path, self._config)],
            job,
        )
        return result

    async def restore_tree(self, job: JobDescriptor, dest_path: str) -> RunResult:
        """Restore the whole backup into dest_path."""
        result, _ = await self._run(
            "restore_tree", lambda: [restore_tree_command(job, dest_path, self._config)], job
        )
        return result

    async def list_files(self, job: JobDescriptor) -> FileListResult:
        """List the files in the latest backup.

        Entries are parsed even when duplicity fails, so a partial
        listing is still returned.
        """
        result, stdout = await self._run(
            "list_files", lambda: [list_files_command(job, self._config)], job
        )
        return FileListResult(**result.model_dump(), entries=parse_file_list(stdout))

    async def get_status(self, job: JobDescriptor) -> StatusResult:
        """Collect chain status plus source statistics from a dry-run backup."""
        result, stdout = await self._run(
            "get_status", lambda: status_commands(job, self._config), job
        )
        return StatusResult(**result.model_dump(), report=parse_status_report(stdout))

    # =========================================================================
    # Execution
    # =========================================================================

    async def _run(
        self,
        operation: str,
        build_commands: Callable[[], list[list[str]]],
        job: JobDescriptor,
    ) -> tuple[RunResult, str]:
        """Run commands in sequence, stopping at the first failure.

        Commands are built once the operation owns the runner, so malformed
        options or an unknown backup mode end up in the result.

        Returns the result and the concatenated stdout of all commands.
        """
        if self._state is not None:
            logger.warning(
                "Operation rejected, runner busy",
                extra={
                    "event": LogEvent.JOB_REJECTED,
                    "operation": operation,
                    "active_operation": self._state.operation,
                },
            )
            raise BusyError(f"Cannot start {operation}: {self._state.operation} is running")

        state = RunState(operation=operation)
        self._state = state
        started = time.monotonic()
        logger.info(
            "Operation started",
            extra={"event": LogEvent.JOB_STARTED, "operation": operation},
        )

        stdout_parts: list[str] = []
        outcome: _ProcessOutcome | None = None
        try:
            try:
                commands = build_commands()
            except ValueError as e:
                logger.error(
                    "Invalid duplicity arguments",
                    extra={
                        "event": LogEvent.INVALID_OPTIONS,
                        "operation": operation,
                        "error": str(e),
                    },
                )
                commands = []
                outcome = _ProcessOutcome(
                    exit_code=None,
                    stdout="",
                    error=InvalidOptionsError(f"Invalid duplicity arguments: {e}"),
                )
            for argv in commands:
                if state.cancelled:
                    break
                outcome = await self._execute(state, argv, job)
                stdout_parts.append(outcome.stdout)
                if outcome.error is not None or outcome.exit_code != 0:
                    break
        except asyncio.CancelledError:
            RUNNER_OPERATIONS.labels(operation=operation, status=RunStatus.CANCELLED.value).inc()
            logger.warning(
                "Operation task cancelled",
                extra={"event": LogEvent.JOB_CANCELLED, "operation": operation},
            )
            raise
        finally:
            self._state = None
            RUNNER_OPERATION_DURATION.labels(operation=operation).observe(
                time.monotonic() - started
            )

        result = self._build_result(operation, state, outcome)
        RUNNER_OPERATIONS.labels(operation=operation, status=result.status.value).inc()
        self._log_result(result)
        return result, "".join(stdout_parts)

    async def _execute(
        self, state: RunState, argv: list[str], job: JobDescriptor
    ) -> _ProcessOutcome:
        logger.debug(
            "Spawning duplicity",
            extra={"operation": state.operation, "argv": argv},
        )
        try:
            process = await asyncio.create_subprocess_exec(
                *argv,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=self._build_env(job),
            )
        except OSError as e:
            logger.error(
                "Failed to start duplicity",
                extra={
                    "event": LogEvent.SPAWN_FAILED,
                    "operation": state.operation,
                    "executable": argv[0],
                    "error": str(e),
                },
            )
            return _ProcessOutcome(
                exit_code=None,
                stdout="",
                error=ProcessSpawnError(f"Failed to start {argv[0]}: {e}"),
            )

        state.process = process
        if state.cancelled:
            self._interrupt(process)

        stdout_chunks: list[str] = []
        try:
            await asyncio.gather(
                self._relay(state, process.stdout, "stdout", stdout_chunks),
                self._relay(state, process.stderr, "stderr", None),
            )
            exit_code = await process.wait()
        except asyncio.CancelledError:
            await self._abort(state, process)
            raise
        finally:
            state.process = None

        error: RunnerError | None = None
        if state.overflowed:
            error = OutputOverflowError(
                f"Output exceeded {self._config.max_buffer} bytes"
            )
        return _ProcessOutcome(exit_code=exit_code, stdout="".join(stdout_chunks), error=error)

    async def _relay(
        self,
        state: RunState,
        stream: asyncio.StreamReader | None,
        name: str,
        buffer: list[str] | None,
    ) -> None:
        """Read a pipe to EOF, forwarding decoded chunks to the sink."""
        if stream is None:
            return
        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        while True:
            data = await stream.read(self._config.chunk_size)
            if not data:
                break
            RUNNER_OUTPUT_BYTES.labels(stream=name).inc(len(data))
            if state.overflowed:
                # Drain until the killed process closes its pipes
                continue
            state.output_bytes += len(data)
            if state.output_bytes > self._config.max_buffer:
                self._overflow(state)
                continue
            self._forward(name, decoder.decode(data), buffer)

        if not state.overflowed:
            self._forward(name, decoder.decode(b"", final=True), buffer)

    def _forward(self, name: str, text: str, buffer: list[str] | None) -> None:
        if not text:
            return
        if buffer is not None:
            buffer.append(text)

        callback = self._output_callback
        if callback is None:
            return
        try:
            callback(wrap_stderr(text) if name == "stderr" else text)
        except Exception:
            logger.exception(
                "Output callback failed",
                extra={"event": LogEvent.SINK_ERROR, "stream": name},
            )

    def _overflow(self, state: RunState) -> None:
        state.overflowed = True
        logger.error(
            "Output buffer limit exceeded, killing duplicity",
            extra={
                "event": LogEvent.OUTPUT_OVERFLOW,
                "operation": state.operation,
                "max_buffer": self._config.max_buffer,
            },
        )
        if state.process is not None:
            try:
                state.process.kill()
            except ProcessLookupError:
                pass

    @staticmethod
    def _interrupt(process: asyncio.subprocess.Process) -> None:
        if process.returncode is not None:
            return
        try:
            process.send_signal(signal.SIGINT)
        except ProcessLookupError:
            pass

    async def _abort(self, state: RunState, process: asyncio.subprocess.Process) -> None:
        """Stop the child when the awaiting task is cancelled.

        SIGINT first so duplicity can clean up its lock, SIGKILL after the
        grace period.
        """
        state.cancelled = True
        self._interrupt(process)
        try:
            await asyncio.wait_for(process.wait(), timeout=self._config.interrupt_grace)
        except asyncio.TimeoutError:
            logger.warning(
                "duplicity ignored SIGINT, killing",
                extra={"event": LogEvent.JOB_CANCELLED, "operation": state.operation},
            )
            try:
                process.kill()
            except ProcessLookupError:
                pass
            await process.wait()

    def _build_env(self, job: JobDescriptor) -> dict[str, str]:
        env = dict(os.environ) if self._config.inherit_env else {}
        env["PASSPHRASE"] = job.passphrase
        env["TMPDIR"] = self._config.temp_dir or tempfile.gettempdir()
        return env

    # =========================================================================
    # Results
    # =========================================================================

    @staticmethod
    def _build_result(
        operation: str, state: RunState, outcome: _ProcessOutcome | None
    ) -> RunResult:
        exit_code = outcome.exit_code if outcome else None

        if state.cancelled:
            return RunResult(
                operation=operation,
                status=RunStatus.CANCELLED,
                exit_code=exit_code,
                error_code=ErrorCode.CANCELLED,
                message=f"{operation} cancelled",
            )

        if outcome is not None and outcome.error is not None:
            return RunResult(
                operation=operation,
                status=RunStatus.FAILED,
                exit_code=exit_code,
                error_code=outcome.error.code,
                message=outcome.error.message,
            )

        if exit_code != 0:
            if exit_code is not None and exit_code < 0:
                message = f"duplicity terminated by signal {-exit_code}"
            else:
                message = f"duplicity exited with code {exit_code}"
            return RunResult(
                operation=operation,
                status=RunStatus.FAILED,
                exit_code=exit_code,
                error_code=ErrorCode.PROCESS_EXIT,
                message=message,
            )

        return RunResult(operation=operation, status=RunStatus.COMPLETED, exit_code=exit_code)

    @staticmethod
    def _log_result(result: RunResult) -> None:
        extra = {
            "operation": result.operation,
            "status": result.status.value,
            "exit_code": result.exit_code,
        }
        if result.status == RunStatus.COMPLETED:
            logger.info("Operation completed", extra={"event": LogEvent.JOB_COMPLETED, **extra})
        elif result.status == RunStatus.CANCELLED:
            logger.info("Operation cancelled", extra={"event": LogEvent.JOB_CANCELLED, **extra})
        else:
            logger.warning(
                "Operation failed",
                extra={
                    "event": LogEvent.JOB_FAILED,
                    "error_code": result.error_code.value if result.error_code else None,
                    "error": result.message,
                    **extra,
                },
            )
