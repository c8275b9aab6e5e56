"""Error handling module for duplicity_runner.

Error codes and exception classes. Apart from BusyError, runner operations
do not raise these directly: they are carried on RunResult and raised by
RunResult.raise_for_status() for callers that prefer exceptions.

Usage:
    from duplicity_runner.errors import BusyError

    try:
        result = await runner.backup(job)
    except BusyError:
        ...
"""

from enum import Enum

from pydantic import BaseModel


class ErrorCode(str, Enum):
    """Error codes for runner outcomes."""

    RUNNER_BUSY = "RUNNER_BUSY"
    SPAWN_FAILED = "SPAWN_FAILED"
    PROCESS_EXIT = "PROCESS_EXIT"
    CANCELLED = "CANCELLED"
    OUTPUT_OVERFLOW = "OUTPUT_OVERFLOW"
    INVALID_OPTIONS = "INVALID_OPTIONS"


class ErrorDetail(BaseModel):
    """Error detail containing code and message."""

    code: str
    message: str


class RunnerError(Exception):
    """Base exception for duplicity_runner.

    Attributes:
        code: The error code from ErrorCode enum.
        message: Human-readable error message.
    """

    def __init__(self, code: ErrorCode, message: str) -> None:
        self.code = code
        self.message = message
        super().__init__(message)

    def to_detail(self) -> ErrorDetail:
        """Convert exception to ErrorDetail model."""
        return ErrorDetail(code=self.code.value, message=self.message)


class BusyError(RunnerError):
    """An operation is already running on this runner."""

    def __init__(self, message: str = "Runner is busy") -> None:
        super().__init__(ErrorCode.RUNNER_BUSY, message)


class ProcessSpawnError(RunnerError):
    """duplicity could not be launched (missing binary, permission denied)."""

    def __init__(self, message: str = "Failed to start duplicity") -> None:
        super().__init__(ErrorCode.SPAWN_FAILED, message)


class ProcessExitError(RunnerError):
    """duplicity exited with a non-zero status."""

    def __init__(
        self, message: str = "duplicity exited with an error", exit_code: int | None = None
    ) -> None:
        self.exit_code = exit_code
        super().__init__(ErrorCode.PROCESS_EXIT, message)


class JobCancelledError(RunnerError):
    """The operation was cancelled by the caller."""

    def __init__(self, message: str = "Operation cancelled") -> None:
        super().__init__(ErrorCode.CANCELLED, message)


class OutputOverflowError(RunnerError):
    """duplicity produced more output than the configured buffer cap."""

    def __init__(self, message: str = "Output buffer limit exceeded") -> None:
        super().__init__(ErrorCode.OUTPUT_OVERFLOW, message)


class InvalidOptionsError(RunnerError):
    """The duplicity arguments could not be built (unbalanced quotes, unknown mode)."""

    def __init__(self, message: str = "Invalid duplicity options") -> None:
        super().__init__(ErrorCode.INVALID_OPTIONS, message)


ERRORS_BY_CODE: dict[ErrorCode, type[RunnerError]] = {
    ErrorCode.RUNNER_BUSY: BusyError,
    ErrorCode.SPAWN_FAILED: ProcessSpawnError,
    ErrorCode.PROCESS_EXIT: ProcessExitError,
    ErrorCode.CANCELLED: JobCancelledError,
    ErrorCode.OUTPUT_OVERFLOW: OutputOverflowError,
    ErrorCode.INVALID_OPTIONS: InvalidOptionsError,
}
