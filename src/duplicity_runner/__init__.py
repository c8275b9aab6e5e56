"""Asyncio wrapper around the duplicity backup tool."""

from duplicity_runner.errors import (
    BusyError,
    ErrorCode,
    InvalidOptionsError,
    JobCancelledError,
    OutputOverflowError,
    ProcessExitError,
    ProcessSpawnError,
    RunnerError,
)
from duplicity_runner.models import (
    BackupMode,
    FileEntry,
    FileListResult,
    JobDescriptor,
    RunResult,
    RunStatus,
    StatusReport,
    StatusResult,
)
from duplicity_runner.runner import DuplicityRunner, split_output

__version__ = "0.1.0"

__all__ = [
    "DuplicityRunner",
    "split_output",
    # Models
    "BackupMode",
    "FileEntry",
    "FileListResult",
    "JobDescriptor",
    "RunResult",
    "RunStatus",
    "StatusReport",
    "StatusResult",
    # Errors
    "BusyError",
    "ErrorCode",
    "InvalidOptionsError",
    "JobCancelledError",
    "OutputOverflowError",
    "ProcessExitError",
    "ProcessSpawnError",
    "RunnerError",
]
