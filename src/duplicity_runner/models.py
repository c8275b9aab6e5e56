"""Job descriptors and operation result types."""

from enum import Enum

from pydantic import BaseModel, Field

from duplicity_runner.errors import ERRORS_BY_CODE, ErrorCode, ProcessExitError


class BackupMode(str, Enum):
    """duplicity backup action.

    INCREMENTAL leaves the action out so duplicity decides
    (full when no chain exists yet, incremental otherwise).
    """

    INCREMENTAL = ""
    FULL = "full"


class JobDescriptor(BaseModel):
    """A backup job as handed over by the caller.

    Nothing is validated here: paths and URLs are passed to duplicity as-is.
    """

    path: str = ""
    url: str = ""
    passphrase: str = Field(default="", repr=False)
    cli_options: str = ""


class FileEntry(BaseModel):
    """One file from a list-current-files listing."""

    path: str
    dir: str
    name: str


class StatusReport(BaseModel):
    """Backup chain summary harvested from collection-status and a dry run.

    Fields are empty strings when duplicity did not report them.
    """

    chain_start_time: str = ""
    chain_end_time: str = ""
    backup_sets: str = ""
    backup_volumes: str = ""
    source_files: str = ""
    source_file_size: str = ""


class RunStatus(str, Enum):
    """Operation outcome."""

    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class RunResult(BaseModel):
    """Result of a single runner operation.

    CANCELLED counts as failed, but stays distinguishable through
    `cancelled` for callers that need to know the caller stopped it.
    """

    operation: str
    status: RunStatus
    exit_code: int | None = None
    error_code: ErrorCode | None = None
    message: str = ""

    @property
    def failed(self) -> bool:
        return self.status != RunStatus.COMPLETED

    @property
    def cancelled(self) -> bool:
        return self.status == RunStatus.CANCELLED

    def raise_for_status(self) -> None:
        """Raise the RunnerError matching this result, if it did not complete."""
        if not self.failed:
            return
        if self.error_code is None or self.error_code == ErrorCode.PROCESS_EXIT:
            raise ProcessExitError(self.message or "duplicity exited with an error", self.exit_code)
        error_cls = ERRORS_BY_CODE[self.error_code]
        raise error_cls(self.message) if self.message else error_cls()


class FileListResult(RunResult):
    """Result of list_files."""

    entries: list[FileEntry] = Field(default_factory=list)


class StatusResult(RunResult):
    """Result of get_status."""

    report: StatusReport = Field(default_factory=StatusReport)
