"""Log event types for structured logging."""

from enum import StrEnum


class LogEvent(StrEnum):
    """Log event types for the runner.

    Used with logger.info/warning/error extra dict:
        logger.info("message", extra={"event": LogEvent.JOB_STARTED, ...})
    """

    # Operation lifecycle
    JOB_STARTED = "job_started"
    JOB_COMPLETED = "job_completed"
    JOB_FAILED = "job_failed"
    JOB_CANCELLED = "job_cancelled"
    JOB_REJECTED = "job_rejected"

    # Process events
    INVALID_OPTIONS = "invalid_options"
    SPAWN_FAILED = "spawn_failed"
    OUTPUT_OVERFLOW = "output_overflow"

    # Output relay
    SINK_ERROR = "sink_error"
