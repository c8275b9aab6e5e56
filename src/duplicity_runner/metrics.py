"""Prometheus metrics for duplicity operations.

Operations range from sub-second status checks to multi-hour full backups,
so duration buckets are wide.
"""

from prometheus_client import Counter, Histogram

# =============================================================================
# Histogram Buckets
# =============================================================================
_BUCKETS_OPERATION = (
    0.5, 1, 5, 15, 30,
    60, 300, 900, 1800, 3600,
    7200, 14400,
)  # 12 buckets

# =============================================================================
# Operation Metrics
# =============================================================================

RUNNER_OPERATION_DURATION = Histogram(
    "duplicity_runner_operation_duration_seconds",
    "Duration of duplicity operations",
    ["operation"],  # backup, restore_file, restore_tree, list_files, get_status
    buckets=_BUCKETS_OPERATION,
)

RUNNER_OPERATIONS = Counter(
    "duplicity_runner_operations_total",
    "Total duplicity operations by outcome",
    ["operation", "status"],  # status: completed, failed, cancelled
)

RUNNER_OUTPUT_BYTES = Counter(
    "duplicity_runner_output_bytes_total",
    "Total bytes relayed from duplicity",
    ["stream"],  # stdout, stderr
)

OPERATIONS = ("backup", "restore_file", "restore_tree", "list_files", "get_status")


def _init_metrics() -> None:
    """Initialize labeled metrics with zero values."""
    for op in OPERATIONS:
        RUNNER_OPERATION_DURATION.labels(operation=op)
        for status in ("completed", "failed", "cancelled"):
            RUNNER_OPERATIONS.labels(operation=op, status=status)

    RUNNER_OUTPUT_BYTES.labels(stream="stdout")
    RUNNER_OUTPUT_BYTES.labels(stream="stderr")


_init_metrics()
