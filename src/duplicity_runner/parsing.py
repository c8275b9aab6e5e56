"""Scrapers for duplicity's human-readable output.

These patterns are coupled to duplicity's output format; callers only see
parse_file_list() and parse_status_report().
"""

import re
from datetime import datetime

from duplicity_runner.models import FileEntry, StatusReport

# "Mon Jan  1 00:00:00 2024 some/dir/file.txt". The timestamp run is greedy, so
# leading digits of a path ("2023/report.txt") are absorbed into it.
_FILE_LINE = re.compile(r"^[a-zA-Z]{3} [a-zA-Z]{3} [0-9 :]+(.*)$", re.MULTILINE)

_CHAIN_START = re.compile(r"Chain start time: ([^\n]+)", re.MULTILINE)
_CHAIN_END = re.compile(r"Chain end time: ([^\n]+)", re.MULTILINE)
_BACKUP_SETS = re.compile(r"Number of contained backup sets: ([0-9]+)", re.MULTILINE)
_SOURCE_FILES = re.compile(r"SourceFiles ([0-9]+)")
_SOURCE_FILE_SIZE = re.compile(r"SourceFileSize [0-9]+ \(([^)]+)\)")
_BACKUP_VOLUMES = re.compile(r"Total number of contained volumes: ([0-9]+)", re.MULTILINE)

# duplicity prints "%a %b %d %H:%M:%S %Y" in English regardless of the host
# locale, with a double space before single-digit days.
_TIMESTAMP = re.compile(
    r"^([A-Za-z]{3})\s+([A-Za-z]{3})\s+(\d{1,2})\s+(\d{1,2}):(\d{2}):(\d{2})\s+(\d{4})$"
)
_WEEKDAYS = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")
_MONTHS = {
    name: number
    for number, name in enumerate(
        ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"),
        start=1,
    )
}
STATUS_TIME_FORMAT = "%Y-%m-%d %H:%M"

_SKIPPED_PATHS = (".", "..")


def parse_file_list(output: str) -> list[FileEntry]:
    """Parse list-current-files output into file entries.

    Lines that do not start with a timestamp are ignored, as are the
    "." and ".." entries for the backup root.
    """
    entries: list[FileEntry] = []
    for match in _FILE_LINE.finditer(output):
        path = match.group(1).rstrip("\r")
        if path in _SKIPPED_PATHS:
            continue
        head, sep, name = path.rpartition("/")
        entries.append(FileEntry(path=path, dir=head if sep else ".", name=name))
    return entries


def normalize_timestamp(value: str) -> str:
    """Convert a duplicity timestamp to YYYY-MM-DD HH:MM.

    Returns an empty string when the value is not a recognizable timestamp.
    """
    match = _TIMESTAMP.match(value.strip())
    if match is None:
        return ""
    weekday, month_name, day, hour, minute, second, year = match.groups()
    month = _MONTHS.get(month_name.title())
    if month is None or weekday.title() not in _WEEKDAYS:
        return ""
    try:
        parsed = datetime(int(year), month, int(day), int(hour), int(minute), int(second))
    except ValueError:
        return ""
    return parsed.strftime(STATUS_TIME_FORMAT)


def _first_group(pattern: re.Pattern[str], output: str) -> str:
    match = pattern.search(output)
    return match.group(1) if match else ""


def parse_status_report(output: str) -> StatusReport:
    """Extract chain statistics from collection-status and dry-run output."""
    chain_start = _first_group(_CHAIN_START, output)
    chain_end = _first_group(_CHAIN_END, output)
    return StatusReport(
        chain_start_time=normalize_timestamp(chain_start) if chain_start else "",
        chain_end_time=normalize_timestamp(chain_end) if chain_end else "",
        backup_sets=_first_group(_BACKUP_SETS, output),
        backup_volumes=_first_group(_BACKUP_VOLUMES, output),
        source_files=_first_group(_SOURCE_FILES, output),
        source_file_size=_first_group(_SOURCE_FILE_SIZE, output),
    )
