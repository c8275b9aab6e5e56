"""Argument vectors for duplicity invocations.

Commands are built as argv lists and executed without a shell, so paths,
URLs and option values never need escaping. cli_options is split with
POSIX shell rules, which keeps quoted values together.
"""

import shlex

from duplicity_runner.config import DuplicityConfig
from duplicity_runner.models import BackupMode, JobDescriptor


def split_cli_options(cli_options: str) -> list[str]:
    """Split the pass-through option string into arguments."""
    if not cli_options or not cli_options.strip():
        return []
    return shlex.split(cli_options)


def _tail(job: JobDescriptor, config: DuplicityConfig) -> list[str]:
    return [*split_cli_options(job.cli_options), "--verbosity", config.verbosity]


def backup_command(
    job: JobDescriptor,
    mode: BackupMode | str,
    config: DuplicityConfig,
) -> list[str]:
    """duplicity [full] <path> <url> <options> --verbosity <level>"""
    action = BackupMode(mode).value
    argv = [config.executable]
    if action:
        argv.append(action)
    return [*argv, job.path, job.url, *_tail(job, config)]


def restore_file_command(
    job: JobDescriptor,
    source_path: str,
    dest_path: str,
    config: DuplicityConfig,
) -> list[str]:
    """duplicity restore --file-to-restore <file> <url> <dest> <options> --verbosity <level>"""
    return [
        config.executable,
        "restore",
        "--file-to-restore",
        source_path,
        job.url,
        dest_path,
        *_tail(job, config),
    ]


def restore_tree_command(
    job: JobDescriptor,
    dest_path: str,
    config: DuplicityConfig,
) -> list[str]:
    """duplicity restore <url> <dest> <options> --verbosity <level>"""
    return [config.executable, "restore", job.url, dest_path, *_tail(job, config)]


def list_files_command(job: JobDescriptor, config: DuplicityConfig) -> list[str]:
    """duplicity list-current-files <url> <options> --verbosity <level>"""
    return [config.executable, "list-current-files", job.url, *_tail(job, config)]


def collection_status_command(job: JobDescriptor, config: DuplicityConfig) -> list[str]:
    """duplicity collection-status <url> <options> --verbosity <level>"""
    return [config.executable, "collection-status", job.url, *_tail(job, config)]


def dry_run_command(job: JobDescriptor, config: DuplicityConfig) -> list[str]:
    """duplicity incremental <path> <url> <options> --verbosity <level> --dry-run

    Only used to harvest source file statistics; nothing is written.
    """
    return [
        config.executable,
        "incremental",
        job.path,
        job.url,
        *_tail(job, config),
        "--dry-run",
    ]


def status_commands(job: JobDescriptor, config: DuplicityConfig) -> list[list[str]]:
    """Commands run in sequence by get_status, each only if the previous succeeded."""
    return [collection_status_command(job, config), dry_run_command(job, config)]
