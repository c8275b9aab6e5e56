"""Tests for duplicity argument vectors."""

import pytest

from duplicity_runner.commands import (
    backup_command,
    collection_status_command,
    dry_run_command,
    list_files_command,
    restore_file_command,
    restore_tree_command,
    split_cli_options,
    status_commands,
)
from duplicity_runner.config import DuplicityConfig
from duplicity_runner.models import BackupMode, JobDescriptor


@pytest.fixture
def config() -> DuplicityConfig:
    return DuplicityConfig(executable="duplicity", verbosity="notice")


@pytest.fixture
def job() -> JobDescriptor:
    return JobDescriptor(
        path="/home/me/My Documents",
        url="sftp://backup@host//srv/docs",
        passphrase="secret",
        cli_options="--no-compression --exclude '**/.cache dir'",
    )


OPTIONS = ["--no-compression", "--exclude", "**/.cache dir"]


class TestSplitCliOptions:
    """Tests for split_cli_options."""

    def test_empty(self) -> None:
        assert split_cli_options("") == []
        assert split_cli_options("   ") == []

    def test_quoted_values_stay_together(self) -> None:
        assert split_cli_options("--exclude '/a b' --name=\"x y\"") == [
            "--exclude",
            "/a b",
            "--name=x y",
        ]

    def test_shell_operators_are_plain_arguments(self) -> None:
        """Nothing is interpreted by a shell."""
        assert split_cli_options("--foo && rm -rf /") == ["--foo", "&&", "rm", "-rf", "/"]


class TestBackupCommand:
    """Tests for backup_command."""

    def test_incremental_omits_action(self, job: JobDescriptor, config: DuplicityConfig) -> None:
        argv = backup_command(job, BackupMode.INCREMENTAL, config)

        assert argv == [
            "duplicity",
            "/home/me/My Documents",
            "sftp://backup@host//srv/docs",
            *OPTIONS,
            "--verbosity",
            "notice",
        ]

    def test_full(self, job: JobDescriptor, config: DuplicityConfig) -> None:
        argv = backup_command(job, BackupMode.FULL, config)

        assert argv[:4] == [
            "duplicity",
            "full",
            "/home/me/My Documents",
            "sftp://backup@host//srv/docs",
        ]
        assert argv[-2:] == ["--verbosity", "notice"]

    def test_accepts_plain_strings(self, job: JobDescriptor, config: DuplicityConfig) -> None:
        assert backup_command(job, "full", config) == backup_command(job, BackupMode.FULL, config)
        assert backup_command(job, "", config) == backup_command(
            job, BackupMode.INCREMENTAL, config
        )

    def test_rejects_unknown_mode(self, job: JobDescriptor, config: DuplicityConfig) -> None:
        with pytest.raises(ValueError):
            backup_command(job, "cleanup", config)

    def test_path_and_url_appear_once(self, job: JobDescriptor, config: DuplicityConfig) -> None:
        argv = backup_command(job, BackupMode.FULL, config)

        assert argv.count(job.path) == 1
        assert argv.count(job.url) == 1

    def test_passphrase_not_in_argv(self, job: JobDescriptor, config: DuplicityConfig) -> None:
        assert "secret" not in backup_command(job, BackupMode.FULL, config)

    def test_uses_configured_executable_and_verbosity(self, job: JobDescriptor) -> None:
        config = DuplicityConfig(executable="/opt/duplicity/bin/duplicity", verbosity="info")

        argv = backup_command(job, BackupMode.FULL, config)

        assert argv[0] == "/opt/duplicity/bin/duplicity"
        assert argv[-2:] == ["--verbosity", "info"]


class TestRestoreCommands:
    """Tests for restore_file_command and restore_tree_command."""

    def test_restore_file(self, job: JobDescriptor, config: DuplicityConfig) -> None:
        argv = restore_file_command(job, "notes/todo.txt", "/tmp/todo.txt", config)

        assert argv == [
            "duplicity",
            "restore",
            "--file-to-restore",
            "notes/todo.txt",
            "sftp://backup@host//srv/docs",
            "/tmp/todo.txt",
            *OPTIONS,
            "--verbosity",
            "notice",
        ]

    def test_restore_tree(self, job: JobDescriptor, config: DuplicityConfig) -> None:
        argv = restore_tree_command(job, "/tmp/restore here", config)

        assert argv == [
            "duplicity",
            "restore",
            "sftp://backup@host//srv/docs",
            "/tmp/restore here",
            *OPTIONS,
            "--verbosity",
            "notice",
        ]


class TestQueryCommands:
    """Tests for listing and status commands."""

    def test_list_files(self, job: JobDescriptor, config: DuplicityConfig) -> None:
        argv = list_files_command(job, config)

        assert argv == [
            "duplicity",
            "list-current-files",
            "sftp://backup@host//srv/docs",
            *OPTIONS,
            "--verbosity",
            "notice",
        ]

    def test_collection_status(self, job: JobDescriptor, config: DuplicityConfig) -> None:
        argv = collection_status_command(job, config)

        assert argv[:3] == ["duplicity", "collection-status", "sftp://backup@host//srv/docs"]
        assert job.path not in argv

    def test_dry_run_ends_with_flag(self, job: JobDescriptor, config: DuplicityConfig) -> None:
        argv = dry_run_command(job, config)

        assert argv[:4] == [
            "duplicity",
            "incremental",
            "/home/me/My Documents",
            "sftp://backup@host//srv/docs",
        ]
        assert argv[-3:] == ["--verbosity", "notice", "--dry-run"]

    def test_status_commands_order(self, job: JobDescriptor, config: DuplicityConfig) -> None:
        first, second = status_commands(job, config)

        assert first[1] == "collection-status"
        assert second[1] == "incremental"
