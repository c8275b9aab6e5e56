"""Command-line front end for DuplicityRunner.

Usage:
    duplicity-runner backup /home/me file:///mnt/backup [--full]
    duplicity-runner restore file:///mnt/backup /tmp/restore [--file docs/a.txt]
    duplicity-runner list file:///mnt/backup
    duplicity-runner status /home/me file:///mnt/backup

The passphrase is read from $PASSPHRASE or prompted for.
"""

import argparse
import asyncio
import getpass
import os
import signal
import sys
from typing import Sequence

from duplicity_runner.config import get_runner_config
from duplicity_runner.errors import RunnerError
from duplicity_runner.logging import setup_logging
from duplicity_runner.models import BackupMode, JobDescriptor, RunResult
from duplicity_runner.runner import DuplicityRunner, split_output

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_CANCELLED = 130


def relay_output(chunk: str) -> None:
    """Write relayed duplicity output to the matching local stream."""
    is_error, text = split_output(chunk)
    stream = sys.stderr if is_error else sys.stdout
    stream.write(text)
    stream.flush()


def read_passphrase() -> str:
    passphrase = os.environ.get("PASSPHRASE")
    if passphrase is not None:
        return passphrase
    return getpass.getpass("Passphrase: ")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="duplicity-runner",
        description="Run duplicity backups, restores and status checks",
    )
    parser.add_argument("--log-level", default=None, help="Override the configured log level")

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--options",
        default="",
        help='Extra duplicity options, e.g. --options="--no-encryption --s3-use-new-style"',
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    backup_parser = subparsers.add_parser("backup", parents=[common], help="Back up a directory")
    backup_parser.add_argument("path", help="Source directory")
    backup_parser.add_argument("url", help="Target URL")
    backup_parser.add_argument("--full", action="store_true", help="Force a full backup")

    restore_parser = subparsers.add_parser(
        "restore", parents=[common], help="Restore a backup or a single file"
    )
    restore_parser.add_argument("url", help="Backup URL")
    restore_parser.add_argument("dest", help="Destination path")
    restore_parser.add_argument("--file", dest="file", default=None, help="Restore only this file")

    list_parser = subparsers.add_parser("list", parents=[common], help="List backed-up files")
    list_parser.add_argument("url", help="Backup URL")

    status_parser = subparsers.add_parser("status", parents=[common], help="Show backup status")
    status_parser.add_argument("path", help="Source directory")
    status_parser.add_argument("url", help="Backup URL")

    return parser


def exit_code_for(result: RunResult) -> int:
    if result.cancelled:
        return EXIT_CANCELLED
    return EXIT_FAILED if result.failed else EXIT_OK


async def run_command(args: argparse.Namespace, runner: DuplicityRunner) -> int:
    """Dispatch a parsed command line to the runner."""
    job = JobDescriptor(
        path=getattr(args, "path", ""),
        url=args.url,
        passphrase=read_passphrase(),
        cli_options=args.options,
    )
    runner.on_output(relay_output)

    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, runner.cancel)
    except NotImplementedError:
        pass  # Windows event loops

    try:
        if args.command == "backup":
            mode = BackupMode.FULL if args.full else BackupMode.INCREMENTAL
            result = await runner.backup(job, mode)
        elif args.command == "restore":
            if args.file:
                result = await runner.restore_file(job, args.file, args.dest)
            else:
                result = await runner.restore_tree(job, args.dest)
        elif args.command == "list":
            result = await runner.list_files(job)
            for entry in result.entries:
                print(entry.path)
        else:
            result = await runner.get_status(job)
            print(result.report.model_dump_json(indent=2))
    finally:
        try:
            loop.remove_signal_handler(signal.SIGINT)
        except NotImplementedError:
            pass

    try:
        result.raise_for_status()
    except RunnerError as e:
        detail = e.to_detail()
        print(f"Error [{detail.code}]: {detail.message}", file=sys.stderr)
    return exit_code_for(result)


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    config = get_runner_config()
    logging_config = config.logging
    if args.log_level:
        logging_config = logging_config.model_copy(update={"level": args.log_level})
    setup_logging(logging_config)

    runner = DuplicityRunner(config.duplicity)
    return asyncio.run(run_command(args, runner))


if __name__ == "__main__":
    sys.exit(main())
