"""Fixtures for runner unit tests."""

import json
import os
import stat
import sys
from pathlib import Path

import pytest

from duplicity_runner.config import DuplicityConfig, get_runner_config
from duplicity_runner.models import JobDescriptor
from duplicity_runner.runner import DuplicityRunner

# Fake duplicity: records its invocation, then replays canned output for
# the action named by its first argument.
_FAKE_SCRIPT = '''#!{python}
import json
import os
import sys
import time

BASE = {base!r}
ACTIONS = ("full", "incremental", "restore", "list-current-files", "collection-status")

args = sys.argv[1:]
with open(os.path.join(BASE, "calls.jsonl"), "a") as f:
    f.write(json.dumps({{"argv": args, "env": dict(os.environ)}}) + "\\n")

action = args[0] if args and args[0] in ACTIONS else "backup"


def read(name, default=""):
    path = os.path.join(BASE, action + "." + name)
    if os.path.exists(path):
        with open(path) as fh:
            return fh.read()
    return default


sys.stdout.write(read("out"))
sys.stdout.flush()
sys.stderr.write(read("err"))
sys.stderr.flush()
delay = float(read("sleep", "0"))
if delay:
    time.sleep(delay)
sys.exit(int(read("code", "0")))
'''


class FakeDuplicity:
    """Scriptable stand-in for the duplicity binary."""

    def __init__(self, base: Path) -> None:
        self.base = base
        self.base.mkdir(parents=True, exist_ok=True)
        self.executable = base / "duplicity"
        self.executable.write_text(_FAKE_SCRIPT.format(python=sys.executable, base=str(base)))
        self.executable.chmod(self.executable.stat().st_mode | stat.S_IEXEC)

    def respond(
        self,
        action: str,
        stdout: str = "",
        stderr: str = "",
        code: int = 0,
        sleep: float = 0,
    ) -> None:
        """Set the output for an action (backup, restore, list-current-files, ...)."""
        (self.base / f"{action}.out").write_text(stdout)
        (self.base / f"{action}.err").write_text(stderr)
        (self.base / f"{action}.code").write_text(str(code))
        (self.base / f"{action}.sleep").write_text(str(sleep))

    def calls(self) -> list[dict]:
        log = self.base / "calls.jsonl"
        if not log.exists():
            return []
        return [json.loads(line) for line in log.read_text().splitlines() if line]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch):
    """Remove DUPLICITY_RUNNER_ env vars and reset the cached config."""
    for key in list(os.environ.keys()):
        if key.startswith("DUPLICITY_RUNNER_"):
            monkeypatch.delenv(key, raising=False)
    get_runner_config.cache_clear()
    yield
    get_runner_config.cache_clear()


@pytest.fixture
def fake_duplicity(tmp_path: Path) -> FakeDuplicity:
    return FakeDuplicity(tmp_path / "fake")


@pytest.fixture
def duplicity_config(fake_duplicity: FakeDuplicity, tmp_path: Path) -> DuplicityConfig:
    temp_dir = tmp_path / "tmp"
    temp_dir.mkdir()
    return DuplicityConfig(
        executable=str(fake_duplicity.executable),
        temp_dir=str(temp_dir),
        interrupt_grace=2.0,
    )


@pytest.fixture
def runner(duplicity_config: DuplicityConfig) -> DuplicityRunner:
    return DuplicityRunner(duplicity_config)


@pytest.fixture
def job() -> JobDescriptor:
    return JobDescriptor(
        path="/home/me/My Documents",
        url="file:///mnt/backup/docs",
        passphrase="secret",
        cli_options="--no-compression --exclude '**/.cache dir'",
    )
