"""
Pytest Configuration and Fixtures for claude-setup

Provides a recording stand-in for the Claude CLI, fake executables on
PATH for end-to-end runs, and sample manifest files.
"""

import logging
import os
import stat
import sys
from pathlib import Path
from typing import Generator

import pytest
from returns.result import Failure, Success

# Add lib to path for imports
lib_dir = Path(__file__).parent.parent / "lib"
if str(lib_dir) not in sys.path:
    sys.path.insert(0, str(lib_dir))

from fp_utils import CommandOutput, ExecutionError


REPO_ROOT = Path(__file__).parent.parent

FAKE_CLAUDE = """#!/bin/sh
printf '%s\\n' "$1" >> "$FAKE_CLAUDE_LOG"
case "$1" in
  "/plugin install "*)
    name="${1#/plugin install }"
    for bad in $FAKE_CLAUDE_FAIL; do
      if [ "$name" = "$bad" ]; then
        if [ -n "$FAKE_CLAUDE_BINARY_STDERR" ]; then
          printf '\\377\\376 cannot install' >&2
        else
          echo "cannot install $name" >&2
        fi
        exit 1
      fi
    done
    echo "installed $name"
    ;;
  "/plugin marketplace add "*)
    if [ -n "$FAKE_CLAUDE_FAIL_MARKETPLACE" ]; then
      echo "unknown marketplace" >&2
      exit 2
    fi
    ;;
esac
exit 0
"""

FAKE_NPM = """#!/bin/sh
pwd >> "$FAKE_NPM_LOG"
if [ -n "$FAKE_NPM_FAIL" ]; then
  echo "npm ERR! install failed" >&2
  exit 1
fi
exit 0
"""


def pytest_configure(config):
    """Register custom pytest marks."""
    for marker in (
        "unit: Unit tests (fast, isolated)",
        "integration: Integration tests (slower, may use external resources)",
        "e2e: End-to-end tests (slowest, full workflow)",
    ):
        config.addinivalue_line("markers", marker)


@pytest.fixture(autouse=True)
def restore_root_logging() -> Generator[None, None, None]:
    """cli.main() reconfigures the root logger; undo it after each test."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


class RecordingCLI:
    """In-memory stand-in for ClaudeCLI that records every call."""

    def __init__(
        self,
        failing: tuple[str, ...] = (),
        fail_marketplace: bool = False,
        dry_run: bool = False,
        timeout_seconds: float | None = None
    ):
        self.failing = set(failing)
        self.fail_marketplace = fail_marketplace
        self.dry_run = dry_run
        self.timeout_seconds = timeout_seconds
        self.calls: list[tuple[str, str]] = []

    @property
    def installed(self) -> list[str]:
        return [arg for kind, arg in self.calls if kind == "install"]

    def install_plugin(self, name: str):
        self.calls.append(("install", name))
        command = f"/plugin install {name}"
        if name in self.failing:
            return Failure(ExecutionError(command=command, reason="exit status 1", returncode=1))
        return Success(CommandOutput(args=("claude", command), returncode=0))

    def add_marketplace(self, source: str):
        self.calls.append(("marketplace", source))
        command = f"/plugin marketplace add {source}"
        if self.fail_marketplace:
            return Failure(ExecutionError(command=command, reason="exit status 2", returncode=2))
        return Success(CommandOutput(args=("claude", command), returncode=0))


@pytest.fixture
def recording_cli():
    """Factory for RecordingCLI instances."""
    return RecordingCLI


class EchoCapture:
    """Collects narration lines instead of printing them."""

    def __init__(self):
        self.lines: list[str] = []

    def __call__(self, line: str) -> None:
        self.lines.append(line)

    @property
    def warnings(self) -> list[str]:
        return [line for line in self.lines if line.lstrip().startswith("Warning:")]


@pytest.fixture
def echo() -> EchoCapture:
    return EchoCapture()


@pytest.fixture
def manifest_file(tmp_path: Path) -> Path:
    """A small manifest with two categories and one marketplace."""
    path = tmp_path / "plugins.yaml"
    path.write_text("""
dependencies:
  command: [npm, install]
  cwd: .claude/hooks

marketplaces:
  - ~/claude_setup/3rd_party/awesome-claude-code-plugins

categories:
  official:
    - agent-sdk-dev
    - feature-dev
  testing:
    - bug-detective
    - unit-test-generator
    - debugger
""")
    return path


@pytest.fixture
def project_root(tmp_path: Path) -> Path:
    """Project directory with an existing .claude/hooks."""
    root = tmp_path / "project"
    (root / ".claude" / "hooks").mkdir(parents=True)
    return root


def _write_executable(path: Path, content: str) -> Path:
    path.write_text(content)
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


@pytest.fixture
def fake_bin(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """
    Directory on PATH holding fake `claude` and `npm` executables.

    claude appends each slash command to $FAKE_CLAUDE_LOG and fails for
    plugin names listed in $FAKE_CLAUDE_FAIL (with non-UTF-8 stderr when
    $FAKE_CLAUDE_BINARY_STDERR is set). npm appends its working
    directory to $FAKE_NPM_LOG and fails when $FAKE_NPM_FAIL is set.
    """
    if os.name == "nt":
        pytest.skip("fake executables are POSIX shell scripts")

    bin_dir = tmp_path / "bin"
    bin_dir.mkdir()
    _write_executable(bin_dir / "claude", FAKE_CLAUDE)
    _write_executable(bin_dir / "npm", FAKE_NPM)

    monkeypatch.setenv("PATH", f"{bin_dir}{os.pathsep}{os.environ.get('PATH', '')}")
    monkeypatch.setenv("FAKE_CLAUDE_LOG", str(tmp_path / "claude.log"))
    monkeypatch.setenv("FAKE_NPM_LOG", str(tmp_path / "npm.log"))
    monkeypatch.delenv("FAKE_CLAUDE_FAIL", raising=False)
    monkeypatch.delenv("FAKE_CLAUDE_BINARY_STDERR", raising=False)
    monkeypatch.delenv("FAKE_CLAUDE_FAIL_MARKETPLACE", raising=False)
    monkeypatch.delenv("FAKE_NPM_FAIL", raising=False)
    return bin_dir


@pytest.fixture
def plugin_root() -> Path:
    """Repository root, holding the shipped config/."""
    return REPO_ROOT
