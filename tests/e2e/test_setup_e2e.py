"""
End-to-End Tests for a Setup Run

Runs cli.main() for real: subprocesses are spawned against fake `claude`
and `npm` executables placed first on PATH (see the fake_bin fixture).
"""

import pytest
from pathlib import Path

# Add lib to path for imports
import sys
lib_dir = Path(__file__).parent.parent.parent / "lib"
sys.path.insert(0, str(lib_dir))

from cli import main
from kpi_logger import KPILogger

pytestmark = pytest.mark.e2e


def _lines(path: Path) -> list[str]:
    return path.read_text().splitlines() if path.exists() else []


@pytest.fixture
def run_setup(manifest_file, project_root, tmp_path):
    def _run(*extra: str) -> int:
        return main([
            "--config", str(manifest_file),
            "--project-root", str(project_root),
            "--kpis-dir", str(tmp_path / "kpis"),
            *extra,
        ])
    return _run


class TestFullRun:
    """The complete flow with every external command succeeding."""

    def test_all_plugins_installed(self, fake_bin, run_setup, tmp_path, project_root, capsys):
        assert run_setup() == 0

        out = capsys.readouterr().out.splitlines()
        assert out[0] == "=== Claude Code Setup ==="
        assert out[-1] == "Installed 5 plugins."
        assert [line for line in out if line.startswith("[")] == [
            "[1/5] Installing agent-sdk-dev...",
            "[2/5] Installing feature-dev...",
            "[3/5] Installing bug-detective...",
            "[4/5] Installing unit-test-generator...",
            "[5/5] Installing debugger...",
        ]

        assert _lines(tmp_path / "claude.log") == [
            "/plugin marketplace add ~/claude_setup/3rd_party/awesome-claude-code-plugins",
            "/plugin install agent-sdk-dev",
            "/plugin install feature-dev",
            "/plugin install bug-detective",
            "/plugin install unit-test-generator",
            "/plugin install debugger",
        ]
        npm_dirs = _lines(tmp_path / "npm.log")
        assert [Path(d).resolve() for d in npm_dirs] == [(project_root / ".claude" / "hooks").resolve()]

    def test_external_output_not_echoed(self, fake_bin, run_setup, capsys):
        run_setup()

        captured = capsys.readouterr()
        assert "installed agent-sdk-dev" not in captured.out


class TestPartialFailure:
    """Failing plugins produce warnings; the batch still completes."""

    def test_failures_are_warnings(self, fake_bin, run_setup, tmp_path, monkeypatch, capsys):
        monkeypatch.setenv("FAKE_CLAUDE_FAIL", "agent-sdk-dev debugger")

        assert run_setup() == 0

        captured = capsys.readouterr()
        out = captured.out.splitlines()
        assert [line for line in out if "Warning" in line] == [
            "  Warning: Failed to install agent-sdk-dev",
            "  Warning: Failed to install debugger",
        ]
        assert out[-1] == "Installed 5 plugins."
        # Every plugin was still attempted, in order
        installs = [line for line in _lines(tmp_path / "claude.log") if line.startswith("/plugin install")]
        assert len(installs) == 5
        # The external tool's stderr stays off the console
        assert "cannot install" not in captured.out

    def test_run_history_records_failures(self, fake_bin, run_setup, tmp_path, monkeypatch):
        monkeypatch.setenv("FAKE_CLAUDE_FAIL", "bug-detective")

        run_setup()

        event = KPILogger(tmp_path / "kpis").get_recent_events()[0]
        assert event.data["total"] == 5
        assert event.data["succeeded"] == 4
        assert event.data["failed_plugins"] == ["bug-detective"]

    def test_rerun_is_stable(self, fake_bin, run_setup, monkeypatch, capsys):
        monkeypatch.setenv("FAKE_CLAUDE_FAIL", "feature-dev")

        run_setup()
        first = capsys.readouterr().out
        run_setup()
        second = capsys.readouterr().out

        assert first == second


class TestFailFast:
    """Prerequisite failures abort with exit code 1."""

    def test_npm_failure_aborts_before_claude(self, fake_bin, run_setup, tmp_path, monkeypatch, capsys):
        monkeypatch.setenv("FAKE_NPM_FAIL", "1")

        assert run_setup() == 1

        out = capsys.readouterr().out
        assert "=== Installing Plugins ===" not in out
        assert "npm ERR! install failed" in out
        assert _lines(tmp_path / "claude.log") == []

    def test_missing_hooks_dir_aborts(self, fake_bin, manifest_file, tmp_path):
        empty_root = tmp_path / "empty"
        empty_root.mkdir()

        code = main(["--config", str(manifest_file), "--project-root", str(empty_root), "--no-kpis"])

        assert code == 1
        assert _lines(tmp_path / "npm.log") == []
        assert _lines(tmp_path / "claude.log") == []

    def test_marketplace_failure_aborts(self, fake_bin, run_setup, tmp_path, monkeypatch, capsys):
        monkeypatch.setenv("FAKE_CLAUDE_FAIL_MARKETPLACE", "1")

        assert run_setup() == 1

        assert _lines(tmp_path / "claude.log") == [
            "/plugin marketplace add ~/claude_setup/3rd_party/awesome-claude-code-plugins"
        ]
        assert "Installed" not in capsys.readouterr().out

    def test_skip_deps_needs_no_hooks_dir(self, fake_bin, manifest_file, tmp_path):
        empty_root = tmp_path / "empty"
        empty_root.mkdir()

        code = main([
            "--config", str(manifest_file), "--project-root", str(empty_root),
            "--skip-deps", "--no-kpis",
        ])

        assert code == 0
        assert _lines(tmp_path / "npm.log") == []


class TestDryRunAndFilters:
    """Narration-only and category-filtered runs."""

    def test_dry_run_executes_nothing(self, fake_bin, run_setup, tmp_path, capsys):
        assert run_setup("--dry-run") == 0

        assert capsys.readouterr().out.splitlines()[-1] == "Installed 5 plugins."
        assert _lines(tmp_path / "claude.log") == []
        assert _lines(tmp_path / "npm.log") == []
        assert not (tmp_path / "kpis" / "events.jsonl").exists()

    def test_category_filter(self, fake_bin, run_setup, tmp_path, capsys):
        assert run_setup("--category", "official", "--skip-marketplace") == 0

        assert _lines(tmp_path / "claude.log") == [
            "/plugin install agent-sdk-dev",
            "/plugin install feature-dev",
        ]
        assert capsys.readouterr().out.splitlines()[-1] == "Installed 2 plugins."

    def test_preflight_blocks_when_cli_missing(self, fake_bin, run_setup, tmp_path, capsys):
        assert run_setup("--preflight", "--claude-bin", "claude-missing-for-tests-xyz") == 1

        out = capsys.readouterr().out
        assert "UNHEALTHY: claude_cli" in out
        assert _lines(tmp_path / "npm.log") == []
