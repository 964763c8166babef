"""
Command Line Interface

`claude-setup` with no arguments installs hook dependencies, registers the
marketplace and installs every plugin in config/plugins.yaml.

Exit code: 0 = run completed (individual plugin failures included),
           1 = a fail-fast stage failed, preflight unhealthy or bad config
"""

import argparse
import json
import sys
from pathlib import Path
from typing import Sequence

from returns.result import Failure

from bootstrap import DependencyStep
from claude_cli import DEFAULT_EXECUTABLE, ClaudeCLI
from fallback import create_fallback_manager
from fp_utils import ValidationError, get_optional_env, load_config
from health import HealthChecker, HealthStatus
from kpi_logger import KPILogger
from logger import LogLevel, configure_global_logging, get_logger
from manifest import DEFAULT_MANIFEST_PATH, PluginManifest, parse_manifest
from orchestrator import EXIT_FAILURE, EXIT_OK, SetupOrchestrator
from utils import resolve_config_path

logger = get_logger(__name__)

CONFIG_ENV = "CLAUDE_SETUP_CONFIG"
CLAUDE_BIN_ENV = "CLAUDE_SETUP_CLAUDE_BIN"
DEFAULT_FALLBACK_PATH = Path("config") / "fallback.yaml"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="claude-setup",
        description="Install hook dependencies and Claude Code plugins"
    )
    parser.add_argument("--config", type=Path, default=None,
                        help=f"Plugin manifest (env {CONFIG_ENV}, default {DEFAULT_MANIFEST_PATH})")
    parser.add_argument("--fallback-config", type=Path, default=None,
                        help=f"Failure policies (default {DEFAULT_FALLBACK_PATH})")
    parser.add_argument("--project-root", type=Path, default=None,
                        help="Directory holding .claude/hooks (default: current directory)")
    parser.add_argument("--claude-bin", default=None,
                        help=f"Claude CLI executable (env {CLAUDE_BIN_ENV}, default {DEFAULT_EXECUTABLE})")
    parser.add_argument("--category", action="append", default=[], metavar="NAME",
                        help="Only install this category (repeatable)")
    parser.add_argument("--skip-deps", action="store_true", help="Skip the hook dependency step")
    parser.add_argument("--skip-marketplace", action="store_true", help="Skip marketplace registration")
    parser.add_argument("--dry-run", action="store_true", help="Narrate without executing anything")
    parser.add_argument("--list", action="store_true", help="List categories and plugin counts, then exit")
    parser.add_argument("--check", action="store_true", help="Run preflight checks, print JSON, then exit")
    parser.add_argument("--preflight", action="store_true",
                        help="Run preflight checks before installing and stop if unhealthy")
    parser.add_argument("--timeout", type=float, default=None, metavar="SECONDS",
                        help="Per-command timeout (default: none)")
    parser.add_argument("--kpis-dir", type=Path, default=None,
                        help="Where to record run history (default ~/.claude/kpis)")
    parser.add_argument("--no-kpis", action="store_true", help="Do not record run history")
    parser.add_argument("--history", action="store_true", help="Print a JSON summary of recorded runs, then exit")
    parser.add_argument("--log-level", default=None, choices=[lvl.name.lower() for lvl in LogLevel],
                        help="Diagnostic log level (env CLAUDE_SETUP_LOG_LEVEL, default warning)")
    parser.add_argument("--json-logs", action="store_true", help="Emit diagnostics as JSON")
    parser.add_argument("--log-file", type=Path, default=None, help="Also write diagnostics to this file")
    return parser


def _print_listing(manifest: PluginManifest) -> None:
    for source in (m.source for m in manifest.marketplaces):
        print(f"marketplace: {source}")
    for category, count in manifest.category_counts().items():
        print(f"{category}: {count}")
    print(f"Total: {manifest.total}")


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    level = LogLevel.parse(args.log_level, LogLevel.WARNING) if args.log_level else None
    configure_global_logging(level=level, json_format=args.json_logs, log_file=args.log_file)

    if args.history:
        print(json.dumps(KPILogger(args.kpis_dir).get_summary(), indent=2))
        return EXIT_OK

    config_path = resolve_config_path(
        args.config or get_optional_env(CONFIG_ENV).value_or(str(DEFAULT_MANIFEST_PATH))
    )
    fallback_path = resolve_config_path(args.fallback_config or DEFAULT_FALLBACK_PATH)
    project_root = (args.project_root or Path.cwd()).expanduser()
    executable = args.claude_bin or get_optional_env(CLAUDE_BIN_ENV).value_or(DEFAULT_EXECUTABLE)
    logger.debug(
        "Resolved setup options",
        config_path=str(config_path),
        fallback_path=str(fallback_path),
        project_root=str(project_root),
        executable=executable
    )

    loaded = load_config(config_path)
    if isinstance(loaded, Failure):
        print(f"Error: {loaded.failure()}", file=sys.stderr)
        return EXIT_FAILURE
    config = loaded.unwrap()

    parsed = parse_manifest(config)
    if isinstance(parsed, Failure):
        print(f"Error: {parsed.failure()}", file=sys.stderr)
        return EXIT_FAILURE
    manifest = parsed.unwrap()

    try:
        if args.category:
            manifest = manifest.select(args.category)
        dependency_step = DependencyStep.from_config(config.get('dependencies'))
    except ValidationError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_FAILURE

    if args.skip_deps:
        dependency_step = DependencyStep(
            command=dependency_step.command, cwd=dependency_step.cwd, enabled=False
        )

    if args.list:
        _print_listing(manifest)
        return EXIT_OK

    checker = HealthChecker(
        project_root=project_root,
        executable=executable,
        dependency_step=dependency_step,
        marketplaces=() if args.skip_marketplace else manifest.marketplaces
    )

    if args.check:
        results = checker.run_all()
        overall = checker.get_overall_status(results)
        print(json.dumps({
            "status": overall.value,
            "checks": [r.to_dict() for r in results],
        }, indent=2))
        return EXIT_FAILURE if overall == HealthStatus.UNHEALTHY else EXIT_OK

    orchestrator = SetupOrchestrator(
        manifest=manifest,
        cli=ClaudeCLI(
            executable=executable,
            timeout_seconds=args.timeout,
            dry_run=args.dry_run,
            cwd=project_root
        ),
        fallback_manager=create_fallback_manager(fallback_path),
        dependency_step=dependency_step,
        project_root=project_root,
        kpi_logger=None if args.no_kpis or args.dry_run else KPILogger(args.kpis_dir),
        preflight=checker if args.preflight else None,
        skip_marketplace=args.skip_marketplace
    )
    return orchestrator.run().exit_code


if __name__ == "__main__":
    sys.exit(main())
