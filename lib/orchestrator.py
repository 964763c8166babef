"""
Setup Orchestrator

Runs a complete workstation setup in order:

1. optional preflight checks
2. hook dependency install          (fail-fast)
3. marketplace registration         (fail-fast)
4. plugin installation loop         (failures reduced to warnings)
5. summary + KPI record

The console narration mirrors what users of the setup script are used to
seeing; diagnostics go through the logger.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from returns.result import Failure

from bootstrap import DependencyStep, install_dependencies
from claude_cli import ClaudeCLI
from fallback import DEPENDENCIES, KPI, MARKETPLACE, FallbackAction, FallbackPolicyManager
from health import HealthChecker, HealthStatus
from installer import Echo, InstallReport, PluginInstaller
from kpi_logger import KPILogger
from logger import LogLevel, get_logger, log_execution
from manifest import PluginManifest
from utils import measure_duration_ms, new_session_id

logger = get_logger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1


@dataclass(frozen=True)
class SetupResult:
    """What a setup run produced."""
    exit_code: int
    report: InstallReport | None = None
    stage_failed: str | None = None


class SetupOrchestrator:
    """Sequences the setup stages and applies their failure policies."""

    def __init__(
        self,
        manifest: PluginManifest,
        cli: ClaudeCLI,
        fallback_manager: FallbackPolicyManager,
        dependency_step: DependencyStep,
        project_root: Path,
        kpi_logger: KPILogger | None = None,
        echo: Echo = print,
        preflight: HealthChecker | None = None,
        skip_marketplace: bool = False,
        session_id_factory: Callable[[], str] = new_session_id
    ):
        self.manifest = manifest
        self.cli = cli
        self.fallback_manager = fallback_manager
        self.dependency_step = dependency_step
        self.project_root = project_root
        self.kpi_logger = kpi_logger
        self.echo = echo
        self.preflight = preflight
        self.skip_marketplace = skip_marketplace
        self.session_id = session_id_factory()

    def _run_preflight(self) -> bool:
        if self.preflight is None:
            return True

        results = self.preflight.run_all()
        overall = self.preflight.get_overall_status(results)
        for result in results:
            if result.status != HealthStatus.HEALTHY:
                self.echo(f"  {result.status.value.upper()}: {result.name}: {result.message}")

        logger.info(f"Preflight status: {overall.value}", status=overall.value)
        return overall != HealthStatus.UNHEALTHY

    def _install_dependencies(self) -> bool:
        if not self.dependency_step.enabled:
            logger.info("Skipping hook dependencies")
            return True

        self.echo("Installing hooks dependencies...")
        if self.cli.dry_run:
            logger.debug("Dry run, not installing hook dependencies")
            return True

        result = install_dependencies(
            self.dependency_step,
            self.project_root,
            timeout_seconds=self.cli.timeout_seconds
        )

        if isinstance(result, Failure):
            error = result.failure()
            action, message = self.fallback_manager.handle_failure(DEPENDENCIES, error)
            self.echo(f"Error: {message}: {error.reason}")
            return not self.fallback_manager.should_abort(action)
        return True

    def _add_marketplaces(self) -> bool:
        for marketplace in self.manifest.marketplaces:
            self.echo("Adding plugin marketplace...")
            result = self.cli.add_marketplace(marketplace.source)

            if isinstance(result, Failure):
                error = result.failure()
                action, message = self.fallback_manager.handle_failure(
                    MARKETPLACE, error, source=marketplace.source
                )
                if self.fallback_manager.should_abort(action):
                    self.echo(f"Error: {message}: {marketplace.source}")
                    return False
                if action == FallbackAction.CONTINUE_WITH_WARNING:
                    self.echo(f"  Warning: {message}: {marketplace.source}")
        return True

    def _record(self, result: SetupResult, duration_ms: int) -> None:
        if self.kpi_logger is None:
            return

        report = result.report
        try:
            self.kpi_logger.log_setup_run(
                session_id=self.session_id,
                total=self.manifest.total,
                succeeded=len(report.succeeded) if report else 0,
                failed=len(report.failed) if report else 0,
                duration_ms=duration_ms,
                failed_plugins=report.failed_names if report else [],
                aborted=report.aborted if report else False,
                stage_failed=result.stage_failed
            )
        except OSError as e:
            self.fallback_manager.handle_failure(KPI, e)

    def _run_stages(self) -> SetupResult:
        self.echo("=== Claude Code Setup ===")

        if not self._run_preflight():
            self.echo("Preflight checks failed, nothing was changed.")
            return SetupResult(EXIT_FAILURE, stage_failed="preflight")

        if not self._install_dependencies():
            return SetupResult(EXIT_FAILURE, stage_failed=DEPENDENCIES)

        self.echo("")
        self.echo("=== Installing Plugins ===")
        self.echo("")

        if not self.skip_marketplace and not self._add_marketplaces():
            return SetupResult(EXIT_FAILURE, stage_failed=MARKETPLACE)

        installer = PluginInstaller(self.cli, self.fallback_manager, echo=self.echo)
        report = installer.install_all(self.manifest.plugins())

        if report.aborted:
            return SetupResult(EXIT_FAILURE, report=report, stage_failed="plugin_install")

        self.echo("")
        self.echo("=== Setup Complete ===")
        self.echo("")
        self.echo(f"Installed {self.manifest.total} plugins.")

        return SetupResult(EXIT_OK, report=report)

    @log_execution(level=LogLevel.DEBUG)
    def run(self) -> SetupResult:
        """
        Execute every stage and record the run.

        Returns:
            SetupResult with exit_code 0 unless a fail-fast stage (or an
            unhealthy preflight) stopped the run
        """
        result, duration_ms = measure_duration_ms(self._run_stages)
        self._record(result, duration_ms)
        return result
