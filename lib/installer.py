"""
Plugin Installation Loop

Installs plugins one at a time, in list order, narrating progress as
`[n/total] Installing <name>...`. A failed install is handed to the
`plugin_install` fallback policy; unless that policy is CRITICAL the
loop moves on to the next name. Every name gets exactly one attempt.
"""

import time
from dataclasses import dataclass, field
from typing import Callable, Protocol, Sequence

from returns.result import Failure, Result

from fallback import PLUGIN_INSTALL, FallbackAction, FallbackPolicyManager
from fp_utils import CommandOutput, ExecutionError
from logger import get_logger
from manifest import Plugin

logger = get_logger(__name__)

Echo = Callable[[str], None]


class PluginInstallerBackend(Protocol):
    def install_plugin(self, name: str) -> Result[CommandOutput, ExecutionError]: ...


@dataclass(frozen=True)
class InstallFailure:
    """A plugin whose install command did not succeed."""
    name: str
    reason: str


@dataclass
class InstallReport:
    """Outcome of one pass over the plugin list."""
    total: int
    attempted: list[str] = field(default_factory=list)
    succeeded: list[str] = field(default_factory=list)
    failed: list[InstallFailure] = field(default_factory=list)
    warning_count: int = 0
    duration_ms: int = 0
    aborted: bool = False

    @property
    def failed_names(self) -> list[str]:
        return [f.name for f in self.failed]


class PluginInstaller:
    """Runs the sequential install loop."""

    def __init__(
        self,
        cli: PluginInstallerBackend,
        fallback_manager: FallbackPolicyManager,
        echo: Echo = print
    ):
        self.cli = cli
        self.fallback_manager = fallback_manager
        self.echo = echo

    def install_all(self, plugins: Sequence[Plugin | str]) -> InstallReport:
        """
        Attempt every plugin once, in order.

        Args:
            plugins: Plugins or bare names; duplicates are attempted again

        Returns:
            InstallReport listing what was attempted, what succeeded and
            what failed
        """
        names = [p.name if isinstance(p, Plugin) else p for p in plugins]
        total = len(names)
        report = InstallReport(total=total)
        start = time.perf_counter()

        for position, name in enumerate(names, start=1):
            self.echo(f"[{position}/{total}] Installing {name}...")
            report.attempted.append(name)

            with logger.context(plugin=name, position=position, total=total):
                result = self.cli.install_plugin(name)

                if not isinstance(result, Failure):
                    report.succeeded.append(name)
                    logger.debug(f"Installed {name}")
                    continue

                error = result.failure()
                report.failed.append(InstallFailure(name=name, reason=error.reason))
                action, message = self.fallback_manager.handle_failure(
                    PLUGIN_INSTALL, error, plugin=name
                )

            if action in (FallbackAction.CONTINUE_WITH_WARNING, FallbackAction.CRITICAL):
                self.echo(f"  Warning: {message}")
                report.warning_count += 1

            if self.fallback_manager.should_abort(action):
                logger.error(f"Aborting plugin installation after {name}", plugin=name)
                report.aborted = True
                break

        report.duration_ms = int((time.perf_counter() - start) * 1000)
        logger.info(
            "Plugin installation pass complete",
            total=total,
            succeeded=len(report.succeeded),
            failed=len(report.failed),
            duration_ms=report.duration_ms
        )
        return report
