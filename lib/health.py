"""
Health Check Module

Preflight checks run before a setup run touches anything: is the Claude
CLI reachable, can the dependency step run, do local marketplaces exist.
"""

import shutil
import sys
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Sequence

from bootstrap import DependencyStep
from manifest import Marketplace


class HealthStatus(Enum):
    """Health check status levels."""
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


@dataclass(frozen=True)
class HealthCheckResult:
    """Result of a single health check."""
    name: str
    status: HealthStatus
    message: str
    details: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "status": self.status.value,
            "message": self.message,
            "details": self.details,
        }


def _looks_like_local_path(source: str) -> bool:
    return source.startswith(("/", "~", "./", "../"))


class HealthChecker:
    """Preflight checker for a setup run."""

    def __init__(
        self,
        project_root: Path,
        executable: str = "claude",
        dependency_step: DependencyStep | None = None,
        marketplaces: Sequence[Marketplace] = ()
    ):
        self.project_root = project_root
        self.executable = executable
        self.dependency_step = dependency_step or DependencyStep()
        self.marketplaces = tuple(marketplaces)

    def check_python_version(self) -> HealthCheckResult:
        version = sys.version_info
        found = f"{version.major}.{version.minor}.{version.micro}"

        if version < (3, 10):
            return HealthCheckResult(
                name="python_version",
                status=HealthStatus.UNHEALTHY,
                message=f"Python 3.10+ required, found {version.major}.{version.minor}",
                details={"version": found}
            )

        return HealthCheckResult(
            name="python_version",
            status=HealthStatus.HEALTHY,
            message=f"Python {found}",
            details={"version": found}
        )

    def check_claude_cli(self) -> HealthCheckResult:
        """The external CLI must be resolvable; every plugin step needs it."""
        resolved = shutil.which(self.executable)
        if resolved is None:
            return HealthCheckResult(
                name="claude_cli",
                status=HealthStatus.UNHEALTHY,
                message=f"'{self.executable}' not found on PATH",
                details={"executable": self.executable}
            )

        return HealthCheckResult(
            name="claude_cli",
            status=HealthStatus.HEALTHY,
            message=f"Found {resolved}",
            details={"executable": self.executable, "path": resolved}
        )

    def check_dependency_tool(self) -> HealthCheckResult:
        if not self.dependency_step.enabled:
            return HealthCheckResult(
                name="dependency_tool",
                status=HealthStatus.HEALTHY,
                message="Dependency step disabled"
            )

        program = self.dependency_step.command[0]
        resolved = shutil.which(program)
        if resolved is None:
            return HealthCheckResult(
                name="dependency_tool",
                status=HealthStatus.UNHEALTHY,
                message=f"'{program}' not found on PATH",
                details={"program": program}
            )

        return HealthCheckResult(
            name="dependency_tool",
            status=HealthStatus.HEALTHY,
            message=f"Found {resolved}",
            details={"program": program, "path": resolved}
        )

    def check_hooks_dir(self) -> HealthCheckResult:
        if not self.dependency_step.enabled:
            return HealthCheckResult(
                name="hooks_dir",
                status=HealthStatus.HEALTHY,
                message="Dependency step disabled"
            )

        work_dir = self.dependency_step.resolve_cwd(self.project_root)
        if not work_dir.is_dir():
            return HealthCheckResult(
                name="hooks_dir",
                status=HealthStatus.UNHEALTHY,
                message=f"Directory not found: {work_dir}",
                details={"path": str(work_dir)}
            )

        return HealthCheckResult(
            name="hooks_dir",
            status=HealthStatus.HEALTHY,
            message="Hooks directory OK",
            details={"path": str(work_dir)}
        )

    def check_marketplaces(self) -> HealthCheckResult:
        """
        Local marketplace paths should exist.

        Only DEGRADED when missing: the external tool has the final word on
        what a source means.
        """
        missing = [
            m.source for m in self.marketplaces
            if _looks_like_local_path(m.source) and not Path(m.source).expanduser().exists()
        ]

        if missing:
            return HealthCheckResult(
                name="marketplaces",
                status=HealthStatus.DEGRADED,
                message=f"Marketplace paths not found: {', '.join(missing)}",
                details={"missing": missing}
            )

        return HealthCheckResult(
            name="marketplaces",
            status=HealthStatus.HEALTHY,
            message=f"{len(self.marketplaces)} marketplace(s) OK",
            details={"sources": [m.source for m in self.marketplaces]}
        )

    def run_all(self) -> list[HealthCheckResult]:
        return [
            self.check_python_version(),
            self.check_claude_cli(),
            self.check_dependency_tool(),
            self.check_hooks_dir(),
            self.check_marketplaces(),
        ]

    def get_overall_status(self, results: list[HealthCheckResult]) -> HealthStatus:
        """Determine overall health from all results."""
        if any(r.status == HealthStatus.UNHEALTHY for r in results):
            return HealthStatus.UNHEALTHY
        if any(r.status == HealthStatus.DEGRADED for r in results):
            return HealthStatus.DEGRADED
        return HealthStatus.HEALTHY
