"""
Dependency Bootstrap Module

Installs the hook dependencies before any plugin work starts
(`npm install` inside .claude/hooks by default). This step is fail-fast:
its Failure stops the whole setup run.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any

from returns.result import Failure, Result, Success

from fp_utils import CommandOutput, ExecutionError, ValidationError, safe_execute_command
from logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class DependencyStep:
    """Command that installs prerequisites, and where to run it."""
    command: tuple[str, ...] = ("npm", "install")
    cwd: str = ".claude/hooks"
    enabled: bool = True

    def resolve_cwd(self, project_root: Path) -> Path:
        path = Path(self.cwd).expanduser()
        return path if path.is_absolute() else project_root / path

    @classmethod
    def from_config(cls, raw: Any) -> 'DependencyStep':
        """
        Build a step from the optional 'dependencies' section of plugins.yaml.

        Raises:
            ValidationError: If the section is malformed
        """
        if raw is None:
            return cls()
        if not isinstance(raw, dict):
            raise ValidationError("dependencies", "'dependencies' must be a mapping")

        command = raw.get('command', list(cls.command))
        if isinstance(command, str):
            command = command.split()
        if not isinstance(command, list) or not command or not all(isinstance(c, str) for c in command):
            raise ValidationError("dependencies", "'command' must be a non-empty list of strings")

        return cls(
            command=tuple(command),
            cwd=str(raw.get('cwd', cls.cwd)),
            enabled=bool(raw.get('enabled', True))
        )


def install_dependencies(
    step: DependencyStep,
    project_root: Path,
    timeout_seconds: float | None = None
) -> Result[CommandOutput, ExecutionError]:
    """
    Run the dependency step.

    Args:
        step: What to run
        project_root: Base for a relative step.cwd
        timeout_seconds: Optional limit for the command

    Returns:
        Success when the command exits 0 or the step is disabled,
        Failure[ExecutionError] otherwise (including a missing directory)
    """
    display = " ".join(step.command)

    if not step.enabled:
        logger.info("Dependency step disabled, skipping")
        return Success(CommandOutput(args=step.command, returncode=0))

    work_dir = step.resolve_cwd(project_root)
    if not work_dir.is_dir():
        logger.error(f"Dependency directory not found: {work_dir}", work_dir=str(work_dir))
        return Failure(ExecutionError(command=display, reason=f"Directory not found: {work_dir}"))

    logger.info(f"Installing dependencies in {work_dir}", work_dir=str(work_dir), command=display)
    return safe_execute_command(step.command, cwd=work_dir, timeout_seconds=timeout_seconds)
