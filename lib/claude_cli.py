"""
Claude CLI Adapter

Thin wrapper over the external `claude` executable. Every slash command is
passed as a single argument, e.g. `claude "/plugin install feature-dev"`.
Exit codes and output belong to the external tool; anything other than
status 0 is a failure.
"""

from pathlib import Path

from returns.result import Result, Success

from fp_utils import CommandOutput, ExecutionError, safe_execute_command
from logger import get_logger

logger = get_logger(__name__)

DEFAULT_EXECUTABLE = "claude"


class ClaudeCLI:
    """Issues plugin commands to the external CLI."""

    def __init__(
        self,
        executable: str = DEFAULT_EXECUTABLE,
        timeout_seconds: float | None = None,
        dry_run: bool = False,
        cwd: Path | None = None
    ):
        """
        Args:
            executable: Program name or path of the Claude CLI
            timeout_seconds: Per-command limit; None waits indefinitely
            dry_run: Report success without running anything
            cwd: Working directory for the commands
        """
        self.executable = executable
        self.timeout_seconds = timeout_seconds
        self.dry_run = dry_run
        self.cwd = cwd

    def run_slash_command(self, command: str) -> Result[CommandOutput, ExecutionError]:
        argv = (self.executable, command)

        if self.dry_run:
            logger.debug(f"Dry run, not executing: {command}", slash_command=command)
            return Success(CommandOutput(args=argv, returncode=0))

        return safe_execute_command(argv, cwd=self.cwd, timeout_seconds=self.timeout_seconds)

    def install_plugin(self, name: str) -> Result[CommandOutput, ExecutionError]:
        return self.run_slash_command(f"/plugin install {name}")

    def add_marketplace(self, source: str) -> Result[CommandOutput, ExecutionError]:
        return self.run_slash_command(f"/plugin marketplace add {source}")
