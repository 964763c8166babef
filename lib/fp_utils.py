"""
Functional Programming Utilities

Result/Maybe wrappers (returns library) for everything that touches the
outside world: YAML config files, environment variables and external
commands. Callers branch on Success/Failure instead of catching exceptions.
"""

import os
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Sequence

from returns.maybe import Maybe, Nothing, Some
from returns.result import Failure, Result, Success, safe

from logger import get_logger

logger = get_logger(__name__)


# ============================================================================
# Error Types
# ============================================================================

class ConfigError(Exception):
    """Configuration file error."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Config error at {path}: {reason}")


class ValidationError(Exception):
    """Validation error."""

    def __init__(self, check_name: str, reason: str):
        self.check_name = check_name
        self.reason = reason
        super().__init__(f"Validation failed '{check_name}': {reason}")


class ExecutionError(Exception):
    """External command error."""

    def __init__(self, command: str, reason: str, returncode: int | None = None):
        self.command = command
        self.reason = reason
        self.returncode = returncode
        super().__init__(f"Execution error in '{command}': {reason}")


@dataclass(frozen=True)
class CommandOutput:
    """Captured output of a command that exited with status 0."""
    args: tuple[str, ...]
    returncode: int
    stdout: str = ""
    stderr: str = ""


# ============================================================================
# Config
# ============================================================================

@safe
def _read_yaml_file(path: Path) -> Any:
    """Read a YAML file. Empty files yield an empty dict."""
    import yaml
    with open(path, 'r', encoding='utf-8') as f:
        result = yaml.safe_load(f)
        return result if result is not None else {}


def load_config(config_path: Path) -> Result[dict[str, Any], ConfigError]:
    """
    Load YAML configuration with Result type.

    Args:
        config_path: Path to YAML config file

    Returns:
        Success[dict] if file loaded and holds a mapping
        Failure[ConfigError] if file not found, invalid YAML or not a mapping

    Example:
        >>> match load_config(Path("config/plugins.yaml")):
        ...     case Success(config):
        ...         print(sorted(config))
        ...     case Failure(error):
        ...         print(f"Error: {error}")
    """
    logger.debug(f"Loading config from {config_path}", config_path=str(config_path))

    if not config_path.exists():
        logger.warning(f"Config file not found: {config_path}", config_path=str(config_path))
        return Failure(ConfigError(path=str(config_path), reason="File not found"))

    result = _read_yaml_file(config_path)

    if isinstance(result, Failure):
        exc = result.failure()
        logger.error(
            f"Failed to load config: {config_path}",
            config_path=str(config_path),
            error=str(exc)
        )
        return Failure(ConfigError(path=str(config_path), reason=f"Invalid YAML: {exc}"))

    data = result.unwrap()
    if not isinstance(data, dict):
        return Failure(ConfigError(
            path=str(config_path),
            reason=f"Top level must be a mapping, got {type(data).__name__}"
        ))

    logger.debug(
        f"Successfully loaded config from {config_path}",
        config_path=str(config_path),
        keys_count=len(data)
    )
    return Success(data)


def get_optional_env(key: str) -> Maybe[str]:
    """
    Get optional environment variable.

    Returns Some[str] if set and non-empty, Nothing otherwise.

    Example:
        >>> get_optional_env("CLAUDE_SETUP_CLAUDE_BIN").value_or("claude")
    """
    value = os.environ.get(key)
    return Some(value) if value else Nothing


# ============================================================================
# External Commands
# ============================================================================

def safe_execute_command(
    args: Sequence[str],
    cwd: Path | None = None,
    timeout_seconds: float | None = None
) -> Result[CommandOutput, ExecutionError]:
    """
    Run an external command without a shell and wrap the outcome.

    Output is captured, never streamed. A non-zero exit status, a missing
    executable, any OS error and an expired timeout all become a Failure.

    Args:
        args: Program and arguments
        cwd: Working directory (inherits the current one when None)
        timeout_seconds: Optional limit; None waits indefinitely

    Returns:
        Success[CommandOutput] if the command exits 0
        Failure[ExecutionError] otherwise
    """
    argv = tuple(args)
    display = " ".join(argv)

    logger.debug(
        f"Executing command: {display[:80]}",
        command=display[:200],
        cwd=str(cwd) if cwd else None
    )

    try:
        result = subprocess.run(
            list(argv),
            shell=False,
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="replace",
            cwd=cwd,
            timeout=timeout_seconds
        )
    except subprocess.TimeoutExpired:
        logger.error(f"Command timeout: {display[:80]}", timeout_seconds=timeout_seconds)
        return Failure(ExecutionError(
            command=display,
            reason=f"Timeout after {timeout_seconds}s"
        ))
    except FileNotFoundError:
        if cwd is not None and not Path(cwd).is_dir():
            logger.error(f"Working directory not found: {cwd}", command=display[:200])
            return Failure(ExecutionError(command=display, reason=f"Directory not found: {cwd}"))
        logger.error(f"Command not found: {argv[0]}", command=display[:200])
        return Failure(ExecutionError(command=display, reason=f"Executable not found: {argv[0]}"))
    except OSError as e:
        logger.error(f"Command error: {display[:80]}", error=str(e))
        return Failure(ExecutionError(command=display, reason=str(e)))
    except ValueError as e:
        logger.error(f"Invalid command: {display[:80]}", error=str(e))
        return Failure(ExecutionError(command=display, reason=str(e)))

    if result.returncode != 0:
        reason = (result.stderr or result.stdout or "").strip() or f"exit status {result.returncode}"
        logger.warning(
            f"Command failed: {display[:80]}",
            returncode=result.returncode,
            error=reason[:200]
        )
        return Failure(ExecutionError(
            command=display,
            reason=reason,
            returncode=result.returncode
        ))

    logger.debug(f"Command succeeded: {display[:80]}", stdout_preview=result.stdout[:200])
    return Success(CommandOutput(
        args=argv,
        returncode=result.returncode,
        stdout=result.stdout,
        stderr=result.stderr
    ))
