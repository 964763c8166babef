"""
Fallback Policies Module

Decides what a failed setup step means for the rest of the run.
Two policies coexist by default: the prerequisite steps (dependencies,
marketplace) abort the run, while a failed plugin install is reduced to
a warning and the batch continues.
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from logger import get_logger

logger = get_logger(__name__)

DEPENDENCIES = "dependencies"
MARKETPLACE = "marketplace"
PLUGIN_INSTALL = "plugin_install"
KPI = "kpi"


class FallbackAction(Enum):
    """Action to take when a step fails."""
    LOG_ONLY = "log_only"
    CONTINUE = "continue"
    CONTINUE_WITH_WARNING = "continue_with_warning"
    CRITICAL = "critical"


@dataclass(frozen=True)
class FallbackPolicy:
    """Fallback policy configuration for a specific step."""
    step_name: str
    description: str
    on_failure: FallbackAction
    user_message: str


DEFAULT_POLICIES: dict[str, FallbackPolicy] = {
    DEPENDENCIES: FallbackPolicy(
        step_name=DEPENDENCIES,
        description='Hook dependency installation',
        on_failure=FallbackAction.CRITICAL,
        user_message='Failed to install hook dependencies'
    ),
    MARKETPLACE: FallbackPolicy(
        step_name=MARKETPLACE,
        description='Plugin marketplace registration',
        on_failure=FallbackAction.CRITICAL,
        user_message='Failed to add plugin marketplace'
    ),
    PLUGIN_INSTALL: FallbackPolicy(
        step_name=PLUGIN_INSTALL,
        description='Single plugin installation',
        on_failure=FallbackAction.CONTINUE_WITH_WARNING,
        user_message='Failed to install {plugin}'
    ),
    KPI: FallbackPolicy(
        step_name=KPI,
        description='Run history recording',
        on_failure=FallbackAction.LOG_ONLY,
        user_message='Could not record setup run'
    ),
}


class FallbackPolicyManager:
    """Manages fallback behavior for step failures."""

    def __init__(self, config_path: Path | None = None):
        """
        Initialize policy manager, optionally from a config file.

        Missing or unreadable config falls back to DEFAULT_POLICIES.
        Steps absent from the file keep their default policy.

        Args:
            config_path: Path to fallback.yaml config file
        """
        self.policies: dict[str, FallbackPolicy] = dict(DEFAULT_POLICIES)

        if config_path is None:
            return

        import yaml
        from yaml import YAMLError

        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                config = yaml.safe_load(f) or {}
        except (YAMLError, OSError) as e:
            logger.error(f"Failed to load fallback policies from {config_path}: {e}")
            return

        policies_config = config.get('policies', {}) if isinstance(config, dict) else {}
        for step_name, policy_config in (policies_config or {}).items():
            if not isinstance(policy_config, dict):
                logger.warning(f"Ignoring malformed policy for '{step_name}'", step=str(step_name))
                continue
            default = self.policies.get(step_name)
            self.policies[step_name] = FallbackPolicy(
                step_name=step_name,
                description=str(policy_config.get('description', default.description if default else '')),
                on_failure=self._parse_action(
                    policy_config.get('on_failure'),
                    default.on_failure if default else FallbackAction.LOG_ONLY
                ),
                user_message=str(policy_config.get('user_message', default.user_message if default else ''))
            )

        logger.debug(f"Loaded {len(self.policies)} fallback policies", policy_count=len(self.policies))

    def _parse_action(self, action_str: str | None, default: FallbackAction) -> FallbackAction:
        """Parse action string to FallbackAction enum."""
        if action_str is None:
            return default
        try:
            return FallbackAction(str(action_str).lower())
        except ValueError:
            logger.warning(f"Unknown fallback action '{action_str}', using {default.value}")
            return default

    def get_policy(self, step_name: str) -> FallbackPolicy:
        """
        Get fallback policy for a step.

        Returns:
            FallbackPolicy for the step, or a LOG_ONLY default if not found
        """
        if step_name in self.policies:
            return self.policies[step_name]

        logger.warning(f"No fallback policy found for '{step_name}', using LOG_ONLY")
        return FallbackPolicy(
            step_name=step_name,
            description='Unknown step',
            on_failure=FallbackAction.LOG_ONLY,
            user_message=f'{step_name} failed, continuing'
        )

    def handle_failure(
        self,
        step_name: str,
        error: Exception,
        **fields: str
    ) -> tuple[FallbackAction, str]:
        """
        Determine fallback action for a step failure.

        Args:
            step_name: Name of the step that failed
            error: The error that occurred
            **fields: Values substituted into the policy's user_message

        Returns:
            Tuple of (action, user_message)
        """
        policy = self.get_policy(step_name)
        action = policy.on_failure

        logger.warning(
            f"Step failure: {step_name}",
            step=step_name,
            error=str(error),
            action=action.value,
            **fields
        )

        try:
            message = policy.user_message.format(**fields)
        except (KeyError, IndexError, ValueError):
            message = policy.user_message
        return action, message

    def should_abort(self, action: FallbackAction) -> bool:
        """True when the action stops the run with a non-zero exit code."""
        return action == FallbackAction.CRITICAL


def create_fallback_manager(config_path: Path) -> FallbackPolicyManager:
    """
    Convenience function to create fallback policy manager.

    A config path that does not exist means the built-in defaults.

    Args:
        config_path: Path to fallback.yaml
    """
    if not config_path.exists():
        logger.debug(f"No fallback config at {config_path}, using defaults")
        return FallbackPolicyManager()
    return FallbackPolicyManager(config_path)
