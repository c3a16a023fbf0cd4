"""Feature flag management for safe feature rollout.

This module provides a centralized system for toggling features on/off
without code changes, enabling gradual rollout and quick rollback.

Usage:
    from src.shared.feature_flags import get_feature_flags, FeatureFlags

    flags = get_feature_flags()
    if flags.is_enabled(FeatureFlags.USE_DATABASE_PERSISTENCE):
        # Use database-backed collaborators
    else:
        # Use in-memory collaborators

Environment Variables:
    FF_USE_DATABASE_PERSISTENCE: Persist exams, session records and experience in PostgreSQL (default: false)
    FF_ENABLE_BACKGROUND_SCHEDULER: Drive practice timers from APScheduler (default: false)
"""

from enum import Enum
from functools import lru_cache
import logging
import os

logger = logging.getLogger(__name__)


class FeatureFlags(str, Enum):
    """Available feature flags.

    Each flag corresponds to an environment variable with FF_ prefix.
    """

    USE_DATABASE_PERSISTENCE = "use_database_persistence"
    ENABLE_BACKGROUND_SCHEDULER = "enable_background_scheduler"

    @property
    def env_key(self) -> str:
        """Get the environment variable name for this flag."""
        return f"FF_{self.value.upper()}"


class FeatureFlagManager:
    """Manages feature flags with environment variable and runtime overrides.

    Singleton that supports:
    - Environment variable configuration
    - Runtime overrides for testing
    - Logging of flag state changes
    """

    _instance: "FeatureFlagManager | None" = None

    def __new__(cls) -> "FeatureFlagManager":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self) -> None:
        if self._initialized:
            return
        self._overrides: dict[str, bool] = {}
        self._initialized = True
        logger.info("FeatureFlagManager initialized")

    def is_enabled(self, flag: FeatureFlags) -> bool:
        """Check if a feature flag is enabled.

        Priority:
        1. Runtime overrides (set via enable/disable methods)
        2. Environment variables (FF_<FLAG_NAME>=true/false)
        3. Default (false)

        Args:
            flag: The feature flag to check

        Returns:
            True if the flag is enabled, False otherwise
        """
        if flag.value in self._overrides:
            return self._overrides[flag.value]

        env_value = os.getenv(flag.env_key, "false").lower()
        return env_value in ("true", "1", "yes", "on")

    def enable(self, flag: FeatureFlags) -> None:
        """Enable a feature flag at runtime."""
        self._overrides[flag.value] = True
        logger.info(f"Feature flag enabled: {flag.value}")

    def disable(self, flag: FeatureFlags) -> None:
        """Disable a feature flag at runtime."""
        self._overrides[flag.value] = False
        logger.info(f"Feature flag disabled: {flag.value}")

    def clear_override(self, flag: FeatureFlags) -> None:
        """Clear runtime override for a flag, reverting to environment variable."""
        if flag.value in self._overrides:
            del self._overrides[flag.value]
            logger.info(f"Feature flag override cleared: {flag.value}")

    def clear_all_overrides(self) -> None:
        """Clear all runtime overrides, reverting to environment variables."""
        self._overrides.clear()
        logger.info("All feature flag overrides cleared")

    def get_all_states(self) -> dict[str, bool]:
        """Get the current state of all feature flags."""
        return {flag.value: self.is_enabled(flag) for flag in FeatureFlags}

    def __repr__(self) -> str:
        states = self.get_all_states()
        enabled = [k for k, v in states.items() if v]
        return f"FeatureFlagManager(enabled={enabled})"


@lru_cache
def get_feature_flags() -> FeatureFlagManager:
    """Get the singleton FeatureFlagManager instance."""
    return FeatureFlagManager()


def is_database_persistence_enabled() -> bool:
    """Check if database persistence is enabled."""
    return get_feature_flags().is_enabled(FeatureFlags.USE_DATABASE_PERSISTENCE)


def is_background_scheduler_enabled() -> bool:
    """Check if practice timers are driven by the APScheduler tick source."""
    return get_feature_flags().is_enabled(FeatureFlags.ENABLE_BACKGROUND_SCHEDULER)
