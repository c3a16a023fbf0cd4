"""Unified service registry for dependency injection.

This module provides a centralized service factory that switches between
in-memory and database-backed implementations based on feature flags.

Usage:
    from src.shared.service_registry import get_service_registry

    registry = get_service_registry()
    practice_service = registry.get_practice_service()
    exam_loader = registry.get_exam_loader()

The registry automatically:
- Returns DB collaborators when FF_USE_DATABASE_PERSISTENCE=true
- Returns the APScheduler tick source when FF_ENABLE_BACKGROUND_SCHEDULER=true
- Falls back to in-memory / file implementations when DB is unavailable
- Caches service instances for consistent singleton behavior
- Logs service creation for debugging
"""

from functools import lru_cache
from typing import TYPE_CHECKING
import logging

from src.shared.config import get_settings
from src.shared.feature_flags import FeatureFlags, get_feature_flags

if TYPE_CHECKING:
    from src.modules.exam.interface import IExamLoader
    from src.modules.practice.interface import IExperienceStore, ISessionRecordSink
    from src.modules.practice.service import PracticeService
    from src.modules.practice.timers import ITickSource

logger = logging.getLogger(__name__)


class ServiceRegistry:
    """Unified service factory with feature flag support.

    This registry manages service instantiation across the application,
    providing a single point of control for switching between implementations.

    Features:
    - Lazy service instantiation
    - Feature flag-based implementation selection
    - Automatic fallback on connection errors
    - Service instance caching
    """

    _instance: "ServiceRegistry | None" = None

    def __new__(cls) -> "ServiceRegistry":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self) -> None:
        if self._initialized:
            return
        self._flags = get_feature_flags()
        self._exam_loader: "IExamLoader | None" = None
        self._record_sink: "ISessionRecordSink | None" = None
        self._experience_store: "IExperienceStore | None" = None
        self._tick_source: "ITickSource | None" = None
        self._practice_service: "PracticeService | None" = None
        self._initialized = True
        logger.info("ServiceRegistry initialized")

    def get_exam_loader(self) -> "IExamLoader":
        """Get the exam loader.

        Returns the database loader if FF_USE_DATABASE_PERSISTENCE is enabled,
        otherwise a loader over the JSON exam library directory.
        """
        if self._exam_loader is None:
            self._exam_loader = self._create_exam_loader()
        return self._exam_loader

    def get_session_record_sink(self) -> "ISessionRecordSink":
        """Get the session record sink."""
        if self._record_sink is None:
            self._record_sink = self._create_record_sink()
        return self._record_sink

    def get_experience_store(self) -> "IExperienceStore":
        """Get the learner experience store."""
        if self._experience_store is None:
            self._experience_store = self._create_experience_store()
        return self._experience_store

    def get_tick_source(self) -> "ITickSource":
        """Get the tick source that drives session timers.

        Returns the shared APScheduler source if FF_ENABLE_BACKGROUND_SCHEDULER
        is enabled, otherwise a ``call_later`` source on the running loop.
        """
        if self._tick_source is None:
            self._tick_source = self._create_tick_source()
        return self._tick_source

    def get_practice_service(self) -> "PracticeService":
        """Get the practice service wired with the selected collaborators."""
        if self._practice_service is None:
            from src.modules.practice.service import PracticeService

            logger.info("Creating PracticeService")
            self._practice_service = PracticeService(
                self.get_exam_loader(),
                self.get_session_record_sink(),
                self.get_experience_store(),
                self.get_tick_source(),
            )
        return self._practice_service

    def _create_exam_loader(self) -> "IExamLoader":
        """Create exam loader based on feature flags."""
        if self._flags.is_enabled(FeatureFlags.USE_DATABASE_PERSISTENCE):
            try:
                from src.modules.exam.db_service import DatabaseExamLoader

                logger.info("Creating DatabaseExamLoader")
                return DatabaseExamLoader()
            except Exception as e:
                logger.warning(
                    f"Failed to create DatabaseExamLoader, falling back: {e}"
                )

        from src.modules.exam.service import JsonFileExamLoader

        library_dir = get_settings().exam_library_dir
        logger.info(f"Creating JsonFileExamLoader for {library_dir}")
        return JsonFileExamLoader(library_dir)

    def _create_record_sink(self) -> "ISessionRecordSink":
        """Create session record sink based on feature flags."""
        if self._flags.is_enabled(FeatureFlags.USE_DATABASE_PERSISTENCE):
            try:
                from src.modules.practice.db_service import DatabaseSessionRecordSink

                logger.info("Creating DatabaseSessionRecordSink")
                return DatabaseSessionRecordSink()
            except Exception as e:
                logger.warning(
                    f"Failed to create DatabaseSessionRecordSink, falling back: {e}"
                )

        from src.modules.practice.service import InMemorySessionRecordSink

        logger.info("Creating in-memory InMemorySessionRecordSink")
        return InMemorySessionRecordSink()

    def _create_experience_store(self) -> "IExperienceStore":
        """Create experience store based on feature flags."""
        if self._flags.is_enabled(FeatureFlags.USE_DATABASE_PERSISTENCE):
            try:
                from src.modules.practice.db_service import DatabaseExperienceStore

                logger.info("Creating DatabaseExperienceStore")
                return DatabaseExperienceStore()
            except Exception as e:
                logger.warning(
                    f"Failed to create DatabaseExperienceStore, falling back: {e}"
                )

        from src.modules.practice.service import InMemoryExperienceStore

        logger.info("Creating in-memory InMemoryExperienceStore")
        return InMemoryExperienceStore()

    def _create_tick_source(self) -> "ITickSource":
        """Create tick source based on feature flags."""
        if self._flags.is_enabled(FeatureFlags.ENABLE_BACKGROUND_SCHEDULER):
            from src.jobs.scheduler import SchedulerTickSource, get_scheduler

            logger.info("Creating SchedulerTickSource")
            return SchedulerTickSource(get_scheduler())

        from src.modules.practice.timers import AsyncioTickSource

        logger.info("Creating AsyncioTickSource")
        return AsyncioTickSource()

    def clear_cache(self) -> None:
        """Clear all cached service instances.

        Use this when feature flags change at runtime to force
        recreation of services with new settings.
        """
        self._exam_loader = None
        self._record_sink = None
        self._experience_store = None
        self._tick_source = None
        self._practice_service = None
        logger.info("ServiceRegistry cache cleared")

    def get_service_info(self) -> dict[str, str]:
        """Get information about currently instantiated services.

        Returns:
            Dictionary of service names to their implementation types
        """
        info = {}
        if self._exam_loader:
            info["exam_loader"] = type(self._exam_loader).__name__
        if self._record_sink:
            info["record_sink"] = type(self._record_sink).__name__
        if self._experience_store:
            info["experience_store"] = type(self._experience_store).__name__
        if self._tick_source:
            info["tick_source"] = type(self._tick_source).__name__
        if self._practice_service:
            info["practice"] = type(self._practice_service).__name__
        return info

    def __repr__(self) -> str:
        db_enabled = self._flags.is_enabled(FeatureFlags.USE_DATABASE_PERSISTENCE)
        return f"ServiceRegistry(db_enabled={db_enabled}, services={self.get_service_info()})"


@lru_cache
def get_service_registry() -> ServiceRegistry:
    """Get the singleton ServiceRegistry instance.

    Returns:
        The shared ServiceRegistry instance
    """
    return ServiceRegistry()


# Convenience functions for common service access
def get_exam_loader() -> "IExamLoader":
    """Get exam loader from the registry."""
    return get_service_registry().get_exam_loader()


def get_practice_service() -> "PracticeService":
    """Get practice service from the registry.

    This is the recommended way to get a practice service instance,
    as it respects feature flags and provides fallback behavior.
    """
    return get_service_registry().get_practice_service()
