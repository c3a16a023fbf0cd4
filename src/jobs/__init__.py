"""Background jobs package.

This package provides the shared tick scheduler that drives practice
session timers in the API host.
"""

from src.jobs.scheduler import SchedulerTickSource, TickScheduler, get_scheduler

__all__ = ["SchedulerTickSource", "TickScheduler", "get_scheduler"]
