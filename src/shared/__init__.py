"""Shared utilities and common code."""

from src.shared.config import Settings, get_settings
from src.shared.database import (
    Base,
    close_db,
    get_db_session,
    init_db,
    shutdown,
    startup,
)
from src.shared.models import SessionPhase, SessionTab, TimerUrgency

__all__ = [
    # Config
    "Settings",
    "get_settings",
    # Database
    "Base",
    "get_db_session",
    "init_db",
    "close_db",
    "startup",
    "shutdown",
    # Enums
    "SessionPhase",
    "SessionTab",
    "TimerUrgency",
]
