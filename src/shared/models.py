"""Common enums used across modules."""

from enum import Enum


class SessionPhase(str, Enum):
    """Phase of a practice session state machine."""

    INTRO = "intro"
    IN_QUESTION = "in_question"
    REVIEW = "review"
    SUBMITTING = "submitting"
    FINALIZED = "finalized"


class SessionTab(str, Enum):
    """Visible tab while a session is running (display only)."""

    INTRO = "intro"
    QUESTIONS = "questions"


class TimerUrgency(str, Enum):
    """How close a question countdown is to expiring."""

    CALM = "calm"
    WARNING = "warning"
    CRITICAL = "critical"
