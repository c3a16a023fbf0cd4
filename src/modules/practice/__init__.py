"""Practice Module - Practice session engine, scoring and finalization.

Usage:
    # Recommended: Use service registry (respects feature flags)
    from src.shared.service_registry import get_practice_service
    session = await get_practice_service().create_session(learner_id, exam_id)
    session.start()

    # Direct access
    from src.modules.practice import PracticeSession, SelfAssessment
"""

from src.modules.practice.answers import AnswerStore, QuestionView, apply_input, render_question
from src.modules.practice.engine import PracticeSession
from src.modules.practice.finalizer import SessionFinalizer, compute_duration
from src.modules.practice.interface import (
    ClientMetadata,
    FinalizationResult,
    IExperienceStore,
    ISessionRecordSink,
    SessionRecord,
)
from src.modules.practice.scoring import (
    MasteryLevel,
    ReviewItem,
    ScoreSummary,
    SelfAssessment,
    clamp_level,
    model_answer,
    points_for_level,
    points_per_question,
)
from src.modules.practice.service import (
    InMemoryExperienceStore,
    InMemorySessionRecordSink,
    PracticeService,
)
from src.modules.practice.timers import (
    AsyncioTickSource,
    ElapsedClock,
    ITickHandle,
    ITickSource,
    ManualTickSource,
    QuestionCountdown,
)

__all__ = [
    # Answers and rendering
    "AnswerStore",
    "QuestionView",
    "apply_input",
    "render_question",
    # Timers
    "ITickHandle",
    "ITickSource",
    "ManualTickSource",
    "AsyncioTickSource",
    "ElapsedClock",
    "QuestionCountdown",
    # Scoring
    "MasteryLevel",
    "ReviewItem",
    "ScoreSummary",
    "SelfAssessment",
    "clamp_level",
    "model_answer",
    "points_for_level",
    "points_per_question",
    # Finalization
    "ClientMetadata",
    "FinalizationResult",
    "IExperienceStore",
    "ISessionRecordSink",
    "SessionRecord",
    "SessionFinalizer",
    "compute_duration",
    # Sessions
    "PracticeSession",
    "PracticeService",
    "InMemoryExperienceStore",
    "InMemorySessionRecordSink",
]
