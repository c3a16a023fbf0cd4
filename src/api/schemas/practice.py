"""Practice session API schemas."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from src.modules.exam.interface import QuestionKind
from src.shared.models import SessionPhase, SessionTab, TimerUrgency


class CreateSessionRequest(BaseModel):
    """Open a practice session for an exam."""

    exam_id: str = Field(
        ...,
        min_length=1,
        max_length=128,
        description="Exam to practice",
    )


class AnswerRequest(BaseModel):
    """Learner input for the current question.

    Shape depends on the question kind: text, a choice index, a list of
    indices (multiple choice, replaces the selection), a boolean, or a
    ``[key, text]`` pair for cloze gaps and steps.
    """

    value: Any = Field(
        ...,
        description="Input value",
        examples=["photosynthesis", 2, [0, 3], True, ["1", "chlorophyll"]],
    )


class TabRequest(BaseModel):
    """Switch the visible tab."""

    tab: SessionTab


class SetLevelRequest(BaseModel):
    """Self-assessed mastery for one question."""

    question_id: str = Field(..., description="Scorable question id")
    level: float = Field(
        ...,
        description="Mastery level; rounded and clamped to 0-4",
    )


# ===================
# Responses
# ===================


class _FromAttributes(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class ChoiceOptionResponse(_FromAttributes):
    index: int
    label: str
    selected: bool


class ClozePartResponse(_FromAttributes):
    text: str
    gap: str | None
    value: str
    placeholder: str


class StepSlotResponse(_FromAttributes):
    position: int
    value: str
    placeholder: str


class QuestionViewResponse(_FromAttributes):
    """Renderable view of the current exam element."""

    question_id: str
    kind: QuestionKind
    position: int
    total: int
    heading: str
    prompt: str
    hint: str | None
    time_limit_seconds: int | None
    accepts_input: bool
    answer: Any = None
    text_value: str | None = None
    truth_value: bool | None = None
    options: list[ChoiceOptionResponse] = Field(default_factory=list)
    cloze_parts: list[ClozePartResponse] = Field(default_factory=list)
    step_slots: list[StepSlotResponse] = Field(default_factory=list)
    front: str = ""
    title: str = ""
    content: str = ""
    description: str = ""
    embed_url: str | None = None


class TimerResponse(BaseModel):
    """Clock state at the time of the response."""

    elapsed_seconds: int
    elapsed_display: str = Field(..., description="M:SS")
    countdown_remaining: int | None = None
    countdown_limit: int | None = None
    urgency: TimerUrgency | None = None


class SessionStateResponse(BaseModel):
    """Full state of a practice session."""

    id: UUID
    learner_id: UUID
    exam_id: str
    exam_title: str
    exam_description: str
    introduction_text: str
    phase: SessionPhase
    active_tab: SessionTab
    current_index: int
    element_count: int
    is_last_question: bool
    started_at: datetime | None
    timer: TimerResponse
    question: QuestionViewResponse | None = None
    experience_pending: bool = False
    experience_total: int | None = None


class ReviewItemResponse(_FromAttributes):
    question_id: str
    position: int
    kind: QuestionKind
    prompt: str
    learner_answer: str
    model_answer: str
    level: int
    points: int
    max_points: int


class MasteryBreakdownResponse(_FromAttributes):
    fully_correct: int
    partially_correct: int
    needs_improvement: int


class ScoreSummaryResponse(_FromAttributes):
    total_score: int
    per_question_points: dict[str, int]
    correct_questions: int
    total_questions: int
    points_per_question: float
    breakdown: MasteryBreakdownResponse


class ReviewResponse(BaseModel):
    """Review screen: every scorable question with its rating."""

    session_id: UUID
    duration_display: str = Field(..., description="Xmin Ys")
    items: list[ReviewItemResponse]
    summary: ScoreSummaryResponse


class SetLevelResponse(BaseModel):
    question_id: str
    level: int
    points: int
    summary: ScoreSummaryResponse


class SaveResultResponse(BaseModel):
    """Outcome of a fully successful save."""

    session_id: UUID
    exam_id: str
    total_score: int
    total_questions: int
    correct_questions: int
    duration_seconds: int
    experience_total: int
