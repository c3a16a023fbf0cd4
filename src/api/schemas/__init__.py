"""API schemas package."""

from src.api.schemas.common import (
    ErrorResponse,
    SuccessResponse,
)
from src.api.schemas.practice import (
    AnswerRequest,
    CreateSessionRequest,
    QuestionViewResponse,
    ReviewItemResponse,
    ReviewResponse,
    SaveResultResponse,
    ScoreSummaryResponse,
    SessionStateResponse,
    SetLevelRequest,
    SetLevelResponse,
    TabRequest,
    TimerResponse,
)

__all__ = [
    # Common
    "ErrorResponse",
    "SuccessResponse",
    # Practice
    "CreateSessionRequest",
    "AnswerRequest",
    "TabRequest",
    "SetLevelRequest",
    "QuestionViewResponse",
    "TimerResponse",
    "SessionStateResponse",
    "ReviewItemResponse",
    "ScoreSummaryResponse",
    "ReviewResponse",
    "SetLevelResponse",
    "SaveResultResponse",
]
