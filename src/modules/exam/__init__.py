"""Exam Module - Question model and exam content loading.

Usage:
    # Recommended: Use service registry (respects feature flags)
    from src.shared.service_registry import get_exam_loader
    exam = await get_exam_loader().load_exam(exam_id)

    # Direct access
    from src.modules.exam import InMemoryExamLoader, JsonFileExamLoader
"""

from src.modules.exam.interface import (
    GAP_PATTERN,
    ChoiceQuestion,
    ClozeQuestion,
    ClozeSegment,
    Exam,
    FlashcardQuestion,
    IExamLoader,
    InfoBlock,
    Question,
    QuestionKind,
    StepsQuestion,
    TextQuestion,
    TrueFalseQuestion,
    VideoEmbed,
)
from src.modules.exam.schemas import ExamContentSchema, QuestionContentSchema, build_exam
from src.modules.exam.service import InMemoryExamLoader, JsonFileExamLoader

__all__ = [
    # Interface types
    "GAP_PATTERN",
    "QuestionKind",
    "Question",
    "TextQuestion",
    "ChoiceQuestion",
    "TrueFalseQuestion",
    "ClozeQuestion",
    "ClozeSegment",
    "StepsQuestion",
    "FlashcardQuestion",
    "InfoBlock",
    "VideoEmbed",
    "Exam",
    "IExamLoader",
    # Content parsing
    "ExamContentSchema",
    "QuestionContentSchema",
    "build_exam",
    # Implementations
    "InMemoryExamLoader",
    "JsonFileExamLoader",
]
