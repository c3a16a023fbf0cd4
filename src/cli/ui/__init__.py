"""CLI UI Components - Rich prompts, displays, and interactive elements."""

from src.cli.ui.display import (
    display_exam_intro,
    display_exam_outline,
    display_question,
    display_result,
    display_review,
)
from src.cli.ui.prompts import (
    ask_level,
    ask_line,
    confirm_action,
    input_help,
    parse_answer,
)

__all__ = [
    "display_exam_intro",
    "display_exam_outline",
    "display_question",
    "display_result",
    "display_review",
    "ask_level",
    "ask_line",
    "confirm_action",
    "input_help",
    "parse_answer",
]
