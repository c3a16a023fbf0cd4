"""Pydantic schemas for stored exam content.

Exam content is written by the exam builder as JSON with camelCase keys
(``timeLimit``, ``correctAnswer``, ``videoId``, ...). These schemas validate
that payload and convert it into the immutable question dataclasses.
"""

from typing import Any, Callable, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from src.modules.exam.interface import (
    ChoiceQuestion,
    ClozeQuestion,
    Exam,
    FlashcardQuestion,
    InfoBlock,
    Question,
    QuestionKind,
    StepsQuestion,
    TextQuestion,
    TrueFalseQuestion,
    VideoEmbed,
)
from src.shared.exceptions import InvalidExamContentError


class QuestionContentSchema(BaseModel):
    """One stored exam element, any kind."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str
    type: str
    question: str = ""
    hint: Optional[str] = None
    time_limit: Optional[int] = Field(default=None, alias="timeLimit")

    # Text questions
    answer: str = ""

    # Choice questions
    choices: list[str] = Field(default_factory=list)
    correct: list[int] = Field(default_factory=list)

    # True/false
    correct_answer: Optional[bool] = Field(default=None, alias="correctAnswer")

    # Cloze: gap token -> expected text
    answers: dict[str, str] = Field(default_factory=dict)

    # Steps
    steps: list[str] = Field(default_factory=list)

    # Flashcard
    front: str = ""
    back: str = ""

    # Filler elements
    title: str = ""
    content: str = ""
    is_collapsible: bool = Field(default=False, alias="isCollapsible")
    video_id: str = Field(default="", alias="videoId")
    description: str = ""

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v: Any) -> str:
        # The builder uses millisecond timestamps as ids
        if isinstance(v, bool) or v is None:
            raise ValueError("question id is required")
        return str(v)

    @field_validator("time_limit", mode="before")
    @classmethod
    def blank_time_limit(cls, v: Any) -> Any:
        if v is None or (isinstance(v, str) and not v.strip()):
            return None
        return v

    @field_validator("time_limit")
    @classmethod
    def positive_time_limit(cls, v: Optional[int]) -> Optional[int]:
        if v is None or v == 0:
            return None
        if v < 0:
            raise ValueError("timeLimit must not be negative")
        return v

    @field_validator("answers", mode="before")
    @classmethod
    def stringify_gap_keys(cls, v: Any) -> Any:
        if isinstance(v, dict):
            return {str(k): "" if val is None else str(val) for k, val in v.items()}
        return v

    @field_validator("hint", mode="before")
    @classmethod
    def blank_hint(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @model_validator(mode="after")
    def check_kind(self) -> "QuestionContentSchema":
        try:
            kind = QuestionKind.parse(self.type)
        except ValueError:
            raise ValueError(f"unknown element type '{self.type}'") from None
        if kind in (QuestionKind.SINGLE_CHOICE, QuestionKind.MULTIPLE_CHOICE):
            out_of_range = [i for i in self.correct if not 0 <= i < len(self.choices)]
            if out_of_range:
                raise ValueError(f"correct indices out of range: {out_of_range}")
        return self

    @property
    def kind(self) -> QuestionKind:
        return QuestionKind.parse(self.type)

    def to_question(self) -> Question:
        """Convert to the immutable question variant for this kind."""
        return _BUILDERS[self.kind](self)


def _common(schema: QuestionContentSchema) -> dict[str, Any]:
    return {
        "id": schema.id,
        "kind": schema.kind,
        "prompt": schema.question,
        "hint": schema.hint,
        "time_limit_seconds": schema.time_limit,
    }


def _text(schema: QuestionContentSchema) -> Question:
    return TextQuestion(**_common(schema), answer=schema.answer)


def _choice(schema: QuestionContentSchema) -> Question:
    return ChoiceQuestion(
        **_common(schema),
        choices=tuple(schema.choices),
        correct=tuple(schema.correct),
    )


def _true_false(schema: QuestionContentSchema) -> Question:
    return TrueFalseQuestion(**_common(schema), correct_answer=schema.correct_answer)


def _cloze(schema: QuestionContentSchema) -> Question:
    return ClozeQuestion(**_common(schema), answers=dict(schema.answers))


def _steps(schema: QuestionContentSchema) -> Question:
    return StepsQuestion(**_common(schema), steps=tuple(schema.steps))


def _flashcard(schema: QuestionContentSchema) -> Question:
    return FlashcardQuestion(**_common(schema), front=schema.front, back=schema.back)


def _info_block(schema: QuestionContentSchema) -> Question:
    return InfoBlock(
        **_common(schema),
        title=schema.title,
        content=schema.content,
        collapsible=schema.is_collapsible,
    )


def _video(schema: QuestionContentSchema) -> Question:
    return VideoEmbed(
        **_common(schema),
        video_id=schema.video_id,
        title=schema.title,
        description=schema.description,
    )


_BUILDERS: dict[QuestionKind, Callable[[QuestionContentSchema], Question]] = {
    QuestionKind.SHORT_TEXT: _text,
    QuestionKind.LONG_TEXT: _text,
    QuestionKind.SINGLE_CHOICE: _choice,
    QuestionKind.MULTIPLE_CHOICE: _choice,
    QuestionKind.TRUE_FALSE: _true_false,
    QuestionKind.CLOZE: _cloze,
    QuestionKind.STEPS: _steps,
    QuestionKind.FLASHCARD: _flashcard,
    QuestionKind.INFO_BLOCK: _info_block,
    QuestionKind.VIDEO_EMBED: _video,
}


class ExamContentSchema(BaseModel):
    """Stored exam content: metadata plus the ordered element list."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    title: str = ""
    description: Optional[str] = ""
    introduction_text: Optional[str] = Field(default="", alias="introductionText")
    questions: list[QuestionContentSchema] = Field(default_factory=list)

    @model_validator(mode="after")
    def unique_ids(self) -> "ExamContentSchema":
        seen: set[str] = set()
        for question in self.questions:
            if question.id in seen:
                raise ValueError(f"duplicate question id '{question.id}'")
            seen.add(question.id)
        return self


def build_exam(
    exam_id: str,
    content: dict[str, Any],
    title: str | None = None,
    description: str | None = None,
    introduction_text: str | None = None,
) -> Exam:
    """Validate stored content and build an Exam.

    Column values (title, description, introduction text) take precedence
    over the copies embedded in the content document.

    Raises:
        InvalidExamContentError: If the content does not validate
    """
    try:
        schema = ExamContentSchema.model_validate(content or {})
    except ValidationError as e:
        first = e.errors()[0]
        location = ".".join(str(part) for part in first["loc"])
        raise InvalidExamContentError(
            exam_id, f"{location}: {first['msg']}" if location else first["msg"]
        ) from e

    return Exam(
        id=exam_id,
        title=title or schema.title,
        description=description if description is not None else (schema.description or ""),
        introduction_text=(
            introduction_text if introduction_text is not None else (schema.introduction_text or "")
        ),
        elements=tuple(q.to_question() for q in schema.questions),
    )
