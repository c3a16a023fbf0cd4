"""Exam Module - Question model and exam content contract."""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol

from src.shared.constants import VIDEO_EMBED_BASE_URL
from src.shared.exceptions import QuestionNotFoundError

# Cloze gap marker: {{1}}, {{2}}, ... The captured digits are the gap token.
GAP_PATTERN = re.compile(r"\{\{(\d+)\}\}")


class QuestionKind(str, Enum):
    """Element types an exam can contain."""

    SHORT_TEXT = "short-text"
    LONG_TEXT = "long-text"
    SINGLE_CHOICE = "single-choice"
    MULTIPLE_CHOICE = "multiple-choice"
    TRUE_FALSE = "true-false"
    CLOZE = "cloze"
    STEPS = "steps"
    FLASHCARD = "flashcard"
    INFO_BLOCK = "info-block"
    VIDEO_EMBED = "video-embed"

    @classmethod
    def parse(cls, tag: str) -> "QuestionKind":
        """Parse a stored type tag, accepting the builder's legacy names."""
        if tag == "youtube-embed":
            return cls.VIDEO_EMBED
        return cls(tag)

    @property
    def is_filler(self) -> bool:
        """Filler elements carry no input and are never scored or timed out."""
        return self in (QuestionKind.INFO_BLOCK, QuestionKind.VIDEO_EMBED)


@dataclass(frozen=True)
class Question:
    """Common fields of every exam element."""

    id: str
    kind: QuestionKind
    prompt: str = ""
    hint: str | None = None
    time_limit_seconds: int | None = None

    @property
    def is_scorable(self) -> bool:
        return not self.kind.is_filler

    @property
    def has_time_limit(self) -> bool:
        return bool(self.time_limit_seconds)


@dataclass(frozen=True)
class TextQuestion(Question):
    """Short or long free-text question."""

    answer: str = ""


@dataclass(frozen=True)
class ChoiceQuestion(Question):
    """Single- or multiple-choice question."""

    choices: tuple[str, ...] = ()
    correct: tuple[int, ...] = ()

    @property
    def correct_labels(self) -> list[str]:
        return [self.choices[i] for i in self.correct if 0 <= i < len(self.choices)]


@dataclass(frozen=True)
class TrueFalseQuestion(Question):
    """True/false statement; correct_answer is None when the author left it open."""

    kind: QuestionKind = QuestionKind.TRUE_FALSE
    correct_answer: bool | None = None


@dataclass(frozen=True)
class ClozeSegment:
    """One piece of a cloze text: either literal text or a gap."""

    text: str = ""
    gap: str | None = None

    @property
    def is_gap(self) -> bool:
        return self.gap is not None


@dataclass(frozen=True)
class ClozeQuestion(Question):
    """Fill-in-the-gaps text.

    The prompt holds the text with ``{{n}}`` markers; ``answers`` maps the
    literal gap token (``"1"``, ``"2"``, ...) to the expected text.
    """

    kind: QuestionKind = QuestionKind.CLOZE
    answers: dict[str, str] = field(default_factory=dict)

    @property
    def gap_tokens(self) -> tuple[str, ...]:
        """Gap tokens in order of first appearance."""
        return tuple(dict.fromkeys(GAP_PATTERN.findall(self.prompt)))

    @property
    def gap_count(self) -> int:
        return len(self.gap_tokens)

    def segments(self) -> list[ClozeSegment]:
        """Split the text into literal and gap segments, in display order."""
        parts = GAP_PATTERN.split(self.prompt)
        segments: list[ClozeSegment] = []
        # re.split with one group alternates text, token, text, token, ...
        for i, part in enumerate(parts):
            if i % 2:
                segments.append(ClozeSegment(gap=part))
            elif part:
                segments.append(ClozeSegment(text=part))
        return segments


@dataclass(frozen=True)
class StepsQuestion(Question):
    """Ordered list of steps to reproduce."""

    kind: QuestionKind = QuestionKind.STEPS
    steps: tuple[str, ...] = ()

    @property
    def step_count(self) -> int:
        return len(self.steps)


@dataclass(frozen=True)
class FlashcardQuestion(Question):
    """Card with a front to show and a back to compare against."""

    kind: QuestionKind = QuestionKind.FLASHCARD
    front: str = ""
    back: str = ""


@dataclass(frozen=True)
class InfoBlock(Question):
    """Rich-text context block between questions."""

    kind: QuestionKind = QuestionKind.INFO_BLOCK
    title: str = ""
    content: str = ""
    collapsible: bool = False


@dataclass(frozen=True)
class VideoEmbed(Question):
    """Embedded video shown between questions."""

    kind: QuestionKind = QuestionKind.VIDEO_EMBED
    video_id: str = ""
    title: str = ""
    description: str = ""

    @property
    def embed_url(self) -> str | None:
        if not self.video_id:
            return None
        return f"{VIDEO_EMBED_BASE_URL}{self.video_id}"


@dataclass(frozen=True)
class Exam:
    """An exam loaded for one practice session."""

    id: str
    title: str
    description: str = ""
    introduction_text: str = ""
    elements: tuple[Question, ...] = ()

    @property
    def element_count(self) -> int:
        """Number of elements including fillers."""
        return len(self.elements)

    @property
    def scorable_questions(self) -> list[Question]:
        return [q for q in self.elements if q.is_scorable]

    def get_question(self, question_id: str) -> Question:
        for question in self.elements:
            if question.id == question_id:
                return question
        raise QuestionNotFoundError(question_id)


class IExamLoader(Protocol):
    """Interface for exam content loaders.

    Loaders are read-only; an exam is loaded once, atomically, before a
    practice session is created.
    """

    async def load_exam(self, exam_id: str) -> Exam:
        """Load an exam by identifier.

        Args:
            exam_id: Exam to load

        Returns:
            Fully parsed Exam

        Raises:
            ExamNotFoundError: No exam with this identifier
            ExamLoadError: The content backend failed
            InvalidExamContentError: Stored content is malformed
        """
        ...
