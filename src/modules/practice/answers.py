"""Answer store and per-kind question rendering.

Every question kind has its own answer shape:

- short-text / long-text / flashcard: ``str``
- single-choice: ``int`` (selected index)
- multiple-choice: ``frozenset[int]`` (selected indices)
- true-false: ``bool`` (absent = unanswered)
- cloze: ``dict[str, str]`` keyed by the literal gap token
- steps: ``dict[int, str]`` keyed by step position

Auto-advance may store the placeholder ``""`` for any kind; input handlers
treat a stored value of the wrong shape as empty.
"""

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any, Callable

from src.modules.exam.interface import (
    ChoiceQuestion,
    ClozeQuestion,
    FlashcardQuestion,
    InfoBlock,
    Question,
    QuestionKind,
    StepsQuestion,
    VideoEmbed,
)
from src.shared.exceptions import InvalidAnswerError

EMPTY_ANSWER = ""


class AnswerStore:
    """Learner answers for one session, keyed by question id.

    Entries are created on first interaction (or as a placeholder on
    auto-advance) and never deleted while the session lives.
    """

    def __init__(self) -> None:
        self._answers: dict[str, Any] = {}

    def __contains__(self, question_id: str) -> bool:
        return question_id in self._answers

    def __len__(self) -> int:
        return len(self._answers)

    def has(self, question_id: str) -> bool:
        return question_id in self._answers

    def get(self, question_id: str, default: Any = None) -> Any:
        return self._answers.get(question_id, default)

    def set(self, question_id: str, value: Any) -> None:
        self._answers[question_id] = value

    def record_placeholder(self, question_id: str) -> bool:
        """Store an empty answer if none exists.

        Returns:
            True if a placeholder was written
        """
        if question_id in self._answers:
            return False
        self._answers[question_id] = EMPTY_ANSWER
        return True

    def snapshot(self) -> dict[str, Any]:
        """JSON-ready copy of all answers."""
        return {qid: to_json_value(value) for qid, value in self._answers.items()}


def to_json_value(value: Any) -> Any:
    """Convert an answer to plain JSON types (sets become sorted lists)."""
    if isinstance(value, (set, frozenset)):
        return sorted(value)
    if isinstance(value, dict):
        return {str(k): v for k, v in sorted(value.items(), key=lambda kv: _gap_sort_key(kv[0]))}
    return value


def _gap_sort_key(key: Any) -> tuple[int, str]:
    text = str(key)
    return (int(text), text) if text.isdigit() else (10**9, text)


# ===================
# Input handling
# ===================


def _is_index(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _text_input(question: Question, current: Any, value: Any) -> str:
    if not isinstance(value, str):
        raise InvalidAnswerError(question.id, "expected text")
    return value


def _single_choice_input(question: ChoiceQuestion, current: Any, value: Any) -> int:
    if not _is_index(value) or not 0 <= value < len(question.choices):
        raise InvalidAnswerError(question.id, f"choice index out of range: {value!r}")
    return value


def _multiple_choice_input(question: ChoiceQuestion, current: Any, value: Any) -> frozenset[int]:
    selected = current if isinstance(current, frozenset) else frozenset()

    if _is_index(value):
        if not 0 <= value < len(question.choices):
            raise InvalidAnswerError(question.id, f"choice index out of range: {value}")
        return selected - {value} if value in selected else selected | {value}

    if isinstance(value, Iterable) and not isinstance(value, (str, bytes, dict)):
        indices = list(value)
        if not all(_is_index(i) and 0 <= i < len(question.choices) for i in indices):
            raise InvalidAnswerError(question.id, f"invalid choice selection: {indices!r}")
        return frozenset(indices)

    raise InvalidAnswerError(question.id, "expected a choice index or a list of indices")


def _true_false_input(question: Question, current: Any, value: Any) -> bool:
    if not isinstance(value, bool):
        raise InvalidAnswerError(question.id, "expected true or false")
    return value


def _pair(question: Question, value: Any) -> tuple[Any, Any]:
    if not isinstance(value, (tuple, list)) or len(value) != 2:
        raise InvalidAnswerError(question.id, "expected a (key, text) pair")
    key, text = value
    if not isinstance(text, str):
        raise InvalidAnswerError(question.id, "expected text")
    return key, text


def _cloze_input(question: ClozeQuestion, current: Any, value: Any) -> dict[str, str]:
    token, text = _pair(question, value)
    token = str(token)
    if token not in question.gap_tokens:
        raise InvalidAnswerError(question.id, f"unknown gap: {token}")
    filled = dict(current) if isinstance(current, dict) else {}
    filled[token] = text
    return filled


def _steps_input(question: StepsQuestion, current: Any, value: Any) -> dict[int, str]:
    position, text = _pair(question, value)
    if not _is_index(position) or not 0 <= position < question.step_count:
        raise InvalidAnswerError(question.id, f"step position out of range: {position!r}")
    entries = dict(current) if isinstance(current, dict) else {}
    entries[position] = text
    return entries


_INPUT_HANDLERS: dict[QuestionKind, Callable[[Any, Any, Any], Any]] = {
    QuestionKind.SHORT_TEXT: _text_input,
    QuestionKind.LONG_TEXT: _text_input,
    QuestionKind.FLASHCARD: _text_input,
    QuestionKind.SINGLE_CHOICE: _single_choice_input,
    QuestionKind.MULTIPLE_CHOICE: _multiple_choice_input,
    QuestionKind.TRUE_FALSE: _true_false_input,
    QuestionKind.CLOZE: _cloze_input,
    QuestionKind.STEPS: _steps_input,
}


def apply_input(question: Question, current: Any, value: Any) -> Any:
    """Compute the new answer for a learner input.

    Pure function: the caller stores the result.

    Args:
        question: Question being answered
        current: Stored answer (None if absent)
        value: Raw input, shape depends on the question kind

    Returns:
        The new answer value

    Raises:
        InvalidAnswerError: If the input does not fit the question
    """
    handler = _INPUT_HANDLERS.get(question.kind)
    if handler is None:
        raise InvalidAnswerError(question.id, f"{question.kind.value} elements take no input")
    return handler(question, current, value)


# ===================
# Rendering
# ===================


@dataclass
class ChoiceOption:
    index: int
    label: str
    selected: bool = False


@dataclass
class ClozePart:
    text: str = ""
    gap: str | None = None
    value: str = ""

    @property
    def placeholder(self) -> str:
        return f"Gap {self.gap}" if self.gap is not None else ""


@dataclass
class StepSlot:
    position: int
    value: str = ""

    @property
    def placeholder(self) -> str:
        return f"Step {self.position + 1}"


@dataclass
class QuestionView:
    """Everything a front end needs to draw one exam element."""

    question_id: str
    kind: QuestionKind
    position: int
    total: int
    heading: str
    prompt: str = ""
    hint: str | None = None
    time_limit_seconds: int | None = None
    accepts_input: bool = True
    answer: Any = None
    text_value: str | None = None
    truth_value: bool | None = None
    options: list[ChoiceOption] = field(default_factory=list)
    cloze_parts: list[ClozePart] = field(default_factory=list)
    step_slots: list[StepSlot] = field(default_factory=list)
    front: str = ""
    title: str = ""
    content: str = ""
    description: str = ""
    embed_url: str | None = None


def render_question(question: Question, answer: Any, index: int, total: int) -> QuestionView:
    """Build the view model for the element at ``index`` (0-based)."""
    label = "Element" if question.kind.is_filler else "Question"
    view = QuestionView(
        question_id=question.id,
        kind=question.kind,
        position=index + 1,
        total=total,
        heading=f"{label} {index + 1} of {total}",
        prompt=question.prompt,
        hint=question.hint,
        time_limit_seconds=question.time_limit_seconds,
        accepts_input=not question.kind.is_filler,
        answer=to_json_value(answer) if answer is not None else None,
    )

    if question.kind in (QuestionKind.SHORT_TEXT, QuestionKind.LONG_TEXT, QuestionKind.FLASHCARD):
        view.text_value = answer if isinstance(answer, str) else ""
    if isinstance(question, FlashcardQuestion):
        view.front = question.front
    elif isinstance(question, ChoiceQuestion):
        if question.kind == QuestionKind.SINGLE_CHOICE:
            selected = {answer} if _is_index(answer) else set()
        else:
            selected = answer if isinstance(answer, frozenset) else frozenset()
        view.options = [
            ChoiceOption(index=i, label=choice, selected=i in selected)
            for i, choice in enumerate(question.choices)
        ]
    elif question.kind == QuestionKind.TRUE_FALSE:
        view.truth_value = answer if isinstance(answer, bool) else None
    elif isinstance(question, ClozeQuestion):
        filled = answer if isinstance(answer, dict) else {}
        view.cloze_parts = [
            ClozePart(text=segment.text, gap=segment.gap, value=filled.get(segment.gap, "") if segment.is_gap else "")
            for segment in question.segments()
        ]
    elif isinstance(question, StepsQuestion):
        entries = answer if isinstance(answer, dict) else {}
        view.step_slots = [StepSlot(position=i, value=entries.get(i, "")) for i in range(question.step_count)]
    elif isinstance(question, InfoBlock):
        view.title = question.title
        view.content = question.content
    elif isinstance(question, VideoEmbed):
        view.title = question.title
        view.description = question.description
        view.embed_url = question.embed_url

    return view
