"""Self-assessment scoring.

In review the learner rates every scorable question on a 0-4 mastery scale.
Each question is worth an equal share of 100 points; a rating of ``L`` earns
``round(L / 4 * share)`` of it.
"""

import json
import math
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any

from src.modules.exam.interface import (
    ChoiceQuestion,
    ClozeQuestion,
    Exam,
    FlashcardQuestion,
    Question,
    QuestionKind,
    StepsQuestion,
    TextQuestion,
    TrueFalseQuestion,
)
from src.modules.practice.answers import to_json_value
from src.shared.constants import (
    BLANK_ANSWER_MARK,
    MAX_MASTERY_LEVEL,
    MIN_MASTERY_LEVEL,
    PARTIAL_MASTERY_LEVEL,
    STEP_SEPARATOR,
    TOTAL_POINTS,
)
from src.shared.exceptions import QuestionNotFoundError

NO_MODEL_ANSWER = "No model answer"


class MasteryLevel(IntEnum):
    """How well the learner judges their own answer."""

    COMPLETELY_WRONG = 0
    MOSTLY_WRONG = 1
    PARTIALLY_CORRECT = 2
    MOSTLY_CORRECT = 3
    FULLY_CORRECT = 4

    @property
    def label(self) -> str:
        return f"{self.value}/{MAX_MASTERY_LEVEL}"

    @property
    def description(self) -> str:
        return self.name.replace("_", " ").capitalize()


def round_half_up(value: float) -> int:
    """Round .5 away from zero for non-negative values (Python's round() is banker's)."""
    return int(math.floor(value + 0.5))


def clamp_level(value: float | int) -> MasteryLevel:
    """Snap a slider or button value onto the mastery scale."""
    if isinstance(value, float) and math.isnan(value):
        return MasteryLevel(MIN_MASTERY_LEVEL)
    level = round_half_up(float(value))
    return MasteryLevel(max(MIN_MASTERY_LEVEL, min(MAX_MASTERY_LEVEL, level)))


def points_per_question(scorable_count: int) -> float:
    """Share of the total points each scorable question is worth."""
    if scorable_count <= 0:
        return 0.0
    return TOTAL_POINTS / scorable_count


def points_for_level(level: int, per_question: float) -> int:
    return round_half_up(level / MAX_MASTERY_LEVEL * per_question)


# ===================
# Model answers
# ===================


def model_answer(question: Question) -> str:
    """Reference answer shown next to the learner's answer in review."""
    if isinstance(question, TextQuestion):
        return question.answer or NO_MODEL_ANSWER
    if isinstance(question, FlashcardQuestion):
        return question.back or NO_MODEL_ANSWER
    if isinstance(question, ChoiceQuestion):
        labels = question.correct_labels
        return ", ".join(labels) if labels else NO_MODEL_ANSWER
    if isinstance(question, TrueFalseQuestion):
        if question.correct_answer is None:
            return "Not defined"
        return "True" if question.correct_answer else "False"
    if isinstance(question, ClozeQuestion):
        if not question.answers:
            return NO_MODEL_ANSWER
        return json.dumps(to_json_value(question.answers), ensure_ascii=False)
    if isinstance(question, StepsQuestion):
        return STEP_SEPARATOR.join(question.steps) if question.steps else NO_MODEL_ANSWER
    return NO_MODEL_ANSWER


def format_answer(answer: Any) -> str:
    """Learner answer as display text."""
    if answer is None or answer == "":
        return BLANK_ANSWER_MARK
    if isinstance(answer, bool):
        return "True" if answer else "False"
    if isinstance(answer, (dict, set, frozenset, list)):
        return json.dumps(to_json_value(answer), ensure_ascii=False)
    return str(answer)


def review_prompt(question: Question) -> str:
    if question.kind == QuestionKind.TRUE_FALSE:
        return "True/false question"
    if isinstance(question, FlashcardQuestion):
        return question.prompt or question.front or BLANK_ANSWER_MARK
    return question.prompt or BLANK_ANSWER_MARK


# ===================
# Assessment
# ===================


@dataclass
class MasteryBreakdown:
    """Distribution of ratings for the review summary."""

    fully_correct: int = 0
    partially_correct: int = 0
    needs_improvement: int = 0


@dataclass
class ScoreSummary:
    total_score: int
    per_question_points: dict[str, int]
    correct_questions: int
    total_questions: int
    points_per_question: float
    breakdown: MasteryBreakdown = field(default_factory=MasteryBreakdown)


@dataclass
class ReviewItem:
    """One row of the review screen."""

    question_id: str
    position: int
    kind: QuestionKind
    prompt: str
    learner_answer: str
    model_answer: str
    level: MasteryLevel
    points: int
    max_points: int


class SelfAssessment:
    """Mastery levels and points for the scorable questions of one exam.

    Unrated questions count as level 0. Points are recomputed on every
    level change, so ``points`` is always consistent with ``levels``.
    """

    def __init__(self, exam: Exam) -> None:
        self._questions = exam.scorable_questions
        self._ids = [q.id for q in self._questions]
        self._per_question = points_per_question(len(self._questions))
        self._levels: dict[str, MasteryLevel] = {}
        self._points: dict[str, int] = {}

    @property
    def total_questions(self) -> int:
        return len(self._questions)

    @property
    def points_per_question(self) -> float:
        return self._per_question

    @property
    def max_points(self) -> int:
        return round_half_up(self._per_question)

    def level(self, question_id: str) -> MasteryLevel:
        return self._levels.get(question_id, MasteryLevel.COMPLETELY_WRONG)

    def points(self, question_id: str) -> int:
        return self._points.get(question_id, 0)

    def set_level(self, question_id: str, value: float | int) -> MasteryLevel:
        """Rate a question; returns the clamped level that was stored.

        Raises:
            QuestionNotFoundError: If the id is not a scorable question
        """
        if question_id not in self._ids:
            raise QuestionNotFoundError(question_id)
        level = clamp_level(value)
        self._levels[question_id] = level
        self._points[question_id] = points_for_level(level, self._per_question)
        return level

    def levels(self) -> dict[str, int]:
        """Level per scorable question, unrated ones as 0."""
        return {qid: int(self.level(qid)) for qid in self._ids}

    def per_question_points(self) -> dict[str, int]:
        return {qid: self.points(qid) for qid in self._ids}

    def summary(self) -> ScoreSummary:
        per_question = self.per_question_points()
        total = round_half_up(sum(per_question.values()))
        breakdown = MasteryBreakdown()
        for level in self.levels().values():
            if level == MAX_MASTERY_LEVEL:
                breakdown.fully_correct += 1
            elif level >= PARTIAL_MASTERY_LEVEL:
                breakdown.partially_correct += 1
            else:
                breakdown.needs_improvement += 1

        return ScoreSummary(
            total_score=max(0, min(TOTAL_POINTS, total)),
            per_question_points=per_question,
            correct_questions=breakdown.fully_correct,
            total_questions=self.total_questions,
            points_per_question=self._per_question,
            breakdown=breakdown,
        )

    def review_items(self, elements: tuple[Question, ...], answers: dict[str, Any]) -> list[ReviewItem]:
        """Rows for the review screen, in exam order.

        Args:
            elements: All exam elements, used for positions
            answers: Raw learner answers keyed by question id
        """
        positions = {q.id: i + 1 for i, q in enumerate(elements)}
        return [
            ReviewItem(
                question_id=q.id,
                position=positions.get(q.id, 0),
                kind=q.kind,
                prompt=review_prompt(q),
                learner_answer=format_answer(answers.get(q.id)),
                model_answer=model_answer(q),
                level=self.level(q.id),
                points=self.points(q.id),
                max_points=self.max_points,
            )
            for q in self._questions
        ]
