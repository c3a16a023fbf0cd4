"""Practice session state machine.

A session walks the learner through every exam element in order:

    INTRO -> IN_QUESTION(0..N-1) -> REVIEW -> SUBMITTING -> FINALIZED

All state changes happen on the caller's thread (or the tick source's loop);
there is no locking. Countdown expiries carry the generation token of the
question visit they were started for, and an expiry whose token is no longer
current is dropped.
"""

import inspect
import logging
from datetime import datetime
from typing import Any, Callable
from uuid import UUID, uuid4

from src.modules.exam.interface import Exam, Question
from src.modules.practice.answers import AnswerStore, QuestionView, apply_input, render_question
from src.modules.practice.finalizer import SessionFinalizer
from src.modules.practice.interface import FinalizationResult, SessionRecord
from src.modules.practice.scoring import MasteryLevel, ReviewItem, ScoreSummary, SelfAssessment
from src.modules.practice.timers import ElapsedClock, ITickSource, QuestionCountdown
from src.shared.constants import DEFAULT_TICK_SECONDS
from src.shared.datetime_utils import utc_now
from src.shared.exceptions import InvalidTransitionError
from src.shared.models import SessionPhase, SessionTab

logger = logging.getLogger(__name__)

ReturnHandoff = Callable[[FinalizationResult], Any]


class PracticeSession:
    """One learner working through one exam."""

    def __init__(
        self,
        exam: Exam,
        learner_id: UUID,
        tick_source: ITickSource,
        finalizer: SessionFinalizer,
        *,
        session_id: UUID | None = None,
        tick_interval: float = DEFAULT_TICK_SECONDS,
        on_return_to_library: ReturnHandoff | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.id = session_id or uuid4()
        self.exam = exam
        self.learner_id = learner_id
        self.answers = AnswerStore()
        self.assessment = SelfAssessment(exam)
        self.elapsed = ElapsedClock(tick_source, tick_interval)

        self._tick_source = tick_source
        self._tick_interval = tick_interval
        self._finalizer = finalizer
        self._on_return_to_library = on_return_to_library
        self._clock = clock

        self._phase = SessionPhase.INTRO
        self._index = 0
        self._tab = SessionTab.INTRO
        self._generation = 0
        self._countdown: QuestionCountdown | None = None

        self._started_at: datetime | None = None
        self._record: SessionRecord | None = None
        self._experience_total: int | None = None
        self._experience_pending = False
        self._applying_experience = False

    # ===================
    # State
    # ===================

    @property
    def phase(self) -> SessionPhase:
        return self._phase

    @property
    def current_index(self) -> int:
        return self._index

    @property
    def active_tab(self) -> SessionTab:
        return self._tab

    @property
    def element_count(self) -> int:
        return self.exam.element_count

    @property
    def current_question(self) -> Question | None:
        if self._phase != SessionPhase.IN_QUESTION:
            return None
        return self.exam.elements[self._index]

    @property
    def is_last_question(self) -> bool:
        return self._phase == SessionPhase.IN_QUESTION and self._index == self.element_count - 1

    @property
    def visit_id(self) -> int:
        """Changes every time an element is entered or review begins."""
        return self._generation

    @property
    def countdown(self) -> QuestionCountdown | None:
        return self._countdown

    @property
    def started_at(self) -> datetime | None:
        return self._started_at

    @property
    def record(self) -> SessionRecord | None:
        return self._record

    @property
    def experience_total(self) -> int | None:
        return self._experience_total

    @property
    def experience_pending(self) -> bool:
        """True after a save whose record landed but whose experience step failed."""
        return self._experience_pending

    @property
    def is_complete(self) -> bool:
        return self._phase == SessionPhase.FINALIZED and not self._experience_pending

    def _require(self, action: str, *phases: SessionPhase) -> None:
        if self._phase not in phases:
            raise InvalidTransitionError(action, self._phase.value)

    # ===================
    # Navigation
    # ===================

    def start(self) -> None:
        """Leave the intro and show the first element."""
        self._require("start", SessionPhase.INTRO)
        self._started_at = self._clock()
        self._tab = SessionTab.QUESTIONS
        logger.info(f"Session {self.id} started: exam={self.exam.id} elements={self.element_count}")

        if self.element_count == 0:
            self._enter_review()
            return

        self.elapsed.start()
        self._enter_question(0)

    def set_tab(self, tab: SessionTab) -> None:
        """Switch the visible tab; has no effect on position or timers."""
        self._require("switch tab", SessionPhase.IN_QUESTION)
        self._tab = SessionTab(tab)

    def answer(self, value: Any) -> Any:
        """Apply a learner input to the current question.

        Returns:
            The stored answer

        Raises:
            InvalidAnswerError: Input does not fit the question
        """
        self._require("answer", SessionPhase.IN_QUESTION)
        question = self.exam.elements[self._index]
        new_value = apply_input(question, self.answers.get(question.id), value)
        self.answers.set(question.id, new_value)
        return new_value

    def next(self) -> None:
        """Go to the next element, or to review from the last one."""
        self._require("go to next question", SessionPhase.IN_QUESTION)
        self._advance()

    def back(self) -> None:
        """Go to the previous element; does nothing on the first one."""
        self._require("go back", SessionPhase.IN_QUESTION)
        if self._index == 0:
            return
        self._enter_question(self._index - 1)

    def finish(self) -> None:
        """Enter review; only offered on the last element."""
        self._require("finish", SessionPhase.IN_QUESTION)
        if not self.is_last_question:
            raise InvalidTransitionError("finish before the last question", self._phase.value)
        self._enter_review()

    def reopen_last_question(self) -> None:
        """Leave review to revisit the last element."""
        self._require("reopen the last question", SessionPhase.REVIEW)
        if self.element_count == 0:
            raise InvalidTransitionError("reopen the last question of an empty exam", self._phase.value)
        self.elapsed.start()
        self._enter_question(self.element_count - 1)

    def view(self) -> QuestionView:
        """View model of the current element."""
        question = self.current_question
        if question is None:
            raise InvalidTransitionError("view the current question", self._phase.value)
        return render_question(question, self.answers.get(question.id), self._index, self.element_count)

    def _advance(self) -> None:
        if self._index >= self.element_count - 1:
            self._enter_review()
        else:
            self._enter_question(self._index + 1)

    def _enter_question(self, index: int) -> None:
        self._cancel_countdown()
        self._phase = SessionPhase.IN_QUESTION
        self._index = index
        self._generation += 1

        question = self.exam.elements[index]
        if question.has_time_limit and not question.kind.is_filler:
            self._countdown = QuestionCountdown(
                self._tick_source,
                question.time_limit_seconds,
                self._generation,
                self._on_countdown_expired,
                self._tick_interval,
            )
            self._countdown.start()
        logger.debug(f"Session {self.id}: element {index + 1}/{self.element_count} ({question.kind.value})")

    def _enter_review(self) -> None:
        self._cancel_countdown()
        self.elapsed.stop()
        self._generation += 1
        self._phase = SessionPhase.REVIEW
        logger.info(f"Session {self.id} in review after {self.elapsed.format_long()}")

    def _cancel_countdown(self) -> None:
        if self._countdown is not None:
            self._countdown.cancel()
            self._countdown = None

    def _on_countdown_expired(self, token: int) -> None:
        if self._phase != SessionPhase.IN_QUESTION or token != self._generation:
            logger.debug(f"Session {self.id}: ignoring stale countdown {token}")
            return

        question = self.exam.elements[self._index]
        self._countdown = None
        self.answers.record_placeholder(question.id)
        logger.info(f"Session {self.id}: time limit reached on {question.id}, advancing")
        self._advance()

    # ===================
    # Review
    # ===================

    def set_level(self, question_id: str, value: float | int) -> MasteryLevel:
        """Rate a scorable question on the 0-4 scale (clamped)."""
        self._require("rate a question", SessionPhase.REVIEW)
        return self.assessment.set_level(question_id, value)

    def review_items(self) -> list[ReviewItem]:
        return self.assessment.review_items(self.exam.elements, self.answers.snapshot())

    def score_summary(self) -> ScoreSummary:
        return self.assessment.summary()

    # ===================
    # Finalization
    # ===================

    async def save_results(self) -> FinalizationResult:
        """Submit the session record and apply experience.

        Raises:
            SessionSubmissionError: Nothing saved; session is back in review.
                Cancellation also returns the session to review.
            ExperienceUpdateError: Record saved, experience not applied;
                call retry_experience()
        """
        self._require("save results", SessionPhase.REVIEW)
        self._phase = SessionPhase.SUBMITTING

        record = self._finalizer.build_record(
            learner_id=self.learner_id,
            exam_id=self.exam.id,
            started_at=self._started_at,
            elapsed_seconds=self.elapsed.seconds,
            summary=self.assessment.summary(),
            levels=self.assessment.levels(),
            raw_answers=self.answers.snapshot(),
            finished_at=self._clock(),
        )

        # A record the sink may already hold is not rolled back.
        try:
            await self._finalizer.submit(record)
        except BaseException:
            self._phase = SessionPhase.REVIEW
            raise

        self._record = record
        self._phase = SessionPhase.FINALIZED
        return await self._apply_experience()

    async def retry_experience(self) -> FinalizationResult:
        """Re-run only the experience step of a partially failed save."""
        self._require("retry experience", SessionPhase.FINALIZED)
        if not self._experience_pending:
            raise InvalidTransitionError("retry experience without a pending update", self._phase.value)
        if self._applying_experience:
            raise InvalidTransitionError("retry experience while an update is running", self._phase.value)
        return await self._apply_experience()

    async def _apply_experience(self) -> FinalizationResult:
        # Stays pending if the update fails or is cancelled.
        self._experience_pending = True
        self._applying_experience = True
        try:
            total = await self._finalizer.apply_experience(self._record)
        finally:
            self._applying_experience = False

        self._experience_pending = False
        self._experience_total = total
        result = FinalizationResult(record=self._record, experience_total=total)
        self.close()

        if self._on_return_to_library is not None:
            outcome = self._on_return_to_library(result)
            if inspect.isawaitable(outcome):
                await outcome
        return result

    def close(self) -> None:
        """Tear down all timers."""
        self._cancel_countdown()
        self.elapsed.stop()
