"""Unit tests for the practice session state machine."""

import asyncio
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.modules.exam.interface import (
    ChoiceQuestion,
    Exam,
    InfoBlock,
    QuestionKind,
    TextQuestion,
)
from src.modules.practice.engine import PracticeSession
from src.modules.practice.finalizer import SessionFinalizer
from src.modules.practice.interface import ClientMetadata
from src.modules.practice.scoring import MasteryLevel
from src.shared.exceptions import (
    ExperienceUpdateError,
    InvalidAnswerError,
    InvalidTransitionError,
    QuestionNotFoundError,
    SessionSubmissionError,
)
from src.shared.models import SessionPhase, SessionTab


@pytest.fixture
def timed_exam():
    """Timed text, timed filler, timed choice, untimed text."""
    return Exam(
        id="timed",
        title="Timed",
        elements=(
            TextQuestion(id="q1", kind=QuestionKind.SHORT_TEXT, prompt="First", time_limit_seconds=5),
            InfoBlock(id="i1", title="Break", time_limit_seconds=3),
            ChoiceQuestion(
                id="q2",
                kind=QuestionKind.SINGLE_CHOICE,
                prompt="Second",
                choices=("a", "b"),
                correct=(0,),
                time_limit_seconds=2,
            ),
            TextQuestion(id="q3", kind=QuestionKind.SHORT_TEXT, prompt="Third"),
        ),
    )


def _stepping_clock(step_seconds=60):
    """Clock that moves forward on every call."""
    current = [datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)]

    def clock():
        value = current[0]
        current[0] = value + timedelta(seconds=step_seconds)
        return value

    return clock


class TestNavigation:
    """Tests for moving through the exam."""

    def test_initial_state(self, make_session, three_question_exam):
        session = make_session(three_question_exam)

        assert session.phase == SessionPhase.INTRO
        assert session.active_tab == SessionTab.INTRO
        assert session.current_question is None
        assert session.started_at is None

    def test_start_shows_first_question(self, make_session, three_question_exam):
        session = make_session(three_question_exam)
        session.start()

        assert session.phase == SessionPhase.IN_QUESTION
        assert session.active_tab == SessionTab.QUESTIONS
        assert session.current_index == 0
        assert session.current_question.id == "q1"
        assert session.started_at is not None
        assert session.elapsed.running

    def test_start_twice_rejected(self, make_session, three_question_exam):
        session = make_session(three_question_exam)
        session.start()
        with pytest.raises(InvalidTransitionError):
            session.start()

    def test_next_and_back(self, make_session, three_question_exam):
        session = make_session(three_question_exam)
        session.start()

        session.next()
        session.next()
        assert session.current_index == 2
        assert session.is_last_question

        session.back()
        assert session.current_index == 1

    def test_back_on_first_does_nothing(self, make_session, three_question_exam):
        session = make_session(three_question_exam)
        session.start()
        visit = session.visit_id

        session.back()

        assert session.current_index == 0
        assert session.visit_id == visit

    def test_next_from_last_enters_review(self, make_session, three_question_exam):
        session = make_session(three_question_exam)
        session.start()
        for _ in range(3):
            session.next()

        assert session.phase == SessionPhase.REVIEW
        assert not session.elapsed.running

    def test_finish_only_from_last(self, make_session, three_question_exam):
        session = make_session(three_question_exam)
        session.start()

        with pytest.raises(InvalidTransitionError):
            session.finish()

        session.next()
        session.next()
        session.finish()
        assert session.phase == SessionPhase.REVIEW

    def test_navigation_rejected_in_review(self, make_session, three_question_exam):
        session = make_session(three_question_exam)
        session.start()
        session.next()
        session.next()
        session.finish()

        for action in (session.next, session.back, session.finish):
            with pytest.raises(InvalidTransitionError):
                action()
        with pytest.raises(InvalidTransitionError):
            session.answer("late")
        with pytest.raises(InvalidTransitionError):
            session.view()

    def test_reopen_last_question(self, make_session, three_question_exam, tick_source):
        session = make_session(three_question_exam)
        session.start()
        tick_source.advance(4)
        session.next()
        session.next()
        session.finish()
        tick_source.advance(100)

        session.reopen_last_question()
        tick_source.advance(2)

        assert session.phase == SessionPhase.IN_QUESTION
        assert session.current_index == 2
        assert session.elapsed.seconds == 6

    def test_tab_switch_keeps_position_and_timers(self, make_session, timed_exam, tick_source):
        session = make_session(timed_exam)
        session.start()
        tick_source.advance(1)

        session.set_tab(SessionTab.INTRO)
        tick_source.advance(1)

        assert session.active_tab == SessionTab.INTRO
        assert session.current_index == 0
        assert session.countdown.remaining == 3
        assert session.elapsed.seconds == 2

        session.set_tab("questions")
        assert session.active_tab == SessionTab.QUESTIONS

    def test_tab_switch_rejected_outside_questions(self, make_session, three_question_exam):
        session = make_session(three_question_exam)
        with pytest.raises(InvalidTransitionError):
            session.set_tab(SessionTab.QUESTIONS)

    def test_empty_exam_goes_straight_to_review(self, make_session):
        session = make_session(Exam(id="empty", title="Empty"))
        session.start()

        assert session.phase == SessionPhase.REVIEW
        assert session.review_items() == []
        with pytest.raises(InvalidTransitionError):
            session.reopen_last_question()


class TestAnswers:
    """Tests for answering questions."""

    def test_answers_survive_navigation(self, make_session, sample_exam):
        session = make_session(sample_exam)
        session.start()
        session.answer("The nucleus")
        session.next()
        session.answer(1)
        session.back()

        assert session.view().text_value == "The nucleus"
        assert session.answers.snapshot() == {"1700000000001": "The nucleus", "q2": 1}

    def test_invalid_answer(self, make_session, sample_exam):
        session = make_session(sample_exam)
        session.start()
        session.next()

        with pytest.raises(InvalidAnswerError):
            session.answer(7)

    def test_filler_rejects_input(self, make_session, sample_exam):
        session = make_session(sample_exam)
        session.start()
        session.next()
        session.next()

        assert not session.view().accepts_input
        with pytest.raises(InvalidAnswerError):
            session.answer("x")


class TestCountdown:
    """Tests for per-question time limits."""

    def test_expiry_records_placeholder_and_advances(self, make_session, timed_exam, tick_source):
        session = make_session(timed_exam)
        session.start()

        tick_source.advance(5)

        assert session.current_index == 1
        assert session.answers.get("q1") == ""
        assert session.elapsed.seconds == 5

    def test_expiry_keeps_existing_answer(self, make_session, timed_exam, tick_source):
        session = make_session(timed_exam)
        session.start()
        session.answer("typed in time")

        tick_source.advance(5)

        assert session.answers.get("q1") == "typed in time"

    def test_filler_is_never_timed(self, make_session, timed_exam, tick_source):
        session = make_session(timed_exam)
        session.start()
        session.next()

        assert session.countdown is None
        tick_source.advance(60)
        assert session.current_index == 1

    def test_chained_expiry_into_review(self, make_session, timed_exam, tick_source):
        session = make_session(timed_exam)
        session.start()
        session.next()
        session.next()

        tick_source.advance(2)
        assert session.current_index == 3
        assert session.countdown is None

        session.back()
        tick_source.advance(2)
        assert session.current_index == 3
        assert session.answers.get("q2") == ""

    def test_navigation_cancels_countdown(self, make_session, timed_exam, tick_source):
        session = make_session(timed_exam)
        session.start()
        tick_source.advance(4)

        session.next()
        tick_source.advance(10)

        assert session.current_index == 1
        assert "q1" not in session.answers

    def test_revisit_restarts_full_limit(self, make_session, timed_exam, tick_source):
        session = make_session(timed_exam)
        session.start()
        tick_source.advance(4)
        session.next()
        session.back()

        assert session.countdown.remaining == 5
        tick_source.advance(4)
        assert session.current_index == 0

    def test_stale_expiry_is_ignored(self, make_session, timed_exam):
        session = make_session(timed_exam)
        session.start()
        stale = session.countdown
        session.next()
        session.back()

        # Late delivery of the first visit's expiry
        stale._on_expire(stale.token)

        assert session.current_index == 0
        assert "q1" not in session.answers

    def test_finish_cancels_all_timers(self, make_session, timed_exam, tick_source):
        session = make_session(timed_exam)
        session.start()
        for _ in range(3):
            session.next()
        session.finish()

        assert tick_source.active_count == 0


class TestReview:
    """Tests for self-assessment in review."""

    def _in_review(self, make_session, exam):
        session = make_session(exam)
        session.start()
        for _ in range(exam.element_count):
            session.next()
        return session

    def test_set_level_only_in_review(self, make_session, three_question_exam):
        session = make_session(three_question_exam)
        session.start()
        with pytest.raises(InvalidTransitionError):
            session.set_level("q1", 4)

    def test_set_level_clamped(self, make_session, three_question_exam):
        session = self._in_review(make_session, three_question_exam)

        assert session.set_level("q1", 6.2) == MasteryLevel.FULLY_CORRECT
        assert session.set_level("q2", 1.5) == MasteryLevel.PARTIALLY_CORRECT

    def test_set_level_unknown_question(self, make_session, sample_exam):
        session = self._in_review(make_session, sample_exam)
        with pytest.raises(QuestionNotFoundError):
            session.set_level("info1", 4)

    def test_review_items_exclude_fillers(self, make_session, sample_exam):
        session = self._in_review(make_session, sample_exam)
        items = session.review_items()

        assert len(items) == 7
        assert all(not item.kind.is_filler for item in items)
        assert items[0].model_answer == "Nucleus"

    def test_score_summary(self, make_session, three_question_exam):
        session = self._in_review(make_session, three_question_exam)
        session.set_level("q1", 4)
        session.set_level("q2", 2)
        session.set_level("q3", 0)

        assert session.score_summary().total_score == 50


class _SlowExperienceStore:
    """Experience store whose reads take a moment; the first read fails."""

    def __init__(self, total=0):
        self.total = total
        self.writes = 0
        self._failed = False
        self.release = asyncio.Event()
        self.release.set()

    async def read_experience(self, learner_id):
        await asyncio.sleep(0.01)
        await self.release.wait()
        if not self._failed:
            self._failed = True
            raise ConnectionError("offline")
        return self.total

    async def write_experience(self, learner_id, total):
        self.writes += 1
        self.total = total


class TestSaveResults:
    """Tests for finalization."""

    async def _review(self, make_session, exam, **kwargs):
        session = make_session(exam, **kwargs)
        session.start()
        for _ in range(exam.element_count):
            session.next()
        return session

    @pytest.mark.asyncio
    async def test_success(self, make_session, three_question_exam, record_sink, tick_source):
        handoff = MagicMock()
        session = make_session(
            three_question_exam,
            on_return_to_library=handoff,
            clock=_stepping_clock(120),
        )
        session.start()
        tick_source.advance(42)
        for _ in range(3):
            session.next()
        session.set_level("q1", 4)
        session.set_level("q2", 2)

        result = await session.save_results()

        assert session.phase == SessionPhase.FINALIZED
        assert session.is_complete
        assert result.record.total_score == 50
        assert result.record.duration_seconds == 120
        assert result.experience_total == 50
        assert record_sink.records == [result.record]
        handoff.assert_called_once_with(result)

    @pytest.mark.asyncio
    async def test_async_handoff_awaited(self, make_session, three_question_exam):
        handoff = AsyncMock()
        session = await self._review(make_session, three_question_exam, on_return_to_library=handoff)

        result = await session.save_results()

        handoff.assert_awaited_once_with(result)

    @pytest.mark.asyncio
    async def test_save_outside_review_rejected(self, make_session, three_question_exam):
        session = make_session(three_question_exam)
        with pytest.raises(InvalidTransitionError):
            await session.save_results()

    @pytest.mark.asyncio
    async def test_submit_failure_returns_to_review(self, learner_id, tick_source, experience_store, three_question_exam):
        sink = AsyncMock()
        sink.submit.side_effect = [ConnectionError("offline"), None]
        handoff = MagicMock()
        session = PracticeSession(
            three_question_exam,
            learner_id,
            tick_source,
            SessionFinalizer(sink, experience_store, ClientMetadata(device="pytest")),
            on_return_to_library=handoff,
        )
        session.start()
        for _ in range(3):
            session.next()

        with pytest.raises(SessionSubmissionError):
            await session.save_results()

        assert session.phase == SessionPhase.REVIEW
        assert session.record is None
        assert await experience_store.read_experience(learner_id) == 0
        handoff.assert_not_called()

        await session.save_results()
        assert session.is_complete
        assert sink.submit.await_count == 2

    @pytest.mark.asyncio
    async def test_experience_failure_is_partial(self, learner_id, tick_source, record_sink, three_question_exam):
        store = AsyncMock()
        store.read_experience.side_effect = [RuntimeError("timeout"), 5]
        handoff = MagicMock()
        session = PracticeSession(
            three_question_exam,
            learner_id,
            tick_source,
            SessionFinalizer(record_sink, store, ClientMetadata(device="pytest")),
            on_return_to_library=handoff,
        )
        session.start()
        for _ in range(3):
            session.next()
        session.set_level("q1", 4)

        with pytest.raises(ExperienceUpdateError):
            await session.save_results()

        assert session.phase == SessionPhase.FINALIZED
        assert session.experience_pending
        assert not session.is_complete
        assert len(record_sink.records) == 1
        handoff.assert_not_called()

        with pytest.raises(InvalidTransitionError):
            await session.save_results()

        result = await session.retry_experience()

        assert len(record_sink.records) == 1
        assert result.experience_total == 38
        assert session.is_complete
        handoff.assert_called_once_with(result)

    @pytest.mark.asyncio
    async def test_retry_without_pending_rejected(self, make_session, three_question_exam):
        session = await self._review(make_session, three_question_exam)
        await session.save_results()

        with pytest.raises(InvalidTransitionError):
            await session.retry_experience()

    @pytest.mark.asyncio
    async def test_empty_exam_saves_zero(self, make_session):
        session = make_session(Exam(id="empty", title="Empty"))
        session.start()

        result = await session.save_results()

        assert result.record.total_score == 0
        assert result.record.total_questions == 0
        assert result.record.duration_seconds >= 1

    @pytest.mark.asyncio
    async def test_concurrent_retries_apply_once(self, learner_id, tick_source, record_sink, three_question_exam):
        store = _SlowExperienceStore(total=10)
        handoff = MagicMock()
        session = PracticeSession(
            three_question_exam,
            learner_id,
            tick_source,
            SessionFinalizer(record_sink, store, ClientMetadata(device="pytest")),
            on_return_to_library=handoff,
        )
        session.start()
        for _ in range(3):
            session.next()
        session.set_level("q1", 4)
        session.set_level("q2", 2)
        with pytest.raises(ExperienceUpdateError):
            await session.save_results()

        first, second = await asyncio.gather(
            session.retry_experience(),
            session.retry_experience(),
            return_exceptions=True,
        )

        assert first.experience_total == 60
        assert isinstance(second, InvalidTransitionError)
        assert store.writes == 1
        assert store.total == 60
        assert session.is_complete
        handoff.assert_called_once_with(first)

    @pytest.mark.asyncio
    async def test_cancelled_submit_returns_to_review(self, learner_id, tick_source, experience_store, three_question_exam):
        sink = AsyncMock()
        blocked = asyncio.Event()

        async def submit(record):
            await blocked.wait()

        sink.submit.side_effect = submit
        session = PracticeSession(
            three_question_exam,
            learner_id,
            tick_source,
            SessionFinalizer(sink, experience_store, ClientMetadata(device="pytest")),
        )
        session.start()
        for _ in range(3):
            session.next()

        task = asyncio.create_task(session.save_results())
        await asyncio.sleep(0)
        assert session.phase == SessionPhase.SUBMITTING
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert session.phase == SessionPhase.REVIEW
        assert session.record is None

        blocked.set()
        await session.save_results()
        assert session.is_complete

    @pytest.mark.asyncio
    async def test_cancelled_experience_update_can_be_retried(self, learner_id, tick_source, record_sink, three_question_exam):
        store = _SlowExperienceStore(total=0)
        store.release.clear()
        session = PracticeSession(
            three_question_exam,
            learner_id,
            tick_source,
            SessionFinalizer(record_sink, store, ClientMetadata(device="pytest")),
        )
        session.start()
        for _ in range(3):
            session.next()

        task = asyncio.create_task(session.save_results())
        await asyncio.sleep(0.02)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert session.phase == SessionPhase.FINALIZED
        assert session.experience_pending
        assert len(record_sink.records) == 1

        store.release.set()
        with pytest.raises(ExperienceUpdateError):
            await session.retry_experience()
        result = await session.retry_experience()

        assert result.experience_total == 0
        assert session.is_complete


def test_close_stops_timers(make_session, timed_exam, tick_source):
    session = make_session(timed_exam)
    session.start()
    session.close()

    assert tick_source.active_count == 0
    assert session.countdown is None
