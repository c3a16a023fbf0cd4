"""Unit tests for PracticeService."""

from uuid import UUID, uuid4
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.modules.exam.service import InMemoryExamLoader
from src.modules.practice.service import (
    InMemoryExperienceStore,
    InMemorySessionRecordSink,
    PracticeService,
)
from src.shared.exceptions import (
    ExamNotFoundError,
    ExperienceUpdateError,
    PracticeSessionNotFoundError,
    SessionAlreadyActiveError,
)
from src.shared.models import SessionPhase


@pytest.fixture
def exam_loader(three_question_exam, sample_exam):
    loader = InMemoryExamLoader({"three": three_question_exam})
    loader.add_exam(sample_exam)
    return loader


@pytest.fixture
def service(exam_loader, record_sink, experience_store, tick_source):
    return PracticeService(exam_loader, record_sink, experience_store, tick_source, device="pytest-host")


async def _complete(session):
    session.start()
    for _ in range(session.element_count):
        session.next()
    return await session.save_results()


class TestCreateSession:
    """Tests for opening sessions."""

    @pytest.mark.asyncio
    async def test_create_session(self, service, learner_id):
        session = await service.create_session(learner_id, "three")

        assert session.phase == SessionPhase.INTRO
        assert session.exam.id == "three"
        assert session.learner_id == learner_id
        assert service.get_session(session.id) is session
        assert service.get_active_session(learner_id) is session
        assert service.active_session_count == 1

    @pytest.mark.asyncio
    async def test_unknown_exam(self, service, learner_id):
        with pytest.raises(ExamNotFoundError):
            await service.create_session(learner_id, "missing")

        assert service.active_session_count == 0

    @pytest.mark.asyncio
    async def test_one_active_session_per_learner(self, service, learner_id):
        await service.create_session(learner_id, "three")

        with pytest.raises(SessionAlreadyActiveError):
            await service.create_session(learner_id, "cell-biology")

    @pytest.mark.asyncio
    async def test_other_learners_unaffected(self, service, learner_id):
        await service.create_session(learner_id, "three")
        other = await service.create_session(uuid4(), "three")

        assert service.active_session_count == 2
        assert other.learner_id != learner_id

    @pytest.mark.asyncio
    async def test_session_opened_during_load(self, record_sink, experience_store, tick_source, learner_id, three_question_exam):
        """A session opened while the exam was loading wins."""
        loader = MagicMock()
        service = PracticeService(loader, record_sink, experience_store, tick_source)

        async def load_exam(exam_id):
            service._active_sessions[learner_id] = uuid4()
            return three_question_exam

        loader.load_exam = load_exam

        with pytest.raises(SessionAlreadyActiveError):
            await service.create_session(learner_id, "three")

    @pytest.mark.asyncio
    async def test_uses_configured_tick_interval(self, exam_loader, record_sink, experience_store, tick_source, learner_id):
        service = PracticeService(exam_loader, record_sink, experience_store, tick_source, tick_interval=0.5)
        session = await service.create_session(learner_id, "three")
        session.start()

        tick_source.advance(1)

        assert session.elapsed.seconds == 2


class TestLookupAndAbandon:
    """Tests for finding and dropping sessions."""

    def test_get_unknown_session(self, service):
        with pytest.raises(PracticeSessionNotFoundError):
            service.get_session(UUID(int=1))

    def test_no_active_session(self, service, learner_id):
        assert service.get_active_session(learner_id) is None

    @pytest.mark.asyncio
    async def test_abandon_stops_timers_and_releases(self, service, learner_id, tick_source):
        session = await service.create_session(learner_id, "cell-biology")
        session.start()
        assert tick_source.active_count == 2

        service.abandon_session(session.id)

        assert tick_source.active_count == 0
        assert service.active_session_count == 0
        assert service.get_active_session(learner_id) is None
        with pytest.raises(PracticeSessionNotFoundError):
            service.get_session(session.id)

    @pytest.mark.asyncio
    async def test_abandon_then_reopen(self, service, learner_id, record_sink):
        session = await service.create_session(learner_id, "three")
        service.abandon_session(session.id)

        again = await service.create_session(learner_id, "three")

        assert again.id != session.id
        assert record_sink.records == []


class TestSaveThroughService:
    """Tests for the return-to-library handoff."""

    @pytest.mark.asyncio
    async def test_full_save_releases_and_calls_downstream(self, service, learner_id, record_sink):
        downstream = MagicMock()
        session = await service.create_session(
            learner_id, "three", ip_address="203.0.113.7", on_return_to_library=downstream
        )

        result = await _complete(session)

        downstream.assert_called_once_with(result)
        assert service.active_session_count == 0
        assert service.get_active_session(learner_id) is None
        assert record_sink.records_for(learner_id) == [result.record]
        assert result.record.client.ip_address == "203.0.113.7"
        assert result.record.client.device == "pytest-host"

    @pytest.mark.asyncio
    async def test_async_downstream_awaited(self, service, learner_id):
        downstream = AsyncMock()
        session = await service.create_session(learner_id, "three", on_return_to_library=downstream)

        result = await _complete(session)

        downstream.assert_awaited_once_with(result)

    @pytest.mark.asyncio
    async def test_partial_save_keeps_session(self, exam_loader, tick_source, learner_id):
        store = AsyncMock()
        store.read_experience.side_effect = [ConnectionError("offline"), 0]
        service = PracticeService(exam_loader, InMemorySessionRecordSink(), store, tick_source)
        session = await service.create_session(learner_id, "three")

        with pytest.raises(ExperienceUpdateError):
            await _complete(session)

        assert service.get_active_session(learner_id) is session
        with pytest.raises(SessionAlreadyActiveError):
            await service.create_session(learner_id, "three")

        await session.retry_experience()

        assert service.get_active_session(learner_id) is None

    @pytest.mark.asyncio
    async def test_experience_accumulates_across_sessions(self, exam_loader, record_sink, tick_source, learner_id):
        store = InMemoryExperienceStore({learner_id: 10})
        service = PracticeService(exam_loader, record_sink, store, tick_source)

        for _ in range(2):
            session = await service.create_session(learner_id, "three")
            session.start()
            for _ in range(3):
                session.next()
            session.set_level("q1", 4)
            await session.save_results()

        assert await store.read_experience(learner_id) == 10 + 33 + 33
        assert len(record_sink.records) == 2
