"""Unit tests for database-backed exam loading and practice persistence."""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock, patch
from uuid import uuid4

import pytest
from sqlalchemy.exc import OperationalError

from src.modules.practice.interface import ClientMetadata, SessionRecord
from src.modules.practice.models import ExamActivityModel, LearnerProfileModel
from src.shared.exceptions import ExamLoadError, ExamNotFoundError


def _fake_session_factory(db):
    @asynccontextmanager
    async def fake_get_db_session():
        yield db

    return fake_get_db_session


@pytest.fixture
def mock_db():
    """Mock AsyncSession."""
    db = MagicMock()
    db.execute = AsyncMock()
    db.flush = AsyncMock()
    return db


def _result(value=None, rowcount=1):
    result = MagicMock()
    result.scalar_one_or_none.return_value = value
    result.rowcount = rowcount
    return result


class TestDatabaseExamLoader:
    """Tests for DatabaseExamLoader."""

    @pytest.fixture
    def loader(self):
        from src.modules.exam.db_service import DatabaseExamLoader
        return DatabaseExamLoader()

    @pytest.mark.asyncio
    async def test_loads_row(self, loader, mock_db, exam_content):
        exam_id = uuid4()
        row = MagicMock(
            content={"questions": exam_content["questions"]},
            title="Row title",
            description="Row description",
            introduction_text="Row intro",
        )
        mock_db.execute.return_value = _result(row)

        with patch("src.modules.exam.db_service.get_db_session", _fake_session_factory(mock_db)):
            exam = await loader.load_exam(str(exam_id))

        assert exam.id == str(exam_id)
        assert exam.title == "Row title"
        assert exam.introduction_text == "Row intro"
        assert exam.element_count == 9

    @pytest.mark.asyncio
    async def test_non_uuid_id_not_found(self, loader):
        with pytest.raises(ExamNotFoundError):
            await loader.load_exam("cell-biology")

    @pytest.mark.asyncio
    async def test_missing_row(self, loader, mock_db):
        mock_db.execute.return_value = _result(None)

        with patch("src.modules.exam.db_service.get_db_session", _fake_session_factory(mock_db)):
            with pytest.raises(ExamNotFoundError):
                await loader.load_exam(str(uuid4()))

    @pytest.mark.asyncio
    async def test_database_error(self, loader, mock_db):
        mock_db.execute.side_effect = OperationalError("SELECT", {}, Exception("connection refused"))

        with patch("src.modules.exam.db_service.get_db_session", _fake_session_factory(mock_db)):
            with pytest.raises(ExamLoadError):
                await loader.load_exam(str(uuid4()))


class TestDatabaseSessionRecordSink:
    """Tests for DatabaseSessionRecordSink."""

    @pytest.mark.asyncio
    async def test_inserts_activity_row(self, mock_db, learner_id):
        from src.modules.practice.db_service import DatabaseSessionRecordSink

        finished = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
        record = SessionRecord(
            learner_id=learner_id,
            exam_id="cell-biology",
            started_at=finished,
            finished_at=finished,
            duration_seconds=42,
            total_score=50,
            total_questions=3,
            correct_questions=1,
            raw_answers={"q1": "answer"},
            levels={"q1": 4, "q2": 2, "q3": 0},
            per_question_points={"q1": 33, "q2": 17, "q3": 0},
            points_per_question_max=100 / 3,
            client=ClientMetadata(device="pytest", ip_address="198.51.100.2"),
        )

        with patch("src.modules.practice.db_service.get_db_session", _fake_session_factory(mock_db)):
            await DatabaseSessionRecordSink().submit(record)

        row = mock_db.add.call_args[0][0]
        assert isinstance(row, ExamActivityModel)
        assert row.user_id == learner_id
        assert row.duration_seconds == 42
        assert row.total_score == 50
        assert row.raw_answers == {"q1": "answer"}
        assert row.evaluation["levels"] == {"q1": 4, "q2": 2, "q3": 0}
        assert row.device == "pytest"
        assert row.ip_address == "198.51.100.2"
        mock_db.flush.assert_awaited_once()


class TestDatabaseExperienceStore:
    """Tests for DatabaseExperienceStore."""

    @pytest.fixture
    def store(self):
        from src.modules.practice.db_service import DatabaseExperienceStore
        return DatabaseExperienceStore()

    @pytest.mark.asyncio
    async def test_read(self, store, mock_db, learner_id):
        mock_db.execute.return_value = _result(120)

        with patch("src.modules.practice.db_service.get_db_session", _fake_session_factory(mock_db)):
            assert await store.read_experience(learner_id) == 120

    @pytest.mark.asyncio
    async def test_read_missing_profile(self, store, mock_db, learner_id):
        mock_db.execute.return_value = _result(None)

        with patch("src.modules.practice.db_service.get_db_session", _fake_session_factory(mock_db)):
            assert await store.read_experience(learner_id) == 0

    @pytest.mark.asyncio
    async def test_write_updates_existing_profile(self, store, mock_db, learner_id):
        mock_db.execute.return_value = _result(rowcount=1)

        with patch("src.modules.practice.db_service.get_db_session", _fake_session_factory(mock_db)):
            await store.write_experience(learner_id, 170)

        mock_db.execute.assert_awaited_once()
        mock_db.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_write_creates_missing_profile(self, store, mock_db, learner_id):
        mock_db.execute.return_value = _result(rowcount=0)

        with patch("src.modules.practice.db_service.get_db_session", _fake_session_factory(mock_db)):
            await store.write_experience(learner_id, 50)

        profile = mock_db.add.call_args[0][0]
        assert isinstance(profile, LearnerProfileModel)
        assert profile.id == learner_id
        assert profile.xp == 50
