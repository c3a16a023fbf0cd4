"""Practice Service - hosts practice sessions and in-memory collaborators."""

import logging
from typing import Any
from uuid import UUID, uuid4

from src.modules.exam.interface import IExamLoader
from src.modules.practice.engine import PracticeSession, ReturnHandoff
from src.modules.practice.finalizer import SessionFinalizer
from src.modules.practice.interface import (
    ClientMetadata,
    FinalizationResult,
    IExperienceStore,
    ISessionRecordSink,
    SessionRecord,
)
from src.modules.practice.timers import ITickSource
from src.shared.config import get_settings
from src.shared.exceptions import PracticeSessionNotFoundError, SessionAlreadyActiveError

logger = logging.getLogger(__name__)


class InMemorySessionRecordSink(ISessionRecordSink):
    """Keeps submitted records in a list (use the DB sink in production)."""

    def __init__(self) -> None:
        self._records: list[SessionRecord] = []

    @property
    def records(self) -> list[SessionRecord]:
        return list(self._records)

    def records_for(self, learner_id: UUID) -> list[SessionRecord]:
        return [r for r in self._records if r.learner_id == learner_id]

    async def submit(self, record: SessionRecord) -> None:
        self._records.append(record)


class InMemoryExperienceStore(IExperienceStore):
    """Experience totals in a dictionary."""

    def __init__(self, totals: dict[UUID, int] | None = None) -> None:
        self._totals: dict[UUID, int] = dict(totals or {})

    async def read_experience(self, learner_id: UUID) -> int:
        return self._totals.get(learner_id, 0)

    async def write_experience(self, learner_id: UUID, total: int) -> None:
        self._totals[learner_id] = total


class PracticeService:
    """Creates and tracks practice sessions.

    Handles:
    - Loading the exam before a session exists
    - One active session per learner
    - Dropping sessions once saved or abandoned
    """

    def __init__(
        self,
        exam_loader: IExamLoader,
        sink: ISessionRecordSink,
        experience_store: IExperienceStore,
        tick_source: ITickSource,
        *,
        tick_interval: float | None = None,
        device: str | None = None,
    ) -> None:
        settings = get_settings()
        self._exam_loader = exam_loader
        self._sink = sink
        self._experience_store = experience_store
        self._tick_source = tick_source
        self._tick_interval = tick_interval or settings.practice_tick_seconds
        self._device = device or settings.client_device

        self._sessions: dict[UUID, PracticeSession] = {}
        self._active_sessions: dict[UUID, UUID] = {}  # learner_id -> session_id

    @property
    def active_session_count(self) -> int:
        return len(self._sessions)

    async def create_session(
        self,
        learner_id: UUID,
        exam_id: str,
        *,
        ip_address: str | None = None,
        on_return_to_library: ReturnHandoff | None = None,
    ) -> PracticeSession:
        """Load an exam and open a session for it in the intro phase.

        Args:
            learner_id: Learner taking the exam
            exam_id: Exam to load
            ip_address: Client address stored with the record, if known
            on_return_to_library: Called with the result after a full save

        Raises:
            SessionAlreadyActiveError: Learner already has an open session
            ExamNotFoundError, ExamLoadError, InvalidExamContentError: Load failed
        """
        self._ensure_no_active_session(learner_id)
        exam = await self._exam_loader.load_exam(exam_id)
        # The load awaited; another request may have opened a session meanwhile
        self._ensure_no_active_session(learner_id)

        session_id = uuid4()
        finalizer = SessionFinalizer(
            self._sink,
            self._experience_store,
            ClientMetadata(device=self._device, ip_address=ip_address),
        )
        session = PracticeSession(
            exam,
            learner_id,
            self._tick_source,
            finalizer,
            session_id=session_id,
            tick_interval=self._tick_interval,
            on_return_to_library=self._handoff(session_id, on_return_to_library),
        )

        self._sessions[session_id] = session
        self._active_sessions[learner_id] = session_id
        logger.info(f"Created practice session {session_id} for learner {learner_id} on exam {exam_id}")
        return session

    def get_session(self, session_id: UUID) -> PracticeSession:
        session = self._sessions.get(session_id)
        if session is None:
            raise PracticeSessionNotFoundError(session_id)
        return session

    def get_active_session(self, learner_id: UUID) -> PracticeSession | None:
        session_id = self._active_sessions.get(learner_id)
        return self._sessions.get(session_id) if session_id else None

    def abandon_session(self, session_id: UUID) -> None:
        """Stop a session's timers and forget it; nothing is saved."""
        session = self.get_session(session_id)
        session.close()
        self._release(session)
        logger.info(f"Abandoned practice session {session_id} in phase {session.phase.value}")

    def _ensure_no_active_session(self, learner_id: UUID) -> None:
        if learner_id in self._active_sessions:
            raise SessionAlreadyActiveError(learner_id)

    def _release(self, session: PracticeSession) -> None:
        self._sessions.pop(session.id, None)
        if self._active_sessions.get(session.learner_id) == session.id:
            del self._active_sessions[session.learner_id]

    def _handoff(self, session_id: UUID, downstream: ReturnHandoff | None) -> ReturnHandoff:
        def return_to_library(result: FinalizationResult) -> Any:
            session = self._sessions.get(session_id)
            if session is not None:
                self._release(session)
            if downstream is not None:
                return downstream(result)
            return None

        return return_to_library
