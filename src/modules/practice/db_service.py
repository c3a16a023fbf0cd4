"""Practice collaborators - Database-backed implementation."""

import logging
from uuid import UUID

from sqlalchemy import select, update

from src.modules.practice.interface import IExperienceStore, ISessionRecordSink, SessionRecord
from src.modules.practice.models import ExamActivityModel, LearnerProfileModel
from src.shared.database import get_db_session

logger = logging.getLogger(__name__)


class DatabaseSessionRecordSink(ISessionRecordSink):
    """Inserts session records into ``exam_activity``."""

    async def submit(self, record: SessionRecord) -> None:
        async with get_db_session() as db:
            db.add(
                ExamActivityModel(
                    user_id=record.learner_id,
                    exam_id=record.exam_id,
                    started_at=record.started_at,
                    finished_at=record.finished_at,
                    duration_seconds=record.duration_seconds,
                    total_score=record.total_score,
                    total_questions=record.total_questions,
                    correct_questions=record.correct_questions,
                    raw_answers=dict(record.raw_answers),
                    evaluation=record.evaluation,
                    device=record.client.device,
                    ip_address=record.client.ip_address,
                )
            )
            await db.flush()
        logger.debug(f"Inserted exam_activity row for learner {record.learner_id}")


class DatabaseExperienceStore(IExperienceStore):
    """Reads and writes ``profiles.xp``."""

    async def read_experience(self, learner_id: UUID) -> int:
        async with get_db_session() as db:
            result = await db.execute(
                select(LearnerProfileModel.xp).where(LearnerProfileModel.id == learner_id)
            )
            xp = result.scalar_one_or_none()
        return xp or 0

    async def write_experience(self, learner_id: UUID, total: int) -> None:
        async with get_db_session() as db:
            result = await db.execute(
                update(LearnerProfileModel)
                .where(LearnerProfileModel.id == learner_id)
                .values(xp=total)
            )
            if result.rowcount == 0:
                logger.info(f"No profile for learner {learner_id}, creating one")
                db.add(LearnerProfileModel(id=learner_id, xp=total))
