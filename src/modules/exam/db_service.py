"""Exam loader - Database-backed implementation."""

import logging
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from src.modules.exam.interface import Exam, IExamLoader
from src.modules.exam.models import ExamModel
from src.modules.exam.schemas import build_exam
from src.shared.database import get_db_session
from src.shared.exceptions import ExamLoadError, ExamNotFoundError

logger = logging.getLogger(__name__)


class DatabaseExamLoader(IExamLoader):
    """Loads exams from the ``exams`` table."""

    async def load_exam(self, exam_id: str) -> Exam:
        try:
            key = UUID(exam_id)
        except ValueError:
            raise ExamNotFoundError(exam_id) from None

        try:
            async with get_db_session() as db:
                result = await db.execute(select(ExamModel).where(ExamModel.id == key))
                row = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error(f"Failed to load exam {exam_id}: {e}")
            raise ExamLoadError(exam_id, str(e)) from e

        if row is None:
            raise ExamNotFoundError(exam_id)

        return build_exam(
            exam_id,
            row.content or {},
            title=row.title,
            description=row.description,
            introduction_text=row.introduction_text,
        )
