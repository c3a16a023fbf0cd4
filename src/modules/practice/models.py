"""SQLAlchemy models for practice results and learner experience."""

from datetime import datetime
from typing import Any, Optional
from uuid import UUID, uuid4

from sqlalchemy import JSON, DateTime, Integer, String, Uuid, text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from src.shared.database import Base
from src.shared.datetime_utils import utc_now

_JSON = JSON().with_variant(JSONB, "postgresql")


class ExamActivityModel(Base):
    """One completed practice session.

    Rows are insert-only; the engine never updates or deletes them.
    """

    __tablename__ = "exam_activity"

    id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid4,
    )
    user_id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), nullable=False, index=True)
    exam_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)

    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    finished_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    duration_seconds: Mapped[int] = mapped_column(Integer, nullable=False)

    total_score: Mapped[int] = mapped_column(Integer, nullable=False)
    total_questions: Mapped[int] = mapped_column(Integer, nullable=False)
    correct_questions: Mapped[int] = mapped_column(Integer, nullable=False)

    raw_answers: Mapped[dict[str, Any]] = mapped_column(_JSON, default=dict)
    evaluation: Mapped[dict[str, Any]] = mapped_column(_JSON, default=dict)

    device: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    ip_address: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        server_default=text("CURRENT_TIMESTAMP"),
    )


class LearnerProfileModel(Base):
    """Learner profile; only the experience total is used here."""

    __tablename__ = "profiles"

    id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True)
    xp: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, default=0)
