"""Session finalizer - builds the session record, submits it, applies experience."""

import logging
from datetime import datetime, timedelta
from typing import Any
from uuid import UUID

from src.modules.practice.interface import (
    ClientMetadata,
    FinalizationResult,
    IExperienceStore,
    ISessionRecordSink,
    SessionRecord,
)
from src.modules.practice.scoring import ScoreSummary, round_half_up
from src.shared.datetime_utils import ensure_utc, seconds_between, utc_now
from src.shared.exceptions import ExperienceUpdateError, SessionSubmissionError

logger = logging.getLogger(__name__)


def compute_duration(
    started_at: datetime | None,
    finished_at: datetime,
    elapsed_seconds: int,
) -> tuple[datetime, int]:
    """Resolve the start time and duration of a session.

    Without a start time the elapsed-time accumulator is used and the start
    is back-dated from ``finished_at``.

    Returns:
        (started_at, duration_seconds), duration at least 1
    """
    if started_at is None:
        duration = max(1, elapsed_seconds)
        return finished_at - timedelta(seconds=duration), duration

    duration = max(1, round_half_up(max(0.0, seconds_between(started_at, finished_at))))
    return ensure_utc(started_at), duration


class SessionFinalizer:
    """Runs the two external steps that close a session.

    ``submit`` and ``apply_experience`` are separate so the experience step
    can be retried on its own after a partial failure. Neither step retries
    by itself.
    """

    def __init__(
        self,
        sink: ISessionRecordSink,
        experience_store: IExperienceStore,
        client: ClientMetadata,
    ) -> None:
        self._sink = sink
        self._experience_store = experience_store
        self._client = client

    def build_record(
        self,
        *,
        learner_id: UUID,
        exam_id: str,
        started_at: datetime | None,
        elapsed_seconds: int,
        summary: ScoreSummary,
        levels: dict[str, int],
        raw_answers: dict[str, Any],
        finished_at: datetime | None = None,
    ) -> SessionRecord:
        finished_at = ensure_utc(finished_at) if finished_at else utc_now()
        started_at, duration = compute_duration(started_at, finished_at, elapsed_seconds)

        return SessionRecord(
            learner_id=learner_id,
            exam_id=exam_id,
            started_at=started_at,
            finished_at=finished_at,
            duration_seconds=duration,
            total_score=summary.total_score,
            total_questions=summary.total_questions,
            correct_questions=summary.correct_questions,
            raw_answers=dict(raw_answers),
            levels=dict(levels),
            per_question_points=dict(summary.per_question_points),
            points_per_question_max=summary.points_per_question,
            client=self._client,
        )

    async def submit(self, record: SessionRecord) -> None:
        """Hand the record to the sink.

        Raises:
            SessionSubmissionError: The sink failed; nothing is considered saved
        """
        try:
            await self._sink.submit(record)
        except Exception as e:
            logger.error(f"Failed to submit session record for exam {record.exam_id}: {e}")
            raise SessionSubmissionError(str(e) or type(e).__name__) from e

        logger.info(
            f"Submitted session record: learner={record.learner_id} exam={record.exam_id} "
            f"score={record.total_score} duration={record.duration_seconds}s"
        )

    async def apply_experience(self, record: SessionRecord) -> int:
        """Add the record's score to the learner's experience total.

        Returns:
            The new experience total

        Raises:
            ExperienceUpdateError: Read or write failed; the record stays saved
        """
        try:
            current = await self._experience_store.read_experience(record.learner_id)
        except Exception as e:
            logger.error(f"Failed to read experience for {record.learner_id}: {e}")
            raise ExperienceUpdateError("read", str(e) or type(e).__name__, record) from e

        new_total = (current or 0) + round_half_up(record.total_score)

        try:
            await self._experience_store.write_experience(record.learner_id, new_total)
        except Exception as e:
            logger.error(f"Failed to write experience for {record.learner_id}: {e}")
            raise ExperienceUpdateError("write", str(e) or type(e).__name__, record) from e

        logger.info(f"Experience for {record.learner_id}: {current or 0} -> {new_total}")
        return new_total

    async def finalize(self, record: SessionRecord) -> FinalizationResult:
        """Submit the record, then apply experience."""
        await self.submit(record)
        total = await self.apply_experience(record)
        return FinalizationResult(record=record, experience_total=total)
