"""Practice Module - Session record and collaborator contracts."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Protocol
from uuid import UUID

from src.shared.datetime_utils import datetime_to_iso


@dataclass(frozen=True)
class ClientMetadata:
    """Where a session was taken."""

    device: str
    ip_address: str | None = None


@dataclass(frozen=True)
class SessionRecord:
    """Immutable result of one completed practice session."""

    learner_id: UUID
    exam_id: str
    started_at: datetime
    finished_at: datetime
    duration_seconds: int
    total_score: int
    total_questions: int
    correct_questions: int
    raw_answers: dict[str, Any] = field(default_factory=dict)
    levels: dict[str, int] = field(default_factory=dict)
    per_question_points: dict[str, int] = field(default_factory=dict)
    points_per_question_max: float = 0.0
    client: ClientMetadata = field(default_factory=lambda: ClientMetadata(device="unknown"))

    @property
    def evaluation(self) -> dict[str, Any]:
        return {
            "levels": dict(self.levels),
            "per_question_points": dict(self.per_question_points),
            "points_per_question_max": self.points_per_question_max,
        }

    def to_payload(self) -> dict[str, Any]:
        """Row shape stored by the activity sink."""
        return {
            "user_id": str(self.learner_id),
            "exam_id": self.exam_id,
            "started_at": datetime_to_iso(self.started_at),
            "finished_at": datetime_to_iso(self.finished_at),
            "duration_seconds": self.duration_seconds,
            "total_score": self.total_score,
            "total_questions": self.total_questions,
            "correct_questions": self.correct_questions,
            "raw_answers": dict(self.raw_answers),
            "evaluation": self.evaluation,
            "device": self.client.device,
            "ip_address": self.client.ip_address,
        }


@dataclass(frozen=True)
class FinalizationResult:
    """Outcome of a fully successful save."""

    record: SessionRecord
    experience_total: int


class ISessionRecordSink(Protocol):
    """Write-only store for completed session records."""

    async def submit(self, record: SessionRecord) -> None:
        """Persist one record.

        Raises:
            Exception: Any failure; the caller treats it as not persisted
        """
        ...


class IExperienceStore(Protocol):
    """Learner experience totals, read and written in two separate calls."""

    async def read_experience(self, learner_id: UUID) -> int:
        """Current total; a learner without a stored total has 0."""
        ...

    async def write_experience(self, learner_id: UUID, total: int) -> None:
        ...
