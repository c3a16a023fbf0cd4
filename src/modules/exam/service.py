"""Exam loaders - in-memory and JSON-file implementations."""

import asyncio
import json
import logging
import re
from pathlib import Path
from typing import Any

from src.modules.exam.interface import Exam, IExamLoader
from src.modules.exam.schemas import build_exam
from src.shared.exceptions import ExamLoadError, ExamNotFoundError, InvalidExamContentError

logger = logging.getLogger(__name__)

# Exam ids double as file names in the JSON library
_EXAM_ID_PATTERN = re.compile(r"^[A-Za-z0-9_\-]{1,128}$")


class InMemoryExamLoader(IExamLoader):
    """Exam loader backed by a dictionary.

    Used by tests and by hosts that receive exam content from elsewhere.
    """

    def __init__(self, exams: dict[str, Exam] | None = None) -> None:
        self._exams: dict[str, Exam] = dict(exams or {})

    def add_exam(self, exam: Exam) -> None:
        self._exams[exam.id] = exam

    def add_content(self, exam_id: str, content: dict[str, Any], **metadata: str) -> Exam:
        """Parse builder content and register the resulting exam."""
        exam = build_exam(exam_id, content, **metadata)
        self._exams[exam_id] = exam
        return exam

    async def load_exam(self, exam_id: str) -> Exam:
        exam = self._exams.get(exam_id)
        if exam is None:
            raise ExamNotFoundError(exam_id)
        return exam


class JsonFileExamLoader(IExamLoader):
    """Exam loader reading ``<exam_id>.json`` files from a library directory.

    A file holds either the exam document itself
    (``{"title": ..., "questions": [...]}``) or an exported row
    (``{"title": ..., "content": {"questions": [...]}}``).
    """

    def __init__(self, library_dir: str | Path) -> None:
        self._library_dir = Path(library_dir)

    @property
    def library_dir(self) -> Path:
        return self._library_dir

    def list_exam_ids(self) -> list[str]:
        """List exam ids available in the library, sorted."""
        if not self._library_dir.is_dir():
            return []
        return sorted(p.stem for p in self._library_dir.glob("*.json"))

    async def load_exam(self, exam_id: str) -> Exam:
        if not _EXAM_ID_PATTERN.match(exam_id):
            raise ExamNotFoundError(exam_id)

        path = self._library_dir / f"{exam_id}.json"
        if not path.is_file():
            raise ExamNotFoundError(exam_id)

        try:
            raw = await asyncio.to_thread(path.read_text, encoding="utf-8")
        except OSError as e:
            logger.error(f"Failed to read exam file {path}: {e}")
            raise ExamLoadError(exam_id, str(e)) from e

        try:
            document = json.loads(raw)
        except json.JSONDecodeError as e:
            raise InvalidExamContentError(exam_id, f"invalid JSON: {e.msg}") from e

        if not isinstance(document, dict):
            raise InvalidExamContentError(exam_id, "exam file must contain an object")

        if "content" in document:
            exam = build_exam(
                exam_id,
                document.get("content") or {},
                title=document.get("title"),
                description=document.get("description"),
                introduction_text=document.get("introduction_text"),
            )
        else:
            exam = build_exam(exam_id, document)

        logger.info(f"Loaded exam {exam_id} with {exam.element_count} elements from {path}")
        return exam
