"""Test configuration and fixtures."""

import sys
from pathlib import Path

# Load environment variables before any imports that need them
from dotenv import load_dotenv
project_root = Path(__file__).parent.parent
load_dotenv(project_root / ".env")

# Ensure src is in path
sys.path.insert(0, str(project_root))

from uuid import UUID

import pytest


@pytest.fixture(autouse=True)
def reset_singletons():
    """Reset process-wide singletons between tests."""
    yield
    from src.jobs.scheduler import reset_scheduler
    from src.shared.feature_flags import FeatureFlagManager, get_feature_flags
    from src.shared.service_registry import ServiceRegistry, get_service_registry

    ServiceRegistry._instance = None
    get_service_registry.cache_clear()
    FeatureFlagManager._instance = None
    get_feature_flags.cache_clear()
    reset_scheduler()


@pytest.fixture
def learner_id():
    """Sample learner UUID."""
    return UUID("12345678-1234-5678-1234-567812345678")


@pytest.fixture
def exam_content():
    """Builder content with one element of every kind."""
    return {
        "title": "Cell Biology",
        "description": "Organelles and processes",
        "introductionText": "Answer every question without notes.",
        "questions": [
            {
                "id": 1700000000001,
                "type": "short-text",
                "question": "Which organelle holds the DNA?",
                "answer": "Nucleus",
                "timeLimit": 30,
            },
            {
                "id": "q2",
                "type": "single-choice",
                "question": "Which organelle makes ATP?",
                "choices": ["Ribosome", "Mitochondrion", "Golgi apparatus"],
                "correct": [1],
            },
            {
                "id": "info1",
                "type": "info-block",
                "title": "Membranes",
                "content": "The next questions are about membranes.",
                "isCollapsible": True,
                "timeLimit": 10,
            },
            {
                "id": "q3",
                "type": "multiple-choice",
                "question": "Which are membrane-bound?",
                "choices": ["Nucleus", "Ribosome", "Lysosome"],
                "correct": [0, 2],
            },
            {
                "id": "q4",
                "type": "true-false",
                "question": "Plant cells have a cell wall.",
                "correctAnswer": True,
            },
            {
                "id": "q5",
                "type": "cloze",
                "question": "The {{1}} is the powerhouse of the {{2}}.",
                "answers": {"1": "mitochondrion", "2": "cell"},
            },
            {
                "id": "q6",
                "type": "steps",
                "question": "Order the phases of mitosis.",
                "steps": ["Prophase", "Metaphase", "Anaphase", "Telophase"],
            },
            {
                "id": "q7",
                "type": "flashcard",
                "front": "Osmosis",
                "back": "Diffusion of water across a membrane",
            },
            {
                "id": "v1",
                "type": "youtube-embed",
                "videoId": "dQw4w9WgXcQ",
                "title": "Cell tour",
                "description": "A short animation",
            },
        ],
    }


@pytest.fixture
def sample_exam(exam_content):
    """Exam built from the mixed builder content."""
    from src.modules.exam.schemas import build_exam
    return build_exam("cell-biology", exam_content)


@pytest.fixture
def three_question_exam():
    """Three untimed short-text questions."""
    from src.modules.exam.interface import Exam, QuestionKind, TextQuestion
    return Exam(
        id="three",
        title="Three questions",
        elements=tuple(
            TextQuestion(id=f"q{i}", kind=QuestionKind.SHORT_TEXT, prompt=f"Question {i}", answer=f"A{i}")
            for i in range(1, 4)
        ),
    )


@pytest.fixture
def tick_source():
    """Deterministic tick source."""
    from src.modules.practice.timers import ManualTickSource
    return ManualTickSource()


@pytest.fixture
def record_sink():
    from src.modules.practice.service import InMemorySessionRecordSink
    return InMemorySessionRecordSink()


@pytest.fixture
def experience_store():
    from src.modules.practice.service import InMemoryExperienceStore
    return InMemoryExperienceStore()


@pytest.fixture
def finalizer(record_sink, experience_store):
    from src.modules.practice.finalizer import SessionFinalizer
    from src.modules.practice.interface import ClientMetadata
    return SessionFinalizer(record_sink, experience_store, ClientMetadata(device="pytest"))


@pytest.fixture
def make_session(learner_id, tick_source, finalizer):
    """Factory for practice sessions on the manual tick source."""
    from src.modules.practice.engine import PracticeSession

    def _make(exam, **kwargs):
        return PracticeSession(exam, learner_id, tick_source, finalizer, **kwargs)

    return _make
