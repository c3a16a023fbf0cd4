"""Shared exceptions for the exam practice system.

This module defines the exception hierarchy used across all modules so that
the engine, the collaborators and the hosting surfaces (API, CLI) agree on
error semantics.
"""

from typing import Any
from uuid import UUID


class PracticeError(Exception):
    """Base exception for all application errors.

    All domain-specific exceptions inherit from this class to enable
    consistent error handling at the API layer.
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
        }


# ===================
# Resource Errors
# ===================

class ResourceNotFoundError(PracticeError):
    """Raised when a requested resource is not found."""

    def __init__(
        self,
        resource_type: str,
        resource_id: UUID | str,
    ) -> None:
        super().__init__(
            f"{resource_type} not found: {resource_id}",
            {"resource_type": resource_type, "resource_id": str(resource_id)}
        )


class ExamNotFoundError(ResourceNotFoundError):
    """Raised when the content loader has no exam for the identifier."""

    def __init__(self, exam_id: str) -> None:
        super().__init__("Exam", exam_id)


class QuestionNotFoundError(ResourceNotFoundError):
    """Raised when a question id is not part of the session's exam."""

    def __init__(self, question_id: str) -> None:
        super().__init__("Question", question_id)


class PracticeSessionNotFoundError(ResourceNotFoundError):
    """Raised when a practice session is not (or no longer) hosted."""

    def __init__(self, session_id: UUID) -> None:
        super().__init__("PracticeSession", session_id)


# ===================
# State Errors
# ===================

class InvalidStateError(PracticeError):
    """Raised when an operation is invalid for the current state."""
    pass


class InvalidTransitionError(InvalidStateError):
    """Raised when a session transition is not allowed from its phase."""

    def __init__(self, action: str, phase: str) -> None:
        super().__init__(
            f"Cannot {action} while session is in phase '{phase}'",
            {"action": action, "phase": phase}
        )


class SessionAlreadyActiveError(InvalidStateError):
    """Raised when a learner already has an active practice session."""

    def __init__(self, learner_id: UUID) -> None:
        super().__init__(
            "Learner already has an active practice session",
            {"learner_id": str(learner_id)}
        )


# ===================
# Validation Errors
# ===================

class ValidationError(PracticeError):
    """Raised when input validation fails."""

    def __init__(self, field: str, message: str) -> None:
        super().__init__(
            f"Validation error for '{field}': {message}",
            {"field": field}
        )


class InvalidAnswerError(ValidationError):
    """Raised when an input does not fit the question's answer shape."""

    def __init__(self, question_id: str, message: str) -> None:
        super().__init__("answer", message)
        self.details["question_id"] = question_id


class InvalidExamContentError(ValidationError):
    """Raised when stored exam content cannot be turned into questions."""

    def __init__(self, exam_id: str, message: str) -> None:
        super().__init__("content", message)
        self.details["exam_id"] = exam_id


# ===================
# Integration Errors
# ===================

class ExternalServiceError(PracticeError):
    """Raised when an external collaborator call fails."""

    def __init__(self, service: str, message: str) -> None:
        super().__init__(
            f"External service error ({service}): {message}",
            {"service": service}
        )


class ExamLoadError(ExternalServiceError):
    """Raised when the exam content backend fails."""

    def __init__(self, exam_id: str, message: str) -> None:
        super().__init__("ExamLoader", message)
        self.details["exam_id"] = exam_id


class SessionSubmissionError(ExternalServiceError):
    """Raised when the persistence sink rejects a session record.

    Nothing was saved; the session stays in review and can be resubmitted.
    """

    def __init__(self, message: str) -> None:
        super().__init__("SessionRecordSink", message)


class ExperienceUpdateError(ExternalServiceError):
    """Raised when the record was saved but experience was not applied.

    This is a partial success: retrying must target the experience step
    only, never the record submission.
    """

    def __init__(self, stage: str, message: str, record: Any = None) -> None:
        super().__init__(
            "ExperienceStore",
            f"results saved, but experience was not applied ({stage} failed): {message}",
        )
        self.stage = stage
        self.record = record
        self.details["stage"] = stage
        self.details["partial_success"] = True


