"""Practice session API routes."""

from fastapi import APIRouter, status

from src.api.dependencies import ClientIp, CurrentLearnerId, OwnedSession, PracticeServiceDep
from src.api.schemas.common import ErrorResponse, SuccessResponse
from src.api.schemas.practice import (
    AnswerRequest,
    CreateSessionRequest,
    QuestionViewResponse,
    ReviewItemResponse,
    ReviewResponse,
    SaveResultResponse,
    ScoreSummaryResponse,
    SessionStateResponse,
    SetLevelRequest,
    SetLevelResponse,
    TabRequest,
    TimerResponse,
)
from src.modules.practice.engine import PracticeSession
from src.modules.practice.interface import FinalizationResult
from src.modules.practice.scoring import ScoreSummary

router = APIRouter()

_ERRORS = {
    status.HTTP_404_NOT_FOUND: {"model": ErrorResponse},
    status.HTTP_409_CONFLICT: {"model": ErrorResponse},
}


def _timer(session: PracticeSession) -> TimerResponse:
    countdown = session.countdown
    return TimerResponse(
        elapsed_seconds=session.elapsed.seconds,
        elapsed_display=session.elapsed.format(),
        countdown_remaining=countdown.remaining if countdown else None,
        countdown_limit=countdown.limit if countdown else None,
        urgency=countdown.urgency if countdown else None,
    )


def _state(session: PracticeSession) -> SessionStateResponse:
    question = None
    if session.current_question is not None:
        question = QuestionViewResponse.model_validate(session.view())

    return SessionStateResponse(
        id=session.id,
        learner_id=session.learner_id,
        exam_id=session.exam.id,
        exam_title=session.exam.title,
        exam_description=session.exam.description,
        introduction_text=session.exam.introduction_text,
        phase=session.phase,
        active_tab=session.active_tab,
        current_index=session.current_index,
        element_count=session.element_count,
        is_last_question=session.is_last_question,
        started_at=session.started_at,
        timer=_timer(session),
        question=question,
        experience_pending=session.experience_pending,
        experience_total=session.experience_total,
    )


def _summary(summary: ScoreSummary) -> ScoreSummaryResponse:
    return ScoreSummaryResponse.model_validate(summary)


def _saved(session: PracticeSession, result: FinalizationResult) -> SaveResultResponse:
    record = result.record
    return SaveResultResponse(
        session_id=session.id,
        exam_id=record.exam_id,
        total_score=record.total_score,
        total_questions=record.total_questions,
        correct_questions=record.correct_questions,
        duration_seconds=record.duration_seconds,
        experience_total=result.experience_total,
    )


@router.post(
    "/sessions",
    response_model=SessionStateResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Open practice session",
    description="Load an exam and open a session in the intro phase.",
    responses=_ERRORS,
)
async def create_session(
    request: CreateSessionRequest,
    learner_id: CurrentLearnerId,
    practice_service: PracticeServiceDep,
    client_ip: ClientIp,
) -> SessionStateResponse:
    session = await practice_service.create_session(
        learner_id,
        request.exam_id,
        ip_address=client_ip,
    )
    return _state(session)


@router.get(
    "/sessions/{session_id}",
    response_model=SessionStateResponse,
    summary="Get session state",
    responses=_ERRORS,
)
async def get_session_state(session: OwnedSession) -> SessionStateResponse:
    return _state(session)


@router.post(
    "/sessions/{session_id}/start",
    response_model=SessionStateResponse,
    summary="Start session",
    description="Leave the intro and show the first element; starts the clock.",
    responses=_ERRORS,
)
async def start_session(session: OwnedSession) -> SessionStateResponse:
    session.start()
    return _state(session)


@router.post(
    "/sessions/{session_id}/answer",
    response_model=SessionStateResponse,
    summary="Answer current question",
    responses={**_ERRORS, status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse}},
)
async def answer_question(request: AnswerRequest, session: OwnedSession) -> SessionStateResponse:
    session.answer(request.value)
    return _state(session)


@router.post(
    "/sessions/{session_id}/next",
    response_model=SessionStateResponse,
    summary="Next element",
    description="Go to the next element; from the last one this enters review.",
    responses=_ERRORS,
)
async def next_question(session: OwnedSession) -> SessionStateResponse:
    session.next()
    return _state(session)


@router.post(
    "/sessions/{session_id}/back",
    response_model=SessionStateResponse,
    summary="Previous element",
    responses=_ERRORS,
)
async def previous_question(session: OwnedSession) -> SessionStateResponse:
    session.back()
    return _state(session)


@router.post(
    "/sessions/{session_id}/finish",
    response_model=SessionStateResponse,
    summary="Finish and review",
    responses=_ERRORS,
)
async def finish_session(session: OwnedSession) -> SessionStateResponse:
    session.finish()
    return _state(session)


@router.post(
    "/sessions/{session_id}/reopen",
    response_model=SessionStateResponse,
    summary="Reopen last question",
    description="Leave review to revisit the last element.",
    responses=_ERRORS,
)
async def reopen_last_question(session: OwnedSession) -> SessionStateResponse:
    session.reopen_last_question()
    return _state(session)


@router.put(
    "/sessions/{session_id}/tab",
    response_model=SessionStateResponse,
    summary="Switch tab",
    responses=_ERRORS,
)
async def switch_tab(request: TabRequest, session: OwnedSession) -> SessionStateResponse:
    session.set_tab(request.tab)
    return _state(session)


@router.get(
    "/sessions/{session_id}/review",
    response_model=ReviewResponse,
    summary="Review screen",
    description="Learner answers next to model answers, with current ratings.",
    responses=_ERRORS,
)
async def get_review(session: OwnedSession) -> ReviewResponse:
    return ReviewResponse(
        session_id=session.id,
        duration_display=session.elapsed.format_long(),
        items=[ReviewItemResponse.model_validate(item) for item in session.review_items()],
        summary=_summary(session.score_summary()),
    )


@router.put(
    "/sessions/{session_id}/levels",
    response_model=SetLevelResponse,
    summary="Rate a question",
    responses={**_ERRORS, status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse}},
)
async def set_level(request: SetLevelRequest, session: OwnedSession) -> SetLevelResponse:
    level = session.set_level(request.question_id, request.level)
    return SetLevelResponse(
        question_id=request.question_id,
        level=int(level),
        points=session.assessment.points(request.question_id),
        summary=_summary(session.score_summary()),
    )


@router.post(
    "/sessions/{session_id}/save",
    response_model=SaveResultResponse,
    summary="Save results",
    description=(
        "Submit the session record and add the score to the learner's experience. "
        "502 SUBMISSION_FAILED leaves the session in review; "
        "502 EXPERIENCE_NOT_APPLIED means the record was saved and only "
        "retry-experience should be called."
    ),
    responses={**_ERRORS, status.HTTP_502_BAD_GATEWAY: {"model": ErrorResponse}},
)
async def save_results(session: OwnedSession) -> SaveResultResponse:
    result = await session.save_results()
    return _saved(session, result)


@router.post(
    "/sessions/{session_id}/retry-experience",
    response_model=SaveResultResponse,
    summary="Retry experience update",
    description="Re-run only the experience step after a partial save.",
    responses={**_ERRORS, status.HTTP_502_BAD_GATEWAY: {"model": ErrorResponse}},
)
async def retry_experience(session: OwnedSession) -> SaveResultResponse:
    result = await session.retry_experience()
    return _saved(session, result)


@router.delete(
    "/sessions/{session_id}",
    response_model=SuccessResponse,
    summary="Abandon session",
    description="Stop the session's timers and discard it without saving.",
    responses=_ERRORS,
)
async def abandon_session(
    session: OwnedSession,
    practice_service: PracticeServiceDep,
) -> SuccessResponse:
    practice_service.abandon_session(session.id)
    return SuccessResponse(message="Session abandoned")
