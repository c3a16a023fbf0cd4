"""FastAPI dependency injection for services and the calling learner.

Authentication is handled upstream; the gateway forwards the authenticated
learner id in the ``X-Learner-ID`` header.
"""

from typing import Annotated
from uuid import UUID

from fastapi import Depends, Header, Request

from src.api.middleware.error_handler import BadRequestError
from src.modules.practice.engine import PracticeSession
from src.modules.practice.service import PracticeService
from src.shared.exceptions import PracticeSessionNotFoundError
from src.shared.service_registry import get_practice_service


# ===================
# Service Dependencies
# ===================

async def get_practice_service_dep() -> PracticeService:
    """Get the practice service from the registry."""
    return get_practice_service()


PracticeServiceDep = Annotated[PracticeService, Depends(get_practice_service_dep)]


# ===================
# Learner Dependencies
# ===================

async def get_current_learner_id(
    x_learner_id: Annotated[str | None, Header()] = None,
) -> UUID:
    """Read the learner id forwarded by the gateway.

    Raises:
        BadRequestError: Header missing or not a UUID
    """
    if not x_learner_id:
        raise BadRequestError("Missing X-Learner-ID header")
    try:
        return UUID(x_learner_id)
    except ValueError:
        raise BadRequestError("X-Learner-ID must be a UUID", {"value": x_learner_id}) from None


CurrentLearnerId = Annotated[UUID, Depends(get_current_learner_id)]


async def get_owned_session(
    session_id: UUID,
    learner_id: CurrentLearnerId,
    practice_service: PracticeServiceDep,
) -> PracticeSession:
    """Resolve a session belonging to the calling learner.

    Sessions of other learners are reported as not found so their
    existence is not leaked.
    """
    session = practice_service.get_session(session_id)
    if session.learner_id != learner_id:
        raise PracticeSessionNotFoundError(session_id)
    return session


OwnedSession = Annotated[PracticeSession, Depends(get_owned_session)]


def get_request_client_ip(request: Request) -> str | None:
    """Client address recorded by the logging middleware."""
    return getattr(request.state, "client_ip", None)


ClientIp = Annotated[str | None, Depends(get_request_client_ip)]
