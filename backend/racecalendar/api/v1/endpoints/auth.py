"""Session endpoints and dependencies.

Sign-in itself happens with the OAuth provider, which stores the session in
Redis and sets the session cookie. This module only resolves that cookie
into an explicit ``SessionContext`` for handlers.

Paths:
  /api/v1/auth/session, /logout
"""

from typing import Annotated, Optional

from fastapi import APIRouter, Cookie, Depends, HTTPException, Response, status

from racecalendar.core.config import get_settings
from racecalendar.core.session import SessionContext, delete_session, get_session
from racecalendar.models.schemas import MessageResponse

settings = get_settings()
router = APIRouter()

SESSION_COOKIE_NAME = settings.session_cookie_name


# -------------------------------------------------------------------------
# Dependencies
# -------------------------------------------------------------------------


async def get_current_session(
    session_id: Annotated[Optional[str], Cookie(alias=SESSION_COOKIE_NAME)] = None,
) -> SessionContext:
    """Get the session of the signed-in user.

    Raises:
        HTTPException: 401 if not authenticated.
    """
    if not session_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )

    session = await get_session(session_id)
    if session is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Session expired or invalid",
        )

    return session


CurrentSession = Annotated[SessionContext, Depends(get_current_session)]


# -------------------------------------------------------------------------
# Endpoints
# -------------------------------------------------------------------------


@router.get("/session", response_model=SessionContext)
async def read_session(session: CurrentSession) -> SessionContext:
    """Return the current session."""
    return session


@router.post("/logout", response_model=MessageResponse)
async def logout(
    response: Response,
    session_id: Annotated[Optional[str], Cookie(alias=SESSION_COOKIE_NAME)] = None,
) -> MessageResponse:
    """Drop the session and clear the cookie."""
    if session_id:
        await delete_session(session_id)

    response.delete_cookie(key=SESSION_COOKIE_NAME)
    return MessageResponse(message="Logged out successfully")
