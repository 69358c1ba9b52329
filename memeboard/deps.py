"""
FastAPI dependencies for authentication, database, and services.
"""

from typing import Annotated

from fastapi import Cookie, Depends, HTTPException, Request, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from memeboard.db import get_db
from memeboard.models.user import User
from memeboard.models.user_session import UserSession
from memeboard.services.media import MediaUploader, get_media_uploader
from memeboard.services.session_events import SessionEvents
from memeboard.services.store import MemeStore

SESSION_COOKIE = "session_token"

# Type alias for database dependency
DBSession = Annotated[AsyncSession, Depends(get_db)]


async def get_current_user_optional(
    request: Request,
    db: DBSession,
    session_token: str | None = Cookie(default=None),
) -> User | None:
    """Get the signed-in user from the session cookie (None if signed out).

    Valid sessions are refreshed with a sliding window; expired ones are
    treated as signed out.
    """
    if not session_token:
        return None

    result = await db.execute(
        select(UserSession)
        .where(UserSession.session_token == session_token)
        .options(selectinload(UserSession.user))
    )
    session = result.scalar_one_or_none()
    if not session or not session.user or not session.user.is_active:
        return None
    if not session.is_valid():
        return None

    session.refresh()
    session.user.update_last_seen()
    await db.commit()
    request.state.session_refreshed = True
    return session.user


async def get_current_user(
    request: Request,
    user: Annotated[User | None, Depends(get_current_user_optional)],
) -> User:
    """Get the signed-in user (raises 401 if signed out)."""
    if not user:
        headers = {"HX-Redirect": "/auth/login"} if request.headers.get("HX-Request") else None
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers=headers,
        )
    return user


# Type alias for authenticated user dependency
CurrentUser = Annotated[User, Depends(get_current_user)]
CurrentUserOptional = Annotated[User | None, Depends(get_current_user_optional)]


def get_store(db: DBSession) -> MemeStore:
    return MemeStore(db)


def get_session_events(request: Request) -> SessionEvents:
    """The application-wide session change hub created in the lifespan."""
    return request.app.state.session_events


Store = Annotated[MemeStore, Depends(get_store)]
Uploader = Annotated[MediaUploader, Depends(get_media_uploader)]
SessionEventsDep = Annotated[SessionEvents, Depends(get_session_events)]


def viewer_id(user: User | None) -> int | None:
    return user.id if user else None


def is_htmx(request: Request) -> bool:
    return bool(request.headers.get("HX-Request"))


def wants_json(request: Request) -> bool:
    accept = request.headers.get("Accept", "")
    return "application/json" in accept and "text/html" not in accept
