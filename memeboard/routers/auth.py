"""
Authentication router for local email/password accounts.
"""

from typing import Annotated

from fastapi import APIRouter, Form, Request, status
from fastapi.responses import HTMLResponse, RedirectResponse, Response
from sqlalchemy import delete, select

from memeboard.deps import (
    SESSION_COOKIE,
    CurrentUserOptional,
    DBSession,
    SessionEventsDep,
    is_htmx,
)
from memeboard.models.user import User
from memeboard.models.user_session import UserSession
from memeboard.services.password import hash_password, registration_error, verify_password
from memeboard.services.rate_limiter import auth_rate_limiter
from memeboard.services.session_events import SessionEvent, SessionEventType
from memeboard.settings import settings
from memeboard.templates_config import templates

router = APIRouter(prefix="/auth", tags=["auth"])


def get_client_ip(request: Request) -> str:
    """Get client IP for rate limiting."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def _redirect(request: Request, url: str) -> Response:
    """Redirect a browser, or tell HTMX to navigate."""
    if is_htmx(request):
        response = HTMLResponse("")
        response.headers["HX-Redirect"] = url
        return response
    return RedirectResponse(url=url, status_code=status.HTTP_302_FOUND)


def _form_error(request: Request, page: str, error: str, status_code: int = 400) -> Response:
    if is_htmx(request):
        return HTMLResponse(f'<div class="error">{error}</div>', status_code=status_code)
    return RedirectResponse(
        url=f"/auth/{page}?error={error.replace(' ', '+')}",
        status_code=status.HTTP_302_FOUND,
    )


def _set_session_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=SESSION_COOKIE,
        value=token,
        httponly=True,
        secure=not settings.debug,
        samesite="lax",
        max_age=settings.session_expire_hours * 3600,
        path="/",
    )


async def _start_session(
    request: Request,
    db: DBSession,
    user: User,
    events: SessionEventsDep,
) -> Response:
    session = UserSession.create_session(user.id)
    db.add(session)
    user.update_last_seen()
    await db.commit()

    await events.publish(SessionEvent(SessionEventType.SIGNED_IN, user.id, session.session_token))

    response = _redirect(request, "/")
    _set_session_cookie(response, session.session_token)
    return response


@router.get("/login", response_class=HTMLResponse)
async def login_page(
    request: Request,
    user: CurrentUserOptional,
    error: str | None = None,
):
    """Render login page."""
    if user:
        return RedirectResponse(url="/", status_code=status.HTTP_302_FOUND)
    return templates.TemplateResponse(request, "auth/login.html", {"error": error})


@router.post("/login")
async def login(
    request: Request,
    db: DBSession,
    events: SessionEventsDep,
    email: Annotated[str, Form()],
    password: Annotated[str, Form()],
):
    """Handle local login."""
    if not auth_rate_limiter.is_allowed(f"login:{get_client_ip(request)}"):
        return _form_error(request, "login", "Too many login attempts", status.HTTP_429_TOO_MANY_REQUESTS)

    result = await db.execute(select(User).where(User.email == email.strip().lower()))
    user = result.scalar_one_or_none()

    if not user or not verify_password(password, user.hashed_password):
        return _form_error(request, "login", "Invalid email or password", status.HTTP_401_UNAUTHORIZED)
    if not user.is_active:
        return _form_error(request, "login", "Account is disabled", status.HTTP_403_FORBIDDEN)

    return await _start_session(request, db, user, events)


@router.get("/register", response_class=HTMLResponse)
async def register_page(
    request: Request,
    user: CurrentUserOptional,
    error: str | None = None,
):
    """Render registration page."""
    if user:
        return RedirectResponse(url="/", status_code=status.HTTP_302_FOUND)
    return templates.TemplateResponse(request, "auth/register.html", {"error": error})


@router.post("/register")
async def register(
    request: Request,
    db: DBSession,
    events: SessionEventsDep,
    email: Annotated[str, Form()],
    password: Annotated[str, Form()],
    confirm_password: Annotated[str, Form()],
    display_name: Annotated[str, Form()] = "",
):
    """Handle local registration."""
    if not auth_rate_limiter.is_allowed(f"register:{get_client_ip(request)}"):
        return _form_error(request, "register", "Too many registration attempts", status.HTTP_429_TOO_MANY_REQUESTS)

    email = email.strip().lower()
    error = registration_error(email, password, confirm_password, settings.password_min_length)
    if error:
        return _form_error(request, "register", error)

    result = await db.execute(select(User).where(User.email == email))
    if result.scalar_one_or_none():
        return _form_error(request, "register", "Email already registered")

    user = User(
        email=email,
        display_name=display_name.strip() or email.split("@")[0],
        hashed_password=hash_password(password),
    )
    db.add(user)
    await db.flush()

    return await _start_session(request, db, user, events)


@router.post("/logout")
async def logout(
    request: Request,
    db: DBSession,
    user: CurrentUserOptional,
    events: SessionEventsDep,
):
    """Sign out: drop this device's session and notify subscribers."""
    session_token = request.cookies.get(SESSION_COOKIE)
    if session_token:
        await db.execute(delete(UserSession).where(UserSession.session_token == session_token))
        await db.commit()

    if user:
        await events.publish(SessionEvent(SessionEventType.SIGNED_OUT, user.id, session_token))

    response = _redirect(request, "/auth/login")
    response.delete_cookie(SESSION_COOKIE, path="/")
    return response


@router.get("/logout")
async def logout_get(
    request: Request,
    db: DBSession,
    user: CurrentUserOptional,
    events: SessionEventsDep,
):
    """Handle logout via GET (for links)."""
    return await logout(request, db, user, events)
