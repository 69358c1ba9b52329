"""
FastAPI application entry point.
"""

import json
import logging
import uuid
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from memeboard.db import close_db, init_db
from memeboard.deps import SESSION_COOKIE, is_htmx, wants_json
from memeboard.exceptions import MissingInputError, NotAuthenticatedError, StoreError, UploadError
from memeboard.routers import auth, meme_templates, memes, reactions, realtime
from memeboard.services.session_events import SessionEvents
from memeboard.settings import settings
from memeboard.templates_config import templates

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s" if settings.log_format == "text" else None,
)
logger = logging.getLogger(__name__)

STATIC_DIR = Path(__file__).parent / "static"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    logger.info("Starting %s...", settings.app_name)
    await init_db()

    app.state.session_events = SessionEvents()
    unsubscribe = app.state.session_events.subscribe(realtime.manager.handle_session_event)
    yield
    logger.info("Shutting down %s...", settings.app_name)
    unsubscribe()
    app.state.session_events.clear()
    await close_db()


# Create FastAPI app
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    debug=settings.debug,
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Request ID middleware
@app.middleware("http")
async def add_request_id(request: Request, call_next):
    """Add request ID to all requests for logging."""
    request_id = request.headers.get("X-Request-ID", str(uuid.uuid4()))
    request.state.request_id = request_id
    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


# Session refresh middleware - keeps cookies in sync with sliding sessions
@app.middleware("http")
async def refresh_session_cookie(request: Request, call_next):
    """Re-issue the session cookie when the session dependency slid its expiry."""
    response = await call_next(request)

    if getattr(request.state, "session_refreshed", False):
        session_token = request.cookies.get(SESSION_COOKIE)
        # Logout deletes the cookie in the same response; leave that alone
        if session_token and SESSION_COOKIE not in response.headers.get("set-cookie", ""):
            response.set_cookie(
                key=SESSION_COOKIE,
                value=session_token,
                httponly=True,
                secure=not settings.debug,
                samesite="lax",
                max_age=settings.session_expire_hours * 3600,
                path="/",
            )

    return response


# Mount static files
app.mount("/static", StaticFiles(directory=str(STATIC_DIR)), name="static")


# Health check endpoint
@app.get("/healthz", tags=["health"])
@app.get("/health", tags=["health"])
async def healthz():
    """Health check endpoint for load balancers."""
    return {"status": "healthy"}


@app.get("/version", tags=["meta"])
async def version():
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "media_upload_enabled": settings.media_upload_enabled,
    }


app.include_router(auth.router)
app.include_router(memes.router)
app.include_router(reactions.router)
app.include_router(meme_templates.router)
app.include_router(realtime.router)


def _alert(request: Request, message: str, status_code: int):
    """Report a user-facing error as an alert, JSON, or error page."""
    if is_htmx(request):
        # HTMX still processes HX-Trigger on error responses
        response = HTMLResponse("", status_code=status_code)
        response.headers["HX-Trigger"] = json.dumps({"showAlert": {"message": message}})
        return response

    if wants_json(request):
        return JSONResponse({"detail": message}, status_code=status_code)

    return templates.TemplateResponse(
        request,
        "error.html",
        {"error": message, "status_code": status_code},
        status_code=status_code,
    )


@app.exception_handler(NotAuthenticatedError)
async def not_authenticated_handler(request: Request, exc: NotAuthenticatedError):
    if is_htmx(request) or wants_json(request):
        return _alert(request, str(exc), status.HTTP_401_UNAUTHORIZED)
    return RedirectResponse(url="/auth/login", status_code=status.HTTP_302_FOUND)


@app.exception_handler(MissingInputError)
async def missing_input_handler(request: Request, exc: MissingInputError):
    return _alert(request, str(exc), status.HTTP_400_BAD_REQUEST)


@app.exception_handler(UploadError)
async def upload_error_handler(request: Request, exc: UploadError):
    logger.error("Upload failed on %s: %s", request.url.path, exc)
    return _alert(request, f"Upload failed: {exc}", status.HTTP_502_BAD_GATEWAY)


@app.exception_handler(StoreError)
async def store_error_handler(request: Request, exc: StoreError):
    logger.error("Store error on %s: %s", request.url.path, exc)
    return _alert(request, "The board is temporarily unavailable", status.HTTP_503_SERVICE_UNAVAILABLE)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Handle HTTP exceptions with proper responses for HTMX, API, and browsers."""
    status_code = exc.status_code
    detail = exc.detail or ""

    # For 401 Unauthorized - redirect to login
    if status_code == 401:
        if is_htmx(request):
            response = HTMLResponse("", status_code=200)
            response.headers["HX-Redirect"] = "/auth/login"
            return response
        if wants_json(request):
            return JSONResponse({"detail": detail or "Not authenticated"}, status_code=401)
        return RedirectResponse(url="/auth/login", status_code=status.HTTP_302_FOUND)

    if status_code >= 500:
        logger.error("Server error %s: %s", status_code, detail)
        detail = "Server error"

    if is_htmx(request):
        return HTMLResponse(f'<div class="error">{detail}</div>', status_code=status_code)
    if wants_json(request):
        return JSONResponse({"detail": detail}, status_code=status_code)
    return templates.TemplateResponse(
        request,
        "error.html",
        {"error": detail, "status_code": status_code},
        status_code=status_code,
    )


# Generic exception handler for unhandled errors
@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception):
    """Handle unhandled exceptions - show error page instead of white screen."""
    logger.error("Unhandled exception: %s", exc, exc_info=True)
    return _alert(request, "An unexpected error occurred", status.HTTP_500_INTERNAL_SERVER_ERROR)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "memeboard.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
