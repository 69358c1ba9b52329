"""
Memes router: the board page, the feed, and meme submission.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, File, Form, Request, UploadFile, status
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse

from memeboard.deps import (
    CurrentUserOptional,
    Store,
    Uploader,
    is_htmx,
    viewer_id,
    wants_json,
)
from memeboard.exceptions import NotAuthenticatedError, StoreError
from memeboard.routers.realtime import broadcast_feed_changed
from memeboard.services.categories import filter_templates, template_categories
from memeboard.services.feed import MemeView, load_feed
from memeboard.services.submission import submit_generated_meme, submit_meme
from memeboard.templates_config import templates

logger = logging.getLogger(__name__)
router = APIRouter(tags=["memes"])


def render_feed(request: Request, feed: list[MemeView]):
    """Feed as JSON for API clients, or the grid partial for the board."""
    if wants_json(request):
        return JSONResponse({"memes": [view.to_dict() for view in feed]})
    return templates.TemplateResponse(request, "partials/meme_grid.html", {"memes": feed})


async def _after_submission(request: Request, store: Store, user_id: int, meme):
    """Reload the feed once a submission has finished, successful or not."""
    if meme is not None:
        await broadcast_feed_changed("meme_created", meme.id)

    if not is_htmx(request) and not wants_json(request):
        return RedirectResponse(url="/", status_code=status.HTTP_303_SEE_OTHER)

    feed = await load_feed(store, user_id)
    response = render_feed(request, feed)
    if is_htmx(request) and meme is not None:
        response.headers["HX-Trigger"] = "memeSubmitted"
    return response


@router.get("/", response_class=HTMLResponse)
async def board(
    request: Request,
    user: CurrentUserOptional,
    store: Store,
    category: str | None = None,
    template_id: int | None = None,
):
    """The meme board: uploader, template generator, and feed."""
    if not user:
        return RedirectResponse(url="/auth/login", status_code=status.HTTP_302_FOUND)

    feed = await load_feed(store, user.id)

    try:
        all_templates = await store.list_templates()
    except StoreError as e:
        logger.error("Failed to load templates: %s", e)
        all_templates = []

    selected = next((t for t in all_templates if t.id == template_id), None)

    return templates.TemplateResponse(
        request,
        "board.html",
        {
            "user": user,
            "memes": feed,
            "templates": filter_templates(all_templates, category),
            "template_categories": template_categories(all_templates),
            "category": category or "",
            "selected_template": selected,
        },
    )


@router.get("/memes")
async def list_memes(
    request: Request,
    user: CurrentUserOptional,
    store: Store,
):
    """The viewer's feed, newest first."""
    feed = await load_feed(store, viewer_id(user))
    return render_feed(request, feed)


@router.post("/memes")
async def upload_meme(
    request: Request,
    user: CurrentUserOptional,
    store: Store,
    uploader: Uploader,
    file: Annotated[UploadFile | None, File()] = None,
    caption: Annotated[str, Form()] = "",
    category: Annotated[str | None, Form()] = None,
    custom_category: Annotated[str | None, Form()] = None,
):
    """Upload an image to the media host and add it to the board."""
    data = await file.read() if file is not None else None

    meme = await submit_meme(
        store,
        uploader,
        viewer_id(user),
        data,
        file.filename if file is not None else None,
        file.content_type if file is not None else None,
        caption=caption,
        category=category,
        custom_category=custom_category,
    )
    return await _after_submission(request, store, user.id, meme)


@router.post("/memes/generate")
async def generate_meme(
    request: Request,
    user: CurrentUserOptional,
    store: Store,
    uploader: Uploader,
    template_id: Annotated[int | None, Form()] = None,
    top_text: Annotated[str, Form()] = "",
    bottom_text: Annotated[str, Form()] = "",
):
    """Render captions onto a template and post the result."""
    if user is None:
        raise NotAuthenticatedError()
    template = await store.get_template(template_id) if template_id is not None else None

    meme = await submit_generated_meme(
        store,
        uploader,
        viewer_id(user),
        template,
        top_text,
        bottom_text,
    )
    return await _after_submission(request, store, user.id, meme)
