"""
Template router: generator backgrounds and overlay previews.
"""

from fastapi import APIRouter, HTTPException, status
from fastapi.responses import Response

from memeboard.deps import CurrentUser, Store
from memeboard.services.categories import filter_templates, template_categories, template_category
from memeboard.services.overlay import render_preview, to_png

router = APIRouter(prefix="/templates", tags=["templates"])


@router.get("")
async def list_templates(
    user: CurrentUser,
    store: Store,
    category: str | None = None,
):
    """Templates, newest first, optionally filtered by category."""
    all_templates = await store.list_templates()
    return {
        "categories": template_categories(all_templates),
        "templates": [
            {
                "id": t.id,
                "name": t.name,
                "url": t.url,
                "category": template_category(t),
            }
            for t in filter_templates(all_templates, category)
        ],
    }


@router.get("/{template_id}/preview.png")
async def preview(
    template_id: int,
    user: CurrentUser,
    store: Store,
    top: str = "",
    bottom: str = "",
):
    """Render the caption overlay for a template as PNG."""
    template = await store.get_template(template_id)
    if template is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Template not found")

    image = await render_preview(template.url, top, bottom)
    return Response(
        content=to_png(image),
        media_type="image/png",
        headers={"Cache-Control": "no-store"},
    )
