"""
Reactions router for meme reactions.
"""

from typing import Annotated

from fastapi import APIRouter, Form, Request, status
from fastapi.responses import JSONResponse, Response

from memeboard.deps import CurrentUserOptional, Store, viewer_id, wants_json
from memeboard.exceptions import MissingInputError
from memeboard.models.reaction import ReactionType
from memeboard.routers.memes import render_feed
from memeboard.routers.realtime import broadcast_feed_changed
from memeboard.services.feed import load_feed
from memeboard.services.reactions import toggle_reaction

router = APIRouter(prefix="/reactions", tags=["reactions"])


@router.post("/{meme_id}/toggle")
async def toggle(
    request: Request,
    meme_id: int,
    user: CurrentUserOptional,
    store: Store,
    type: Annotated[str, Form()],
):
    """Add, switch, or remove the viewer's reaction, then return the reloaded feed."""
    requested = ReactionType.parse(type)
    if requested is None:
        raise MissingInputError(f"Unknown reaction: {type}")

    current_viewer = viewer_id(user)
    result = await toggle_reaction(
        store,
        meme_id,
        requested,
        current_viewer,
        reload=lambda: load_feed(store, current_viewer),
    )

    if result is None:
        # Lookup failed; nothing changed and the feed was not reloaded
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    await broadcast_feed_changed("reaction", meme_id)

    if wants_json(request):
        # Report what the reloaded feed shows, not what was attempted
        reloaded = next((v for v in result.feed if v.id == meme_id), None)
        user_reaction = reloaded.user_reaction if reloaded is not None else result.state.reaction_type
        return JSONResponse({
            "action": result.action.value,
            "applied": result.applied,
            "user_reaction": user_reaction,
            "memes": [view.to_dict() for view in result.feed],
        })
    return render_feed(request, result.feed)
