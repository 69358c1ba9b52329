"""
Feed loading and reduction.

The feed is rebuilt in full from the store on every load: each meme's
reaction rows are reduced into per-type counts plus the viewer's own
reaction, and a single display caption is derived. Nothing is patched
incrementally.
"""

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Protocol

from memeboard.exceptions import StoreError
from memeboard.models.reaction import ReactionType

logger = logging.getLogger(__name__)

CAPTION_SEPARATOR = " · "


class FeedStore(Protocol):
    async def list_memes(self) -> Sequence[Any]: ...


@dataclass
class MemeView:
    """Display-ready projection of one meme for one viewer."""

    id: Any
    url: str
    caption: str
    created_at: datetime | None
    caption_top: str | None = None
    caption_bottom: str | None = None
    category: str | None = None
    template_id: Any = None
    user_id: Any = None
    reactions: dict[ReactionType, int] = field(default_factory=ReactionType.zero_counts)
    user_reaction: ReactionType | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "url": self.url,
            "caption": self.caption,
            "caption_top": self.caption_top,
            "caption_bottom": self.caption_bottom,
            "category": self.category,
            "template_id": self.template_id,
            "user_id": self.user_id,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "reactions": {reaction_type.value: count for reaction_type, count in self.reactions.items()},
            "user_reaction": self.user_reaction.value if self.user_reaction else None,
        }


def derive_caption(
    caption_top: str | None,
    caption_bottom: str | None,
    caption: str | None = None,
) -> str:
    """Single display caption for a meme.

    A top/bottom pair wins over the legacy caption; both halves are joined
    with a middle dot only when both are present.
    """
    if caption_top or caption_bottom:
        separator = CAPTION_SEPARATOR if caption_top and caption_bottom else ""
        return f"{caption_top or ''}{separator}{caption_bottom or ''}".strip()
    return caption or ""


def reduce_meme(meme: Any, viewer_id: Any) -> MemeView:
    counts = ReactionType.zero_counts()
    user_reaction = None

    for reaction in meme.reactions or []:
        reaction_type = ReactionType.parse(reaction.type)
        if reaction_type is None:
            logger.warning("Skipping unknown reaction type %r on meme %s", reaction.type, meme.id)
            continue
        counts[reaction_type] += 1
        # Last match wins if the viewer somehow has several rows
        if viewer_id is not None and reaction.user_id == viewer_id:
            user_reaction = reaction_type

    return MemeView(
        id=meme.id,
        url=meme.url or "",
        caption=derive_caption(meme.caption_top, meme.caption_bottom, meme.caption),
        created_at=meme.created_at,
        caption_top=meme.caption_top,
        caption_bottom=meme.caption_bottom,
        category=meme.category,
        template_id=meme.template_id,
        user_id=meme.user_id,
        reactions=counts,
        user_reaction=user_reaction,
    )


def reduce_feed(memes: Iterable[Any], viewer_id: Any) -> list[MemeView]:
    """Reduce memes to views, preserving the input order."""
    return [reduce_meme(meme, viewer_id) for meme in memes]


async def load_feed(
    store: FeedStore,
    viewer_id: Any,
    previous: list[MemeView] | None = None,
) -> list[MemeView]:
    """Fetch every meme newest-first and reduce it for ``viewer_id``.

    Signed-out viewers get an empty feed without a store call. If the fetch
    fails the error is logged and ``previous`` is returned unchanged.
    """
    if previous is None:
        previous = []
    if viewer_id is None:
        return []

    try:
        memes = await store.list_memes()
    except StoreError as e:
        logger.error("Failed to load feed: %s", e)
        return previous

    return reduce_feed(memes, viewer_id)
