"""
Backing store for memes, reactions and templates.

MemeStore wraps an AsyncSession and exposes exactly the operations the feed
loader, the reaction toggle and media submission consume. Every database
failure is re-raised as StoreError; the lookup of a viewer's reaction raises
ReactionNotFound when there is no row.
"""

import logging

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from memeboard.exceptions import ReactionNotFound, StoreError
from memeboard.models.meme import Meme
from memeboard.models.reaction import Reaction, ReactionType
from memeboard.models.template import Template

logger = logging.getLogger(__name__)


class MemeStore:
    """Relational store operations used by the meme board."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_memes(self) -> list[Meme]:
        """All memes, newest first, with their reactions loaded."""
        try:
            result = await self.db.execute(
                select(Meme)
                .order_by(Meme.created_at.desc(), Meme.id.desc())
                .execution_options(populate_existing=True)
            )
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to list memes: {e}") from e

    async def insert_meme(
        self,
        url: str,
        user_id: int,
        caption: str | None = None,
        caption_top: str | None = None,
        caption_bottom: str | None = None,
        category: str | None = None,
        template_id: int | None = None,
    ) -> Meme:
        meme = Meme(
            url=url,
            user_id=user_id,
            caption=caption,
            caption_top=caption_top,
            caption_bottom=caption_bottom,
            category=category,
            template_id=template_id,
        )
        try:
            self.db.add(meme)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise StoreError(f"Failed to insert meme: {e}") from e
        return meme

    async def find_reaction(self, meme_id: int, user_id: int) -> Reaction:
        """The viewer's reaction row on a meme.

        Raises ReactionNotFound when there is none. If a racing toggle left
        several rows, the newest one is returned, the same row the feed
        reports as the viewer's reaction.
        """
        try:
            result = await self.db.execute(
                select(Reaction)
                .where(
                    Reaction.meme_id == meme_id,
                    Reaction.user_id == user_id,
                )
                .order_by(Reaction.id)
            )
            rows = result.scalars().all()
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to look up reaction: {e}") from e

        if not rows:
            raise ReactionNotFound(f"No reaction by user {user_id} on meme {meme_id}")
        if len(rows) > 1:
            logger.warning(
                "User %s has %d reactions on meme %s; toggling the newest",
                user_id, len(rows), meme_id,
            )
        return rows[-1]

    async def insert_reaction(self, meme_id: int, user_id: int, reaction_type: ReactionType) -> Reaction:
        reaction = Reaction(meme_id=meme_id, user_id=user_id, type=reaction_type.value)
        try:
            self.db.add(reaction)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise StoreError(f"Failed to insert reaction: {e}") from e
        return reaction

    async def update_reaction(self, reaction_id: int, reaction_type: ReactionType) -> None:
        try:
            reaction = await self.db.get(Reaction, reaction_id)
            if reaction is None:
                raise StoreError(f"Reaction {reaction_id} vanished before update")
            reaction.type = reaction_type.value
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise StoreError(f"Failed to update reaction {reaction_id}: {e}") from e

    async def delete_reaction(self, reaction_id: int) -> None:
        try:
            reaction = await self.db.get(Reaction, reaction_id)
            if reaction is not None:
                await self.db.delete(reaction)
                await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise StoreError(f"Failed to delete reaction {reaction_id}: {e}") from e

    async def list_templates(self) -> list[Template]:
        try:
            result = await self.db.execute(
                select(Template).order_by(Template.created_at.desc(), Template.id.desc())
            )
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to list templates: {e}") from e

    async def get_template(self, template_id: int) -> Template | None:
        try:
            return await self.db.get(Template, template_id)
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to load template {template_id}: {e}") from e
