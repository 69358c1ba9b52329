"""
Reaction model for emoji reactions on memes.
"""

from enum import Enum

from sqlalchemy import ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from memeboard.db import Base
from memeboard.models.base import CreatedAtMixin


class ReactionType(str, Enum):
    """The fixed set of reactions a viewer can leave on a meme.

    Counting, rendering and the toggle all iterate this enum, so adding a
    member here is the only change needed to support a new reaction.
    """

    HEART = "heart"
    LAUGH = "laugh"
    WOW = "wow"
    SAD = "sad"

    @property
    def emoji(self) -> str:
        return _EMOJI[self]

    @classmethod
    def parse(cls, value: str) -> "ReactionType | None":
        """Return the member for ``value`` or None if it isn't a reaction."""
        try:
            return cls(value)
        except ValueError:
            return None

    @classmethod
    def zero_counts(cls) -> dict["ReactionType", int]:
        return {reaction_type: 0 for reaction_type in cls}


_EMOJI = {
    ReactionType.HEART: "❤️",
    ReactionType.LAUGH: "😂",
    ReactionType.WOW: "😮",
    ReactionType.SAD: "😢",
}


class Reaction(Base, CreatedAtMixin):
    """One viewer's reaction to one meme.

    (meme_id, user_id) carries no unique constraint. At most one row per
    pair is kept only by the toggle in memeboard.services.reactions.
    """

    __tablename__ = "reactions"

    id: Mapped[int] = mapped_column(primary_key=True)
    meme_id: Mapped[int] = mapped_column(
        ForeignKey("memes.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    type: Mapped[str] = mapped_column(String(20), nullable=False)

    meme = relationship("Meme", back_populates="reactions")

    def __repr__(self) -> str:
        return f"<Reaction {self.type} by user {self.user_id} on meme {self.meme_id}>"
