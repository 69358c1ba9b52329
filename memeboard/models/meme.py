"""
Meme model for user-submitted image posts.
"""

from sqlalchemy import ForeignKey, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from memeboard.db import Base
from memeboard.models.base import CreatedAtMixin


class Meme(Base, CreatedAtMixin):
    """An uploaded or generated meme."""

    __tablename__ = "memes"

    id: Mapped[int] = mapped_column(primary_key=True)
    url: Mapped[str] = mapped_column(Text, nullable=False)

    # Legacy single caption; generated memes also carry the top/bottom pair
    caption: Mapped[str | None] = mapped_column(Text, nullable=True)
    caption_top: Mapped[str | None] = mapped_column(Text, nullable=True)
    caption_bottom: Mapped[str | None] = mapped_column(Text, nullable=True)

    category: Mapped[str | None] = mapped_column(Text, nullable=True, index=True)
    template_id: Mapped[int | None] = mapped_column(
        ForeignKey("templates.id", ondelete="SET NULL"),
        nullable=True,
    )
    user_id: Mapped[int | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    # Relationships
    user = relationship("User", back_populates="memes")
    reactions = relationship(
        "Reaction",
        back_populates="meme",
        lazy="selectin",
        cascade="all, delete-orphan",
        order_by="Reaction.id",
    )

    def __repr__(self) -> str:
        return f"<Meme {self.id} by user {self.user_id}>"
