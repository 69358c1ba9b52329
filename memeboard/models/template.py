"""
Template model: reusable background images for the meme generator.
"""

from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column

from memeboard.db import Base
from memeboard.models.base import CreatedAtMixin

UNCATEGORIZED = "Uncategorized"


class Template(Base, CreatedAtMixin):
    """Read-only reference image for caption overlays."""

    __tablename__ = "templates"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    url: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[str | None] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"<Template {self.id} {self.name}>"
