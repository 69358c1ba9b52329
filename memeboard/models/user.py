"""
Board members: the people who post memes and react to them.
"""

from datetime import datetime, timezone

from sqlalchemy import DateTime, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from memeboard.db import Base
from memeboard.models.base import TimestampMixin


class User(Base, TimestampMixin):
    """A signed-up board member (email + password)."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    display_name: Mapped[str] = mapped_column(String(100), nullable=False)

    hashed_password: Mapped[str | None] = mapped_column(String(255), nullable=True)

    is_active: Mapped[bool] = mapped_column(default=True, nullable=False)
    last_seen_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    sessions = relationship("UserSession", back_populates="user", lazy="noload", cascade="all, delete-orphan")
    memes = relationship("Meme", back_populates="user", lazy="noload")

    def update_last_seen(self) -> None:
        """Stamp activity; called on login and on every refreshed session."""
        self.last_seen_at = datetime.now(timezone.utc)

    def __repr__(self) -> str:
        return f"<User {self.id} {self.email}>"
