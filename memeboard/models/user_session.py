"""
User session model.

Each login creates a new session record; the cookie carries its token.
"""

import secrets
from datetime import datetime, timedelta, timezone

from sqlalchemy import DateTime, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from memeboard.db import Base
from memeboard.models.base import TimestampMixin
from memeboard.settings import settings


class UserSession(Base, TimestampMixin):
    """Individual login session."""

    __tablename__ = "user_sessions"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    session_token: Mapped[str] = mapped_column(String(64), unique=True, nullable=False, index=True)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    last_used_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    user = relationship("User", back_populates="sessions")

    @classmethod
    def create_session(cls, user_id: int) -> "UserSession":
        """Create a new session for a user (not yet added to the DB)."""
        now = datetime.now(timezone.utc)
        return cls(
            user_id=user_id,
            session_token=secrets.token_hex(32),
            expires_at=now + timedelta(hours=settings.session_expire_hours),
            last_used_at=now,
        )

    def is_valid(self) -> bool:
        """False once expires_at has passed."""
        return datetime.now(timezone.utc) < self.expires_at

    def refresh(self) -> None:
        """Update last_used_at and extend expiration past its half-life."""
        now = datetime.now(timezone.utc)
        self.last_used_at = now

        expire_hours = settings.session_expire_hours
        half_life = timedelta(hours=expire_hours / 2)
        if self.expires_at - now < half_life:
            self.expires_at = now + timedelta(hours=expire_hours)

    def __repr__(self) -> str:
        return f"<UserSession {self.id} user={self.user_id}>"
