"""
Session change notifications.

One SessionEvents instance lives on ``app.state`` for the lifetime of the
application. Components subscribe with a callback and get back an
unsubscribe function; sign-in and sign-out publish the affected user.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum

logger = logging.getLogger(__name__)


class SessionEventType(str, Enum):
    SIGNED_IN = "signed_in"
    SIGNED_OUT = "signed_out"


@dataclass(frozen=True)
class SessionEvent:
    type: SessionEventType
    user_id: int
    # Token of the login session that changed; None means every session of the user
    session_token: str | None = None

    @property
    def current_user_id(self) -> int | None:
        """The signed-in user after this event, if any."""
        return self.user_id if self.type is SessionEventType.SIGNED_IN else None


SessionCallback = Callable[[SessionEvent], Awaitable[None]]


class SessionEvents:
    """Publish/subscribe hub for session changes."""

    def __init__(self):
        self._subscribers: list[SessionCallback] = []
        self._lock = asyncio.Lock()

    def subscribe(self, callback: SessionCallback) -> Callable[[], None]:
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    async def publish(self, event: SessionEvent) -> None:
        """Deliver ``event`` to every subscriber; one failure doesn't stop the rest."""
        async with self._lock:
            subscribers = list(self._subscribers)

        for callback in subscribers:
            try:
                await callback(event)
            except Exception as e:
                logger.warning("Session subscriber %r failed on %s: %s", callback, event.type.value, e)

    def clear(self) -> None:
        self._subscribers.clear()
