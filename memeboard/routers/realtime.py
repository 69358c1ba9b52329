"""
WebSocket realtime router: tells open boards when the feed changed.
"""

import asyncio
import json
import logging
from collections import defaultdict
from typing import Any

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from sqlalchemy import select
from sqlalchemy.orm import selectinload

from memeboard.db import async_session_maker
from memeboard.deps import SESSION_COOKIE
from memeboard.models.user import User
from memeboard.models.user_session import UserSession
from memeboard.services.session_events import SessionEvent, SessionEventType

logger = logging.getLogger(__name__)
router = APIRouter(tags=["realtime"])

# Close code sent to sockets whose user signed out
CLOSE_SIGNED_OUT = 4001
CLOSE_UNAUTHORIZED = 4003


class ConnectionManager:
    """Track feed WebSocket connections per user and per login session."""

    def __init__(self):
        # user_id -> open connections (one per tab/device)
        self.active_connections: dict[int, set[WebSocket]] = defaultdict(set)
        # connection -> session token it authenticated with
        self.session_tokens: dict[WebSocket, str | None] = {}
        self._lock = asyncio.Lock()

    async def connect(self, websocket: WebSocket, user_id: int, session_token: str | None = None) -> None:
        await websocket.accept()
        async with self._lock:
            self.active_connections[user_id].add(websocket)
            self.session_tokens[websocket] = session_token
        logger.info("Feed WebSocket connected for user %s", user_id)

    async def disconnect(self, websocket: WebSocket, user_id: int) -> None:
        async with self._lock:
            connections = self.active_connections.get(user_id)
            if connections is not None:
                connections.discard(websocket)
                if not connections:
                    del self.active_connections[user_id]
            self.session_tokens.pop(websocket, None)
        logger.info("Feed WebSocket disconnected for user %s", user_id)

    async def broadcast(self, message: dict[str, Any]) -> None:
        """Send ``message`` to every open connection, dropping dead ones."""
        async with self._lock:
            targets = [
                (user_id, connection)
                for user_id, connections in self.active_connections.items()
                for connection in connections
            ]

        disconnected = []
        for user_id, connection in targets:
            try:
                await connection.send_json(message)
            except Exception as e:
                logger.warning("Failed to send to WebSocket for user %s: %s", user_id, e)
                disconnected.append((connection, user_id))

        for connection, user_id in disconnected:
            await self.disconnect(connection, user_id)

    async def close_user(
        self,
        user_id: int,
        code: int = CLOSE_SIGNED_OUT,
        session_token: str | None = None,
    ) -> None:
        """Close ``user_id``'s sockets; only those opened with ``session_token`` when given."""
        async with self._lock:
            connections = self.active_connections.get(user_id, set())
            closing = {
                connection for connection in connections
                if session_token is None or self.session_tokens.get(connection) == session_token
            }
            connections -= closing
            if not connections:
                self.active_connections.pop(user_id, None)
            for connection in closing:
                self.session_tokens.pop(connection, None)

        for connection in closing:
            try:
                await connection.close(code=code)
            except Exception as e:
                logger.debug("Closing WebSocket for user %s failed: %s", user_id, e)

    async def handle_session_event(self, event: SessionEvent) -> None:
        """Session subscriber: signing out closes the feed sockets of the ended session."""
        if event.type is SessionEventType.SIGNED_OUT:
            await self.close_user(event.user_id, session_token=event.session_token)

    def get_connection_count(self) -> int:
        return sum(len(connections) for connections in self.active_connections.values())


# Global connection manager
manager = ConnectionManager()


async def broadcast_feed_changed(reason: str, meme_id: int | None = None) -> None:
    """Ask every open board to reload its feed."""
    await manager.broadcast({"type": "feed_changed", "reason": reason, "meme_id": meme_id})


async def authenticate_websocket(websocket: WebSocket) -> User | None:
    session_token = websocket.cookies.get(SESSION_COOKIE)
    if not session_token:
        return None

    async with async_session_maker() as db:
        result = await db.execute(
            select(UserSession)
            .where(UserSession.session_token == session_token)
            .options(selectinload(UserSession.user))
        )
        session = result.scalar_one_or_none()
        if session and session.is_valid() and session.user and session.user.is_active:
            return session.user
    return None


@router.websocket("/ws/feed")
async def websocket_feed(websocket: WebSocket):
    """WebSocket endpoint for feed change notifications."""
    user = await authenticate_websocket(websocket)
    if not user:
        await websocket.close(code=CLOSE_UNAUTHORIZED)
        return

    await manager.connect(websocket, user.id, websocket.cookies.get(SESSION_COOKIE))

    try:
        await websocket.send_json({"type": "connected", "user_id": user.id})

        while True:
            try:
                data = await websocket.receive_json()
                if data.get("type") == "ping":
                    await websocket.send_json({"type": "pong"})
            except WebSocketDisconnect:
                break
            except RuntimeError:
                # Closed from the server side (sign-out)
                break
            except json.JSONDecodeError:
                continue
    finally:
        await manager.disconnect(websocket, user.id)
