"""Session management with Redis.

Sessions are created by the OAuth sign-in integration and only read by
this service. A stored session resolves to an explicit ``SessionContext``
that is handed to every handler instead of living in ambient state.
"""

import json
import secrets
from datetime import datetime, timezone
from typing import Optional

import redis.asyncio as redis
from pydantic import BaseModel

from racecalendar.core.config import get_settings

settings = get_settings()

# Redis client (initialized lazily)
_redis_client: Optional[redis.Redis] = None


class SessionUser(BaseModel):
    """Identity carried by a session."""

    id: str
    name: str
    email: str


class SessionContext(BaseModel):
    """Per-request session value ``{user: {id, name, email}}``."""

    user: SessionUser


async def get_redis() -> redis.Redis:
    """Get Redis client instance."""
    global _redis_client
    if _redis_client is None:
        _redis_client = redis.from_url(
            settings.redis_url,
            encoding="utf-8",
            decode_responses=True,
        )
    return _redis_client


def generate_session_id() -> str:
    """Generate a secure random session ID."""
    return secrets.token_urlsafe(32)


async def create_session(user: SessionUser) -> str:
    """Store a new session for ``user`` and return its id."""
    redis_client = await get_redis()
    session_id = generate_session_id()

    session_data = {
        "user": user.model_dump(),
        "created_at": datetime.now(timezone.utc).isoformat(),
    }

    await redis_client.setex(
        f"session:{session_id}",
        settings.session_ttl_seconds,
        json.dumps(session_data),
    )

    return session_id


async def get_session(session_id: str) -> Optional[SessionContext]:
    """Get session data from Redis.

    Returns:
        The session context, or None if not found/expired.
    """
    redis_client = await get_redis()
    data = await redis_client.get(f"session:{session_id}")

    if data is None:
        return None

    return SessionContext.model_validate(json.loads(data))


async def delete_session(session_id: str) -> bool:
    """Delete a session from Redis.

    Returns:
        True if session was deleted, False otherwise.
    """
    redis_client = await get_redis()
    result = await redis_client.delete(f"session:{session_id}")
    return result > 0

