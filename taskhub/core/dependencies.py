"""
FastAPI dependency injection functions.

Provides database sessions, the verified token identity, the current user,
Redis connections and the event fan-out router.
"""

from __future__ import annotations

import redis.asyncio as aioredis
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from taskhub.core.config import settings
from taskhub.core.database import get_db
from taskhub.core.errors import UnauthorizedError
from taskhub.core.security import TokenIdentity, blacklist_redis_key, decode_access_token
from taskhub.models.user import User
from taskhub.services.fanout import FanoutRouter

# ---------------------------------------------------------------------------
# HTTP Bearer scheme (auto_error=False so we can return custom 401)
# ---------------------------------------------------------------------------

bearer_scheme = HTTPBearer(auto_error=False)

# ---------------------------------------------------------------------------
# Redis
# ---------------------------------------------------------------------------

_redis_pool: aioredis.Redis | None = None


async def get_redis() -> aioredis.Redis:
    """
    Return a shared async Redis client.

    Uses a module-level pool so connections are reused across requests.
    """
    global _redis_pool
    if _redis_pool is None:
        _redis_pool = aioredis.from_url(
            str(settings.REDIS_URL),
            encoding="utf-8",
            decode_responses=True,
        )
    return _redis_pool


# ---------------------------------------------------------------------------
# Token identity / current user
# ---------------------------------------------------------------------------

def _unauthorized(code: str, message: str) -> UnauthorizedError:
    return UnauthorizedError(message, code=code)


async def verify_access_token(token: str, redis: aioredis.Redis) -> TokenIdentity:
    """
    Decode an access token and reject revoked ones.

    Shared by the HTTP bearer dependency and the WebSocket handshake.
    """
    try:
        identity = decode_access_token(token)
    except JWTError:
        raise _unauthorized("INVALID_TOKEN", "Token is invalid or expired")

    if await redis.exists(blacklist_redis_key(identity.jti)):
        raise _unauthorized("TOKEN_REVOKED", "Token has been revoked")

    return identity


async def load_active_user(db: AsyncSession, identity: TokenIdentity) -> User:
    result = await db.execute(select(User).where(User.id == identity.user_id))
    user = result.scalar_one_or_none()
    if user is None or not user.is_active:
        raise _unauthorized("USER_NOT_FOUND", "User not found or inactive")
    return user


async def get_token_identity(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    redis: aioredis.Redis = Depends(get_redis),
) -> TokenIdentity:
    """
    Validate the Bearer JWT.

    Raises 401 if:
    - No token provided
    - Token is invalid or expired
    - JTI is blacklisted
    """
    if credentials is None:
        raise _unauthorized("MISSING_TOKEN", "Authorization header required")
    return await verify_access_token(credentials.credentials, redis)


async def get_current_user(
    identity: TokenIdentity = Depends(get_token_identity),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Return the authenticated, active User. Raises 401 otherwise."""
    return await load_active_user(db, identity)


# ---------------------------------------------------------------------------
# Event fan-out
# ---------------------------------------------------------------------------

def get_fanout_router(request: Request) -> FanoutRouter:
    """
    Fan-out router bound to the app's connection manager.

    Falls back to a no-op transport when the app has none attached.
    """
    return FanoutRouter(getattr(request.app.state, "connections", None))
