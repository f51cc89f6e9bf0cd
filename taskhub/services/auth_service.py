"""
Accounts and sessions.

Access tokens are short-lived JWTs; logout blacklists their jti in Redis.
Refresh tokens are single use: each one is registered in Redis when issued
and removed when exchanged or logged out. Register and login are recorded
in the activity ledger without a team scope.
"""

from __future__ import annotations

import logging
from uuid import UUID

import redis.asyncio as aioredis
from jose import JWTError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from taskhub.core.config import settings
from taskhub.core.errors import ConflictError, ForbiddenError, UnauthorizedError
from taskhub.core.security import (
    blacklist_redis_key,
    create_access_token,
    create_refresh_token,
    decode_refresh_token,
    hash_password,
    refresh_token_redis_key,
    verify_password,
)
from taskhub.models.activity_log import ActivityAction
from taskhub.models.user import User
from taskhub.schemas.auth import LoginRequest, MeResponse, RegisterRequest, TokenResponse
from taskhub.services.activity_ledger import ActivityLedger

logger = logging.getLogger(__name__)


class AuthService:
    def __init__(self, db: AsyncSession, redis: aioredis.Redis) -> None:
        self.db = db
        self.redis = redis
        self.ledger = ActivityLedger(db)

    async def register(self, data: RegisterRequest) -> TokenResponse:
        if await self._find_by_email(data.email) is not None:
            raise ConflictError("Email is already registered", code="EMAIL_TAKEN")

        user = User(email=data.email, name=data.name, password_hash=hash_password(data.password))
        self.db.add(user)
        await self.db.flush()

        await self.ledger.record(ActivityAction.user_registered, user.id, f"{user.name} registered")
        await self.db.commit()
        logger.info("User registered: user_id=%s", user.id)
        return await self._issue_tokens(user)

    async def login(self, data: LoginRequest) -> TokenResponse:
        """Same error for unknown email and wrong password."""
        user = await self._find_by_email(data.email)
        if user is None or not verify_password(data.password, user.password_hash):
            raise UnauthorizedError("Invalid email or password", code="INVALID_CREDENTIALS")
        if not user.is_active:
            raise ForbiddenError("Account is disabled", code="ACCOUNT_DISABLED")

        await self.ledger.record(ActivityAction.user_login, user.id, f"{user.name} logged in")
        await self.db.commit()
        return await self._issue_tokens(user)

    async def refresh(self, refresh_token: str) -> TokenResponse:
        try:
            claims = decode_refresh_token(refresh_token)
        except JWTError:
            raise UnauthorizedError("Refresh token is invalid or expired", code="INVALID_TOKEN")

        key = refresh_token_redis_key(claims.get("sub", ""), claims.get("jti", ""))
        if not await self.redis.exists(key):
            raise UnauthorizedError("Refresh token has been revoked", code="TOKEN_REVOKED")

        user = await self.db.get(User, UUID(claims["sub"]))
        if user is None or not user.is_active:
            raise UnauthorizedError("User not found or inactive", code="USER_NOT_FOUND")

        await self.redis.delete(key)
        return await self._issue_tokens(user)

    async def logout(self, access_token_jti: str, refresh_token: str) -> None:
        await self.redis.setex(
            blacklist_redis_key(access_token_jti),
            settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES * 60,
            "1",
        )
        try:
            claims = decode_refresh_token(refresh_token)
        except JWTError:
            # expired refresh tokens have already dropped out of Redis
            return
        await self.redis.delete(refresh_token_redis_key(claims.get("sub", ""), claims.get("jti", "")))

    async def get_me(self, user: User) -> MeResponse:
        return MeResponse.model_validate(user)

    async def _find_by_email(self, email: str) -> User | None:
        result = await self.db.execute(select(User).where(User.email == email.lower()))
        return result.scalar_one_or_none()

    async def _issue_tokens(self, user: User) -> TokenResponse:
        user_id = str(user.id)
        refresh_token, refresh_jti = create_refresh_token(user_id)
        await self.redis.setex(
            refresh_token_redis_key(user_id, refresh_jti),
            settings.JWT_REFRESH_TOKEN_EXPIRE_DAYS * 24 * 60 * 60,
            "1",
        )
        return TokenResponse(
            access_token=create_access_token(user_id, user.email, user.role.value),
            refresh_token=refresh_token,
            expires_in=settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        )
