"""
Account and session endpoints, mounted under /api/v1/auth.
"""

from __future__ import annotations

import redis.asyncio as aioredis
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from taskhub.core.database import get_db
from taskhub.core.dependencies import get_current_user, get_redis, get_token_identity
from taskhub.core.security import TokenIdentity
from taskhub.models.user import User
from taskhub.schemas.auth import (
    LoginRequest,
    LogoutRequest,
    MeResponse,
    RefreshRequest,
    RegisterRequest,
    TokenResponse,
)
from taskhub.services.auth_service import AuthService

router = APIRouter()


def get_auth_service(
    db: AsyncSession = Depends(get_db),
    redis: aioredis.Redis = Depends(get_redis),
) -> AuthService:
    return AuthService(db=db, redis=redis)


@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED, summary="Create an account")
async def register(data: RegisterRequest, service: AuthService = Depends(get_auth_service)) -> TokenResponse:
    return await service.register(data)


@router.post("/login", response_model=TokenResponse, summary="Exchange credentials for tokens")
async def login(data: LoginRequest, service: AuthService = Depends(get_auth_service)) -> TokenResponse:
    return await service.login(data)


@router.post("/refresh", response_model=TokenResponse, summary="Rotate a refresh token")
async def refresh(data: RefreshRequest, service: AuthService = Depends(get_auth_service)) -> TokenResponse:
    """The presented refresh token stops working once exchanged."""
    return await service.refresh(data.refresh_token)


@router.post("/logout", summary="Revoke the current access token and the given refresh token")
async def logout(
    data: LogoutRequest,
    identity: TokenIdentity = Depends(get_token_identity),
    service: AuthService = Depends(get_auth_service),
) -> dict:
    await service.logout(access_token_jti=identity.jti, refresh_token=data.refresh_token)
    return {}


@router.get("/me", response_model=MeResponse, summary="Current account")
async def get_me(
    current_user: User = Depends(get_current_user),
    service: AuthService = Depends(get_auth_service),
) -> MeResponse:
    return await service.get_me(current_user)
