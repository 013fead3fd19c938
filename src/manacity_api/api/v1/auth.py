"""Authentication API endpoints.

POST /auth/login, POST /auth/refresh, GET /auth/me, plus the
unauthenticated GET /health and GET /info checks.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm
from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from manacity_api import __version__
from manacity_api.core.config import Settings, get_settings
from manacity_api.core.dependencies import get_async_session, get_current_user
from manacity_api.models.user import User
from manacity_api.schemas.auth import RefreshRequest, TokenResponse, UserResponse
from manacity_api.services import auth_service

router = APIRouter(tags=["auth"])


@router.get("/health")
async def health_check() -> dict:
    return {"status": "healthy"}


@router.get("/info")
async def info(
    settings: Annotated[Settings, Depends(get_settings)],
) -> dict:
    """Report the running version and deployment environment."""
    return {"version": __version__, "environment": settings.environment}


@router.post("/auth/login", response_model=TokenResponse)
async def login(
    form_data: Annotated[OAuth2PasswordRequestForm, Depends()],
    session: Annotated[AsyncSession, Depends(get_async_session)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> TokenResponse:
    """Exchange a username and password for an access/refresh token pair."""
    user = await auth_service.authenticate_user(session, form_data.username, form_data.password)
    if user is None:
        logger.info(f"Failed login for {form_data.username}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect username or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    logger.info(f"User {user.username} logged in")
    return auth_service.generate_tokens(user, settings)


@router.post("/auth/refresh", response_model=TokenResponse)
async def refresh_token(
    request: RefreshRequest,
    session: Annotated[AsyncSession, Depends(get_async_session)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> TokenResponse:
    try:
        return await auth_service.refresh_access_token(session, request.refresh_token, settings)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(e)) from e


@router.get("/auth/me", response_model=UserResponse)
async def get_me(
    current_user: Annotated[User, Depends(get_current_user)],
) -> User:
    """Profile of the signed-in user."""
    return current_user
