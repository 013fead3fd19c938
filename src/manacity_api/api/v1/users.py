"""Admin user management endpoints: GET /users, POST /users."""

import math
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from manacity_api.core.dependencies import get_async_session, require_role
from manacity_api.models.user import User
from manacity_api.schemas.auth import UserCreateRequest, UserListResponse, UserResponse
from manacity_api.schemas.common import PaginationMeta, PaginationParams
from manacity_api.services import auth_service

users_router = APIRouter(
    prefix="/users",
    tags=["users"],
    dependencies=[Depends(require_role("admin"))],
)


@users_router.get("", response_model=UserListResponse)
async def list_accounts(
    session: Annotated[AsyncSession, Depends(get_async_session)],
    pagination: Annotated[PaginationParams, Depends()],
) -> UserListResponse:
    """Page through all accounts, oldest first."""
    users, total = await auth_service.list_users(session, pagination.page, pagination.page_size)
    return UserListResponse(
        items=[UserResponse.model_validate(user) for user in users],
        pagination=PaginationMeta(
            total=total,
            page=pagination.page,
            page_size=pagination.page_size,
            total_pages=max(1, math.ceil(total / pagination.page_size)),
        ),
    )


@users_router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_account(
    request: UserCreateRequest,
    session: Annotated[AsyncSession, Depends(get_async_session)],
) -> User:
    """Create an account with any role, for example a shop's business login."""
    try:
        return await auth_service.create_user(session, request)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e)) from e
