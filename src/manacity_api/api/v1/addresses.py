"""Address book API endpoints.

GET /addresses, POST /addresses, PATCH /addresses/{address_id}/default.
All endpoints act on the authenticated user's own addresses.
"""

import uuid
from typing import Annotated, Any

from fastapi import APIRouter, Body, Depends, HTTPException, status
from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from manacity_api.core.dependencies import get_async_session, get_current_user
from manacity_api.models.user import User
from manacity_api.schemas.address import AddressCreateRequest, AddressEnvelope, AddressListResponse
from manacity_api.schemas.common import ErrorResponse
from manacity_api.services.address_book_service import (
    AddressValidationError,
    create_or_update_address,
    list_address_responses,
    set_default_address,
    to_address_response,
)

addresses_router = APIRouter(
    prefix="/addresses",
    tags=["addresses"],
)


@addresses_router.get(
    "",
    response_model=AddressListResponse,
)
async def list_my_addresses(
    session: Annotated[AsyncSession, Depends(get_async_session)],
    current_user: Annotated[User, Depends(get_current_user)],
) -> AddressListResponse:
    """List the current user's saved addresses, default first."""
    try:
        items = await list_address_responses(session, current_user.id)
    except Exception as e:
        logger.error(f"Unexpected error listing addresses: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Could not load addresses. Please try again.",
        ) from e
    return AddressListResponse(items=items)


@addresses_router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    response_model=AddressEnvelope,
    responses={400: {"model": ErrorResponse}},
    openapi_extra={
        "requestBody": {
            "required": True,
            "content": {"application/json": {"schema": AddressCreateRequest.model_json_schema(by_alias=True)}},
        }
    },
)
async def create_address(
    body: Annotated[Any, Body()],
    session: Annotated[AsyncSession, Depends(get_async_session)],
    current_user: Annotated[User, Depends(get_current_user)],
) -> AddressEnvelope:
    """Save an address for the current user.

    Submitting an address that matches a saved one (ignoring case and
    spacing) updates that address instead of adding a duplicate. The body
    is passed through unparsed so that every malformed payload, including
    a non-object body or a non-string field, is answered with the same 400
    codes as checkout capture.
    """
    owner_id = current_user.id
    try:
        address = await create_or_update_address(session, owner_id, body)
    except AddressValidationError:
        raise
    except Exception as e:
        logger.error(f"Unexpected error saving address for user {owner_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Could not save address. Please try again.",
        ) from e
    return AddressEnvelope(address=to_address_response(address))


@addresses_router.patch(
    "/{address_id}/default",
    response_model=AddressEnvelope,
)
async def mark_default(
    address_id: uuid.UUID,
    session: Annotated[AsyncSession, Depends(get_async_session)],
    current_user: Annotated[User, Depends(get_current_user)],
) -> AddressEnvelope:
    """Make one of the current user's addresses the default."""
    owner_id = current_user.id
    try:
        address = await set_default_address(session, owner_id, address_id)
    except Exception as e:
        logger.error(f"Unexpected error setting default address {address_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Could not update default address. Please try again.",
        ) from e
    if address is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Address not found")
    return AddressEnvelope(address=to_address_response(address))
