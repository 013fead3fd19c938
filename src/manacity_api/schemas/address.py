"""Pydantic v2 schemas for the address book API.

Wire format is camelCase (``isDefault``, ``lastUsedAt``) to match the web
client. Request fields are deliberately loose: required-field and length
rules are enforced by the address book service so that they produce the
same 400 error codes whether the payload comes from the API or from
checkout.
"""

import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CoordinatesResponse(BaseModel):
    """Saved coordinates; either part may be null."""

    lat: float | None = None
    lng: float | None = None


class AddressResponse(BaseModel):
    """A saved address as returned to clients."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: uuid.UUID
    label: str
    line1: str
    line2: str = Field(default="", description="Always a string; empty when no secondary line")
    city: str
    state: str
    pincode: str
    is_default: bool
    coords: CoordinatesResponse | None = Field(default=None, description="Null when no coordinates are saved")
    last_used_at: datetime | None = None


class AddressCreateRequest(BaseModel):
    """Documented shape of the address save request body.

    The endpoint publishes this schema but hands the raw JSON to the
    address book service, which is the only validator.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    label: str | None = Field(default=None, description="Display name, 2-120 characters")
    line1: str | None = Field(default=None, description="Street line, 3-200 characters")
    line2: str | None = Field(default=None, description="Optional secondary line, up to 200 characters")
    city: str | None = Field(default=None, description="2-120 characters")
    state: str | None = Field(default=None, description="2-120 characters")
    pincode: str | None = Field(default=None, description="Postal code, 3-20 characters")
    coords: dict[str, Any] | None = Field(
        default=None, description="Optional {lat, lng}; non-numeric parts are dropped"
    )
    is_default: Any = Field(default=None, alias="isDefault", description="Only the JSON literal true marks default")


class AddressListResponse(BaseModel):
    """All of a user's saved addresses, default first."""

    items: list[AddressResponse]


class AddressEnvelope(BaseModel):
    """Single-address response wrapper."""

    address: AddressResponse
