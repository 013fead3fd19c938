"""Address book service — deduplicated saves and default selection.

Saved addresses are keyed by content: the ``(owner_id, fingerprint)`` unique
constraint turns a repeated submission of the same place into an update of
the existing row instead of a duplicate. Every write that can change the
default flag runs inside one transaction holding a row lock on the owner's
``users`` row, so concurrent writers for one owner serialize and the
single-default sweep is never interleaved with another writer's.
"""

import uuid
from collections.abc import Mapping
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any

from loguru import logger
from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from manacity_api.lib.address_book import (
    DEFAULT_SHIPPING_LABEL,
    Coordinates,
    compute_fingerprint,
    map_shipping_fields,
    parse_coordinates,
)
from manacity_api.models.base import utcnow
from manacity_api.models.user import User
from manacity_api.models.user_address import FINGERPRINT_CONSTRAINT, UserAddress
from manacity_api.schemas.address import AddressResponse, CoordinatesResponse

INVALID_ADDRESS = "INVALID_ADDRESS"
VALIDATION_ERROR = "VALIDATION_ERROR"

REQUIRED_FIELDS: tuple[str, ...] = ("label", "line1", "city", "state", "pincode")

# (min, max) lengths after trimming
FIELD_LENGTHS: dict[str, tuple[int, int]] = {
    "label": (2, 120),
    "line1": (3, 200),
    "line2": (0, 200),
    "city": (2, 120),
    "state": (2, 120),
    "pincode": (3, 20),
}


class AddressValidationError(ValueError):
    """Client-caused address payload error.

    Attributes:
        code: Machine-readable code, ``INVALID_ADDRESS`` for missing or blank
            required fields, ``VALIDATION_ERROR`` for out-of-bounds values.
        field_errors: Offending field name mapped to a short reason.
    """

    def __init__(self, code: str, message: str, field_errors: dict[str, str] | None = None) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.field_errors = field_errors or {}


@dataclass(frozen=True)
class AddressPayload:
    """A sanitized address ready for persistence."""

    label: str
    line1: str
    city: str
    state: str
    pincode: str
    fingerprint: str
    last_used_at: datetime
    line2: str | None = None
    coordinates: Coordinates | None = None
    is_default: bool = False

    def column_values(self) -> dict[str, Any]:
        """Values for a new UserAddress row."""
        return {
            "label": self.label,
            "line1": self.line1,
            "line2": self.line2,
            "city": self.city,
            "state": self.state,
            "pincode": self.pincode,
            "lat": self.coordinates.lat if self.coordinates else None,
            "lng": self.coordinates.lng if self.coordinates else None,
            "is_default": self.is_default,
            "last_used_at": self.last_used_at,
            "fingerprint": self.fingerprint,
        }


def _trimmed(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def sanitize_address_payload(data: Any) -> AddressPayload:
    """Validate and normalize a raw address payload.

    Args:
        data: Raw payload, normally a decoded JSON object.

    Returns:
        The normalized payload with fingerprint and ``last_used_at`` attached.

    Raises:
        AddressValidationError: ``INVALID_ADDRESS`` if the payload is not a
            mapping or a required field is missing or blank;
            ``VALIDATION_ERROR`` if a field is outside its length bounds.
    """
    if not isinstance(data, Mapping):
        raise AddressValidationError(INVALID_ADDRESS, "Invalid address payload")

    values = {name: _trimmed(data.get(name)) for name in (*REQUIRED_FIELDS, "line2")}

    missing = {name: "required" for name in REQUIRED_FIELDS if not values[name]}
    if missing:
        raise AddressValidationError(INVALID_ADDRESS, "Address is missing required fields", missing)

    out_of_bounds = {}
    for name, (min_length, max_length) in FIELD_LENGTHS.items():
        length = len(values[name])
        if length and not min_length <= length <= max_length:
            out_of_bounds[name] = f"must be {min_length}-{max_length} characters"
    if out_of_bounds:
        raise AddressValidationError(VALIDATION_ERROR, "Address fields are out of bounds", out_of_bounds)

    line2 = values["line2"] or None
    return AddressPayload(
        label=values["label"],
        line1=values["line1"],
        line2=line2,
        city=values["city"],
        state=values["state"],
        pincode=values["pincode"],
        coordinates=parse_coordinates(data.get("coords")),
        is_default=data.get("isDefault") is True,
        fingerprint=compute_fingerprint(values["line1"], line2, values["city"], values["state"], values["pincode"]),
        last_used_at=utcnow(),
    )


def to_address_response(address: UserAddress) -> AddressResponse:
    """Render a stored address in the client-facing shape.

    ``line2`` is always a string and ``coords`` is None unless at least one
    coordinate is saved.
    """
    coords = None
    if address.lat is not None or address.lng is not None:
        coords = CoordinatesResponse(lat=address.lat, lng=address.lng)
    return AddressResponse(
        id=address.id,
        label=address.label,
        line1=address.line1,
        line2=address.line2 or "",
        city=address.city,
        state=address.state,
        pincode=address.pincode,
        is_default=bool(address.is_default),
        coords=coords,
        last_used_at=address.last_used_at,
    )


async def _lock_owner(session: AsyncSession, owner_id: uuid.UUID) -> None:
    """Serialize address writes per owner for the rest of the transaction.

    ``FOR UPDATE`` is dropped by the SQLite compiler, where the database
    write lock serializes writers instead.
    """
    await session.execute(select(User.id).where(User.id == owner_id).with_for_update())


async def get_address(
    session: AsyncSession,
    owner_id: uuid.UUID,
    address_id: uuid.UUID,
) -> UserAddress | None:
    """Look up an address only if it belongs to ``owner_id``."""
    result = await session.execute(
        select(UserAddress).where(UserAddress.id == address_id, UserAddress.owner_id == owner_id)
    )
    return result.scalar_one_or_none()


async def _get_by_fingerprint(session: AsyncSession, owner_id: uuid.UUID, fingerprint: str) -> UserAddress | None:
    result = await session.execute(
        select(UserAddress).where(UserAddress.owner_id == owner_id, UserAddress.fingerprint == fingerprint)
    )
    return result.scalar_one_or_none()


def _is_fingerprint_conflict(exc: IntegrityError) -> bool:
    """True if the error is the (owner_id, fingerprint) unique violation."""
    message = str(exc.orig)
    if FINGERPRINT_CONSTRAINT in message:
        return True
    # SQLite names the columns instead of the constraint
    return "user_addresses.owner_id, user_addresses.fingerprint" in message


def _overwrite_metadata(
    address: UserAddress,
    *,
    label: str,
    line2: str | None,
    coordinates: Coordinates | None,
) -> None:
    """Apply the mutable fields of a repeated submission to a matched address.

    The geographic fields are left alone: they produced the fingerprint
    that matched.
    """
    address.label = label
    address.line2 = line2
    address.lat = coordinates.lat if coordinates else None
    address.lng = coordinates.lng if coordinates else None
    address.last_used_at = utcnow()


async def mark_default_address(
    session: AsyncSession,
    owner_id: uuid.UUID,
    address_id: uuid.UUID,
) -> None:
    """Clear the default flag on every address of ``owner_id`` except ``address_id``.

    Does not set the flag on ``address_id`` and does not commit; callers run
    it inside their owner-locked transaction together with the flag change.
    """
    await session.execute(
        update(UserAddress)
        .where(
            UserAddress.owner_id == owner_id,
            UserAddress.id != address_id,
            UserAddress.is_default.is_(True),
        )
        .values(is_default=False)
    )


async def list_addresses(session: AsyncSession, owner_id: uuid.UUID) -> list[UserAddress]:
    """Return the owner's addresses, default first, then most recently used, then most recently updated."""
    result = await session.execute(
        select(UserAddress)
        .where(UserAddress.owner_id == owner_id)
        .order_by(
            UserAddress.is_default.desc(),
            UserAddress.last_used_at.desc(),
            UserAddress.updated_at.desc(),
        )
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


async def list_address_responses(session: AsyncSession, owner_id: uuid.UUID) -> list[AddressResponse]:
    """Return the owner's addresses in list order, rendered for clients."""
    return [to_address_response(address) for address in await list_addresses(session, owner_id)]


async def create_or_update_address(
    session: AsyncSession,
    owner_id: uuid.UUID,
    data: Any,
) -> UserAddress:
    """Save an address for ``owner_id``, merging into an existing one with the same fingerprint.

    The insert is attempted inside a SAVEPOINT; a violation of the
    ``(owner_id, fingerprint)`` constraint rolls back only that insert and
    switches to updating the matched row. A user's first address becomes
    the default even when not requested.

    Args:
        session: Database session.
        owner_id: Owning user's id.
        data: Raw address payload (see ``sanitize_address_payload``).

    Returns:
        The new or matched-and-updated address.

    Raises:
        AddressValidationError: If the payload is invalid. Nothing is written.
        IntegrityError: For constraint violations other than the fingerprint match.
    """
    payload = sanitize_address_payload(data)

    await _lock_owner(session, owner_id)
    address = UserAddress(owner_id=owner_id, **payload.column_values())
    try:
        async with session.begin_nested():
            session.add(address)
            await session.flush()
    except IntegrityError as exc:
        if not _is_fingerprint_conflict(exc):
            raise
        address = await _merge_into_existing(session, owner_id, payload)
    else:
        if payload.is_default:
            await mark_default_address(session, owner_id, address.id)
        else:
            count_result = await session.execute(
                select(func.count()).select_from(UserAddress).where(UserAddress.owner_id == owner_id)
            )
            if count_result.scalar_one() == 1:
                address.is_default = True
        logger.info(f"Created address {address.id} for user {owner_id} (default={address.is_default})")

    await session.commit()
    await session.refresh(address)
    return address


async def _merge_into_existing(session: AsyncSession, owner_id: uuid.UUID, payload: AddressPayload) -> UserAddress:
    result = await session.execute(
        select(UserAddress).where(
            UserAddress.owner_id == owner_id,
            UserAddress.fingerprint == payload.fingerprint,
        )
    )
    existing = result.scalar_one()
    logger.debug(f"Address fingerprint matched existing address {existing.id} for user {owner_id}")
    _overwrite_metadata(existing, label=payload.label, line2=payload.line2, coordinates=payload.coordinates)
    if payload.is_default:
        await mark_default_address(session, owner_id, existing.id)
        existing.is_default = True
    await session.flush()
    logger.info(f"Updated address {existing.id} for user {owner_id} from repeated submission")
    return existing


async def set_default_address(
    session: AsyncSession,
    owner_id: uuid.UUID,
    address_id: uuid.UUID,
) -> UserAddress | None:
    """Make one of the owner's addresses the default.

    Returns:
        The updated address, or None if no such address belongs to ``owner_id``.
    """
    address = await get_address(session, owner_id, address_id)
    if address is None:
        return None

    await _lock_owner(session, owner_id)
    await mark_default_address(session, owner_id, address.id)
    address.is_default = True
    address.last_used_at = utcnow()
    await session.commit()
    await session.refresh(address)
    logger.info(f"User {owner_id} set default address {address.id}")
    return address


def _parse_uuid(value: str) -> uuid.UUID | None:
    try:
        return uuid.UUID(value)
    except ValueError:
        return None


async def upsert_address_from_shipping(
    session: AsyncSession,
    owner_id: uuid.UUID,
    shipping: Any,
) -> UserAddress | None:
    """Capture or reuse a saved address from checkout shipping details.

    Never raises for unusable shipping input: checkout proceeds without a
    saved address instead. Addresses captured here are not requested as
    default; only a user's very first address is promoted.

    Args:
        session: Database session.
        owner_id: Ordering user's id.
        shipping: Shipping details (see ``map_shipping_fields`` for accepted keys).

    Returns:
        The reused, updated, or created address, or None if nothing was saved.
    """
    if not isinstance(shipping, Mapping):
        return None

    fields = map_shipping_fields(shipping)

    if fields.reference_id:
        reference_id = _parse_uuid(fields.reference_id)
        referenced = await get_address(session, owner_id, reference_id) if reference_id else None
        if referenced is not None:
            referenced.last_used_at = utcnow()
            await session.commit()
            await session.refresh(referenced)
            logger.debug(f"Checkout reused address {referenced.id} for user {owner_id}")
            return referenced

    if not fields.is_complete:
        logger.debug(f"Checkout shipping for user {owner_id} is incomplete; no address saved")
        return None

    # contact names outside the label bounds fall back to the default label
    min_label, max_label = FIELD_LENGTHS["label"]
    if not min_label <= len(fields.label) <= max_label:
        fields = replace(fields, label=DEFAULT_SHIPPING_LABEL)

    payload = fields.to_address_payload()
    try:
        sanitize_address_payload(payload)
    except AddressValidationError as exc:
        logger.warning(f"Checkout shipping for user {owner_id} not saved: {exc.message} {exc.field_errors}")
        return None

    await _lock_owner(session, owner_id)
    existing = await _get_by_fingerprint(session, owner_id, fields.fingerprint)
    if existing is not None:
        _overwrite_metadata(existing, label=fields.label, line2=fields.line2, coordinates=fields.coordinates)
        await session.commit()
        await session.refresh(existing)
        logger.debug(f"Checkout refreshed address {existing.id} for user {owner_id}")
        return existing

    return await create_or_update_address(session, owner_id, payload)
