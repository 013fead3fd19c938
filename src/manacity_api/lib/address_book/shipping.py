"""Mapping of checkout shipping input onto address book fields.

Checkout submits shipping details in a looser shape than the address book
API. This module is the one place that shape is interpreted. For each
target field the source keys are tried in order and the first non-blank
string wins:

    reference_id  <- reference_id, referenceId
    label         <- label, name, then DEFAULT_SHIPPING_LABEL
    line1         <- address1, line1
    line2         <- address2, line2
    city          <- city
    state         <- state
    pincode       <- pincode
    coordinates   <- geo, coords   (first mapping with a usable lat or lng)
"""

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from manacity_api.lib.address_book.fingerprint import Coordinates, compute_fingerprint, parse_coordinates

DEFAULT_SHIPPING_LABEL = "Delivery address"


@dataclass(frozen=True)
class ShippingAddressFields:
    """Address fields extracted from a checkout shipping payload."""

    reference_id: str | None
    label: str
    line1: str
    line2: str | None
    city: str
    state: str
    pincode: str
    coordinates: Coordinates | None = None

    @property
    def is_complete(self) -> bool:
        """True when every required geographic field is non-blank."""
        return all((self.line1, self.city, self.state, self.pincode))

    @property
    def fingerprint(self) -> str:
        return compute_fingerprint(self.line1, self.line2, self.city, self.state, self.pincode)

    def to_address_payload(self) -> dict[str, Any]:
        """Render as an address book create payload, never requesting default."""
        payload: dict[str, Any] = {
            "label": self.label,
            "line1": self.line1,
            "line2": self.line2,
            "city": self.city,
            "state": self.state,
            "pincode": self.pincode,
            "isDefault": False,
        }
        if self.coordinates is not None:
            payload["coords"] = self.coordinates.to_dict()
        return payload


def _text(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def _first_text(shipping: Mapping[str, Any], *keys: str) -> str:
    for key in keys:
        text = _text(shipping.get(key))
        if text:
            return text
    return ""


def _first_coordinates(shipping: Mapping[str, Any], *keys: str) -> Coordinates | None:
    for key in keys:
        coordinates = parse_coordinates(shipping.get(key))
        if coordinates is not None:
            return coordinates
    return None


def map_shipping_fields(shipping: Mapping[str, Any]) -> ShippingAddressFields:
    """Extract address book fields from a shipping payload.

    Args:
        shipping: Shipping details as submitted at checkout.

    Returns:
        The extracted fields. Blank required fields are returned as "";
        check ``is_complete`` before persisting.
    """
    return ShippingAddressFields(
        reference_id=_first_text(shipping, "reference_id", "referenceId") or None,
        label=_first_text(shipping, "label", "name") or DEFAULT_SHIPPING_LABEL,
        line1=_first_text(shipping, "address1", "line1"),
        line2=_first_text(shipping, "address2", "line2") or None,
        city=_first_text(shipping, "city"),
        state=_first_text(shipping, "state"),
        pincode=_first_text(shipping, "pincode"),
        coordinates=_first_coordinates(shipping, "geo", "coords"),
    )
