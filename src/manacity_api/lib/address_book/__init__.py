"""Address book library — pure helpers for deduplicating saved addresses.

Public API:
    - compute_fingerprint: Derive the per-owner deduplication key
    - normalize_segment: Normalize one fingerprint segment
    - parse_coordinate / parse_coordinates: Finite-number coordinate parsing
    - Coordinates: Optional lat/lng pair
    - map_shipping_fields: Interpret checkout shipping input
    - ShippingAddressFields: Result of map_shipping_fields
    - DEFAULT_SHIPPING_LABEL: Label used when checkout supplies none
"""

from manacity_api.lib.address_book.fingerprint import (
    FINGERPRINT_DELIMITER,
    Coordinates,
    compute_fingerprint,
    normalize_segment,
    parse_coordinate,
    parse_coordinates,
)
from manacity_api.lib.address_book.shipping import (
    DEFAULT_SHIPPING_LABEL,
    ShippingAddressFields,
    map_shipping_fields,
)

__all__ = [
    "DEFAULT_SHIPPING_LABEL",
    "FINGERPRINT_DELIMITER",
    "Coordinates",
    "ShippingAddressFields",
    "compute_fingerprint",
    "map_shipping_fields",
    "normalize_segment",
    "parse_coordinate",
    "parse_coordinates",
]
