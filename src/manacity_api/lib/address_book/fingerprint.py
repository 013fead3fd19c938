"""Address fingerprinting and coordinate parsing.

A fingerprint is the deduplication key of a saved address: the five
geographic fields, each trimmed, whitespace-collapsed and lower-cased,
joined with ``|`` in the fixed order ``line1|line2|city|state|pincode``.
Addresses that differ only in case or spacing share a fingerprint; any
other difference in a segment yields a different one.
"""

import math
import re
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

FINGERPRINT_DELIMITER = "|"

_WHITESPACE_RUN = re.compile(r"\s+")


@dataclass(frozen=True)
class Coordinates:
    """Latitude/longitude pair where each part is independently optional."""

    lat: float | None = None
    lng: float | None = None

    def to_dict(self) -> dict[str, float | None]:
        return {"lat": self.lat, "lng": self.lng}


def normalize_segment(value: Any) -> str:
    """Normalize one address segment for fingerprinting.

    Args:
        value: Raw segment. Anything that is not a string normalizes to "".

    Returns:
        The trimmed, whitespace-collapsed, lower-cased segment.
    """
    if not isinstance(value, str):
        return ""
    return _WHITESPACE_RUN.sub(" ", value.strip()).lower()


def compute_fingerprint(
    line1: str | None,
    line2: str | None,
    city: str | None,
    state: str | None,
    pincode: str | None,
) -> str:
    """Derive the deduplication key for an address.

    Total over any inputs: blank required segments are the caller's
    validation concern, not an error here.

    Returns:
        The five normalized segments joined with ``|``.
    """
    segments = (line1, line2 or "", city, state, pincode)
    return FINGERPRINT_DELIMITER.join(normalize_segment(segment) for segment in segments)


def parse_coordinate(value: Any) -> float | None:
    """Parse a single coordinate into a finite float.

    Returns:
        The float value, or None for absent, blank, boolean, unparsable,
        NaN or infinite input.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    return number


def parse_coordinates(raw: Any) -> Coordinates | None:
    """Parse a ``{"lat": ..., "lng": ...}`` mapping.

    Unusable parts are dropped silently.

    Returns:
        Coordinates with whichever parts parsed, or None if neither did.
    """
    if not isinstance(raw, Mapping):
        return None
    lat = parse_coordinate(raw.get("lat"))
    lng = parse_coordinate(raw.get("lng"))
    if lat is None and lng is None:
        return None
    return Coordinates(lat=lat, lng=lng)
