"""UserAddress model: a saved delivery location owned by exactly one user.

Addresses are deduplicated per owner by ``fingerprint``, a normalized key of
the geographic fields (see ``manacity_api.lib.address_book.fingerprint``).
The compound unique constraint on ``(owner_id, fingerprint)`` is what the
address book service relies on to turn duplicate submissions into updates.
"""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, Float, ForeignKey, Index, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from manacity_api.models.base import Base, TimestampMixin, UUIDMixin, utcnow

FINGERPRINT_CONSTRAINT = "uq_user_addresses_owner_fingerprint"


class UserAddress(Base, UUIDMixin, TimestampMixin):
    """One saved address of a user.

    Attributes:
        owner_id: Owning user. Addresses are never shared.
        label: Display name such as "Home".
        line1: Street-level line.
        line2: Optional secondary line.
        city: City name.
        state: State name.
        pincode: Postal code.
        lat: Optional latitude, independent of ``lng``.
        lng: Optional longitude, independent of ``lat``.
        is_default: At most one address per owner has this set.
        last_used_at: Refreshed on create, match, and re-selection.
        fingerprint: Normalized ``line1|line2|city|state|pincode`` key.
    """

    __tablename__ = "user_addresses"

    owner_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    label: Mapped[str] = mapped_column(String(120), nullable=False)
    line1: Mapped[str] = mapped_column(String(200), nullable=False)
    line2: Mapped[str | None] = mapped_column(String(200), nullable=True)
    city: Mapped[str] = mapped_column(String(120), nullable=False)
    state: Mapped[str] = mapped_column(String(120), nullable=False)
    pincode: Mapped[str] = mapped_column(String(20), nullable=False)
    lat: Mapped[float | None] = mapped_column(Float, nullable=True)
    lng: Mapped[float | None] = mapped_column(Float, nullable=True)
    is_default: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")
    last_used_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    fingerprint: Mapped[str] = mapped_column(Text, nullable=False)

    owner = relationship("User", back_populates="addresses", lazy="raise")

    __table_args__ = (
        UniqueConstraint("owner_id", "fingerprint", name=FINGERPRINT_CONSTRAINT),
        Index("ix_user_addresses_owner_default_last_used", "owner_id", "is_default", "last_used_at"),
    )
