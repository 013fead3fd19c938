"""ORM model registry — import all models so Alembic autogenerate discovers them."""

from manacity_api.models.user import User
from manacity_api.models.user_address import UserAddress

__all__ = [
    "User",
    "UserAddress",
]
