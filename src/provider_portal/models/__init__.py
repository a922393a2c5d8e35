"""Models package - SQLAlchemy ORM models."""
from .enums import UserRole
from .provider import Provider
from .review import ClientReview
from .user import User

__all__ = [
    "ClientReview",
    "Provider",
    "User",
    "UserRole",
]
