"""Shared Enums for the application."""
from enum import Enum


class UserRole(str, Enum):
    """Role of a portal account.

    Attributes:
        USER: Regular client account (default)
        PROVIDER: Account that owns a provider profile
    """
    USER = "user"
    PROVIDER = "provider"
