"""Repositories package - Data access layer."""
from .provider_repository import ProviderRepository
from .review_repository import ReviewRepository
from .user_repository import UserRepository

__all__ = [
    "ProviderRepository",
    "ReviewRepository",
    "UserRepository",
]
