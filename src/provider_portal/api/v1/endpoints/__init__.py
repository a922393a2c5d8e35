"""API v1 endpoints package."""

from . import (
	blobs,
	health,
	notifications,
	providers,
	uploads,
)

__all__ = [
	"blobs",
	"health",
	"notifications",
	"providers",
	"uploads",
]
