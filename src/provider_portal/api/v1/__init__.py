"""API v1: versioned router.

Router structure
----------------
  /health, /ready, /live           → health checks (liveness, readiness)
  /providers                       → create / read provider records
  /providers/{id}/images           → attach uploaded headshot + gallery
  /providers/{id}/reviews/excel    → import the client reviews spreadsheet
  /uploads/signature               → short-lived upload URL for one image
  /blobs/{key}                     → signed PUT / GET for local storage
  /notifications/provider-signup   → email the admins about a new provider

Authentication is out of scope for this service; deploy it behind the
portal's gateway.
"""
from fastapi import APIRouter

from .endpoints import (
    blobs,
    health,
    notifications,
    providers,
    uploads,
)

router = APIRouter(prefix="/api/v1")

# Health probes: liveness, readiness, comprehensive status
router.include_router(health.router, tags=["Health"])

router.include_router(providers.router, tags=["Providers"])
router.include_router(uploads.router, tags=["Uploads"])

# Only serves data when STORAGE_BACKEND=local; S3 uploads go straight to the bucket.
router.include_router(blobs.router, tags=["Blob Storage"])

router.include_router(notifications.router, tags=["Notifications"])
