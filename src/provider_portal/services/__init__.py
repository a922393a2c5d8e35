"""Services package - Business logic layer."""


def get_upload_storage():
    """Get the global upload storage instance."""
    from .upload_storage_service import get_upload_storage as _get
    return _get()


__all__ = [
    "get_upload_storage",
]
