"""Dependencies for storage module."""

from typing import Annotated

from fastapi import Depends

from coursehub.config.settings import Settings, get_settings
from coursehub.storage.service import FirebaseStorageService


# Storage service singleton
_storage_service: FirebaseStorageService | None = None


def get_storage_service(
    settings: Annotated[Settings, Depends(get_settings)],
) -> FirebaseStorageService:
    """Get storage service instance (singleton)."""
    global _storage_service  # noqa: PLW0603

    if _storage_service is None:
        _storage_service = FirebaseStorageService(settings)

    return _storage_service


StorageServiceDep = Annotated[FirebaseStorageService, Depends(get_storage_service)]
