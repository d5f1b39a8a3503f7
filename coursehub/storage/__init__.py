"""Storage module for course media uploads to Firebase Storage."""

from coursehub.storage.dependencies import StorageServiceDep, get_storage_service
from coursehub.storage.service import (
    FileTooLargeError,
    FirebaseStorageService,
    InvalidContentTypeError,
    StorageError,
    StorageNotConfiguredError,
    StorageUploadError,
    StorageValidationError,
)


__all__ = [
    "FileTooLargeError",
    "FirebaseStorageService",
    "InvalidContentTypeError",
    "StorageError",
    "StorageNotConfiguredError",
    "StorageServiceDep",
    "StorageUploadError",
    "StorageValidationError",
    "get_storage_service",
]
