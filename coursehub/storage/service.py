"""Firebase Storage service for course media.

Handles uploads of course covers (PNG only, verified by magic bytes) and
lesson videos (any ``video/*`` type). Uploaded blobs are made public and
addressed by their storage.googleapis.com URL.
"""

from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any
from urllib.parse import quote
from uuid import uuid4

import structlog


if TYPE_CHECKING:
    from google.cloud.storage import Blob, Bucket

from coursehub.config.settings import Settings
from coursehub.utils.magic_bytes import validate_content_type


logger = structlog.get_logger(__name__)


class StorageError(Exception):
    """Base error for storage operations."""

    def __init__(self, message: str, code: str = "storage_error") -> None:
        self.message = message
        self.code = code
        super().__init__(message)


class StorageNotConfiguredError(StorageError):
    """Error when Firebase Storage is not configured."""

    def __init__(self, message: str = "Firebase Storage is not configured") -> None:
        super().__init__(message, "storage_not_configured")


class StorageUploadError(StorageError):
    """Error during file upload."""

    def __init__(self, message: str) -> None:
        super().__init__(message, "upload_error")


class StorageValidationError(StorageError):
    """File content does not match its declared type."""

    def __init__(self, message: str) -> None:
        super().__init__(message, "validation_error")


class FileTooLargeError(StorageError):
    """Error when file exceeds size limit."""

    def __init__(self, size: int, max_size: int) -> None:
        message = (
            f"File size ({size / 1024 / 1024:.2f} MB) exceeds "
            f"maximum allowed ({max_size / 1024 / 1024:.2f} MB)"
        )
        super().__init__(message, "file_too_large")


class InvalidContentTypeError(StorageError):
    """Error when content type is not allowed."""

    def __init__(self, content_type: str, allowed: str) -> None:
        message = f"Content type '{content_type}' is not allowed. Allowed: {allowed}"
        super().__init__(message, "invalid_content_type")


# Firebase app singleton
_firebase_app = None
_storage_bucket: "Bucket | None" = None


def _init_firebase(settings: Settings) -> "Bucket":
    """Initialize Firebase Admin SDK and get the storage bucket.

    Raises:
        StorageNotConfiguredError: If Firebase is not configured.
    """
    global _firebase_app, _storage_bucket  # noqa: PLW0603

    if _storage_bucket is not None:
        return _storage_bucket

    if not settings.firebase_configured:
        raise StorageNotConfiguredError

    # Lazy import to avoid loading Firebase SDK unless needed
    import firebase_admin  # noqa: PLC0415
    from firebase_admin import credentials, storage  # noqa: PLC0415

    creds_path = settings.firebase_credentials_path
    if not creds_path or not Path(creds_path).exists():
        raise StorageNotConfiguredError(
            f"Firebase credentials file not found: {creds_path}"
        )

    try:
        if _firebase_app is None:
            cred = credentials.Certificate(creds_path)
            _firebase_app = firebase_admin.initialize_app(
                cred,
                {
                    "storageBucket": settings.firebase_storage_bucket,
                    "projectId": settings.firebase_project_id,
                },
            )
            logger.info(
                "firebase_initialized",
                project_id=settings.firebase_project_id,
                bucket=settings.firebase_storage_bucket,
            )

        _storage_bucket = storage.bucket()
        return _storage_bucket

    except Exception as e:
        logger.exception("firebase_init_failed", error=str(e))
        raise StorageNotConfiguredError(f"Failed to initialize Firebase: {e}") from e


class FirebaseStorageService:
    """Service for uploading course media to Firebase Storage."""

    COURSE_IMAGE_FOLDER = "cursos_capas"
    LESSON_VIDEO_FOLDER = "aulas_videos"

    EXTENSION_MAP: dict[str, str] = {
        "image/png": ".png",
        "video/mp4": ".mp4",
        "video/webm": ".webm",
        "video/quicktime": ".mov",
        "video/x-msvideo": ".avi",
        "video/x-matroska": ".mkv",
        "video/mpeg": ".mpeg",
    }

    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self._bucket: Bucket | None = None

    @property
    def is_configured(self) -> bool:
        """Check if Firebase Storage is configured."""
        return self.settings.firebase_configured

    @property
    def max_image_size(self) -> int:
        """Maximum course cover size in bytes."""
        return self.settings.upload_max_image_size_mb * 1024 * 1024

    @property
    def max_video_size(self) -> int:
        """Maximum lesson video size in bytes."""
        return self.settings.upload_max_video_size_mb * 1024 * 1024

    def _ensure_configured(self) -> None:
        if not self.is_configured:
            raise StorageNotConfiguredError

    def _get_bucket(self) -> "Bucket":
        """Get Firebase Storage bucket (lazy initialization)."""
        if self._bucket is None:
            self._bucket = _init_firebase(self.settings)
        return self._bucket

    def _build_storage_path(
        self,
        folder: str,
        content_type: str,
        original_filename: str | None = None,
    ) -> str:
        """Build storage path for a file.

        Format: {root}/{folder}/{timestamp}_{uuid}{ext}
        """
        timestamp = datetime.now(UTC).strftime("%Y%m%d%H%M%S")

        ext = self.EXTENSION_MAP.get(content_type, "")
        if not ext and original_filename:
            ext = Path(original_filename).suffix.lower()

        return f"{self.settings.storage_root_folder}/{folder}/{timestamp}_{uuid4().hex}{ext}"

    def _generate_public_url(self, storage_path: str) -> str:
        """Generate public URL for a stored file."""
        bucket_name = self.settings.firebase_storage_bucket
        encoded_path = "/".join(
            quote(part, safe="") for part in storage_path.split("/")
        )
        return f"https://storage.googleapis.com/{bucket_name}/{encoded_path}"

    def _upload(
        self,
        content: bytes,
        content_type: str,
        storage_path: str,
        cache_control: str,
    ) -> dict[str, Any]:
        try:
            bucket = self._get_bucket()
            blob: Blob = bucket.blob(storage_path)
            blob.cache_control = cache_control
            blob.upload_from_string(content, content_type=content_type)
            blob.make_public()
        except StorageNotConfiguredError:
            raise
        except Exception as e:
            logger.exception(
                "upload_failed",
                storage_path=storage_path,
                error=str(e),
            )
            raise StorageUploadError(f"Failed to upload file: {e}") from e

        logger.info(
            "file_uploaded",
            storage_path=storage_path,
            content_type=content_type,
            file_size=len(content),
        )
        return {
            "file_url": self._generate_public_url(storage_path),
            "storage_path": storage_path,
            "content_type": content_type,
            "file_size": len(content),
            "uploaded_at": datetime.now(UTC),
        }

    async def upload_course_image(
        self,
        content: bytes,
        content_type: str,
        filename: str | None = None,
    ) -> dict[str, Any]:
        """Upload a course cover image.

        Only PNG is accepted; the declared type is cross-checked against the
        file's magic bytes.

        Returns:
            Dict with file_url, storage_path, content_type, file_size, uploaded_at.

        Raises:
            StorageNotConfiguredError: If Firebase is not configured.
            FileTooLargeError: If file exceeds size limit.
            InvalidContentTypeError: If content type is not allowed.
            StorageValidationError: If magic bytes validation fails.
            StorageUploadError: If upload fails.
        """
        allowed = self.settings.upload_allowed_image_types
        if content_type not in allowed:
            raise InvalidContentTypeError(content_type, ", ".join(allowed))

        if len(content) > self.max_image_size:
            raise FileTooLargeError(len(content), self.max_image_size)

        is_valid, detected_type, error_msg = validate_content_type(
            content[:64],
            content_type,
            allowed_types=frozenset(allowed),
        )
        if not is_valid:
            logger.warning(
                "magic_bytes_validation_failed",
                declared_type=content_type,
                detected_type=detected_type,
                error=error_msg,
            )
            raise StorageValidationError(error_msg or "Invalid file content")

        self._ensure_configured()
        storage_path = self._build_storage_path(
            self.COURSE_IMAGE_FOLDER, content_type, filename
        )
        return self._upload(
            content,
            content_type,
            storage_path,
            cache_control="public, max-age=31536000, immutable",
        )

    async def upload_lesson_video(
        self,
        content: bytes,
        content_type: str,
        filename: str | None = None,
    ) -> dict[str, Any]:
        """Upload a lesson video (any ``video/*`` content type).

        Raises:
            StorageNotConfiguredError: If Firebase is not configured.
            FileTooLargeError: If file exceeds size limit.
            InvalidContentTypeError: If content type is not a video type.
            StorageUploadError: If upload fails.
        """
        if not content_type.startswith("video/"):
            raise InvalidContentTypeError(content_type, "video/*")

        if len(content) > self.max_video_size:
            raise FileTooLargeError(len(content), self.max_video_size)

        self._ensure_configured()
        storage_path = self._build_storage_path(
            self.LESSON_VIDEO_FOLDER, content_type, filename
        )
        return self._upload(
            content,
            content_type,
            storage_path,
            cache_control="public, max-age=86400",
        )
