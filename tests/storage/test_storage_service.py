"""Tests for FirebaseStorageService with a mocked bucket."""

from unittest.mock import MagicMock, patch

import pytest

from coursehub.config.settings import Settings
from coursehub.storage.service import (
    FileTooLargeError,
    FirebaseStorageService,
    InvalidContentTypeError,
    StorageNotConfiguredError,
    StorageUploadError,
    StorageValidationError,
)


PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64
JPEG_BYTES = b"\xff\xd8\xff\xe0" + b"\x00" * 64


@pytest.fixture
def settings() -> Settings:
    return Settings(
        firebase_enabled=True,
        firebase_credentials_path="/secrets/firebase.json",
        firebase_storage_bucket="coursehub-test.appspot.com",
        upload_max_image_size_mb=1,
        upload_max_video_size_mb=2,
    )


@pytest.fixture
def bucket() -> MagicMock:
    return MagicMock()


@pytest.fixture
def service(settings, bucket) -> FirebaseStorageService:
    service = FirebaseStorageService(settings)
    service._bucket = bucket
    return service


class TestUploadCourseImage:
    @pytest.mark.asyncio
    async def test_png_uploaded_and_made_public(self, service, bucket) -> None:
        result = await service.upload_course_image(PNG_BYTES, "image/png", "c.png")

        storage_path = bucket.blob.call_args.args[0]
        assert storage_path.startswith("cursos_online/cursos_capas/")
        assert storage_path.endswith(".png")
        blob = bucket.blob.return_value
        blob.upload_from_string.assert_called_once_with(
            PNG_BYTES, content_type="image/png"
        )
        blob.make_public.assert_called_once()
        assert result["file_url"] == (
            f"https://storage.googleapis.com/coursehub-test.appspot.com/{storage_path}"
        )
        assert result["file_size"] == len(PNG_BYTES)

    @pytest.mark.asyncio
    async def test_jpeg_declared_type_rejected(self, service, bucket) -> None:
        with pytest.raises(InvalidContentTypeError):
            await service.upload_course_image(JPEG_BYTES, "image/jpeg")
        bucket.blob.assert_not_called()

    @pytest.mark.asyncio
    async def test_disguised_jpeg_rejected_by_magic_bytes(self, service, bucket) -> None:
        with pytest.raises(StorageValidationError):
            await service.upload_course_image(JPEG_BYTES, "image/png")
        bucket.blob.assert_not_called()

    @pytest.mark.asyncio
    async def test_too_large(self, service) -> None:
        big = PNG_BYTES + b"\x00" * (1024 * 1024)
        with pytest.raises(FileTooLargeError):
            await service.upload_course_image(big, "image/png")

    @pytest.mark.asyncio
    async def test_not_configured(self) -> None:
        service = FirebaseStorageService(Settings(firebase_enabled=False))
        with pytest.raises(StorageNotConfiguredError):
            await service.upload_course_image(PNG_BYTES, "image/png")

    @pytest.mark.asyncio
    async def test_upload_failure_wrapped(self, service, bucket) -> None:
        bucket.blob.return_value.upload_from_string.side_effect = RuntimeError("boom")

        with pytest.raises(StorageUploadError) as exc_info:
            await service.upload_course_image(PNG_BYTES, "image/png")

        assert exc_info.value.code == "upload_error"


class TestUploadLessonVideo:
    @pytest.mark.asyncio
    async def test_video_uploaded(self, service, bucket) -> None:
        result = await service.upload_lesson_video(b"\x00" * 128, "video/mp4", "a.mp4")

        storage_path = bucket.blob.call_args.args[0]
        assert storage_path.startswith("cursos_online/aulas_videos/")
        assert storage_path.endswith(".mp4")
        assert result["content_type"] == "video/mp4"

    @pytest.mark.asyncio
    async def test_unknown_video_type_keeps_filename_extension(
        self, service, bucket
    ) -> None:
        await service.upload_lesson_video(b"\x00" * 16, "video/ogg", "Lesson.OGV")
        assert bucket.blob.call_args.args[0].endswith(".ogv")

    @pytest.mark.asyncio
    async def test_non_video_rejected(self, service, bucket) -> None:
        with pytest.raises(InvalidContentTypeError):
            await service.upload_lesson_video(PNG_BYTES, "image/png")
        bucket.blob.assert_not_called()

    @pytest.mark.asyncio
    async def test_too_large(self, service) -> None:
        with pytest.raises(FileTooLargeError):
            await service.upload_lesson_video(b"\x00" * (3 * 1024 * 1024), "video/mp4")


def test_bucket_initialized_lazily(settings) -> None:
    service = FirebaseStorageService(settings)
    sentinel = MagicMock()

    with patch(
        "coursehub.storage.service._init_firebase", return_value=sentinel
    ) as init:
        assert service._get_bucket() is sentinel
        assert service._get_bucket() is sentinel

    init.assert_called_once_with(settings)
