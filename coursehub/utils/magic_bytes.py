"""Magic bytes detection for uploaded images.

Cross-checks the actual file content against the declared Content-Type so a
renamed executable or HTML page cannot be published as a course cover.
"""

from typing import NamedTuple


MIN_BYTES_FOR_DETECTION = 4
WEBP_HEADER_LENGTH = 12


class MagicSignature(NamedTuple):
    """Magic bytes signature for a file type."""

    bytes_pattern: bytes
    mime_type: str


# Reference: https://en.wikipedia.org/wiki/List_of_file_signatures
MAGIC_SIGNATURES: list[MagicSignature] = [
    MagicSignature(b"\x89PNG\r\n\x1a\n", "image/png"),
    MagicSignature(b"\xff\xd8\xff", "image/jpeg"),
    MagicSignature(b"GIF87a", "image/gif"),
    MagicSignature(b"GIF89a", "image/gif"),
]


def detect_content_type(data: bytes) -> str | None:
    """Detect content type from file magic bytes.

    Args:
        data: First bytes of file content (64 is plenty).

    Returns:
        Detected MIME type or None if unknown.
    """
    if len(data) < MIN_BYTES_FOR_DETECTION:
        return None

    # RIFF container with WEBP fourcc at offset 8
    if data[:4] == b"RIFF" and len(data) >= WEBP_HEADER_LENGTH and data[8:12] == b"WEBP":
        return "image/webp"

    for sig in MAGIC_SIGNATURES:
        if data.startswith(sig.bytes_pattern):
            return sig.mime_type

    return None


def validate_content_type(
    data: bytes,
    declared_type: str | None,
    *,
    allowed_types: frozenset[str] | None = None,
) -> tuple[bool, str | None, str | None]:
    """Validate file content against declared Content-Type.

    The detected type must be allowed and must equal the declared type
    (parameters such as ``charset`` are ignored).

    Returns:
        Tuple of (is_valid, detected_type, error_message).

    Examples:
        >>> validate_content_type(b"\\x89PNG\\r\\n\\x1a\\n...", "image/png")
        (True, 'image/png', None)
        >>> validate_content_type(b"GIF89a...", "image/png")
        (False, 'image/gif', "Content-Type mismatch: declared 'image/png', detected 'image/gif'")
    """
    detected_type = detect_content_type(data)

    if detected_type is None:
        return (False, None, "Unable to detect file type from content")

    if allowed_types is not None and detected_type not in allowed_types:
        return (
            False,
            detected_type,
            f"File type '{detected_type}' is not allowed. "
            f"Allowed: {', '.join(sorted(allowed_types))}",
        )

    if not declared_type:
        return (True, detected_type, None)

    declared_base = declared_type.split(";")[0].strip().lower()
    if detected_type != declared_base:
        return (
            False,
            detected_type,
            f"Content-Type mismatch: declared '{declared_base}', "
            f"detected '{detected_type}'",
        )

    return (True, detected_type, None)
