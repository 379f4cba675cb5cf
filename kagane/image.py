"""
Magic-byte image sniffing.

Only the signatures the origin serves are recognised. The WEBP check looks
at the "WEB" marker at offset 8 without requiring the RIFF prefix, matching
the origin's pass/fail decisions.
"""

from typing import Optional

MIN_IMAGE_SIZE = 12

JPEG_MAGIC = b'\xff\xd8'
PNG_MAGIC = b'\x89PN'
WEBP_MARKER = b'WEB'
WEBP_OFFSET = 8


def detect_image_format(data: bytes) -> Optional[str]:
    """
    Classify a buffer by its leading bytes.

    Args:
        data: Candidate image bytes

    Returns:
        "jpeg", "png", "webp", or None if unrecognised or too short
    """
    if len(data) < MIN_IMAGE_SIZE:
        return None

    head = bytes(data[:MIN_IMAGE_SIZE])
    if head.startswith(JPEG_MAGIC):
        return "jpeg"
    if head.startswith(PNG_MAGIC):
        return "png"
    if head[WEBP_OFFSET:WEBP_OFFSET + len(WEBP_MARKER)] == WEBP_MARKER:
        return "webp"
    return None


def is_valid_image(data: bytes) -> bool:
    """Check whether a buffer looks like a displayable image."""
    return detect_image_format(data) is not None
