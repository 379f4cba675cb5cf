"""
Key and seed derivation for Kagane page payloads.

Both the AES key and the scrambling seed are recomputed from stable
identifiers for every page:
- Key  = SHA-256("<series_id>:<chapter_id>")
- Seed = first 8 bytes (big-endian) of SHA-256("<series_id>:<chapter_id>:<filename>")
"""

import hashlib

# Protocol constants
KEY_LENGTH = 32  # 256-bit AES key
SEED_BITS = 64
SEED_MASK = (1 << SEED_BITS) - 1
DEFAULT_FILENAME_TEMPLATE = "page_%04d.jpg"


def _sha256(text: str) -> bytes:
    return hashlib.sha256(text.encode('utf-8')).digest()


def derive_page_key(series_id: str, chapter_id: str) -> bytes:
    """
    Derive the AES-256 key shared by every page of a chapter.

    Empty identifiers are accepted and simply hash the bare ":" separator.

    Args:
        series_id: Series identifier
        chapter_id: Chapter identifier

    Returns:
        32-byte symmetric key
    """
    return _sha256(f"{series_id}:{chapter_id}")


def page_filename(page_index: int, template: str = DEFAULT_FILENAME_TEMPLATE) -> str:
    """
    Build the canonical filename the origin used when scrambling a page.

    Args:
        page_index: 1-based page index within the chapter
        template: printf-style template, zero padding must match the origin

    Returns:
        Filename string, e.g. "page_0001.jpg"
    """
    return template % page_index


def derive_page_seed(series_id: str, chapter_id: str, filename: str) -> int:
    """
    Derive the 64-bit scrambling seed for a single page.

    Args:
        series_id: Series identifier
        chapter_id: Chapter identifier
        filename: Canonical page filename (see page_filename)

    Returns:
        Unsigned 64-bit seed
    """
    digest = _sha256(f"{series_id}:{chapter_id}:{filename}")
    return int.from_bytes(digest[:8], byteorder='big')


def hash_seed(seed: int) -> int:
    """Initial generator state: XOR of the two leading 64-bit words of SHA-256(str(seed))."""
    digest = _sha256(str(seed))
    high = int.from_bytes(digest[0:8], byteorder='big')
    low = int.from_bytes(digest[8:16], byteorder='big')
    return high ^ low


def expand_entropy(seed: int) -> bytes:
    """64-byte entropy pool: SHA-512 of the seed's decimal string."""
    return hashlib.sha512(str(seed).encode('utf-8')).digest()
