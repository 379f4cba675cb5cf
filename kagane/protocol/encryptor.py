"""
Origin-side page encoder.

Produces payloads in the same shape the origin serves: the image is chunk
scrambled with the page's mapping, then sealed in the AES-GCM envelope.
Used for fixtures, the CLI ``encode`` command and benchmarks.
"""

from typing import Optional

from ..crypto.aes_gcm import encrypt_payload
from ..crypto.kdf import DEFAULT_FILENAME_TEMPLATE, derive_page_key, derive_page_seed, page_filename
from ..crypto.scramble import DEFAULT_GRID_SIZE, Scrambler, scramble_chunks


class PageEncryptor:
    """
    Builds encrypted, scrambled page payloads.
    """

    def __init__(self, grid_size: int = DEFAULT_GRID_SIZE,
                 filename_template: str = DEFAULT_FILENAME_TEMPLATE):
        if grid_size < 1:
            raise ValueError("Grid size must be positive")

        self.grid_size = grid_size
        self.total_pieces = grid_size * grid_size
        self.filename_template = filename_template

    def scramble_page(self, image: bytes, series_id: str, chapter_id: str,
                      page_index: int) -> bytes:
        """
        Scramble image bytes with the page's mapping.

        Args:
            image: Image bytes (at least grid_size**2 bytes)
            series_id: Series identifier
            chapter_id: Chapter identifier
            page_index: 1-based page index

        Returns:
            Scrambled bytes of the same length
        """
        if len(image) < self.total_pieces:
            raise ValueError(f"Image must be at least {self.total_pieces} bytes to scramble")

        filename = page_filename(page_index, self.filename_template)
        seed = derive_page_seed(series_id, chapter_id, filename)
        mapping = Scrambler(seed, self.grid_size).get_scramble_mapping()
        return scramble_chunks(image, mapping)

    def encrypt_page(self, image: bytes, series_id: str, chapter_id: str,
                     page_index: int, scramble: bool = True,
                     iv: Optional[bytes] = None) -> bytes:
        """
        Encrypt a page the way the origin does.

        Args:
            image: Image bytes
            series_id: Series identifier
            chapter_id: Chapter identifier
            page_index: 1-based page index
            scramble: Whether to scramble before encryption
            iv: Optional fixed 12-byte nonce

        Returns:
            Complete payload bytes
        """
        plaintext = image
        if scramble:
            plaintext = self.scramble_page(image, series_id, chapter_id, page_index)

        key = derive_page_key(series_id, chapter_id)
        return encrypt_payload(plaintext, key, iv=iv)


def synthetic_jpeg(size: int) -> bytes:
    """
    Build a deterministic JPEG-shaped buffer for tests and benchmarks.

    Only the SOI/APP0 prefix and EOI suffix are real markers; the filler never
    contains 0xFF, so no chunk of it sniffs as an image.

    Args:
        size: Total buffer size (at least 24 bytes)

    Returns:
        Buffer starting with FF D8 and ending with FF D9
    """
    prefix = b'\xff\xd8\xff\xe0\x00\x10JFIF\x00'
    suffix = b'\xff\xd9'
    if size < len(prefix) + len(suffix) + 1:
        raise ValueError("Synthetic image too small")

    filler_size = size - len(prefix) - len(suffix)
    filler = bytes((i * 7 + 3) % 251 for i in range(filler_size))
    return prefix + filler + suffix
