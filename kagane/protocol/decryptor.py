"""
Decryption pipeline for Kagane page payloads.

This module implements the complete page pipeline:
1. Derive the AES key from (series_id, chapter_id)
2. Parse the envelope and AES-GCM decrypt
3. If plaintext is already an image → return it unchanged
4. Derive the page seed from (series_id, chapter_id, filename)
5. Rebuild the scramble mapping and unscramble the chunks
6. Accept the result only if it now sniffs as an image
"""

import logging
from typing import Optional, Tuple

from ..crypto.aes_gcm import decrypt_payload
from ..crypto.kdf import DEFAULT_FILENAME_TEMPLATE, derive_page_key, derive_page_seed, page_filename
from ..crypto.scramble import DEFAULT_GRID_SIZE, Scrambler, unscramble_chunks
from ..errors import KaganeError, GraphInvariantViolated, UnscrambleFailed
from ..image import detect_image_format, is_valid_image

logger = logging.getLogger(__name__)


class PageDecryptor:
    """
    Handles the complete decrypt-and-descramble pipeline for one page at a time.

    Instances hold configuration only; every call builds its own key, seed,
    randomizer and graph, so one instance can be shared across threads.
    """

    def __init__(self, grid_size: int = DEFAULT_GRID_SIZE,
                 filename_template: str = DEFAULT_FILENAME_TEMPLATE):
        """
        Initialize decryptor.

        Args:
            grid_size: Scramble grid dimension (pieces = grid_size**2)
            filename_template: printf-style page filename used for seeding
        """
        if grid_size < 1:
            raise ValueError("Grid size must be positive")

        self.grid_size = grid_size
        self.total_pieces = grid_size * grid_size
        self.filename_template = filename_template

    def decrypt_page(self, payload: bytes, series_id: str, chapter_id: str,
                     page_index: int) -> bytes:
        """
        Decrypt and, if needed, descramble a page payload.

        Args:
            payload: Raw response bytes
            series_id: Series identifier
            chapter_id: Chapter identifier
            page_index: 1-based page index within the chapter

        Returns:
            Displayable image bytes

        Raises:
            PayloadTooShort: If payload cannot hold the envelope
            DecryptionFailed: If authenticated decryption fails
            UnscrambleFailed: If the descrambled bytes are not an image
            GraphInvariantViolated: If the scramble path is incomplete
        """
        key = derive_page_key(series_id, chapter_id)
        plaintext = decrypt_payload(payload, key)

        if is_valid_image(plaintext):
            logger.debug(f"Page {page_index} is not scrambled ({detect_image_format(plaintext)})")
            return plaintext

        return self.unscramble_page(plaintext, series_id, chapter_id, page_index)

    def unscramble_page(self, plaintext: bytes, series_id: str, chapter_id: str,
                        page_index: int) -> bytes:
        """
        Undo the origin's chunk scramble on decrypted bytes.

        Raises:
            UnscrambleFailed: If the buffer is too small or the result is not an image
            GraphInvariantViolated: If the scramble path is incomplete
        """
        if len(plaintext) < self.total_pieces:
            raise UnscrambleFailed(
                f"Plaintext of {len(plaintext)} bytes cannot fill {self.total_pieces} chunks"
            )

        filename = page_filename(page_index, self.filename_template)

        try:
            seed = derive_page_seed(series_id, chapter_id, filename)
            mapping = Scrambler(seed, self.grid_size).get_scramble_mapping()
            image = unscramble_chunks(plaintext, mapping, forward=True)
        except GraphInvariantViolated:
            raise
        except Exception as e:
            raise UnscrambleFailed(f"Unscrambling failed: {e}") from e

        if not is_valid_image(image):
            raise UnscrambleFailed(f"Unscrambled {filename} is not a valid image")

        logger.debug(f"Unscrambled {filename} ({len(image)} bytes, {detect_image_format(image)})")
        return image

    def try_decrypt_page(self, payload: bytes, series_id: str, chapter_id: str,
                         page_index: int) -> Tuple[bool, Optional[bytes], str]:
        """
        Try to decrypt a page and return detailed result.

        Returns:
            Tuple of (success, image_or_none, error_message)
        """
        try:
            image = self.decrypt_page(payload, series_id, chapter_id, page_index)
            return True, image, "Success"
        except KaganeError as e:
            return False, None, f"{type(e).__name__}: {e}"

    def get_algorithm_info(self) -> dict:
        """
        Get information about current algorithms.

        Returns:
            Dictionary with algorithm details
        """
        return {
            'cipher': 'AES-256-GCM',
            'key_derivation': 'SHA-256',
            'scrambling_algorithm': 'Xorshift/Feistel + DAG path',
            'grid_size': self.grid_size,
            'filename_template': self.filename_template,
        }


def decrypt_page(payload: bytes, series_id: str, chapter_id: str, page_index: int,
                 grid_size: int = DEFAULT_GRID_SIZE,
                 filename_template: str = DEFAULT_FILENAME_TEMPLATE) -> bytes:
    """
    Convenience function to decrypt a single page.

    Args:
        payload: Raw response bytes
        series_id: Series identifier
        chapter_id: Chapter identifier
        page_index: 1-based page index
        grid_size: Scramble grid dimension
        filename_template: Page filename template

    Returns:
        Displayable image bytes
    """
    engine = PageDecryptor(grid_size, filename_template)
    return engine.decrypt_page(payload, series_id, chapter_id, page_index)


def create_decryption_context(config=None) -> PageDecryptor:
    """
    Create a decryptor from a KaganeConfig (or defaults).

    Args:
        config: Optional KaganeConfig

    Returns:
        Ready-to-use PageDecryptor
    """
    if config is None:
        return PageDecryptor()
    return PageDecryptor(
        grid_size=config.grid_size,
        filename_template=config.filename_template,
    )


def benchmark_decryption(image_size: int = 256 * 1024, iterations: int = 20,
                         grid_size: int = DEFAULT_GRID_SIZE,
                         filename_template: str = DEFAULT_FILENAME_TEMPLATE) -> dict:
    """
    Benchmark the full decrypt-and-descramble pipeline for one page size.

    Thin wrapper over PageBenchmark.benchmark_pipeline.

    Args:
        image_size: Size of the synthetic JPEG page
        iterations: Number of pages to decrypt
        grid_size: Scramble grid dimension
        filename_template: Page filename template used for seeding

    Returns:
        Performance statistics
    """
    from ..evaluation.benchmark import PageBenchmark

    benchmark = PageBenchmark(grid_size=grid_size, filename_template=filename_template)
    result = benchmark.benchmark_pipeline([image_size], iterations)[0]

    return {
        'image_size': result.image_size,
        'iterations': result.iterations,
        'total_time': result.total_time,
        'avg_time_per_page': result.avg_time,
        'throughput_mbps': result.throughput_mbps,
    }
