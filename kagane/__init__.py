"""
Kagane page decryption engine.

Reconstructs viewable page images from the Kagane origin's obfuscated
transport format: AES-256-GCM envelopes around chunk-scrambled images whose
permutation is regenerated from (series id, chapter id, page filename).

Basic Usage:
    >>> from kagane import decrypt_page
    >>>
    >>> # payload: raw bytes fetched from the image endpoint
    >>> image = decrypt_page(payload, series_id, chapter_id, page_index=1)
    >>> image[:2]
    b'\\xff\\xd8'
"""

__version__ = "1.0.0"
__author__ = "Kagane Engine Team"

# Pipeline
from .protocol.decryptor import PageDecryptor, decrypt_page, create_decryption_context
from .protocol.encryptor import PageEncryptor

# Cryptographic primitives
from .crypto.kdf import derive_page_key, derive_page_seed, page_filename
from .crypto.aes_gcm import decrypt_payload, encrypt_payload
from .crypto.randomizer import SeededRandomizer
from .crypto.scramble import Scrambler, mapping_for_page, scramble_chunks, unscramble_chunks
from .image import is_valid_image, detect_image_format

# Errors and configuration
from .errors import (
    KaganeError,
    PayloadTooShort,
    DecryptionFailed,
    UnscrambleFailed,
    GraphInvariantViolated,
    ConfigError,
    TransportError,
)
from .config import KaganeConfig


__all__ = [
    # Version info
    '__version__',

    # Pipeline
    'PageDecryptor',
    'PageEncryptor',
    'decrypt_page',
    'create_decryption_context',

    # Cryptographic primitives
    'derive_page_key',
    'derive_page_seed',
    'page_filename',
    'decrypt_payload',
    'encrypt_payload',
    'SeededRandomizer',
    'Scrambler',
    'mapping_for_page',
    'scramble_chunks',
    'unscramble_chunks',
    'is_valid_image',
    'detect_image_format',

    # Errors
    'KaganeError',
    'PayloadTooShort',
    'DecryptionFailed',
    'UnscrambleFailed',
    'GraphInvariantViolated',
    'ConfigError',
    'TransportError',

    # Configuration
    'KaganeConfig',
]
