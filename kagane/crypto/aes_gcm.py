"""
AES-GCM envelope handling for Kagane page payloads.

Payload layout:
    header     (128B)  reserved, ignored on decryption
    iv         (12B)
    ciphertext (rest)  includes the trailing 16-byte GCM tag
"""

import os
from dataclasses import dataclass
from typing import Optional

from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.exceptions import InvalidTag

from ..errors import PayloadTooShort, DecryptionFailed

HEADER_SIZE = 128
IV_SIZE = 12
TAG_SIZE = 16
MIN_PAYLOAD_SIZE = HEADER_SIZE + IV_SIZE  # 140


@dataclass
class Envelope:
    """
    Parsed encrypted payload.

    Fields:
        header: 128-byte reserved region
        iv: 12-byte GCM nonce
        ciphertext: Encrypted data with authentication tag appended
    """
    header: bytes
    iv: bytes
    ciphertext: bytes

    def to_bytes(self) -> bytes:
        """Serialize envelope back to the wire layout."""
        return self.header + self.iv + self.ciphertext


def parse_envelope(payload: bytes) -> Envelope:
    """
    Split a raw payload into its fixed-offset fields.

    Raises:
        PayloadTooShort: If payload is shorter than 140 bytes
    """
    if len(payload) < MIN_PAYLOAD_SIZE:
        raise PayloadTooShort(
            f"Payload must be at least {MIN_PAYLOAD_SIZE} bytes, got {len(payload)}"
        )

    return Envelope(
        header=bytes(payload[:HEADER_SIZE]),
        iv=bytes(payload[HEADER_SIZE:MIN_PAYLOAD_SIZE]),
        ciphertext=bytes(payload[MIN_PAYLOAD_SIZE:]),
    )


def decrypt_payload(payload: bytes, key: bytes) -> bytes:
    """
    Decrypt a page payload using AES-GCM.

    Args:
        payload: Raw response bytes
        key: 32-byte key from derive_page_key

    Returns:
        Decrypted plaintext

    Raises:
        PayloadTooShort: If payload cannot hold the envelope (no decryption attempted)
        DecryptionFailed: If authentication or decryption fails
    """
    envelope = parse_envelope(payload)

    try:
        aesgcm = AESGCM(key)
        # No associated data; tag is the last 16 bytes of the ciphertext
        return aesgcm.decrypt(envelope.iv, envelope.ciphertext, None)
    except InvalidTag:
        raise DecryptionFailed("Authentication verification failed - payload may be tampered")
    except Exception as e:
        raise DecryptionFailed(f"Decryption failed: {str(e)}") from e


def encrypt_payload(plaintext: bytes, key: bytes, iv: Optional[bytes] = None,
                    header: Optional[bytes] = None) -> bytes:
    """
    Build an encrypted payload in the origin's envelope layout.

    Args:
        plaintext: Data to encrypt
        key: 32-byte key
        iv: Optional 12-byte nonce (random if omitted)
        header: Optional 128-byte reserved header (zeros if omitted)

    Returns:
        Complete payload bytes
    """
    if iv is None:
        iv = os.urandom(IV_SIZE)
    if header is None:
        header = b'\x00' * HEADER_SIZE

    if len(iv) != IV_SIZE:
        raise ValueError(f"IV must be {IV_SIZE} bytes")
    if len(header) != HEADER_SIZE:
        raise ValueError(f"Header must be {HEADER_SIZE} bytes")

    ciphertext_with_tag = AESGCM(key).encrypt(iv, plaintext, None)
    return Envelope(header=header, iv=iv, ciphertext=ciphertext_with_tag).to_bytes()
