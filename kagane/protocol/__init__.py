"""
Page pipeline for the Kagane engine.
"""

from .decryptor import PageDecryptor, decrypt_page, create_decryption_context
from .encryptor import PageEncryptor

__all__ = [
    'PageDecryptor',
    'PageEncryptor',
    'decrypt_page',
    'create_decryption_context',
]
