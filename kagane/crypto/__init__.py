"""
Cryptographic primitives for the Kagane page engine.

This module provides:
- Key and seed derivation (SHA-256 / SHA-512)
- AES-GCM envelope decryption
- Seeded randomizer, dependency graph and scramble mapping
- Chunk (un)scrambling
"""

from .kdf import derive_page_key, derive_page_seed, page_filename
from .aes_gcm import decrypt_payload, encrypt_payload, parse_envelope
from .randomizer import SeededRandomizer
from .graph import DependencyGraph, build_dependency_graph, topological_sort
from .scramble import Scrambler, build_scramble_mapping, mapping_for_page, scramble_chunks, unscramble_chunks

__all__ = [
    'derive_page_key',
    'derive_page_seed',
    'page_filename',
    'decrypt_payload',
    'encrypt_payload',
    'parse_envelope',
    'SeededRandomizer',
    'DependencyGraph',
    'build_dependency_graph',
    'topological_sort',
    'Scrambler',
    'build_scramble_mapping',
    'mapping_for_page',
    'scramble_chunks',
    'unscramble_chunks',
]
