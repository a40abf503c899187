"""
Cryptographic module for BEAM module signing.

Ed25519 signing and verification via PyNaCl.
"""

from .ed25519 import (
    generate_key_pair,
    public_key_for,
    sign,
    verify,
    load_key_file,
    write_key_file,
)

__all__ = [
    'generate_key_pair',
    'public_key_for',
    'sign',
    'verify',
    'load_key_file',
    'write_key_file',
]
