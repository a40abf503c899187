"""
Ed25519 primitives backed by PyNaCl.

    generate_key_pair() -> (secret_key, public_key)
    sign(message, secret_key) -> signature
    verify(signature, message, public_key) -> bool

Keys are raw bytes: a 32-byte seed for the secret key and a 32-byte
verify key for the public key. Malformed keys raise the PyNaCl error
unchanged; only a signature that does not match is reported as False.
"""

import logging
import os
from pathlib import Path
from typing import Tuple, Union

import nacl.exceptions
import nacl.signing

from ..constants import Ed25519Sizes

logger = logging.getLogger(__name__)

KeyPath = Union[str, os.PathLike]


def generate_key_pair() -> Tuple[bytes, bytes]:
    """
    Generate a new Ed25519 keypair.

    Returns:
        Tuple of (secret_key_bytes, public_key_bytes)
    """
    signing_key = nacl.signing.SigningKey.generate()
    return (bytes(signing_key), bytes(signing_key.verify_key))


def public_key_for(secret_key: bytes) -> bytes:
    """Derive the public key for a secret key."""
    return bytes(nacl.signing.SigningKey(bytes(secret_key)).verify_key)


def sign(message: bytes, secret_key: bytes) -> bytes:
    """Return the detached 64-byte signature of message."""
    signed = nacl.signing.SigningKey(bytes(secret_key)).sign(bytes(message))
    return bytes(signed.signature)


def verify(signature: bytes, message: bytes, public_key: bytes) -> bool:
    """
    Check a detached signature.

    Returns:
        True if the signature was made over message by the holder of the
        matching secret key, False otherwise
    """
    if len(signature) != Ed25519Sizes.SIGNATURE:
        return False

    verify_key = nacl.signing.VerifyKey(bytes(public_key))
    try:
        verify_key.verify(bytes(message), bytes(signature))
        return True
    except nacl.exceptions.BadSignatureError:
        return False


def load_key_file(key_path: KeyPath, expected_size: int = Ed25519Sizes.SECRET_KEY) -> bytes:
    """
    Load a raw key from a file.

    Both raw key bytes and hex-encoded keys (optionally followed by a
    newline) are accepted.

    Raises:
        ValueError: If the file does not hold a key of the expected size
    """
    with open(Path(key_path), 'rb') as f:
        key_data = f.read()

    if len(key_data) != expected_size:
        try:
            key_data = bytes.fromhex(key_data.decode('ascii').strip())
        except (UnicodeDecodeError, ValueError) as e:
            raise ValueError(f"Key file {key_path} is not a raw or hex key") from e

    if len(key_data) != expected_size:
        raise ValueError(
            f"Key file {key_path} holds {len(key_data)} bytes, expected {expected_size}"
        )
    return key_data


def write_key_file(key_path: KeyPath, key: bytes, secret: bool = False) -> None:
    """Write a raw key, restricting permissions when it is secret."""
    path = Path(key_path)
    with open(path, 'wb') as f:
        f.write(key)
    if secret:
        os.chmod(path, 0o600)


__all__ = [
    'generate_key_pair',
    'public_key_for',
    'sign',
    'verify',
    'load_key_file',
    'write_key_file',
]
