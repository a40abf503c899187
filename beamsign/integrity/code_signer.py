"""
Code Signer - embeds an Ed25519 signature in a BEAM module.

Architecture:
    ┌─────────────────────────────────────────────────────────────────┐
    │                        MODULE SIGNING                           │
    ├─────────────────────────────────────────────────────────────────┤
    │                                                                 │
    │  module.beam / bytes                                            │
    │  ┌────────────────┐     ┌─────────────────────────────┐        │
    │  │ FOR1 ... BEAM  │────►│ chunks: AtU8 Code StrT ...  │        │
    │  └────────────────┘     └──────────────┬──────────────┘        │
    │                                        │ Code payload           │
    │                                        ▼                        │
    │  Secret Key           ┌─────────────────────────────┐          │
    │  ┌────────────────┐   │  Ed25519 sign(Code)         │          │
    │  │ 32-byte seed   │──►│                             │          │
    │  └────────────────┘   └──────────────┬──────────────┘          │
    │                                      │ signature                │
    │                                      ▼                          │
    │                       ┌─────────────────────────────┐          │
    │                       │ Attr: [{signature, [Sig]},  │          │
    │                       │        ...other attrs]      │          │
    │                       └──────────────┬──────────────┘          │
    │                                      ▼                          │
    │                       ┌─────────────────────────────┐          │
    │                       │ rebuilt module bytes        │          │
    │                       └─────────────────────────────┘          │
    └─────────────────────────────────────────────────────────────────┘

Security Properties:
- Only the Code chunk is signed; the signature lives in Attr
- The source module is never modified; a new binary is returned
- Re-signing replaces the old signature, a module holds exactly one
"""

import logging
import os
from pathlib import Path
from typing import Optional, Tuple

from ..container import (
    ModuleSource,
    build_module,
    code_payload,
    encode_with_signature,
    read_chunks,
)
from ..crypto import ed25519

logger = logging.getLogger(__name__)


def sign(module: ModuleSource, secret_key: bytes) -> bytes:
    """
    Sign a BEAM module given as bytes or as a path to a .beam file.

    A path is only read; the signed module is returned as bytes and can
    be written wherever the caller wants it.

    Args:
        module: Module binary or path
        secret_key: 32-byte Ed25519 secret key (seed)

    Returns:
        The signed module binary

    Raises:
        MalformedContainerError: If the module cannot be parsed
        MissingCodeChunkError: If the module has no Code chunk
        ReconstructionError: If the signed module cannot be rebuilt
    """
    chunks = read_chunks(module)
    code = code_payload(chunks)

    signature = ed25519.sign(code, secret_key)
    signed_chunks = encode_with_signature(chunks, signature)

    binary = build_module(signed_chunks)
    logger.info(
        f"Signed module: {len(code)} code bytes, {len(signed_chunks)} chunks"
    )
    return binary


class ModuleSigner:
    """
    Module Signer - holds a signing key and signs modules with it.

    Usage:
        signer = ModuleSigner(signing_key_path='/path/to/signing.key')
        signed = signer.sign('ebin/my_module.beam')
        signer.sign_file('ebin/my_module.beam', 'signed/my_module.beam')
    """

    def __init__(
        self,
        signing_key: Optional[bytes] = None,
        signing_key_path: Optional[str] = None,
    ):
        """
        Initialize the module signer.

        Args:
            signing_key: Ed25519 secret key bytes
            signing_key_path: Path to a raw or hex-encoded secret key file

        Raises:
            ValueError: If no key is given or the key is malformed
        """
        if signing_key is not None:
            self._signing_key = bytes(signing_key)
        elif signing_key_path is not None:
            self._signing_key = ed25519.load_key_file(signing_key_path)
        else:
            raise ValueError("A signing key or signing key path is required")

        self.public_key = ed25519.public_key_for(self._signing_key)
        logger.info("ModuleSigner initialized")

    @classmethod
    def generate(cls) -> Tuple['ModuleSigner', bytes]:
        """
        Create a signer with a fresh keypair.

        Returns:
            Tuple of (signer, secret_key_bytes)
        """
        secret_key, _ = ed25519.generate_key_pair()
        logger.info("Generated new signing keypair")
        return (cls(signing_key=secret_key), secret_key)

    def sign(self, module: ModuleSource) -> bytes:
        """Sign a module and return the signed binary."""
        return sign(module, self._signing_key)

    def sign_file(self, source: ModuleSource, destination: str) -> Path:
        """
        Sign a module and write the result to destination.

        Raises:
            ValueError: If destination is the source file itself
        """
        dest_path = Path(destination)
        if isinstance(source, (str, os.PathLike)):
            source_path = Path(source)
            if dest_path.exists() and dest_path.resolve() == source_path.resolve():
                raise ValueError(f"Refusing to overwrite source module {source_path}")

        signed = self.sign(source)

        dest_path.parent.mkdir(parents=True, exist_ok=True)
        with open(dest_path, 'wb') as f:
            f.write(signed)

        logger.info(f"Saved signed module to {dest_path}")
        return dest_path


__all__ = [
    'sign',
    'ModuleSigner',
]
