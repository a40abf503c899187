"""
Signature Verifier - checks the signature embedded in a BEAM module.

Verification reads the module's chunks, takes the Code payload exactly
as stored and the first value of the `signature` attribute, and checks
the pair against a trusted Ed25519 public key.

Outcomes:
- VERIFIED: signature present and made over this Code chunk by the key
- UNSIGNED: no Attr chunk, or no signature attribute in it
- SIGNATURE_INVALID: a signature is present but does not match

An unsigned or invalid module is a normal negative result. Errors are
raised only when the module cannot be evaluated at all (not a BEAM
container, no Code chunk, malformed key).
"""

import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict

from ..constants import Ed25519Sizes
from ..container import ModuleSource, code_payload, read_chunks, read_signature
from ..crypto import ed25519

logger = logging.getLogger(__name__)


class SignatureStatus(Enum):
    """Status of a module signature check."""
    VERIFIED = "verified"                    # Signature matches
    UNSIGNED = "unsigned"                    # No signature stored
    SIGNATURE_INVALID = "signature_invalid"  # Signature does not match


@dataclass(frozen=True)
class VerificationResult:
    """Result of verifying one module."""
    status: SignatureStatus
    verified_at: datetime
    code_size: int
    duration_ms: float

    @property
    def is_valid(self) -> bool:
        """Check if verification passed."""
        return self.status == SignatureStatus.VERIFIED

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            'status': self.status.value,
            'verified_at': self.verified_at.isoformat(),
            'code_size': self.code_size,
            'duration_ms': self.duration_ms,
            'is_valid': self.is_valid,
        }


def verify_module(module: ModuleSource, public_key: bytes) -> VerificationResult:
    """
    Verify a module and report why it passed or failed.

    Args:
        module: Module binary or path
        public_key: 32-byte Ed25519 public key

    Raises:
        MalformedContainerError: If the module cannot be parsed
        MissingCodeChunkError: If the module has no Code chunk
    """
    start = time.monotonic()

    chunks = read_chunks(module)
    code = code_payload(chunks)
    signature = read_signature(chunks)

    if signature is None:
        status = SignatureStatus.UNSIGNED
    elif ed25519.verify(signature, code, public_key):
        status = SignatureStatus.VERIFIED
    else:
        status = SignatureStatus.SIGNATURE_INVALID

    result = VerificationResult(
        status=status,
        verified_at=datetime.now(timezone.utc),
        code_size=len(code),
        duration_ms=(time.monotonic() - start) * 1000,
    )

    if result.is_valid:
        logger.debug(f"Module signature verified ({len(code)} code bytes)")
    else:
        logger.info(f"Module signature rejected: {status.value}")
    return result


def valid_signature(module: ModuleSource, public_key: bytes) -> bool:
    """
    Check whether a module carries a valid signature for public_key.

    Returns:
        True if the embedded signature matches the Code chunk, False if the
        module is unsigned or the signature does not match
    """
    return verify_module(module, public_key).is_valid


class SignatureVerifier:
    """
    Signature Verifier - verifies modules against one trusted key.

    Usage:
        verifier = SignatureVerifier(public_key=trusted_key)
        result = verifier.verify('ebin/my_module.beam')
        if not result.is_valid:
            # refuse to load
    """

    def __init__(self, public_key: bytes):
        self._public_key = bytes(public_key)

    @classmethod
    def from_key_file(cls, key_path: str) -> 'SignatureVerifier':
        """Create a verifier from a raw or hex-encoded public key file."""
        return cls(ed25519.load_key_file(key_path, expected_size=Ed25519Sizes.PUBLIC_KEY))

    @property
    def public_key(self) -> bytes:
        return self._public_key

    def verify(self, module: ModuleSource) -> VerificationResult:
        return verify_module(module, self._public_key)

    def is_valid(self, module: ModuleSource) -> bool:
        return valid_signature(module, self._public_key)


__all__ = [
    'SignatureStatus',
    'VerificationResult',
    'verify_module',
    'valid_signature',
    'SignatureVerifier',
]
