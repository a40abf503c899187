"""
Integrity module for BEAM module signing.

Features:
- Signing the Code chunk of a module with Ed25519
- Embedding the signature in the module's Attr chunk
- Verifying embedded signatures against a trusted public key
- Gated loading: only verified modules reach the runtime loader
"""

from .code_signer import (
    sign,
    ModuleSigner,
)

from .signature_verifier import (
    SignatureStatus,
    VerificationResult,
    verify_module,
    valid_signature,
    SignatureVerifier,
)

from .loader_gateway import (
    ModuleLoader,
    LoadStatus,
    load,
    load_from_path,
    LoaderGateway,
)

__all__ = [
    # Code signing
    'sign',
    'ModuleSigner',

    # Verification
    'SignatureStatus',
    'VerificationResult',
    'verify_module',
    'valid_signature',
    'SignatureVerifier',

    # Gated loading
    'ModuleLoader',
    'LoadStatus',
    'load',
    'load_from_path',
    'LoaderGateway',
]
