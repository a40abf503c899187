"""
beamsign - Ed25519 signatures embedded in BEAM modules.

    secret_key, public_key = generate_key_pair()
    signed = sign('ebin/my_module.beam', secret_key)
    assert valid_signature(signed, public_key)
    load('my_module', signed, public_key, loader=runtime_load_binary)

The signature covers the module's Code chunk and is stored in its Attr
chunk under the `signature` attribute.
"""

__version__ = "0.1.0"

from .errors import (
    BeamSigningError,
    MalformedContainerError,
    AttributeDecodeError,
    MissingCodeChunkError,
    ReconstructionError,
)

from .container import (
    Chunk,
    read_chunks,
    build_module,
    strip_module,
)

from .crypto import generate_key_pair

from .integrity import (
    sign,
    valid_signature,
    verify_module,
    load,
    load_from_path,
    LoadStatus,
    ModuleSigner,
    SignatureVerifier,
    SignatureStatus,
    VerificationResult,
    LoaderGateway,
)

__all__ = [
    '__version__',

    # Errors
    'BeamSigningError',
    'MalformedContainerError',
    'AttributeDecodeError',
    'MissingCodeChunkError',
    'ReconstructionError',

    # Container
    'Chunk',
    'read_chunks',
    'build_module',
    'strip_module',

    # Keys
    'generate_key_pair',

    # Signing, verification, loading
    'sign',
    'valid_signature',
    'verify_module',
    'load',
    'load_from_path',
    'LoadStatus',
    'ModuleSigner',
    'SignatureVerifier',
    'SignatureStatus',
    'VerificationResult',
    'LoaderGateway',
]
