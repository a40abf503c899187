"""
Exception types raised while reading, signing or verifying BEAM modules.

A negative verification result is never an exception: it is the boolean
False returned by valid_signature(). These errors mean the module could
not even be evaluated.
"""


class BeamSigningError(Exception):
    """Base class for all module signing errors."""


class MalformedContainerError(BeamSigningError):
    """The input is not a structurally valid BEAM module."""


class AttributeDecodeError(MalformedContainerError):
    """The Attr chunk payload is not a valid attribute list."""


class MissingCodeChunkError(BeamSigningError):
    """The module has no Code chunk, so there is nothing to sign or verify."""


class ReconstructionError(BeamSigningError):
    """A chunk list cannot be serialized into a valid BEAM module."""


__all__ = [
    'BeamSigningError',
    'MalformedContainerError',
    'AttributeDecodeError',
    'MissingCodeChunkError',
    'ReconstructionError',
]
