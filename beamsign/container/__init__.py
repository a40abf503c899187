"""
Container module for BEAM module signing.

Everything that knows about the BEAM file layout lives here:
- Chunk reading and canonical rebuilding of the IFF container
- Stripping non-essential chunks
- The Attr chunk attribute list and signature storage

The signing and verification code only sees lists of Chunk values, so a
different container can be supported by replacing this package.
"""

from .beam_format import (
    Chunk,
    ModuleSource,
    load_module_bytes,
    parse_chunks,
    read_chunks,
    build_module,
    find_chunk,
    code_payload,
    strip_module,
)

from .attributes import (
    AttributeList,
    decode_attributes,
    encode_with_signature,
    read_signature,
)

__all__ = [
    # Container layout
    'Chunk',
    'ModuleSource',
    'load_module_bytes',
    'parse_chunks',
    'read_chunks',
    'build_module',
    'find_chunk',
    'code_payload',
    'strip_module',

    # Attributes
    'AttributeList',
    'decode_attributes',
    'encode_with_signature',
    'read_signature',
]
