"""
BEAM Container Format - reading and rebuilding the IFF chunk container.

A compiled BEAM module is an IFF form:

    ┌──────────┬────────────────┬──────────┬──────────────────────────┐
    │ "FOR1"   │ form size (32) │ "BEAM"   │ chunk, chunk, ...        │
    └──────────┴────────────────┴──────────┴──────────────────────────┘

    chunk:
    ┌──────────┬────────────────┬───────────────┬───────────────────┐
    │ tag (4)  │ length (32)    │ payload       │ zero pad to 4     │
    └──────────┴────────────────┴───────────────┴───────────────────┘

All integers are big-endian. The form size counts everything after the
size field, including the "BEAM" form type.

read_chunks() splits a module into Chunk values without interpreting any
payload, and build_module() writes them back with the same layout
beam_lib:build_module/1 produces, so read followed by build is the
identity on canonically built modules.
"""

import logging
import os
import struct
import zlib
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Union

from ..constants import ChunkTags, ContainerFormat, Limits
from ..errors import MalformedContainerError, MissingCodeChunkError, ReconstructionError

logger = logging.getLogger(__name__)

ModuleSource = Union[bytes, bytearray, memoryview, str, os.PathLike]

_U32 = struct.Struct('>I')


@dataclass(frozen=True)
class Chunk:
    """A single named section of a BEAM module."""
    tag: str                     # 4-character identifier, e.g. "Code"
    payload: bytes               # Raw chunk data without padding

    @property
    def size(self) -> int:
        return len(self.payload)

    def with_payload(self, payload: bytes) -> 'Chunk':
        """Return a copy of this chunk carrying a different payload."""
        return Chunk(tag=self.tag, payload=payload)


def _padding(size: int) -> int:
    return -size % ContainerFormat.ALIGNMENT


def _gunzip(data: bytes) -> bytes:
    """Inflate a gzip stream, never producing more than the module limit."""
    limit = Limits.MAX_MODULE_BYTES
    inflater = zlib.decompressobj(ContainerFormat.GZIP_WBITS)
    try:
        inflated = inflater.decompress(data, limit + 1)
    except zlib.error as e:
        raise MalformedContainerError(f"Corrupt compressed module: {e}") from e

    if len(inflated) > limit:
        raise MalformedContainerError(
            f"Compressed module inflates past the limit of {limit} bytes"
        )
    if not inflater.eof:
        raise MalformedContainerError("Corrupt compressed module: truncated stream")
    return inflated


def load_module_bytes(module: ModuleSource) -> bytes:
    """
    Return the raw bytes of a module given as bytes or as a path.

    Paths are only ever opened for reading. gzip-compressed modules are
    decompressed.
    """
    if isinstance(module, (bytes, bytearray, memoryview)):
        data = bytes(module)
    elif isinstance(module, (str, os.PathLike)):
        path = Path(module)
        with open(path, 'rb') as f:
            data = f.read()
        logger.debug(f"Read {len(data)} bytes from {path}")
    else:
        raise TypeError(
            f"module must be bytes or a path, got {type(module).__name__}"
        )

    if data.startswith(ContainerFormat.GZIP_MAGIC):
        data = _gunzip(data)

    if len(data) > Limits.MAX_MODULE_BYTES:
        raise MalformedContainerError(
            f"Module is {len(data)} bytes, limit is {Limits.MAX_MODULE_BYTES}"
        )

    return data


def parse_chunks(data: bytes) -> List[Chunk]:
    """
    Split an uncompressed BEAM binary into its chunks.

    Raises:
        MalformedContainerError: If the header or any chunk is invalid
    """
    header_size = ContainerFormat.HEADER_SIZE
    tag_size = ContainerFormat.TAG_SIZE

    if len(data) < header_size + tag_size:
        raise MalformedContainerError(f"Module too short ({len(data)} bytes)")

    if data[:4] != ContainerFormat.MAGIC:
        raise MalformedContainerError(
            f"Not an IFF form: expected {ContainerFormat.MAGIC!r}, got {data[:4]!r}"
        )

    (form_size,) = _U32.unpack_from(data, 4)
    if form_size != len(data) - header_size:
        raise MalformedContainerError(
            f"Form size {form_size} does not match data length {len(data) - header_size}"
        )

    form_type = data[header_size:header_size + tag_size]
    if form_type != ContainerFormat.FORM_TYPE:
        raise MalformedContainerError(f"Not a BEAM form: {form_type!r}")

    chunks = []
    offset = header_size + tag_size
    end = len(data)

    while offset < end:
        if end - offset < ContainerFormat.CHUNK_HEADER_SIZE:
            raise MalformedContainerError(
                f"Truncated chunk header at offset {offset}"
            )

        raw_tag = data[offset:offset + tag_size]
        (size,) = _U32.unpack_from(data, offset + tag_size)
        start = offset + ContainerFormat.CHUNK_HEADER_SIZE

        if start + size > end:
            raise MalformedContainerError(
                f"Chunk {raw_tag!r} at offset {offset} claims {size} bytes, "
                f"only {end - start} available"
            )

        chunks.append(Chunk(
            tag=raw_tag.decode(ContainerFormat.TAG_ENCODING),
            payload=data[start:start + size],
        ))

        # The final chunk's padding may be cut short by the form size
        offset = min(start + size + _padding(size), end)

    return chunks


def read_chunks(module: ModuleSource) -> List[Chunk]:
    """
    Read a module into an ordered list of chunks.

    Args:
        module: Raw module bytes or a path to a .beam file

    Returns:
        Chunks in file order, payloads untouched

    Raises:
        MalformedContainerError: If the module is not a valid BEAM container
        OSError: If a path cannot be read
    """
    chunks = parse_chunks(load_module_bytes(module))
    logger.debug(f"Parsed {len(chunks)} chunks: {[c.tag for c in chunks]}")
    return chunks


def _validate_for_build(chunks: Sequence[Chunk]) -> None:
    tags = set()
    for chunk in chunks:
        if not isinstance(chunk.payload, (bytes, bytearray)):
            raise ReconstructionError(
                f"Chunk {chunk.tag!r} payload must be bytes, "
                f"got {type(chunk.payload).__name__}"
            )
        if len(chunk.payload) > ContainerFormat.MAX_CHUNK_SIZE:
            raise ReconstructionError(f"Chunk {chunk.tag!r} is too large")
        try:
            encoded = chunk.tag.encode(ContainerFormat.TAG_ENCODING)
        except (UnicodeEncodeError, AttributeError) as e:
            raise ReconstructionError(f"Invalid chunk tag {chunk.tag!r}") from e
        if len(encoded) != ContainerFormat.TAG_SIZE:
            raise ReconstructionError(
                f"Chunk tag must be {ContainerFormat.TAG_SIZE} characters: {chunk.tag!r}"
            )
        tags.add(chunk.tag)

    missing = sorted(ChunkTags.MANDATORY - tags)
    if missing:
        raise ReconstructionError(f"Missing mandatory chunks: {', '.join(missing)}")
    if not tags.intersection(ChunkTags.ATOM_TABLES):
        raise ReconstructionError(
            f"Missing atom table (one of {', '.join(ChunkTags.ATOM_TABLES)})"
        )


def build_module(chunks: Iterable[Chunk]) -> bytes:
    """
    Serialize chunks into a BEAM module.

    Args:
        chunks: Chunks in the order they should appear

    Returns:
        The module binary

    Raises:
        ReconstructionError: If the chunks cannot form a valid module
    """
    chunks = list(chunks)
    _validate_for_build(chunks)

    parts = []
    for chunk in chunks:
        size = len(chunk.payload)
        parts.append(chunk.tag.encode(ContainerFormat.TAG_ENCODING))
        parts.append(_U32.pack(size))
        parts.append(bytes(chunk.payload))
        parts.append(b"\x00" * _padding(size))

    body = ContainerFormat.FORM_TYPE + b"".join(parts)
    if len(body) > ContainerFormat.MAX_CHUNK_SIZE:
        raise ReconstructionError(f"Module body too large ({len(body)} bytes)")

    return ContainerFormat.MAGIC + _U32.pack(len(body)) + body


def find_chunk(chunks: Sequence[Chunk], tag: str) -> Optional[Chunk]:
    """Return the first chunk with the given tag, or None."""
    for chunk in chunks:
        if chunk.tag == tag:
            return chunk
    return None


def code_payload(chunks: Sequence[Chunk]) -> bytes:
    """
    Return the exact payload of the Code chunk.

    Raises:
        MissingCodeChunkError: If the module has no Code chunk
    """
    chunk = find_chunk(chunks, ChunkTags.CODE)
    if chunk is None:
        raise MissingCodeChunkError("Module has no Code chunk")
    return chunk.payload


def strip_module(module: ModuleSource) -> bytes:
    """
    Remove every chunk that is not needed to load the module.

    Debug info, attributes, compile info and docs are dropped; chunk order
    of what remains is preserved. Equivalent to beam_lib:strip/1.
    """
    chunks = read_chunks(module)
    kept = [c for c in chunks if c.tag in ChunkTags.SIGNIFICANT]
    dropped = [c.tag for c in chunks if c.tag not in ChunkTags.SIGNIFICANT]
    if dropped:
        logger.info(f"Stripped chunks: {', '.join(dropped)}")
    return build_module(kept)


__all__ = [
    'Chunk',
    'ModuleSource',
    'load_module_bytes',
    'parse_chunks',
    'read_chunks',
    'build_module',
    'find_chunk',
    'code_payload',
    'strip_module',
]
