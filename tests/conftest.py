"""
Pytest configuration and shared fixtures for beamsign tests.

Modules used in tests are built from known chunks so every payload is
predictable. raw_module() assembles container bytes directly, without
the validation build_module() applies, for malformed-input tests.
"""

import os
import shutil
import struct
import sys
import tempfile
import zlib
from pathlib import Path
from typing import Generator, List, Sequence, Tuple

import erlang
import pytest

# Add the parent directory to the path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from beamsign.container import Chunk, build_module
from beamsign.crypto import generate_key_pair


# ===========================================================================
# Module Builders
# ===========================================================================

# 59 bytes, so the Code chunk needs one byte of padding
CODE_PAYLOAD = bytes(range(16)) * 3 + b"\x01\x02\x03\x04\x05\x06\x07\x08\x09\x0a\x0b"

VSN = 1234567


def attr_payload(entries=None) -> bytes:
    """ETF-encoded attribute list, [{vsn, [VSN]}] by default."""
    if entries is None:
        entries = [(erlang.OtpErlangAtom('vsn'), erlang.OtpErlangList([VSN]))]
    return erlang.term_to_binary(erlang.OtpErlangList(list(entries)))


def module_chunks(with_attr: bool = True, code: bytes = CODE_PAYLOAD) -> List[Chunk]:
    """Chunks of a small module exporting sum/2."""
    chunks = [
        Chunk("AtU8", b"\x00\x00\x00\x02\x03Xyz\x03sum"),
        Chunk("Code", code),
        Chunk("StrT", b""),
        Chunk("ImpT", b"\x00\x00\x00\x00"),
        Chunk("ExpT", b"\x00\x00\x00\x01\x00\x00\x00\x02\x00\x00\x00\x02\x00\x00\x00\x02"),
    ]
    if with_attr:
        chunks.append(Chunk("Attr", attr_payload()))
    chunks.extend([
        Chunk("CInf", erlang.term_to_binary(erlang.OtpErlangList([]))),
        Chunk("Dbgi", b"\x83debug-info"),
        Chunk("Line", b"\x00\x00\x00\x00\x00\x00\x00\x00\x00\x00\x00\x01\x00"),
    ])
    return chunks


# 128-bit version number, as Elixir writes it
BIG_VSN = 2 ** 120 + 12345

# Attr entries as the compiler encodes them, byte for byte:
# {vsn, [BIG_VSN]} with a SMALL_BIG_EXT and {author, "Joe"} with a STRING_EXT
COMPILER_ATTR_ENTRIES = [
    (b"h\x02" + b"w\x03vsn"
     + b"l\x00\x00\x00\x01" + b"n\x10\x00" + BIG_VSN.to_bytes(16, 'little') + b"j"),
    b"h\x02" + b"w\x06author" + b"k\x00\x03Joe",
]


def compiler_attr_payload(compressed: bool = False) -> bytes:
    """Attr payload assembled from COMPILER_ATTR_ENTRIES, optionally zlib-compressed."""
    body = (
        b"l" + struct.pack('>I', len(COMPILER_ATTR_ENTRIES))
        + b"".join(COMPILER_ATTR_ENTRIES) + b"j"
    )
    if compressed:
        return b"\x83P" + struct.pack('>I', len(body)) + zlib.compress(body)
    return b"\x83" + body


def raw_module(chunks: Sequence[Tuple[bytes, bytes]], pad_last: bool = True) -> bytes:
    """Assemble FOR1/BEAM bytes from (tag, payload) pairs without validation."""
    body = b"BEAM"
    for index, (tag, payload) in enumerate(chunks):
        pad = -len(payload) % 4
        if index == len(chunks) - 1 and not pad_last:
            pad = 0
        body += tag + struct.pack('>I', len(payload)) + payload + b"\x00" * pad
    return b"FOR1" + struct.pack('>I', len(body)) + body


# ===========================================================================
# Temporary Directory Fixtures
# ===========================================================================

@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Provide a temporary directory that is cleaned up after the test."""
    tmpdir = tempfile.mkdtemp(prefix="beamsign_test_")
    yield Path(tmpdir)
    shutil.rmtree(tmpdir, ignore_errors=True)


# ===========================================================================
# Key Fixtures
# ===========================================================================

@pytest.fixture
def key_pair() -> Tuple[bytes, bytes]:
    """Provide a fresh Ed25519 (secret_key, public_key) pair."""
    return generate_key_pair()


@pytest.fixture
def other_key_pair() -> Tuple[bytes, bytes]:
    """Provide a second, independent key pair."""
    return generate_key_pair()


# ===========================================================================
# Module Fixtures
# ===========================================================================

@pytest.fixture
def chunks() -> List[Chunk]:
    """Provide the chunks of an unsigned module."""
    return module_chunks()


@pytest.fixture
def unsigned_module() -> bytes:
    """Provide an unsigned module binary with an Attr chunk."""
    return build_module(module_chunks())


@pytest.fixture
def module_without_attr() -> bytes:
    """Provide an unsigned module binary without an Attr chunk."""
    return build_module(module_chunks(with_attr=False))


@pytest.fixture
def module_file(temp_dir: Path, unsigned_module: bytes) -> Path:
    """Provide an unsigned module written to disk."""
    path = temp_dir / "Elixir.Xyz.beam"
    path.write_bytes(unsigned_module)
    return path
