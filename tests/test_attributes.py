"""
Tests for the Attr chunk attribute codec.
"""

import os
import struct
import sys

import erlang
import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from beamsign.container import (
    AttributeList,
    Chunk,
    decode_attributes,
    encode_with_signature,
    read_signature,
)
from beamsign.errors import AttributeDecodeError, MalformedContainerError

from conftest import VSN, attr_payload, module_chunks

SIGNATURE = bytes(range(64))
OTHER_SIGNATURE = bytes(reversed(range(64)))


def attr_chunk(chunks):
    return [c for c in chunks if c.tag == "Attr"]


# ===========================================================================
# AttributeList Tests
# ===========================================================================

class TestAttributeList:
    """Tests for AttributeList decode/encode/get/set."""

    def test_decode_keys_and_values(self):
        """Decoded attributes expose keys and list values."""
        attributes = AttributeList.decode(attr_payload())
        assert attributes.keys() == ["vsn"]
        assert attributes.get("vsn") == [VSN]

    def test_get_missing_key(self):
        attributes = AttributeList.decode(attr_payload())
        assert attributes.get("signature") is None
        assert attributes.get("signature", []) == []

    def test_empty_list(self):
        """An empty attribute list decodes to an empty AttributeList."""
        attributes = AttributeList.decode(erlang.term_to_binary(erlang.OtpErlangList([])))
        assert len(attributes) == 0
        assert attributes.keys() == []

    def test_set_puts_key_first(self):
        attributes = AttributeList.decode(attr_payload()).set("signature", [1])
        assert attributes.keys() == ["signature", "vsn"]

    def test_set_replaces_existing_key(self):
        attributes = AttributeList.decode(attr_payload()).set("vsn", [1]).set("vsn", [2])
        assert attributes.keys() == ["vsn"]
        assert attributes.get("vsn") == [2]

    def test_set_does_not_modify_original(self):
        original = AttributeList.decode(attr_payload())
        original.set("signature", [1])
        assert "signature" not in original

    def test_remove(self):
        attributes = AttributeList.decode(attr_payload()).remove("vsn")
        assert len(attributes) == 0

    def test_encode_decode_preserves_values(self):
        attributes = AttributeList.decode(attr_payload()).set("author", [7, 8])
        decoded = AttributeList.decode(attributes.encode())
        assert list(decoded) == [("author", [7, 8]), ("vsn", [VSN])]

    def test_latin1_atom_keys(self):
        """Keys stored with the old ATOM_EXT encoding are matched by name."""
        payload = (
            b"\x83l\x00\x00\x00\x01"
            b"h\x02"
            b"d\x00\x09signature"
            b"l\x00\x00\x00\x01m" + struct.pack('>I', 64) + SIGNATURE + b"j"
            b"j"
        )
        attributes = AttributeList.decode(payload)
        assert attributes.keys() == ["signature"]
        assert "signature" in attributes

    def test_rejects_garbage(self):
        with pytest.raises(AttributeDecodeError):
            AttributeList.decode(b"not a term")

    def test_rejects_non_list_term(self):
        with pytest.raises(AttributeDecodeError, match="list"):
            AttributeList.decode(erlang.term_to_binary(42))

    def test_rejects_non_pair_entry(self):
        payload = erlang.term_to_binary(erlang.OtpErlangList([
            (erlang.OtpErlangAtom('vsn'), 1, 2),
        ]))
        with pytest.raises(AttributeDecodeError, match="pair"):
            AttributeList.decode(payload)

    def test_rejects_non_atom_key(self):
        payload = erlang.term_to_binary(erlang.OtpErlangList([(1, 2)]))
        with pytest.raises(AttributeDecodeError, match="atom"):
            AttributeList.decode(payload)

    def test_rejects_corrupt_compressed_term(self):
        """A compressed term whose zlib stream is broken is a decode error."""
        with pytest.raises(AttributeDecodeError, match="not a valid term"):
            AttributeList.decode(b"\x83P\x00\x00\x00\x10garbage")

    def test_decode_error_is_malformed_container(self):
        """Attribute decode failures are container failures."""
        with pytest.raises(MalformedContainerError):
            AttributeList.decode(b"\x83\xff")


# ===========================================================================
# Chunk-Level Codec Tests
# ===========================================================================

class TestDecodeAttributes:
    """Tests for decode_attributes()."""

    def test_absent_chunk_is_none(self):
        assert decode_attributes(module_chunks(with_attr=False)) is None

    def test_present_but_empty_is_not_none(self):
        chunks = module_chunks(with_attr=False) + [Chunk("Attr", attr_payload([]))]
        attributes = decode_attributes(chunks)
        assert attributes is not None
        assert len(attributes) == 0

    def test_present_chunk(self, chunks):
        assert decode_attributes(chunks).get("vsn") == [VSN]


class TestEncodeWithSignature:
    """Tests for encode_with_signature()."""

    def test_replaces_attr_in_place(self, chunks):
        """The Attr chunk keeps its position; other chunks are untouched."""
        signed = encode_with_signature(chunks, SIGNATURE)
        assert [c.tag for c in signed] == [c.tag for c in chunks]
        for before, after in zip(chunks, signed):
            if before.tag != "Attr":
                assert before == after

    def test_preserves_other_attributes(self, chunks):
        attributes = decode_attributes(encode_with_signature(chunks, SIGNATURE))
        assert attributes.keys() == ["signature", "vsn"]
        assert attributes.get("vsn") == [VSN]

    def test_appends_attr_when_absent(self):
        chunks = module_chunks(with_attr=False)
        signed = encode_with_signature(chunks, SIGNATURE)
        assert signed[:-1] == chunks
        assert signed[-1].tag == "Attr"
        assert decode_attributes(signed).keys() == ["signature"]

    def test_never_duplicates_attr(self, chunks):
        signed = encode_with_signature(encode_with_signature(chunks, SIGNATURE), OTHER_SIGNATURE)
        assert len(attr_chunk(signed)) == 1

    def test_resigning_keeps_one_signature(self, chunks):
        signed = encode_with_signature(encode_with_signature(chunks, SIGNATURE), OTHER_SIGNATURE)
        attributes = decode_attributes(signed)
        assert attributes.keys().count("signature") == 1
        assert len(attributes.get("signature")) == 1
        assert read_signature(signed) == OTHER_SIGNATURE

    def test_input_chunks_not_modified(self, chunks):
        snapshot = list(chunks)
        encode_with_signature(chunks, SIGNATURE)
        assert chunks == snapshot

    def test_signature_stored_as_binary(self, chunks):
        """The stored value is an Erlang binary inside a one-element list."""
        payload = attr_chunk(encode_with_signature(chunks, SIGNATURE))[0].payload
        assert b"m" + struct.pack('>I', 64) + SIGNATURE in payload


class TestReadSignature:
    """Tests for read_signature()."""

    def test_round_trip(self, chunks):
        assert read_signature(encode_with_signature(chunks, SIGNATURE)) == SIGNATURE

    def test_no_attr_chunk(self):
        assert read_signature(module_chunks(with_attr=False)) is None

    def test_no_signature_key(self, chunks):
        assert read_signature(chunks) is None

    def test_empty_signature_list(self):
        payload = attr_payload([(erlang.OtpErlangAtom('signature'), erlang.OtpErlangList([]))])
        chunks = module_chunks(with_attr=False) + [Chunk("Attr", payload)]
        assert read_signature(chunks) is None

    def test_non_binary_signature_value(self):
        payload = attr_payload([
            (erlang.OtpErlangAtom('signature'), erlang.OtpErlangList([erlang.OtpErlangAtom('nope')])),
        ])
        chunks = module_chunks(with_attr=False) + [Chunk("Attr", payload)]
        assert read_signature(chunks) is None

    def test_latin1_signature_attribute(self):
        payload = (
            b"\x83l\x00\x00\x00\x01"
            b"h\x02"
            b"d\x00\x09signature"
            b"l\x00\x00\x00\x01m" + struct.pack('>I', 64) + SIGNATURE + b"j"
            b"j"
        )
        chunks = module_chunks(with_attr=False) + [Chunk("Attr", payload)]
        assert read_signature(chunks) == SIGNATURE

    def test_corrupt_attr_chunk_raises(self):
        chunks = module_chunks(with_attr=False) + [Chunk("Attr", b"\x00\x01")]
        with pytest.raises(AttributeDecodeError):
            read_signature(chunks)
