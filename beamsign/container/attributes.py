"""
Attribute Codec - the Attr chunk as an ordered key/value list.

The Attr chunk holds the module attributes as an Erlang External Term
Format list of {Key, Values} tuples, e.g.

    [{vsn, [123456789]}, {signature, [<<...64 bytes...>>]}]

Terms are decoded and encoded with erlang_py. Entries this package does
not manage are kept as the decoded terms and written back unchanged.
"""

import logging
import zlib
from typing import Any, Iterator, List, Optional, Sequence, Tuple

import erlang

from ..constants import ChunkTags, Ed25519Sizes, SIGNATURE_ATTRIBUTE
from ..errors import AttributeDecodeError, ReconstructionError
from .beam_format import Chunk

logger = logging.getLogger(__name__)

# (key term, value term) as decoded from the chunk
Entry = Tuple[Any, Any]

_SPECIAL_ATOMS = {True: 'true', False: 'false'}


def _atom_name(term: Any) -> Optional[str]:
    """Name of an atom term, whichever atom encoding it was read from."""
    if isinstance(term, erlang.OtpErlangAtom):
        if isinstance(term.value, bytes):
            return term.value.decode('latin-1')
        if isinstance(term.value, str):
            return term.value
        return None
    if term is None:
        return 'undefined'
    if term is True or term is False:
        return _SPECIAL_ATOMS[term]
    return None


def _as_list(term: Any) -> List[Any]:
    if isinstance(term, erlang.OtpErlangList):
        return list(term.value)
    if isinstance(term, list):
        return list(term)
    if isinstance(term, bytes):
        # Short lists of small integers arrive as STRING_EXT
        return list(term)
    return [term]


def _as_binary(term: Any) -> Optional[bytes]:
    if isinstance(term, erlang.OtpErlangBinary) and isinstance(term.value, bytes):
        return term.value
    if isinstance(term, bytes):
        return term
    return None


class AttributeList:
    """
    Immutable ordered list of module attributes.

    set() and remove() return a new AttributeList; the original is never
    changed.
    """

    def __init__(self, entries: Optional[Sequence[Entry]] = None):
        self._entries: Tuple[Entry, ...] = tuple(entries or ())

    @classmethod
    def decode(cls, payload: bytes) -> 'AttributeList':
        """
        Decode an Attr chunk payload.

        Raises:
            AttributeDecodeError: If the payload is not a list of
                {Atom, Value} tuples
        """
        try:
            term = erlang.binary_to_term(bytes(payload))
        except (erlang.ParseException, ValueError, zlib.error) as e:
            raise AttributeDecodeError(f"Attr chunk is not a valid term: {e}") from e

        if isinstance(term, erlang.OtpErlangList):
            if getattr(term, 'improper', False):
                raise AttributeDecodeError("Attr chunk is an improper list")
            items = term.value
        elif isinstance(term, list):
            items = term
        else:
            raise AttributeDecodeError(
                f"Attr chunk must hold a list, got {type(term).__name__}"
            )

        entries = []
        for item in items:
            if not isinstance(item, tuple) or len(item) != 2:
                raise AttributeDecodeError(f"Attribute entry is not a pair: {item!r}")
            if _atom_name(item[0]) is None:
                raise AttributeDecodeError(f"Attribute key is not an atom: {item[0]!r}")
            entries.append(item)

        return cls(entries)

    def encode(self) -> bytes:
        """Encode as an Attr chunk payload."""
        try:
            return erlang.term_to_binary(erlang.OtpErlangList(list(self._entries)))
        except erlang.OutputException as e:
            raise ReconstructionError(f"Cannot encode attributes: {e}") from e

    def keys(self) -> List[str]:
        return [_atom_name(key) for key, _ in self._entries]

    def get(self, key: str, default: Optional[List[Any]] = None) -> Optional[List[Any]]:
        """Values of the first entry named key, as a Python list."""
        for entry_key, value in self._entries:
            if _atom_name(entry_key) == key:
                return _as_list(value)
        return default

    def set(self, key: str, values: Sequence[Any]) -> 'AttributeList':
        """Put key first with the given values, dropping earlier entries for it."""
        entry = (erlang.OtpErlangAtom(key), erlang.OtpErlangList(list(values)))
        return AttributeList((entry,) + self.remove(key)._entries)

    def remove(self, key: str) -> 'AttributeList':
        return AttributeList(
            [e for e in self._entries if _atom_name(e[0]) != key]
        )

    def __contains__(self, key: object) -> bool:
        return key in self.keys()

    def __iter__(self) -> Iterator[Tuple[str, List[Any]]]:
        for key, value in self._entries:
            yield _atom_name(key), _as_list(value)

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"AttributeList({self.keys()!r})"


def _attr_index(chunks: Sequence[Chunk]) -> Optional[int]:
    indexes = [i for i, c in enumerate(chunks) if c.tag == ChunkTags.ATTR]
    if len(indexes) > 1:
        logger.warning(f"Module has {len(indexes)} Attr chunks, using the first")
    return indexes[0] if indexes else None


def decode_attributes(chunks: Sequence[Chunk]) -> Optional[AttributeList]:
    """
    Decode the module's attributes.

    Returns:
        None when there is no Attr chunk, otherwise the decoded list
        (which may be empty)
    """
    index = _attr_index(chunks)
    if index is None:
        return None
    return AttributeList.decode(chunks[index].payload)


def encode_with_signature(chunks: Sequence[Chunk], signature: bytes) -> List[Chunk]:
    """
    Return a new chunk list whose Attr chunk carries the signature.

    An existing Attr chunk is rewritten in place with every other
    attribute kept; otherwise a new Attr chunk is appended.
    """
    value = [erlang.OtpErlangBinary(bytes(signature))]
    index = _attr_index(chunks)

    if index is None:
        attributes = AttributeList().set(SIGNATURE_ATTRIBUTE, value)
        logger.debug("No Attr chunk, appending one")
        return list(chunks) + [Chunk(ChunkTags.ATTR, attributes.encode())]

    attributes = AttributeList.decode(chunks[index].payload)
    if SIGNATURE_ATTRIBUTE in attributes:
        logger.info("Replacing existing module signature")
    attributes = attributes.set(SIGNATURE_ATTRIBUTE, value)

    updated = list(chunks)
    updated[index] = chunks[index].with_payload(attributes.encode())
    return updated


def read_signature(chunks: Sequence[Chunk]) -> Optional[bytes]:
    """
    Return the stored signature, or None for an unsigned module.

    None covers a missing Attr chunk, a missing signature key, and a
    signature value that is not a binary.
    """
    attributes = decode_attributes(chunks)
    if attributes is None:
        return None

    values = attributes.get(SIGNATURE_ATTRIBUTE)
    if not values:
        return None

    signature = _as_binary(values[0])
    if signature is None:
        logger.warning("Signature attribute does not hold a binary, ignoring it")
        return None

    if len(signature) != Ed25519Sizes.SIGNATURE:
        logger.debug(f"Stored signature has unexpected length {len(signature)}")
    return signature


__all__ = [
    'AttributeList',
    'decode_attributes',
    'encode_with_signature',
    'read_signature',
]
