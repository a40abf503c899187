"""
Centralized Constants Module for BEAM module signing.

This module consolidates the container format values, chunk tags, key
sizes and limits used throughout the package so they are easy to audit.

Values that are reasonable to tune per deployment can be overridden with
BEAMSIGN_-prefixed environment variables. Overrides are bounds checked
and fall back to the default on invalid input.

Usage:
    from beamsign.constants import ChunkTags, ContainerFormat, Limits

    if len(data) > Limits.MAX_MODULE_BYTES:
        ...
"""

import logging
import os
from typing import Callable, FrozenSet, Optional, Tuple, TypeVar

logger = logging.getLogger(__name__)


# =============================================================================
# ENVIRONMENT VARIABLE OVERRIDE UTILITIES
# =============================================================================

T = TypeVar('T')

ENV_PREFIX = "BEAMSIGN_"


def _env_override(
    env_var: str,
    default: T,
    converter: Callable[[str], T] = str,
    validator: Optional[Callable[[T], bool]] = None,
    min_value: Optional[T] = None,
    max_value: Optional[T] = None,
) -> T:
    """Get a configuration value with environment variable override.

    Args:
        env_var: Environment variable name (will be prefixed with BEAMSIGN_)
        default: Default value if env var not set
        converter: Function to convert string to target type
        validator: Optional validation function
        min_value: Optional minimum allowed value
        max_value: Optional maximum allowed value

    Returns:
        Configured value (from env var if valid, otherwise default)
    """
    full_env_var = f"{ENV_PREFIX}{env_var}"
    env_value = os.environ.get(full_env_var)

    if env_value is None:
        return default

    try:
        converted = converter(env_value)

        if min_value is not None and converted < min_value:
            logger.warning(
                f"{full_env_var}={env_value} below minimum {min_value}, using default"
            )
            return default
        if max_value is not None and converted > max_value:
            logger.warning(
                f"{full_env_var}={env_value} above maximum {max_value}, using default"
            )
            return default

        if validator is not None and not validator(converted):
            logger.warning(f"{full_env_var}={env_value} failed validation, using default")
            return default

        logger.info(f"Using {full_env_var}={converted} (override)")
        return converted

    except (ValueError, TypeError) as e:
        logger.warning(f"Invalid value for {full_env_var}: {e}, using default")
        return default


def env_flag(env_var: str) -> bool:
    """Read a boolean BEAMSIGN_ flag ('1', 'true', 'yes' enable it)."""
    value = os.environ.get(f"{ENV_PREFIX}{env_var}", '')
    return value.strip().lower() in ('1', 'true', 'yes')


# =============================================================================
# CONTAINER FORMAT
# =============================================================================

class ContainerFormat:
    """Byte-level layout of the BEAM IFF container."""

    # "FOR1" <form size:32> "BEAM" <chunks...>
    MAGIC = b"FOR1"
    FORM_TYPE = b"BEAM"

    # Magic plus the 32-bit form size
    HEADER_SIZE = 8

    # Tag plus the 32-bit payload length
    CHUNK_HEADER_SIZE = 8

    TAG_SIZE = 4
    TAG_ENCODING = 'latin-1'

    # Chunks are padded with zero bytes to this boundary
    ALIGNMENT = 4

    # Compressed modules are gzip streams
    GZIP_MAGIC = b"\x1f\x8b"
    # zlib window bits selecting the gzip wrapper
    GZIP_WBITS = 16 + 15

    MAX_CHUNK_SIZE = 0xFFFFFFFF


class ChunkTags:
    """Chunk identifiers this package cares about."""

    CODE = "Code"
    ATTR = "Attr"

    ATOM = "Atom"
    ATOM_UTF8 = "AtU8"
    ATOM_TABLES: Tuple[str, ...] = (ATOM_UTF8, ATOM)

    EXPORTS = "ExpT"
    IMPORTS = "ImpT"
    STRINGS = "StrT"
    FUNCTIONS = "FunT"
    LITERALS = "LitT"
    LINES = "Line"
    TYPES = "Type"
    META = "Meta"

    # A module cannot be rebuilt without these (plus one atom table)
    MANDATORY: FrozenSet[str] = frozenset({CODE, EXPORTS, IMPORTS, STRINGS})

    # Chunks kept by strip_module(); everything else is debug or metadata
    SIGNIFICANT: FrozenSet[str] = frozenset({
        LINES, TYPES, ATOM, ATOM_UTF8, CODE, STRINGS,
        IMPORTS, EXPORTS, FUNCTIONS, LITERALS, META,
    })


# Attribute key under which the module signature is stored
SIGNATURE_ATTRIBUTE = "signature"


# =============================================================================
# CRYPTOGRAPHY
# =============================================================================

class Ed25519Sizes:
    """Fixed Ed25519 sizes in bytes."""
    SECRET_KEY = 32
    PUBLIC_KEY = 32
    SIGNATURE = 64


# =============================================================================
# LIMITS
# =============================================================================

class Limits:
    """Input limits, overridable via environment."""

    MAX_MODULE_BYTES = _env_override(
        'MAX_MODULE_BYTES',
        64 * 1024 * 1024,
        int,
        min_value=1024,
        max_value=ContainerFormat.MAX_CHUNK_SIZE,
    )


__all__ = [
    'ENV_PREFIX',
    'env_flag',
    'ContainerFormat',
    'ChunkTags',
    'SIGNATURE_ATTRIBUTE',
    'Ed25519Sizes',
    'Limits',
]
