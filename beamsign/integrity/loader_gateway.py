"""
Loader Gateway - only signed modules reach the runtime loader.

The runtime loader is injected as a callable with the signature of
code:load_binary/3:

    loader(module_name, path_or_none, binary) -> handle

The gateway verifies the exact bytes it is about to hand over and calls
the loader only when the signature is valid. Any verification failure,
whether a negative result or an error while evaluating the module,
becomes LoadStatus.ERROR. Errors raised by the loader itself are logged
under ErrorCategory.LOADER and propagate.

load_from_path() hands the loader the file's bytes as read. A
gzip-compressed module is passed on compressed; only verification works
on the inflated view.
"""

import logging
import os
import zlib
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Optional, Union

import nacl.exceptions

from ..errors import BeamSigningError
from ..utils.error_handling import ErrorCategory, handle_error
from .signature_verifier import valid_signature

logger = logging.getLogger(__name__)

ModuleLoader = Callable[[str, Optional[str], bytes], Any]

# Failures that mean "could not verify", collapsed into a rejection
_VERIFICATION_ERRORS = (
    BeamSigningError,
    nacl.exceptions.CryptoError,
    zlib.error,
    ValueError,
    TypeError,
)


class LoadStatus(Enum):
    """Outcome of a gated load."""
    OK = "ok"
    ERROR = "error"


def _verified(module_name: str, binary: bytes, public_key: bytes) -> bool:
    try:
        return valid_signature(binary, public_key)
    except _VERIFICATION_ERRORS as e:
        handle_error(
            e,
            "verify_module",
            additional_context={'module': module_name},
            log_level=logging.WARNING,
        )
        return False


def _hand_over(
    module_name: str,
    path: Optional[str],
    binary: bytes,
    loader: ModuleLoader,
) -> None:
    try:
        loader(module_name, path, binary)
    except Exception as e:
        handle_error(
            e,
            "load_binary",
            category=ErrorCategory.LOADER,
            additional_context={'module': module_name, 'path': path},
            reraise=True,
        )


def load(
    module_name: str,
    binary: bytes,
    public_key: bytes,
    loader: ModuleLoader,
) -> LoadStatus:
    """
    Verify a module binary and load it if the signature is valid.

    Args:
        module_name: Name the runtime should register the module under
        binary: Module binary
        public_key: Trusted 32-byte Ed25519 public key
        loader: Runtime loader, called as loader(module_name, None, binary)

    Returns:
        LoadStatus.OK if the module was handed to the loader,
        LoadStatus.ERROR if it was rejected

    Raises:
        TypeError: If binary is not bytes (use load_from_path for files)
    """
    if not isinstance(binary, (bytes, bytearray, memoryview)):
        raise TypeError(f"binary must be bytes, got {type(binary).__name__}")
    binary = bytes(binary)

    if not _verified(module_name, binary, public_key):
        logger.warning(f"Refusing to load {module_name}: signature not valid")
        return LoadStatus.ERROR

    _hand_over(module_name, None, binary, loader)
    logger.info(f"Loaded verified module {module_name}")
    return LoadStatus.OK


def load_from_path(
    module_name: str,
    path: Union[str, os.PathLike],
    public_key: bytes,
    loader: ModuleLoader,
) -> LoadStatus:
    """
    Read a .beam file, verify it, and load it if the signature is valid.

    The file is read once; the bytes that were verified are the bytes
    passed to loader(module_name, path, binary).
    """
    try:
        with open(Path(path), 'rb') as f:
            binary = f.read()
    except OSError as e:
        handle_error(
            e,
            "read_module",
            category=ErrorCategory.FILESYSTEM,
            additional_context={'module': module_name, 'path': str(path)},
            log_level=logging.WARNING,
        )
        return LoadStatus.ERROR

    if not _verified(module_name, binary, public_key):
        logger.warning(f"Refusing to load {module_name} from {path}: signature not valid")
        return LoadStatus.ERROR

    _hand_over(module_name, str(path), binary, loader)
    logger.info(f"Loaded verified module {module_name} from {path}")
    return LoadStatus.OK


class LoaderGateway:
    """
    Loader Gateway - binds a trusted key and a runtime loader.

    Usage:
        gateway = LoaderGateway(public_key=trusted_key, loader=runtime.load_binary)
        if gateway.load_from_path('my_module', 'ebin/my_module.beam') is LoadStatus.OK:
            ...
    """

    def __init__(self, public_key: bytes, loader: ModuleLoader):
        self._public_key = bytes(public_key)
        self._loader = loader

    def load(self, module_name: str, binary: bytes) -> LoadStatus:
        return load(module_name, binary, self._public_key, self._loader)

    def load_from_path(self, module_name: str, path: Union[str, os.PathLike]) -> LoadStatus:
        return load_from_path(module_name, path, self._public_key, self._loader)


__all__ = [
    'ModuleLoader',
    'LoadStatus',
    'load',
    'load_from_path',
    'LoaderGateway',
]
