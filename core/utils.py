"""
Utility functions for common operations.

Provides helper functions for:
- Cryptographic hashing of uploaded content
- Record ID generation
- Amount formatting for stored text
"""
from __future__ import annotations
from pathlib import Path
import hashlib
import math
import time
import uuid
from typing import Union

from core.logger import get_logger

log = get_logger("core/utils")


def sha256_bytes(data: bytes) -> str:
    """
    Calculate SHA-256 hash of byte data.

    Used as the content fingerprint of uploaded receipt images, so the
    same bytes always map to the same hash.

    Args:
        data: Bytes to hash

    Returns:
        str: Hexadecimal hash digest

    Raises:
        TypeError: If data is not bytes

    Examples:
        >>> sha256_bytes(b"hello")
        "2cf24dba5fb0a30e26e83b2ac5b9e29e1b161e5c1fa7425e73043362938b9824"
    """
    if not isinstance(data, (bytes, bytearray, memoryview)):
        error_msg = f"Expected bytes, got {type(data)}"
        log.error(error_msg)
        raise TypeError(error_msg)

    hash_digest = hashlib.sha256(data).hexdigest()
    log.debug(f"Generated SHA-256 hash: length={len(data)} bytes hash={hash_digest[:16]}...")

    return hash_digest


def sha256_file(file_path: Path) -> str:
    """
    Calculate SHA-256 hash of a file.

    Reads in chunks; the digest equals sha256_bytes() of the file content.

    Args:
        file_path: Path to file to hash

    Returns:
        str: Hexadecimal hash digest

    Raises:
        FileNotFoundError: If file doesn't exist
        IOError: If path is not a regular file
    """
    file_path = Path(file_path)

    if not file_path.exists():
        error_msg = f"File not found: {file_path}"
        log.error(error_msg)
        raise FileNotFoundError(error_msg)

    if not file_path.is_file():
        error_msg = f"Not a file: {file_path}"
        log.error(error_msg)
        raise IOError(error_msg)

    hasher = hashlib.sha256()

    with open(file_path, "rb") as f:
        # Read file in 64KB chunks
        chunk_size = 65536
        while chunk := f.read(chunk_size):
            hasher.update(chunk)

    hash_digest = hasher.hexdigest()
    log.debug(f"Hashed file: path={file_path.name} hash={hash_digest[:16]}...")

    return hash_digest


def new_record_id(prefix: str) -> str:
    """
    Generate a unique record ID: ``{prefix}_{epoch_millis}_{random}``.

    IDs are never derived from content, so saving the same record twice
    yields two rows.

    Examples:
        >>> new_record_id("receipt")
        "receipt_1760781600000_3f9a1c2b7"
    """
    millis = int(time.time() * 1000)
    suffix = uuid.uuid4().hex[:9]
    return f"{prefix}_{millis}_{suffix}"


def format_amount(amount: Union[int, float]) -> str:
    """
    Render a number the way it is stored in metadata and summary text.

    Whole values drop the decimal part, everything else keeps full
    precision.

    Examples:
        >>> format_amount(10.0)
        "10"
        >>> format_amount(12.5)
        "12.5"
        >>> format_amount(-20)
        "-20"
    """
    value = float(amount)
    if math.isfinite(value) and value.is_integer():
        return str(int(value))
    return repr(value)
