# walletpass/core/hashing.py
from __future__ import annotations

import hashlib

__all__ = ["sha1Hex"]



def sha1Hex(data: bytes | bytearray | memoryview) -> str:
    """Returns the SHA-1 hex digest of raw bytes."""
    sha = hashlib.sha1()
    sha.update(bytes(data))
    return sha.hexdigest()
