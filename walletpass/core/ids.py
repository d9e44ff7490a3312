# walletpass/core/ids.py
from __future__ import annotations

import uuid6

__all__ = ["uuidv7", "assemblyId"]



def uuidv7(*, prefix: str = "") -> str:
    """Returns a UUIDv7 string (time-ordered), optionally prefixed."""
    return prefix + str(uuid6.uuid7())



def assemblyId() -> str:
    """Tags the log records of one assembly."""
    return uuidv7(prefix="asm_")
