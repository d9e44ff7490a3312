# walletpass/core/jsonutils.py
from __future__ import annotations

import base64
import json
from dataclasses import asdict, is_dataclass
from datetime import date
from enum import Enum
from pathlib import Path
from typing import Any

__all__ = ["compactJsonBytes", "safeJsonDumps"]



def compactJsonBytes(obj: Any) -> bytes:
    """
    Serializes a JSON document to compact UTF-8 bytes, the form used for
    pass.json and manifest.json inside a bundle.
    Separators are (",", ":"), non-ASCII characters are kept as-is and
    NaN/infinity are refused. Raises TypeError/ValueError on non-JSON input.
    """
    return json.dumps(obj, ensure_ascii=False, allow_nan=False, separators=(",", ":")).encode("utf-8")



def _logFallback(obj: Any) -> Any:
    """`default=` hook turning the values log records carry into JSON."""
    if isinstance(obj, BaseException):
        return {"type": type(obj).__name__, "message": str(obj)}
    if isinstance(obj, (bytes, bytearray, memoryview)):
        return {"__b64__": base64.b64encode(bytes(obj)).decode("ascii")}
    if isinstance(obj, date):
        return obj.isoformat()
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, Path):
        return str(obj)
    if isinstance(obj, (set, frozenset)):
        return sorted(obj, key=repr)
    if is_dataclass(obj) and not isinstance(obj, type):
        return asdict(obj)
    if hasattr(obj, "model_dump"):
        return obj.model_dump(mode="json")
    return repr(obj)



def safeJsonDumps(obj: object) -> str:
    """
    Compact JSON for log records. Unknown values go through _logFallback;
    a payload that still cannot be encoded (circular references) is
    logged as its repr.
    """
    try:
        return json.dumps(obj, ensure_ascii=False, separators=(",", ":"), default=_logFallback)
    except ValueError:
        return json.dumps({"unencodable": repr(obj)}, ensure_ascii=False, separators=(",", ":"))
