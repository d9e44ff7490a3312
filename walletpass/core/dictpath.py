# walletpass/core/dictpath.py
from __future__ import annotations
from typing import Any
from collections.abc import Mapping

__all__ = ["getByPath", "hasPath"]

_MISSING = object()



def _splitPath(path: str) -> list[str]:
    """
    Splits a dotted settings path into keys. A backslash takes the next
    character literally, so "certificates.a\\.pem" → ["certificates", "a.pem"].
    Raises ValueError on empty paths, empty keys or a trailing backslash.
    """
    if not isinstance(path, str) or not path:
        raise ValueError("Path must be a non-empty string")

    keys = [""]
    chars = iter(path)
    for ch in chars:
        if ch == "\\":
            escaped = next(chars, None)
            if escaped is None:
                raise ValueError(f"Path '{path}' ends with a dangling escape")
            keys[-1] += escaped
        elif ch == ".":
            keys.append("")
        else:
            keys[-1] += ch

    if "" in keys:
        raise ValueError(f"Path '{path}' contains an empty key")
    return keys



def _childOf(node: Any, key: str) -> Any:
    if hasattr(node, "model_dump") and not isinstance(node, Mapping):
        node = node.model_dump(by_alias=True, exclude_unset=True)
    if isinstance(node, Mapping):
        return node.get(key, _MISSING)
    return _MISSING



def getByPath(obj: Any, path: str, default: Any | None = None) -> Any:
    """
    Walks nested mappings (and pydantic models) along `path`. Returns
    `default` when a key is missing or the path is malformed.
    """
    try:
        keys = _splitPath(path)
    except ValueError:
        return default

    node = obj
    for key in keys:
        node = _childOf(node, key)
        if node is _MISSING:
            return default
    return node



def hasPath(obj: Any, path: str) -> bool:
    return getByPath(obj, path, _MISSING) is not _MISSING
