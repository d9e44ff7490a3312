# walletpass/core/logging/context.py
from __future__ import annotations
import contextvars
from collections.abc import Iterator, Mapping
from contextlib import contextmanager

__all__ = ["setLogContext", "clearLogContext", "getLogContext", "logContext"]

# Per-assembly values (assemblyId, model, route) rendered by the formatters
_logContextVar: contextvars.ContextVar[Mapping[str, object] | None] = contextvars.ContextVar("walletpass.logctx", default=None)



def _withValues(values: Mapping[str, object]) -> dict[str, object]:
    merged = dict(_logContextVar.get() or {})
    merged.update((key, value) for key, value in values.items() if value is not None)
    return merged



def setLogContext(**values: object) -> None:
    """Adds the non-None values to the current context."""
    _logContextVar.set(_withValues(values))



def clearLogContext() -> None:
    _logContextVar.set(None)



def getLogContext() -> dict[str, object] | None:
    current = _logContextVar.get()
    return dict(current) if current else None



@contextmanager
def logContext(**values: object) -> Iterator[None]:
    """Scopes extra context to a block; the previous context comes back on exit."""
    token = _logContextVar.set(_withValues(values))
    try:
        yield
    finally:
        _logContextVar.reset(token)
