# walletpass/core/logging/formatters.py
from __future__ import annotations

import logging

from walletpass.core.jsonutils import safeJsonDumps
from walletpass.core.redaction import redactText
from .context import getLogContext

__all__ = ["RedactingFormatter", "JsonFormatter", "DevFormatter"]

# Context keys shown by DevFormatter, in display order
_DEV_CONTEXT_KEYS: tuple[str, ...] = ("assemblyId", "model")



class RedactingFormatter(logging.Formatter):
    """
    Delegates to `inner`, then scrubs passphrases, tokens and private-key
    bodies from the rendered text, tracebacks included.
    """
    def __init__(self, inner: logging.Formatter):
        super().__init__()
        self.inner = inner

    def format(self, record: logging.LogRecord) -> str:
        return redactText(self.inner.format(record))



class JsonFormatter(logging.Formatter):
    """One JSON object per line, for log files and non-dev consoles."""
    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, object] = {
            "ts": int(record.created * 1000),
            "level": record.levelname.lower(),
            "logger": record.name,
            "msg": record.getMessage(),
        }
        context = getLogContext()
        if context:
            entry["ctx"] = context
        if record.exc_info and record.exc_info[1] is not None:
            err = record.exc_info[1]
            entry["exc"] = {
                "type": type(err).__name__,
                "message": str(err),
                "stack": self.formatException(record.exc_info),
            }
        return safeJsonDumps(entry)



class DevFormatter(logging.Formatter):
    """`LEVEL: [logger] message [assemblyId/model]`, traceback on following lines."""
    def __init__(self):
        super().__init__("%(levelname)s: [%(name)s] %(message)s")

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        context = getLogContext() or {}
        tag = "/".join(str(context[key]) for key in _DEV_CONTEXT_KEYS if context.get(key))
        if not tag:
            return line
        head, newline, rest = line.partition("\n")
        return f"{head} [{tag}]{newline}{rest}"
