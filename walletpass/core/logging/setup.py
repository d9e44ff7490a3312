# walletpass/core/logging/setup.py
from __future__ import annotations
import logging
import logging.handlers

from walletpass.app.settings import settings, settingsBool
from .formatters import DevFormatter, JsonFormatter, RedactingFormatter

__all__ = ["QUIET_LOGGERS", "configureLogging"]



# Server loggers kept at INFO and out of the root handlers
QUIET_LOGGERS: tuple[str, ...] = ("uvicorn", "uvicorn.access", "uvicorn.error", "fastapi", "asyncio")



def _rootLevel(devMode: bool) -> int:
    if devMode:
        return logging.DEBUG
    levelName = str(settings("logging.level", "INFO")).upper()
    level = logging.getLevelName(levelName)
    return level if isinstance(level, int) else logging.INFO



def _fileHandler(path: str, level: int) -> logging.Handler:
    handler = logging.handlers.RotatingFileHandler(
        path,
        maxBytes=int(settings("logging.maxBytes", 10 * 1024 * 1024)),
        backupCount=int(settings("logging.backupCount", 5)),
        encoding="utf-8",
    )
    handler.setLevel(level)
    handler.setFormatter(RedactingFormatter(JsonFormatter()))
    return handler



def configureLogging() -> None:
    """
    Replaces the root handlers according to settings.

    debug.devModeEnabled: console lines from DevFormatter at DEBUG.
    Otherwise: JSON console lines at logging.level (INFO by default).
    logging.file: extra rotating JSON log, same level.
    Every handler redacts passphrases, tokens and key material.
    """
    devMode = settingsBool("debug.devModeEnabled", False)
    level = _rootLevel(devMode)

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(level)

    console = logging.StreamHandler()
    console.setLevel(level)
    console.setFormatter(RedactingFormatter(DevFormatter() if devMode else JsonFormatter()))
    root.addHandler(console)

    logFile = settings("logging.file", None)
    if logFile:
        root.addHandler(_fileHandler(str(logFile), level))

    for name in QUIET_LOGGERS:
        quiet = logging.getLogger(name)
        quiet.propagate = False
        quiet.setLevel(logging.INFO)
