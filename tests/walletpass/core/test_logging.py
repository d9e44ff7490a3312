# tests/walletpass/core/test_logging.py
from __future__ import annotations
import json
import logging
import sys

import pytest

from walletpass.core.logging import clearLogContext, configureLogging, getLogContext, logContext, setLogContext
from walletpass.core.logging.formatters import DevFormatter, JsonFormatter, RedactingFormatter


def makeRecord(msg: str, *args, level: int = logging.INFO) -> logging.LogRecord:
    return logging.LogRecord("walletpass.test", level, __file__, 1, msg, args, None)


@pytest.fixture(autouse=True)
def resetContext():
    clearLogContext()
    yield
    clearLogContext()


def test_logContext_setUpdateClear() -> None:
    assert getLogContext() is None
    setLogContext(assemblyId="abc", model="example.pass")
    setLogContext(route="passes.create", model=None)
    assert getLogContext() == {"assemblyId": "abc", "model": "example.pass", "route": "passes.create"}
    clearLogContext()
    assert getLogContext() is None


def test_logContext_restoresPreviousContext() -> None:
    setLogContext(route="passes.create")
    with logContext(assemblyId="abc", model="example.pass"):
        assert getLogContext() == {"route": "passes.create", "assemblyId": "abc", "model": "example.pass"}
    assert getLogContext() == {"route": "passes.create"}


def test_jsonFormatter_omitsEmptyContext() -> None:
    out = json.loads(JsonFormatter().format(makeRecord("plain")))
    assert "ctx" not in out


def test_jsonFormatter_includesContext() -> None:
    setLogContext(assemblyId="abc")
    out = json.loads(JsonFormatter().format(makeRecord("Assembled %s", "eventTicket")))
    assert out["msg"] == "Assembled eventTicket"
    assert out["level"] == "info"
    assert out["ctx"] == {"assemblyId": "abc"}


def test_jsonFormatter_exceptionInfo() -> None:
    try:
        raise ValueError("bad key")
    except ValueError:
        record = logging.LogRecord("walletpass.test", logging.ERROR, __file__, 1, "failed", (), sys.exc_info())
    out = json.loads(JsonFormatter().format(record))
    assert out["exc"]["type"] == "ValueError"
    assert out["exc"]["message"] == "bad key"


def test_devFormatter_showsAssemblyAndModel() -> None:
    setLogContext(assemblyId="abc", model="example.pass")
    out = DevFormatter().format(makeRecord("hello"))
    assert out == "INFO: [walletpass.test] hello [abc/example.pass]"


def test_redactingFormatter_scrubsPassphrase() -> None:
    out = RedactingFormatter(DevFormatter()).format(makeRecord("options %s", '{"passphrase": "hunter2"}'))
    assert "hunter2" not in out


def test_configureLogging_devModeUsesDevFormatter(isolatedSettings) -> None:
    from walletpass.app.settings import loadSettings

    isolatedSettings.write_text('{debug: {devModeEnabled: true}}', encoding="utf-8")
    loadSettings.cache_clear()
    root = logging.getLogger()
    saved = (list(root.handlers), root.level)
    try:
        configureLogging()
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
        formatter = root.handlers[0].formatter
        assert isinstance(formatter, RedactingFormatter)
        assert isinstance(formatter.inner, DevFormatter)
    finally:
        root.handlers[:] = saved[0]
        root.setLevel(saved[1])


def test_configureLogging_fileHandler(isolatedSettings, tmp_path) -> None:
    from walletpass.app.settings import loadSettings

    logFile = tmp_path / "walletpass.log"
    isolatedSettings.write_text(json.dumps({"logging": {"file": str(logFile), "level": "WARNING"}}), encoding="utf-8")
    loadSettings.cache_clear()
    root = logging.getLogger()
    saved = (list(root.handlers), root.level)
    try:
        configureLogging()
        assert root.level == logging.WARNING
        logging.getLogger("walletpass.test").warning("written %s", "to file")
        for handler in root.handlers:
            handler.flush()
        line = logFile.read_text(encoding="utf-8").strip().splitlines()[-1]
        assert json.loads(line)["msg"] == "written to file"
    finally:
        for handler in root.handlers:
            if handler not in saved[0]:
                handler.close()
        root.handlers[:] = saved[0]
        root.setLevel(saved[1])
