# walletpass/app/config.py
from __future__ import annotations
import logging
import threading

from walletpass.config.schema_loader import loadPassSchemas
from walletpass.core.schema_registry import SchemaRegistry

logger = logging.getLogger(__name__)

__all__ = ["initConfig", "getRegistry", "isValid"]

# ------------------------------------------------------------------ #
# Module singletons
# ------------------------------------------------------------------ #

_REGISTRY: SchemaRegistry | None = None
_INIT_LOCK = threading.Lock()

# ------------------------------------------------------------------ #
# Core initialization
# ------------------------------------------------------------------ #

def initConfig() -> None:
    """
    Initialize the schema registry from the bundled schema files (idempotent).
    """
    global _REGISTRY
    with _INIT_LOCK:
        if _REGISTRY is not None:
            return
        registry = SchemaRegistry()
        loaded = loadPassSchemas(registry)
        if loaded == 0:
            logger.warning("No pass schemas loaded.")
        _REGISTRY = registry
        logger.debug("Config initialized (%d pass schemas)", loaded)



def getRegistry() -> SchemaRegistry:
    """
    Returns the process-wide SchemaRegistry.
    """
    if _REGISTRY is None:
        initConfig()
    assert _REGISTRY is not None
    return _REGISTRY



def isValid(instance: object, schemaName: str) -> bool:
    """Returns True when `instance` is structurally valid for `schemaName`."""
    return getRegistry().isValid(schemaName, instance)
