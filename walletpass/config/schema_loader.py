# walletpass/config/schema_loader.py
from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import cast

import json5

from walletpass.core.schema_registry import SchemaDoc, SchemaRegistry, JSONSchemaRoot

logger = logging.getLogger(__name__)

__all__ = ["SCHEMAS_DIR", "loadPassSchemas"]

SCHEMAS_DIR = Path(__file__).resolve().parent.parent / "schemas"

# pass.<name>.schema.json or .json5, registered as "pass.<name>"
_SCHEMA_FILE_RE = re.compile(r"^(?P<name>pass\.[A-Za-z0-9_]+)\.schema\.json5?$")



def loadPassSchemas(registry: SchemaRegistry, schemaDir: Path = SCHEMAS_DIR) -> int:
    """
    Registers every descriptor schema found in `schemaDir`:
      pass.barcode.schema.json5           → "pass.barcode"
      pass.boardingStructure.schema.json5 → "pass.boardingStructure"

    A file that fails to parse is logged and skipped. Returns how many
    schemas were registered.
    """
    if not schemaDir.is_dir():
        logger.warning("Schema directory does not exist: '%s'", schemaDir)
        return 0

    loaded = 0
    for file in sorted(schemaDir.iterdir()):
        match = _SCHEMA_FILE_RE.match(file.name)
        if match is None or not file.is_file():
            continue
        try:
            schema = _readSchema(file)
        except (OSError, ValueError, TypeError) as err:
            logger.error("Skipping schema '%s': %s", file.name, err)
            continue
        registry.addSchema(SchemaDoc(name=match.group("name"), schema=schema))
        loaded += 1
        logger.debug("Loaded schema %s", match.group("name"))

    return loaded



def _readSchema(file: Path) -> JSONSchemaRoot:
    # json5 also reads plain JSON
    data = json5.loads(file.read_text(encoding="utf-8"))
    if not isinstance(data, (dict, bool)):
        raise TypeError(f"top level must be an object or a boolean schema, not '{type(data).__name__}'")
    return cast(JSONSchemaRoot, data)
