# walletpass/bundle/fields.py
from __future__ import annotations

import copy
import logging
from collections.abc import Mapping
from typing import Any

from walletpass.app.config import isValid

logger = logging.getLogger(__name__)

__all__ = ["AREAS", "FieldsArea", "createFieldAreas"]



# Declaration order is the order areas are injected into the descriptor
AREAS: tuple[str, ...] = (
    "headerFields",
    "primaryFields",
    "secondaryFields",
    "auxiliaryFields",
    "backFields",
)



class FieldsArea:
    """
    Ordered list of field records for one area of the descriptor.

    Field keys are unique across all areas sharing the same `usedKeys` set,
    which is how a Project keeps keys unique over its whole descriptor.
    """
    def __init__(self, name: str, usedKeys: set[str] | None = None):
        self.name = name
        self.fields: list[dict[str, Any]] = []
        self._usedKeys = usedKeys if usedKeys is not None else set()

    def push(self, *fields: Mapping[str, Any]) -> int:
        """Appends valid field records and returns how many were accepted."""
        accepted = 0
        for field in fields:
            if not isinstance(field, Mapping) or not isValid(dict(field), "pass.field"):
                logger.warning("Dropping invalid %s record: %r", self.name, field)
                continue
            key = field["key"]
            if key in self._usedKeys:
                logger.warning("Dropping %s record with duplicate key '%s'", self.name, key)
                continue
            self._usedKeys.add(key)
            self.fields.append(copy.deepcopy(dict(field)))
            accepted += 1
        return accepted

    def pop(self, amount: int = -1) -> list[dict[str, Any]]:
        """
        Removes records from the end of the area (all of them when `amount`
        is negative) and returns them, freeing their keys.
        """
        if amount < 0 or amount > len(self.fields):
            amount = len(self.fields)
        if amount == 0:
            return []
        removed = self.fields[-amount:]
        del self.fields[-amount:]
        for field in removed:
            self._usedKeys.discard(field["key"])
        return removed

    def __len__(self) -> int:
        return len(self.fields)



def createFieldAreas() -> dict[str, FieldsArea]:
    usedKeys: set[str] = set()
    return {area: FieldsArea(area, usedKeys) for area in AREAS}
