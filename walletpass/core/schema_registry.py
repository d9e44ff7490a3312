# walletpass/core/schema_registry.py
from __future__ import annotations
import copy
import threading
from dataclasses import dataclass
from typing import Any, TypeAlias, Callable, cast

import fastjsonschema

__all__ = [
    "SchemaDoc",
    "SchemaRegistry",
    "ValidationError",
    "JSONValue",
    "JSONSchemaRoot",
    "ValidatorFn",
]



JSONValue: TypeAlias = (None | bool | int | float | str | list["JSONValue"] | dict[str, "JSONValue"])

# JSON Schema roots can be a dict or a top-level boolean schema:
JSONSchemaRoot: TypeAlias = dict[str, JSONValue] | bool

# Type alias for compiled validators
ValidatorFn: TypeAlias = Callable[[Any], Any]



@dataclass(frozen=True)
class SchemaDoc:
    """
    One self-contained JSON Schema document (draft-07), addressed by name
    (e.g. "pass.barcode"). Local "#/definitions/..." references are allowed;
    references to other documents are not.
    """
    name: str
    schema: JSONSchemaRoot



class ValidationError(Exception):
    pass



class SchemaRegistry:
    """
    Holds the descriptor-related JSON Schemas, compiles them lazily with
    fastjsonschema and answers "is this instance valid for schema X?".
    Thread safe via an internal RLock; compiled validators are cached.
    """
    def __init__(self):
        self._docs: dict[str, SchemaDoc] = {}
        self._validators: dict[str, ValidatorFn] = {}
        self._lock = threading.RLock()

    # ----- Registration -----

    def addSchema(self, doc: SchemaDoc) -> None:
        with self._lock:
            self._docs[doc.name] = SchemaDoc(
                name=doc.name,
                schema=copy.deepcopy(doc.schema) if isinstance(doc.schema, dict) else doc.schema,
            )
            self._validators.pop(doc.name, None)

    def hasSchema(self, name: str) -> bool:
        with self._lock:
            return name in self._docs

    def getSchema(self, name: str) -> JSONSchemaRoot | None:
        with self._lock:
            doc = self._docs.get(name)
        if doc is None:
            return None
        return copy.deepcopy(doc.schema) if isinstance(doc.schema, dict) else doc.schema

    def listSchemas(self) -> list[str]:
        with self._lock:
            return sorted(self._docs)

    # ----- Compilation -----

    def _compile(self, name: str) -> ValidatorFn:
        with self._lock:
            existing = self._validators.get(name)
            if existing is not None:
                return existing
            doc = self._docs.get(name)
            if not doc:
                raise KeyError(f"Schema not found: {name}")

        validator: ValidatorFn
        if isinstance(doc.schema, bool):
            allowAll = doc.schema
            def boolValidator(instance: Any) -> Any:
                if not allowAll:
                    raise fastjsonschema.JsonSchemaValueException("Instance is not allowed by boolean schema false")
                return instance
            validator = boolValidator
        else:
            # fastjsonschema.compile returns an untyped callable → cast it
            validator = cast(ValidatorFn, fastjsonschema.compile(doc.schema))

        with self._lock:
            self._validators[name] = validator
        return validator

    def getValidator(self, name: str) -> ValidatorFn:
        return self._compile(name)

    # ----- Validation -----

    def validate(self, name: str, instance: Any) -> None:
        validator = self.getValidator(name)
        try:
            # Validators may fill defaults in place; validate a copy
            validator(copy.deepcopy(instance))
        except fastjsonschema.JsonSchemaException as err:
            raise ValidationError(f"{name} validation failed: {err}") from err

    def isValid(self, name: str, instance: Any) -> bool:
        """Black-box predicate used by the merge and generation steps."""
        try:
            self.validate(name, instance)
        except ValidationError:
            return False
        return True
