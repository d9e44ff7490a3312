# walletpass/bundle/merge.py
from __future__ import annotations

import copy
import json
import logging
import re
from collections.abc import Mapping
from enum import Enum
from typing import Any

from walletpass.app.config import isValid
from walletpass.app.settings import settings
from walletpass.core.errors import DescriptorValidationFailed
from walletpass.core.jsonutils import compactJsonBytes
from walletpass.bundle.fields import AREAS, FieldsArea

logger = logging.getLogger(__name__)

__all__ = [
    "PASS_TYPES",
    "COLOR_PROPERTIES",
    "MANAGED_PROPERTIES",
    "OVERRIDABLE_PROPERTIES",
    "MergePolicy",
    "PropertyKind",
    "isValidRGB",
    "filterOverrides",
    "dropInvalidColors",
    "mergeProperties",
    "injectFieldAreas",
    "detectDescriptorType",
    "patchDescriptor",
]



# Supported descriptor kinds, in detection order
PASS_TYPES: tuple[str, ...] = ("boardingPass", "eventTicket", "coupon", "generic", "storeCard")

COLOR_PROPERTIES: tuple[str, ...] = ("backgroundColor", "foregroundColor", "labelColor")

_RGB_RE = re.compile(r"^rgb\(\s*(\d{1,3})\s*,\s*(\d{1,3})\s*,\s*(\d{1,3})\s*\)\s*$")



class MergePolicy(Enum):
    OVERWRITE = "overwrite"
    EXTEND = "extend"

    @classmethod
    def fromFlag(cls, shouldOverwrite: bool) -> "MergePolicy":
        return cls.OVERWRITE if shouldOverwrite else cls.EXTEND



class PropertyKind(Enum):
    TEXT = "text"
    COLOR = "color"
    OBJECT = "object"
    SCAN_CODE = "scanCode"
    SCAN_CODE_LIST = "scanCodeList"



# Top-level properties a caller may override directly
OVERRIDABLE_PROPERTIES: dict[str, PropertyKind] = {
    "serialNumber": PropertyKind.TEXT,
    "description": PropertyKind.TEXT,
    "authenticationToken": PropertyKind.TEXT,
    "webServiceURL": PropertyKind.TEXT,
    "logoText": PropertyKind.TEXT,
    "backgroundColor": PropertyKind.COLOR,
    "foregroundColor": PropertyKind.COLOR,
    "labelColor": PropertyKind.COLOR,
    "userInfo": PropertyKind.OBJECT,
    "barcode": PropertyKind.SCAN_CODE,
    "barcodes": PropertyKind.SCAN_CODE_LIST,
}

# Set only through their dedicated Project operations
MANAGED_PROPERTIES: frozenset[str] = frozenset({
    "expirationDate",
    "voided",
    "beacons",
    "locations",
    "maxDistance",
    "relevantDate",
    *AREAS,
})



def isValidRGB(value: Any) -> bool:
    """Checks a CSS-like "rgb(r, g, b)" value with every channel in [0, 255]."""
    if not value or not isinstance(value, str):
        return False
    rgb = _RGB_RE.match(value)
    if not rgb:
        return False
    return all(int(channel) <= 255 for channel in rgb.groups())



# ----------------------------------------------
#          Override normalization per kind
# ----------------------------------------------

def _scanCodeRecord(value: Any) -> dict[str, Any] | None:
    if not isinstance(value, Mapping):
        return None
    record = dict(value)
    record.setdefault("messageEncoding", settings("barcodes.defaultEncoding", "iso-8859-1"))
    return record if isValid(record, "pass.barcode") else None



def _normalizeText(value: Any) -> Any:
    return value if isinstance(value, str) else None

def _normalizeColor(value: Any) -> Any:
    # Range checks happen in dropInvalidColors, right before merging
    return value if isinstance(value, str) else None

def _normalizeObject(value: Any) -> Any:
    return copy.deepcopy(dict(value)) if isinstance(value, Mapping) else None

def _normalizeScanCode(value: Any) -> Any:
    return _scanCodeRecord(value)

def _normalizeScanCodeList(value: Any) -> Any:
    if isinstance(value, Mapping):
        value = [value]
    if not isinstance(value, list):
        return None
    records = [record for record in (_scanCodeRecord(item) for item in value) if record is not None]
    return records or None



_NORMALIZERS = {
    PropertyKind.TEXT: _normalizeText,
    PropertyKind.COLOR: _normalizeColor,
    PropertyKind.OBJECT: _normalizeObject,
    PropertyKind.SCAN_CODE: _normalizeScanCode,
    PropertyKind.SCAN_CODE_LIST: _normalizeScanCodeList,
}



def filterOverrides(overrides: Mapping[str, Any] | None) -> dict[str, Any]:
    """
    Keeps only allow-listed properties whose value fits the property's kind.
    Everything else is dropped without error.
    """
    if not isinstance(overrides, Mapping):
        return {}

    accepted: dict[str, Any] = {}
    for name, value in overrides.items():
        if name in MANAGED_PROPERTIES:
            logger.debug("Override '%s' ignored: set through its dedicated operation", name)
            continue
        kind = OVERRIDABLE_PROPERTIES.get(name)
        if kind is None:
            logger.debug("Override '%s' ignored: not overridable", name)
            continue
        normalized = _NORMALIZERS[kind](value)
        if normalized is None:
            logger.debug("Override '%s' ignored: value does not fit kind %s", name, kind.value)
            continue
        accepted[name] = normalized
    return accepted



def dropInvalidColors(props: Mapping[str, Any]) -> dict[str, Any]:
    out = dict(props)
    for name in COLOR_PROPERTIES:
        if name in out and out[name] is not None and not isValidRGB(out[name]):
            logger.debug("Dropping invalid color %s=%r", name, out[name])
            del out[name]
    return out



# ----------------------------------------------
#                 Merge policies
# ----------------------------------------------

def _extendValue(existing: Any, value: Any) -> Any:
    if isinstance(existing, list):
        return existing + (list(value) if isinstance(value, list) else [value])
    if isinstance(existing, dict) and isinstance(value, Mapping):
        merged = dict(existing)
        merged.update(value)
        return merged
    # Scalars, or a container meeting a different shape: replace
    return value



def mergeProperties(
    descriptor: Mapping[str, Any],
    props: Mapping[str, Any],
    policy: MergePolicy,
) -> dict[str, Any]:
    """
    Returns a new descriptor with `props` merged in.

    OVERWRITE: every pending value replaces the existing one.
    EXTEND: arrays are appended to, objects shallow-merged, scalars replaced,
    absent properties set.
    A pending value of None removes the property under both policies.
    """
    out = copy.deepcopy(dict(descriptor))
    for name, value in props.items():
        value = copy.deepcopy(value)
        if value is None:
            out.pop(name, None)
            continue
        if policy is MergePolicy.EXTEND and out.get(name) is not None:
            out[name] = _extendValue(out[name], value)
        else:
            out[name] = value
    return out



def injectFieldAreas(
    descriptor: dict[str, Any],
    descriptorType: str,
    areas: Mapping[str, FieldsArea],
) -> dict[str, Any]:
    """Appends each area's records, in declaration order, to the type structure."""
    structure = descriptor.setdefault(descriptorType, {})
    for area in AREAS:
        fieldsArea = areas.get(area)
        if fieldsArea is None or not fieldsArea.fields:
            continue
        existing = structure.get(area)
        if not isinstance(existing, list):
            existing = []
        structure[area] = existing + copy.deepcopy(fieldsArea.fields)
    return descriptor



# ----------------------------------------------
#                   Descriptor
# ----------------------------------------------

def _parseDescriptor(raw: bytes) -> dict[str, Any]:
    try:
        document = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as err:
        raise DescriptorValidationFailed(f"Descriptor is not valid JSON: {err}") from err
    if not isinstance(document, dict):
        raise DescriptorValidationFailed("Descriptor root must be a JSON object")
    return document



def detectDescriptorType(raw: bytes) -> str:
    """
    Returns the descriptor's type key after checking its structure, or raises
    DescriptorValidationFailed.
    """
    document = _parseDescriptor(raw)
    descriptorType = next((passType for passType in PASS_TYPES if passType in document), None)
    if descriptorType is None:
        raise DescriptorValidationFailed(
            f"Descriptor declares none of the supported types: {', '.join(PASS_TYPES)}"
        )

    schemaName = "pass.boardingStructure" if descriptorType == "boardingPass" else "pass.basicStructure"
    if not isValid(document[descriptorType], schemaName):
        raise DescriptorValidationFailed(f"Descriptor '{descriptorType}' structure is invalid")
    return descriptorType



def patchDescriptor(
    raw: bytes,
    descriptorType: str,
    props: Mapping[str, Any],
    areas: Mapping[str, FieldsArea],
    policy: MergePolicy,
) -> bytes:
    """
    Applies pending properties and field areas to the descriptor bytes.
    The original bytes are returned untouched when there is nothing to apply.
    """
    hasFields = any(len(area) for area in areas.values())
    if not props and not hasFields:
        return raw

    document = _parseDescriptor(raw)
    merged = mergeProperties(document, dropInvalidColors(props), policy)
    injectFieldAreas(merged, descriptorType, areas)
    return compactJsonBytes(merged)
