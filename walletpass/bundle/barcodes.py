# walletpass/bundle/barcodes.py
from __future__ import annotations

import copy
import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any, TYPE_CHECKING

from walletpass.app.config import isValid
from walletpass.app.settings import settings

if TYPE_CHECKING:
    from walletpass.bundle.project import Project

logger = logging.getLogger(__name__)

__all__ = [
    "BARCODE_FORMATS",
    "ScanCodeResult",
    "autogenerate",
    "filterRecords",
    "findLegacy",
]



BARCODE_FORMATS: tuple[str, ...] = (
    "PKBarcodeFormatQR",
    "PKBarcodeFormatPDF417",
    "PKBarcodeFormatAztec",
    "PKBarcodeFormatCode128",
)



def _defaultEncoding() -> str:
    return str(settings("barcodes.defaultEncoding", "iso-8859-1"))



def autogenerate(data: str | Mapping[str, Any]) -> list[dict[str, Any]]:
    """
    Expands one message into a record per supported format, all sharing
    message, altText (defaults to the message) and messageEncoding.
    Returns [] when there is no message to expand.
    """
    common = {"message": data} if isinstance(data, str) else dict(data) if isinstance(data, Mapping) else {}
    message = common.get("message")
    if not message or not isinstance(message, str):
        return []

    shared = {
        "message": message,
        "altText": common.get("altText") or message,
        "messageEncoding": common.get("messageEncoding") or _defaultEncoding(),
    }
    return [{"format": fmt, **shared} for fmt in BARCODE_FORMATS]



def filterRecords(data: Mapping[str, Any] | Sequence[Any]) -> list[dict[str, Any]]:
    """
    Keeps the records that validate as scan codes after defaulting
    messageEncoding. Invalid records are dropped, never repaired further.
    """
    items = [data] if isinstance(data, Mapping) else list(data)
    valid: list[dict[str, Any]] = []
    for item in items:
        if not isinstance(item, Mapping):
            logger.debug("Dropping non-object scan code %r", item)
            continue
        record = copy.deepcopy(dict(item))
        record.setdefault("messageEncoding", _defaultEncoding())
        if isValid(record, "pass.barcode"):
            valid.append(record)
        else:
            logger.debug("Dropping invalid scan code %r", item)
    return valid



def findLegacy(records: Sequence[Mapping[str, Any]], selector: str) -> dict[str, Any] | None:
    """First record whose format contains `selector`, case-insensitively."""
    needle = selector.lower()
    for record in records:
        if needle in str(record.get("format", "")).lower():
            return dict(record)
    return None



@dataclass(frozen=True)
class ScanCodeResult:
    """
    Outcome of Project.setScanCode: how many records are now set, plus the
    follow-up operations on the same project.
    """
    count: int
    project: "Project"

    def autocomplete(self) -> "ScanCodeResult":
        """
        Fills the missing formats from the first record when only some of
        them were given. count is 0 when there was nothing to complete.
        """
        records = self.project.scanCodes
        if not records or len(records) == len(BARCODE_FORMATS):
            return ScanCodeResult(count=0, project=self.project)

        generated = autogenerate(records[0])
        self.project._setScanCodes(generated)
        return ScanCodeResult(count=len(generated), project=self.project)

    def selectLegacy(self, selector: str | None) -> "Project":
        return self.project.selectLegacyScanCode(selector)
