# walletpass/bundle/project.py
from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from walletpass.app.config import isValid
from walletpass.core.errors import BundleIntegrityError, DescriptorValidationFailed, ProjectNotFound, UninitializedProject
from walletpass.core.ids import assemblyId
from walletpass.core.logging import logContext
from walletpass.core.time import dateToW3CString
from walletpass.bundle.barcodes import ScanCodeResult, autogenerate, filterRecords, findLegacy
from walletpass.bundle.credentials import Credentials, loadCredentialsAsync, sourcesFromOptions
from walletpass.bundle.fields import AREAS, FieldsArea, createFieldAreas
from walletpass.bundle.localization import buildStringsFile, languageOfFolder, mergeStrings, stringsMemberName
from walletpass.bundle.manifest import buildManifest, verifyManifest
from walletpass.bundle.members import (
    DESCRIPTOR_NAME,
    MANIFEST_NAME,
    SIGNATURE_NAME,
    BundleMember,
    MemberOrigin,
)
from walletpass.bundle.merge import MergePolicy, detectDescriptorType, filterOverrides, patchDescriptor
from walletpass.bundle.options import ProjectOptions, parseProjectOptions
from walletpass.bundle.signature import signManifest
from walletpass.bundle.writer import BundleStream, writeBundle

logger = logging.getLogger(__name__)

__all__ = ["RELEVANCE_KINDS", "RelevanceResult", "ModelListing", "Project"]



RELEVANCE_KINDS: tuple[str, ...] = ("beacons", "locations", "maxDistance", "relevantDate")

# Names generated during assembly; a model's own copies are ignored
_META_NAMES: frozenset[str] = frozenset({DESCRIPTOR_NAME, MANIFEST_NAME, SIGNATURE_NAME})

_RELEVANCE_SCHEMAS = {"beacons": "pass.beacon", "locations": "pass.location"}



@dataclass(frozen=True)
class RelevanceResult:
    """How many relevance entries setRelevance() accepted, plus the project."""
    count: int
    project: "Project"



@dataclass(frozen=True)
class ModelListing:
    """Top-level view of a model directory, before any file is read."""
    assets: tuple[str, ...]
    lprojFolders: tuple[str, ...]
    hasDescriptor: bool



def _isHidden(name: str) -> bool:
    return name.startswith(".")



def _resolveModelPath(model: str) -> Path:
    path = Path(model).expanduser().resolve()
    if not path.suffix:
        path = path.with_name(path.name + ".pass")
    return path



class Project:
    """
    One pass assembly: a model directory, pending descriptor changes,
    localizations and credentials, turned into a signed bundle by assemble().

    Setters return the project so configuration can be chained; setRelevance
    and setScanCode return a result record carrying the project instead.
    A Project is not meant to be shared between concurrent assemblies.
    """
    def __init__(self, options: ProjectOptions | dict[str, Any]):
        self.options = parseProjectOptions(options)
        self.model: Path = _resolveModelPath(self.options.model)
        self.policy = MergePolicy.fromFlag(self.options.shouldOverwrite)
        self.descriptorType: str | None = None
        self.overrideProperties: dict[str, Any] = {}
        self.fieldAreas: dict[str, FieldsArea] = createFieldAreas()
        self.localizations: dict[str, dict[str, str]] = {}
        self.credentials: Credentials | None = None

        self.setOverrides(self.options.overrides)

    def __repr__(self) -> str:
        return f"Project(model={str(self.model)!r}, policy={self.policy.value})"

    # ----- Descriptor properties -----

    def setOverrides(self, overrides: Mapping[str, Any] | None) -> "Project":
        """Queues allow-listed overrides; anything else is dropped silently."""
        accepted = filterOverrides(overrides)
        self.overrideProperties.update(accepted)
        if accepted:
            logger.debug("Overrides queued: %s", ", ".join(sorted(accepted)))
        return self

    def setExpiration(self, date: str) -> "Project":
        converted = dateToW3CString(date)
        if converted:
            self.overrideProperties["expirationDate"] = converted
        else:
            logger.debug("Expiration date %r ignored", date)
        return self

    def markVoided(self) -> "Project":
        self.overrideProperties["voided"] = True
        return self

    def setRelevance(self, kind: str, data: Any) -> RelevanceResult:
        """
        Sets beacons, locations, maxDistance or relevantDate.
        The result's count tells how many entries were accepted.
        """
        if kind not in RELEVANCE_KINDS or data is None or (isinstance(data, (str, list, dict)) and not data):
            return RelevanceResult(count=0, project=self)

        if kind in _RELEVANCE_SCHEMAS:
            items = data if isinstance(data, list) else [data]
            valid = [
                dict(item) for item in items
                if isinstance(item, Mapping) and isValid(dict(item), _RELEVANCE_SCHEMAS[kind])
            ]
            if valid:
                self.overrideProperties[kind] = valid
            else:
                self.overrideProperties.pop(kind, None)
            return RelevanceResult(count=len(valid), project=self)

        if kind == "maxDistance":
            distance = self._parseNumber(data)
            if distance is None:
                return RelevanceResult(count=0, project=self)
            self.overrideProperties["maxDistance"] = distance
            return RelevanceResult(count=1, project=self)

        converted = dateToW3CString(data)
        if converted:
            self.overrideProperties["relevantDate"] = converted
        return RelevanceResult(count=int(bool(converted)), project=self)

    @staticmethod
    def _parseNumber(data: Any) -> int | float | None:
        if isinstance(data, bool) or not isinstance(data, (str, int, float)):
            return None
        try:
            number = float(data)
        except ValueError:
            return None
        if number != number or number in (float("inf"), float("-inf")):
            return None
        return int(number) if number.is_integer() else number

    # ----- Scan codes -----

    @property
    def scanCodes(self) -> list[dict[str, Any]]:
        return list(self.overrideProperties.get("barcodes") or [])

    def _setScanCodes(self, records: Sequence[Mapping[str, Any]]) -> None:
        records = [dict(record) for record in records]
        if not records:
            self.overrideProperties.pop("barcodes", None)
            self.overrideProperties.pop("barcode", None)
            return
        self.overrideProperties["barcodes"] = records
        # Keep the current legacy format when it is still available
        current = self.overrideProperties.get("barcode")
        legacy = findLegacy(records, current["format"]) if isinstance(current, Mapping) and current.get("format") else None
        self.overrideProperties["barcode"] = legacy or dict(records[0])

    def setScanCode(self, data: Any) -> ScanCodeResult:
        """
        A message (string, or object with a message and no format) expands to
        all four formats. An object or list of records is filtered instead.
        """
        if not data:
            return ScanCodeResult(count=0, project=self)

        if isinstance(data, str) or (isinstance(data, Mapping) and not data.get("format") and data.get("message")):
            records = autogenerate(data)
            self.overrideProperties.pop("barcode", None)
            self._setScanCodes(records)
            return ScanCodeResult(count=len(records), project=self)

        if not isinstance(data, (Mapping, list, tuple)):
            return ScanCodeResult(count=0, project=self)

        records = filterRecords(data)
        self.overrideProperties.pop("barcode", None)
        self._setScanCodes(records)
        return ScanCodeResult(count=len(records), project=self)

    def selectLegacyScanCode(self, selector: str | None) -> "Project":
        """
        Chooses the record used for the legacy "barcode" property by format
        substring. None clears it; an unmatched selector changes nothing.
        """
        if selector is None:
            self.overrideProperties["barcode"] = None
            return self
        if not isinstance(selector, str):
            return self

        record = findLegacy(self.scanCodes, selector)
        if record is None:
            logger.debug("No scan code matches legacy selector '%s'", selector)
            return self
        self.overrideProperties["barcode"] = record
        return self

    # ----- Fields & localization -----

    def addFields(self, area: str, *fields: Mapping[str, Any]) -> int:
        if area not in self.fieldAreas:
            logger.warning("Unknown field area '%s' (expected one of %s)", area, ", ".join(AREAS))
            return 0
        return self.fieldAreas[area].push(*fields)

    def addLocalization(self, language: str, translations: Mapping[str, str]) -> "Project":
        if isinstance(language, str) and language and isinstance(translations, Mapping):
            self.localizations[language] = {str(key): str(value) for key, value in translations.items()}
        return self

    # ----- Assembly -----

    def _scanModel(self) -> ModelListing:
        try:
            entries = sorted(self.model.iterdir(), key=lambda entry: entry.name)
        except OSError as err:
            raise ProjectNotFound(f"Model '{self.model}' not found or unreadable: {err}") from err

        visible = [entry for entry in entries if not _isHidden(entry.name)]
        candidates = [entry for entry in visible if entry.name.lower() not in _META_NAMES]
        assets: list[str] = []
        folders: list[str] = []
        for entry in candidates:
            if entry.is_dir():
                if languageOfFolder(entry.name) is not None:
                    folders.append(entry.name)
                else:
                    logger.debug("Skipping model subdirectory '%s'", entry.name)
                continue
            assets.append(entry.name)

        if not any("icon" in name.lower() for name in assets):
            raise UninitializedProject(f"Model '{self.model.stem}' has no icon asset; add at least one icon image")

        hasDescriptor = any(entry.name == DESCRIPTOR_NAME and entry.is_file() for entry in visible)
        return ModelListing(assets=tuple(assets), lprojFolders=tuple(folders), hasDescriptor=hasDescriptor)

    def _listFolder(self, folder: str) -> list[str]:
        directory = self.model / folder
        try:
            return sorted(
                f"{folder}/{entry.name}"
                for entry in directory.iterdir()
                if not _isHidden(entry.name) and entry.is_file()
            )
        except OSError as err:
            raise ProjectNotFound(f"Localization folder '{directory}' is unreadable: {err}") from err

    def _readMember(self, name: str) -> bytes:
        try:
            return (self.model / name).read_bytes()
        except OSError as err:
            raise ProjectNotFound(f"Cannot read '{name}' from model '{self.model}': {err}") from err

    async def assemble(self) -> BundleStream:
        """
        Builds the signed bundle and returns it as a readable stream.
        Every failure is fatal to this call; fix the input and call again.
        """
        with logContext(assemblyId=assemblyId(), model=self.model.name):
            return await self._assemble()

    async def _assemble(self) -> BundleStream:
        listing = await asyncio.to_thread(self._scanModel)
        if not listing.hasDescriptor:
            raise DescriptorValidationFailed(f"Model '{self.model.stem}' has no {DESCRIPTOR_NAME}")

        declaredFolders = [
            folder for folder in listing.lprojFolders
            if languageOfFolder(folder) in self.localizations
        ]
        skipped = sorted(set(listing.lprojFolders) - set(declaredFolders))
        if skipped:
            logger.debug("Leaving out undeclared localization folders: %s", ", ".join(skipped))

        folderListings = await asyncio.gather(
            *(asyncio.to_thread(self._listFolder, folder) for folder in declaredFolders)
        )
        names = list(listing.assets) + [name for folderFiles in folderListings for name in folderFiles]

        contents, descriptorRaw, credentials = await asyncio.gather(
            asyncio.gather(*(asyncio.to_thread(self._readMember, name) for name in names)),
            asyncio.to_thread(self._readMember, DESCRIPTOR_NAME),
            loadCredentialsAsync(
                sourcesFromOptions(self.options.certificates),
                self.options.certificates.signerKey.passphrase,
            ),
        )
        self.credentials = credentials

        self.descriptorType = detectDescriptorType(descriptorRaw)
        patched = patchDescriptor(
            descriptorRaw,
            self.descriptorType,
            self.overrideProperties,
            self.fieldAreas,
            self.policy,
        )

        members: dict[str, BundleMember] = {}
        for name, content in zip(names, contents):
            member = BundleMember(name=name, content=content)
            if member.name in members:
                raise BundleIntegrityError(f"Model entry '{name}' collides with bundle member '{member.name}'")
            members[member.name] = member
        if DESCRIPTOR_NAME in members:
            raise BundleIntegrityError(f"A model asset maps onto the reserved member '{DESCRIPTOR_NAME}'")
        members[DESCRIPTOR_NAME] = BundleMember(name=DESCRIPTOR_NAME, content=patched, origin=MemberOrigin.DESCRIPTOR)

        for language, translations in self.localizations.items():
            strings = buildStringsFile(translations)
            if not strings:
                continue
            memberName = stringsMemberName(language)
            shipped = members.pop(memberName, None)
            content = mergeStrings(shipped.content, strings) if shipped else strings
            members[memberName] = BundleMember(name=memberName, content=content, origin=MemberOrigin.LOCALIZATION)

        memberList = list(members.values())
        manifest = buildManifest(memberList)
        verifyManifest(manifest, memberList)

        signature = signManifest(manifest, credentials)
        stream = writeBundle(memberList, signature, manifest.toBytes())

        logger.info(
            "Assembled %s bundle from '%s' (%d members, %d localizations)",
            self.descriptorType,
            self.model.name,
            len(memberList),
            len(self.localizations),
        )
        return stream
