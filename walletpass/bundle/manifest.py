# walletpass/bundle/manifest.py
from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Mapping

from walletpass.core.errors import BundleIntegrityError
from walletpass.core.hashing import sha1Hex
from walletpass.core.jsonutils import compactJsonBytes
from walletpass.bundle.members import BundleMember

logger = logging.getLogger(__name__)

__all__ = ["Manifest", "buildManifest", "verifyManifest"]



class Manifest(Mapping[str, str]):
    """
    Read-only filename → SHA-1 hex mapping covering every bundle member.
    Insertion order is kept for stable output but carries no meaning.
    """
    def __init__(self, entries: dict[str, str]):
        self._entries = dict(entries)

    def __getitem__(self, name: str) -> str:
        return self._entries[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def toDict(self) -> dict[str, str]:
        return dict(self._entries)

    def toBytes(self) -> bytes:
        """Compact UTF-8 JSON; these exact bytes are signed and written."""
        return compactJsonBytes(self._entries)



def buildManifest(members: Iterable[BundleMember]) -> Manifest:
    """
    Digests every member exactly once. A repeated name is a construction
    error and raises BundleIntegrityError.
    """
    entries: dict[str, str] = {}
    for member in members:
        if member.name in entries:
            raise BundleIntegrityError(f"Duplicate bundle member '{member.name}'")
        entries[member.name] = sha1Hex(member.content)

    logger.debug("Manifest built with %d entries", len(entries))
    return Manifest(entries)



def verifyManifest(manifest: Mapping[str, str], members: Iterable[BundleMember]) -> None:
    """Raises BundleIntegrityError unless manifest and members match exactly."""
    memberList = list(members)
    names = [member.name for member in memberList]
    if len(set(names)) != len(names):
        raise BundleIntegrityError("Bundle members contain duplicate names")

    missing = sorted(set(names) - set(manifest))
    extra = sorted(set(manifest) - set(names))
    if missing or extra:
        raise BundleIntegrityError(f"Manifest mismatch (missing={missing}, extra={extra})")

    for member in memberList:
        if manifest[member.name] != sha1Hex(member.content):
            raise BundleIntegrityError(f"Digest mismatch for '{member.name}'")
