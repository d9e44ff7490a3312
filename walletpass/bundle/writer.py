# walletpass/bundle/writer.py
from __future__ import annotations

import io
import logging
import zipfile
from collections.abc import AsyncIterator, Iterable, Iterator, Sequence

from walletpass.app.settings import settings
from walletpass.core.errors import BundleIntegrityError
from walletpass.bundle.members import MANIFEST_NAME, SIGNATURE_NAME, BundleMember, MemberOrigin

logger = logging.getLogger(__name__)

__all__ = ["BUNDLE_MEDIA_TYPE", "BundleStream", "orderMembers", "writeBundle"]

BUNDLE_MEDIA_TYPE = "application/vnd.apple.pkpass"

_ORIGIN_RANK = {
    MemberOrigin.ASSET: 0,
    MemberOrigin.DESCRIPTOR: 1,
    MemberOrigin.LOCALIZATION: 2,
}



class BundleStream(io.RawIOBase):
    """
    Readable stream over a finalized bundle. Supports read()/readinto(),
    plain chunk iteration and async chunk iteration (HTTP streaming).
    """
    def __init__(self, payload: bytes, *, chunkSize: int | None = None):
        super().__init__()
        self._buffer = io.BytesIO(payload)
        self._chunkSize = int(chunkSize or settings("bundle.chunkSize", 64 * 1024))

    def readable(self) -> bool:
        return True

    def readinto(self, buffer) -> int:
        data = self._buffer.read(len(buffer))
        buffer[: len(data)] = data
        return len(data)

    def iterChunks(self) -> Iterator[bytes]:
        while True:
            chunk = self._buffer.read(self._chunkSize)
            if not chunk:
                return
            yield chunk

    async def aiterChunks(self) -> AsyncIterator[bytes]:
        for chunk in self.iterChunks():
            yield chunk

    def __iter__(self) -> Iterator[bytes]:  # type: ignore[override]
        return self.iterChunks()

    def close(self) -> None:
        self._buffer.close()
        super().close()



def orderMembers(members: Iterable[BundleMember]) -> list[BundleMember]:
    """Assets first, then the descriptor, then localization resources (stable)."""
    return sorted(members, key=lambda member: _ORIGIN_RANK[member.origin])



def writeBundle(members: Sequence[BundleMember], signature: bytes, manifestBytes: bytes) -> BundleStream:
    """
    Writes every member, then the signature and manifest.json, into a ZIP
    container and returns it as a readable stream.
    """
    reserved = {SIGNATURE_NAME, MANIFEST_NAME}
    clashes = sorted(member.name for member in members if member.name in reserved)
    if clashes:
        raise BundleIntegrityError(f"Bundle members use reserved names: {', '.join(clashes)}")

    compressLevel = int(settings("bundle.compressLevel", 6))
    output = io.BytesIO()
    with zipfile.ZipFile(output, "w", compression=zipfile.ZIP_DEFLATED, compresslevel=compressLevel) as archive:
        for member in orderMembers(members):
            archive.writestr(member.name, member.content)
        archive.writestr(SIGNATURE_NAME, signature)
        archive.writestr(MANIFEST_NAME, manifestBytes)

    payload = output.getvalue()
    logger.debug("Bundle finalized: %d members, %d bytes", len(members) + 2, len(payload))
    return BundleStream(payload)
