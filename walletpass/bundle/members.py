# walletpass/bundle/members.py
from __future__ import annotations

import posixpath
from dataclasses import dataclass
from enum import Enum

__all__ = [
    "DESCRIPTOR_NAME",
    "MANIFEST_NAME",
    "SIGNATURE_NAME",
    "STRINGS_NAME",
    "MemberOrigin",
    "BundleMember",
    "normalizeMemberName",
]



DESCRIPTOR_NAME = "pass.json"
MANIFEST_NAME = "manifest.json"
SIGNATURE_NAME = "signature"
STRINGS_NAME = "pass.strings"



class MemberOrigin(Enum):
    ASSET = "asset"
    DESCRIPTOR = "descriptor"
    LOCALIZATION = "localization"



def normalizeMemberName(name: str) -> str:
    """
    Archive-style member name: forward slashes, no "." segments, no leading
    slash. "it.lproj\\logo.png" and "./it.lproj/logo.png" both become
    "it.lproj/logo.png".
    """
    text = str(name).replace("\\", "/")
    normalized = posixpath.normpath(text).lstrip("/")
    if normalized in ("", ".") or normalized.startswith("../"):
        raise ValueError(f"Invalid bundle member name {name!r}")
    return normalized



@dataclass(frozen=True, slots=True)
class BundleMember:
    """A named byte payload included in the final bundle."""
    name: str
    content: bytes
    origin: MemberOrigin = MemberOrigin.ASSET

    def __post_init__(self):
        object.__setattr__(self, "name", normalizeMemberName(self.name))
        object.__setattr__(self, "content", bytes(self.content))
