# walletpass/bundle/localization.py
from __future__ import annotations

from collections.abc import Mapping

from walletpass.bundle.members import STRINGS_NAME

__all__ = ["buildStringsFile", "stringsMemberName", "lprojFolderName", "languageOfFolder", "mergeStrings"]

_LPROJ_SUFFIX = ".lproj"



def _escape(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n")



def buildStringsFile(translations: Mapping[str, str]) -> bytes:
    """
    Renders a translation map as a .strings resource, one
    `"key" = "value";` line per entry. An empty map renders b"".
    """
    if not translations:
        return b""
    lines = [f'"{_escape(str(key))}" = "{_escape(str(value))}";' for key, value in translations.items()]
    return "\n".join(lines).encode("utf-8")



def mergeStrings(existing: bytes, generated: bytes) -> bytes:
    """Appends generated lines to a .strings file already shipped by the model."""
    if not existing:
        return generated
    if not generated:
        return existing
    separator = b"" if existing.endswith(b"\n") else b"\n"
    return existing + separator + generated



def lprojFolderName(language: str) -> str:
    return f"{language}{_LPROJ_SUFFIX}"



def stringsMemberName(language: str) -> str:
    return f"{lprojFolderName(language)}/{STRINGS_NAME}"



def languageOfFolder(folderName: str) -> str | None:
    """Returns "it" for "it.lproj", None for anything that is not a .lproj folder."""
    if not folderName.endswith(_LPROJ_SUFFIX):
        return None
    language = folderName[: -len(_LPROJ_SUFFIX)]
    return language or None
