# walletpass/core/redaction.py
from __future__ import annotations

import re

__all__ = ["redactText"]



_SENSITIVE_PATTERNS: list[tuple[re.Pattern[str], str]] = [
    # Bearer or Authorization headers
    (re.compile(r"(?iu)(Bearer\s+)[A-Za-z0-9._\-]+"), r"\1***"),
    (re.compile(r"(?iu)(Authorization\s*[:=]\s*)[A-Za-z0-9._\-]+"), r"\1***"),

    # Key passphrases and pass web-service tokens in JSON or repr output
    (re.compile(r"""(?iu)(["']passphrase["']\s*:\s*["'])[^"']+(["'])"""), r"\1***\2"),
    (re.compile(r"""(?iu)(["']authenticationToken["']\s*:\s*["'])[^"']+(["'])"""), r"\1***\2"),
    (re.compile(r"(?iu)(passphrase=)[^,\s)]+"), r"\1***"),

    # PEM private key bodies
    (re.compile(r"(?s)(-----BEGIN [A-Z ]*PRIVATE KEY-----).*?(-----END [A-Z ]*PRIVATE KEY-----)"), r"\1***\2"),
]



def redactText(text: str) -> str:
    """Replaces passphrases, tokens and private-key bodies in `text` with ***."""
    for pattern, replacement in _SENSITIVE_PATTERNS:
        text = pattern.sub(replacement, text)
    return text
