# walletpass/core/time.py
from __future__ import annotations
import time
from datetime import datetime

__all__ = ["dateToW3CString", "nowMs"]



# Accepted caller date formats, tried in order before ISO 8601
_DATE_FORMATS: tuple[str, ...] = ("%m-%d-%Y", "%m-%d-%Y %H:%M", "%m-%d-%Y %H:%M:%S")



def nowMs() -> int:
    return int(time.time() * 1000)



def dateToW3CString(date: object) -> str:
    """
    Converts a caller date string to a W3C date-time string
    (e.g. "2025-03-15T00:00:00+01:00").

    "MM-DD-YYYY" (optionally followed by a time) and ISO 8601 input are
    accepted. Naive dates are read in local time and rendered with the local
    UTC offset. Returns "" for non-string or unparsable input.
    """
    if not isinstance(date, str) or not date.strip():
        return ""

    text = date.strip()
    parsed: datetime | None = None
    for fmt in _DATE_FORMATS:
        try:
            parsed = datetime.strptime(text, fmt)
            break
        except ValueError:
            continue

    if parsed is None:
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return ""

    return parsed.astimezone().isoformat(timespec="seconds")
