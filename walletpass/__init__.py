# walletpass/__init__.py
from __future__ import annotations

from walletpass.bundle.project import Project

__all__ = ["Project", "__version__"]

__version__ = "0.1.0"
