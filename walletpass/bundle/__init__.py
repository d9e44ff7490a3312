# walletpass/bundle/__init__.py
from __future__ import annotations

from .members import BundleMember
from .project import Project, RelevanceResult
from .barcodes import ScanCodeResult

__all__ = ["BundleMember", "Project", "RelevanceResult", "ScanCodeResult"]
