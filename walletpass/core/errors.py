# walletpass/core/errors.py
from __future__ import annotations

__all__ = [
    "WalletPassError",
    "ProjectNotFound",
    "UninitializedProject",
    "DescriptorValidationFailed",
    "ManifestTypeError",
    "InvalidCredentials",
    "MissingRequiredInput",
    "BundleIntegrityError",
]



class WalletPassError(Exception):
    """Base class of every error raised by an assembly."""
    pass



class ProjectNotFound(WalletPassError):
    """The model directory is missing or unreadable."""
    pass



class UninitializedProject(WalletPassError):
    """The model has no icon asset, or no member besides the meta files."""
    pass



class DescriptorValidationFailed(WalletPassError):
    pass



class ManifestTypeError(WalletPassError, TypeError):
    pass



class InvalidCredentials(WalletPassError):
    pass



class MissingRequiredInput(WalletPassError):
    pass



class BundleIntegrityError(WalletPassError):
    """Raised when the member set, the manifest and the signature disagree."""
    pass
