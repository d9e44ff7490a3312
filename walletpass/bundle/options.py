# walletpass/bundle/options.py
from __future__ import annotations
from pathlib import Path
from typing import Any, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from walletpass.core.errors import MissingRequiredInput

__all__ = ["PemInput", "SignerKeyOptions", "CertificatesOptions", "ProjectOptions", "parseProjectOptions"]



# A path to a PEM file, or the PEM content itself (str starting with
# "-----BEGIN" or raw bytes).
PemInput = Union[bytes, str, Path]



class SignerKeyOptions(BaseModel):
    model_config = ConfigDict(extra="forbid")

    keyFile: PemInput
    passphrase: str | None = None

    @field_validator("passphrase", mode="before")
    @classmethod
    def stringifyPassphrase(cls, value: Any) -> Any:
        # Numeric passphrases are accepted as-is from JSON configs
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value



class CertificatesOptions(BaseModel):
    """
    Trust material by role. `wwdr` is the authority certificate, `signerCert`
    the certificate exported together with `signerKey`.
    """
    model_config = ConfigDict(extra="forbid")

    wwdr: PemInput
    signerCert: PemInput
    signerKey: SignerKeyOptions



class ProjectOptions(BaseModel):
    """Caller configuration of a single assembly."""
    model_config = ConfigDict(extra="forbid")

    model: str
    certificates: CertificatesOptions
    overrides: dict[str, Any] = Field(default_factory=dict)
    shouldOverwrite: bool = True

    @field_validator("model")
    @classmethod
    def nonEmptyModel(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("model must be a non-empty path")
        return value



def parseProjectOptions(options: ProjectOptions | dict[str, Any]) -> ProjectOptions:
    """
    Validates caller options. Any structural failure becomes MissingRequiredInput.
    """
    if isinstance(options, ProjectOptions):
        return options
    if not isinstance(options, dict):
        raise MissingRequiredInput(f"Project options must be a mapping, got {type(options).__name__}")
    try:
        return ProjectOptions.model_validate(options)
    except ValidationError as err:
        raise MissingRequiredInput(f"Project options are incomplete or malformed: {err}") from err
