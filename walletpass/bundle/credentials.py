# walletpass/bundle/credentials.py
from __future__ import annotations

import asyncio
import logging
import re
from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from cryptography import x509
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.types import PrivateKeyTypes

from walletpass.core.errors import InvalidCredentials
from walletpass.bundle.options import CertificatesOptions, PemInput

logger = logging.getLogger(__name__)

__all__ = [
    "PemBlockKind",
    "CredentialRole",
    "PemSource",
    "PemBlock",
    "Credentials",
    "parsePemBlocks",
    "classifyBlocks",
    "loadCredentials",
    "loadCredentialsAsync",
    "sourcesFromOptions",
]



_PEM_BLOCK_RE = re.compile(
    rb"-----BEGIN (?P<label>[A-Z0-9 ]+)-----\r?\n.*?-----END (?P=label)-----",
    re.DOTALL,
)



class PemBlockKind(Enum):
    PRIVATE_KEY = "privateKey"
    CERTIFICATE = "certificate"



class CredentialRole(Enum):
    AUTHORITY_CERTIFICATE = "authorityCertificate"
    SIGNER_CERTIFICATE = "signerCertificate"
    SIGNER_PRIVATE_KEY = "signerPrivateKey"



@dataclass(frozen=True, slots=True)
class PemSource:
    """
    One input of the credential store: a path or pre-loaded PEM content.
    `pairedWithKey` declares that certificates in this source were exported
    together with the signer private key.
    """
    path: Path | None = None
    content: bytes | None = None
    pairedWithKey: bool = False
    label: str = ""

    @classmethod
    def fromInput(cls, value: PemInput, *, pairedWithKey: bool = False, label: str = "") -> "PemSource":
        if isinstance(value, bytes):
            return cls(content=value, pairedWithKey=pairedWithKey, label=label)
        if isinstance(value, str) and value.lstrip().startswith("-----BEGIN"):
            return cls(content=value.encode("utf-8"), pairedWithKey=pairedWithKey, label=label)
        return cls(path=Path(value).expanduser().resolve(), pairedWithKey=pairedWithKey, label=label)

    def describe(self) -> str:
        if self.label:
            return self.label
        return str(self.path) if self.path is not None else "<inline PEM>"

    def read(self) -> bytes:
        if self.content is not None:
            return self.content
        if self.path is None:
            raise InvalidCredentials("PEM source has neither a path nor content")
        try:
            return self.path.read_bytes()
        except OSError as err:
            raise InvalidCredentials(f"Cannot read credential file '{self.path}': {err}") from err



@dataclass(frozen=True, slots=True)
class PemBlock:
    kind: PemBlockKind
    label: str
    data: bytes
    source: PemSource



@dataclass(frozen=True, slots=True)
class Credentials:
    authorityCertificate: x509.Certificate
    signerCertificate: x509.Certificate
    signerPrivateKey: PrivateKeyTypes



# ----------------------------------------------
#           Pass 1: PEM block parsing
# ----------------------------------------------

def parsePemBlocks(raw: bytes, source: PemSource) -> list[PemBlock]:
    """
    Extracts every PEM block from `raw`, typed by its BEGIN label.
    Text around the blocks (such as PKCS#12 "Bag Attributes") is ignored.
    """
    blocks: list[PemBlock] = []
    for match in _PEM_BLOCK_RE.finditer(raw):
        label = match.group("label").decode("ascii")
        if "PRIVATE KEY" in label:
            kind = PemBlockKind.PRIVATE_KEY
        elif "CERTIFICATE" in label:
            kind = PemBlockKind.CERTIFICATE
        else:
            raise InvalidCredentials(f"Unsupported PEM block '{label}' in {source.describe()}")
        blocks.append(PemBlock(kind=kind, label=label, data=match.group(0), source=source))

    if not blocks:
        raise InvalidCredentials(f"No PEM block found in {source.describe()}")
    return blocks



# ----------------------------------------------
#           Pass 2: role classification
# ----------------------------------------------

def _loadCertificate(block: PemBlock) -> x509.Certificate:
    try:
        return x509.load_pem_x509_certificate(block.data)
    except ValueError as err:
        raise InvalidCredentials(f"Invalid certificate in {block.source.describe()}: {err}") from err



def _loadPrivateKey(block: PemBlock, passphrase: str | None) -> PrivateKeyTypes:
    if not passphrase:
        raise InvalidCredentials(f"A passphrase is required to decrypt the key in {block.source.describe()}")
    try:
        return serialization.load_pem_private_key(block.data, password=passphrase.encode("utf-8"))
    except (ValueError, TypeError) as err:
        raise InvalidCredentials(f"Cannot decrypt private key in {block.source.describe()}: {err}") from err



def _publicKeyBytes(publicKey) -> bytes:
    return publicKey.public_bytes(
        serialization.Encoding.DER,
        serialization.PublicFormat.SubjectPublicKeyInfo,
    )



def classifyBlocks(blocks: Sequence[PemBlock], passphrase: str | None) -> Credentials:
    """
    Assigns every parsed block to exactly one role, then checks that all
    three roles are present and that the key belongs to the signer certificate.
    """
    found: dict[CredentialRole, object] = {}

    for block in blocks:
        if block.kind is PemBlockKind.PRIVATE_KEY:
            role = CredentialRole.SIGNER_PRIVATE_KEY
            value: object = _loadPrivateKey(block, passphrase)
        else:
            role = (
                CredentialRole.SIGNER_CERTIFICATE
                if block.source.pairedWithKey
                else CredentialRole.AUTHORITY_CERTIFICATE
            )
            value = _loadCertificate(block)

        if role in found:
            raise InvalidCredentials(f"More than one {role.value} supplied (again in {block.source.describe()})")
        found[role] = value
        logger.debug("Credential %s loaded from %s", role.value, block.source.describe())

    missing = [role.value for role in CredentialRole if role not in found]
    if missing:
        raise InvalidCredentials(f"Missing credential role(s): {', '.join(missing)}")

    credentials = Credentials(
        authorityCertificate=found[CredentialRole.AUTHORITY_CERTIFICATE],  # type: ignore[arg-type]
        signerCertificate=found[CredentialRole.SIGNER_CERTIFICATE],  # type: ignore[arg-type]
        signerPrivateKey=found[CredentialRole.SIGNER_PRIVATE_KEY],  # type: ignore[arg-type]
    )

    keyPublic = _publicKeyBytes(credentials.signerPrivateKey.public_key())
    certPublic = _publicKeyBytes(credentials.signerCertificate.public_key())
    if keyPublic != certPublic:
        raise InvalidCredentials("Signer private key does not match the signer certificate")

    return credentials



# ----------------------------------------------
#                   Public API
# ----------------------------------------------

def sourcesFromOptions(certificates: CertificatesOptions) -> list[PemSource]:
    return [
        PemSource.fromInput(certificates.wwdr, label="wwdr"),
        PemSource.fromInput(certificates.signerCert, pairedWithKey=True, label="signerCert"),
        PemSource.fromInput(certificates.signerKey.keyFile, label="signerKey"),
    ]



def loadCredentials(sources: Sequence[PemSource], passphrase: str | None) -> Credentials:
    blocks: list[PemBlock] = []
    for source in sources:
        blocks.extend(parsePemBlocks(source.read(), source))
    return classifyBlocks(blocks, passphrase)



async def loadCredentialsAsync(sources: Sequence[PemSource], passphrase: str | None) -> Credentials:
    """Same as loadCredentials, with the source reads issued concurrently."""
    raws = await asyncio.gather(*(asyncio.to_thread(source.read) for source in sources))
    blocks: list[PemBlock] = []
    for source, raw in zip(sources, raws):
        blocks.extend(parsePemBlocks(raw, source))
    return classifyBlocks(blocks, passphrase)
