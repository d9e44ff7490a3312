import json
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.x509.oid import NameOID

PASSPHRASE = "s3cret-passphrase"

# Smallest byte sequence that still starts like a PNG
PNG_BYTES = b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR" + bytes(range(32))

BASE_DESCRIPTOR: dict[str, Any] = {
    "formatVersion": 1,
    "passTypeIdentifier": "pass.com.example.test",
    "teamIdentifier": "TEAM123456",
    "organizationName": "Example",
    "description": "Example pass",
    "serialNumber": "0001",
    "backgroundColor": "rgb(10,20,30)",
    "eventTicket": {
        "primaryFields": [{"key": "event", "label": "Event", "value": "Concert"}],
    },
}



def pytest_configure(config: pytest.Config) -> None:
    if sys.flags.optimize:
        raise RuntimeError("Assertions are disabled (optimize > 0)")



def _name(commonName: str) -> x509.Name:
    return x509.Name([
        x509.NameAttribute(NameOID.COMMON_NAME, commonName),
        x509.NameAttribute(NameOID.ORGANIZATION_NAME, "walletpass tests"),
    ])



def _certificate(subject: str, publicKey, issuer: str, signingKey, *, isCa: bool) -> x509.Certificate:
    now = datetime.now(timezone.utc)
    return (
        x509.CertificateBuilder()
        .subject_name(_name(subject))
        .issuer_name(_name(issuer))
        .public_key(publicKey)
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - timedelta(days=1))
        .not_valid_after(now + timedelta(days=30))
        .add_extension(x509.BasicConstraints(ca=isCa, path_length=None), critical=True)
        .sign(signingKey, hashes.SHA256())
    )



class CertBundle:
    """Paths and objects of a throwaway authority + signer chain."""
    def __init__(self, root: Path):
        self.root = root
        self.passphrase = PASSPHRASE
        self.authorityKey = rsa.generate_private_key(public_exponent=65537, key_size=2048)
        self.authorityCert = _certificate("Test Authority", self.authorityKey.public_key(), "Test Authority", self.authorityKey, isCa=True)
        self.signerKey = rsa.generate_private_key(public_exponent=65537, key_size=2048)
        self.signerCert = _certificate("Pass Type ID: pass.com.example.test", self.signerKey.public_key(), "Test Authority", self.authorityKey, isCa=False)
        self.otherKey = rsa.generate_private_key(public_exponent=65537, key_size=2048)

        self.wwdrPath = root / "wwdr.pem"
        self.signerCertPath = root / "signerCert.pem"
        self.signerKeyPath = root / "signerKey.pem"
        self.otherKeyPath = root / "otherKey.pem"

        self.wwdrPath.write_bytes(self.authorityCert.public_bytes(serialization.Encoding.PEM))
        # PKCS#12 exports prefix every block with bag attributes
        self.signerCertPath.write_bytes(
            b"Bag Attributes\n    friendlyName: Pass Type ID: pass.com.example.test\n"
            + b"subject=/CN=Pass Type ID\n"
            + self.signerCert.public_bytes(serialization.Encoding.PEM)
        )
        self.signerKeyPath.write_bytes(self.encryptedKey(self.signerKey))
        self.otherKeyPath.write_bytes(self.encryptedKey(self.otherKey))

    @staticmethod
    def encryptedKey(key) -> bytes:
        return key.private_bytes(
            serialization.Encoding.PEM,
            serialization.PrivateFormat.PKCS8,
            serialization.BestAvailableEncryption(PASSPHRASE.encode("utf-8")),
        )

    def options(self) -> dict[str, Any]:
        return {
            "wwdr": str(self.wwdrPath),
            "signerCert": str(self.signerCertPath),
            "signerKey": {"keyFile": str(self.signerKeyPath), "passphrase": PASSPHRASE},
        }



@pytest.fixture(scope="session")
def certs(tmp_path_factory) -> CertBundle:
    return CertBundle(tmp_path_factory.mktemp("certs"))



def writeModel(
    root: Path,
    name: str = "example",
    *,
    descriptor: dict[str, Any] | None | bool = None,
    files: dict[str, bytes] | None = None,
) -> Path:
    """
    Creates `<root>/<name>.pass` with a pass.json (none when descriptor=False),
    an icon and a logo, or exactly `files` when given.
    """
    model = root / f"{name}.pass"
    model.mkdir(parents=True, exist_ok=True)
    if descriptor is not False:
        (model / "pass.json").write_text(json.dumps(descriptor if descriptor is not None else BASE_DESCRIPTOR), encoding="utf-8")
    for relPath, content in (files if files is not None else {"icon.png": PNG_BYTES, "logo.png": PNG_BYTES[::-1]}).items():
        target = model / relPath
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(content)
    return model



@pytest.fixture()
def model(tmp_path) -> Path:
    return writeModel(tmp_path)



@pytest.fixture()
def projectOptions(model, certs) -> dict[str, Any]:
    return {"model": str(model), "certificates": certs.options()}



@pytest.fixture()
def modelFactory(tmp_path):
    """writeModel bound to the test's tmp_path."""
    def factory(name: str = "example", **kwargs) -> Path:
        return writeModel(tmp_path / "models", name, **kwargs)
    return factory



@pytest.fixture(autouse=True)
def isolatedSettings(tmp_path, monkeypatch):
    """Points user settings at a per-test file and resets the settings cache."""
    from walletpass.app.settings import USER_SETTINGS_ENV, loadSettings

    settingsFile = tmp_path / "walletpass.json5"
    monkeypatch.setenv(USER_SETTINGS_ENV, str(settingsFile))
    loadSettings.cache_clear()
    yield settingsFile
    loadSettings.cache_clear()



@pytest.fixture()
def baseDescriptor() -> dict[str, Any]:
    return json.loads(json.dumps(BASE_DESCRIPTOR))



@pytest.fixture()
def pngBytes() -> bytes:
    return PNG_BYTES
