# tests/walletpass/bundle/test_credentials.py
from __future__ import annotations
import asyncio

import pytest
from cryptography.hazmat.primitives import serialization

from walletpass.bundle.credentials import (
    PemBlockKind,
    PemSource,
    loadCredentials,
    loadCredentialsAsync,
    parsePemBlocks,
    sourcesFromOptions,
)
from walletpass.bundle.options import CertificatesOptions
from walletpass.core.errors import InvalidCredentials


def sources(certs, **changes) -> list[PemSource]:
    options = certs.options()
    options.update(changes)
    return sourcesFromOptions(CertificatesOptions.model_validate(options))


# ----------------------------------------
# PEM parsing
# ----------------------------------------

def test_parsePemBlocks_ignoresBagAttributes(certs) -> None:
    source = PemSource.fromInput(certs.signerCertPath)
    blocks = parsePemBlocks(source.read(), source)
    assert [block.kind for block in blocks] == [PemBlockKind.CERTIFICATE]
    assert blocks[0].data.startswith(b"-----BEGIN CERTIFICATE-----")


def test_parsePemBlocks_encryptedKey(certs) -> None:
    source = PemSource.fromInput(certs.signerKeyPath)
    blocks = parsePemBlocks(source.read(), source)
    assert blocks[0].kind is PemBlockKind.PRIVATE_KEY
    assert blocks[0].label == "ENCRYPTED PRIVATE KEY"


def test_parsePemBlocks_noBlock() -> None:
    source = PemSource(content=b"just text", label="junk")
    with pytest.raises(InvalidCredentials, match="junk"):
        parsePemBlocks(source.read(), source)


def test_parsePemBlocks_unsupportedBlock() -> None:
    raw = b"-----BEGIN PUBLIC KEY-----\nAAAA\n-----END PUBLIC KEY-----\n"
    with pytest.raises(InvalidCredentials, match="PUBLIC KEY"):
        parsePemBlocks(raw, PemSource(content=raw))


def test_pemSource_fromInput() -> None:
    assert PemSource.fromInput(b"abc").content == b"abc"
    assert PemSource.fromInput("-----BEGIN CERTIFICATE-----\n").content is not None
    assert PemSource.fromInput("certs/wwdr.pem").path is not None


def test_pemSource_unreadableFile(tmp_path) -> None:
    with pytest.raises(InvalidCredentials, match="Cannot read"):
        PemSource.fromInput(tmp_path / "missing.pem").read()


# ----------------------------------------
# Role classification
# ----------------------------------------

def test_loadCredentials_assignsRoles(certs) -> None:
    credentials = loadCredentials(sources(certs), certs.passphrase)
    assert credentials.authorityCertificate == certs.authorityCert
    assert credentials.signerCertificate == certs.signerCert
    assert credentials.signerPrivateKey.public_key().public_numbers() == certs.signerKey.public_key().public_numbers()


def test_loadCredentials_inlineContent(certs) -> None:
    inline = sources(
        certs,
        wwdr=certs.wwdrPath.read_bytes(),
        signerCert=certs.signerCert.public_bytes(serialization.Encoding.PEM).decode("ascii"),
    )
    credentials = loadCredentials(inline, certs.passphrase)
    assert credentials.signerCertificate == certs.signerCert


def test_loadCredentialsAsync_matchesSync(certs) -> None:
    credentials = asyncio.run(loadCredentialsAsync(sources(certs), certs.passphrase))
    assert credentials.signerCertificate == certs.signerCert


def test_loadCredentials_wrongPassphrase(certs) -> None:
    with pytest.raises(InvalidCredentials, match="decrypt"):
        loadCredentials(sources(certs), "wrong")


def test_loadCredentials_missingPassphrase(certs) -> None:
    with pytest.raises(InvalidCredentials, match="passphrase"):
        loadCredentials(sources(certs), None)


def test_loadCredentials_keyCertificateMismatch(certs) -> None:
    mismatched = sources(certs, signerKey={"keyFile": str(certs.otherKeyPath), "passphrase": certs.passphrase})
    with pytest.raises(InvalidCredentials, match="does not match"):
        loadCredentials(mismatched, certs.passphrase)


def test_loadCredentials_duplicateRole(certs) -> None:
    doubled = certs.wwdrPath.read_bytes() * 2
    with pytest.raises(InvalidCredentials, match="More than one authorityCertificate"):
        loadCredentials(sources(certs, wwdr=doubled), certs.passphrase)


def test_loadCredentials_missingRole(certs) -> None:
    # The signer certificate declared as a plain certificate leaves the signer role empty
    unpaired = [
        PemSource.fromInput(certs.wwdrPath),
        PemSource.fromInput(certs.signerKeyPath),
    ]
    with pytest.raises(InvalidCredentials, match="signerCertificate"):
        loadCredentials(unpaired, certs.passphrase)


def test_loadCredentials_keyWithoutPassphraseRejected(certs) -> None:
    plain = certs.signerKey.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption(),
    )
    with pytest.raises(InvalidCredentials):
        loadCredentials(sources(certs, signerKey={"keyFile": plain, "passphrase": None}), None)
