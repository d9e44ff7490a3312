# walletpass/bundle/signature.py
from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.serialization import pkcs7

from walletpass.app.settings import settings
from walletpass.core.errors import BundleIntegrityError, InvalidCredentials, ManifestTypeError
from walletpass.core.jsonutils import compactJsonBytes
from walletpass.bundle.credentials import Credentials
from walletpass.bundle.manifest import Manifest

logger = logging.getLogger(__name__)

__all__ = ["SIGNER_DIGESTS", "manifestContent", "signManifest"]



SIGNER_DIGESTS: dict[str, type[hashes.HashAlgorithm]] = {
    "sha224": hashes.SHA224,
    "sha256": hashes.SHA256,
    "sha384": hashes.SHA384,
    "sha512": hashes.SHA512,
}

# Payloads shorter than this may occur inside DER output by chance
_EMBED_CHECK_MIN_LEN = 64

# Signed-data options:
#   DetachedSignature: encapsulated content info carries the content type only
#   Binary: the manifest bytes are signed as-is, no MIME canonicalization
#   NoCapabilities: authenticated attributes stay contentType, signingTime, messageDigest
_SIGN_OPTIONS = [
    pkcs7.PKCS7Options.DetachedSignature,
    pkcs7.PKCS7Options.Binary,
    pkcs7.PKCS7Options.NoCapabilities,
]



def manifestContent(manifest: Any) -> bytes:
    """Bytes covered by the signature: compact JSON for objects, UTF-8 for strings."""
    if isinstance(manifest, Manifest):
        return manifest.toBytes()
    if isinstance(manifest, Mapping):
        return compactJsonBytes(dict(manifest))
    if isinstance(manifest, str):
        return manifest.encode("utf-8")
    raise ManifestTypeError(f"Manifest must be an object or a string, got {type(manifest).__name__}")



def _signerDigest() -> hashes.HashAlgorithm:
    name = str(settings("signature.digestAlgorithm", "sha256")).lower()
    algorithm = SIGNER_DIGESTS.get(name)
    if algorithm is None:
        logger.warning("Unsupported signature.digestAlgorithm '%s', using sha256", name)
        algorithm = hashes.SHA256
    return algorithm()



def signManifest(manifest: Any, credentials: Credentials) -> bytes:
    """
    Produces the detached PKCS#7 signed-data (DER) over the manifest.

    The certificate chain carries the signer and authority certificates; the
    signer info binds content-type "data", the message digest of the manifest
    and the signing time. The envelope holds no copy of the manifest.
    """
    content = manifestContent(manifest)

    try:
        builder = (
            pkcs7.PKCS7SignatureBuilder()
            .set_data(content)
            .add_signer(credentials.signerCertificate, credentials.signerPrivateKey, _signerDigest())
            .add_certificate(credentials.authorityCertificate)
        )
        signature = builder.sign(serialization.Encoding.DER, _SIGN_OPTIONS)
    except (TypeError, ValueError) as err:
        # Unsupported key type (e.g. DSA) or algorithm combination
        raise InvalidCredentials(f"Signer credentials cannot produce a PKCS#7 signature: {err}") from err

    if len(content) >= _EMBED_CHECK_MIN_LEN and content in signature:
        raise BundleIntegrityError("Signature embeds the signed manifest; a detached signature is required")

    logger.debug("Manifest signed (%d bytes of content, %d bytes of signature)", len(content), len(signature))
    return signature
