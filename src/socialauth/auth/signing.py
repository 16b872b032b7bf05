"""Request signing and signature verification for Alipay.

Two signing generations exist and both canonicalize the same way:

1. Drop parameters whose value is empty, ``None`` or starts with ``@``
   (upload-style fields are never part of the signed content).
2. Drop ``sign`` always and ``sign_type`` only when verifying.
3. Sort the remaining keys.

The keyed-hash scheme then hashes ``secret + k1v1k2v2... + secret``; the RSA2
scheme signs ``k1=v1&k2=v2...`` with RSA-SHA256 (PKCS#1 v1.5) and base64
encodes the result.

Private keys are only ever held inside `load_private_key()`; callers get the
parsed key for the duration of a ``with`` block and nothing keeps a reference
once it exits.
"""

from __future__ import annotations

import base64
import binascii
import contextlib
import hashlib
import logging
import textwrap
from collections.abc import Iterator, Mapping
from enum import Enum
from pathlib import Path
from typing import Any, Protocol

from cryptography.exceptions import InvalidSignature, UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa

from .contracts import KeyMaterialError, SignatureError

logger = logging.getLogger(__name__)

UPLOAD_PREFIX = "@"
SIGN_FIELD = "sign"
SIGN_TYPE_FIELD = "sign_type"

PKCS1_PRIVATE_LABEL = "RSA PRIVATE KEY"
PKCS8_PRIVATE_LABEL = "PRIVATE KEY"
PUBLIC_KEY_LABEL = "PUBLIC KEY"


class SignatureScheme(str, Enum):
    """Signing generations supported by the gateway."""

    KEYED_HASH = "keyed_hash"
    RSA2 = "rsa2"


def _is_signable(value: Any) -> bool:
    if value is None or isinstance(value, (Mapping, list, tuple, set)):
        return False
    text = str(value)
    return text != "" and not text.startswith(UPLOAD_PREFIX)


def canonical_items(
    params: Mapping[str, Any], *, verification: bool = False
) -> list[tuple[str, str]]:
    """Return the signable ``(key, value)`` pairs of `params`, sorted by key."""
    excluded = {SIGN_FIELD, SIGN_TYPE_FIELD} if verification else {SIGN_FIELD}
    return sorted(
        (key, str(value))
        for key, value in params.items()
        if key not in excluded and _is_signable(value)
    )


def canonicalize(params: Mapping[str, Any], *, verification: bool = False) -> str:
    """Serialize `params` into the ``key=value&...`` string used as signature input."""
    items = canonical_items(params, verification=verification)
    return "&".join(f"{key}={value}" for key, value in items)


# ── key material ────────────────────────────────────────────────────────────


def wrap_pem(material: str, label: str) -> str:
    """Wrap a bare base64 key body in PEM headers.

    Material that already carries a ``-----BEGIN`` header is returned as-is.
    """
    material = material.strip()
    if material.startswith("-----BEGIN"):
        return material + "\n"
    body = "".join(material.split())
    lines = "\n".join(textwrap.wrap(body, 64))
    return f"-----BEGIN {label}-----\n{lines}\n-----END {label}-----\n"


def _read_key_source(material: str | None, path: str | Path | None, kind: str) -> str:
    if material and material.strip().endswith(".pem") and "-----BEGIN" not in material:
        # A ".pem" reference handed over in place of the key body.
        path, material = material.strip(), None
    if path is not None:
        try:
            return Path(path).read_text(encoding="utf-8")
        except OSError as exc:
            raise KeyMaterialError(f"Unable to read {kind} key file: {path}") from exc
    if not material or not material.strip():
        raise KeyMaterialError(f"No {kind} key material configured")
    return material


def _parse_private_key(source: str) -> rsa.RSAPrivateKey:
    if source.strip().startswith("-----BEGIN"):
        candidates = [source.strip() + "\n"]
    else:
        # Bare bodies are usually PKCS#1; PKCS#8 exports are accepted as well.
        candidates = [wrap_pem(source, PKCS1_PRIVATE_LABEL), wrap_pem(source, PKCS8_PRIVATE_LABEL)]

    last_error: Exception | None = None
    for pem in candidates:
        try:
            key = serialization.load_pem_private_key(pem.encode("ascii"), password=None)
        except (ValueError, TypeError, UnicodeEncodeError, UnsupportedAlgorithm) as exc:
            last_error = exc
            continue
        if not isinstance(key, rsa.RSAPrivateKey):
            raise KeyMaterialError("Private key is not an RSA key")
        return key
    raise KeyMaterialError("Malformed RSA private key") from last_error


def _parse_public_key(source: str) -> rsa.RSAPublicKey:
    pem = wrap_pem(source, PUBLIC_KEY_LABEL)
    try:
        key = serialization.load_pem_public_key(pem.encode("ascii"))
    except (ValueError, TypeError, UnicodeEncodeError, UnsupportedAlgorithm) as exc:
        raise KeyMaterialError("Malformed RSA public key") from exc
    if not isinstance(key, rsa.RSAPublicKey):
        raise KeyMaterialError("Public key is not an RSA key")
    return key


@contextlib.contextmanager
def load_private_key(
    private_key: str | None = None, private_key_path: str | Path | None = None
) -> Iterator[rsa.RSAPrivateKey]:
    """Parse an RSA private key for the duration of a ``with`` block."""
    key = _parse_private_key(_read_key_source(private_key, private_key_path, "private"))
    try:
        yield key
    finally:
        del key


@contextlib.contextmanager
def load_public_key(
    public_key: str | None = None, public_key_path: str | Path | None = None
) -> Iterator[rsa.RSAPublicKey]:
    """Parse the provider's RSA public key for the duration of a ``with`` block."""
    key = _parse_public_key(_read_key_source(public_key, public_key_path, "public"))
    try:
        yield key
    finally:
        del key


# ── signers ────────────────────────────────────────────────────────────────


class Signer(Protocol):
    """Computes the ``sign`` field for a parameter mapping."""

    scheme: SignatureScheme

    def sign(self, params: Mapping[str, Any]) -> str: ...


class KeyedHashSigner:
    """Legacy scheme: uppercase hex digest of ``secret + k1v1k2v2... + secret``."""

    scheme = SignatureScheme.KEYED_HASH

    def __init__(self, secret: str, algorithm: str = "md5", charset: str = "utf-8"):
        if not secret:
            raise KeyMaterialError("Keyed-hash signing requires a shared secret")
        self._secret = secret
        self._algorithm = algorithm.lower()
        self._charset = charset

    def string_to_sign(self, params: Mapping[str, Any]) -> str:
        joined = "".join(f"{key}{value}" for key, value in canonical_items(params))
        return f"{self._secret}{joined}{self._secret}"

    def sign(self, params: Mapping[str, Any]) -> str:
        try:
            digest = hashlib.new(self._algorithm)
        except (ValueError, TypeError) as exc:
            raise SignatureError(f"Unsupported hash algorithm: {self._algorithm}") from exc
        if digest.digest_size == 0:
            raise SignatureError(f"Variable-length digest is not supported: {self._algorithm}")
        try:
            digest.update(self.string_to_sign(params).encode(self._charset))
            return digest.hexdigest().upper()
        except (LookupError, UnicodeEncodeError, TypeError) as exc:
            raise SignatureError("Keyed-hash signing failed") from exc


class RsaSigner:
    """RSA2 scheme: base64 RSA-SHA256 signature over the canonical string."""

    scheme = SignatureScheme.RSA2

    def __init__(
        self,
        private_key: str | None = None,
        private_key_path: str | Path | None = None,
        charset: str = "utf-8",
    ):
        if not private_key and private_key_path is None:
            raise KeyMaterialError("RSA2 signing requires a private key or a .pem path")
        self._private_key = private_key
        self._private_key_path = private_key_path
        self._charset = charset

    def sign(self, params: Mapping[str, Any]) -> str:
        return self.sign_content(canonicalize(params))

    def sign_content(self, content: str) -> str:
        with load_private_key(self._private_key, self._private_key_path) as key:
            try:
                signature = key.sign(
                    content.encode(self._charset), padding.PKCS1v15(), hashes.SHA256()
                )
            except (ValueError, TypeError, UnicodeEncodeError) as exc:
                raise SignatureError("RSA2 signing failed") from exc
        return base64.b64encode(signature).decode("ascii")


class RsaVerifier:
    """Checks RSA2 signatures produced by the provider."""

    def __init__(
        self,
        public_key: str | None = None,
        public_key_path: str | Path | None = None,
        charset: str = "utf-8",
    ):
        if not public_key and public_key_path is None:
            raise KeyMaterialError("RSA2 verification requires the provider public key")
        self._public_key = public_key
        self._public_key_path = public_key_path
        self._charset = charset

    def verify_content(self, content: str, signature: str) -> bool:
        """Return whether `signature` is a valid signature of `content`."""
        try:
            raw_signature = base64.b64decode(signature, validate=True)
        except (binascii.Error, ValueError):
            logger.warning("Provider signature is not valid base64")
            return False
        with load_public_key(self._public_key, self._public_key_path) as key:
            try:
                key.verify(
                    raw_signature,
                    content.encode(self._charset),
                    padding.PKCS1v15(),
                    hashes.SHA256(),
                )
            except InvalidSignature:
                return False
            except (ValueError, TypeError, UnicodeEncodeError) as exc:
                raise SignatureError("RSA2 verification failed") from exc
        return True

    def verify_params(self, params: Mapping[str, Any]) -> bool:
        """Verify signed parameters such as callback or notify query strings.

        The signature travels in ``sign``; both ``sign`` and ``sign_type`` are
        excluded from the verified content.
        """
        signature = params.get(SIGN_FIELD)
        if not signature:
            return False
        return self.verify_content(canonicalize(params, verification=True), str(signature))
