"""HTTP message signature verification for incoming configuration requests."""

from __future__ import annotations

import base64
import hashlib
import hmac
from pathlib import Path
from types import SimpleNamespace
from typing import Dict, Iterable, Mapping, Protocol

from cryptography.exceptions import InvalidSignature as BadSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PublicKey
from cryptography.hazmat.primitives.serialization import (
    Encoding,
    PublicFormat,
    load_pem_public_key,
)
from http_message_signatures import HTTPMessageVerifier, HTTPSignatureKeyResolver, algorithms
from http_message_signatures.exceptions import HTTPMessageSignaturesException

from ..config import ConfigError

_REQUIRED_HEADERS = ("signature", "signature-input", "content-digest")
_TARGET_COMPONENTS = ("@request-target", "@target-uri")
_DIGEST_COMPONENT = "content-digest"
_DIGESTS = {"sha-256": hashlib.sha256, "sha-512": hashlib.sha512}


class InvalidSignature(RuntimeError):
    """Raised when a request is unsigned or its signature does not verify."""


class SignatureVerifier(Protocol):
    """Protocol implemented by request verifiers."""

    def verify(self, method: str, url: str, headers: Mapping[str, str], body: bytes) -> None:
        """Raise InvalidSignature unless the request carries a valid signature."""


def load_public_key(path: Path) -> Ed25519PublicKey:
    """Load a PEM encoded Ed25519 public key."""
    try:
        raw = path.read_bytes()
    except OSError as exc:
        raise ConfigError(f"Unable to read public key {path}: {exc}") from exc
    try:
        key = load_pem_public_key(raw)
    except ValueError as exc:
        raise ConfigError(f"Unable to parse public key {path}: {exc}") from exc
    if not isinstance(key, Ed25519PublicKey):
        raise ConfigError("public key is not of type ed25519")
    return key


class _StaticKeyResolver(HTTPSignatureKeyResolver):
    def __init__(self, pem: bytes) -> None:
        self._pem = pem

    def resolve_public_key(self, key_id: str) -> bytes:
        return self._pem

    def resolve_private_key(self, key_id: str):  # pragma: no cover - verification only
        raise NotImplementedError("private keys are not available to the verifier")


class Ed25519SignatureVerifier:
    """Verifies RFC 9421 signatures created by the CI server's Ed25519 key."""

    def __init__(self, public_key: Ed25519PublicKey) -> None:
        pem = public_key.public_bytes(Encoding.PEM, PublicFormat.SubjectPublicKeyInfo)
        self._verifier = HTTPMessageVerifier(
            signature_algorithm=algorithms.ED25519,
            key_resolver=_StaticKeyResolver(pem),
        )

    @classmethod
    def from_file(cls, path: Path) -> "Ed25519SignatureVerifier":
        return cls(load_public_key(path))

    def verify(self, method: str, url: str, headers: Mapping[str, str], body: bytes) -> None:
        missing = [name for name in _REQUIRED_HEADERS if name not in headers]
        if missing:
            raise InvalidSignature(f"missing headers: {', '.join(missing)}")
        message = SimpleNamespace(method=method, url=url, headers=headers)
        try:
            results = self._verifier.verify(message)
        except (HTTPMessageSignaturesException, BadSignature, KeyError, ValueError) as exc:
            raise InvalidSignature(str(exc)) from exc

        for result in results:
            covered = _component_names(result.covered_components)
            if not covered.intersection(_TARGET_COMPONENTS):
                raise InvalidSignature(f"signature {result.label} does not cover the request target")
            if _DIGEST_COMPONENT not in covered:
                raise InvalidSignature(f"signature {result.label} does not cover the content digest")
        verify_content_digest(headers[_DIGEST_COMPONENT], body)


def _component_names(components: Iterable[object]) -> set:
    # Keys are serialized component identifiers such as '"content-digest";sf'.
    return {str(component).split(";", 1)[0].strip('"') for component in components}


def parse_content_digest(value: str) -> Dict[str, bytes]:
    """Parse a ``Content-Digest`` header into ``{algorithm: digest}``."""
    digests: Dict[str, bytes] = {}
    for member in value.split(","):
        algorithm, sep, encoded = member.strip().partition("=")
        encoded = encoded.strip()
        if not sep or len(encoded) < 2 or encoded[0] != ":" or encoded[-1] != ":":
            raise InvalidSignature(f"malformed content digest: {value}")
        try:
            digests[algorithm.strip().lower()] = base64.b64decode(encoded[1:-1], validate=True)
        except ValueError as exc:
            raise InvalidSignature(f"malformed content digest: {value}") from exc
    return digests


def verify_content_digest(value: str, body: bytes) -> None:
    """Raise InvalidSignature unless a supported digest in ``value`` matches ``body``."""
    digests = parse_content_digest(value)
    checked = False
    for algorithm, expected in digests.items():
        hasher = _DIGESTS.get(algorithm)
        if hasher is None:
            continue
        checked = True
        if not hmac.compare_digest(hasher(body).digest(), expected):
            raise InvalidSignature(f"content digest {algorithm} does not match the body")
    if not checked:
        raise InvalidSignature("content digest uses no supported algorithm")


__all__ = [
    "Ed25519SignatureVerifier",
    "InvalidSignature",
    "SignatureVerifier",
    "load_public_key",
    "parse_content_digest",
    "verify_content_digest",
]
