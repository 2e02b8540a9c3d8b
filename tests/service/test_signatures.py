"""Tests for request signature verification helpers."""

from __future__ import annotations

import base64
import hashlib
import json
from pathlib import Path
from types import SimpleNamespace
from typing import List

import pytest
from cryptography.hazmat.primitives.asymmetric import ed25519, rsa
from cryptography.hazmat.primitives.serialization import (
    Encoding,
    NoEncryption,
    PrivateFormat,
    PublicFormat,
)
from fastapi.testclient import TestClient
from http_message_signatures import HTTPMessageSigner, HTTPSignatureKeyResolver, algorithms

from ciconfig.config import ConfigError
from ciconfig.converters import Converters
from ciconfig.models import Environment, File
from ciconfig.orchestrator import Orchestrator
from ciconfig.providers import Provider, Providers
from ciconfig.service import Ed25519SignatureVerifier, InvalidSignature, create_app
from ciconfig.service.signatures import (
    load_public_key,
    parse_content_digest,
    verify_content_digest,
)


def _write_public_key(path: Path, private_key) -> Path:
    pem = private_key.public_key().public_bytes(Encoding.PEM, PublicFormat.SubjectPublicKeyInfo)
    path.write_bytes(pem)
    return path


def test_loads_ed25519_key(tmp_path: Path) -> None:
    path = _write_public_key(tmp_path / "key.pem", ed25519.Ed25519PrivateKey.generate())

    assert isinstance(load_public_key(path), ed25519.Ed25519PublicKey)
    assert isinstance(Ed25519SignatureVerifier.from_file(path), Ed25519SignatureVerifier)


def test_rejects_other_key_types(tmp_path: Path) -> None:
    private_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    path = _write_public_key(tmp_path / "rsa.pem", private_key)

    with pytest.raises(ConfigError, match="ed25519"):
        load_public_key(path)


def test_rejects_unreadable_and_garbage_keys(tmp_path: Path) -> None:
    with pytest.raises(ConfigError, match="Unable to read"):
        load_public_key(tmp_path / "missing.pem")

    garbage = tmp_path / "garbage.pem"
    garbage.write_text("not a key", encoding="utf-8")
    with pytest.raises(ConfigError, match="Unable to parse"):
        load_public_key(garbage)


def test_unsigned_request_is_rejected() -> None:
    verifier = Ed25519SignatureVerifier(ed25519.Ed25519PrivateKey.generate().public_key())

    with pytest.raises(InvalidSignature, match="signature"):
        verifier.verify(
            "POST", "http://ci.example.com/ciconfig", {"content-type": "application/json"}, b"{}"
        )


class _SigningKeyResolver(HTTPSignatureKeyResolver):
    def __init__(self, private_key: ed25519.Ed25519PrivateKey) -> None:
        self._pem = private_key.private_bytes(Encoding.PEM, PrivateFormat.PKCS8, NoEncryption())

    def resolve_private_key(self, key_id: str) -> bytes:
        return self._pem

    def resolve_public_key(self, key_id: str):  # pragma: no cover - signing only
        raise NotImplementedError


def _digest(body: bytes) -> str:
    return f"sha-256=:{base64.b64encode(hashlib.sha256(body).digest()).decode('ascii')}:"


def _signed_headers(
    private_key: ed25519.Ed25519PrivateKey,
    body: bytes,
    components: tuple,
    *,
    url: str = "http://testserver/ciconfig",
) -> dict:
    message = SimpleNamespace(
        method="POST",
        url=url,
        headers={"content-type": "application/json", "content-digest": _digest(body)},
    )
    signer = HTTPMessageSigner(
        signature_algorithm=algorithms.ED25519,
        key_resolver=_SigningKeyResolver(private_key),
    )
    signer.sign(message, key_id="ci-extensions", covered_component_ids=components)
    return dict(message.headers)


class _EmptyProvider(Provider):
    def get(self, env: Environment) -> List[File]:
        return []


@pytest.fixture
def signing_key() -> ed25519.Ed25519PrivateKey:
    return ed25519.Ed25519PrivateKey.generate()


@pytest.fixture
def signed_client(signing_key: ed25519.Ed25519PrivateKey) -> TestClient:
    orchestrator = Orchestrator(Providers([_EmptyProvider()]), Converters([]))
    verifier = Ed25519SignatureVerifier(signing_key.public_key())
    return TestClient(create_app(orchestrator, verifier=verifier))


BODY = json.dumps({"repo": {"name": "demo"}, "netrc": {"type": "github"}}).encode("utf-8")


def test_signature_over_target_and_digest_is_accepted(
    signed_client: TestClient, signing_key: ed25519.Ed25519PrivateKey
) -> None:
    headers = _signed_headers(signing_key, BODY, ("@method", "@target-uri", "content-digest"))

    response = signed_client.post("/ciconfig", content=BODY, headers=headers)

    assert response.status_code == 204


def test_signature_over_method_only_is_rejected(
    signed_client: TestClient, signing_key: ed25519.Ed25519PrivateKey
) -> None:
    headers = _signed_headers(
        signing_key, BODY, ("@method",), url="http://elsewhere.example.com/other"
    )

    response = signed_client.post("/ciconfig", content=BODY, headers=headers)

    assert response.status_code == 400
    assert response.json() == {"detail": "Invalid signature"}


def test_signature_without_content_digest_is_rejected(
    signed_client: TestClient, signing_key: ed25519.Ed25519PrivateKey
) -> None:
    headers = _signed_headers(signing_key, BODY, ("@method", "@target-uri"))

    response = signed_client.post("/ciconfig", content=BODY, headers=headers)

    assert response.status_code == 400


def test_body_not_matching_digest_is_rejected(
    signed_client: TestClient, signing_key: ed25519.Ed25519PrivateKey
) -> None:
    headers = _signed_headers(signing_key, BODY, ("@method", "@target-uri", "content-digest"))
    tampered = BODY.replace(b"demo", b"evil")

    response = signed_client.post("/ciconfig", content=tampered, headers=headers)

    assert response.status_code == 400


def test_signature_from_another_key_is_rejected(signed_client: TestClient) -> None:
    other = ed25519.Ed25519PrivateKey.generate()
    headers = _signed_headers(other, BODY, ("@method", "@target-uri", "content-digest"))

    response = signed_client.post("/ciconfig", content=BODY, headers=headers)

    assert response.status_code == 400


def test_content_digest_parsing() -> None:
    digests = parse_content_digest(f"{_digest(b'abc')}, sha-512=:{base64.b64encode(b'x').decode()}:")

    assert digests["sha-256"] == hashlib.sha256(b"abc").digest()
    assert digests["sha-512"] == b"x"

    verify_content_digest(_digest(b"abc"), b"abc")
    with pytest.raises(InvalidSignature, match="does not match"):
        verify_content_digest(_digest(b"abc"), b"abd")
    with pytest.raises(InvalidSignature, match="no supported algorithm"):
        verify_content_digest("md5=:AAAA:", b"abc")
    with pytest.raises(InvalidSignature, match="malformed"):
        parse_content_digest("sha-256=abc")
