"""HTTP service mode for ciconfig."""

from .app import create_app, run_service
from .signatures import Ed25519SignatureVerifier, InvalidSignature, SignatureVerifier

__all__ = [
    "Ed25519SignatureVerifier",
    "InvalidSignature",
    "SignatureVerifier",
    "create_app",
    "run_service",
]
