"""Message hashing, signing and verification.

Messages are never signed directly: they are reduced to a SHA-256
digest first and the digest is signed with ECDSA over secp256k1.

Structured payloads use the RFC 8785 JSON Canonicalization Scheme for
deterministic serialization, so signatures over documents are
verifiable across implementations.
"""

from typing import Mapping

import canonicaljson

from ipns_did.errors import MalformedSignatureError, SerializationError
from ipns_did.keys import Secp256k1Key, Signature, hash_message, verify_digest

SignatureLike = Signature | Mapping[str, str] | str


def canonicalize(value: dict) -> bytes:
    """Canonicalize a dict using JCS (RFC 8785).

    Returns deterministic bytes suitable for signing.
    """
    try:
        return canonicaljson.encode_canonical_json(value)
    except Exception as exc:
        raise SerializationError(f"JCS canonicalization failed: {exc}") from exc


def hash_canonical(value: dict) -> bytes:
    """SHA-256 hash of canonical JSON."""
    return hash_message(canonicalize(value))


def coerce_signature(signature: SignatureLike) -> Signature:
    """Accept a Signature, an {"r", "s"} mapping or an r || s hex string."""
    if isinstance(signature, Signature):
        return signature
    if isinstance(signature, str):
        return Signature.from_hex(signature)
    if isinstance(signature, Mapping):
        return Signature.from_dict(signature)
    raise MalformedSignatureError(f"unsupported signature type {type(signature).__name__}")


def sign(private_key_hex: str, message: str | bytes) -> Signature:
    """Sign the SHA-256 digest of a message.

    Raises:
        InvalidKeyError: If the private key is malformed.
    """
    return Secp256k1Key.from_hex(private_key_hex).sign(message)


def verify(
    public_key_jwk: Mapping[str, str],
    signature: SignatureLike,
    message: str | bytes,
) -> bool:
    """Verify a signature over a message.

    Returns:
        True if valid, False if the signature does not match.

    Raises:
        MalformedSignatureError: If the key or signature is structurally invalid.
    """
    if not isinstance(public_key_jwk, Mapping):
        raise MalformedSignatureError("public key must be a JWK mapping")
    return verify_digest(public_key_jwk, coerce_signature(signature), hash_message(message))


def sign_dict(value: dict, private_key_hex: str) -> str:
    """Sign a dict using JCS canonicalization.

    Returns the hex-encoded r || s signature.
    """
    return sign(private_key_hex, canonicalize(value)).to_hex()


def verify_dict(value: dict, signature_hex: str, public_key_jwk: Mapping[str, str]) -> bool:
    """Verify a hex signature on a dict.

    Args:
        value: The original dict.
        signature_hex: Hex-encoded r || s signature.
        public_key_jwk: secp256k1 JWK with hex coordinates.

    Returns:
        True if valid, False otherwise.
    """
    return verify(public_key_jwk, signature_hex, canonicalize(value))
