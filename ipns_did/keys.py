"""Key management for did:ipns identities.

Security:
- Keys use secp256k1 via the cryptography package (OpenSSL bindings)
- Random material comes from libsodium's randombytes via PyNaCl
- Debug representations only show public info, not secrets
"""

import base64
import hashlib
import string
from dataclasses import dataclass
from typing import Mapping, Self

import base58
import nacl.utils
from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.asymmetric.utils import (
    Prehashed,
    decode_dss_signature,
    encode_dss_signature,
)
from nacl.exceptions import CryptoError

from ipns_did.errors import EntropyError, InvalidKeyError, MalformedSignatureError

CURVE_NAME = "secp256k1"

# Order of the secp256k1 base point
CURVE_ORDER = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141

# Field elements and scalars are 32 bytes, 64 hex characters
COORDINATE_SIZE = 32

DIGEST_SIZE = 32

_HEX_DIGITS = frozenset(string.hexdigits)

_ENCODERS = {
    "hex": lambda raw: raw.hex(),
    "base58": lambda raw: base58.b58encode(raw).decode("ascii"),
    "base64": lambda raw: base64.b64encode(raw).decode("ascii"),
    "base64url": lambda raw: base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii"),
}

_ECDSA_PREHASHED = ec.ECDSA(Prehashed(hashes.SHA256()))


def generate_key(byte_size: int = 32, encoding: str = "hex") -> str:
    """Generate random key material.

    Args:
        byte_size: Number of random bytes.
        encoding: One of ``hex``, ``base58``, ``base64`` or ``base64url``.

    Raises:
        ValueError: If the size or encoding is not supported.
        EntropyError: If the random source is unavailable.
    """
    if byte_size < 1:
        raise ValueError(f"byte_size must be positive, got {byte_size}")
    try:
        encoder = _ENCODERS[encoding]
    except KeyError:
        raise ValueError(f"unsupported encoding {encoding!r}") from None

    try:
        raw = nacl.utils.random(byte_size)
    except (OSError, CryptoError) as exc:
        raise EntropyError(f"random source unavailable: {exc}") from exc

    return encoder(raw)


def hash_message(message: str | bytes) -> bytes:
    """SHA-256 digest of a message. Strings are UTF-8 encoded."""
    if isinstance(message, str):
        message = message.encode("utf-8")
    return hashlib.sha256(message).digest()


def generate_challenge() -> str:
    """Random 32-byte hex challenge for proof-of-control exchanges."""
    return generate_key()


def _coordinate_hex(value: int) -> str:
    return value.to_bytes(COORDINATE_SIZE, "big").hex()


def _hex_int(value: object) -> int:
    # int(..., 16) alone would also accept "0x", "_" and surrounding whitespace
    if not isinstance(value, str) or not value or not _HEX_DIGITS.issuperset(value):
        raise ValueError(f"not a hex string: {value!r}")
    return int(value, 16)


def _parse_scalar(private_key_hex: str) -> int:
    try:
        value = _hex_int(private_key_hex)
    except ValueError as exc:
        raise InvalidKeyError("private key must be a hex string") from exc
    if len(private_key_hex) > COORDINATE_SIZE * 2:
        raise InvalidKeyError(f"private key longer than {COORDINATE_SIZE} bytes")
    if not 1 <= value < CURVE_ORDER:
        raise InvalidKeyError("private key is not a valid secp256k1 scalar")
    return value


@dataclass(frozen=True, slots=True)
class Signature:
    """An ECDSA signature as its raw (r, s) components."""

    r: int
    s: int

    def __post_init__(self) -> None:
        for name, value in (("r", self.r), ("s", self.s)):
            if not isinstance(value, int) or not 1 <= value < CURVE_ORDER:
                raise MalformedSignatureError(f"{name} is out of range")

    @classmethod
    def from_hex(cls, value: str) -> Self:
        """Parse a 64-byte r || s hex string."""
        try:
            raw = bytes.fromhex(value)
        except (TypeError, ValueError) as exc:
            raise MalformedSignatureError("signature is not valid hex") from exc
        if len(raw) != 2 * COORDINATE_SIZE:
            raise MalformedSignatureError(
                f"expected {2 * COORDINATE_SIZE} bytes, got {len(raw)}"
            )
        return cls(
            r=int.from_bytes(raw[:COORDINATE_SIZE], "big"),
            s=int.from_bytes(raw[COORDINATE_SIZE:], "big"),
        )

    @classmethod
    def from_dict(cls, value: Mapping[str, str]) -> Self:
        try:
            r, s = _hex_int(value["r"]), _hex_int(value["s"])
        except (KeyError, TypeError, ValueError) as exc:
            raise MalformedSignatureError(f"invalid r/s mapping: {exc}") from exc
        return cls(r=r, s=s)

    def to_hex(self) -> str:
        return _coordinate_hex(self.r) + _coordinate_hex(self.s)

    def to_dict(self) -> dict[str, str]:
        return {"r": _coordinate_hex(self.r), "s": _coordinate_hex(self.s)}

    def to_der(self) -> bytes:
        return encode_dss_signature(self.r, self.s)


def public_key_from_jwk(jwk: Mapping[str, str]) -> ec.EllipticCurvePublicKey:
    """Load a secp256k1 public key from its hex-coordinate JWK.

    Raises:
        MalformedSignatureError: If the JWK is not a point on the curve.
    """
    if jwk.get("crv", CURVE_NAME) != CURVE_NAME:
        raise MalformedSignatureError(f"unsupported curve {jwk.get('crv')!r}")

    coordinates = []
    for name in ("x", "y"):
        value = jwk.get(name)
        if not isinstance(value, str) or len(value) != COORDINATE_SIZE * 2:
            raise MalformedSignatureError(
                f"{name} must be {COORDINATE_SIZE * 2} hex characters"
            )
        try:
            coordinates.append(_hex_int(value))
        except ValueError as exc:
            raise MalformedSignatureError(f"{name} is not valid hex") from exc

    try:
        return ec.EllipticCurvePublicNumbers(
            coordinates[0], coordinates[1], ec.SECP256K1()
        ).public_key()
    except ValueError as exc:
        raise MalformedSignatureError("point is not on the secp256k1 curve") from exc


def verify_digest(jwk: Mapping[str, str], signature: Signature, digest: bytes) -> bool:
    """Verify a signature over a 32-byte digest. False on mismatch."""
    public_key = public_key_from_jwk(jwk)
    try:
        public_key.verify(signature.to_der(), digest, _ECDSA_PREHASHED)
    except InvalidSignature:
        return False
    return True


class Secp256k1Key:
    """A secp256k1 signing key.

    Only fixed-size digests are signed; ``sign`` reduces a message to
    its SHA-256 digest first.
    """

    __slots__ = ("_private_key", "_x", "_y")

    def __init__(self, private_key: ec.EllipticCurvePrivateKey) -> None:
        self._private_key = private_key
        numbers = private_key.public_key().public_numbers()
        self._x = _coordinate_hex(numbers.x)
        self._y = _coordinate_hex(numbers.y)

    @classmethod
    def generate(cls) -> Self:
        """Generate a new random key."""
        return cls.from_hex(generate_key())

    @classmethod
    def from_hex(cls, private_key_hex: str) -> Self:
        """Create from a hex-encoded private scalar.

        Raises:
            InvalidKeyError: If the scalar is malformed or out of range.
        """
        scalar = _parse_scalar(private_key_hex)
        return cls(ec.derive_private_key(scalar, ec.SECP256K1()))

    @property
    def public_key(self) -> tuple[str, str]:
        """The (x, y) coordinates as fixed-width hex."""
        return self._x, self._y

    @property
    def public_key_jwk(self) -> dict[str, str]:
        return {"kty": "EC", "crv": CURVE_NAME, "x": self._x, "y": self._y}

    def sign_digest(self, digest: bytes) -> Signature:
        """Sign a 32-byte digest."""
        if len(digest) != DIGEST_SIZE:
            raise ValueError(f"digest must be {DIGEST_SIZE} bytes, got {len(digest)}")
        der = self._private_key.sign(digest, _ECDSA_PREHASHED)
        r, s = decode_dss_signature(der)
        return Signature(r=r, s=s)

    def sign(self, message: str | bytes) -> Signature:
        """Sign the SHA-256 digest of a message."""
        return self.sign_digest(hash_message(message))

    def to_hex(self) -> str:
        """Export the private scalar.

        Warning: Handle with care.
        """
        value = self._private_key.private_numbers().private_value
        return _coordinate_hex(value)

    def __repr__(self) -> str:
        return f"Secp256k1Key(pubkey={self._x[:8]}...)"


def derive_public_key(private_key_hex: str) -> tuple[str, str]:
    """Derive the (x, y) public coordinates of a private key.

    Raises:
        InvalidKeyError: If the private key is not a valid scalar.
    """
    return Secp256k1Key.from_hex(private_key_hex).public_key
