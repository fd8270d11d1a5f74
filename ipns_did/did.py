"""Decentralized Identifier (DID) handling.

Format: did:ipns:<name>

The name is an IPNS name: usually a CIDv0/peer id such as
``QmTESTa321``, but DNSLink-style names are accepted as well.
- CIDv0: base58btc(0x12 0x20 + sha2-256 digest), no multibase prefix
"""

from dataclasses import dataclass

import base58

from ipns_did.errors import InvalidDIDError

DID_METHOD = "ipns"

DID_PREFIX = f"did:{DID_METHOD}:"

# sha2-256 multihash header (code 0x12, length 0x20)
SHA2_256_MULTIHASH = bytes([0x12, 0x20])

_FORBIDDEN = frozenset("#?/ \t\r\n")


@dataclass(frozen=True, slots=True)
class Did:
    """A parsed DID (did:ipns method).

    Attributes:
        name: The IPNS name the identifier is anchored to.
    """

    name: str

    def __post_init__(self) -> None:
        if not self.name:
            raise InvalidDIDError("name must not be empty")
        bad = _FORBIDDEN.intersection(self.name)
        if bad:
            raise InvalidDIDError(f"name contains forbidden characters {sorted(bad)!r}")

    @classmethod
    def from_name(cls, name: str) -> "Did":
        """Create a DID from a bare name or an already prefixed identifier."""
        if name.startswith(DID_PREFIX):
            return cls.parse(name)
        if name.startswith("did:"):
            raise InvalidDIDError(f"must start with '{DID_PREFIX}'")
        return cls(name=name)

    @classmethod
    def parse(cls, did_string: str) -> "Did":
        """Parse a did:ipns string.

        Args:
            did_string: A did:ipns formatted string.

        Returns:
            A Did instance.

        Raises:
            InvalidDIDError: If the format is invalid.
        """
        if not did_string.startswith(DID_PREFIX):
            raise InvalidDIDError(f"must start with '{DID_PREFIX}'")

        return cls(name=did_string[len(DID_PREFIX) :])

    @property
    def is_content_addressed(self) -> bool:
        """Whether the name decodes as a sha2-256 CIDv0."""
        try:
            decoded = base58.b58decode(self.name)
        except ValueError:
            return False
        return len(decoded) == 34 and decoded[:2] == SHA2_256_MULTIHASH

    def key_id(self, key_name: str) -> str:
        """Verification method id for a key of this DID."""
        return f"{self}#{key_name}"

    def __str__(self) -> str:
        return f"{DID_PREFIX}{self.name}"

    def __repr__(self) -> str:
        return f"Did({self})"
