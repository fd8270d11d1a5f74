"""
DID Document handling for did:ipns identities.

A DID Document describes an identity, including:
- Verification methods (public keys)
- Service endpoints
- Authentication and assertion references
- Chain links to the previous version and to a forwarding target

Documents are immutable values: every helper returns a new document.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple

import base58

from ipns_did.did import SHA2_256_MULTIHASH, Did
from ipns_did.errors import ValidationError
from ipns_did.signing import hash_canonical

DID_CONTEXT = "https://www.w3.org/ns/did/v1"

DEFAULT_KEY_NAME = "main"

VERIFICATION_METHOD_TYPE = "JsonWebKey2020"

AUTHENTICATION = "authentication"
ASSERTION_METHOD = "assertionMethod"
RELATIONSHIPS = (AUTHENTICATION, ASSERTION_METHOD)

TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%SZ"

_KNOWN_FIELDS = frozenset(
    {
        "@context",
        "id",
        "created",
        "updated",
        "verificationMethod",
        "authentication",
        "assertionMethod",
        "service",
        "previous",
        "forward",
        "forwarded",
        "deactivated",
    }
)


def timestamp(moment: Optional[datetime] = None) -> str:
    """Format a moment (default: now) as a second-precision UTC timestamp."""
    if moment is None:
        moment = datetime.now(timezone.utc)
    elif moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc)
    return moment.strftime(TIMESTAMP_FORMAT)


def _require_str(data: Mapping[str, Any], key: str, where: str) -> str:
    value = data.get(key)
    if not isinstance(value, str):
        raise ValidationError(f"{where}.{key} must be a string")
    return value


def _optional_str(data: Mapping[str, Any], key: str) -> Optional[str]:
    value = data.get(key)
    if value is not None and not isinstance(value, str):
        raise ValidationError(f"{key} must be a string")
    return value


def _list_of(data: Mapping[str, Any], key: str) -> list:
    value = data.get(key, [])
    if not isinstance(value, list):
        raise ValidationError(f"{key} must be a list")
    return value


def _freeze(value: Any) -> Any:
    """Read-only deep copy: mappings become proxies, lists become tuples."""
    if isinstance(value, Mapping):
        return MappingProxyType({k: _freeze(v) for k, v in value.items()})
    if isinstance(value, (list, tuple)):
        return tuple(_freeze(v) for v in value)
    return value


def _thaw(value: Any) -> Any:
    """Inverse of :func:`_freeze`, producing plain JSON containers."""
    if isinstance(value, Mapping):
        return {k: _thaw(v) for k, v in value.items()}
    if isinstance(value, tuple):
        return [_thaw(v) for v in value]
    return value


def _upsert(entries: Iterable[Any], entry: Any) -> Tuple[Any, ...]:
    """Replace the entry sharing ``entry.id`` in place, append otherwise."""
    result = []
    replaced = False
    for existing in entries:
        if existing.id == entry.id:
            if not replaced:
                result.append(entry)
                replaced = True
        else:
            result.append(existing)
    if not replaced:
        result.append(entry)
    return tuple(result)


@dataclass(frozen=True)
class VerificationMethod:
    """A verification method (public key) in a DID Document."""

    id: str
    type: str
    controller: str
    public_key_jwk: Mapping[str, str]

    def __post_init__(self) -> None:
        object.__setattr__(self, "public_key_jwk", _freeze(self.public_key_jwk))

    def __hash__(self) -> int:
        return hash(hash_canonical(self.to_dict()))

    @classmethod
    def for_key(
        cls,
        controller: str,
        public_key_jwk: Mapping[str, str],
        key_name: str = DEFAULT_KEY_NAME,
    ) -> VerificationMethod:
        return cls(
            id=f"{controller}#{key_name}",
            type=VERIFICATION_METHOD_TYPE,
            controller=controller,
            public_key_jwk=public_key_jwk,
        )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> VerificationMethod:
        if not isinstance(data, Mapping):
            raise ValidationError("verificationMethod entries must be objects")
        jwk = data.get("publicKeyJwk")
        if not isinstance(jwk, Mapping):
            raise ValidationError("verificationMethod.publicKeyJwk must be an object")
        return cls(
            id=_require_str(data, "id", "verificationMethod"),
            type=_require_str(data, "type", "verificationMethod"),
            controller=_require_str(data, "controller", "verificationMethod"),
            public_key_jwk=jwk,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "controller": self.controller,
            "publicKeyJwk": _thaw(self.public_key_jwk),
        }


@dataclass(frozen=True)
class Service:
    """A service endpoint in a DID Document."""

    id: str
    type: str
    service_endpoint: str

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Service:
        if not isinstance(data, Mapping):
            raise ValidationError("service entries must be objects")
        return cls(
            id=_require_str(data, "id", "service"),
            type=_require_str(data, "type", "service"),
            service_endpoint=_require_str(data, "serviceEndpoint", "service"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "serviceEndpoint": self.service_endpoint,
        }


@dataclass(frozen=True)
class DidDocument:
    """
    A DID Document anchored to an IPNS name.

    ``previous`` holds the version id of the prior revision; a document
    without it is the root of its revision chain. Fields this model does
    not know are kept verbatim in ``extensions``.

    Example:
        >>> doc = DidDocument(id="did:ipns:QmTESTa321", created=timestamp())
        >>> doc = doc.with_service(Service("hub", "Hub", "https://hub.example"))
    """

    id: str
    created: Optional[str] = None
    updated: Optional[str] = None
    verification_methods: Tuple[VerificationMethod, ...] = ()
    authentication: Tuple[str, ...] = ()
    assertion_method: Tuple[str, ...] = ()
    services: Tuple[Service, ...] = ()
    previous: Optional[str] = None
    forward: Optional[str] = None
    forwarded: Optional[str] = None
    deactivated: Optional[str] = None
    context: Any = DID_CONTEXT
    extensions: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        Did.parse(self.id)
        object.__setattr__(self, "context", _freeze(self.context))
        object.__setattr__(self, "extensions", _freeze(self.extensions))

    def __hash__(self) -> int:
        return hash(self.content_id())

    @property
    def did(self) -> Did:
        return Did.parse(self.id)

    @property
    def is_deactivated(self) -> bool:
        return self.deactivated is not None

    def key_id(self, key_name: str = DEFAULT_KEY_NAME) -> str:
        return f"{self.id}#{key_name}"

    def verification_method(self, method_id: str) -> Optional[VerificationMethod]:
        for method in self.verification_methods:
            if method.id == method_id:
                return method
        return None

    @property
    def default_verification_method(self) -> Optional[VerificationMethod]:
        return self.verification_method(self.key_id())

    def with_verification_method(self, method: VerificationMethod) -> DidDocument:
        """Add a verification method, replacing one with the same id."""
        return replace(
            self, verification_methods=_upsert(self.verification_methods, method)
        )

    def without_verification_method(self, method_id: str) -> DidDocument:
        """Remove a verification method and every reference to it."""
        return replace(
            self,
            verification_methods=tuple(
                m for m in self.verification_methods if m.id != method_id
            ),
            authentication=tuple(r for r in self.authentication if r != method_id),
            assertion_method=tuple(r for r in self.assertion_method if r != method_id),
        )

    def with_reference(self, relationship: str, method_id: str) -> DidDocument:
        """Reference a verification method from a relationship (set semantics)."""
        if relationship == AUTHENTICATION:
            current = self.authentication
        elif relationship == ASSERTION_METHOD:
            current = self.assertion_method
        else:
            raise ValueError(f"unknown relationship {relationship!r}")

        if method_id in current:
            return self

        updated = (*current, method_id)
        if relationship == AUTHENTICATION:
            return replace(self, authentication=updated)
        return replace(self, assertion_method=updated)

    def service(self, service_id: str) -> Optional[Service]:
        for entry in self.services:
            if entry.id == service_id:
                return entry
        return None

    def with_service(self, service: Service) -> DidDocument:
        """Add a service endpoint, replacing one with the same id."""
        return replace(self, services=_upsert(self.services, service))

    def without_service(self, service_id: str) -> DidDocument:
        """Remove a service endpoint. Returns self when it is absent."""
        if self.service(service_id) is None:
            return self
        return replace(
            self, services=tuple(s for s in self.services if s.id != service_id)
        )

    def validate(self) -> DidDocument:
        """
        Check the uniqueness and reference invariants.

        Returns:
            The document itself, for chaining

        Raises:
            ValidationError: On duplicate ids or dangling references
        """
        method_ids = [m.id for m in self.verification_methods]
        if len(set(method_ids)) != len(method_ids):
            raise ValidationError("duplicate verificationMethod id")

        service_ids = [s.id for s in self.services]
        if len(set(service_ids)) != len(service_ids):
            raise ValidationError("duplicate service id")

        known = set(method_ids)
        for relationship, refs in (
            (AUTHENTICATION, self.authentication),
            (ASSERTION_METHOD, self.assertion_method),
        ):
            for ref in refs:
                if ref not in known:
                    raise ValidationError(f"{relationship} references unknown method {ref}")

        return self

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert to a JSON-serializable dictionary.

        Returns:
            DID Document as a dictionary, absent optionals omitted
        """
        doc: Dict[str, Any] = {"@context": _thaw(self.context), "id": self.id}

        if self.created:
            doc["created"] = self.created

        if self.updated:
            doc["updated"] = self.updated

        doc["verificationMethod"] = [m.to_dict() for m in self.verification_methods]
        doc["authentication"] = list(self.authentication)
        doc["assertionMethod"] = list(self.assertion_method)

        if self.services:
            doc["service"] = [s.to_dict() for s in self.services]

        for key, value in (
            ("previous", self.previous),
            ("forward", self.forward),
            ("forwarded", self.forwarded),
            ("deactivated", self.deactivated),
        ):
            if value is not None:
                doc[key] = value

        for key, value in self.extensions.items():
            doc.setdefault(key, _thaw(value))

        return doc

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> DidDocument:
        """
        Build a document from its JSON form.

        Raises:
            ValidationError: If a known field has the wrong shape
            InvalidDIDError: If the id is not a did:ipns identifier
        """
        if not isinstance(data, Mapping):
            raise ValidationError("document must be an object")

        references = {}
        for relationship in RELATIONSHIPS:
            refs = _list_of(data, relationship)
            if not all(isinstance(ref, str) for ref in refs):
                raise ValidationError(f"{relationship} entries must be strings")
            references[relationship] = tuple(refs)

        return cls(
            id=_require_str(data, "id", "document"),
            created=_optional_str(data, "created"),
            updated=_optional_str(data, "updated"),
            verification_methods=tuple(
                VerificationMethod.from_dict(m) for m in _list_of(data, "verificationMethod")
            ),
            authentication=references[AUTHENTICATION],
            assertion_method=references[ASSERTION_METHOD],
            services=tuple(Service.from_dict(s) for s in _list_of(data, "service")),
            previous=_optional_str(data, "previous"),
            forward=_optional_str(data, "forward"),
            forwarded=_optional_str(data, "forwarded"),
            deactivated=_optional_str(data, "deactivated"),
            context=data.get("@context", DID_CONTEXT),
            extensions={k: v for k, v in data.items() if k not in _KNOWN_FIELDS},
        )

    def content_id(self) -> str:
        """CIDv0-style identifier of this exact version."""
        digest = hash_canonical(self.to_dict())
        return base58.b58encode(SHA2_256_MULTIHASH + digest).decode("ascii")

    def __repr__(self) -> str:
        state = "deactivated" if self.is_deactivated else "active"
        return f"DidDocument({self.id}, updated={self.updated}, {state})"
