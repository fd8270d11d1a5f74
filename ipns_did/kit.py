"""One-stop toolkit object bundling a resolver with the document operations."""

from typing import Any, Mapping, Optional

from ipns_did import operations
from ipns_did.audit import Resolution, Resolver, audit_trail
from ipns_did.document import DEFAULT_KEY_NAME, DidDocument
from ipns_did.keys import Signature, generate_challenge, generate_key
from ipns_did.signing import SignatureLike, sign, verify


class IpnsDidKit:
    """
    Entry point for holders and verifiers of did:ipns identities.

    Example:
        >>> kit = IpnsDidKit(InMemoryResolver())
        >>> key = kit.generate_random_key()
        >>> doc = kit.create("QmTESTa321", key)
        >>> kit.verify_signature(
        ...     doc.default_verification_method.public_key_jwk,
        ...     kit.sign(key, "hello"),
        ...     "hello",
        ... )
        True
    """

    def __init__(
        self,
        resolver: Resolver,
        *,
        key_name: str = DEFAULT_KEY_NAME,
        audit_timeout: Optional[float] = None,
    ) -> None:
        self._resolver = resolver
        self._key_name = key_name
        self._audit_timeout = audit_timeout

    @property
    def resolver(self) -> Resolver:
        return self._resolver

    def generate_random_key(self, byte_size: int = 32, encoding: str = "hex") -> str:
        return generate_key(byte_size, encoding)

    def generate_challenge(self) -> str:
        return generate_challenge()

    def create(
        self,
        name: str,
        private_key_hex: Optional[str] = None,
        previous: Optional[str] = None,
        seed: Optional[DidDocument] = None,
        *,
        now: Optional[str] = None,
    ) -> DidDocument:
        return operations.create(
            name, private_key_hex, previous, seed, key_name=self._key_name, now=now
        )

    def sign(self, private_key_hex: str, message: str | bytes) -> Signature:
        return sign(private_key_hex, message)

    def verify_signature(
        self,
        public_key_jwk: Mapping[str, str],
        signature: SignatureLike,
        message: str | bytes,
    ) -> bool:
        return verify(public_key_jwk, signature, message)

    async def resolve(self, reference: str) -> Resolution:
        return await self._resolver.resolve(reference)

    async def audit(self, document: DidDocument, version_id: str, **kwargs: Any) -> dict:
        """Revision map of ``document``; see :func:`ipns_did.audit.audit_trail`."""
        kwargs.setdefault("timeout", self._audit_timeout)
        return await audit_trail(document, version_id, self._resolver, **kwargs)

    def rotate(
        self,
        document: DidDocument,
        version_id: str,
        private_key_hex: str,
        *,
        now: Optional[str] = None,
    ) -> DidDocument:
        return operations.rotate(
            document, version_id, private_key_hex, key_name=self._key_name, now=now
        )

    def modify_service_endpoint(
        self,
        document: DidDocument,
        service_id: str,
        service_type: str,
        endpoint: str,
        *,
        now: Optional[str] = None,
    ) -> DidDocument:
        return operations.modify_service_endpoint(
            document, service_id, service_type, endpoint, now=now
        )

    def remove_service_endpoint(
        self, document: DidDocument, service_id: str, *, now: Optional[str] = None
    ) -> DidDocument:
        return operations.remove_service_endpoint(document, service_id, now=now)

    def forward(
        self, document: DidDocument, destination: str, *, now: Optional[str] = None
    ) -> DidDocument:
        return operations.forward(document, destination, now=now)

    def deactivate(
        self,
        document: DidDocument,
        deactivated: Optional[str] = None,
        *,
        now: Optional[str] = None,
    ) -> DidDocument:
        return operations.deactivate(document, deactivated, now=now)

    def parse_document(self, name: str, contents: Mapping[str, Any]) -> DidDocument:
        return operations.parse_document(name, contents)

    def __repr__(self) -> str:
        return f"IpnsDidKit(resolver={type(self._resolver).__name__})"
