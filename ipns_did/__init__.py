"""did:ipns toolkit - Python SDK.

Verifiable identity documents anchored to IPNS names, with secp256k1
keys, document mutations and revision history auditing.

Example:
    >>> from ipns_did import create, generate_key
    >>> doc = create("QmTESTa321", generate_key())
    >>> print(doc.id)
    did:ipns:QmTESTa321
"""

from ipns_did.audit import Resolution, Resolver, audit_trail
from ipns_did.did import DID_METHOD, Did
from ipns_did.document import (
    DEFAULT_KEY_NAME,
    VERIFICATION_METHOD_TYPE,
    DidDocument,
    Service,
    VerificationMethod,
    timestamp,
)
from ipns_did.errors import (
    CancelledError,
    CyclicChainError,
    EntropyError,
    InvalidDIDError,
    InvalidKeyError,
    IpnsDidError,
    MalformedSignatureError,
    ResolutionError,
    SerializationError,
    ValidationError,
)
from ipns_did.keys import (
    Secp256k1Key,
    Signature,
    derive_public_key,
    generate_challenge,
    generate_key,
)
from ipns_did.kit import IpnsDidKit
from ipns_did.operations import (
    create,
    deactivate,
    forward,
    modify_service_endpoint,
    parse_document,
    remove_service_endpoint,
    rotate,
)
from ipns_did.resolver import InMemoryResolver
from ipns_did.signing import (
    canonicalize,
    hash_canonical,
    hash_message,
    sign,
    sign_dict,
    verify,
    verify_dict,
)

__version__ = "0.1.0"

__all__ = [
    # Core
    "DID_METHOD",
    "Did",
    "IpnsDidKit",
    # Keys
    "Secp256k1Key",
    "Signature",
    "derive_public_key",
    "generate_challenge",
    "generate_key",
    # Document
    "DEFAULT_KEY_NAME",
    "VERIFICATION_METHOD_TYPE",
    "DidDocument",
    "Service",
    "VerificationMethod",
    "timestamp",
    # Operations
    "create",
    "deactivate",
    "forward",
    "modify_service_endpoint",
    "parse_document",
    "remove_service_endpoint",
    "rotate",
    # Audit
    "InMemoryResolver",
    "Resolution",
    "Resolver",
    "audit_trail",
    # Signing
    "canonicalize",
    "hash_canonical",
    "hash_message",
    "sign",
    "sign_dict",
    "verify",
    "verify_dict",
    # Errors
    "CancelledError",
    "CyclicChainError",
    "EntropyError",
    "InvalidDIDError",
    "InvalidKeyError",
    "IpnsDidError",
    "MalformedSignatureError",
    "ResolutionError",
    "SerializationError",
    "ValidationError",
]
