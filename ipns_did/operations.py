"""Document mutations.

Each operation takes a document version plus parameters and returns the
next version. Nothing here performs I/O: persisting or publishing the
returned version is the caller's job.
"""

import logging
from dataclasses import replace
from typing import Any, Mapping, Optional

from ipns_did.did import Did
from ipns_did.document import (
    ASSERTION_METHOD,
    AUTHENTICATION,
    DEFAULT_KEY_NAME,
    DidDocument,
    Service,
    VerificationMethod,
    timestamp,
)
from ipns_did.errors import ValidationError
from ipns_did.keys import Secp256k1Key

logger = logging.getLogger(__name__)


def _stamp(document: DidDocument, now: Optional[str]) -> str:
    """Mutation timestamp; ``updated`` never moves backwards."""
    moment = now or timestamp()
    if document.updated and document.updated > moment:
        return document.updated
    return moment


def _check_active(document: DidDocument, operation: str) -> None:
    if document.is_deactivated:
        logger.warning(
            "%s applied to deactivated document %s (deactivated %s)",
            operation,
            document.id,
            document.deactivated,
        )


def create(
    name: str,
    private_key_hex: Optional[str] = None,
    previous: Optional[str] = None,
    seed: Optional[DidDocument] = None,
    *,
    key_name: str = DEFAULT_KEY_NAME,
    now: Optional[str] = None,
) -> DidDocument:
    """
    Create a document, or the next version of ``seed``.

    Args:
        name: IPNS name, with or without the ``did:ipns:`` prefix
        private_key_hex: Key to install in the default verification slot
        previous: Version id of the prior revision
        seed: Existing document to build on instead of a fresh one
        key_name: Fragment naming the default verification method
        now: Timestamp to use instead of the current time

    Returns:
        The new document version

    Raises:
        InvalidDIDError: If the name cannot form a DID
        InvalidKeyError: If the private key is malformed
    """
    did = str(Did.from_name(name))

    if seed is None:
        created = now or timestamp()
        document = DidDocument(id=did, created=created, updated=created)
    else:
        if seed.id != did:
            raise ValidationError(f"seed document {seed.id} does not belong to {did}")
        document = replace(seed, updated=_stamp(seed, now))

    if private_key_hex is not None:
        key = Secp256k1Key.from_hex(private_key_hex)
        method = VerificationMethod.for_key(did, key.public_key_jwk, key_name)
        document = (
            document.with_verification_method(method)
            .with_reference(AUTHENTICATION, method.id)
            .with_reference(ASSERTION_METHOD, method.id)
        )

    if previous:
        document = replace(document, previous=previous)

    logger.debug("created version of %s (previous=%s)", did, previous)
    return document


def rotate(
    document: DidDocument,
    version_id: str,
    private_key_hex: str,
    *,
    key_name: str = DEFAULT_KEY_NAME,
    now: Optional[str] = None,
) -> DidDocument:
    """
    Replace the default verification method with a new key.

    The old method and its authentication/assertion references are
    dropped; the key itself is not revoked anywhere else.

    Args:
        document: Current version
        version_id: Version id the current version was published under
        private_key_hex: The new key
    """
    _check_active(document, "rotate")
    stripped = document.without_verification_method(document.key_id(key_name))
    logger.debug("rotating %s away from version %s", document.id, version_id)
    return create(
        document.id,
        private_key_hex,
        version_id,
        stripped,
        key_name=key_name,
        now=now,
    )


def modify_service_endpoint(
    document: DidDocument,
    service_id: str,
    service_type: str,
    endpoint: str,
    *,
    now: Optional[str] = None,
) -> DidDocument:
    """Add or replace the service endpoint ``service_id``."""
    _check_active(document, "modify_service_endpoint")
    updated = document.with_service(Service(service_id, service_type, endpoint))
    return replace(updated, updated=_stamp(document, now))


def remove_service_endpoint(
    document: DidDocument,
    service_id: str,
    *,
    now: Optional[str] = None,
) -> DidDocument:
    """Remove the service endpoint ``service_id``; unchanged when absent."""
    stripped = document.without_service(service_id)
    if stripped is document:
        return document
    _check_active(document, "remove_service_endpoint")
    return replace(stripped, updated=_stamp(document, now))


def forward(
    document: DidDocument,
    destination: str,
    *,
    now: Optional[str] = None,
) -> DidDocument:
    """
    Redirect the identity to ``destination``.

    The destination is not resolved here; whether it names a live
    identity is decided at resolution time.
    """
    _check_active(document, "forward")
    moment = _stamp(document, now)
    return replace(document, forward=destination, forwarded=moment, updated=moment)


def deactivate(
    document: DidDocument,
    deactivated: Optional[str] = None,
    *,
    now: Optional[str] = None,
) -> DidDocument:
    """Mark the document terminal. Re-deactivating overwrites the timestamp."""
    _check_active(document, "deactivate")
    moment = deactivated or now or timestamp()
    return replace(document, deactivated=moment, updated=_stamp(document, moment))


def parse_document(name: str, contents: Mapping[str, Any]) -> DidDocument:
    """
    Load a document for ``did:ipns:<name>`` from its JSON form.

    Raises:
        ValidationError: If the contents are malformed or belong to another DID
    """
    did = str(Did.from_name(name))
    data = dict(contents)
    data.setdefault("id", did)
    document = DidDocument.from_dict(data)
    if document.id != did:
        raise ValidationError(f"document id {document.id} does not match {did}")
    return document
