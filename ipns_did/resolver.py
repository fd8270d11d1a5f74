"""In-process resolver.

Stores published versions under their content ids and tracks the latest
version per DID, the way an IPNS record points a name at its newest CID.
Useful offline and in tests; network resolvers implement the same
:class:`ipns_did.audit.Resolver` protocol.
"""

import logging
from typing import Dict

from ipns_did.audit import Resolution
from ipns_did.did import DID_PREFIX
from ipns_did.document import DidDocument
from ipns_did.errors import ResolutionError

logger = logging.getLogger(__name__)


class InMemoryResolver:
    """A resolver backed by two dictionaries."""

    def __init__(self) -> None:
        self._versions: Dict[str, DidDocument] = {}
        self._names: Dict[str, str] = {}

    def publish(self, document: DidDocument) -> str:
        """Store a version and point its DID at it. Returns the version id."""
        version_id = document.content_id()
        self._versions[version_id] = document
        self._names[document.id] = version_id
        logger.debug("published %s as %s", document.id, version_id)
        return version_id

    def store(self, version_id: str, document: DidDocument) -> None:
        """Store a version under an explicit id without moving the name."""
        self._versions[version_id] = document

    async def resolve(self, reference: str) -> Resolution:
        """Resolve a version id, or a DID to its latest published version."""
        if reference.startswith(DID_PREFIX):
            version_id = self._names.get(reference.split("#", 1)[0])
            if version_id is None:
                raise ResolutionError(f"{reference} has no published version")
        else:
            version_id = reference

        document = self._versions.get(version_id)
        if document is None:
            raise ResolutionError(f"version {version_id} not found")
        return Resolution(document=document, version_id=version_id)

    def __len__(self) -> int:
        return len(self._versions)
