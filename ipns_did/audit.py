"""Revision history reconstruction.

Walks the chain of ``previous`` links from a document version back to the
root of its chain, resolving each link through a :class:`Resolver`.
Resolution is the only await point; everything else is bookkeeping.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Dict, Optional, Protocol, Set

from ipns_did.document import DidDocument
from ipns_did.errors import CancelledError, CyclicChainError, IpnsDidError, ResolutionError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Resolution:
    """A resolved document together with the version id it was published under."""

    document: DidDocument
    version_id: str


class Resolver(Protocol):
    """Maps an identifier or version reference to a document version.

    Implementations raise :class:`ResolutionError` when the reference is
    unknown, times out or yields malformed data.
    """

    async def resolve(self, reference: str) -> Resolution:
        ...


async def _resolve_step(
    resolver: Resolver,
    reference: str,
    timeout: Optional[float],
    cancel_event: Optional[asyncio.Event],
) -> Resolution:
    lookup = asyncio.ensure_future(asyncio.wait_for(resolver.resolve(reference), timeout))
    if cancel_event is None:
        waiters = {lookup}
    else:
        waiters = {lookup, asyncio.ensure_future(cancel_event.wait())}

    try:
        await asyncio.wait(waiters, return_when=asyncio.FIRST_COMPLETED)
    finally:
        for waiter in waiters:
            if not waiter.done():
                waiter.cancel()

    if not lookup.done() or lookup.cancelled():
        raise CancelledError(f"resolution of {reference} cancelled")

    try:
        return lookup.result()
    except asyncio.TimeoutError as exc:
        raise ResolutionError(f"timed out resolving {reference}") from exc
    except IpnsDidError:
        raise
    except Exception as exc:
        raise ResolutionError(f"failed to resolve {reference}: {exc}") from exc


async def audit_trail(
    document: DidDocument,
    version_id: str,
    resolver: Resolver,
    *,
    timeout: Optional[float] = None,
    cancel_event: Optional[asyncio.Event] = None,
    max_depth: Optional[int] = None,
) -> Dict[str, str]:
    """
    Reconstruct the revision history of a document.

    Args:
        document: The most recent version to start from
        version_id: Version id ``document`` was published under
        resolver: Resolves ``previous`` references
        timeout: Seconds allowed for each resolution
        cancel_event: Set it to abort an in-flight resolution
        max_depth: Maximum number of versions to visit

    Returns:
        Mapping of ``updated`` timestamp to version id, most recent first

    Raises:
        ResolutionError: If a link cannot be resolved or is malformed
        CyclicChainError: If a link resolves to an already visited version
        CancelledError: If ``cancel_event`` is set during a resolution
    """
    revisions: Dict[str, str] = {}
    visited: Set[str] = set()
    current, current_version = document, version_id

    while True:
        if current_version in visited:
            raise CyclicChainError(current_version)
        visited.add(current_version)

        if max_depth is not None and len(visited) > max_depth:
            raise ResolutionError(f"revision chain of {document.id} exceeds {max_depth} versions")

        if current.updated is None:
            raise ResolutionError(
                f"version {current_version} of {document.id} has no updated timestamp"
            )

        if current.updated in revisions:
            logger.warning(
                "versions %s and %s of %s share timestamp %s",
                revisions[current.updated],
                current_version,
                document.id,
                current.updated,
            )
        else:
            revisions[current.updated] = current_version

        if not current.previous:
            return revisions

        if current.previous in visited:
            raise CyclicChainError(current.previous)

        logger.debug("resolving %s of %s", current.previous, document.id)
        resolution = await _resolve_step(resolver, current.previous, timeout, cancel_event)

        if not (
            isinstance(resolution, Resolution)
            and isinstance(resolution.document, DidDocument)
            and isinstance(resolution.version_id, str)
            and resolution.version_id
        ):
            raise ResolutionError(f"malformed resolution of {current.previous}")

        if resolution.document.id != document.id:
            raise ResolutionError(
                f"version {resolution.version_id} belongs to {resolution.document.id}, "
                f"not {document.id}"
            )
        current, current_version = resolution.document, resolution.version_id
