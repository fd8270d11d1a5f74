"""Error types for ipns-did.

Mismatched signatures are not errors: ``verify`` returns False for them.
Only structural problems and external failures raise.
"""


class IpnsDidError(Exception):
    """Base exception for ipns-did operations."""


class InvalidDIDError(IpnsDidError):
    """DID format is invalid."""

    def __init__(self, message: str) -> None:
        super().__init__(f"Invalid DID format: {message}")


class EntropyError(IpnsDidError):
    """The secure random source is unavailable."""

    def __init__(self, message: str) -> None:
        super().__init__(f"Entropy error: {message}")


class InvalidKeyError(IpnsDidError):
    """Private key is malformed or out of range."""

    def __init__(self, message: str) -> None:
        super().__init__(f"Invalid key: {message}")


class MalformedSignatureError(IpnsDidError):
    """Signature or public key is structurally invalid."""

    def __init__(self, message: str) -> None:
        super().__init__(f"Malformed signature: {message}")


class SerializationError(IpnsDidError):
    """Serialization or canonicalization failed."""

    def __init__(self, message: str) -> None:
        super().__init__(f"Serialization error: {message}")


class ValidationError(IpnsDidError):
    """Document validation failed."""

    def __init__(self, message: str) -> None:
        super().__init__(f"Validation error: {message}")


class ResolutionError(IpnsDidError):
    """The resolver could not produce a document version."""

    def __init__(self, message: str) -> None:
        super().__init__(f"Resolution error: {message}")


class CyclicChainError(IpnsDidError):
    """A chain of previous versions loops back on itself."""

    def __init__(self, version_id: str) -> None:
        self.version_id = version_id
        super().__init__(f"Cyclic revision chain: version {version_id} visited twice")


class CancelledError(IpnsDidError):
    """A resolution in progress was aborted by the caller."""

    def __init__(self, message: str = "Resolution cancelled") -> None:
        super().__init__(message)
