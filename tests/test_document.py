"""Tests for DID Document handling."""

from datetime import datetime, timedelta, timezone

import pytest

from ipns_did import (
    DidDocument,
    InvalidDIDError,
    Secp256k1Key,
    Service,
    ValidationError,
    VerificationMethod,
    timestamp,
)

TEST_DID = "did:ipns:QmTESTa321"


def method(key_name: str = "main") -> VerificationMethod:
    return VerificationMethod.for_key(TEST_DID, Secp256k1Key.generate().public_key_jwk, key_name)


class TestTimestamp:
    def test_format(self) -> None:
        """Timestamps have second precision and a Z suffix."""
        moment = datetime(2024, 3, 1, 12, 30, 45, 999999, tzinfo=timezone.utc)

        assert timestamp(moment) == "2024-03-01T12:30:45Z"

    def test_converts_to_utc(self) -> None:
        """Aware datetimes are converted to UTC."""
        moment = datetime(2024, 3, 1, 14, 0, 0, tzinfo=timezone(timedelta(hours=2)))

        assert timestamp(moment) == "2024-03-01T12:00:00Z"

    def test_now(self) -> None:
        """Default is the current time."""
        assert len(timestamp()) == 20
        assert timestamp().endswith("Z")


class TestDidDocument:
    def test_invalid_id(self) -> None:
        """Only did:ipns identifiers are accepted."""
        with pytest.raises(InvalidDIDError):
            DidDocument(id="did:web:example.com")

    def test_with_verification_method_replaces(self) -> None:
        """A method with an existing id replaces the old one in place."""
        first, second, replacement = method("main"), method("backup"), method("main")
        doc = (
            DidDocument(id=TEST_DID)
            .with_verification_method(first)
            .with_verification_method(second)
            .with_verification_method(replacement)
        )

        assert doc.verification_methods == (replacement, second)

    def test_without_verification_method_drops_references(self) -> None:
        """Removing a method also drops its references."""
        vm = method()
        doc = (
            DidDocument(id=TEST_DID)
            .with_verification_method(vm)
            .with_reference("authentication", vm.id)
            .with_reference("assertionMethod", vm.id)
            .without_verification_method(vm.id)
        )

        assert doc.verification_methods == ()
        assert doc.authentication == ()
        assert doc.assertion_method == ()

    def test_with_reference_set_semantics(self) -> None:
        """References are not duplicated."""
        vm = method()
        doc = DidDocument(id=TEST_DID).with_verification_method(vm)
        doc = doc.with_reference("authentication", vm.id).with_reference("authentication", vm.id)

        assert doc.authentication == (vm.id,)

    def test_with_reference_unknown_relationship(self) -> None:
        """Only authentication and assertionMethod are supported."""
        with pytest.raises(ValueError, match="unknown relationship"):
            DidDocument(id=TEST_DID).with_reference("keyAgreement", f"{TEST_DID}#main")

    def test_with_service_replaces(self) -> None:
        """A service with an existing id replaces the old one."""
        doc = (
            DidDocument(id=TEST_DID)
            .with_service(Service("hub", "Hub", "https://one.example"))
            .with_service(Service("hub", "Hub", "https://two.example"))
        )

        assert len(doc.services) == 1
        assert doc.service("hub").service_endpoint == "https://two.example"

    def test_without_service_absent(self) -> None:
        """Removing an absent service returns the same document."""
        doc = DidDocument(id=TEST_DID)

        assert doc.without_service("missing") is doc

    def test_immutable_builder(self) -> None:
        """Builder methods return new documents."""
        doc_one = DidDocument(id=TEST_DID)
        doc_two = doc_one.with_service(Service("hub", "Hub", "https://hub.example"))

        assert len(doc_one.services) == 0
        assert len(doc_two.services) == 1

    def test_validate_dangling_reference(self) -> None:
        """References to unknown methods fail validation."""
        doc = DidDocument(id=TEST_DID, authentication=(f"{TEST_DID}#main",))

        with pytest.raises(ValidationError, match="unknown method"):
            doc.validate()

    def test_validate_duplicates(self) -> None:
        """Duplicate ids fail validation."""
        vm = method()
        doc = DidDocument(id=TEST_DID, verification_methods=(vm, vm))

        with pytest.raises(ValidationError, match="duplicate verificationMethod"):
            doc.validate()

    def test_validate_ok(self) -> None:
        """A consistent document validates and returns itself."""
        vm = method()
        doc = DidDocument(
            id=TEST_DID,
            verification_methods=(vm,),
            authentication=(vm.id,),
            assertion_method=(vm.id,),
        )

        assert doc.validate() is doc
        assert doc.default_verification_method == vm

    def test_jwk_read_only(self) -> None:
        """Published key material cannot be edited in place."""
        vm = method()

        with pytest.raises(TypeError):
            vm.public_key_jwk["x"] = "00" * 32  # type: ignore[index]

    def test_derived_version_cannot_change_predecessor(self) -> None:
        """Versions share no mutable state with the version they came from."""
        jwk = dict(Secp256k1Key.generate().public_key_jwk)
        first = DidDocument(id=TEST_DID).with_verification_method(
            VerificationMethod.for_key(TEST_DID, jwk)
        )
        second = first.with_service(Service("hub", "Hub", "https://hub.example"))
        original_x = jwk["x"]

        jwk["x"] = "00" * 32
        with pytest.raises(TypeError):
            second.default_verification_method.public_key_jwk["x"] = "00" * 32  # type: ignore[index]

        assert first.default_verification_method.public_key_jwk["x"] == original_x
        assert second.default_verification_method.public_key_jwk["x"] == original_x

    def test_extensions_read_only(self) -> None:
        """Extension fields are frozen deeply."""
        aliases = ["https://example.com/me"]
        doc = DidDocument(id=TEST_DID, extensions={"alsoKnownAs": aliases})

        aliases.append("https://example.com/other")
        with pytest.raises(TypeError):
            doc.extensions["alsoKnownAs"] = []  # type: ignore[index]

        assert doc.to_dict()["alsoKnownAs"] == ["https://example.com/me"]

    def test_hashable(self) -> None:
        """Equal documents hash equally and can live in sets."""
        vm = method()
        doc = DidDocument(id=TEST_DID, verification_methods=(vm,), extensions={"note": {"a": [1]}})
        twin = DidDocument.from_dict(doc.to_dict())

        assert hash(doc) == hash(twin)
        assert len({doc, twin}) == 1
        assert hash(vm) == hash(twin.verification_methods[0])


class TestSerialization:
    def test_to_dict(self) -> None:
        """Document serializes to the camelCase JSON shape."""
        vm = method()
        doc = DidDocument(
            id=TEST_DID,
            created="2024-01-01T00:00:00Z",
            updated="2024-01-02T00:00:00Z",
            verification_methods=(vm,),
            authentication=(vm.id,),
            services=(Service("hub", "Hub", "https://hub.example"),),
            previous="QmPrevious",
        )

        result = doc.to_dict()

        assert result["@context"] == "https://www.w3.org/ns/did/v1"
        assert result["id"] == TEST_DID
        assert result["verificationMethod"][0]["publicKeyJwk"]["crv"] == "secp256k1"
        assert result["service"] == [
            {"id": "hub", "type": "Hub", "serviceEndpoint": "https://hub.example"}
        ]
        assert result["previous"] == "QmPrevious"
        assert "forward" not in result
        assert "deactivated" not in result

    def test_from_dict_preserves_extensions(self) -> None:
        """Unknown fields survive a round trip."""
        data = {
            "@context": ["https://www.w3.org/ns/did/v1"],
            "id": TEST_DID,
            "created": "2024-01-01T00:00:00Z",
            "alsoKnownAs": ["https://example.com/me"],
        }

        doc = DidDocument.from_dict(data)

        assert doc.extensions == {"alsoKnownAs": ("https://example.com/me",)}
        assert doc.to_dict()["alsoKnownAs"] == ["https://example.com/me"]
        assert doc.to_dict()["@context"] == ["https://www.w3.org/ns/did/v1"]

    def test_from_dict_rejects_bad_shape(self) -> None:
        """Known fields with the wrong type are rejected."""
        with pytest.raises(ValidationError, match="verificationMethod must be a list"):
            DidDocument.from_dict({"id": TEST_DID, "verificationMethod": {}})

        with pytest.raises(ValidationError, match="service.serviceEndpoint"):
            DidDocument.from_dict({"id": TEST_DID, "service": [{"id": "a", "type": "b"}]})

    def test_from_dict_equals_original(self) -> None:
        """Parsing the serialized form gives an equal document."""
        vm = method()
        doc = DidDocument(
            id=TEST_DID,
            created="2024-01-01T00:00:00Z",
            updated="2024-01-01T00:00:00Z",
            verification_methods=(vm,),
            assertion_method=(vm.id,),
            forward="did:ipns:forwarded-provider.local",
            forwarded="2024-01-01T00:00:00Z",
        )

        assert DidDocument.from_dict(doc.to_dict()) == doc

    def test_content_id(self) -> None:
        """Content ids are CIDv0-shaped and change with the content."""
        doc = DidDocument(id=TEST_DID, created="2024-01-01T00:00:00Z")
        changed = DidDocument(id=TEST_DID, created="2024-01-01T00:00:01Z")

        assert doc.content_id().startswith("Qm")
        assert len(doc.content_id()) == 46
        assert doc.content_id() == DidDocument(id=TEST_DID, created="2024-01-01T00:00:00Z").content_id()
        assert doc.content_id() != changed.content_id()

    def test_repr(self) -> None:
        """Repr shows activation state."""
        doc = DidDocument(id=TEST_DID)

        assert "active" in repr(doc)
        assert "deactivated" in repr(DidDocument(id=TEST_DID, deactivated="2024-01-01T00:00:00Z"))
