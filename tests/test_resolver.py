"""
Tests for entity resolution and role normalization.

Validates:
- Literal addresses pass through checksummed; malformed ones are rejected
- App identifiers with labels and indexes
- NotFound for unknown labels and out-of-range indexes
- Role names are hashed, role ids kept, near-miss ids rejected
"""

from __future__ import annotations

import pytest
from eth_utils import encode_hex, keccak

from acl_composer.errors import ErrorKind, InvalidArgumentError, NotFoundError
from acl_composer.organization.resolver import parse_entity
from acl_composer.organization.roles import normalize_role
from acl_composer.organization.schema import App, LabeledEntity, LiteralEntity
from fixtures import ACL, ALICE, VOTING, VOTING_COUNCIL


class TestParseEntity:
    def test_address_is_literal(self):
        assert parse_entity(ALICE) == LiteralEntity(address=ALICE)

    def test_plain_name(self):
        assert parse_entity("voting") == LabeledEntity(name="voting")

    def test_name_label_and_index(self):
        entity = parse_entity("voting.council:1")
        assert entity == LabeledEntity(name="voting", label="council", index=1)
        assert str(entity) == "voting.council:1"

    def test_invalid_identifier(self):
        with pytest.raises(InvalidArgumentError):
            parse_entity("Voting App!")


class TestEntityResolver:
    def test_literal_address_passes_through(self, resolver):
        assert resolver.resolve(ALICE.lower()) == ALICE

    def test_malformed_address(self, resolver):
        with pytest.raises(InvalidArgumentError) as exc_info:
            resolver.resolve("0x1234")
        assert exc_info.value.kind == ErrorKind.INVALID_ARGUMENT

    def test_resolve_app_by_name(self, resolver):
        app = resolver.resolve("voting")
        assert isinstance(app, App)
        assert app.address == VOTING

    def test_resolve_second_instance(self, resolver):
        assert resolver.resolve_address("voting:1") == VOTING_COUNCIL

    def test_resolve_by_label(self, resolver):
        assert resolver.resolve_address("voting.council") == VOTING_COUNCIL

    def test_unknown_app(self, resolver):
        with pytest.raises(NotFoundError):
            resolver.resolve("agent")

    def test_index_out_of_range(self, resolver):
        with pytest.raises(NotFoundError):
            resolver.resolve("voting:2")

    def test_resolve_app_from_address(self, resolver):
        assert resolver.resolve_app(VOTING).name == "voting"

    def test_resolve_app_rejects_foreign_address(self, resolver):
        with pytest.raises(NotFoundError):
            resolver.resolve_app(ALICE)

    def test_acl(self, resolver):
        assert resolver.acl.address == ACL


class TestNormalizeRole:
    def test_name_is_hashed(self):
        assert normalize_role("MINT_ROLE") == encode_hex(keccak(text="MINT_ROLE"))

    def test_known_hash(self):
        assert normalize_role("") == (
            "0xc5d2460186f7233c927e7db2dcc703c0e500b653ca82273b7bfad8045d85a470"
        )

    def test_role_id_unchanged(self):
        role_id = "0x" + "ab" * 32
        assert normalize_role(role_id) == role_id

    def test_upper_case_role_id_keeps_its_case(self):
        role_id = "0x" + "AB" * 32
        assert normalize_role(role_id) == role_id

    def test_near_miss_rejected(self):
        with pytest.raises(InvalidArgumentError) as exc_info:
            normalize_role("0x" + "ab" * 31)
        assert exc_info.value.name == "ErrorInvalidRole"

    def test_non_hex_id_rejected(self):
        with pytest.raises(InvalidArgumentError):
            normalize_role("0x" + "zz" * 32)
