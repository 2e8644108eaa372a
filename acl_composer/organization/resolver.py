"""
Entity Resolver — turns textual references into addresses and apps.

A reference is either a literal address (`0x...`) or an app identifier:

    voting              first app named "voting"
    voting:1            second app named "voting"
    voting.council      first "voting" app labelled "council"
    voting.council:1    second "voting" app labelled "council"

Resolution is a pure lookup against the read-only organization snapshot.
"""

from __future__ import annotations

import logging
import re

from eth_utils import is_address, to_checksum_address

from acl_composer.errors import InvalidArgumentError, NotFoundError
from acl_composer.organization.schema import (
    App,
    Entity,
    LabeledEntity,
    LiteralEntity,
    Organization,
)

logger = logging.getLogger(__name__)

_IDENTIFIER_RE = re.compile(
    r"^(?P<name>[a-z0-9][a-z0-9-]*)(?:\.(?P<label>[a-z0-9][a-z0-9-]*))?(?::(?P<index>\d+))?$"
)


def parse_entity(reference: str | Entity) -> Entity:
    """
    Parse a textual reference into an entity.

    Raises:
        InvalidArgumentError: If the text is neither an address-like value
            nor a well-formed app identifier.
    """
    if isinstance(reference, (LiteralEntity, LabeledEntity)):
        return reference

    text = reference.strip()
    if text.startswith("0x"):
        return LiteralEntity(address=text)

    match = _IDENTIFIER_RE.match(text)
    if match is None:
        raise InvalidArgumentError(
            f"Invalid app identifier: {text!r}", name="ErrorInvalidIdentifier"
        )
    index = match.group("index")
    return LabeledEntity(
        name=match.group("name"),
        label=match.group("label"),
        index=int(index) if index is not None else None,
    )


def checksum_address(value: str) -> str:
    """
    Validate and checksum an address.

    Raises:
        InvalidArgumentError: If `value` is not a valid address.
    """
    if not is_address(value):
        raise InvalidArgumentError(f"Invalid address: {value}", name="ErrorInvalidAddress")
    return to_checksum_address(value)


class EntityResolver:
    """Resolves entities against one organization snapshot."""

    def __init__(self, organization: Organization, acl_identifier: str = "acl") -> None:
        self.organization = organization
        self.acl_identifier = acl_identifier

    def resolve(self, reference: str | Entity) -> str | App:
        """
        Resolve a reference to an address (literal) or an app (labeled).

        Raises:
            InvalidArgumentError: Malformed address or identifier.
            NotFoundError: No app matches the label, or index out of range.
        """
        entity = parse_entity(reference)
        if isinstance(entity, LiteralEntity):
            return checksum_address(entity.address)
        return self._lookup_app(entity)

    def resolve_address(self, reference: str | Entity) -> str:
        resolved = self.resolve(reference)
        return resolved.address if isinstance(resolved, App) else resolved

    def resolve_app(self, reference: str | Entity) -> App:
        """
        Resolve a reference that must point at an app of the organization.

        A literal address is accepted when it belongs to one of the apps.
        """
        resolved = self.resolve(reference)
        if isinstance(resolved, App):
            return resolved
        app = self.organization.app_at(resolved)
        if app is None:
            raise NotFoundError(
                f"Address {resolved} is not an app of the organization",
                name="ErrorAppNotFound",
            )
        return app

    @property
    def acl(self) -> App:
        return self.resolve_app(self.acl_identifier)

    def _lookup_app(self, entity: LabeledEntity) -> App:
        candidates = self.organization.apps_named(entity.name, entity.label)
        if not candidates:
            raise NotFoundError(f"App {entity} not found", name="ErrorAppNotFound")

        index = entity.index or 0
        if index >= len(candidates):
            raise NotFoundError(
                f"App {entity} not found: only {len(candidates)} instance(s) "
                f"of {entity.name} in the organization",
                name="ErrorAppNotFound",
            )
        app = candidates[index]
        logger.debug("Resolved %s -> %s", entity, app.address)
        return app
