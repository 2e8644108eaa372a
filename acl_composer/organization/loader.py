"""
Organization snapshot loader.

The connector that indexes an organization hands over a JSON document:

    {
      "address": "0x...",
      "apps": [
        {
          "name": "voting",
          "label": "council",
          "address": "0x...",
          "functions": ["forward(bytes)", ...],
          "permissions": {
            "CREATE_VOTES_ROLE": {"manager": "0x...", "grantees": ["0x..."]}
          }
        }
      ]
    }

Role keys may be names or 32-byte ids; both are normalized on load.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator

from acl_composer.encoding.abi import ACL_FUNCTIONS, FORWARDER_FUNCTIONS, AbiInterface
from acl_composer.organization.resolver import checksum_address
from acl_composer.organization.roles import normalize_role
from acl_composer.organization.schema import App, Organization, Permission

logger = logging.getLogger(__name__)

# Interfaces assumed when the snapshot does not list an app's functions
DEFAULT_FUNCTIONS: dict[str, tuple[str, ...]] = {
    "acl": ACL_FUNCTIONS,
}


class PermissionDocument(BaseModel):
    manager: str | None = None
    grantees: list[str] = Field(default_factory=list)

    @field_validator("manager")
    @classmethod
    def _check_manager(cls, value: str | None) -> str | None:
        return checksum_address(value) if value else None

    @field_validator("grantees")
    @classmethod
    def _check_grantees(cls, value: list[str]) -> list[str]:
        return [checksum_address(grantee) for grantee in value]


class AppDocument(BaseModel):
    name: str
    label: str | None = None
    address: str
    functions: list[str] = Field(default_factory=list)
    permissions: dict[str, PermissionDocument] = Field(default_factory=dict)

    @field_validator("address")
    @classmethod
    def _check_address(cls, value: str) -> str:
        return checksum_address(value)


class OrganizationDocument(BaseModel):
    address: str
    apps: list[AppDocument] = Field(default_factory=list)

    @field_validator("address")
    @classmethod
    def _check_address(cls, value: str) -> str:
        return checksum_address(value)


def _build_app(document: AppDocument) -> App:
    functions = document.functions or DEFAULT_FUNCTIONS.get(document.name, FORWARDER_FUNCTIONS)
    permissions = {
        normalize_role(role): Permission(
            manager=permission.manager,
            grantees=set(permission.grantees),
        )
        for role, permission in document.permissions.items()
    }
    return App(
        name=document.name,
        label=document.label,
        address=document.address,
        abi=AbiInterface(functions),
        permissions=permissions,
    )


def organization_from_dict(data: dict[str, Any]) -> Organization:
    """
    Build an organization snapshot from a parsed JSON document.

    Raises:
        pydantic.ValidationError: If the document is malformed.
        InvalidArgumentError: If an address or role id is malformed.
    """
    document = OrganizationDocument.model_validate(data)
    organization = Organization(
        address=document.address,
        apps=[_build_app(app) for app in document.apps],
    )
    logger.info(
        "Organization loaded: %s (%d apps)", organization.address, len(organization.apps)
    )
    return organization


def load_organization(path: str | Path) -> Organization:
    """Load an organization snapshot from a JSON file."""
    with open(path, encoding="utf-8") as handle:
        return organization_from_dict(json.load(handle))
