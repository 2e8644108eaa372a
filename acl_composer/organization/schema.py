"""
Organization Schema — core data structures of the permission compiler.

These structures describe the organization snapshot (apps, their roles and
permissions), the references a command may use to point at an account
(entities), and the low-level calls the compiler emits (actions).

The snapshot is read-only once loaded. Only the Permission State Model
(`acl_composer.permissions.state`) keeps a mutable copy of the permissions,
and only for the duration of one compilation run.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Union

from eth_utils import encode_hex

from acl_composer.encoding.abi import AbiInterface

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


# ════════════════════════════════════════════════════════════════
# Enumerations
# ════════════════════════════════════════════════════════════════


class ForwarderTier(enum.IntEnum):
    """Forwarding capability reported by `forwarderType()`."""

    NOT_IMPLEMENTED = 0
    NO_CONTEXT = 1
    WITH_CONTEXT = 2


# ════════════════════════════════════════════════════════════════
# Actions
# ════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class Action:
    """A single pending on-chain call."""

    to: str
    data: bytes
    value: int = 0

    @property
    def selector(self) -> bytes:
        return self.data[:4]

    def to_dict(self) -> dict[str, str | int]:
        payload: dict[str, str | int] = {"to": self.to, "data": encode_hex(self.data)}
        if self.value:
            payload["value"] = self.value
        return payload


# ════════════════════════════════════════════════════════════════
# Permissions and apps
# ════════════════════════════════════════════════════════════════


@dataclass
class Permission:
    """Manager and grantees of one role on one app."""

    manager: str | None = None
    grantees: set[str] = field(default_factory=set)

    @property
    def exists(self) -> bool:
        """A permission exists on-chain once it has a non-zero manager."""
        return bool(self.manager) and self.manager != ZERO_ADDRESS

    def copy(self) -> Permission:
        return Permission(manager=self.manager, grantees=set(self.grantees))


@dataclass
class App:
    """One managed component of the organization."""

    name: str
    address: str
    abi: AbiInterface
    permissions: dict[str, Permission] = field(default_factory=dict)
    label: str | None = None

    @property
    def identifier(self) -> str:
        return f"{self.name}.{self.label}" if self.label else self.name


@dataclass
class Organization:
    """Read-only snapshot of an organization supplied by the connector."""

    address: str
    apps: list[App] = field(default_factory=list)

    def apps_named(self, name: str, label: str | None = None) -> list[App]:
        """Apps sharing a name (and label, if given), in snapshot order."""
        return [
            app
            for app in self.apps
            if app.name == name and (label is None or app.label == label)
        ]

    def app_at(self, address: str) -> App | None:
        for app in self.apps:
            if app.address == address:
                return app
        return None


# ════════════════════════════════════════════════════════════════
# Entities
# ════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class LiteralEntity:
    """A raw account address."""

    address: str

    def __str__(self) -> str:
        return self.address


@dataclass(frozen=True)
class LabeledEntity:
    """An app reference: `name`, `name:index`, `name.label` or `name.label:index`."""

    name: str
    label: str | None = None
    index: int | None = None

    def __str__(self) -> str:
        text = f"{self.name}.{self.label}" if self.label else self.name
        return text if self.index is None else f"{text}:{self.index}"


Entity = Union[LiteralEntity, LabeledEntity]
