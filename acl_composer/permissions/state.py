"""
Permission State Model — in-memory mirror of the organization's ACL.

Holds, per app and per role, the manager and the set of grantees. It is
built from a private copy of the snapshot's permissions at the start of a
compilation run so that a later command sees the effect of an earlier one,
while the snapshot itself stays untouched. The model is discarded at the
end of the run. Role ids are matched regardless of hex case.

Mutations are preconditioned: calling one on a state that violates its
precondition is a bug in the caller and raises `ValueError`.
"""

from __future__ import annotations

import logging

from acl_composer.errors import NotFoundError
from acl_composer.organization.schema import Organization, Permission

logger = logging.getLogger(__name__)


class PermissionStateModel:
    """Single-owner mutable view of every app's permissions."""

    def __init__(self, organization: Organization) -> None:
        self._permissions: dict[str, dict[str, Permission]] = {
            app.address: {
                role.lower(): permission.copy() for role, permission in app.permissions.items()
            }
            for app in organization.apps
        }

    # ── Reads ──────────────────────────────────────────────────

    def has_permission(self, app: str, role: str) -> bool:
        """Whether `role` is declared on `app` (created or not)."""
        return role.lower() in self._permissions.get(app, {})

    def get_permission(self, app: str, role: str) -> Permission:
        """
        Return the live permission record for `role` on `app`.

        Raises:
            NotFoundError: If the role is not declared on the app.
        """
        permission = self._permissions.get(app, {}).get(role.lower())
        if permission is None:
            raise NotFoundError(
                f"Permission {role} doesn't exist in app {app}",
                name="ErrorPermissionNotFound",
            )
        return permission

    def is_granted(self, app: str, role: str, grantee: str) -> bool:
        permission = self._permissions.get(app, {}).get(role.lower())
        return permission is not None and grantee in permission.grantees

    def snapshot(self) -> dict[str, dict[str, Permission]]:
        """Deep copy of the current state, for inspection."""
        return {
            app: {role: permission.copy() for role, permission in roles.items()}
            for app, roles in self._permissions.items()
        }

    # ── Mutations ──────────────────────────────────────────────

    def create_permission(self, app: str, role: str, manager: str, grantee: str) -> None:
        permission = self.get_permission(app, role)
        if permission.exists:
            raise ValueError(f"Permission {role} on {app} already exists")
        self._permissions[app][role.lower()] = Permission(manager=manager, grantees={grantee})
        logger.debug("State: created %s on %s (manager=%s)", role, app, manager)

    def add_grantee(self, app: str, role: str, grantee: str) -> None:
        permission = self.get_permission(app, role)
        if grantee in permission.grantees:
            raise ValueError(f"{grantee} already holds {role} on {app}")
        permission.grantees.add(grantee)

    def remove_grantee(self, app: str, role: str, grantee: str) -> None:
        permission = self.get_permission(app, role)
        if grantee not in permission.grantees:
            raise ValueError(f"{grantee} does not hold {role} on {app}")
        permission.grantees.remove(grantee)

    def clear_manager(self, app: str, role: str) -> None:
        permission = self.get_permission(app, role)
        permission.manager = None
        logger.debug("State: cleared manager of %s on %s", role, app)
