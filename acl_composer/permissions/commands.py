"""
Permission Command Executor — the grant/revoke state machine.

Decides, from the current permission state and a requested change, which
ACL calls must be emitted and in what order, and updates the Permission
State Model so that later commands in the same run see the change.

GRANT:
    existing permission, no parameters  -> grantPermission
    permission not created yet          -> createPermission
    parameters requested                -> grantPermissionP (after any create)

REVOKE:
    revokePermission, then removePermissionManager when asked to.

The decision logic is synchronous; all lookups are against the resolved
snapshot and the state model.
"""

from __future__ import annotations

import logging
from typing import Sequence

from acl_composer.errors import ConflictError, InvalidArgumentError, NotFoundError
from acl_composer.organization.resolver import EntityResolver
from acl_composer.organization.roles import normalize_role
from acl_composer.organization.schema import Action, App, Entity
from acl_composer.permissions.params import Condition, encode_params, oracle as oracle_param
from acl_composer.permissions.state import PermissionStateModel

logger = logging.getLogger(__name__)


class PermissionCommandExecutor:
    """
    Emits ACL actions for grant and revoke requests.

    Owns no state of its own: it reads and mutates the `PermissionStateModel`
    it is given, which belongs to exactly one compilation run.
    """

    def __init__(self, resolver: EntityResolver, state: PermissionStateModel) -> None:
        self.resolver = resolver
        self.state = state

    def _resolve_permission(
        self, grantee: str | Entity, app: str | Entity, role: str
    ) -> tuple[str, App, str]:
        return (
            self.resolver.resolve_address(grantee),
            self.resolver.resolve_app(app),
            normalize_role(role),
        )

    def _acl_action(self, function: str, args: list) -> Action:
        acl = self.resolver.acl
        return Action(to=acl.address, data=acl.abi.encode_function_data(function, args))

    def _require_role(self, app: App, role_id: str, role: str) -> None:
        if not self.state.has_permission(app.address, role_id):
            raise NotFoundError(
                f"Permission {role} doesn't exist in app {app.identifier}.",
                name="ErrorPermissionNotFound",
            )

    # ════════════════════════════════════════════════════════════
    # Grant
    # ════════════════════════════════════════════════════════════

    def grant(
        self,
        grantee: str | Entity,
        app: str | Entity,
        role: str,
        manager: str | Entity | None = None,
        params: Condition | Sequence[int] | None = None,
        oracle: str | Entity | None = None,
    ) -> list[Action]:
        """
        Grant `role` on `app` to `grantee`, creating the permission if needed.

        Args:
            grantee: Entity receiving the permission.
            app: App the role belongs to.
            role: Role name or 32-byte role id.
            manager: Entity to set as permission manager if the permission
                has to be created. Always required.
            params: Explicit permission parameters (condition tree or
                encoded list). Takes precedence over `oracle`.
            oracle: Entity of an oracle contract the grantee must satisfy.

        Returns:
            One or two actions, in emission order.

        Raises:
            InvalidArgumentError: Missing manager or malformed reference.
            NotFoundError: Unknown entity, or role not declared on the app.
            ConflictError: The grantee already holds the permission.
        """
        grantee_address, target, role_id = self._resolve_permission(grantee, app, role)

        if manager is None:
            raise InvalidArgumentError(
                "Permission not well formed, permission manager missing",
                name="ErrorInvalidIdentifier",
            )

        if params is not None:
            effective_params = encode_params(params)
        elif oracle is not None:
            effective_params = encode_params(oracle_param(self.resolver.resolve_address(oracle)))
        else:
            effective_params = []

        manager_address = self.resolver.resolve_address(manager)
        self._require_role(target, role_id, role)
        permission = self.state.get_permission(target.address, role_id)

        if permission.exists and not effective_params:
            if grantee_address in permission.grantees:
                raise ConflictError(
                    f"Grantee {grantee} already has permission {role}",
                    name="ErrorPermissionAlreadyGranted",
                )
            self.state.add_grantee(target.address, role_id, grantee_address)
            logger.info("Grant %s on %s to %s", role, target.identifier, grantee_address)
            return [
                self._acl_action(
                    "grantPermission", [grantee_address, target.address, role_id]
                )
            ]

        actions: list[Action] = []
        created = False

        if not permission.exists:
            if effective_params and grantee_address in permission.grantees:
                raise ConflictError(
                    f"Grantee {grantee} already has permission {role}.",
                    name="ErrorPermissionAlreadyGranted",
                )
            self.state.create_permission(
                target.address, role_id, manager_address, grantee_address
            )
            created = True
            logger.info(
                "Create %s on %s for %s (manager=%s)",
                role, target.identifier, grantee_address, manager_address,
            )
            actions.append(
                self._acl_action(
                    "createPermission",
                    [grantee_address, target.address, role_id, manager_address],
                )
            )

        if effective_params:
            # A permission created just above already lists the grantee
            if not created:
                if self.state.is_granted(target.address, role_id, grantee_address):
                    raise ConflictError(
                        f"Grantee {grantee} already has permission {role}.",
                        name="ErrorPermissionAlreadyGranted",
                    )
                self.state.add_grantee(target.address, role_id, grantee_address)
            logger.info(
                "Grant %s on %s to %s with %d param(s)",
                role, target.identifier, grantee_address, len(effective_params),
            )
            actions.append(
                self._acl_action(
                    "grantPermissionP",
                    [grantee_address, target.address, role_id, effective_params],
                )
            )

        return actions

    # ════════════════════════════════════════════════════════════
    # Revoke
    # ════════════════════════════════════════════════════════════

    def revoke(
        self,
        grantee: str | Entity,
        app: str | Entity,
        role: str,
        remove_manager: bool = False,
    ) -> list[Action]:
        """
        Revoke `role` on `app` from `grantee`.

        Args:
            grantee: Entity losing the permission.
            app: App the role belongs to.
            role: Role name or 32-byte role id.
            remove_manager: Also remove the permission manager. Emitted even
                if other grantees remain.

        Returns:
            One or two actions, in emission order.

        Raises:
            NotFoundError: Role not declared on the app, or the grantee does
                not hold the permission.
        """
        grantee_address, target, role_id = self._resolve_permission(grantee, app, role)
        self._require_role(target, role_id, role)

        if not self.state.is_granted(target.address, role_id, grantee_address):
            raise NotFoundError(
                f"Entity {grantee} doesn't have permission {role} to be revoked.",
                name="ErrorPermissionNotFound",
            )

        self.state.remove_grantee(target.address, role_id, grantee_address)
        logger.info("Revoke %s on %s from %s", role, target.identifier, grantee_address)
        actions = [
            self._acl_action("revokePermission", [grantee_address, target.address, role_id])
        ]

        if remove_manager:
            self.state.clear_manager(target.address, role_id)
            logger.info("Remove manager of %s on %s", role, target.identifier)
            actions.append(
                self._acl_action("removePermissionManager", [target.address, role_id])
            )

        return actions
