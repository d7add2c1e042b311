from __future__ import annotations

import logging
from contextlib import AbstractContextManager, nullcontext
from dataclasses import dataclass
from typing import Callable

from src.domain.entities.role import DEFAULT_ROLE, Role, RoleAssignmentEntity
from src.domain.errors import NotAuthenticated, Unauthorized
from src.infrastructure.database.repositories.role_repository import RoleRepository

logger = logging.getLogger("nfccards.roles")


@dataclass
class RoleRegistry:
    """Admin/user designation for authenticated identities.

    The first admin may be created by anyone (bootstrap rule). Once an admin
    exists, only admins change roles. Nothing here is cached: every check reads
    the current assignment, so a demoted admin loses access on the next call.
    """

    roles: RoleRepository
    transaction: Callable[[], AbstractContextManager] = nullcontext

    def is_admin(self, identity: str | None) -> bool:
        if not identity:
            return False
        assignment = self.roles.get(identity)
        return assignment is not None and assignment.is_admin

    def require_admin(self, identity: str | None, action: str) -> str:
        """Return ``identity`` if it may perform an admin-only ``action``.

        Raises:
            NotAuthenticated: No identity on the call.
            Unauthorized: The identity is not an admin.
        """
        if not identity:
            raise NotAuthenticated()
        if not self.is_admin(identity):
            logger.warning("Denied %s for non-admin %s", action, identity)
            raise Unauthorized(f"Only admins can {action}")
        return identity

    def set_role(self, requester: str | None, target: str, role: Role | str) -> RoleAssignmentEntity:
        if not requester:
            raise NotAuthenticated()
        role = Role(role)
        with self.transaction():
            if self.roles.admin_exists() and not self.is_admin(requester):
                logger.warning("Denied role change of %s to %s by %s", target, role.value, requester)
                raise Unauthorized("Only admins can set user roles")
            assignment = self.roles.upsert(target, role)
        logger.info("Role of %s set to %s by %s", target, role.value, requester)
        return assignment

    def get_role(self, identity: str | None) -> Role | None:
        """Stored role, ``user`` when none is stored, ``None`` without a session."""
        if not identity:
            return None
        assignment = self.roles.get(identity)
        return assignment.role if assignment else DEFAULT_ROLE
