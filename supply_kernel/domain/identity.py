"""
Caller identity and role checks.

Responsibility:
    Authentication happens outside the pipeline.  Every write operation
    receives an ``ActorContext`` (opaque actor id + role names) and checks
    it against the roles the action requires.

Architecture position:
    Kernel > Domain.  Pure; no I/O.

Invariants enforced:
    - Approving, rejecting, converting a requisition and marking an alert
      read are reserved to elevated roles (Manager, Admin).
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum
from uuid import UUID

from supply_kernel.exceptions import InsufficientRoleError


class Role(str, Enum):
    """Roles known to the pipeline. Unknown role names are carried through as strings."""

    ADMIN = "Admin"
    MANAGER = "Manager"
    PURCHASER = "Purchaser"
    STOREKEEPER = "Storekeeper"
    VIEWER = "Viewer"


ELEVATED_ROLES: frozenset[str] = frozenset({Role.MANAGER.value, Role.ADMIN.value})

# Actor recorded on rows written by scheduled jobs
SYSTEM_ACTOR_ID = UUID("00000000-0000-0000-0000-000000000001")


@dataclass(frozen=True)
class ActorContext:
    """The calling actor as seen by the pipeline."""

    actor_id: UUID
    roles: frozenset[str] = frozenset()

    @classmethod
    def of(cls, actor_id: UUID, *roles: str | Role) -> ActorContext:
        return cls(
            actor_id=actor_id,
            roles=frozenset(r.value if isinstance(r, Role) else r for r in roles),
        )

    def has_any_role(self, roles: Iterable[str]) -> bool:
        return not self.roles.isdisjoint(roles)

    @property
    def is_elevated(self) -> bool:
        return self.has_any_role(ELEVATED_ROLES)


def check_role(
    actor: ActorContext,
    action: str,
    required_roles: Iterable[str] = ELEVATED_ROLES,
) -> tuple[bool, str]:
    """Return (allowed, reason) for ``actor`` performing ``action``."""
    required = frozenset(required_roles)
    if actor.has_any_role(required):
        return True, "ok"
    return False, f"{action} requires one of {sorted(required)}"


def require_role(
    actor: ActorContext,
    action: str,
    required_roles: Iterable[str] = ELEVATED_ROLES,
) -> None:
    """
    Raises:
        InsufficientRoleError: If the actor holds none of ``required_roles``.
    """
    required = frozenset(required_roles)
    allowed, _ = check_role(actor, action, required)
    if not allowed:
        raise InsufficientRoleError(action, required, actor.roles)
