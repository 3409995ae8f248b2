"""
Alert assignment strategies.

Who receives a new alert is a policy, injected into the registry as a
callable from a role set to an assignee id.
"""

from collections.abc import Iterable
from typing import Protocol, runtime_checkable
from uuid import UUID

from sqlalchemy.orm import Session

from supply_kernel.selectors.user_selector import UserSelector


@runtime_checkable
class AssignmentStrategy(Protocol):
    def __call__(self, roles: Iterable[str]) -> UUID | None: ...


class FirstActiveUserAssignment:
    """Assign to the first active user holding one of the roles (role name, then username)."""

    def __init__(self, session: Session):
        self._users = UserSelector(session)

    def __call__(self, roles: Iterable[str]) -> UUID | None:
        return self._users.first_active_with_roles(roles)


class FixedAssignment:
    """Always the same assignee (or nobody)."""

    def __init__(self, assignee_id: UUID | None):
        self._assignee_id = assignee_id

    def __call__(self, roles: Iterable[str]) -> UUID | None:
        return self._assignee_id
