"""
Module: supply_kernel.selectors.user_selector
Responsibility: Look up assignees and notification addresses.
Architecture position: Kernel > Selectors.  Read-only.
"""

from collections.abc import Iterable
from uuid import UUID

from sqlalchemy import select

from supply_kernel.models.user import UserAccount
from supply_kernel.selectors.base import BaseSelector


class UserSelector(BaseSelector):
    def email_for(self, user_id: UUID | None) -> str | None:
        if user_id is None:
            return None
        user = self.session.get(UserAccount, user_id)
        if user is None or not user.is_active:
            return None
        return user.email

    def first_active_with_roles(self, roles: Iterable[str]) -> UUID | None:
        """First active user holding any of ``roles``, ordered by role then username."""
        wanted = sorted(set(roles))
        if not wanted:
            return None
        return self.session.execute(
            select(UserAccount.id)
            .where(
                UserAccount.role.in_(wanted),
                UserAccount.is_active == True,  # noqa: E712
            )
            .order_by(UserAccount.role, UserAccount.username)
            .limit(1)
        ).scalar_one_or_none()
