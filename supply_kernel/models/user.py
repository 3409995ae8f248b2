"""
Module: supply_kernel.models.user
Responsibility: Directory of people who can be assigned alerts or notified.
    Authentication is external; this table only maps an actor id to a
    role, an e-mail address and an active flag.
Architecture position: Kernel > Models.  Imports from db/ only.
"""

from sqlalchemy import Boolean, String
from sqlalchemy.orm import Mapped, mapped_column

from supply_kernel.db.base import TrackedBase


class UserAccount(TrackedBase):
    """
    A person known to the pipeline.

    The row id is the actor id carried by ``ActorContext``.
    """

    __tablename__ = "user_accounts"

    username: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    role: Mapped[str] = mapped_column(String(30), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def __repr__(self) -> str:
        return f"<UserAccount {self.username} ({self.role})>"
