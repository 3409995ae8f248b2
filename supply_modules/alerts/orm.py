"""
SQLAlchemy ORM persistence for alerts.

Invariants enforced
-------------------
* At most one unread alert per (subject_type, subject_id, alert_type):
  ``uq_alerts_open_subject`` is a partial unique index restricted to
  ``is_read = false``.  Read alerts are history and may repeat.
* Alerts are never deleted; resolving or reading only sets ``is_read``.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, Index, Integer, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column

from supply_kernel.db.base import TrackedBase, UUIDString


class AlertModel(TrackedBase):
    """Persistent alert. Maps to the ``Alert`` DTO."""

    __tablename__ = "alerts"

    __table_args__ = (
        Index(
            "uq_alerts_open_subject",
            "subject_type",
            "subject_id",
            "alert_type",
            unique=True,
            postgresql_where=text("is_read = false"),
            sqlite_where=text("is_read = 0"),
        ),
        Index("idx_alerts_unread_severity", "is_read", "severity"),
        Index("idx_alerts_item", "item_id"),
    )

    alert_type: Mapped[str] = mapped_column(String(50), nullable=False)
    severity: Mapped[str] = mapped_column(String(20), nullable=False)
    subject_type: Mapped[str] = mapped_column(String(20), nullable=False)
    subject_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    item_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), ForeignKey("items.id"), nullable=True,
    )
    warehouse_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    message: Mapped[str] = mapped_column(Text, nullable=False)
    is_read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    assigned_to: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    read_at: Mapped[datetime | None] = mapped_column(nullable=True)
    read_by_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    # read, resolved, superseded
    resolution: Mapped[str | None] = mapped_column(String(20), nullable=True)

    escalation_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_escalated_at: Mapped[datetime | None] = mapped_column(nullable=True)

    def to_dto(self):
        from supply_modules.alerts.models import (
            Alert,
            AlertSeverity,
            AlertSubject,
            AlertType,
            SubjectType,
        )

        return Alert(
            alert_id=self.id,
            alert_type=AlertType(self.alert_type),
            severity=AlertSeverity(self.severity),
            subject=AlertSubject(SubjectType(self.subject_type), self.subject_id),
            message=self.message,
            is_read=self.is_read,
            created_at=self.created_at,
            item_id=self.item_id,
            warehouse_id=self.warehouse_id,
            assigned_to=self.assigned_to,
            read_at=self.read_at,
            read_by=self.read_by_id,
            resolution=self.resolution,
            escalation_count=self.escalation_count,
            last_escalated_at=self.last_escalated_at,
        )
