"""
ORM models for job runs and schedules.

Contract:
    JobRunModel, JobRunItemModel and JobScheduleModel persist run state,
    per-item outcomes and recurring schedules.  Each maps to its DTO in
    ``supply_batch.domain.types`` through ``to_dto()``.

Architecture: supply_batch/models.  Imports from supply_kernel.db.base only.

Invariants enforced:
    - ``idempotency_key`` is UNIQUE on JobRunModel.
    - ``seq`` is allocated through SequenceService, never by the ORM.
    - ``job_name`` is UNIQUE on JobScheduleModel.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import JSON, Boolean, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from supply_kernel.db.base import TrackedBase, UUIDString

if TYPE_CHECKING:
    from supply_batch.domain.types import JobItemResult, JobRun, JobSchedule


class JobRunModel(TrackedBase):
    """One execution of a registered task."""

    __tablename__ = "job_runs"

    __table_args__ = (
        Index("ix_job_runs_status", "status"),
        Index("ix_job_runs_job_name_status", "job_name", "status"),
    )

    job_name: Mapped[str] = mapped_column(String(200), nullable=False)
    task_type: Mapped[str] = mapped_column(String(200), nullable=False)
    status: Mapped[str] = mapped_column(String(50), nullable=False)
    idempotency_key: Mapped[str] = mapped_column(String(200), nullable=False, unique=True)
    parameters: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    total_items: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    succeeded_items: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    failed_items: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    skipped_items: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    seq: Mapped[int | None] = mapped_column(nullable=True, unique=True)
    started_at: Mapped[datetime | None] = mapped_column(nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(nullable=True)
    error_summary: Mapped[str | None] = mapped_column(Text, nullable=True)

    items: Mapped[list["JobRunItemModel"]] = relationship(
        "JobRunItemModel",
        back_populates="job",
        order_by="JobRunItemModel.item_index",
    )

    def to_dto(self) -> JobRun:
        from supply_batch.domain.types import JobRun, JobRunStatus

        return JobRun(
            job_id=self.id,
            job_name=self.job_name,
            task_type=self.task_type,
            status=JobRunStatus(self.status),
            idempotency_key=self.idempotency_key,
            parameters=self.parameters or {},
            total_items=self.total_items,
            succeeded_items=self.succeeded_items,
            failed_items=self.failed_items,
            skipped_items=self.skipped_items,
            created_at=self.created_at,
            started_at=self.started_at,
            completed_at=self.completed_at,
            created_by=self.created_by_id,
            error_summary=self.error_summary,
            seq=self.seq,
        )


class JobRunItemModel(TrackedBase):
    """Outcome of one item within a run."""

    __tablename__ = "job_run_items"

    __table_args__ = (
        Index("ix_job_run_items_job_status", "job_id", "status"),
    )

    job_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("job_runs.id", ondelete="CASCADE"),
        nullable=False,
    )
    item_index: Mapped[int] = mapped_column(Integer, nullable=False)
    item_key: Mapped[str] = mapped_column(String(200), nullable=False)
    status: Mapped[str] = mapped_column(String(50), nullable=False)
    error_code: Mapped[str | None] = mapped_column(String(100), nullable=True)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    result_data: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    duration_ms: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    started_at: Mapped[datetime | None] = mapped_column(nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(nullable=True)

    job: Mapped["JobRunModel"] = relationship("JobRunModel", back_populates="items")

    def to_dto(self) -> JobItemResult:
        from supply_batch.domain.types import JobItemResult, JobItemStatus

        return JobItemResult(
            item_index=self.item_index,
            item_key=self.item_key,
            status=JobItemStatus(self.status),
            error_code=self.error_code,
            error_message=self.error_message,
            result_data=self.result_data,
            duration_ms=self.duration_ms,
            started_at=self.started_at,
            completed_at=self.completed_at,
        )

    @classmethod
    def from_dto(
        cls, dto: JobItemResult, job_id: UUID, created_by_id: UUID,
    ) -> JobRunItemModel:
        return cls(
            job_id=job_id,
            item_index=dto.item_index,
            item_key=dto.item_key,
            status=dto.status.value,
            error_code=dto.error_code,
            error_message=dto.error_message,
            result_data=dto.result_data,
            duration_ms=dto.duration_ms,
            started_at=dto.started_at,
            completed_at=dto.completed_at,
            created_by_id=created_by_id,
        )


class JobScheduleModel(TrackedBase):
    """Recurring job schedule, evaluated by the scheduler on every tick."""

    __tablename__ = "job_schedules"

    __table_args__ = (
        Index("ix_job_schedules_active", "is_active"),
    )

    job_name: Mapped[str] = mapped_column(String(200), nullable=False, unique=True)
    task_type: Mapped[str] = mapped_column(String(200), nullable=False)
    frequency: Mapped[str] = mapped_column(String(50), nullable=False)
    parameters: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    cron_expression: Mapped[str | None] = mapped_column(String(100), nullable=True)
    next_run_at: Mapped[datetime | None] = mapped_column(nullable=True)
    last_run_at: Mapped[datetime | None] = mapped_column(nullable=True)
    last_run_status: Mapped[str | None] = mapped_column(String(50), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    def to_dto(self) -> JobSchedule:
        from supply_batch.domain.types import JobRunStatus, JobSchedule, ScheduleFrequency

        return JobSchedule(
            schedule_id=self.id,
            job_name=self.job_name,
            task_type=self.task_type,
            frequency=ScheduleFrequency(self.frequency),
            parameters=self.parameters or {},
            cron_expression=self.cron_expression,
            next_run_at=self.next_run_at,
            last_run_at=self.last_run_at,
            last_run_status=(
                JobRunStatus(self.last_run_status) if self.last_run_status else None
            ),
            is_active=self.is_active,
        )
