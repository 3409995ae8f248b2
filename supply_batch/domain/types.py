"""
supply_batch.domain.types -- frozen dataclasses for job runs and schedules.

ZERO I/O.  Status fields are str enums so they persist as plain strings.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID


# =============================================================================
# Status enums
# =============================================================================


class JobRunStatus(str, Enum):
    """Run-level lifecycle status."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"  # prepare failed, or every item failed
    PARTIALLY_COMPLETED = "partially_completed"  # some items failed


class JobItemStatus(str, Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"  # nothing to do for this item


class ScheduleFrequency(str, Enum):
    """Recurrence of a scheduled job."""

    ONCE = "once"
    HOURLY = "hourly"
    DAILY = "daily"
    WEEKLY = "weekly"
    ON_DEMAND = "on_demand"  # manual trigger only


# =============================================================================
# Run DTOs
# =============================================================================


@dataclass(frozen=True)
class JobRun:
    """Snapshot of one job run."""

    job_id: UUID
    job_name: str  # e.g. "Hourly reorder check"
    task_type: str  # registered task key, e.g. "reorder.evaluate_items"
    status: JobRunStatus
    idempotency_key: str
    parameters: dict[str, Any] = field(default_factory=dict)
    total_items: int = 0
    succeeded_items: int = 0
    failed_items: int = 0
    skipped_items: int = 0
    created_at: datetime | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None
    created_by: UUID | None = None
    error_summary: str | None = None
    seq: int | None = None


@dataclass(frozen=True)
class JobItemResult:
    """Outcome of one job item, recorded whether it succeeded or not."""

    item_index: int
    item_key: str  # e.g. SKU or lot id
    status: JobItemStatus
    error_code: str | None = None
    error_message: str | None = None
    result_data: dict[str, Any] | None = None
    duration_ms: int = 0
    started_at: datetime | None = None
    completed_at: datetime | None = None


@dataclass(frozen=True)
class JobRunResult:
    """Returned by ``JobRunner.execute_job()``."""

    job_id: UUID
    status: JobRunStatus
    total_items: int
    succeeded: int
    failed: int
    skipped: int
    item_results: tuple[JobItemResult, ...] = ()
    started_at: datetime | None = None
    completed_at: datetime | None = None
    duration_ms: int = 0


# =============================================================================
# Schedule DTOs
# =============================================================================


@dataclass(frozen=True)
class JobSchedule:
    """Snapshot of a recurring job schedule."""

    schedule_id: UUID
    job_name: str
    task_type: str
    frequency: ScheduleFrequency
    parameters: dict[str, Any] = field(default_factory=dict)
    cron_expression: str | None = None
    next_run_at: datetime | None = None
    last_run_at: datetime | None = None
    last_run_status: JobRunStatus | None = None
    is_active: bool = True
