"""
JobRunner -- SAVEPOINT-per-item job execution.

Contract:
    Orchestrates a job run: submit (with idempotency and a concurrency
    guard), execute (SAVEPOINT per item), query.

Architecture: supply_batch/services.  Imports from supply_batch.domain,
    supply_batch.models, supply_batch.tasks and kernel services.

Invariants enforced:
    - One item's failure rolls back only that item's SAVEPOINT.
    - ``idempotency_key`` is unique; resubmitting raises JobIdempotencyError.
    - Run ``seq`` comes from SequenceService.
    - Timestamps come from the injected Clock.
    - A job name has at most one run in status RUNNING.
"""

from __future__ import annotations

import time
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from supply_batch.domain.types import (
    JobItemResult,
    JobItemStatus,
    JobRun,
    JobRunResult,
    JobRunStatus,
)
from supply_batch.models.batch import JobRunItemModel, JobRunModel
from supply_batch.tasks.base import TaskRegistry
from supply_kernel.domain.clock import Clock, SystemClock
from supply_kernel.exceptions import (
    JobAlreadyRunningError,
    JobIdempotencyError,
    JobNotFoundError,
    SupplyKernelError,
    TaskNotRegisteredError,
)
from supply_kernel.logging_config import LogContext, get_logger
from supply_kernel.services.sequence_service import SequenceService

logger = get_logger("batch.runner")


class JobRunner:
    """
    Job execution with SAVEPOINT-per-item isolation.

    Non-goals:
        - Does NOT call ``session.commit()``; the caller owns the boundary.
        - Does NOT run threads; that is the scheduler's job.
    """

    def __init__(
        self,
        session: Session,
        task_registry: TaskRegistry,
        clock: Clock | None = None,
        sequence_service: SequenceService | None = None,
    ):
        self._session = session
        self._registry = task_registry
        self._clock = clock or SystemClock()
        self._sequence = sequence_service or SequenceService(session)

    # -------------------------------------------------------------------------
    # Submit
    # -------------------------------------------------------------------------

    def submit_job(
        self,
        job_name: str,
        task_type: str,
        idempotency_key: str,
        actor_id: UUID,
        parameters: dict[str, Any] | None = None,
    ) -> JobRun:
        """
        Create a PENDING run.

        Raises:
            TaskNotRegisteredError: If ``task_type`` is unknown.
            JobIdempotencyError: If ``idempotency_key`` was used before.
            JobAlreadyRunningError: If a run of ``job_name`` is in progress.
        """
        if task_type not in self._registry:
            raise TaskNotRegisteredError(task_type, self._registry.list_tasks())

        existing = self._session.execute(
            select(JobRunModel.id).where(JobRunModel.idempotency_key == idempotency_key)
        ).scalar_one_or_none()
        if existing is not None:
            raise JobIdempotencyError(idempotency_key, str(existing))

        running = self._session.execute(
            select(JobRunModel.id).where(
                JobRunModel.job_name == job_name,
                JobRunModel.status == JobRunStatus.RUNNING.value,
            )
        ).scalars().first()
        if running is not None:
            raise JobAlreadyRunningError(job_name, str(running))

        now = self._clock.now()
        model = JobRunModel(
            job_name=job_name,
            task_type=task_type,
            status=JobRunStatus.PENDING.value,
            idempotency_key=idempotency_key,
            parameters=parameters or None,
            seq=self._sequence.next_value(SequenceService.JOB_RUN),
            created_by_id=actor_id,
            created_at=now,
            updated_at=now,
        )
        self._session.add(model)
        self._session.flush()

        logger.info(
            "job_submitted",
            extra={
                "job_id": str(model.id),
                "job_name": job_name,
                "task_type": task_type,
                "idempotency_key": idempotency_key,
                "seq": model.seq,
            },
        )
        return model.to_dto()

    # -------------------------------------------------------------------------
    # Execute
    # -------------------------------------------------------------------------

    def _locked_run(self, job_id: UUID) -> JobRunModel:
        model = self._session.execute(
            select(JobRunModel)
            .where(JobRunModel.id == job_id)
            .with_for_update()
        ).scalar_one_or_none()
        if model is None:
            raise JobNotFoundError(str(job_id))
        return model

    def execute_job(self, job_id: UUID, actor_id: UUID) -> JobRunResult:
        """
        Run every item of a PENDING job.

        Raises:
            JobNotFoundError: If ``job_id`` does not exist.
            JobAlreadyRunningError: If the run is not PENDING.
        """
        start = time.monotonic()
        job = self._locked_run(job_id)
        if job.status != JobRunStatus.PENDING.value:
            raise JobAlreadyRunningError(job.job_name, str(job_id))

        task = self._registry.get(job.task_type)
        parameters = job.parameters or {}

        as_of = self._clock.now()
        job.status = JobRunStatus.RUNNING.value
        job.started_at = as_of
        self._session.flush()

        with LogContext.bind(job_id=str(job_id)):
            try:
                items = task.prepare_items(parameters, self._session, as_of)
            except Exception as exc:
                logger.exception("job_prepare_failed", extra={"task_type": job.task_type})
                return self._finish(job, (), start, error_summary=f"prepare_items failed: {exc}")

            job.total_items = len(items)
            results: list[JobItemResult] = []
            for item in items:
                results.append(self._run_item(task, item, parameters, as_of))
                item_model = JobRunItemModel.from_dto(
                    results[-1], job_id=job.id, created_by_id=actor_id,
                )
                item_model.created_at = self._clock.now()
                item_model.updated_at = item_model.created_at
                self._session.add(item_model)

            return self._finish(job, tuple(results), start)

    def _run_item(self, task, item, parameters, as_of) -> JobItemResult:
        item_start = time.monotonic()
        started_at = self._clock.now()

        savepoint = self._session.begin_nested()
        try:
            outcome = task.execute_item(item, parameters, self._session, as_of)
        except Exception as exc:
            savepoint.rollback()
            logger.warning(
                "job_item_failed",
                extra={"item_key": item.item_key, "error": str(exc)},
                exc_info=True,
            )
            return JobItemResult(
                item_index=item.item_index,
                item_key=item.item_key,
                status=JobItemStatus.FAILED,
                error_code=exc.code if isinstance(exc, SupplyKernelError) else "UNHANDLED_EXCEPTION",
                error_message=str(exc),
                duration_ms=int((time.monotonic() - item_start) * 1000),
                started_at=started_at,
                completed_at=self._clock.now(),
            )

        if outcome.status == JobItemStatus.SUCCEEDED:
            savepoint.commit()
        else:
            savepoint.rollback()

        return JobItemResult(
            item_index=item.item_index,
            item_key=item.item_key,
            status=outcome.status,
            error_code=outcome.error_code,
            error_message=outcome.error_message,
            result_data=outcome.result_data,
            duration_ms=int((time.monotonic() - item_start) * 1000),
            started_at=started_at,
            completed_at=self._clock.now(),
        )

    def _finish(
        self,
        job: JobRunModel,
        results: tuple[JobItemResult, ...],
        start: float,
        error_summary: str | None = None,
    ) -> JobRunResult:
        succeeded = sum(1 for r in results if r.status == JobItemStatus.SUCCEEDED)
        failed = sum(1 for r in results if r.status == JobItemStatus.FAILED)
        skipped = sum(1 for r in results if r.status == JobItemStatus.SKIPPED)

        if error_summary is not None:
            status = JobRunStatus.FAILED
        elif failed == 0:
            status = JobRunStatus.COMPLETED
        elif succeeded == 0 and skipped == 0:
            status = JobRunStatus.FAILED
        else:
            status = JobRunStatus.PARTIALLY_COMPLETED

        completed_at = self._clock.now()
        job.status = status.value
        job.succeeded_items = succeeded
        job.failed_items = failed
        job.skipped_items = skipped
        job.completed_at = completed_at
        job.updated_at = completed_at
        job.error_summary = error_summary or (f"{failed} item(s) failed" if failed else None)
        self._session.flush()

        duration = int((time.monotonic() - start) * 1000)
        logger.info(
            "job_finished",
            extra={
                "job_name": job.job_name,
                "status": status.value,
                "succeeded": succeeded,
                "failed": failed,
                "skipped": skipped,
                "duration_ms": duration,
            },
        )
        return JobRunResult(
            job_id=job.id,
            status=status,
            total_items=len(results),
            succeeded=succeeded,
            failed=failed,
            skipped=skipped,
            item_results=results,
            started_at=job.started_at,
            completed_at=completed_at,
            duration_ms=duration,
        )

    def run(
        self,
        job_name: str,
        task_type: str,
        idempotency_key: str,
        actor_id: UUID,
        parameters: dict[str, Any] | None = None,
    ) -> JobRunResult:
        """Submit and execute in one call."""
        job = self.submit_job(job_name, task_type, idempotency_key, actor_id, parameters)
        return self.execute_job(job.job_id, actor_id)

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def get_job(self, job_id: UUID) -> JobRun:
        model = self._session.get(JobRunModel, job_id)
        if model is None:
            raise JobNotFoundError(str(job_id))
        return model.to_dto()

    def get_job_items(self, job_id: UUID) -> tuple[JobItemResult, ...]:
        models = self._session.execute(
            select(JobRunItemModel)
            .where(JobRunItemModel.job_id == job_id)
            .order_by(JobRunItemModel.item_index)
        ).scalars().all()
        return tuple(m.to_dto() for m in models)
