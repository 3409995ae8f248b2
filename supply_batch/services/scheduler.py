"""
ReplenishmentScheduler -- in-process polling scheduler.

Contract:
    Polls active schedules every ``tick_interval_seconds``, evaluates
    ``should_fire()`` (pure) and submits plus executes due jobs through
    ``JobRunner``.  Each tick runs in its own session and commits once.

Architecture: supply_batch/services.  Uses supply_batch.domain.schedule
    for evaluation and supply_batch.services.runner for execution.

Invariants enforced:
    - All timestamps come from the injected Clock.
    - A schedule fires at most once per minute: the idempotency key is
      derived from the schedule id and the tick minute.
    - ``stop()`` lets the current tick finish.
"""

from __future__ import annotations

import threading
from typing import Any, Callable
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from supply_batch.domain.schedule import compute_next_run, parse_cron, should_fire
from supply_batch.domain.types import JobSchedule, ScheduleFrequency
from supply_batch.models.batch import JobScheduleModel
from supply_batch.services.runner import JobRunner
from supply_kernel.domain.clock import Clock, SystemClock
from supply_kernel.domain.identity import SYSTEM_ACTOR_ID
from supply_kernel.logging_config import get_logger

logger = get_logger("batch.scheduler")


class ReplenishmentScheduler:
    """
    Polling scheduler for the replenishment jobs.

    Non-goals:
        - NOT a distributed scheduler (no leader election).
        - Expects UTC; no timezone conversion.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        runner_factory: Callable[[Session], JobRunner],
        clock: Clock | None = None,
        actor_id: UUID = SYSTEM_ACTOR_ID,
        tick_interval_seconds: int = 60,
    ):
        self._session_factory = session_factory
        self._runner_factory = runner_factory
        self._clock = clock or SystemClock()
        self._actor_id = actor_id
        self._tick_interval = tick_interval_seconds
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    # -------------------------------------------------------------------------
    # Schedule maintenance
    # -------------------------------------------------------------------------

    def register_schedule(
        self,
        session: Session,
        job_name: str,
        task_type: str,
        frequency: ScheduleFrequency,
        cron_expression: str | None = None,
        parameters: dict[str, Any] | None = None,
        is_active: bool = True,
    ) -> JobSchedule:
        """
        Create or update the schedule named ``job_name`` (flush-only).

        Raises:
            ValueError: If ``cron_expression`` is malformed.
        """
        if cron_expression:
            parse_cron(cron_expression)

        now = self._clock.now()
        model = session.execute(
            select(JobScheduleModel).where(JobScheduleModel.job_name == job_name)
        ).scalar_one_or_none()
        if model is None:
            model = JobScheduleModel(
                job_name=job_name,
                created_by_id=self._actor_id,
                created_at=now,
            )
            session.add(model)

        changed_timing = (
            model.cron_expression != cron_expression
            or model.frequency != ScheduleFrequency(frequency).value
        )
        model.task_type = task_type
        model.frequency = ScheduleFrequency(frequency).value
        model.cron_expression = cron_expression
        model.parameters = parameters or None
        model.is_active = is_active
        model.updated_at = now
        if changed_timing:
            model.next_run_at = None
        session.flush()

        logger.info(
            "schedule_registered",
            extra={
                "job_name": job_name,
                "task_type": task_type,
                "frequency": model.frequency,
                "cron_expression": cron_expression,
            },
        )
        return model.to_dto()

    # -------------------------------------------------------------------------
    # Polling
    # -------------------------------------------------------------------------

    def tick(self) -> int:
        """Fire due schedules. Returns how many fired."""
        session = self._session_factory()
        try:
            fired = self._fire_due(session)
            session.commit()
            return fired
        except Exception:
            session.rollback()
            logger.exception("scheduler_tick_failed")
            return 0
        finally:
            session.close()

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run_loop,
            name="replenishment-scheduler",
            daemon=True,
        )
        self._thread.start()
        logger.info("scheduler_started", extra={"tick_interval": self._tick_interval})

    def stop(self, timeout: float = 30.0) -> None:
        self._stop_event.set()
        if self._thread is not None and self._thread.is_alive():
            self._thread.join(timeout=timeout)
        logger.info("scheduler_stopped")

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def _run_loop(self) -> None:
        while not self._stop_event.is_set():
            self.tick()
            self._stop_event.wait(timeout=self._tick_interval)

    def _fire_due(self, session: Session) -> int:
        now = self._clock.now()
        schedules = session.execute(
            select(JobScheduleModel)
            .where(JobScheduleModel.is_active == True)  # noqa: E712
            .order_by(JobScheduleModel.job_name)
        ).scalars().all()

        fired = 0
        for model in schedules:
            if self._stop_event.is_set():
                break
            if not should_fire(model.to_dto(), now):
                continue

            runner = self._runner_factory(session)
            savepoint = session.begin_nested()
            try:
                result = runner.run(
                    job_name=model.job_name,
                    task_type=model.task_type,
                    idempotency_key=f"schedule-{model.id}-{now:%Y%m%d-%H%M}",
                    actor_id=self._actor_id,
                    parameters=model.parameters or {},
                )
                savepoint.commit()
            except Exception:
                savepoint.rollback()
                logger.exception(
                    "schedule_fire_failed",
                    extra={"schedule_id": str(model.id), "job_name": model.job_name},
                )
                continue

            model.last_run_at = now
            model.last_run_status = result.status.value
            model.next_run_at = compute_next_run(
                ScheduleFrequency(model.frequency), now, model.cron_expression,
            )
            model.updated_at = now
            fired += 1

            logger.info(
                "schedule_fired",
                extra={
                    "schedule_id": str(model.id),
                    "job_name": model.job_name,
                    "job_id": str(result.job_id),
                    "status": result.status.value,
                    "next_run_at": model.next_run_at,
                },
            )
        return fired
