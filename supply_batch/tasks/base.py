"""
JobTask protocol, supporting types and TaskRegistry.

Contract:
    ``JobTask`` is the interface every scheduled task implements.
    ``TaskRegistry`` stores tasks keyed by ``task_type``.

Architecture:
    supply_batch/tasks.  Only imports from supply_batch.domain and the
    kernel exceptions.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Protocol, runtime_checkable

from sqlalchemy.orm import Session

from supply_batch.domain.types import JobItemStatus
from supply_kernel.exceptions import TaskNotRegisteredError


@dataclass(frozen=True)
class JobItemInput:
    """One unit of work, created by ``JobTask.prepare_items()``."""

    item_index: int
    item_key: str
    payload: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class JobTaskResult:
    """Returned by ``JobTask.execute_item()``."""

    status: JobItemStatus
    result_data: dict[str, Any] | None = None
    error_code: str | None = None
    error_message: str | None = None


@runtime_checkable
class JobTask(Protocol):
    """
    Interface for task implementations.

    Contract:
        - ``task_type``: unique key registered in TaskRegistry.
        - ``prepare_items()``: selects the work, returns an immutable tuple.
        - ``execute_item()``: processes ONE item inside a SAVEPOINT.

    Non-goals:
        - Does NOT manage transactions; the runner owns the SAVEPOINT.
    """

    @property
    def task_type(self) -> str: ...

    @property
    def description(self) -> str: ...

    def prepare_items(
        self,
        parameters: dict[str, Any],
        session: Session,
        as_of: datetime,
    ) -> tuple[JobItemInput, ...]: ...

    def execute_item(
        self,
        item: JobItemInput,
        parameters: dict[str, Any],
        session: Session,
        as_of: datetime,
    ) -> JobTaskResult: ...


class TaskRegistry:
    """task_type -> JobTask. One task per type."""

    def __init__(self) -> None:
        self._tasks: dict[str, JobTask] = {}

    def register(self, task: JobTask) -> None:
        """
        Raises:
            ValueError: If the task_type is already registered.
        """
        if task.task_type in self._tasks:
            raise ValueError(f"Task type '{task.task_type}' is already registered")
        self._tasks[task.task_type] = task

    def get(self, task_type: str) -> JobTask:
        """
        Raises:
            TaskNotRegisteredError: If nothing is registered for ``task_type``.
        """
        try:
            return self._tasks[task_type]
        except KeyError:
            raise TaskNotRegisteredError(task_type, self.list_tasks()) from None

    def list_tasks(self) -> tuple[str, ...]:
        return tuple(sorted(self._tasks))

    def __len__(self) -> int:
        return len(self._tasks)

    def __contains__(self, task_type: str) -> bool:
        return task_type in self._tasks
