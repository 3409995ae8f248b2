"""Batch ORM models: job runs, job run items and schedules."""

from supply_batch.models.batch import JobRunItemModel, JobRunModel, JobScheduleModel

__all__ = ["JobRunItemModel", "JobRunModel", "JobScheduleModel"]
