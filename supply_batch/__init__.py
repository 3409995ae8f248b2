"""
supply_batch -- scheduled replenishment jobs.

Runs the periodic reorder evaluation, the lot expiry check and alert
escalation as recorded job runs, one SAVEPOINT per job item, and fires
them from an in-process polling scheduler.

Architecture:
    supply_batch/ is a top-level package.  Nothing in supply_kernel or
    supply_modules imports from supply_batch, except the ORM registry that
    creates its tables.

Invariants:
    - One failing item never aborts the run (SAVEPOINT per item).
    - A job run's idempotency key is unique.
    - All timestamps come from the injected Clock.
    - Schedule evaluation is pure.
    - At most one running run per job name.
    - Nothing here commits except the scheduler's own tick session.
"""
