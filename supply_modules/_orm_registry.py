"""
Module ORM Registry (``supply_modules._orm_registry``).

Responsibility
--------------
Ensure every SQLAlchemy ORM model is imported so that ``Base.metadata``
contains its table before tables are created.  ``create_all_tables()`` is
the one schema entry point used by scripts, the pipeline facade and
``tests/conftest.py``.

Architecture position
---------------------
**Modules layer** -- utility.  Imports sibling ``supply_modules`` ORM
modules, the kernel models and the batch tables.  MUST NOT be imported by
``supply_kernel``.
"""

from sqlalchemy.engine import Engine


def import_all_orm_models() -> None:
    """Import kernel models and every module ORM module. Idempotent."""
    # Kernel tables first; module tables reference items, suppliers, alerts
    import supply_kernel.models  # noqa: F401
    import supply_kernel.services.sequence_service  # noqa: F401  # sequence_counters
    # fmt: off
    import supply_modules.alerts.orm  # noqa: F401
    import supply_modules.procurement.orm  # noqa: F401
    import supply_batch.models  # noqa: F401  # Job run and schedule tables
    # fmt: on


def create_all_tables(engine: Engine | None = None) -> None:
    """
    Create kernel, module and batch tables.

    Preconditions:
        ``engine`` is given, or the engine was initialized via
        ``init_engine_from_url()``.
    """
    from supply_kernel.db.engine import create_tables

    import_all_orm_models()
    create_tables(engine)
