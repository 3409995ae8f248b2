"""
SequenceService -- monotonic counters and year-scoped document numbers.

Responsibility:
    Allocates the numeric part of requisition and purchase order numbers
    (``PR202600001``, ``PO202600001``) and the run sequence of batch jobs.
    A dedicated counter table with row-level locking replaces any
    "read the latest number and add one" lookup.

Architecture position:
    Kernel > Services.  Flush-only: the caller's transaction decides
    whether the allocated value is kept.

Invariants enforced:
    - Monotonic: each allocation returns a value strictly greater than any
      previously committed value for the same counter.
    - Gapless per year under normal operation: a rolled-back caller
      returns its value to the counter.
    - Document numbers reset every calendar year because the year is part
      of the counter name.

Failure modes:
    - IntegrityError while two transactions create the same counter row:
      handled with a SAVEPOINT rollback and a locked re-read.
"""

from sqlalchemy import BigInteger, String, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Mapped, Session, mapped_column

from supply_kernel.db.base import Base
from supply_kernel.logging_config import get_logger

logger = get_logger("services.sequence")


class SequenceCounter(Base):
    """One named counter; the row lock serializes concurrent allocations."""

    __tablename__ = "sequence_counters"

    # e.g. "PR-2026", "PO-2026", "job_run"
    name: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)

    current_value: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)


class SequenceService:
    """
    Transactional counter allocation.

    Contract:
        ``next_value(name)`` returns the next integer for ``name``.  The
        increment becomes durable only when the caller commits.

    Non-goals:
        - Does NOT commit.  Callers own the transaction boundary.
    """

    JOB_RUN = "job_run"

    def __init__(self, session: Session):
        self._session = session

    def _locked_counter(self, name: str) -> SequenceCounter | None:
        return self._session.execute(
            select(SequenceCounter)
            .where(SequenceCounter.name == name)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def next_value(self, name: str) -> int:
        """
        Lock (or create) the counter row, increment it and return the new value.

        Postconditions:
            - Returned value > 0 and greater than every committed value
              for ``name``.
        """
        counter = self._locked_counter(name)

        if counter is None:
            # First use of this counter. Another transaction may create it
            # at the same moment; the SAVEPOINT keeps the caller's work.
            savepoint = self._session.begin_nested()
            try:
                counter = SequenceCounter(name=name, current_value=1)
                self._session.add(counter)
                self._session.flush()
                savepoint.commit()
                logger.debug("sequence_allocated", extra={"sequence_name": name, "value": 1})
                return 1
            except IntegrityError:
                savepoint.rollback()
                logger.debug("sequence_counter_race_retry", extra={"sequence_name": name})
                counter = self._locked_counter(name)
                if counter is None:
                    raise

        counter.current_value += 1
        self._session.flush()
        logger.debug(
            "sequence_allocated",
            extra={"sequence_name": name, "value": counter.current_value},
        )
        return counter.current_value

    def current_value(self, name: str) -> int | None:
        counter = self._session.execute(
            select(SequenceCounter).where(SequenceCounter.name == name)
        ).scalar_one_or_none()
        return counter.current_value if counter else None


class DocumentNumberService:
    """
    Formats ``<PREFIX><YYYY><NNNNN>`` document numbers over SequenceService.

    Guarantees:
        - One counter per (prefix, year), so numbering restarts at 00001
          each calendar year and PR/PO numbering never interleave.
        - The five-digit part is zero padded; values above 99999 widen
          rather than wrap.
    """

    SEQUENCE_WIDTH = 5

    def __init__(self, session: Session, sequence_service: SequenceService | None = None):
        self._sequence = sequence_service or SequenceService(session)

    @staticmethod
    def counter_name(prefix: str, year: int) -> str:
        return f"{prefix}-{year:04d}"

    @classmethod
    def format_number(cls, prefix: str, year: int, value: int) -> str:
        return f"{prefix}{year:04d}{value:0{cls.SEQUENCE_WIDTH}d}"

    @classmethod
    def parse_number(cls, prefix: str, number: str) -> tuple[int, int]:
        """
        Split a document number into (year, sequence).

        Raises:
            ValueError: If ``number`` does not have the expected shape.
        """
        body = number[len(prefix):] if number.startswith(prefix) else ""
        if len(body) < 4 + cls.SEQUENCE_WIDTH or not body.isdigit():
            raise ValueError(f"Not a {prefix} document number: {number!r}")
        return int(body[:4]), int(body[4:])

    def next_number(self, prefix: str, year: int) -> str:
        value = self._sequence.next_value(self.counter_name(prefix, year))
        number = self.format_number(prefix, year, value)
        logger.info(
            "document_number_allocated",
            extra={"prefix": prefix, "year": year, "document_number": number},
        )
        return number
