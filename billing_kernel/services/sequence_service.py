"""
SequenceService -- monotonic sequence allocation via locked counter rows.

Responsibility:
    Strictly increasing numbers per named sequence, used for boleta folios.
    A dedicated counter row is locked with ``SELECT ... FOR UPDATE`` so
    concurrent billing runs never hand out the same folio.

Invariants enforced:
    - The counter row is the only source of the next value.  Folios are
      never computed as MAX(folio) + 1.
    - The increment is part of the caller's transaction; a rollback returns
      the value.

Failure modes:
    - IntegrityError on a concurrent first use of a sequence name, handled
      by a savepoint rollback and retry.
"""

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from billing_kernel.logging_config import get_logger
from billing_kernel.models.sequence import SequenceCounter

logger = get_logger("services.sequence")


class SequenceService:
    """
    Named, transactional sequence numbers.

    Usage:
        with session_scope() as session:
            folio = SequenceService(session).next_value("boleta_folio")
    """

    BOLETA_FOLIO = "boleta_folio"

    def __init__(self, session: Session):
        self._session = session

    def _locked_counter(self, sequence_name: str) -> SequenceCounter | None:
        return self._session.execute(
            select(SequenceCounter)
            .where(SequenceCounter.name == sequence_name)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def next_value(self, sequence_name: str) -> int:
        """
        Lock the counter row (creating it on first use), increment, return.

        Returns:
            The next value, always > 0.
        """
        self._session.expire_all()

        counter = self._locked_counter(sequence_name)

        if counter is None:
            savepoint = self._session.begin_nested()
            try:
                counter = SequenceCounter(name=sequence_name, current_value=1)
                self._session.add(counter)
                self._session.flush()
                savepoint.commit()
                logger.debug(
                    "sequence_allocated",
                    extra={"sequence_name": sequence_name, "value": 1},
                )
                return 1
            except IntegrityError:
                logger.debug(
                    "sequence_counter_race_retry",
                    extra={"sequence_name": sequence_name},
                )
                savepoint.rollback()
                self._session.expire_all()
                counter = self._locked_counter(sequence_name)
                if counter is None:
                    raise

        counter.current_value += 1
        self._session.flush()
        logger.debug(
            "sequence_allocated",
            extra={"sequence_name": sequence_name, "value": counter.current_value},
        )
        return counter.current_value

    def current_value(self, sequence_name: str) -> int | None:
        """Current value without incrementing; None if never used."""
        counter = self._session.execute(
            select(SequenceCounter).where(SequenceCounter.name == sequence_name)
        ).scalar_one_or_none()
        return counter.current_value if counter else None

    def reset(self, sequence_name: str, value: int = 0) -> None:
        """
        Set a sequence to ``value``, e.g. to continue folios from a legacy system.

        The next allocation returns ``value + 1``.
        """
        counter = self._locked_counter(sequence_name)
        if counter is None:
            self._session.add(SequenceCounter(name=sequence_name, current_value=value))
        else:
            counter.current_value = value
        self._session.flush()


class SequenceFolioAllocator:
    """FolioAllocator backed by a named sequence."""

    def __init__(self, sequences: SequenceService, sequence_name: str = SequenceService.BOLETA_FOLIO):
        self._sequences = sequences
        self._sequence_name = sequence_name

    def next_folio(self) -> int:
        return self._sequences.next_value(self._sequence_name)
