"""
BaseService -- shared plumbing for the kernel's writers.

Responsibility:
    Holds the caller's ``Session`` and the injected ``Clock``, and provides
    ``savepoint()`` for the writes that must fail on their own: a duplicate
    PDR insert, a duplicate behavior, a single audit row, one record of a
    batch rating save.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.

Invariants enforced:
    Services flush within the caller's transaction and never commit or roll
    back the outer transaction.  The caller (request handler,
    ``session_scope()`` or test harness) owns it.  A failed savepoint
    discards only the work done inside it.
"""

from abc import ABC
from contextlib import contextmanager
from typing import Generic, Iterator, TypeVar

from sqlalchemy.orm import Session, SessionTransaction

from pdr_kernel.db.base import Base
from pdr_kernel.domain.clock import Clock, SystemClock

ModelType = TypeVar("ModelType", bound=Base)


class BaseService(ABC, Generic[ModelType]):
    """Base for services that write ``ModelType`` rows."""

    def __init__(self, session: Session, clock: Clock | None = None):
        self.session = session
        self._clock = clock or SystemClock()

    @contextmanager
    def savepoint(self) -> Iterator[SessionTransaction]:
        """
        Run the block inside a SAVEPOINT and flush before releasing it.

        Any exception (including one raised by the flush) rolls back to the
        savepoint and propagates; the outer transaction stays usable.
        """
        nested = self.session.begin_nested()
        try:
            yield nested
            self.session.flush()
        except Exception:
            nested.rollback()
            raise
        nested.commit()
