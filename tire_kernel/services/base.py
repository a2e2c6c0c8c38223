"""
BaseService -- abstract base for flush-only kernel services.

Responsibility:
    Provides the common constructor for services that write inside a
    caller-owned transaction.  Subclasses use ``session.flush()`` and never
    ``session.commit()``.

Architecture position:
    Kernel > Services.  InventoryStore, QuotaLedger and RequestLedger extend
    this class.  The orchestrators (RequestIssuer, RequestLifecycle) own the
    commit/rollback boundary and do not.
"""

from abc import ABC

from sqlalchemy.orm import Session

from tire_kernel.domain.clock import Clock, SystemClock


class BaseService(ABC):
    """
    Abstract base class for flush-only services.

    Guarantees:
        - The service never calls ``session.commit()`` or
          ``session.rollback()``; the caller controls transaction
          boundaries, so multi-step allocations stay atomic.
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        self.session = session
        self._clock = clock or SystemClock()
