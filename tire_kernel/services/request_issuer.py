"""
RequestIssuer -- one allocation transaction from request to redemption token.

Responsibility:
    Drives the creation protocol for a tire request:

      create(user_id, tire_id, station_id, quantity)
        1. Validate preconditions: quantity bounds, station given and known,
           tire known, user eligible.
        2. QuotaLedger.check_availability  -> QuotaExceededError
        3. Unit of work:
           a. InventoryStore.reserve       -> OutOfStockError (rollback)
           b. RequestLedger.record_request (token + PENDING + status event)
        4. Commit.
        5. After commit: CacheMirror.set(remaining) -- best effort.

Architecture position:
    Kernel > Services -- imperative shell, owns the transaction boundary.
    One RequestIssuer (and one Session) per concurrent worker.

Invariants enforced:
    - No request row without a successful reservation, and no reservation
      without a persisted request: 3a-3b commit or roll back together.
    - The cache is written only after commit and its failure never reaches
      the caller nor undoes the commit.

Failure modes:
    - NotEligibleError, StationRequiredError, StationNotFoundError,
      ItemNotFoundError, InvalidQuantityError: no side effects.
    - QuotaExceededError: no side effects.
    - OutOfStockError: transaction rolled back, no request created.
"""

import time
from uuid import UUID, uuid4

from sqlalchemy.orm import Session

from tire_kernel.domain.clock import Clock, SystemClock
from tire_kernel.domain.dtos import IssuedRequest, QuotaCheck, TireRequestInfo
from tire_kernel.domain.quota_policy import QuotaPolicy
from tire_kernel.exceptions import (
    ItemNotFoundError,
    NotEligibleError,
    OutOfStockError,
    QuotaExceededError,
    StationNotFoundError,
    StationRequiredError,
    TireKernelError,
)
from tire_kernel.logging_config import LogContext, get_logger
from tire_kernel.models.station import Station
from tire_kernel.models.tire import TireDefinition, category_key
from tire_kernel.services.cache_mirror import CacheMirror
from tire_kernel.services.eligibility import EligibilitySource
from tire_kernel.services.inventory_store import InventoryStore
from tire_kernel.services.quota_ledger import QuotaLedger
from tire_kernel.services.request_ledger import RequestLedger

logger = get_logger("services.request_issuer")


class RequestIssuer:
    """
    Allocation orchestrator.

    Contract:
        Either returns an ``IssuedRequest`` with the committed request, the
        post-reservation stock and updated quota figures, or raises a typed
        TireKernelError with the session rolled back.

    Non-goals:
        - Does NOT decide eligibility (EligibilitySource does).
        - Does NOT render QR artifacts (see domain.tokens).
    """

    def __init__(
        self,
        session: Session,
        eligibility: EligibilitySource,
        cache_mirror: CacheMirror | None = None,
        quota_policy: QuotaPolicy | None = None,
        clock: Clock | None = None,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._eligibility = eligibility
        self._mirror = cache_mirror
        self._policy = quota_policy or QuotaPolicy()
        self._quota = QuotaLedger(session, self._policy, self._clock)
        self._inventory = InventoryStore(session, self._clock)
        self._ledger = RequestLedger(session, self._clock)

    def create(
        self,
        user_id: UUID,
        tire_id: UUID,
        station_id: UUID | None,
        quantity: int = 1,
    ) -> IssuedRequest:
        """
        Allocate ``quantity`` units of ``tire_id`` at ``station_id``.

        Postconditions:
            - On success the request, its status event and the stock
              decrement are committed together.
            - On failure the session is rolled back and nothing is written.
        """
        with LogContext.bind(
            correlation_id=str(uuid4()),
            actor_id=str(user_id),
            station_id=str(station_id) if station_id else None,
        ):
            logger.info(
                "request_issue_started",
                extra={"tire_id": str(tire_id), "quantity": quantity},
            )
            t0 = time.monotonic()
            try:
                issued = self._do_create(user_id, tire_id, station_id, quantity)
                self._session.commit()
            except TireKernelError as exc:
                self._session.rollback()
                logger.info(
                    "request_issue_rejected",
                    extra={
                        "reason": exc.code,
                        "duration_ms": round((time.monotonic() - t0) * 1000, 2),
                    },
                )
                raise
            except Exception:
                self._session.rollback()
                logger.error(
                    "request_issue_failed",
                    extra={"duration_ms": round((time.monotonic() - t0) * 1000, 2)},
                    exc_info=True,
                )
                raise

            duration_ms = round((time.monotonic() - t0) * 1000, 2)
            logger.info(
                "request_issue_completed",
                extra={
                    "request_id": str(issued.request.id),
                    "remaining_stock": issued.remaining_stock,
                    "quota_used": issued.quota.used,
                    "duration_ms": duration_ms,
                },
            )

        # Outbox order: the commit above is durable before the cache is touched.
        if self._mirror is not None:
            self._mirror.set(station_id, tire_id, issued.remaining_stock)
        return issued

    def _validate_preconditions(
        self,
        user_id: UUID,
        tire_id: UUID,
        station_id: UUID | None,
        quantity: int,
    ) -> TireDefinition:
        self._policy.validate_quantity(quantity)

        if station_id is None:
            raise StationRequiredError()
        if self._session.get(Station, station_id) is None:
            raise StationNotFoundError(str(station_id))

        tire = self._session.get(TireDefinition, tire_id)
        if tire is None:
            raise ItemNotFoundError(str(tire_id))

        if not self._eligibility.is_eligible(user_id):
            raise NotEligibleError(str(user_id))
        return tire

    def _do_create(
        self,
        user_id: UUID,
        tire_id: UUID,
        station_id: UUID | None,
        quantity: int,
    ) -> IssuedRequest:
        tire = self._validate_preconditions(user_id, tire_id, station_id, quantity)
        year = self._clock.current_year()

        # Read inside this transaction; see QuotaLedger for the isolation note.
        quota = self._quota.check_availability(user_id, tire.category, quantity, year)
        if not quota.available:
            raise QuotaExceededError(
                user_id=str(user_id),
                category=category_key(tire.category),
                requested=quantity,
                remaining=quota.remaining,
                max_quota=quota.max_quota,
            )

        reservation = self._inventory.reserve(station_id, tire_id, quantity)
        if not reservation.ok:
            raise OutOfStockError(
                station_id=str(station_id),
                item_id=str(tire_id),
                requested=quantity,
                available=reservation.remaining,
            )

        request = self._ledger.record_request(
            user_id=user_id,
            tire_id=tire_id,
            station_id=station_id,
            quantity=quantity,
            year=year,
        )

        used = quota.used + quantity
        return IssuedRequest(
            request=TireRequestInfo.from_model(request),
            remaining_stock=reservation.remaining,
            quota=QuotaCheck(
                available=quota.max_quota - used > 0,
                used=used,
                remaining=quota.max_quota - used,
                max_quota=quota.max_quota,
            ),
        )
