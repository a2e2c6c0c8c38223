"""
RequestLifecycle -- post-creation status transitions and their side effects.

Responsibility:
    Moves a request through PENDING -> PREPARING -> READY -> DELIVERED, or to
    CANCELLED from any non-terminal status, inside one unit of work:

      transition(request_id, new_status, actor_id, note, station_id=None)
        1. Lock the request row (SELECT ... FOR UPDATE).
        2. DELIVERED on a redeemed token     -> AlreadyRedeemedError
        3. Move not in the transition table  -> InvalidTransitionError
        4. CANCELLED: InventoryStore.release (restitution, same transaction)
           DELIVERED: stamp delivered_at, redeemed = True
        5. Append one RequestStatusEvent.
        6. Commit; then re-sync the cache if stock changed.

Architecture position:
    Kernel > Services -- imperative shell, owns the transaction boundary.

Invariants enforced:
    - Restitution happens at most once per request: after a cancellation
      the request is terminal, so a second cancel is an invalid transition.
    - DELIVERED and CANCELLED are terminal; a late cancel racing a delivery
      observes DELIVERED under the row lock and is rejected.
    - Rejected transitions leave no trace (rollback, no status event).

Failure modes:
    - RequestNotFoundError: unknown id, or outside the given station scope.
    - InvalidTransitionError, AlreadyRedeemedError.
    - InventoryNotFoundError if the reserved inventory row has vanished.
"""

import time
from uuid import UUID

from sqlalchemy.orm import Session

from tire_kernel.domain.clock import Clock, SystemClock
from tire_kernel.domain.dtos import TireRequestInfo, TransitionResult
from tire_kernel.domain.lifecycle import can_transition, releases_stock
from tire_kernel.exceptions import (
    AlreadyRedeemedError,
    InvalidTransitionError,
    RequestNotFoundError,
    TireKernelError,
)
from tire_kernel.logging_config import LogContext, get_logger
from tire_kernel.models.request import RequestStatus, TireRequest
from tire_kernel.services.cache_mirror import CacheMirror
from tire_kernel.services.inventory_store import InventoryStore
from tire_kernel.services.request_ledger import RequestLedger

logger = get_logger("services.request_lifecycle")


class RequestLifecycle:
    """
    Request state machine with transactional side effects.

    Non-goals:
        - Does NOT validate tokens presented at a counter; DeliveryService
          does that before asking for DELIVERED.
    """

    def __init__(
        self,
        session: Session,
        cache_mirror: CacheMirror | None = None,
        clock: Clock | None = None,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._mirror = cache_mirror
        self._inventory = InventoryStore(session, self._clock)
        self._ledger = RequestLedger(session, self._clock)

    def transition(
        self,
        request_id: UUID,
        new_status: RequestStatus,
        actor_id: UUID,
        note: str | None = None,
        station_id: UUID | None = None,
    ) -> TransitionResult:
        """
        Apply one status change.

        Args:
            request_id: Request to move.
            new_status: Target status.
            actor_id: Who asked for the change (user, seller, or system).
            note: Free text stored on the status event.
            station_id: If given, the request must belong to this station.

        Returns:
            TransitionResult with the committed request snapshot.
        """
        target = RequestStatus(new_status)
        with LogContext.bind(request_id=str(request_id), actor_id=str(actor_id)):
            t0 = time.monotonic()
            try:
                result = self._do_transition(request_id, target, actor_id, note, station_id)
                self._session.commit()
            except TireKernelError as exc:
                self._session.rollback()
                logger.info(
                    "request_transition_rejected",
                    extra={"target_status": target.value, "reason": exc.code},
                )
                raise
            except Exception:
                self._session.rollback()
                logger.error(
                    "request_transition_failed",
                    extra={"target_status": target.value},
                    exc_info=True,
                )
                raise

            logger.info(
                "request_transitioned",
                extra={
                    "from_status": result.previous_status.value,
                    "to_status": target.value,
                    "stock_remaining": result.stock_remaining,
                    "duration_ms": round((time.monotonic() - t0) * 1000, 2),
                },
            )

        request = result.request
        if self._mirror is not None and result.stock_remaining is not None:
            self._mirror.set(request.station_id, request.tire_id, result.stock_remaining)
        return result

    def cancel(
        self,
        request_id: UUID,
        actor_id: UUID,
        note: str | None = "Request cancelled",
    ) -> TransitionResult:
        return self.transition(request_id, RequestStatus.CANCELLED, actor_id, note)

    def _do_transition(
        self,
        request_id: UUID,
        target: RequestStatus,
        actor_id: UUID,
        note: str | None,
        station_id: UUID | None,
    ) -> TransitionResult:
        request = self._ledger.lock_request(request_id)
        if request is None:
            raise RequestNotFoundError(str(request_id))
        if station_id is not None and request.station_id != station_id:
            raise RequestNotFoundError(str(request_id))

        current = RequestStatus(request.status)

        if target == RequestStatus.DELIVERED and request.redeemed:
            raise AlreadyRedeemedError(str(request.id))
        if not can_transition(current, target):
            raise InvalidTransitionError(str(request.id), current.value, target.value)

        stock_remaining = None
        if releases_stock(current, target) and request.station_id is not None:
            # Restitution commits together with the status change.
            stock_remaining = self._inventory.release(
                request.station_id, request.tire_id, request.quantity
            )

        now = self._clock.now()
        if target == RequestStatus.DELIVERED:
            request.delivered_at = now
            request.redeemed = True

        request.status = target.value
        request.updated_at = now
        self._ledger.append_event(request, target, actor_id, note)

        return TransitionResult(
            request=TireRequestInfo.from_model(request),
            previous_status=current,
            stock_remaining=stock_remaining,
        )
