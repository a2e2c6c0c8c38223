"""
RequestLedger -- append-only record of requests and their status history.

Responsibility:
    Persists TireRequest rows with a freshly generated redemption token,
    appends RequestStatusEvent rows, and loads requests for update.

Architecture position:
    Kernel > Services.  Flush-only; used by RequestIssuer and
    RequestLifecycle inside their units of work.

Invariants enforced:
    - Every persisted request gets its initial status event in the same
      flush.
    - Token uniqueness is a storage constraint.  A collision (negligible
      with 256 random bits) is retried with a new token inside a savepoint
      so the surrounding reservation is not rolled back.

Failure modes:
    - IntegrityError after MAX_TOKEN_ATTEMPTS consecutive collisions.
"""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from tire_kernel.domain.tokens import generate_redemption_token
from tire_kernel.logging_config import get_logger
from tire_kernel.models.request import RequestStatus, RequestStatusEvent, TireRequest
from tire_kernel.services.base import BaseService

logger = get_logger("services.request_ledger")


class RequestLedger(BaseService):
    """Request persistence within the caller's transaction."""

    MAX_TOKEN_ATTEMPTS = 3

    def record_request(
        self,
        user_id: UUID,
        tire_id: UUID,
        station_id: UUID | None,
        quantity: int,
        year: int,
        note: str | None = "Request created",
    ) -> TireRequest:
        """
        Insert a PENDING request plus its creation status event.

        Postconditions:
            - The request and one PENDING status event are flushed.
        """
        now = self._clock.now()

        for attempt in range(1, self.MAX_TOKEN_ATTEMPTS + 1):
            savepoint = self.session.begin_nested()
            request = TireRequest(
                user_id=user_id,
                tire_id=tire_id,
                station_id=station_id,
                status=RequestStatus.PENDING.value,
                quantity=quantity,
                year=year,
                token=generate_redemption_token(),
                redeemed=False,
                created_at=now,
                updated_at=now,
            )
            try:
                self.session.add(request)
                self.session.flush()
                self._add_event(request.id, RequestStatus.PENDING, user_id, note, now)
                self.session.flush()
                savepoint.commit()
                break
            except IntegrityError:
                savepoint.rollback()
                if attempt == self.MAX_TOKEN_ATTEMPTS:
                    raise
                logger.warning(
                    "request_token_collision_retry",
                    extra={"attempt": attempt},
                )

        logger.info(
            "request_recorded",
            extra={
                "request_id": str(request.id),
                "user_id": str(user_id),
                "tire_id": str(tire_id),
                "station_id": str(station_id) if station_id else None,
                "quantity": quantity,
                "year": year,
            },
        )
        return request

    def _add_event(self, request_id, status, actor_id, note, created_at) -> RequestStatusEvent:
        event = RequestStatusEvent(
            request_id=request_id,
            status=RequestStatus(status).value,
            actor_id=actor_id,
            note=note,
            created_at=created_at,
        )
        self.session.add(event)
        return event

    def append_event(
        self,
        request: TireRequest,
        status: RequestStatus,
        actor_id: UUID,
        note: str | None = None,
    ) -> RequestStatusEvent:
        """Append one status history row for ``request``."""
        event = self._add_event(request.id, status, actor_id, note, self._clock.now())
        self.session.flush()
        logger.debug(
            "request_status_event_appended",
            extra={
                "request_id": str(request.id),
                "status": RequestStatus(status).value,
                "actor_id": str(actor_id),
            },
        )
        return event

    def lock_request(self, request_id: UUID) -> TireRequest | None:
        """Load a request with a row lock held until the transaction ends."""
        return self.session.execute(
            select(TireRequest)
            .where(TireRequest.id == request_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def find_by_token(self, token: str, for_update: bool = False) -> TireRequest | None:
        stmt = select(TireRequest).where(TireRequest.token == token)
        if for_update:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        return self.session.execute(stmt).scalar_one_or_none()
