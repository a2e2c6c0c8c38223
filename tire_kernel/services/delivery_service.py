"""
DeliveryService -- redemption token checks at the station counter.

Responsibility:
    A seller scans a request's token.  ``validate_token`` reports whether
    the handoff may proceed; ``complete_delivery`` performs it through
    RequestLifecycle so token consumption, delivery timestamp and status
    history are written in one unit of work.

Validation order:
    TOKEN_NOT_FOUND -> ALREADY_REDEEMED -> NOT_READY -> STATION_MISMATCH
"""

from uuid import UUID

from sqlalchemy.orm import Session

from tire_kernel.db.engine import standalone_read
from tire_kernel.domain.clock import Clock
from tire_kernel.domain.dtos import (
    TireRequestInfo,
    TokenRejection,
    TokenValidation,
    TransitionResult,
)
from tire_kernel.exceptions import (
    AlreadyRedeemedError,
    InvalidTransitionError,
    StationMismatchError,
    TokenNotFoundError,
)
from tire_kernel.logging_config import get_logger
from tire_kernel.models.request import RequestStatus
from tire_kernel.services.cache_mirror import CacheMirror
from tire_kernel.services.request_ledger import RequestLedger
from tire_kernel.services.request_lifecycle import RequestLifecycle

logger = get_logger("services.delivery")


class DeliveryService:
    def __init__(
        self,
        session: Session,
        cache_mirror: CacheMirror | None = None,
        clock: Clock | None = None,
    ):
        self._session = session
        self._ledger = RequestLedger(session, clock)
        self._lifecycle = RequestLifecycle(session, cache_mirror, clock)

    def validate_token(self, token: str, station_id: UUID) -> TokenValidation:
        """Read-only check of a scanned token at ``station_id``.

        Called outside a unit of work, the read transaction is ended before
        returning.
        """
        with standalone_read(self._session):
            return self._check_token(token, station_id)

    def _check_token(self, token: str, station_id: UUID) -> TokenValidation:
        request = self._ledger.find_by_token(token)
        if request is None:
            return TokenValidation(valid=False, reason=TokenRejection.TOKEN_NOT_FOUND)

        info = TireRequestInfo.from_model(request)
        if info.redeemed:
            reason = TokenRejection.ALREADY_REDEEMED
        elif info.status != RequestStatus.READY:
            reason = TokenRejection.NOT_READY
        elif info.station_id != station_id:
            reason = TokenRejection.STATION_MISMATCH
        else:
            return TokenValidation(valid=True, request=info)

        logger.info(
            "token_validation_failed",
            extra={"request_id": str(info.id), "reason": reason},
        )
        return TokenValidation(valid=False, reason=reason, request=info)

    def complete_delivery(
        self,
        token: str,
        station_id: UUID,
        actor_id: UUID,
        note: str | None = "Delivered via QR code scan",
    ) -> TransitionResult:
        """
        Consume ``token`` and mark its request DELIVERED.

        Raises:
            TokenNotFoundError, AlreadyRedeemedError, InvalidTransitionError
            (not READY), StationMismatchError.
        """
        validation = self.validate_token(token, station_id)
        if not validation.valid:
            # Close the read transaction before reporting.
            self._session.rollback()
            request = validation.request
            if validation.reason == TokenRejection.TOKEN_NOT_FOUND:
                raise TokenNotFoundError()
            if validation.reason == TokenRejection.ALREADY_REDEEMED:
                raise AlreadyRedeemedError(str(request.id))
            if validation.reason == TokenRejection.NOT_READY:
                raise InvalidTransitionError(
                    str(request.id), request.status.value, RequestStatus.DELIVERED.value
                )
            raise StationMismatchError(
                str(request.id), str(request.station_id), str(station_id)
            )

        # RequestLifecycle re-checks redeemed/status under the row lock.
        return self._lifecycle.transition(
            validation.request.id,
            RequestStatus.DELIVERED,
            actor_id,
            note,
            station_id=station_id,
        )
