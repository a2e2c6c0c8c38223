"""
QuotaLedger -- consumed quota derived from the request history.

Responsibility:
    Computes how many units of a category a user has consumed in a calendar
    year and whether a new request fits under the category's annual cap.
    Nothing is stored: the figure is always summed from ``tire_requests``.

Architecture position:
    Kernel > Services.  Read-only, but runs inside RequestIssuer's unit of
    work so the quota read and the stock reservation share one transaction.

Isolation choice:
    The sum is read at READ COMMITTED.  Two concurrent requests from the
    same user can both observe the same ``used`` figure and both pass; the
    window is one transaction wide.  Quota is advisory per user and
    same-user double submission is rare, so the engine accepts this rather
    than serialising every allocation per user.  Stock can never oversell
    because the reservation itself is a conditional UPDATE.
"""

from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from tire_kernel.domain.clock import Clock
from tire_kernel.domain.dtos import QuotaCheck
from tire_kernel.domain.quota_policy import QuotaPolicy
from tire_kernel.logging_config import get_logger
from tire_kernel.models.request import TireRequest
from tire_kernel.models.tire import TireDefinition, category_key
from tire_kernel.services.base import BaseService

logger = get_logger("services.quota")


class QuotaLedger(BaseService):
    """Quota window evaluation against a QuotaPolicy."""

    def __init__(
        self,
        session: Session,
        policy: QuotaPolicy | None = None,
        clock: Clock | None = None,
    ):
        super().__init__(session, clock)
        self._policy = policy or QuotaPolicy()

    @property
    def policy(self) -> QuotaPolicy:
        return self._policy

    def max_quota(self, category: str) -> int:
        """Static annual cap for ``category``."""
        return self._policy.max_quota(category)

    def used(self, user_id: UUID, category: str, year: int) -> int:
        """Units counted against the (user, category, year) window."""
        total = self.session.execute(
            select(func.coalesce(func.sum(TireRequest.quantity), 0))
            .join(TireDefinition, TireDefinition.id == TireRequest.tire_id)
            .where(
                TireRequest.user_id == user_id,
                TireRequest.year == year,
                TireDefinition.category == category_key(category),
                TireRequest.status.in_(self._policy.counted_statuses()),
            )
        ).scalar_one()
        return int(total)

    def check_availability(
        self,
        user_id: UUID,
        category: str,
        requested_quantity: int,
        year: int | None = None,
    ) -> QuotaCheck:
        """
        Compare remaining headroom against ``requested_quantity``.

        Raises:
            QuotaNotConfiguredError: If the category has no cap.
        """
        resolved_year = year if year is not None else self._clock.current_year()
        max_quota = self.max_quota(category)
        used = self.used(user_id, category, resolved_year)
        remaining = max_quota - used

        check = QuotaCheck(
            available=remaining >= requested_quantity,
            used=used,
            remaining=remaining,
            max_quota=max_quota,
        )
        logger.debug(
            "quota_checked",
            extra={
                "user_id": str(user_id),
                "category": category_key(category),
                "year": resolved_year,
                "requested": requested_quantity,
                "used": used,
                "remaining": remaining,
                "max_quota": max_quota,
            },
        )
        return check
