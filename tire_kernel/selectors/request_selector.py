"""
Module: tire_kernel.selectors.request_selector
Responsibility: Read access to tire requests and their status history for
    the user-facing and station-facing listings.

Invariants enforced:
    - A user only sees their own requests; a foreign request is reported as
      RequestNotFoundError, never as a permission error.
    - Listings are newest first; history is newest first, ordered along the
      lifecycle so events stamped with the same instant stay in order.
"""

from uuid import UUID

from sqlalchemy import case, func, select

from tire_kernel.domain.dtos import (
    Page,
    RequestDetail,
    StatusEventInfo,
    TireInfo,
    TireRequestInfo,
)
from tire_kernel.domain.lifecycle import STATUS_RANK
from tire_kernel.exceptions import RequestNotFoundError
from tire_kernel.models.request import RequestStatus, RequestStatusEvent, TireRequest
from tire_kernel.models.tire import TireDefinition
from tire_kernel.selectors.base import BaseSelector

_status_rank = case(
    {status.value: rank for status, rank in STATUS_RANK.items()},
    value=RequestStatusEvent.status,
)


class RequestSelector(BaseSelector):
    def _page(self, conditions, page: int, limit: int) -> Page[TireRequestInfo]:
        page, limit, offset = self._page_bounds(page, limit)
        total = self.session.execute(
            select(func.count()).select_from(TireRequest).where(*conditions)
        ).scalar_one()
        rows = self.session.execute(
            select(TireRequest)
            .where(*conditions)
            .order_by(TireRequest.created_at.desc(), TireRequest.id)
            .offset(offset)
            .limit(limit)
        ).scalars()
        return Page(
            items=tuple(TireRequestInfo.from_model(r) for r in rows),
            page=page,
            limit=limit,
            total=total,
        )

    def list_for_user(
        self,
        user_id: UUID,
        page: int = 1,
        limit: int = BaseSelector.DEFAULT_LIMIT,
    ) -> Page[TireRequestInfo]:
        return self._page([TireRequest.user_id == user_id], page, limit)

    def list_for_station(
        self,
        station_id: UUID,
        status: RequestStatus | None = None,
        page: int = 1,
        limit: int = BaseSelector.DEFAULT_LIMIT,
    ) -> Page[TireRequestInfo]:
        conditions = [TireRequest.station_id == station_id]
        if status is not None:
            conditions.append(TireRequest.status == RequestStatus(status).value)
        return self._page(conditions, page, limit)

    def history(self, request_id: UUID) -> tuple[StatusEventInfo, ...]:
        rows = self.session.execute(
            select(RequestStatusEvent)
            .where(RequestStatusEvent.request_id == request_id)
            .order_by(_status_rank.desc(), RequestStatusEvent.created_at.desc())
        ).scalars()
        return tuple(StatusEventInfo.from_model(e) for e in rows)

    def _detail(self, request: TireRequest) -> RequestDetail:
        tire = self.session.get(TireDefinition, request.tire_id)
        return RequestDetail(
            request=TireRequestInfo.from_model(request),
            tire=TireInfo.from_model(tire),
            history=self.history(request.id),
        )

    def get_for_user(self, user_id: UUID, request_id: UUID) -> RequestDetail:
        request = self.session.execute(
            select(TireRequest).where(
                TireRequest.id == request_id,
                TireRequest.user_id == user_id,
            )
        ).scalar_one_or_none()
        if request is None:
            raise RequestNotFoundError(str(request_id))
        return self._detail(request)

    def get_by_token(self, token: str) -> RequestDetail | None:
        request = self.session.execute(
            select(TireRequest).where(TireRequest.token == token)
        ).scalar_one_or_none()
        if request is None:
            return None
        return self._detail(request)
