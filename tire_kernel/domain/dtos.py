"""
DTOs -- immutable data transfer objects returned by services and selectors.

Responsibility:
    Services and selectors hand these frozen dataclasses to callers instead
    of ORM rows, so nothing outside a unit of work can mutate persisted
    state by accident.  ``from_model`` converters are only called from the
    service and selector layers.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Generic, TypeVar
from uuid import UUID

from tire_kernel.models.request import RequestStatus
from tire_kernel.models.tire import category_key

if TYPE_CHECKING:
    from tire_kernel.models.request import RequestStatusEvent, TireRequest
    from tire_kernel.models.tire import TireDefinition

T = TypeVar("T")


@dataclass(frozen=True)
class ReservationResult:
    """Outcome of a conditional stock reservation.

    ``ok=False`` is an expected outcome, not a fault; ``remaining`` is then
    the quantity observed at the time of the attempt (0 if no row exists).
    """

    ok: bool
    remaining: int


@dataclass(frozen=True)
class QuotaCheck:
    """Quota headroom for one (user, category, year) window."""

    available: bool
    used: int
    remaining: int
    max_quota: int


@dataclass(frozen=True)
class TireInfo:
    id: UUID
    category: str
    dimension: str
    description: str | None = None

    @classmethod
    def from_model(cls, tire: TireDefinition) -> TireInfo:
        return cls(
            id=tire.id,
            category=category_key(tire.category),
            dimension=tire.dimension,
            description=tire.description,
        )


@dataclass(frozen=True)
class TireRequestInfo:
    """Snapshot of a TireRequest row."""

    id: UUID
    user_id: UUID
    tire_id: UUID
    station_id: UUID | None
    status: RequestStatus
    quantity: int
    year: int
    token: str
    redeemed: bool
    created_at: datetime
    updated_at: datetime
    delivered_at: datetime | None = None

    @classmethod
    def from_model(cls, request: TireRequest) -> TireRequestInfo:
        return cls(
            id=request.id,
            user_id=request.user_id,
            tire_id=request.tire_id,
            station_id=request.station_id,
            status=RequestStatus(request.status),
            quantity=request.quantity,
            year=request.year,
            token=request.token,
            redeemed=request.redeemed,
            created_at=request.created_at,
            updated_at=request.updated_at,
            delivered_at=request.delivered_at,
        )


@dataclass(frozen=True)
class StatusEventInfo:
    request_id: UUID
    status: RequestStatus
    actor_id: UUID
    note: str | None
    created_at: datetime

    @classmethod
    def from_model(cls, event: RequestStatusEvent) -> StatusEventInfo:
        return cls(
            request_id=event.request_id,
            status=RequestStatus(event.status),
            actor_id=event.actor_id,
            note=event.note,
            created_at=event.created_at,
        )


@dataclass(frozen=True)
class RequestDetail:
    """A request with its tire and status history (newest first)."""

    request: TireRequestInfo
    tire: TireInfo
    history: tuple[StatusEventInfo, ...]


@dataclass(frozen=True)
class IssuedRequest:
    """Result of RequestIssuer.create()."""

    request: TireRequestInfo
    remaining_stock: int
    quota: QuotaCheck


@dataclass(frozen=True)
class TransitionResult:
    """Result of RequestLifecycle.transition().

    ``stock_remaining`` is set only when the transition changed stock.
    """

    request: TireRequestInfo
    previous_status: RequestStatus
    stock_remaining: int | None = None


class TokenRejection:
    """Reason codes for a failed token validation."""

    TOKEN_NOT_FOUND = "TOKEN_NOT_FOUND"
    ALREADY_REDEEMED = "ALREADY_REDEEMED"
    NOT_READY = "NOT_READY"
    STATION_MISMATCH = "STATION_MISMATCH"


@dataclass(frozen=True)
class TokenValidation:
    valid: bool
    reason: str | None = None
    request: TireRequestInfo | None = None


@dataclass(frozen=True)
class Page(Generic[T]):
    """One page of a read-only listing."""

    items: tuple[T, ...]
    page: int
    limit: int
    total: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0
