"""
Module: tire_kernel.models.request
Responsibility: ORM persistence for tire requests and their append-only
    status history.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - token is globally unique (uq_tire_request_token).  Uniqueness is a
      storage constraint, not an application check.
    - 1 <= quantity <= 4 (ck_tire_request_quantity).
    - TireRequest rows are never deleted; RequestStatusEvent rows are never
      updated or deleted (ORM listeners in db/immutability.py).
    - status changes only through RequestLifecycle.transition(), which
      appends exactly one RequestStatusEvent per accepted change.

Failure modes:
    - IntegrityError on a duplicate token (RequestLedger retries with a
      fresh token inside a savepoint).
    - ImmutabilityViolationError on UPDATE/DELETE of a status event.
"""

from datetime import datetime
from enum import Enum
from uuid import UUID

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from tire_kernel.db.base import Base, UUIDString


class RequestStatus(str, Enum):
    """Lifecycle status of a tire request.

    PENDING -> PREPARING -> READY -> DELIVERED, with CANCELLED reachable
    from any non-terminal status.
    """

    PENDING = "pending"
    PREPARING = "preparing"
    READY = "ready"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class TireRequest(Base):
    """
    One allocation of tires to a user at a station.

    Guarantees:
        - Exists only together with a successful stock reservation
          (both are written in the same unit of work).
        - redeemed becomes True exactly once, on delivery.
    """

    __tablename__ = "tire_requests"

    __table_args__ = (
        UniqueConstraint("token", name="uq_tire_request_token"),
        CheckConstraint(
            "quantity >= 1 AND quantity <= 4", name="ck_tire_request_quantity"
        ),
        Index("idx_request_quota_window", "user_id", "year"),
        Index("idx_request_station_status", "station_id", "status"),
    )

    user_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        nullable=False,
    )

    tire_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("tire_definitions.id"),
        nullable=False,
    )

    # Nullable until assigned
    station_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("stations.id"),
        nullable=True,
    )

    status: Mapped[str] = mapped_column(
        String(20),
        default=RequestStatus.PENDING.value,
        nullable=False,
    )

    quantity: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )

    # Quota year the request counts against
    year: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )

    # Opaque single-use redemption token
    token: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
    )

    redeemed: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )

    delivered_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    def __repr__(self) -> str:
        return f"<TireRequest {self.id}: {self.status} x{self.quantity}>"


class RequestStatusEvent(Base):
    """
    Append-only status history entry.

    One row per accepted transition, including creation.  Never updated,
    never deleted.
    """

    __tablename__ = "request_status_events"

    __table_args__ = (
        Index("idx_status_event_request", "request_id", "created_at"),
    )

    request_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("tire_requests.id"),
        nullable=False,
    )

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
    )

    actor_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        nullable=False,
    )

    note: Mapped[str | None] = mapped_column(
        String(1000),
        nullable=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<RequestStatusEvent {self.request_id}: {self.status}>"
