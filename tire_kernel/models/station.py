"""
Module: tire_kernel.models.station
Responsibility: ORM persistence for distribution stations and their
    per-tire stock counts.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - StationInventory is unique on (station_id, tire_id).
    - quantity never goes negative: CHECK constraint at the database level,
      and every decrement is a conditional UPDATE issued by InventoryStore.
    - quantity is mutated only by InventoryStore; no other code writes it.

Failure modes:
    - IntegrityError on a duplicate (station_id, tire_id) insert.
    - IntegrityError if any write would make quantity negative.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from tire_kernel.db.base import Base, TimestampedBase, UUIDString


class Station(TimestampedBase):
    """A physical distribution point holding tire stock."""

    __tablename__ = "stations"

    __table_args__ = (
        UniqueConstraint("code", name="uq_station_code"),
    )

    code: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
    )

    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    address: Mapped[str | None] = mapped_column(
        String(500),
        nullable=True,
    )

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Station {self.code}>"


class StationInventory(Base):
    """
    Authoritative stock count for one tire at one station.

    Contract:
        Rows are created by InventoryStore.set_quantity() only.  A reserve
        against a missing row fails closed; it never creates the row.
    """

    __tablename__ = "station_inventory"

    __table_args__ = (
        UniqueConstraint("station_id", "tire_id", name="uq_station_inventory_pair"),
        CheckConstraint("quantity >= 0", name="ck_station_inventory_non_negative"),
    )

    station_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("stations.id"),
        nullable=False,
    )

    tire_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("tire_definitions.id"),
        nullable=False,
    )

    quantity: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
    )

    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    def __repr__(self) -> str:
        return f"<StationInventory {self.station_id}/{self.tire_id}: {self.quantity}>"
