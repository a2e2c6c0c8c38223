"""
InventoryStore -- authoritative per-station stock with conditional reserve.

Responsibility:
    Owns every write to ``station_inventory.quantity``.  ``reserve()`` is the
    allocation linchpin: a single conditional UPDATE

        UPDATE station_inventory
           SET quantity = quantity - :qty
         WHERE station_id = :station AND tire_id = :tire AND quantity >= :qty

    whose affected-row count decides success.  Check and mutation happen in
    one storage-level statement, so concurrent reservations cannot both
    observe the same stock and oversell it.

Architecture position:
    Kernel > Services.  Flush-only; called by RequestIssuer (reserve) and
    RequestLifecycle (release) inside their units of work.

Invariants enforced:
    - quantity never goes negative (WHERE guard + CHECK constraint).
    - reserve() never creates a row; a missing row fails closed.
    - release() is only invoked once per cancellation; RequestLifecycle's
      status guard ensures it.

Failure modes:
    - reserve() returns ``ReservationResult(ok=False, ...)`` on insufficient
      stock or a missing row.  It does not raise.
    - release() raises InventoryNotFoundError if the row is missing.
"""

from uuid import UUID

from sqlalchemy import select, update

from tire_kernel.domain.dtos import ReservationResult
from tire_kernel.exceptions import InventoryNotFoundError
from tire_kernel.logging_config import get_logger
from tire_kernel.models.station import StationInventory
from tire_kernel.services.base import BaseService

logger = get_logger("services.inventory")


class InventoryStore(BaseService):
    """
    Transactional stock store.

    Non-goals:
        - Does NOT call ``session.commit()``; a reservation is only durable
          once the caller's unit of work commits.
        - Does NOT touch the cache; mirroring happens after commit.
    """

    def _pair(self, station_id: UUID, tire_id: UUID):
        return (
            StationInventory.station_id == station_id,
            StationInventory.tire_id == tire_id,
        )

    def quantity(self, station_id: UUID, tire_id: UUID) -> int | None:
        """Current authoritative quantity, or None if no row exists."""
        return self.session.execute(
            select(StationInventory.quantity).where(*self._pair(station_id, tire_id))
        ).scalar_one_or_none()

    def reserve(self, station_id: UUID, tire_id: UUID, quantity: int) -> ReservationResult:
        """
        Atomically decrement stock if at least ``quantity`` units remain.

        Preconditions:
            - quantity > 0.
            - The caller is within an active transaction.

        Postconditions:
            - ok=True: exactly one row was decremented by ``quantity``;
              ``remaining`` is the post-reservation count seen by this
              transaction.
            - ok=False: nothing was written.
        """
        if quantity <= 0:
            raise ValueError(f"Reservation quantity must be positive, got {quantity}")

        # INVARIANT: check-and-decrement in one conditional statement.
        result = self.session.execute(
            update(StationInventory)
            .where(
                *self._pair(station_id, tire_id),
                StationInventory.quantity >= quantity,
            )
            .values(
                quantity=StationInventory.quantity - quantity,
                updated_at=self._clock.now(),
            )
            .execution_options(synchronize_session=False)
        )

        current = self.quantity(station_id, tire_id)

        if result.rowcount != 1:
            logger.info(
                "stock_reservation_refused",
                extra={
                    "station_id": str(station_id),
                    "tire_id": str(tire_id),
                    "requested": quantity,
                    "available": current or 0,
                    "row_exists": current is not None,
                },
            )
            return ReservationResult(ok=False, remaining=current or 0)

        logger.info(
            "stock_reserved",
            extra={
                "station_id": str(station_id),
                "tire_id": str(tire_id),
                "quantity": quantity,
                "remaining": current,
            },
        )
        return ReservationResult(ok=True, remaining=current)

    def release(self, station_id: UUID, tire_id: UUID, quantity: int) -> int:
        """
        Compensating increment for a cancelled reservation.

        Returns:
            The quantity after restitution.

        Raises:
            InventoryNotFoundError: If no row exists for the pair.
        """
        if quantity <= 0:
            raise ValueError(f"Release quantity must be positive, got {quantity}")

        result = self.session.execute(
            update(StationInventory)
            .where(*self._pair(station_id, tire_id))
            .values(
                quantity=StationInventory.quantity + quantity,
                updated_at=self._clock.now(),
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise InventoryNotFoundError(str(station_id), str(tire_id))

        current = self.quantity(station_id, tire_id)
        logger.info(
            "stock_released",
            extra={
                "station_id": str(station_id),
                "tire_id": str(tire_id),
                "quantity": quantity,
                "remaining": current,
            },
        )
        return current

    def set_quantity(self, station_id: UUID, tire_id: UUID, quantity: int) -> int:
        """
        Administrative stock count: create or overwrite the row.

        This is the only path that creates inventory rows.
        """
        if quantity < 0:
            raise ValueError(f"Stock quantity must be >= 0, got {quantity}")

        row = self.session.execute(
            select(StationInventory)
            .where(*self._pair(station_id, tire_id))
            .with_for_update()
        ).scalar_one_or_none()

        if row is None:
            row = StationInventory(
                station_id=station_id,
                tire_id=tire_id,
                quantity=quantity,
                updated_at=self._clock.now(),
            )
            self.session.add(row)
        else:
            row.quantity = quantity
            row.updated_at = self._clock.now()
        self.session.flush()

        logger.info(
            "stock_set",
            extra={
                "station_id": str(station_id),
                "tire_id": str(tire_id),
                "quantity": quantity,
            },
        )
        return quantity
