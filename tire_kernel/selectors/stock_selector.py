"""
Module: tire_kernel.selectors.stock_selector
Responsibility: Stock levels for display.

    Reads the CacheMirror first and falls back to the authoritative
    station_inventory row on a miss, repopulating the cache.  The value may
    be briefly stale and must never drive a reservation decision; only
    InventoryStore.reserve() does that.
"""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from tire_kernel.db.engine import standalone_read
from tire_kernel.logging_config import get_logger
from tire_kernel.models.station import StationInventory
from tire_kernel.selectors.base import BaseSelector
from tire_kernel.services.cache_mirror import CacheMirror

logger = get_logger("selectors.stock")


class StockSelector(BaseSelector):
    def __init__(self, session: Session, cache_mirror: CacheMirror | None = None):
        super().__init__(session)
        self._mirror = cache_mirror

    def stored_level(self, station_id: UUID, tire_id: UUID) -> int | None:
        return self.session.execute(
            select(StationInventory.quantity).where(
                StationInventory.station_id == station_id,
                StationInventory.tire_id == tire_id,
            )
        ).scalar_one_or_none()

    def stock_level(self, station_id: UUID, tire_id: UUID) -> int:
        """Display stock for a pair; 0 when the station does not carry it."""
        if self._mirror is not None:
            cached = self._mirror.get(station_id, tire_id)
            if cached is not None:
                return cached

        with standalone_read(self.session):
            stored = self.stored_level(station_id, tire_id)
        if stored is None:
            return 0
        if self._mirror is not None:
            logger.debug(
                "stock_cache_miss",
                extra={"station_id": str(station_id), "tire_id": str(tire_id)},
            )
            self._mirror.set(station_id, tire_id, stored)
        return stored
