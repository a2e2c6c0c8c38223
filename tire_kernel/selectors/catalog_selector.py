"""
Module: tire_kernel.selectors.catalog_selector
Responsibility: Read access to the tire catalog, ordered by category then
    dimension.
"""

from uuid import UUID

from sqlalchemy import func, select

from tire_kernel.domain.dtos import Page, TireInfo
from tire_kernel.exceptions import ItemNotFoundError
from tire_kernel.models.tire import TireDefinition, category_key
from tire_kernel.selectors.base import BaseSelector


class CatalogSelector(BaseSelector):
    DEFAULT_LIMIT = 20

    def list_tires(
        self,
        category: str | None = None,
        page: int = 1,
        limit: int = DEFAULT_LIMIT,
    ) -> Page[TireInfo]:
        page, limit, offset = self._page_bounds(page, limit)

        conditions = [TireDefinition.is_active.is_(True)]
        if category is not None:
            conditions.append(TireDefinition.category == category_key(category))

        total = self.session.execute(
            select(func.count()).select_from(TireDefinition).where(*conditions)
        ).scalar_one()
        rows = self.session.execute(
            select(TireDefinition)
            .where(*conditions)
            .order_by(TireDefinition.category, TireDefinition.dimension)
            .offset(offset)
            .limit(limit)
        ).scalars()

        return Page(
            items=tuple(TireInfo.from_model(t) for t in rows),
            page=page,
            limit=limit,
            total=total,
        )

    def get_tire(self, tire_id: UUID) -> TireInfo:
        tire = self.session.get(TireDefinition, tire_id)
        if tire is None:
            raise ItemNotFoundError(str(tire_id))
        return TireInfo.from_model(tire)

    def tires_by_category(self, category: str) -> tuple[TireInfo, ...]:
        rows = self.session.execute(
            select(TireDefinition)
            .where(
                TireDefinition.category == category_key(category),
                TireDefinition.is_active.is_(True),
            )
            .order_by(TireDefinition.dimension)
        ).scalars()
        return tuple(TireInfo.from_model(t) for t in rows)
