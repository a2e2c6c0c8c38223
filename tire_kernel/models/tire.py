"""
Module: tire_kernel.models.tire
Responsibility: ORM persistence for the tire catalog.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - Catalog rows are read-only to the allocation engine; they are created
      by seed/administration code only.
    - category is one of the configured quota categories.  It is stored as a
      plain string so new categories only require configuration.
"""

from enum import Enum

from sqlalchemy import Boolean, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from tire_kernel.db.base import TimestampedBase


class TireCategory(str, Enum):
    """Recognized tire categories.

    LEGER covers passenger / light vehicles, LOURD heavy vehicles.
    """

    LEGER = "LEGER"
    LOURD = "LOURD"


def category_key(category: "TireCategory | str") -> str:
    """Plain string key for a category given as a member or a string."""
    if isinstance(category, TireCategory):
        return category.value
    return str(category)


class TireDefinition(TimestampedBase):
    """
    Immutable catalog entry for one tire reference.

    Guarantees:
        - (category, dimension) is unique (uq_tire_category_dimension).
    """

    __tablename__ = "tire_definitions"

    __table_args__ = (
        UniqueConstraint("category", "dimension", name="uq_tire_category_dimension"),
        Index("idx_tire_category", "category"),
    )

    category: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
    )

    # Size designation, e.g. "205/55 R16"
    dimension: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
    )

    description: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
    )

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<TireDefinition {self.category} {self.dimension}>"
