"""
Module: tire_kernel.selectors.base
Responsibility: Abstract base class for read-only query selectors (the "Q"
    side next to the allocation services).
Architecture position: Kernel > Selectors.  May import from db/, models/ and
    domain/dtos.py.  MUST NOT import the orchestrating services.

Invariants enforced:
    - Read-only: selectors never add, delete, flush or commit.
    - DTO return convention: selectors return frozen dataclasses, never ORM
      rows.
    - Session ownership: the caller owns the session and its transaction.
"""

from abc import ABC

from sqlalchemy.orm import Session


class BaseSelector(ABC):
    """Abstract base class for all selectors."""

    DEFAULT_LIMIT = 10
    MAX_LIMIT = 100

    def __init__(self, session: Session):
        self.session = session

    @classmethod
    def _page_bounds(cls, page: int, limit: int) -> tuple[int, int, int]:
        """Clamp page/limit and return (page, limit, offset)."""
        page = max(1, int(page))
        limit = min(max(1, int(limit)), cls.MAX_LIMIT)
        return page, limit, (page - 1) * limit
