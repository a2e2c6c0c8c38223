"""
QuotaPolicy -- per-category annual caps and counting rules.

Responsibility:
    Holds the static configuration QuotaLedger evaluates against: the
    annual cap for each tire category, which request statuses are left out
    of the consumed-units sum, and the per-request quantity bounds.

Architecture position:
    Kernel > Domain -- pure value object.  Built from YAML by
    ``tire_config.bridges.build_quota_policy``; the kernel never reads
    configuration files itself.

Counting rule:
    consumed(user, category, year) = sum(quantity) over the user's requests
    in that category and year whose status is NOT in ``excluded_statuses``.
    The default excludes CANCELLED only: cancelled units were handed back
    to the station, while delivered units were actually consumed.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping

from tire_kernel.exceptions import InvalidQuantityError, QuotaNotConfiguredError
from tire_kernel.models.request import RequestStatus
from tire_kernel.models.tire import category_key

DEFAULT_CATEGORY_QUOTAS: Mapping[str, int] = MappingProxyType(
    {"LEGER": 4, "LOURD": 8}
)


@dataclass(frozen=True)
class QuotaPolicy:
    """Annual caps keyed by category plus counting rules."""

    category_quotas: Mapping[str, int] = field(
        default_factory=lambda: DEFAULT_CATEGORY_QUOTAS
    )
    excluded_statuses: frozenset[RequestStatus] = frozenset(
        {RequestStatus.CANCELLED}
    )
    min_quantity: int = 1
    max_quantity: int = 4

    def __post_init__(self) -> None:
        quotas = {category_key(k): int(v) for k, v in self.category_quotas.items()}
        for category, cap in quotas.items():
            if cap < 0:
                raise ValueError(f"Quota for {category} must be >= 0, got {cap}")
        if not 1 <= self.min_quantity <= self.max_quantity:
            raise ValueError(
                f"Invalid quantity bounds {self.min_quantity}..{self.max_quantity}"
            )
        object.__setattr__(self, "category_quotas", MappingProxyType(quotas))
        object.__setattr__(
            self,
            "excluded_statuses",
            frozenset(RequestStatus(s) for s in self.excluded_statuses),
        )

    def max_quota(self, category: str) -> int:
        """Annual cap for ``category``.

        Raises:
            QuotaNotConfiguredError: If the category has no configured cap.
        """
        try:
            return self.category_quotas[category_key(category)]
        except KeyError:
            raise QuotaNotConfiguredError(category_key(category)) from None

    @property
    def categories(self) -> tuple[str, ...]:
        return tuple(sorted(self.category_quotas))

    def counted_statuses(self) -> tuple[str, ...]:
        """Status values that count against the quota."""
        return tuple(
            s.value for s in RequestStatus if s not in self.excluded_statuses
        )

    def validate_quantity(self, quantity: int) -> None:
        """Raise InvalidQuantityError if quantity is outside the bounds."""
        if (
            not isinstance(quantity, int)
            or isinstance(quantity, bool)
            or not self.min_quantity <= quantity <= self.max_quantity
        ):
            raise InvalidQuantityError(quantity, self.min_quantity, self.max_quantity)
