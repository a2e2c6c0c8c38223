"""
Eligibility source contract.

Whether a user is verified is decided outside the kernel (registration and
document review).  RequestIssuer only consults an ``EligibilitySource``
before allocating and treats a negative answer as a precondition failure.
"""

from typing import Iterable, Protocol, runtime_checkable
from uuid import UUID


@runtime_checkable
class EligibilitySource(Protocol):
    def is_eligible(self, user_id: UUID) -> bool: ...


class AllowListEligibility:
    """Eligibility backed by an explicit set of approved user ids."""

    def __init__(self, approved: Iterable[UUID] = ()):
        self._approved = set(approved)

    def approve(self, user_id: UUID) -> None:
        self._approved.add(user_id)

    def revoke(self, user_id: UUID) -> None:
        self._approved.discard(user_id)

    def is_eligible(self, user_id: UUID) -> bool:
        return user_id in self._approved
