"""
Request state machine -- pure transition table.

Responsibility:
    Declares which status changes a tire request may undergo.  Side
    effects (stock restitution, token redemption, history rows) live in
    RequestLifecycle; this module only answers "is this move legal".

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

    PENDING ──> PREPARING ──> READY ──> DELIVERED
       │            │           │
       └────────────┴───────────┴──> CANCELLED

DELIVERED and CANCELLED are terminal.
"""

from types import MappingProxyType

from tire_kernel.models.request import RequestStatus

ALLOWED_TRANSITIONS = MappingProxyType(
    {
        RequestStatus.PENDING: frozenset(
            {RequestStatus.PREPARING, RequestStatus.CANCELLED}
        ),
        RequestStatus.PREPARING: frozenset(
            {RequestStatus.READY, RequestStatus.CANCELLED}
        ),
        RequestStatus.READY: frozenset(
            {RequestStatus.DELIVERED, RequestStatus.CANCELLED}
        ),
        RequestStatus.DELIVERED: frozenset(),
        RequestStatus.CANCELLED: frozenset(),
    }
)

TERMINAL_STATUSES = frozenset(
    status for status, targets in ALLOWED_TRANSITIONS.items() if not targets
)

# Statuses whose stock is still held by the request
RESERVING_STATUSES = frozenset(
    {RequestStatus.PENDING, RequestStatus.PREPARING, RequestStatus.READY}
)


def can_transition(current: RequestStatus, target: RequestStatus) -> bool:
    """Return True if ``current -> target`` is a legal move."""
    return target in ALLOWED_TRANSITIONS[RequestStatus(current)]


def releases_stock(current: RequestStatus, target: RequestStatus) -> bool:
    """Return True if the move hands reserved stock back to the station."""
    return (
        RequestStatus(target) == RequestStatus.CANCELLED
        and RequestStatus(current) in RESERVING_STATUSES
    )


# Position along the lifecycle.  Every legal move goes to a higher rank, so
# a request's history is totally ordered by the rank of each event's status.
STATUS_RANK = MappingProxyType(
    {
        RequestStatus.PENDING: 0,
        RequestStatus.PREPARING: 1,
        RequestStatus.READY: 2,
        RequestStatus.DELIVERED: 3,
        RequestStatus.CANCELLED: 3,
    }
)
