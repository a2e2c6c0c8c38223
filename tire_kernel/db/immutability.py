"""
ORM-Level Append-Only Enforcement for the request ledger.

===============================================================================
HOW IT WORKS
===============================================================================

SQLAlchemy fires mapper events before UPDATE/DELETE statements reach the
database.  Listeners registered here intercept them:

    session.flush()
         |
         v
    [before_update event] --> _check_status_event_update() --> ImmutabilityViolationError
         |
         v
    [before_delete event] --> _check_*_delete() ------------> ImmutabilityViolationError
         |
         v
    SQL sent to database (only if checks pass)

A failed check aborts the flush; the caller's unit of work rolls back.

===============================================================================
PROTECTED ENTITIES
===============================================================================

Entity               | Rule
---------------------|-----------------------------------------------
RequestStatusEvent   | Never updated, never deleted
TireRequest          | Never deleted (status changes go through
                     | RequestLifecycle and leave a status event)

Bulk ``update()`` / ``delete()`` statements bypass mapper events; the kernel
never issues them against these tables.

===============================================================================
USAGE
===============================================================================

    from tire_kernel.db.immutability import register_immutability_listeners
    register_immutability_listeners()  # Called once at startup

For tests that must violate the rules on purpose:

    unregister_immutability_listeners()
    ...
    register_immutability_listeners()
"""

from sqlalchemy import event

from tire_kernel.exceptions import ImmutabilityViolationError
from tire_kernel.logging_config import get_logger

logger = get_logger("db.immutability")


def _blocked(entity_type: str, entity_id: str, operation: str, reason: str) -> None:
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": entity_type,
            "entity_id": entity_id,
            "operation": operation,
        },
    )
    raise ImmutabilityViolationError(
        entity_type=entity_type,
        entity_id=entity_id,
        reason=reason,
    )


def _check_status_event_update(mapper, connection, target):
    """Prevent any update to RequestStatusEvent records."""
    _blocked(
        "RequestStatusEvent",
        str(target.id),
        "UPDATE",
        "Status history is append-only and cannot be modified",
    )


def _check_status_event_delete(mapper, connection, target):
    """Prevent deletion of RequestStatusEvent records."""
    _blocked(
        "RequestStatusEvent",
        str(target.id),
        "DELETE",
        "Status history entries cannot be deleted",
    )


def _check_request_delete(mapper, connection, target):
    """Prevent deletion of TireRequest records."""
    _blocked(
        "TireRequest",
        str(target.id),
        "DELETE",
        "Requests are retained for audit and cannot be deleted",
    )


def _listeners():
    from tire_kernel.models.request import RequestStatusEvent, TireRequest

    return (
        (RequestStatusEvent, "before_update", _check_status_event_update),
        (RequestStatusEvent, "before_delete", _check_status_event_delete),
        (TireRequest, "before_delete", _check_request_delete),
    )


def register_immutability_listeners():
    """
    Register all append-only enforcement listeners.

    Idempotent: listeners already registered are left alone.
    """
    for target, name, fn in _listeners():
        if not event.contains(target, name, fn):
            event.listen(target, name, fn)


def unregister_immutability_listeners():
    """
    Remove append-only enforcement listeners.

    WARNING: Only use this in tests.
    """
    for target, name, fn in _listeners():
        if event.contains(target, name, fn):
            event.remove(target, name, fn)
