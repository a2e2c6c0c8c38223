"""
Typed Exception Hierarchy for the Tire Kernel.

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

All exceptions inherit from TireKernelError:

    TireKernelError (base)
    |
    +-- EligibilityError
    |   +-- NotEligibleError
    |
    +-- ReferenceLookupError
    |   +-- ItemNotFoundError
    |   +-- StationRequiredError
    |   +-- StationNotFoundError
    |   +-- RequestNotFoundError
    |   +-- TokenNotFoundError
    |
    +-- ValidationError
    |   +-- InvalidQuantityError
    |
    +-- QuotaError
    |   +-- QuotaExceededError
    |   +-- QuotaNotConfiguredError
    |
    +-- StockError
    |   +-- OutOfStockError
    |   +-- InventoryNotFoundError
    |
    +-- RequestStateError
    |   +-- InvalidTransitionError
    |   +-- AlreadyRedeemedError
    |   +-- StationMismatchError
    |
    +-- ImmutabilityError
    |   +-- ImmutabilityViolationError
    |
    +-- CacheSyncError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                      | When Raised
----------------|---------------------------|-------------------------------------------
Eligibility     | NOT_ELIGIBLE              | User is not verified / approved
----------------|---------------------------|-------------------------------------------
Reference       | ITEM_NOT_FOUND            | Tire definition doesn't exist
                | STATION_REQUIRED          | No station given for a request
                | STATION_NOT_FOUND         | Station id doesn't exist
                | REQUEST_NOT_FOUND         | Request missing or outside caller scope
                | TOKEN_NOT_FOUND           | No request carries this token
----------------|---------------------------|-------------------------------------------
Validation      | INVALID_QUANTITY          | Quantity outside the per-request bounds
----------------|---------------------------|-------------------------------------------
Quota           | QUOTA_EXCEEDED            | remaining < requested for the year
                | QUOTA_NOT_CONFIGURED      | Category has no configured cap
----------------|---------------------------|-------------------------------------------
Stock           | OUT_OF_STOCK              | Conditional reserve matched no row
                | INVENTORY_NOT_FOUND       | Release against a missing inventory row
----------------|---------------------------|-------------------------------------------
Request state   | INVALID_TRANSITION        | Status change not allowed from current
                | ALREADY_REDEEMED          | Token already consumed by a delivery
                | STATION_MISMATCH          | Token presented at the wrong station
----------------|---------------------------|-------------------------------------------
Immutability    | IMMUTABILITY_VIOLATION    | Update/delete of an append-only row
----------------|---------------------------|-------------------------------------------
Cache           | CACHE_SYNC_FAILED         | Mirror write failed (logged, never raised
                |                           | to callers of the engine)

All of these are expected, recoverable outcomes.  Orchestrators roll back the
unit of work and re-raise them unchanged; callers catch by type and read the
structured attributes instead of parsing messages.
"""


class TireKernelError(Exception):
    """
    Base exception for all tire kernel errors.

    All subclasses carry a ``code`` class attribute for machine-readable
    error identification.
    """

    code: str = "TIRE_KERNEL_ERROR"


# Eligibility


class EligibilityError(TireKernelError):
    """Base exception for eligibility failures."""

    code: str = "ELIGIBILITY_ERROR"


class NotEligibleError(EligibilityError):
    """User is not in a verified / eligible state."""

    code: str = "NOT_ELIGIBLE"

    def __init__(self, user_id: str):
        self.user_id = user_id
        super().__init__(f"User {user_id} must be approved to make requests")


# Reference lookups


class ReferenceLookupError(TireKernelError):
    """Base exception for bad input references."""

    code: str = "REFERENCE_ERROR"


class ItemNotFoundError(ReferenceLookupError):
    """Tire definition with given ID was not found."""

    code: str = "ITEM_NOT_FOUND"

    def __init__(self, item_id: str):
        self.item_id = item_id
        super().__init__(f"Tire not found: {item_id}")


class StationRequiredError(ReferenceLookupError):
    """A request was submitted without a station."""

    code: str = "STATION_REQUIRED"

    def __init__(self):
        super().__init__("A station must be specified for the request")


class StationNotFoundError(ReferenceLookupError):
    """Station with given ID was not found."""

    code: str = "STATION_NOT_FOUND"

    def __init__(self, station_id: str):
        self.station_id = station_id
        super().__init__(f"Station not found: {station_id}")


class RequestNotFoundError(ReferenceLookupError):
    """Request not found, or not visible in the caller's scope."""

    code: str = "REQUEST_NOT_FOUND"

    def __init__(self, request_id: str):
        self.request_id = request_id
        super().__init__(f"Request not found: {request_id}")


class TokenNotFoundError(ReferenceLookupError):
    """No request carries the presented redemption token."""

    code: str = "TOKEN_NOT_FOUND"

    def __init__(self):
        super().__init__("Invalid token - request not found")


# Validation


class ValidationError(TireKernelError):
    """Base exception for malformed input values."""

    code: str = "VALIDATION_ERROR"


class InvalidQuantityError(ValidationError):
    """Requested quantity is outside the allowed bounds."""

    code: str = "INVALID_QUANTITY"

    def __init__(self, quantity: int, minimum: int, maximum: int):
        self.quantity = quantity
        self.minimum = minimum
        self.maximum = maximum
        super().__init__(
            f"Quantity {quantity} must be between {minimum} and {maximum}"
        )


# Quota


class QuotaError(TireKernelError):
    """Base exception for quota errors."""

    code: str = "QUOTA_ERROR"


class QuotaExceededError(QuotaError):
    """Requested quantity exceeds the user's remaining annual quota."""

    code: str = "QUOTA_EXCEEDED"

    def __init__(
        self,
        user_id: str,
        category: str,
        requested: int,
        remaining: int,
        max_quota: int,
    ):
        self.user_id = user_id
        self.category = category
        self.requested = requested
        self.remaining = remaining
        self.max_quota = max_quota
        super().__init__(
            f"Quota exceeded. You have {remaining} remaining for "
            f"{category} tires this year (max {max_quota}, requested {requested})"
        )


class QuotaNotConfiguredError(QuotaError):
    """No annual cap is configured for the category."""

    code: str = "QUOTA_NOT_CONFIGURED"

    def __init__(self, category: str):
        self.category = category
        super().__init__(f"No quota configured for category: {category}")


# Stock


class StockError(TireKernelError):
    """Base exception for station stock errors."""

    code: str = "STOCK_ERROR"


class OutOfStockError(StockError):
    """Conditional reservation failed: not enough units at the station."""

    code: str = "OUT_OF_STOCK"

    def __init__(self, station_id: str, item_id: str, requested: int, available: int):
        self.station_id = station_id
        self.item_id = item_id
        self.requested = requested
        self.available = available
        super().__init__(
            f"Insufficient stock at station {station_id} for tire {item_id}: "
            f"requested {requested}, available {available}"
        )


class InventoryNotFoundError(StockError):
    """No inventory row exists for the station/tire pair."""

    code: str = "INVENTORY_NOT_FOUND"

    def __init__(self, station_id: str, item_id: str):
        self.station_id = station_id
        self.item_id = item_id
        super().__init__(
            f"No inventory row for station {station_id} and tire {item_id}"
        )


# Request state


class RequestStateError(TireKernelError):
    """Base exception for request lifecycle errors."""

    code: str = "REQUEST_STATE_ERROR"


class InvalidTransitionError(RequestStateError):
    """Status change is not allowed from the request's current status."""

    code: str = "INVALID_TRANSITION"

    def __init__(self, request_id: str, current_status: str, requested_status: str):
        self.request_id = request_id
        self.current_status = current_status
        self.requested_status = requested_status
        super().__init__(
            f"Request {request_id} cannot move from {current_status} "
            f"to {requested_status}"
        )


class AlreadyRedeemedError(RequestStateError):
    """The request's redemption token has already been consumed."""

    code: str = "ALREADY_REDEEMED"

    def __init__(self, request_id: str):
        self.request_id = request_id
        super().__init__(f"Token for request {request_id} has already been used")


class StationMismatchError(RequestStateError):
    """Token presented at a station other than the request's station."""

    code: str = "STATION_MISMATCH"

    def __init__(self, request_id: str, expected_station_id: str, station_id: str):
        self.request_id = request_id
        self.expected_station_id = expected_station_id
        self.station_id = station_id
        super().__init__(
            f"Request {request_id} is assigned to a different station"
        )


# Immutability


class ImmutabilityError(TireKernelError):
    """Base exception for immutability violations."""

    code: str = "IMMUTABILITY_ERROR"


class ImmutabilityViolationError(ImmutabilityError):
    """Attempted to modify or delete an append-only record."""

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )


# Cache


class CacheSyncError(TireKernelError):
    """A cache store write or read failed."""

    code: str = "CACHE_SYNC_FAILED"

    def __init__(self, key: str, reason: str):
        self.key = key
        self.reason = reason
        super().__init__(f"Cache sync failed for {key}: {reason}")
