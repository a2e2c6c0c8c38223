"""SQLAlchemy ORM models for the tire kernel."""

from tire_kernel.models.request import RequestStatus, RequestStatusEvent, TireRequest
from tire_kernel.models.station import Station, StationInventory
from tire_kernel.models.tire import TireCategory, TireDefinition

__all__ = [
    "TireCategory",
    "TireDefinition",
    "Station",
    "StationInventory",
    "RequestStatus",
    "TireRequest",
    "RequestStatusEvent",
]
