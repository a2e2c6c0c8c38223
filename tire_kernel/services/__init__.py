"""
Services layer - allocation orchestration and flush-only building blocks.

Orchestrators (own commit/rollback):
- RequestIssuer: quota check, conditional reservation, request + token
- RequestLifecycle: status transitions, restitution on cancel
- DeliveryService: token validation and delivery at the counter

Flush-only services:
- InventoryStore, QuotaLedger, RequestLedger

Outside the transaction:
- CacheMirror: best-effort stock mirror
"""

from tire_kernel.services.cache_mirror import (
    CacheMirror,
    CacheStore,
    InMemoryCacheStore,
    RedisCacheStore,
)
from tire_kernel.services.delivery_service import DeliveryService
from tire_kernel.services.eligibility import AllowListEligibility, EligibilitySource
from tire_kernel.services.inventory_store import InventoryStore
from tire_kernel.services.quota_ledger import QuotaLedger
from tire_kernel.services.request_issuer import RequestIssuer
from tire_kernel.services.request_ledger import RequestLedger
from tire_kernel.services.request_lifecycle import RequestLifecycle

__all__ = [
    "AllowListEligibility",
    "CacheMirror",
    "CacheStore",
    "DeliveryService",
    "EligibilitySource",
    "InMemoryCacheStore",
    "InventoryStore",
    "QuotaLedger",
    "RedisCacheStore",
    "RequestIssuer",
    "RequestLedger",
    "RequestLifecycle",
]
