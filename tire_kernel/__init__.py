"""
Tire Kernel - inventory reservation and quota allocation engine.

Allocates tires held at distribution stations to verified users with:
- Conditional, storage-level atomic stock reservation
- Per-user, per-category annual quotas
- Append-only request ledger with status history
- Single-use redemption tokens
- Best-effort stock mirroring into a fast-read cache
"""

__version__ = "0.1.0"
