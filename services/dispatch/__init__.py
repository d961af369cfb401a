"""
Dispatch engine: offer creation, cancellation and the expiry/retry scan.

This module handles:
    - Opening a priced delivery offer for a confirmed order
    - Widening the courier search for offers nobody accepted in time
    - Expiring offers (and failing orders) once retries are exhausted
"""

from .offer_builder import cancel_order_dispatch, create_delivery_offer, mark_delivery_failed
from .offer_retry import RetryScanResult, retry_expired_offers

__all__ = [
    "create_delivery_offer",
    "cancel_order_dispatch",
    "mark_delivery_failed",
    "retry_expired_offers",
    "RetryScanResult",
]
