"""
Settlement service - delivery progress and courier earnings.

This module handles:
    - Courier-reported delivery status changes
    - Settling delivered orders (earning record, courier metrics, release)
    - On-time classification
"""

from .delivery_completion import (
    complete_delivery,
    is_on_time,
    settle_delivery,
    update_delivery_status,
)

__all__ = [
    "complete_delivery",
    "is_on_time",
    "settle_delivery",
    "update_delivery_status",
]
