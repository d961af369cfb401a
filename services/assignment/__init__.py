"""
Offer acceptance and courier assignment.

This module handles:
    - Listing the offers a courier may accept
    - Resolving concurrent acceptances (compare-and-swap on the offer)
    - Committing the winning acceptance as one atomic assignment batch
    - Declining offers
"""

from .acceptance import (
    accept_offer,
    decline_offer,
    get_available_offers,
    get_offer,
    record_acceptance,
    revert_acceptance,
)
from .coordinator import AssignmentResult, assign_partner

__all__ = [
    "accept_offer",
    "decline_offer",
    "get_available_offers",
    "get_offer",
    "record_acceptance",
    "revert_acceptance",
    "assign_partner",
    "AssignmentResult",
]
