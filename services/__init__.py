"""
Services package - Business logic layer.

This package contains all business logic services that operate on Django models
but are decoupled from the HTTP/Celery layer.

Modules:
    - dispatch: Offer creation, dispatch cancellation and the retry scan
    - assignment: Offer acceptance and the assignment batch
    - settlement: Delivery progress and courier earnings
    - pricing / policy: Fee math and tunables
"""

# Expose commonly used functions at package level
from .dispatch import (
    cancel_order_dispatch,
    create_delivery_offer,
    retry_expired_offers,
    RetryScanResult,
)
from .assignment import (
    accept_offer,
    decline_offer,
    get_available_offers,
    AssignmentResult,
)
from .settlement import (
    complete_delivery,
    update_delivery_status,
)
from .exceptions import (
    DispatchError,
    OrderNotFoundError,
    InvalidOrderStateError,
    MissingCoordinatesError,
    CourierNotFoundError,
    CourierNotAvailableError,
    InvalidStatusTransitionError,
    ActiveOfferExistsError,
    OfferNotFoundError,
    OfferNotAvailableError,
    OfferExpiredError,
    OfferNotVisibleError,
    AssignmentError,
    SettlementError,
)

__all__ = [
    # Dispatch
    "create_delivery_offer",
    "cancel_order_dispatch",
    "retry_expired_offers",
    "RetryScanResult",
    # Assignment
    "accept_offer",
    "decline_offer",
    "get_available_offers",
    "AssignmentResult",
    # Settlement
    "complete_delivery",
    "update_delivery_status",
    # Exceptions
    "DispatchError",
    "OrderNotFoundError",
    "InvalidOrderStateError",
    "MissingCoordinatesError",
    "CourierNotFoundError",
    "CourierNotAvailableError",
    "InvalidStatusTransitionError",
    "ActiveOfferExistsError",
    "OfferNotFoundError",
    "OfferNotAvailableError",
    "OfferExpiredError",
    "OfferNotVisibleError",
    "AssignmentError",
    "SettlementError",
]
