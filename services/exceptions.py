"""Exceptions raised by the dispatch, assignment and settlement services."""


class DispatchError(Exception):
    """Base class for every error raised by the delivery services."""
    error_code = "dispatch_error"


# ---------------------- Input errors ----------------------

class OrderNotFoundError(DispatchError):
    """Raised when an order cannot be found."""
    error_code = "order_not_found"


class InvalidOrderStateError(DispatchError):
    """Raised when the order's delivery sub-state does not allow the operation."""
    error_code = "invalid_order_state"


class MissingCoordinatesError(DispatchError):
    """Raised when an order lacks pickup or delivery coordinates."""
    error_code = "missing_coordinates"


class CourierNotFoundError(DispatchError):
    """Raised when a courier record cannot be resolved."""
    error_code = "courier_not_found"


class CourierNotAvailableError(DispatchError):
    """Raised when the courier is suspended, offline or already on a delivery."""
    error_code = "courier_not_available"


class InvalidStatusTransitionError(DispatchError):
    """Raised when a delivery status change is not allowed from the current state."""
    error_code = "invalid_status_transition"


# ---------------------- Offer lifecycle ----------------------

class ActiveOfferExistsError(DispatchError):
    """Raised when an order already has an open or accepted offer."""
    error_code = "active_offer_exists"


class OfferNotFoundError(DispatchError):
    """Raised when a delivery offer cannot be found."""
    error_code = "offer_not_found"


class OfferNotAvailableError(DispatchError):
    """Raised when an acceptance loses: the offer is no longer open for this courier."""
    error_code = "offer_not_available"


class OfferExpiredError(OfferNotAvailableError):
    """Raised when the offer's visibility window has already closed."""
    error_code = "offer_expired"


class OfferNotVisibleError(OfferNotAvailableError):
    """Raised when the courier is not in the offer's current candidate set."""
    error_code = "offer_not_visible"


# ---------------------- Commit failures ----------------------

class AssignmentError(DispatchError):
    """Raised when the assignment batch fails; the acceptance has been rolled back."""
    error_code = "assignment_failed"


class SettlementError(DispatchError):
    """Raised when a delivery cannot be settled."""
    error_code = "settlement_failed"
