"""
Courier-side offer operations: list, accept, decline.

Acceptance is the single point of contention between couriers racing for the
same offer. The winning write is a compare-and-swap on the offer row (still
open, same version, not expired, courier still a candidate); every other
attempt gets OfferNotAvailableError. The winner's acceptance is then applied
by the coordinator; if that batch fails, the acceptance is reverted to open
and the error is raised for the caller to retry.
"""

import logging
from typing import List

from django.db.models import F
from django.utils import timezone

from couriers.models import CourierProfile
from couriers import services as courier_services
from deliveries.models import DeliveryOffer
from services.exceptions import (
    AssignmentError,
    CourierNotAvailableError,
    DispatchError,
    OfferExpiredError,
    OfferNotAvailableError,
    OfferNotFoundError,
    OfferNotVisibleError,
)
from .coordinator import AssignmentResult, assign_partner

logger = logging.getLogger(__name__)

OFFER_NO_LONGER_AVAILABLE = "Offer no longer available"
MAX_LISTED_OFFERS = 10


def get_offer(offer_id) -> DeliveryOffer:
    try:
        return DeliveryOffer.objects.select_related("order").get(pk=offer_id)
    except DeliveryOffer.DoesNotExist:
        raise OfferNotFoundError(f"Offer {offer_id} not found")


def get_available_offers(courier_id, now=None) -> List[DeliveryOffer]:
    """Open, unexpired offers visible to the courier, newest first."""
    now = now or timezone.now()
    return list(
        DeliveryOffer.objects
        .filter(status="open", expires_at__gt=now, visible_to_partners__id=courier_id)
        .order_by("-created_at")[:MAX_LISTED_OFFERS]
    )


def record_acceptance(offer: DeliveryOffer, courier: CourierProfile, now) -> bool:
    """
    The contended acceptance write.

    Succeeds only if the offer row is still open, unchanged since ``offer``
    was read, unexpired and visible to ``courier``. Returns True for the one
    winning write.
    """
    updated = DeliveryOffer.objects.filter(
        pk=offer.pk,
        status="open",
        version=offer.version,
        expires_at__gt=now,
        visible_to_partners__id=courier.pk,
    ).update(
        status="accepted",
        accepted_by=courier,
        accepted_at=now,
        version=F("version") + 1,
    )
    return updated == 1


def revert_acceptance(offer: DeliveryOffer, courier: CourierProfile) -> bool:
    """Compensate a recorded acceptance whose assignment batch failed."""
    reverted = DeliveryOffer.objects.filter(
        pk=offer.pk, status="accepted", accepted_by=courier
    ).update(
        status="open",
        accepted_by=None,
        accepted_at=None,
        version=F("version") + 1,
    )
    return reverted == 1


def _check_acceptable(offer: DeliveryOffer, courier: CourierProfile, now):
    if courier.status != "active" or courier.operational_status != "online_idle":
        raise CourierNotAvailableError("Go online and finish any current delivery before accepting offers")
    if offer.status != "open" or offer.order.delivery_status != "waiting_partner":
        raise OfferNotAvailableError(OFFER_NO_LONGER_AVAILABLE)
    if offer.expires_at <= now:
        raise OfferExpiredError("This delivery offer has timed out")
    if not offer.visible_to_partners.filter(pk=courier.pk).exists():
        raise OfferNotVisibleError(OFFER_NO_LONGER_AVAILABLE)


def accept_offer(offer_id, courier_id, now=None) -> AssignmentResult:
    """
    Accept a delivery offer on behalf of a courier.

    Args:
        offer_id: Offer to accept
        courier_id: Accepting courier
        now: Clock override (defaults to timezone.now())

    Returns:
        AssignmentResult of the committed assignment

    Raises:
        OfferNotFoundError / CourierNotFoundError: Unknown ids
        CourierNotAvailableError: Courier is not active and idle
        OfferNotAvailableError: Lost the race, offer closed, expired or not visible
        AssignmentError: Assignment batch failed; acceptance rolled back to open
    """
    now = now or timezone.now()
    offer = get_offer(offer_id)
    courier = courier_services.get_courier(courier_id)

    _check_acceptable(offer, courier, now)

    if not record_acceptance(offer, courier, now):
        logger.info("Courier %s lost the race for offer %s", courier.pk, offer.pk)
        raise OfferNotAvailableError(OFFER_NO_LONGER_AVAILABLE)

    offer.refresh_from_db()
    logger.info("Offer %s accepted by courier %s", offer.pk, courier.pk)

    try:
        return assign_partner(offer, courier, now)
    except Exception as exc:
        revert_acceptance(offer, courier)
        offer.refresh_from_db()
        if isinstance(exc, DispatchError):
            logger.warning("Assignment refused for offer %s: %s; acceptance reverted", offer.pk, exc)
            raise
        logger.exception("Assignment failed for offer %s; acceptance reverted to open", offer.pk)
        raise AssignmentError(f"Could not assign offer {offer.pk}: {exc}") from exc


def decline_offer(offer_id, courier_id) -> DeliveryOffer:
    """Hide an open offer from the courier who declined it."""
    offer = get_offer(offer_id)
    courier = courier_services.get_courier(courier_id)

    if offer.status != "open":
        raise OfferNotAvailableError(OFFER_NO_LONGER_AVAILABLE)
    if not offer.visible_to_partners.filter(pk=courier.pk).exists():
        raise OfferNotVisibleError(OFFER_NO_LONGER_AVAILABLE)

    offer.visible_to_partners.remove(courier)
    logger.info("Courier %s declined offer %s", courier.pk, offer.pk)
    return offer
