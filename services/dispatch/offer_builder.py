"""
Create delivery offers for confirmed orders.

An offer pairs one order with the couriers currently allowed to accept it
(online, idle couriers within the initial search radius of the pickup). The
order's delivery fields are priced and linked to the offer in the same
transaction, and the courier fan-out is emitted once that transaction commits.
"""

import logging
from datetime import timedelta
from typing import Optional

from django.db import IntegrityError, transaction
from django.db.models import F
from django.utils import timezone

from common.utils import distance_between
from couriers import services as courier_services
from deliveries.models import ACTIVE_OFFER_STATUSES, DeliveryOffer
from orders.models import Order
from realtime.notifications import notify_order_event, notify_partner_event, notify_partners_of_offer
from services.exceptions import (
    ActiveOfferExistsError,
    InvalidOrderStateError,
    MissingCoordinatesError,
    OrderNotFoundError,
)
from services.policy import get_dispatch_policy
from services.pricing import quote_delivery

logger = logging.getLogger(__name__)

MISSING_COORDINATES_ERROR = "Missing pickup or delivery coordinates; delivery offer not created"


def _lock_order(order_id) -> Order:
    try:
        return Order.objects.select_for_update().get(pk=order_id)
    except Order.DoesNotExist:
        raise OrderNotFoundError(f"Order {order_id} not found")


def mark_delivery_failed(order: Order, reason: str) -> Order:
    """
    Move the order's delivery sub-state to ``failed`` with a reason.

    Must run inside the caller's transaction; listeners hear about it on commit.
    """
    order.delivery_status = "failed"
    order.delivery_error = reason
    order.save(update_fields=["delivery_status", "delivery_error"])

    logger.warning("Delivery for order %s failed: %s", order.pk, reason)
    transaction.on_commit(
        lambda: notify_order_event("delivery_failed", order, reason)
    )
    return order


def create_delivery_offer(order_id, now=None) -> DeliveryOffer:
    """
    Open the first delivery offer for an order waiting for a courier.

    Args:
        order_id: Primary key of the confirmed order
        now: Clock override (defaults to timezone.now())

    Returns:
        The new DeliveryOffer (possibly with no visible couriers; the retry
        scan widens the search later)

    Raises:
        OrderNotFoundError: Order does not exist
        InvalidOrderStateError: Order is not waiting for a courier
        ActiveOfferExistsError: Order already has an open/accepted offer
        MissingCoordinatesError: Order lacks coordinates (order marked failed)
    """
    policy = get_dispatch_policy()
    now = now or timezone.now()
    offer: Optional[DeliveryOffer] = None

    try:
        with transaction.atomic():
            order = _lock_order(order_id)

            if order.delivery_status != "waiting_partner":
                raise InvalidOrderStateError(
                    f"Order {order.pk} is {order.delivery_status}, not waiting for a courier"
                )
            if DeliveryOffer.objects.filter(order=order, status__in=ACTIVE_OFFER_STATUSES).exists():
                raise ActiveOfferExistsError(f"Order {order.pk} already has an active delivery offer")

            pickup, dropoff = order.pickup_point, order.delivery_point
            if pickup is None or dropoff is None:
                mark_delivery_failed(order, MISSING_COORDINATES_ERROR)
            else:
                offer = _open_offer(order, pickup, dropoff, now, policy)
    except IntegrityError as exc:
        # Lost a race with a concurrent creation for the same order
        raise ActiveOfferExistsError(f"Order {order_id} already has an active delivery offer") from exc

    if offer is None:
        raise MissingCoordinatesError(f"Order {order_id}: {MISSING_COORDINATES_ERROR}")
    return offer


def _open_offer(order, pickup, dropoff, now, policy) -> DeliveryOffer:
    distance_km = distance_between(pickup, dropoff)
    quote = quote_delivery(distance_km)
    candidates = courier_services.find_candidates(pickup, policy.initial_radius_km)

    offer = DeliveryOffer.objects.create(
        order=order,
        store_id=order.store_id,
        store_name=order.store_name,
        pickup_latitude=order.pickup_latitude,
        pickup_longitude=order.pickup_longitude,
        delivery_latitude=order.delivery_latitude,
        delivery_longitude=order.delivery_longitude,
        distance_km=quote.distance_km,
        earning_amount=quote.partner_earning,
        status="open",
        attempt_number=1,
        search_radius_km=policy.initial_radius_km,
        created_at=now,
        expires_at=now + timedelta(seconds=policy.offer_ttl_seconds),
    )
    offer.visible_to_partners.set(candidates)

    order.delivery_offer = offer
    order.delivery_fee = quote.delivery_fee
    order.partner_earning = quote.partner_earning
    order.platform_commission = quote.platform_commission
    order.distance_km = quote.distance_km
    order.pickup_eta_minutes = quote.pickup_eta_minutes
    order.delivery_error = ""
    order.save(update_fields=[
        "delivery_offer", "delivery_fee", "partner_earning", "platform_commission",
        "distance_km", "pickup_eta_minutes", "delivery_error",
    ])

    logger.info(
        "Created offer %s for order %s: %.1fkm, earning %s, %d candidate(s) within %skm",
        offer.pk, order.pk, distance_km, quote.partner_earning, len(candidates), policy.initial_radius_km,
    )
    if not candidates:
        logger.info("No couriers near order %s yet; retry scan will widen the search", order.pk)

    transaction.on_commit(lambda: notify_partners_of_offer(offer, candidates))
    return offer


def cancel_order_dispatch(order_id, reason: str = "Cancelled by store") -> Order:
    """
    Stop dispatch for an order that has not been assigned yet.

    The order moves to ``failed`` and its open offers are cancelled together.

    Raises:
        OrderNotFoundError: Order does not exist
        InvalidOrderStateError: A courier is already assigned (or the delivery ended)
    """
    with transaction.atomic():
        order = _lock_order(order_id)
        if order.delivery_status != "waiting_partner":
            raise InvalidOrderStateError(
                f"Cannot cancel dispatch - order {order.pk} is already {order.delivery_status}"
            )

        open_offers = list(DeliveryOffer.objects.filter(order=order, status="open"))
        notified = set()
        for offer in open_offers:
            notified.update(offer.visible_to_partners.values_list("id", flat=True))
        DeliveryOffer.objects.filter(pk__in=[o.pk for o in open_offers], status="open").update(
            status="cancelled", version=F("version") + 1
        )

        mark_delivery_failed(order, reason)

        def _notify():
            for partner_id in notified:
                notify_partner_event(
                    "offer_cancelled", partner_id, "Delivery request cancelled.",
                    extra={"order_id": order.pk},
                )
        transaction.on_commit(_notify)

    logger.info("Dispatch cancelled for order %s (%d open offer(s))", order.pk, len(open_offers))
    return order
