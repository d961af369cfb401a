"""Commit a winning acceptance: assign the order, book the courier, close sibling offers."""

import logging
from dataclasses import dataclass, field
from typing import List

from django.db import transaction
from django.db.models import F

from couriers.models import CourierProfile
from deliveries.models import DeliveryOffer
from orders.models import Order
from realtime.notifications import notify_order_event, notify_partner_event
from services.exceptions import CourierNotAvailableError, InvalidOrderStateError

logger = logging.getLogger(__name__)


@dataclass
class AssignmentResult:
    """Result object for a committed assignment."""
    offer: DeliveryOffer
    order: Order
    courier: CourierProfile
    cancelled_offer_ids: List[int] = field(default_factory=list)
    message: str = "Offer accepted. Head to the store for pickup."


@transaction.atomic
def assign_partner(offer: DeliveryOffer, courier: CourierProfile, assigned_at) -> AssignmentResult:
    """
    Apply an accepted offer as one atomic batch.

        1. Order -> partner_assigned with the courier snapshot
        2. Courier -> on_delivery on this order
        3. Other open offers for the order -> cancelled

    Raises:
        InvalidOrderStateError: Order left waiting_partner meanwhile
        CourierNotAvailableError: Courier was booked by another assignment
    """
    order = Order.objects.select_for_update().get(pk=offer.order_id)
    if order.delivery_status != "waiting_partner":
        raise InvalidOrderStateError(
            f"Order {order.pk} is {order.delivery_status}, cannot assign a courier"
        )

    # 1. Order
    order.partner = courier
    order.partner_name = courier.full_name
    order.partner_phone = courier.phone_number
    order.partner_photo_url = courier.profile_photo_url
    order.partner_vehicle_type = courier.vehicle_type
    order.delivery_status = "partner_assigned"
    order.assigned_at = assigned_at
    order.save(update_fields=[
        "partner", "partner_name", "partner_phone", "partner_photo_url",
        "partner_vehicle_type", "delivery_status", "assigned_at",
    ])

    # 2. Courier (conditional so one courier never holds two orders)
    booked = CourierProfile.objects.filter(
        pk=courier.pk, status="active", operational_status="online_idle"
    ).update(operational_status="on_delivery", current_order=order, updated_at=assigned_at)
    if booked != 1:
        raise CourierNotAvailableError(f"Courier {courier.pk} is no longer available")
    courier.refresh_from_db()

    # 3. Sibling offers
    cancelled = _cancel_sibling_offers(offer)

    logger.info(
        "Courier %s assigned to order %s via offer %s (%d sibling offer(s) cancelled)",
        courier.pk, order.pk, offer.pk, len(cancelled),
    )

    def _notify():
        notify_order_event(
            "partner_assigned", order, f"{courier.full_name} is on the way to the store."
        )
        notify_partner_event(
            "partner_assigned", courier.pk, "Delivery assigned to you.",
            extra={"order_id": order.pk, "offer_id": offer.pk},
        )
    transaction.on_commit(_notify)

    return AssignmentResult(offer=offer, order=order, courier=courier, cancelled_offer_ids=cancelled)


def _cancel_sibling_offers(offer: DeliveryOffer) -> List[int]:
    siblings = DeliveryOffer.objects.filter(order_id=offer.order_id, status="open").exclude(pk=offer.pk)
    sibling_ids = list(siblings.values_list("id", flat=True))
    if sibling_ids:
        DeliveryOffer.objects.filter(pk__in=sibling_ids, status="open").update(
            status="cancelled", version=F("version") + 1
        )
    return sibling_ids
