"""
Delivery progress and settlement.

Couriers report progress on their assigned order. The transition into
``delivered`` is edge-triggered: only the write that actually moves the order
from another state into ``delivered`` settles it, inside the same
transaction. Settlement records the courier's earning, updates the courier's
metrics and frees the courier for new offers.
"""

import logging
from decimal import Decimal
from typing import Optional

from django.db import transaction
from django.utils import timezone

from couriers.models import CourierProfile
from deliveries.models import DeliveryEarning
from orders.models import Order
from realtime.notifications import notify_order_event, notify_partner_event
from services.dispatch import mark_delivery_failed
from services.exceptions import (
    CourierNotFoundError,
    InvalidStatusTransitionError,
    OrderNotFoundError,
    SettlementError,
)
from services.policy import SettlementPolicy, get_settlement_policy
from services.pricing import CENT

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS = {
    "partner_assigned": ("in_delivery", "delivered"),
    "in_delivery": ("delivered",),
}

TIMESTAMP_FIELDS = {
    "in_delivery": "picked_up_at",
    "delivered": "delivered_at",
}


def update_delivery_status(order_id, new_status: str, courier_id=None, occurred_at=None) -> Order:
    """
    Apply a courier-reported delivery status change.

    Args:
        order_id: Order being delivered
        new_status: in_delivery or delivered
        courier_id: Reporting courier; must be the assigned one when given
        occurred_at: When it happened (defaults to timezone.now())

    Returns:
        The updated Order (unchanged if it already had ``new_status``)

    Raises:
        OrderNotFoundError: Unknown order
        InvalidStatusTransitionError: Wrong courier or transition not allowed
        CourierNotFoundError: The assigned courier is gone; the order is marked failed
        SettlementError: Settlement refused; nothing is written
    """
    occurred_at = occurred_at or timezone.now()

    try:
        with transaction.atomic():
            try:
                order = Order.objects.select_for_update().get(pk=order_id)
            except Order.DoesNotExist:
                raise OrderNotFoundError(f"Order {order_id} not found")

            if (
                courier_id is not None
                and order.partner_id is not None
                and str(order.partner_id) != str(courier_id)
            ):
                raise InvalidStatusTransitionError(f"Order {order.pk} is not assigned to courier {courier_id}")

            previous = order.delivery_status
            if previous == new_status:
                return order

            if new_status not in ALLOWED_TRANSITIONS.get(previous, ()):
                raise InvalidStatusTransitionError(
                    f"Cannot move order {order.pk} from {previous} to {new_status}"
                )

            changes = {"delivery_status": new_status, TIMESTAMP_FIELDS[new_status]: occurred_at}
            changed = Order.objects.filter(pk=order.pk, delivery_status=previous).update(**changes)
            order.refresh_from_db()

            earning = None
            if changed and new_status == "delivered":
                earning = settle_delivery(order)

            def _notify():
                notify_order_event("delivery_status_changed", order, extra={"previous_status": previous})
                if earning is not None:
                    notify_partner_event(
                        "earning_settled", earning.partner_id, "Delivery completed. Earning available.",
                        extra={"order_id": order.pk, "net_amount": str(earning.net_amount)},
                    )
            transaction.on_commit(_notify)
    except CourierNotFoundError as exc:
        _fail_unsettled_delivery(order_id, str(exc))
        raise

    logger.info("Order %s delivery status %s -> %s", order.pk, previous, new_status)
    return order


def _fail_unsettled_delivery(order_id, reason: str) -> None:
    """The delivered transition was rolled back; close the order out as failed instead."""
    with transaction.atomic():
        order = Order.objects.select_for_update().get(pk=order_id)
        if order.delivery_status in ALLOWED_TRANSITIONS:
            mark_delivery_failed(order, f"Delivery could not be settled: {reason}")


def complete_delivery(order_id, delivered_at=None, courier_id=None) -> Order:
    """Delivery-completion event: mark the order delivered (and settle it)."""
    return update_delivery_status(order_id, "delivered", courier_id=courier_id, occurred_at=delivered_at)


def is_on_time(
    assigned_at,
    delivered_at,
    pickup_eta_minutes: Optional[int],
    delivery_eta_minutes: Optional[int],
    policy: Optional[SettlementPolicy] = None,
) -> bool:
    """A delivery is on time if it took at most tolerance x (pickup ETA + delivery ETA) minutes."""
    policy = policy or get_settlement_policy()
    if assigned_at is None:
        return True

    expected_minutes = (
        (pickup_eta_minutes or policy.default_pickup_eta_minutes)
        + (delivery_eta_minutes or policy.default_delivery_eta_minutes)
    )
    actual_minutes = Decimal(str((delivered_at - assigned_at).total_seconds())) / 60
    return actual_minutes <= expected_minutes * policy.on_time_tolerance


def settle_delivery(order: Order) -> DeliveryEarning:
    """
    Record the earning for a delivered order and release its courier.

    Must run inside the transaction that marked the order delivered.

    Raises:
        CourierNotFoundError: No resolvable courier; no earning is created
        SettlementError: Order already settled or was never priced
    """
    if order.partner_id is None:
        raise CourierNotFoundError(f"Order {order.pk} has no courier to settle with")
    try:
        courier = CourierProfile.objects.select_for_update().get(pk=order.partner_id)
    except CourierProfile.DoesNotExist:
        raise CourierNotFoundError(f"Courier {order.partner_id} not found")

    if order.delivery_fee is None or order.partner_earning is None or order.platform_commission is None:
        raise SettlementError(f"Order {order.pk} has no priced delivery")
    if DeliveryEarning.objects.filter(order=order).exists():
        raise SettlementError(f"Order {order.pk} was already settled")

    now = timezone.now()
    delivered_at = order.delivered_at or now

    earning = DeliveryEarning.objects.create(
        partner=courier,
        order=order,
        gross_amount=order.delivery_fee,
        platform_fee=order.platform_commission,
        net_amount=order.partner_earning,
        status="available",
        created_at=now,
        completed_at=delivered_at,
    )

    on_time = is_on_time(
        order.assigned_at, delivered_at, order.pickup_eta_minutes, order.delivery_eta_minutes
    )

    courier.total_deliveries += 1
    courier.completed_deliveries += 1
    if on_time:
        courier.on_time_deliveries += 1
    courier.total_earnings += order.partner_earning
    courier.current_balance += order.partner_earning
    courier.on_time_rate = (
        Decimal(courier.on_time_deliveries) * 100 / Decimal(courier.completed_deliveries)
    ).quantize(CENT)
    courier.operational_status = "online_idle"
    courier.current_order = None
    courier.save(update_fields=[
        "total_deliveries", "completed_deliveries", "on_time_deliveries",
        "total_earnings", "current_balance", "on_time_rate",
        "operational_status", "current_order", "updated_at",
    ])

    logger.info(
        "Settled order %s: courier %s earned %s (on_time=%s, balance %s)",
        order.pk, courier.pk, earning.net_amount, on_time, courier.current_balance,
    )
    return earning
