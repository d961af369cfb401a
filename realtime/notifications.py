"""
Notification helpers for sending channel-layer events to dispatch collaborators.

This module provides functions to:
- Fan out "new offer visible" events to couriers (partner_<id> groups)
- Send offer/assignment/settlement events to a specific courier
- Send delivery progress events to the order's listeners (order_<id> group)

Only the trigger point lives here; push delivery to devices is handled by
whoever consumes these groups. Callers inside a transaction should schedule
these through ``transaction.on_commit``.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, Optional

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer

logger = logging.getLogger(__name__)


def partner_group(partner_id: int) -> str:
    return f"partner_{partner_id}"


def order_group(order_id: int) -> str:
    return f"order_{order_id}"


def _group_send(group: str, payload: Dict[str, Any]) -> bool:
    channel_layer = get_channel_layer()
    if channel_layer is None:
        logger.warning("No channel layer available; dropping %s for %s", payload.get("type"), group)
        return False

    logger.debug("WS -> %s: %s", group, payload)
    try:
        async_to_sync(channel_layer.group_send)(group, payload)
    except Exception:
        logger.exception("Failed to send %s to %s", payload.get("type"), group)
        return False
    return True


# ---------------------- Courier Notifications ----------------------

def notify_partners_of_offer(offer, partner_ids: Iterable[int]) -> int:
    """
    Tell every courier in ``partner_ids`` that ``offer`` is visible to them.

    Returns:
        Number of couriers the event was handed to
    """
    from deliveries.serializers import DeliveryOfferSerializer

    offer_data = DeliveryOfferSerializer(offer).data
    sent = 0
    for partner_id in partner_ids:
        payload = {
            "type": "delivery_offer",
            "offer_id": offer.id,
            "partner_id": partner_id,
            "offer_data": offer_data,
        }
        if _group_send(partner_group(partner_id), payload):
            sent += 1

    logger.info("Offer %s announced to %d courier(s)", offer.id, sent)
    return sent


def notify_partner_event(
    event_type: str,
    partner_id: Optional[int],
    message: str = "",
    extra: Optional[Dict[str, Any]] = None,
) -> bool:
    """
    Send an event to a specific courier using their personal group: partner_<id>

    Args:
        event_type: offer_cancelled, partner_assigned, earning_settled
        partner_id: Target courier id
        message: Optional message to include
        extra: Additional payload data

    Returns:
        True if sent successfully, False otherwise
    """
    if not partner_id:
        return False

    payload = {
        "type": event_type,
        "partner_id": partner_id,
        **(extra or {}),
    }
    if message:
        payload["message"] = message

    return _group_send(partner_group(partner_id), payload)


# ---------------------- Order Notifications ----------------------

def notify_order_event(
    event_type: str,
    order,
    message: str = "",
    extra: Optional[Dict[str, Any]] = None,
) -> bool:
    """
    Send a delivery event to customer/store listeners through: order_<order_id>

    Args:
        event_type: partner_assigned, delivery_failed, delivery_status_changed
        order: Order model instance
        message: Optional message to include
        extra: Additional payload data
    """
    from orders.serializers import OrderDeliverySerializer

    payload = {
        "type": event_type,
        "order_id": order.id,
        "delivery_status": order.delivery_status,
        "delivery": OrderDeliverySerializer(order).data,
        **(extra or {}),
    }
    if message:
        payload["message"] = message

    return _group_send(order_group(order.id), payload)
