"""Celery tasks for delivery dispatch background processing."""

from celery import shared_task
import logging

from services.exceptions import DispatchError

logger = logging.getLogger(__name__)


@shared_task
def create_delivery_offer_task(order_id: int):
    """
    Open the delivery offer for an order that was just confirmed.

    Queued by the order workflow after it moves an order to waiting_partner.
    Returns the new offer id, or None if the order could not be dispatched.
    """
    from services.dispatch import create_delivery_offer

    try:
        offer = create_delivery_offer(order_id)
    except DispatchError as e:
        logger.warning(f"Could not create delivery offer for order {order_id}: {e}")
        return None
    return offer.id


@shared_task
def retry_delivery_offers_task(batch_size: int = None):
    """
    Periodic retry scan (scheduled by Celery beat).

    Widens the search radius of offers nobody accepted in time and expires
    offers that ran out of attempts.
    """
    from services.dispatch import retry_expired_offers

    result = retry_expired_offers(batch_size=batch_size)
    return result.as_dict()
