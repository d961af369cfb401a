"""
Periodic retry scan for offers nobody accepted in time.

Each tick picks up to a bounded batch of open offers whose ``expires_at`` has
passed and, per offer, either:
    - widens the search radius, recomputes the candidate set and re-opens the
      visibility window (attempt_number + 1), or
    - expires the offer and fails the order once the attempt ceiling is hit, or
    - cancels the offer when the order already left ``waiting_partner``.

Every write is conditional on the offer still being open, expired and at the
version read by this tick, so overlapping ticks never process an offer twice.
An offer whose processing raises stays due but is counted in ``scan_failures``
and served after offers with fewer failures.
"""

import logging
from dataclasses import dataclass
from datetime import timedelta

from django.db import transaction
from django.db.models import F
from django.utils import timezone

from couriers import services as courier_services
from deliveries.models import DeliveryOffer
from orders.models import Order
from realtime.notifications import notify_partners_of_offer
from services.policy import DispatchPolicy, get_dispatch_policy
from .offer_builder import mark_delivery_failed

logger = logging.getLogger(__name__)

NO_COURIER_AVAILABLE = "No courier available"


@dataclass
class RetryScanResult:
    """Outcome counts for one retry tick."""
    expanded: int = 0
    expired: int = 0
    cancelled: int = 0
    skipped: int = 0
    failed: int = 0

    @property
    def processed(self) -> int:
        return self.expanded + self.expired + self.cancelled

    def as_dict(self):
        return {
            "expanded": self.expanded,
            "expired": self.expired,
            "cancelled": self.cancelled,
            "skipped": self.skipped,
            "failed": self.failed,
        }


def retry_expired_offers(now=None, batch_size=None) -> RetryScanResult:
    """
    Run one retry tick.

    Args:
        now: Clock override (defaults to timezone.now())
        batch_size: Max offers handled this tick (defaults to DELIVERY_RETRY_BATCH_SIZE)

    Returns:
        RetryScanResult with per-outcome counts
    """
    policy = get_dispatch_policy()
    now = now or timezone.now()
    batch_size = batch_size or policy.retry_batch_size

    due_offers = list(
        DeliveryOffer.objects
        .filter(status="open", expires_at__lte=now)
        .order_by("scan_failures", "expires_at", "id")[:batch_size]
    )

    result = RetryScanResult()
    for offer in due_offers:
        try:
            outcome = _process_due_offer(offer, now, policy)
        except Exception:
            # Offer stays open and due, queued behind offers that have not failed
            logger.exception("Retry scan failed for offer %s", offer.pk)
            result.failed += 1
            DeliveryOffer.objects.filter(pk=offer.pk).update(scan_failures=F("scan_failures") + 1)
            continue
        setattr(result, outcome, getattr(result, outcome) + 1)

    if due_offers:
        logger.info("Retry scan at %s: %s", now.isoformat(), result.as_dict())
    return result


def _claim(offer: DeliveryOffer, now, **changes) -> bool:
    """Compare-and-swap write on an offer still open, due and at the version we read."""
    updated = DeliveryOffer.objects.filter(
        pk=offer.pk,
        status="open",
        version=offer.version,
        expires_at__lte=now,
    ).update(version=F("version") + 1, **changes)
    return updated == 1


def _process_due_offer(offer: DeliveryOffer, now, policy: DispatchPolicy) -> str:
    with transaction.atomic():
        order = Order.objects.select_for_update().get(pk=offer.order_id)

        # Order failed or was cancelled elsewhere: stop dispatching it
        if order.delivery_status != "waiting_partner":
            if not _claim(offer, now, status="cancelled"):
                return "skipped"
            logger.info("Offer %s cancelled: order %s is %s", offer.pk, order.pk, order.delivery_status)
            return "cancelled"

        if offer.attempt_number >= policy.max_attempts:
            if not _claim(offer, now, status="expired"):
                return "skipped"
            mark_delivery_failed(order, NO_COURIER_AVAILABLE)
            logger.info("Offer %s expired after %d attempts", offer.pk, offer.attempt_number)
            return "expired"

        new_radius = policy.radius_for_retry(offer.attempt_number)
        candidates = courier_services.find_candidates(offer.pickup_point, new_radius)
        claimed = _claim(
            offer,
            now,
            search_radius_km=new_radius,
            attempt_number=offer.attempt_number + 1,
            expires_at=now + timedelta(seconds=policy.offer_ttl_seconds),
        )
        if not claimed:
            return "skipped"

        previous = set(offer.visible_to_partners.values_list("id", flat=True))
        offer.visible_to_partners.set(candidates)
        offer.refresh_from_db()

        newly_visible = candidates - previous
        if newly_visible:
            transaction.on_commit(lambda: notify_partners_of_offer(offer, newly_visible))

    logger.info(
        "Offer %s attempt %d: radius %skm, %d candidate(s) (%d new)",
        offer.pk, offer.attempt_number, new_radius, len(candidates), len(newly_visible),
    )
    return "expanded"
