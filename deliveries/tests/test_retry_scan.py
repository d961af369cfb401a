from datetime import timedelta
from io import StringIO
from unittest.mock import patch

from django.core.management import call_command
from django.db.models import F
from django.test import TestCase
from django.utils import timezone

from deliveries.models import DeliveryOffer
from deliveries.tasks import retry_delivery_offers_task
from orders.models import Order
from services.dispatch import create_delivery_offer, retry_expired_offers
from services.dispatch.offer_retry import NO_COURIER_AVAILABLE, _process_due_offer
from services.policy import get_dispatch_policy
from .utils import RING_10, RING_15, make_courier, make_order


class RetryScanTests(TestCase):
    def setUp(self):
        self.t0 = timezone.now()
        self.courier = make_courier("Carla Ring10", RING_10)
        self.order = make_order()
        self.offer = create_delivery_offer(self.order.id, now=self.t0)

    def visible_ids(self):
        return set(self.offer.visible_to_partners.values_list("id", flat=True))

    def test_offer_not_due_is_left_alone(self):
        result = retry_expired_offers(now=self.t0 + timedelta(seconds=30))

        self.assertEqual(result.processed, 0)
        self.offer.refresh_from_db()
        self.assertEqual(self.offer.attempt_number, 1)

    def test_due_offer_widens_search_radius(self):
        self.assertEqual(self.visible_ids(), set())
        tick = self.offer.expires_at  # due exactly at expires_at

        result = retry_expired_offers(now=tick)

        self.assertEqual(result.expanded, 1)
        self.offer.refresh_from_db()
        self.assertEqual(self.offer.status, "open")
        self.assertEqual(self.offer.attempt_number, 2)
        self.assertEqual(self.offer.search_radius_km, 10)
        self.assertEqual(self.offer.expires_at, tick + timedelta(seconds=60))
        self.assertEqual(self.offer.version, 1)
        self.assertEqual(self.visible_ids(), {self.courier.id})

    def test_radius_sequence_then_expiry(self):
        radii = []
        for _ in range(3):
            retry_expired_offers(now=self.offer.expires_at)
            self.offer.refresh_from_db()
            radii.append(self.offer.search_radius_km)

        self.assertEqual(radii, [10, 15, 20])
        self.assertEqual(self.offer.attempt_number, 4)

        result = retry_expired_offers(now=self.offer.expires_at)

        self.assertEqual(result.expired, 1)
        self.offer.refresh_from_db()
        self.order.refresh_from_db()
        self.assertEqual(self.offer.status, "expired")
        self.assertEqual(self.order.delivery_status, "failed")
        self.assertEqual(self.order.delivery_error, NO_COURIER_AVAILABLE)

    def test_expired_offer_is_not_picked_up_again(self):
        DeliveryOffer.objects.filter(pk=self.offer.pk).update(attempt_number=4)
        retry_expired_offers(now=self.offer.expires_at)

        result = retry_expired_offers(now=self.offer.expires_at + timedelta(minutes=5))

        self.assertEqual(result.processed, 0)

    def test_offer_cancelled_when_order_left_waiting(self):
        Order.objects.filter(pk=self.order.pk).update(delivery_status="failed")

        result = retry_expired_offers(now=self.offer.expires_at)

        self.assertEqual(result.cancelled, 1)
        self.offer.refresh_from_db()
        self.assertEqual(self.offer.status, "cancelled")

    def test_overlapping_ticks_process_offer_once(self):
        tick = self.offer.expires_at
        first = retry_expired_offers(now=tick)
        second = retry_expired_offers(now=tick)

        self.assertEqual(first.expanded, 1)
        self.assertEqual(second.processed, 0)
        self.offer.refresh_from_db()
        self.assertEqual(self.offer.attempt_number, 2)

    def test_stale_snapshot_is_skipped(self):
        stale = DeliveryOffer.objects.get(pk=self.offer.pk)
        DeliveryOffer.objects.filter(pk=self.offer.pk).update(version=F("version") + 1)

        outcome = _process_due_offer(stale, self.offer.expires_at, get_dispatch_policy())

        self.assertEqual(outcome, "skipped")
        self.offer.refresh_from_db()
        self.assertEqual(self.offer.attempt_number, 1)

    def test_batch_size_bounds_one_tick(self):
        for _ in range(2):
            create_delivery_offer(make_order().id, now=self.t0)
        tick = self.t0 + timedelta(seconds=61)

        result = retry_expired_offers(now=tick, batch_size=2)

        self.assertEqual(result.expanded, 2)
        self.assertEqual(DeliveryOffer.objects.filter(attempt_number=1).count(), 1)

    def test_newly_reached_couriers_are_notified(self):
        DeliveryOffer.objects.filter(pk=self.offer.pk).update(attempt_number=2, search_radius_km=10)
        self.offer.visible_to_partners.set([self.courier.id])
        self.offer.refresh_from_db()
        newcomer = make_courier("Diego Ring15", RING_15)

        with patch("services.dispatch.offer_retry.notify_partners_of_offer") as mock_notify:
            with self.captureOnCommitCallbacks(execute=True):
                retry_expired_offers(now=self.offer.expires_at)

        mock_notify.assert_called_once()
        self.assertEqual(mock_notify.call_args[0][1], {newcomer.id})
        self.assertEqual(self.visible_ids(), {self.courier.id, newcomer.id})

    def test_failure_on_one_offer_does_not_stop_the_tick(self):
        with patch("couriers.services.find_candidates", side_effect=RuntimeError("geo down")):
            result = retry_expired_offers(now=self.offer.expires_at)

        self.assertEqual(result.failed, 1)
        self.offer.refresh_from_db()
        self.assertEqual(self.offer.status, "open")
        self.assertEqual(self.offer.attempt_number, 1)
        self.assertEqual(self.offer.scan_failures, 1)

    def test_failing_offer_does_not_starve_the_batch(self):
        later_order = make_order()
        later = create_delivery_offer(later_order.id, now=self.t0 + timedelta(seconds=5))
        tick = later.expires_at

        with patch("couriers.services.find_candidates", side_effect=[RuntimeError("geo down"), set()]):
            first = retry_expired_offers(now=tick, batch_size=1)
            second = retry_expired_offers(now=tick, batch_size=1)

        self.assertEqual(first.failed, 1)
        self.assertEqual(second.expanded, 1)
        later.refresh_from_db()
        self.assertEqual(later.attempt_number, 2)
        self.offer.refresh_from_db()
        self.assertEqual(self.offer.attempt_number, 1)
        self.assertEqual(self.offer.status, "open")

    def test_process_offer_retries_command(self):
        DeliveryOffer.objects.filter(pk=self.offer.pk).update(expires_at=timezone.now() - timedelta(seconds=1))
        out = StringIO()

        call_command("process_offer_retries", batch_size=5, stdout=out)

        self.offer.refresh_from_db()
        self.assertEqual(self.offer.attempt_number, 2)
        self.assertIn("Expanded 1 offer(s)", out.getvalue())

    def test_retry_task_returns_counts(self):
        DeliveryOffer.objects.filter(pk=self.offer.pk).update(expires_at=timezone.now() - timedelta(seconds=1))

        counts = retry_delivery_offers_task()

        self.assertEqual(counts["expanded"], 1)
        self.assertEqual(counts["expired"], 0)
