from datetime import timedelta
from unittest.mock import patch

from django.db import DatabaseError
from django.test import TestCase
from django.utils import timezone

from couriers.models import CourierProfile
from deliveries.models import DeliveryOffer
from orders.models import Order
from services.assignment import (
    accept_offer,
    assign_partner,
    decline_offer,
    get_available_offers,
    record_acceptance,
)
from services.assignment.acceptance import _check_acceptable, get_offer
from services.dispatch import create_delivery_offer
from services.exceptions import (
    AssignmentError,
    CourierNotAvailableError,
    CourierNotFoundError,
    OfferExpiredError,
    OfferNotAvailableError,
    OfferNotFoundError,
    OfferNotVisibleError,
)
from .utils import FAR, NEAR, make_courier, make_order


class AcceptOfferTests(TestCase):
    def setUp(self):
        self.t0 = timezone.now()
        self.ana = make_courier("Ana Souza", NEAR, phone_number="5511911110001", vehicle_type="bicycle")
        self.bruno = make_courier("Bruno Lima", "0.030000", phone_number="5511911110002")
        self.order = make_order()
        self.offer = create_delivery_offer(self.order.id, now=self.t0)
        self.accept_at = self.t0 + timedelta(seconds=10)

    def test_accept_assigns_order_and_books_courier(self):
        result = accept_offer(self.offer.id, self.ana.id, now=self.accept_at)

        self.offer.refresh_from_db()
        self.order.refresh_from_db()
        self.ana.refresh_from_db()

        self.assertEqual(self.offer.status, "accepted")
        self.assertEqual(self.offer.accepted_by_id, self.ana.id)
        self.assertEqual(self.offer.accepted_at, self.accept_at)
        self.assertEqual(self.offer.version, 1)

        self.assertEqual(self.order.delivery_status, "partner_assigned")
        self.assertEqual(self.order.partner_id, self.ana.id)
        self.assertEqual(self.order.partner_name, "Ana Souza")
        self.assertEqual(self.order.partner_phone, "5511911110001")
        self.assertEqual(self.order.partner_vehicle_type, "bicycle")
        self.assertEqual(self.order.assigned_at, self.accept_at)

        self.assertEqual(self.ana.operational_status, "on_delivery")
        self.assertEqual(self.ana.current_order_id, self.order.id)
        self.assertEqual(result.courier.operational_status, "on_delivery")

    def test_second_courier_loses(self):
        accept_offer(self.offer.id, self.ana.id, now=self.accept_at)

        with self.assertRaises(OfferNotAvailableError):
            accept_offer(self.offer.id, self.bruno.id, now=self.accept_at)

        self.bruno.refresh_from_db()
        self.assertEqual(self.bruno.operational_status, "online_idle")

    def test_only_one_of_racing_writes_wins(self):
        snapshot = DeliveryOffer.objects.get(pk=self.offer.pk)

        outcomes = [
            record_acceptance(snapshot, courier, self.accept_at)
            for courier in (self.bruno, self.ana, self.bruno)
        ]

        self.assertEqual(outcomes, [True, False, False])
        self.offer.refresh_from_db()
        self.assertEqual(self.offer.accepted_by_id, self.bruno.id)
        self.assertEqual(self.offer.version, 1)

    def test_one_of_many_validated_couriers_wins(self):
        couriers = [self.ana, self.bruno] + [
            make_courier(f"Courier {n}", NEAR, phone_number=f"551192222000{n}") for n in range(3)
        ]
        self.offer.visible_to_partners.add(*couriers)

        # Every courier reads and validates the open offer before anyone writes
        snapshots = [get_offer(self.offer.id) for _ in couriers]
        for snapshot, courier in zip(snapshots, couriers):
            _check_acceptable(snapshot, courier, self.accept_at)

        wins, losses = [], 0
        with patch("services.assignment.acceptance.get_offer", side_effect=snapshots), \
                patch("services.assignment.acceptance._check_acceptable"), \
                patch("services.assignment.acceptance.record_acceptance", wraps=record_acceptance) as writes:
            for courier in couriers:
                try:
                    wins.append(accept_offer(self.offer.id, courier.id, now=self.accept_at))
                except OfferNotAvailableError:
                    losses += 1

        self.assertEqual(writes.call_count, len(couriers))
        self.assertEqual(len(wins), 1)
        self.assertEqual(losses, len(couriers) - 1)
        self.offer.refresh_from_db()
        self.assertEqual(self.offer.status, "accepted")
        self.assertEqual(self.offer.accepted_by_id, couriers[0].id)
        self.assertEqual(CourierProfile.objects.filter(operational_status="on_delivery").count(), 1)

    def test_courier_outside_candidate_set(self):
        outsider = make_courier("Far Away", FAR)

        with self.assertRaises(OfferNotVisibleError):
            accept_offer(self.offer.id, outsider.id, now=self.accept_at)

        self.offer.refresh_from_db()
        self.assertEqual(self.offer.status, "open")

    def test_expired_offer_cannot_be_accepted(self):
        with self.assertRaises(OfferExpiredError):
            accept_offer(self.offer.id, self.ana.id, now=self.offer.expires_at)

        self.order.refresh_from_db()
        self.assertEqual(self.order.delivery_status, "waiting_partner")

    def test_busy_courier_cannot_accept(self):
        CourierProfile.objects.filter(pk=self.ana.pk).update(operational_status="on_delivery")

        with self.assertRaises(CourierNotAvailableError):
            accept_offer(self.offer.id, self.ana.id, now=self.accept_at)

    def test_suspended_courier_cannot_accept(self):
        CourierProfile.objects.filter(pk=self.ana.pk).update(status="suspended")

        with self.assertRaises(CourierNotAvailableError):
            accept_offer(self.offer.id, self.ana.id, now=self.accept_at)

    def test_order_no_longer_waiting(self):
        Order.objects.filter(pk=self.order.pk).update(delivery_status="failed")

        with self.assertRaises(OfferNotAvailableError):
            accept_offer(self.offer.id, self.ana.id, now=self.accept_at)

    def test_unknown_ids(self):
        with self.assertRaises(OfferNotFoundError):
            accept_offer(999999, self.ana.id, now=self.accept_at)
        with self.assertRaises(CourierNotFoundError):
            accept_offer(self.offer.id, 999999, now=self.accept_at)

    @patch("services.assignment.coordinator._cancel_sibling_offers", side_effect=DatabaseError("write failed"))
    def test_failed_assignment_rolls_back_acceptance(self, mock_cancel):
        with self.assertRaises(AssignmentError):
            accept_offer(self.offer.id, self.ana.id, now=self.accept_at)

        self.offer.refresh_from_db()
        self.order.refresh_from_db()
        self.ana.refresh_from_db()

        self.assertEqual(self.offer.status, "open")
        self.assertIsNone(self.offer.accepted_by_id)
        self.assertIsNone(self.offer.accepted_at)
        self.assertEqual(self.offer.version, 2)

        self.assertEqual(self.order.delivery_status, "waiting_partner")
        self.assertIsNone(self.order.partner_id)
        self.assertEqual(self.order.partner_name, "")

        self.assertEqual(self.ana.operational_status, "online_idle")
        self.assertIsNone(self.ana.current_order_id)

    def test_offer_can_be_accepted_after_rollback(self):
        with patch("services.assignment.coordinator._cancel_sibling_offers", side_effect=DatabaseError):
            with self.assertRaises(AssignmentError):
                accept_offer(self.offer.id, self.ana.id, now=self.accept_at)

        result = accept_offer(self.offer.id, self.bruno.id, now=self.accept_at)

        self.assertEqual(result.order.partner_id, self.bruno.id)

    def test_assignment_refused_when_courier_booked_meanwhile(self):
        stale_ana = CourierProfile.objects.get(pk=self.ana.pk)
        CourierProfile.objects.filter(pk=self.ana.pk).update(operational_status="on_delivery")

        with self.assertRaises(CourierNotAvailableError):
            assign_partner(self.offer, stale_ana, self.accept_at)

        self.order.refresh_from_db()
        self.assertEqual(self.order.delivery_status, "waiting_partner")
        self.assertIsNone(self.order.partner_id)

    def test_assignment_notifies_order_and_courier(self):
        with patch("services.assignment.coordinator.notify_order_event") as order_event, \
                patch("services.assignment.coordinator.notify_partner_event") as partner_event:
            with self.captureOnCommitCallbacks(execute=True):
                accept_offer(self.offer.id, self.ana.id, now=self.accept_at)

        self.assertEqual(order_event.call_args[0][0], "partner_assigned")
        self.assertEqual(partner_event.call_args[0][:2], ("partner_assigned", self.ana.id))

    def test_nothing_announced_when_assignment_rolls_back(self):
        with patch("services.assignment.coordinator._cancel_sibling_offers", side_effect=DatabaseError), \
                patch("services.assignment.coordinator.notify_order_event") as order_event:
            with self.captureOnCommitCallbacks(execute=True):
                with self.assertRaises(AssignmentError):
                    accept_offer(self.offer.id, self.ana.id, now=self.accept_at)

        order_event.assert_not_called()


class DeclineAndListOffersTests(TestCase):
    def setUp(self):
        self.t0 = timezone.now()
        self.ana = make_courier("Ana Souza", NEAR)
        self.bruno = make_courier("Bruno Lima", NEAR)
        self.order = make_order()
        self.offer = create_delivery_offer(self.order.id, now=self.t0)

    def test_decline_hides_offer_from_courier(self):
        decline_offer(self.offer.id, self.ana.id)

        self.assertEqual(list(self.offer.visible_to_partners.values_list("id", flat=True)), [self.bruno.id])
        with self.assertRaises(OfferNotVisibleError):
            accept_offer(self.offer.id, self.ana.id, now=self.t0)

    def test_cannot_decline_closed_offer(self):
        accept_offer(self.offer.id, self.bruno.id, now=self.t0)

        with self.assertRaises(OfferNotAvailableError):
            decline_offer(self.offer.id, self.ana.id)

    def test_available_offers_for_courier(self):
        self.assertEqual(get_available_offers(self.ana.id, now=self.t0), [self.offer])

        accept_offer(self.offer.id, self.bruno.id, now=self.t0)

        self.assertEqual(get_available_offers(self.ana.id, now=self.t0), [])

    def test_available_offers_skip_expired(self):
        self.assertEqual(get_available_offers(self.ana.id, now=self.offer.expires_at), [])

    def test_available_offers_newest_first_and_capped(self):
        for second in range(1, 12):
            create_delivery_offer(make_order().id, now=self.t0 + timedelta(seconds=second))

        offers = get_available_offers(self.ana.id, now=self.t0 + timedelta(seconds=12))

        self.assertEqual(len(offers), 10)
        self.assertEqual(offers[0].created_at, self.t0 + timedelta(seconds=11))
        self.assertEqual(offers, sorted(offers, key=lambda o: o.created_at, reverse=True))
