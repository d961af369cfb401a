from datetime import timedelta
from decimal import Decimal
from unittest.mock import patch

from django.test import SimpleTestCase, TestCase
from django.utils import timezone

from couriers.models import CourierProfile
from deliveries.models import DeliveryEarning
from services.assignment import accept_offer
from services.dispatch import create_delivery_offer
from services.exceptions import CourierNotFoundError, InvalidStatusTransitionError
from services.policy import SettlementPolicy
from services.settlement import complete_delivery, is_on_time, update_delivery_status
from .utils import NEAR, make_courier, make_order


class SettlementTests(TestCase):
    def setUp(self):
        self.t0 = timezone.now()
        self.courier = make_courier("Ana Souza", NEAR)
        self.other = make_courier("Bruno Lima", NEAR)
        self.order = make_order()
        offer = create_delivery_offer(self.order.id, now=self.t0)
        self.assigned_at = self.t0 + timedelta(seconds=10)
        accept_offer(offer.id, self.courier.id, now=self.assigned_at)

    def deliver(self, minutes_after_assignment, **kwargs):
        return update_delivery_status(
            self.order.id,
            "delivered",
            courier_id=self.courier.id,
            occurred_at=self.assigned_at + timedelta(minutes=minutes_after_assignment),
            **kwargs
        )

    def test_delivery_records_earning_once(self):
        order = self.deliver(20)

        self.assertEqual(order.delivery_status, "delivered")
        earning = DeliveryEarning.objects.get(order=self.order)
        self.assertEqual(earning.partner_id, self.courier.id)
        self.assertEqual(earning.gross_amount, Decimal("5.37"))
        self.assertEqual(earning.platform_fee, Decimal("1.08"))
        self.assertEqual(earning.net_amount, Decimal("4.29"))
        self.assertEqual(earning.status, "available")
        self.assertEqual(earning.completed_at, order.delivered_at)

    def test_delivery_frees_courier_and_updates_metrics(self):
        self.deliver(20)

        self.courier.refresh_from_db()
        self.assertEqual(self.courier.operational_status, "online_idle")
        self.assertIsNone(self.courier.current_order_id)
        self.assertEqual(self.courier.total_deliveries, 1)
        self.assertEqual(self.courier.completed_deliveries, 1)
        self.assertEqual(self.courier.on_time_deliveries, 1)
        self.assertEqual(self.courier.total_earnings, Decimal("4.29"))
        self.assertEqual(self.courier.current_balance, Decimal("4.29"))
        self.assertEqual(self.courier.on_time_rate, Decimal("100.00"))

    def test_late_delivery_lowers_on_time_rate(self):
        # pickup ETA 11 + default delivery ETA 15 = 26min, tolerance 1.2 -> 31.2min
        self.deliver(32)

        self.courier.refresh_from_db()
        self.assertEqual(self.courier.completed_deliveries, 1)
        self.assertEqual(self.courier.on_time_deliveries, 0)
        self.assertEqual(self.courier.on_time_rate, Decimal("0.00"))

    def test_repeated_delivered_event_is_a_no_op(self):
        self.deliver(20)
        self.deliver(25)

        self.assertEqual(DeliveryEarning.objects.filter(order=self.order).count(), 1)
        self.courier.refresh_from_db()
        self.assertEqual(self.courier.completed_deliveries, 1)
        self.assertEqual(self.courier.current_balance, Decimal("4.29"))
        self.order.refresh_from_db()
        self.assertEqual(self.order.delivered_at, self.assigned_at + timedelta(minutes=20))

    def test_pickup_then_delivery(self):
        picked_up_at = self.assigned_at + timedelta(minutes=8)
        order = update_delivery_status(self.order.id, "in_delivery", courier_id=self.courier.id,
                                       occurred_at=picked_up_at)

        self.assertEqual(order.delivery_status, "in_delivery")
        self.assertEqual(order.picked_up_at, picked_up_at)
        self.assertFalse(DeliveryEarning.objects.filter(order=self.order).exists())

        self.deliver(20)
        self.assertTrue(DeliveryEarning.objects.filter(order=self.order).exists())

    def test_cannot_go_back_from_delivered(self):
        self.deliver(20)

        with self.assertRaises(InvalidStatusTransitionError):
            update_delivery_status(self.order.id, "in_delivery", courier_id=self.courier.id)

    def test_unassigned_order_cannot_be_delivered(self):
        order = make_order()

        with self.assertRaises(InvalidStatusTransitionError):
            update_delivery_status(order.id, "delivered")

    def test_only_assigned_courier_reports_progress(self):
        with self.assertRaises(InvalidStatusTransitionError):
            update_delivery_status(self.order.id, "delivered", courier_id=self.other.id)

        self.order.refresh_from_db()
        self.assertEqual(self.order.delivery_status, "partner_assigned")

    def test_non_numeric_courier_id_is_rejected(self):
        with self.assertRaises(InvalidStatusTransitionError):
            update_delivery_status(self.order.id, "delivered", courier_id="courier-ana")

        self.order.refresh_from_db()
        self.assertEqual(self.order.delivery_status, "partner_assigned")

    def test_courier_id_as_string_is_accepted(self):
        order = update_delivery_status(self.order.id, "in_delivery", courier_id=str(self.courier.id))
        self.assertEqual(order.delivery_status, "in_delivery")

    def test_missing_courier_fails_the_order(self):
        CourierProfile.objects.filter(pk=self.courier.pk).delete()

        with patch("services.dispatch.offer_builder.notify_order_event") as order_event:
            with self.captureOnCommitCallbacks(execute=True):
                with self.assertRaises(CourierNotFoundError):
                    complete_delivery(self.order.id, delivered_at=self.assigned_at + timedelta(minutes=20))

        self.order.refresh_from_db()
        self.assertEqual(self.order.delivery_status, "failed")
        self.assertIn("could not be settled", self.order.delivery_error)
        self.assertIsNone(self.order.delivered_at)
        self.assertFalse(DeliveryEarning.objects.exists())
        self.assertEqual(order_event.call_args[0][0], "delivery_failed")

    def test_settlement_announced_after_commit(self):
        with patch("services.settlement.delivery_completion.notify_partner_event") as partner_event, \
                patch("services.settlement.delivery_completion.notify_order_event") as order_event:
            with self.captureOnCommitCallbacks(execute=True):
                self.deliver(20)

        order_event.assert_called_once()
        self.assertEqual(order_event.call_args[0][0], "delivery_status_changed")
        self.assertEqual(partner_event.call_args[0][:2], ("earning_settled", self.courier.id))


class OnTimeRuleTests(SimpleTestCase):
    def setUp(self):
        self.policy = SettlementPolicy()
        self.assigned_at = timezone.now()

    def test_within_tolerance(self):
        # (10 + 15) * 1.2 = 30 minutes
        delivered_at = self.assigned_at + timedelta(minutes=30)
        self.assertTrue(is_on_time(self.assigned_at, delivered_at, 10, 15, self.policy))

    def test_past_tolerance(self):
        delivered_at = self.assigned_at + timedelta(minutes=30, seconds=1)
        self.assertFalse(is_on_time(self.assigned_at, delivered_at, 10, 15, self.policy))

    def test_missing_etas_use_defaults(self):
        # (15 + 15) * 1.2 = 36 minutes
        self.assertTrue(is_on_time(self.assigned_at, self.assigned_at + timedelta(minutes=36), None, None, self.policy))
        self.assertFalse(is_on_time(self.assigned_at, self.assigned_at + timedelta(minutes=37), None, None, self.policy))

    def test_unknown_assignment_time_counts_as_on_time(self):
        self.assertTrue(is_on_time(None, self.assigned_at, 10, 15, self.policy))
