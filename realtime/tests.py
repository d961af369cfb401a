from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.test import TestCase

from realtime.notifications import (
    notify_order_event,
    notify_partner_event,
    notify_partners_of_offer,
    order_group,
    partner_group,
)
from services.dispatch import create_delivery_offer
from deliveries.tests.utils import NEAR, make_courier, make_order


class ChannelLayerNotificationTests(TestCase):
    def setUp(self):
        self.layer = get_channel_layer()
        async_to_sync(self.layer.flush)()
        self.courier = make_courier("Ana Souza", NEAR)
        self.order = make_order()

    def subscribe(self, group):
        channel = async_to_sync(self.layer.new_channel)()
        async_to_sync(self.layer.group_add)(group, channel)
        return channel

    def receive(self, channel):
        return async_to_sync(self.layer.receive)(channel)

    def test_offer_fan_out_reaches_courier_group(self):
        channel = self.subscribe(partner_group(self.courier.id))
        offer = create_delivery_offer(self.order.id)

        sent = notify_partners_of_offer(offer, {self.courier.id})

        self.assertEqual(sent, 1)
        message = self.receive(channel)
        self.assertEqual(message["type"], "delivery_offer")
        self.assertEqual(message["offer_id"], offer.id)
        self.assertEqual(message["offer_data"]["earning_amount"], "4.29")

    def test_offer_creation_announces_on_commit(self):
        channel = self.subscribe(partner_group(self.courier.id))

        with self.captureOnCommitCallbacks(execute=True):
            offer = create_delivery_offer(self.order.id)

        self.assertEqual(self.receive(channel)["offer_id"], offer.id)

    def test_partner_event(self):
        channel = self.subscribe(partner_group(self.courier.id))

        self.assertTrue(notify_partner_event("offer_cancelled", self.courier.id, "Gone", extra={"order_id": 7}))

        message = self.receive(channel)
        self.assertEqual(message["type"], "offer_cancelled")
        self.assertEqual(message["message"], "Gone")
        self.assertEqual(message["order_id"], 7)

    def test_partner_event_without_courier(self):
        self.assertFalse(notify_partner_event("offer_cancelled", None))

    def test_order_event_carries_delivery_fields(self):
        channel = self.subscribe(order_group(self.order.id))

        notify_order_event("delivery_failed", self.order, "No courier available")

        message = self.receive(channel)
        self.assertEqual(message["type"], "delivery_failed")
        self.assertEqual(message["delivery_status"], "waiting_partner")
        self.assertEqual(message["delivery"]["id"], self.order.id)
        self.assertEqual(message["message"], "No courier available")
