from decimal import Decimal

from django.test import TestCase

from common.utils import GeoPoint, calculate_distance
from couriers.models import CourierProfile
from couriers.services import find_candidates, update_courier_location, update_operational_status
from orders.models import Order
from services.assignment import accept_offer
from services.dispatch import create_delivery_offer
from services.exceptions import CourierNotAvailableError

ORIGIN = GeoPoint(-23.561, -46.656)


def create_courier(full_name, latitude, longitude, **overrides):
    fields = {
        "full_name": full_name,
        "phone_number": "5511988880000",
        "status": "active",
        "operational_status": "online_idle",
        "current_latitude": Decimal(latitude),
        "current_longitude": Decimal(longitude),
    }
    fields.update(overrides)
    return CourierProfile.objects.create(**fields)


class PartnerDirectoryTests(TestCase):
    def setUp(self):
        self.near = create_courier("Near", "-23.551000", "-46.656000")
        self.mid = create_courier("Mid", "-23.491000", "-46.656000")
        self.far = create_courier("Far", "-23.261000", "-46.656000")

    def test_radius_filters_by_distance(self):
        self.assertEqual(find_candidates(ORIGIN, 5), {self.near.id})
        self.assertEqual(find_candidates(ORIGIN, 10), {self.near.id, self.mid.id})
        self.assertEqual(find_candidates(ORIGIN, 50), {self.near.id, self.mid.id, self.far.id})

    def test_courier_exactly_on_radius_is_included(self):
        self.mid.refresh_from_db()
        distance = calculate_distance(
            ORIGIN.latitude, ORIGIN.longitude, self.mid.current_latitude, self.mid.current_longitude
        )

        self.assertIn(self.mid.id, find_candidates(ORIGIN, distance))
        self.assertNotIn(self.mid.id, find_candidates(ORIGIN, distance - 1e-9))

    def test_only_active_idle_couriers_with_location(self):
        create_courier("Offline", "-23.561000", "-46.656000", operational_status="offline")
        create_courier("Busy", "-23.561000", "-46.656000", operational_status="on_delivery")
        create_courier("Suspended", "-23.561000", "-46.656000", status="suspended")
        CourierProfile.objects.create(full_name="No GPS", phone_number="1", operational_status="online_idle")

        self.assertEqual(find_candidates(ORIGIN, 5), {self.near.id})

    def test_empty_directory(self):
        CourierProfile.objects.all().delete()

        self.assertEqual(find_candidates(ORIGIN, 20), set())


class CourierStatusTests(TestCase):
    def setUp(self):
        self.courier = create_courier("Ana", "-23.551000", "-46.656000", operational_status="offline")

    def test_go_online_with_location(self):
        update_operational_status(self.courier, "online_idle", Decimal("-23.600000"), Decimal("-46.700000"))

        self.courier.refresh_from_db()
        self.assertEqual(self.courier.operational_status, "online_idle")
        self.assertEqual(self.courier.current_latitude, Decimal("-23.600000"))
        self.assertIsNotNone(self.courier.last_location_update)

    def test_on_delivery_courier_keeps_status(self):
        self.courier.operational_status = "on_delivery"
        self.courier.save()

        with self.assertRaises(CourierNotAvailableError):
            update_operational_status(self.courier, "offline")

    def test_stale_profile_cannot_take_booked_courier_offline(self):
        courier = create_courier("Bia", "-23.551000", "-46.656000")
        stale = CourierProfile.objects.get(pk=courier.pk)
        order = Order.objects.create(
            store_id="store-1",
            total=Decimal("42.00"),
            pickup_latitude=Decimal("-23.561000"),
            pickup_longitude=Decimal("-46.656000"),
            delivery_latitude=Decimal("-23.550000"),
            delivery_longitude=Decimal("-46.689000"),
            delivery_status="waiting_partner",
        )
        offer = create_delivery_offer(order.id)
        accept_offer(offer.id, courier.id)

        with self.assertRaises(CourierNotAvailableError):
            update_operational_status(stale, "offline")

        courier.refresh_from_db()
        self.assertEqual(courier.operational_status, "on_delivery")
        self.assertEqual(courier.current_order_id, order.id)

    def test_location_update_moves_courier_into_range(self):
        update_operational_status(self.courier, "online_idle")
        self.assertNotIn(self.courier.id, find_candidates(GeoPoint(-23.0, -46.0), 5))

        update_courier_location(self.courier, Decimal("-23.001000"), Decimal("-46.000000"))

        self.assertIn(self.courier.id, find_candidates(GeoPoint(-23.0, -46.0), 5))
