from decimal import Decimal

from django.test import SimpleTestCase

from common.utils import GeoPoint, calculate_distance, distance_between


class GeoDistanceTests(SimpleTestCase):
    def test_same_point_is_zero(self):
        self.assertEqual(calculate_distance(-23.561, -46.656, -23.561, -46.656), 0.0)

    def test_distance_is_symmetric(self):
        a = calculate_distance(-23.561, -46.656, -23.550, -46.689)
        b = calculate_distance(-23.550, -46.689, -23.561, -46.656)
        self.assertAlmostEqual(a, b, places=9)

    def test_store_to_customer_distance(self):
        distance = calculate_distance(-23.561, -46.656, -23.550, -46.689)
        self.assertAlmostEqual(distance, 3.58, places=2)

    def test_one_degree_of_latitude(self):
        self.assertAlmostEqual(calculate_distance(0, 0, 1, 0), 111.19, places=2)

    def test_antipodes_do_not_overflow(self):
        self.assertAlmostEqual(calculate_distance(0, 0, 0, 180), 20015.09, places=1)

    def test_accepts_decimal_coordinates(self):
        self.assertAlmostEqual(
            calculate_distance(Decimal("-23.561000"), Decimal("-46.656000"), -23.550, -46.689),
            calculate_distance(-23.561, -46.656, -23.550, -46.689),
        )

    def test_geopoint_from_fields(self):
        self.assertEqual(GeoPoint.from_fields(Decimal("1.5"), Decimal("2.5")), GeoPoint(1.5, 2.5))
        self.assertIsNone(GeoPoint.from_fields(None, Decimal("2.5")))
        self.assertIsNone(GeoPoint.from_fields(Decimal("1.5"), None))

    def test_distance_between_points(self):
        self.assertEqual(
            distance_between(GeoPoint(-23.561, -46.656), GeoPoint(-23.550, -46.689)),
            calculate_distance(-23.561, -46.656, -23.550, -46.689),
        )
