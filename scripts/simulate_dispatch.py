"""
Walk one delivery through the whole dispatch flow against the configured database.

    offer created (nobody within 5km) -> retry widens to 10km -> courier accepts
    -> picked up -> delivered and settled

Run from the repository root after ``python manage.py migrate --run-syncdb``.
"""

import os
import sys
from decimal import Decimal
from pathlib import Path

import django

BASE_DIR = Path(__file__).resolve().parent.parent
if str(BASE_DIR) not in sys.path:
    sys.path.insert(0, str(BASE_DIR))

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "dispatch_backend.settings")
django.setup()

from django.utils import timezone  # noqa: E402
from couriers.models import CourierProfile  # noqa: E402
from orders.models import Order  # noqa: E402
from services.assignment import accept_offer  # noqa: E402
from services.dispatch import create_delivery_offer, retry_expired_offers  # noqa: E402
from services.settlement import update_delivery_status  # noqa: E402

PICKUP = (Decimal("-23.561000"), Decimal("-46.656000"))
DROPOFF = (Decimal("-23.550000"), Decimal("-46.689000"))


def ensure_courier(phone_number: str, full_name: str, lat: Decimal, lon: Decimal) -> CourierProfile:
    courier, _ = CourierProfile.objects.update_or_create(
        phone_number=phone_number,
        defaults={
            "full_name": full_name,
            "vehicle_type": "motorcycle",
            "vehicle_number": f"SIM-{phone_number[-4:]}",
            "status": "active",
            "operational_status": "online_idle",
            "current_order": None,
            "current_latitude": lat,
            "current_longitude": lon,
            "last_location_update": timezone.now(),
        },
    )
    return courier


def create_demo_order() -> Order:
    return Order.objects.create(
        store_id="store-sim-1",
        store_name="Simulation Pizzeria",
        total=Decimal("42.90"),
        pickup_latitude=PICKUP[0],
        pickup_longitude=PICKUP[1],
        pickup_address="Rua Augusta, 1000",
        delivery_latitude=DROPOFF[0],
        delivery_longitude=DROPOFF[1],
        delivery_address="Rua dos Pinheiros, 500",
        delivery_status="waiting_partner",
    )


def main():
    # ~8km north of the pickup: out of the first radius, inside the second
    courier = ensure_courier("5511900000001", "Sim Courier Near", Decimal("-23.489000"), PICKUP[1])
    ensure_courier("5511900000002", "Sim Courier Far", Decimal("-23.100000"), PICKUP[1])

    order = create_demo_order()
    offer = create_delivery_offer(order.id)
    order.refresh_from_db()
    print(
        f"Offer {offer.id}: {offer.distance_km}km, fee {order.delivery_fee}, "
        f"earning {order.partner_earning}, commission {order.platform_commission}"
    )
    print(f"  attempt {offer.attempt_number} radius {offer.search_radius_km}km "
          f"visible to {offer.visible_to_partners.count()} courier(s)")

    result = retry_expired_offers(now=offer.expires_at)
    offer.refresh_from_db()
    print(f"Retry tick: {result.as_dict()}")
    print(f"  attempt {offer.attempt_number} radius {offer.search_radius_km}km "
          f"visible to {list(offer.visible_to_partners.values_list('full_name', flat=True))}")

    assignment = accept_offer(offer.id, courier.id)
    print(f"Accepted by {assignment.courier.full_name}: order is {assignment.order.delivery_status}")

    update_delivery_status(order.id, "in_delivery", courier_id=courier.id)
    order = update_delivery_status(order.id, "delivered", courier_id=courier.id)
    courier.refresh_from_db()
    print(f"Order {order.id} {order.delivery_status} at {order.delivered_at:%Y-%m-%d %H:%M:%S}")
    print(
        f"Courier {courier.full_name}: {courier.operational_status}, balance {courier.current_balance}, "
        f"completed {courier.completed_deliveries}, on-time rate {courier.on_time_rate}%"
    )


if __name__ == "__main__":
    main()
