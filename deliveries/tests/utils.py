"""Fixtures shared by the delivery test modules."""

from decimal import Decimal

from django.utils import timezone

from couriers.models import CourierProfile
from orders.models import Order

# Store and customer ~3.58km apart
PICKUP = (Decimal("-23.561000"), Decimal("-46.656000"))
DROPOFF = (Decimal("-23.550000"), Decimal("-46.689000"))

# Latitude offsets (degrees north of the pickup) and their distances
NEAR = "0.020000"     # ~2.2km
RING_10 = "0.070000"  # ~7.8km
RING_15 = "0.120000"  # ~13.3km
RING_20 = "0.170000"  # ~18.9km
FAR = "0.300000"      # ~33.4km


def make_courier(full_name, offset=NEAR, **overrides) -> CourierProfile:
    fields = {
        "full_name": full_name,
        "phone_number": "5511999990000",
        "vehicle_type": "motorcycle",
        "vehicle_number": "ABC1D23",
        "status": "active",
        "operational_status": "online_idle",
        "current_latitude": PICKUP[0] + Decimal(offset),
        "current_longitude": PICKUP[1],
        "last_location_update": timezone.now(),
    }
    fields.update(overrides)
    return CourierProfile.objects.create(**fields)


def make_order(**overrides) -> Order:
    fields = {
        "store_id": "store-1",
        "store_name": "Pizzaria Paulista",
        "total": Decimal("58.90"),
        "pickup_latitude": PICKUP[0],
        "pickup_longitude": PICKUP[1],
        "pickup_address": "Av. Paulista, 1000",
        "delivery_latitude": DROPOFF[0],
        "delivery_longitude": DROPOFF[1],
        "delivery_address": "Rua dos Pinheiros, 500",
        "delivery_status": "waiting_partner",
    }
    fields.update(overrides)
    return Order.objects.create(**fields)
