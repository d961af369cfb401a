import logging
from typing import Set

from django.utils import timezone

from common.utils import GeoPoint, calculate_distance
from couriers.models import CourierProfile
from services.exceptions import CourierNotAvailableError, CourierNotFoundError

logger = logging.getLogger(__name__)


def get_courier(courier_id) -> CourierProfile:
    try:
        return CourierProfile.objects.get(pk=courier_id)
    except CourierProfile.DoesNotExist:
        raise CourierNotFoundError(f"Courier {courier_id} not found")


# PARTNER DIRECTORY
def find_candidates(origin: GeoPoint, radius_km: float) -> Set[int]:
    """
    Couriers eligible to see an offer picked up at ``origin``.

    A courier qualifies when active, online and idle, with a known location
    no farther than ``radius_km`` from the origin.

    Returns:
        Set of CourierProfile ids
    """
    available = (
        CourierProfile.objects
        .filter(
            status="active",
            operational_status="online_idle",
            current_latitude__isnull=False,
            current_longitude__isnull=False,
        )
        .values_list("id", "current_latitude", "current_longitude")
    )

    candidates = set()
    for courier_id, lat, lon in available:
        distance = calculate_distance(origin[0], origin[1], float(lat), float(lon))
        if distance <= radius_km:
            candidates.add(courier_id)

    logger.debug("Found %d candidates within %skm of %s", len(candidates), radius_km, origin)
    return candidates


# COURIER STATUS UPDATE
def update_operational_status(profile: CourierProfile, new_status: str, lat=None, lon=None):
    """
    Go online (idle) or offline, optionally reporting the current location.

    A courier on a delivery only leaves ``on_delivery`` through settlement.
    The row is written only if it is not ``on_delivery`` at write time, so a
    stale ``profile`` cannot undo a booking made in the meantime.
    """
    now = timezone.now()
    changes = {"operational_status": new_status, "updated_at": now}

    if lat is not None and lon is not None:
        changes.update(current_latitude=lat, current_longitude=lon, last_location_update=now)

    if new_status == "offline":
        changes["current_order"] = None

    updated = (
        CourierProfile.objects
        .filter(pk=profile.pk)
        .exclude(operational_status="on_delivery")
        .update(**changes)
    )
    if not updated:
        raise CourierNotAvailableError("Finish the current delivery before changing status")

    profile.refresh_from_db()
    logger.info("Courier %s is now %s", profile.pk, new_status)
    return profile


def update_courier_location(profile: CourierProfile, lat, lon):
    """Update the courier's live location (used by candidate search)."""
    profile.current_latitude = lat
    profile.current_longitude = lon
    profile.last_location_update = timezone.now()
    profile.save(update_fields=["current_latitude", "current_longitude", "last_location_update", "updated_at"])
    return profile
