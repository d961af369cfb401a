"""
Business constants for dispatch, pricing and settlement.

Defaults match the production marketplace; each value can be overridden
through the matching ``DELIVERY_*`` Django setting.
"""

from dataclasses import dataclass
from decimal import Decimal

from django.conf import settings


@dataclass(frozen=True)
class DispatchPolicy:
    initial_radius_km: int = 5
    radius_step_km: int = 5
    max_radius_km: int = 20
    max_attempts: int = 4
    offer_ttl_seconds: int = 60
    retry_batch_size: int = 10

    def radius_for_retry(self, attempt_number: int) -> int:
        """
        Search radius for the retry that follows ``attempt_number``.

        With the defaults this yields 10, 15, 20, 20, ... km.
        """
        return min(attempt_number * self.radius_step_km + self.initial_radius_km, self.max_radius_km)


@dataclass(frozen=True)
class PricingPolicy:
    fee_per_km: Decimal = Decimal("1.50")
    minimum_fee: Decimal = Decimal("5.00")
    partner_share: Decimal = Decimal("0.80")
    pickup_minutes_per_km: int = 3


@dataclass(frozen=True)
class SettlementPolicy:
    default_pickup_eta_minutes: int = 15
    default_delivery_eta_minutes: int = 15
    on_time_tolerance: Decimal = Decimal("1.2")


def get_dispatch_policy() -> DispatchPolicy:
    defaults = DispatchPolicy()
    return DispatchPolicy(
        initial_radius_km=getattr(settings, "DELIVERY_INITIAL_RADIUS_KM", defaults.initial_radius_km),
        radius_step_km=getattr(settings, "DELIVERY_RADIUS_STEP_KM", defaults.radius_step_km),
        max_radius_km=getattr(settings, "DELIVERY_MAX_RADIUS_KM", defaults.max_radius_km),
        max_attempts=getattr(settings, "DELIVERY_MAX_ATTEMPTS", defaults.max_attempts),
        offer_ttl_seconds=getattr(settings, "DELIVERY_OFFER_TTL_SECONDS", defaults.offer_ttl_seconds),
        retry_batch_size=getattr(settings, "DELIVERY_RETRY_BATCH_SIZE", defaults.retry_batch_size),
    )


def get_pricing_policy() -> PricingPolicy:
    defaults = PricingPolicy()
    return PricingPolicy(
        fee_per_km=Decimal(str(getattr(settings, "DELIVERY_FEE_PER_KM", defaults.fee_per_km))),
        minimum_fee=Decimal(str(getattr(settings, "DELIVERY_MINIMUM_FEE", defaults.minimum_fee))),
        partner_share=Decimal(str(getattr(settings, "DELIVERY_PARTNER_SHARE", defaults.partner_share))),
        pickup_minutes_per_km=getattr(
            settings, "DELIVERY_PICKUP_MINUTES_PER_KM", defaults.pickup_minutes_per_km
        ),
    )


def get_settlement_policy() -> SettlementPolicy:
    defaults = SettlementPolicy()
    return SettlementPolicy(
        default_pickup_eta_minutes=getattr(
            settings, "DELIVERY_DEFAULT_PICKUP_ETA_MINUTES", defaults.default_pickup_eta_minutes
        ),
        default_delivery_eta_minutes=getattr(
            settings, "DELIVERY_DEFAULT_DELIVERY_ETA_MINUTES", defaults.default_delivery_eta_minutes
        ),
        on_time_tolerance=Decimal(
            str(getattr(settings, "DELIVERY_ON_TIME_TOLERANCE", defaults.on_time_tolerance))
        ),
    )
