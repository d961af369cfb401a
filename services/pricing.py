"""
Delivery pricing: fee charged to the customer, courier earning and platform margin.

All monetary amounts are Decimals rounded half-up to cents; distances kept on
records are rounded to 0.1 km.
"""

import math
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from .policy import PricingPolicy, get_pricing_policy

CENT = Decimal("0.01")
TENTH = Decimal("0.1")


def to_money(value) -> Decimal:
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


def round_distance(distance_km: float) -> Decimal:
    return Decimal(str(distance_km)).quantize(TENTH, rounding=ROUND_HALF_UP)


def raw_delivery_fee(distance_km: float, policy: Optional[PricingPolicy] = None) -> Decimal:
    """fee = max(distance * rate per km, minimum fee), before rounding to cents"""
    policy = policy or get_pricing_policy()
    return max(Decimal(str(distance_km)) * policy.fee_per_km, policy.minimum_fee)


def calculate_delivery_fee(distance_km: float, policy: Optional[PricingPolicy] = None) -> Decimal:
    return to_money(raw_delivery_fee(distance_km, policy))


def calculate_partner_earning(delivery_fee, policy: Optional[PricingPolicy] = None) -> Decimal:
    """
    The courier's share of the delivery fee.

    Pass the unrounded fee: the share is rounded to cents once, at the end.
    """
    policy = policy or get_pricing_policy()
    return to_money(Decimal(str(delivery_fee)) * policy.partner_share)


@dataclass(frozen=True)
class DeliveryQuote:
    distance_km: Decimal
    delivery_fee: Decimal
    partner_earning: Decimal
    platform_commission: Decimal
    pickup_eta_minutes: int


def quote_delivery(distance_km: float, policy: Optional[PricingPolicy] = None) -> DeliveryQuote:
    """Price a delivery of ``distance_km`` (unrounded great-circle distance)."""
    policy = policy or get_pricing_policy()
    raw_fee = raw_delivery_fee(distance_km, policy)
    fee = to_money(raw_fee)
    earning = calculate_partner_earning(raw_fee, policy)
    return DeliveryQuote(
        distance_km=round_distance(distance_km),
        delivery_fee=fee,
        partner_earning=earning,
        platform_commission=fee - earning,
        pickup_eta_minutes=math.ceil(distance_km * policy.pickup_minutes_per_km),
    )
