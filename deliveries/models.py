from decimal import Decimal

from django.db import models
from django.utils import timezone

from common.utils import GeoPoint

ACTIVE_OFFER_STATUSES = ('open', 'accepted')


class DeliveryOffer(models.Model):
    """Time-boxed proposal pairing one order with the couriers allowed to accept it."""

    STATUS_CHOICES = [
        ('open', 'Open'),
        ('accepted', 'Accepted'),
        ('cancelled', 'Cancelled'),
        ('expired', 'Expired'),
    ]

    order = models.ForeignKey(
        'orders.Order',
        on_delete=models.CASCADE,
        related_name='delivery_offers'
    )
    store_id = models.CharField(max_length=64)
    store_name = models.CharField(max_length=150, blank=True)

    # Route
    pickup_latitude = models.DecimalField(max_digits=9, decimal_places=6)
    pickup_longitude = models.DecimalField(max_digits=9, decimal_places=6)
    delivery_latitude = models.DecimalField(max_digits=9, decimal_places=6)
    delivery_longitude = models.DecimalField(max_digits=9, decimal_places=6)
    distance_km = models.DecimalField(max_digits=6, decimal_places=1)

    # What the courier earns
    earning_amount = models.DecimalField(max_digits=10, decimal_places=2)

    # Status & visibility
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='open')
    visible_to_partners = models.ManyToManyField(
        'couriers.CourierProfile',
        blank=True,
        related_name='visible_offers'
    )

    # Retry state
    attempt_number = models.PositiveSmallIntegerField(default=1)
    search_radius_km = models.PositiveSmallIntegerField(default=5)
    # Retry ticks that errored on this offer; the scan serves these last
    scan_failures = models.PositiveIntegerField(default=0)

    # Bumped by every state-changing write; writers compare-and-swap on it
    version = models.PositiveIntegerField(default=0)

    # Timing
    created_at = models.DateTimeField(default=timezone.now)
    expires_at = models.DateTimeField()

    accepted_by = models.ForeignKey(
        'couriers.CourierProfile',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='accepted_offers'
    )
    accepted_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = 'delivery_offers'
        ordering = ['-created_at']
        constraints = [
            models.UniqueConstraint(
                fields=['order'],
                condition=models.Q(status__in=ACTIVE_OFFER_STATUSES),
                name='unique_active_offer_per_order'
            )
        ]
        indexes = [
            models.Index(fields=['status', 'expires_at'], name='offer_status_expiry_idx'),
        ]

    def __str__(self):
        return f"Offer #{self.id} - Order {self.order_id} - {self.status} (attempt {self.attempt_number})"

    @property
    def pickup_point(self):
        return GeoPoint.from_fields(self.pickup_latitude, self.pickup_longitude)


class DeliveryEarning(models.Model):
    """Courier earning ledger entry, created once per completed delivery."""

    STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('available', 'Available'),
        ('withdrawn', 'Withdrawn'),
        ('cancelled', 'Cancelled'),
    ]

    partner = models.ForeignKey(
        'couriers.CourierProfile',
        on_delete=models.PROTECT,
        related_name='earnings'
    )
    order = models.OneToOneField(
        'orders.Order',
        on_delete=models.PROTECT,
        related_name='delivery_earning'
    )

    gross_amount = models.DecimalField(max_digits=10, decimal_places=2)
    platform_fee = models.DecimalField(max_digits=10, decimal_places=2)
    net_amount = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))

    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='available')

    created_at = models.DateTimeField(default=timezone.now)
    completed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = 'delivery_earnings'
        ordering = ['-created_at']

    def __str__(self):
        return f"Earning #{self.id} - Courier {self.partner_id} - Order {self.order_id} - {self.net_amount}"
