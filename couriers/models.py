from decimal import Decimal

from django.db import models

from common.utils import GeoPoint


class CourierProfile(models.Model):
    """Delivery partner record: identity, availability, live location and performance metrics"""
    STATUS_CHOICES = [
        ('active', 'Active'),
        ('suspended', 'Suspended'),
    ]

    OPERATIONAL_STATUS_CHOICES = [
        ('online_idle', 'Online (idle)'),
        ('on_delivery', 'On delivery'),
        ('offline', 'Offline'),
    ]

    VEHICLE_CHOICES = [
        ('bicycle', 'Bicycle'),
        ('motorcycle', 'Motorcycle'),
        ('car', 'Car'),
    ]

    # Identity & contact (snapshotted onto orders at assignment)
    full_name = models.CharField(max_length=150)
    phone_number = models.CharField(max_length=20)
    profile_photo_url = models.URLField(blank=True)

    # Vehicle details
    vehicle_type = models.CharField(max_length=20, choices=VEHICLE_CHOICES, default='motorcycle')
    vehicle_number = models.CharField(max_length=20, blank=True)

    # Account standing & availability
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='active')
    operational_status = models.CharField(
        max_length=20, choices=OPERATIONAL_STATUS_CHOICES, default='offline'
    )
    current_order = models.ForeignKey(
        'orders.Order',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+',
    )

    # Live location
    current_latitude = models.DecimalField(max_digits=9, decimal_places=6, null=True, blank=True)
    current_longitude = models.DecimalField(max_digits=9, decimal_places=6, null=True, blank=True)
    last_location_update = models.DateTimeField(null=True, blank=True)

    # Metrics (written by settlement only)
    total_deliveries = models.PositiveIntegerField(default=0)
    completed_deliveries = models.PositiveIntegerField(default=0)
    on_time_deliveries = models.PositiveIntegerField(default=0)
    total_earnings = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    current_balance = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    on_time_rate = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal('0.00'))

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'courier_profiles'
        ordering = ['full_name']
        indexes = [
            models.Index(fields=['status', 'operational_status'], name='courier_availability_idx'),
        ]

    def __str__(self):
        return f"{self.full_name} ({self.get_operational_status_display()})"

    @property
    def location(self):
        """Current location as a GeoPoint, or None when unknown."""
        return GeoPoint.from_fields(self.current_latitude, self.current_longitude)
