from django.db import models

from common.utils import GeoPoint


class Order(models.Model):
    """
    Customer order as seen by dispatch.

    Order management owns the record; dispatch writes only the delivery fields.
    """

    DELIVERY_STATUS_CHOICES = [
        ('waiting_partner', 'Waiting for a courier'),
        ('partner_assigned', 'Courier assigned'),
        ('in_delivery', 'In delivery'),
        ('delivered', 'Delivered'),
        ('failed', 'Failed'),
    ]

    # Store & totals
    store_id = models.CharField(max_length=64)
    store_name = models.CharField(max_length=150, blank=True)
    total = models.DecimalField(max_digits=10, decimal_places=2)

    # Pickup (store) location
    pickup_latitude = models.DecimalField(max_digits=9, decimal_places=6, null=True, blank=True)
    pickup_longitude = models.DecimalField(max_digits=9, decimal_places=6, null=True, blank=True)
    pickup_address = models.TextField(blank=True)

    # Drop-off (customer) location
    delivery_latitude = models.DecimalField(max_digits=9, decimal_places=6, null=True, blank=True)
    delivery_longitude = models.DecimalField(max_digits=9, decimal_places=6, null=True, blank=True)
    delivery_address = models.TextField(blank=True)

    # ---------------- Delivery fields (written by dispatch) ----------------
    delivery_status = models.CharField(
        max_length=20, choices=DELIVERY_STATUS_CHOICES, default='waiting_partner'
    )
    delivery_error = models.TextField(blank=True)
    delivery_offer = models.ForeignKey(
        'deliveries.DeliveryOffer',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+',
    )

    # Pricing
    delivery_fee = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    partner_earning = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    platform_commission = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    distance_km = models.DecimalField(max_digits=6, decimal_places=1, null=True, blank=True)

    # SLA
    pickup_eta_minutes = models.PositiveIntegerField(null=True, blank=True)
    delivery_eta_minutes = models.PositiveIntegerField(null=True, blank=True)

    # Assigned courier snapshot
    partner = models.ForeignKey(
        'couriers.CourierProfile',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='assigned_orders',
    )
    partner_name = models.CharField(max_length=150, blank=True)
    partner_phone = models.CharField(max_length=20, blank=True)
    partner_photo_url = models.URLField(blank=True)
    partner_vehicle_type = models.CharField(max_length=20, blank=True)

    # Timestamps
    created_at = models.DateTimeField(auto_now_add=True)
    assigned_at = models.DateTimeField(null=True, blank=True)
    picked_up_at = models.DateTimeField(null=True, blank=True)
    delivered_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = 'orders'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['delivery_status'], name='order_delivery_status_idx'),
        ]

    def __str__(self):
        return f"Order #{self.id} - {self.store_name or self.store_id} - {self.delivery_status}"

    @property
    def pickup_point(self):
        return GeoPoint.from_fields(self.pickup_latitude, self.pickup_longitude)

    @property
    def delivery_point(self):
        return GeoPoint.from_fields(self.delivery_latitude, self.delivery_longitude)
