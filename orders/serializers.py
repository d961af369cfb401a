from rest_framework import serializers

from .models import Order


class OrderDeliverySerializer(serializers.ModelSerializer):
    """Delivery sub-document of an order, as read by customer and store views."""

    class Meta:
        model = Order
        fields = ['id', 'store_id', 'store_name', 'total',
                  'pickup_latitude', 'pickup_longitude', 'pickup_address',
                  'delivery_latitude', 'delivery_longitude', 'delivery_address',
                  'delivery_status', 'delivery_error', 'delivery_offer',
                  'delivery_fee', 'partner_earning', 'platform_commission', 'distance_km',
                  'pickup_eta_minutes', 'delivery_eta_minutes',
                  'partner', 'partner_name', 'partner_phone', 'partner_photo_url',
                  'partner_vehicle_type', 'created_at', 'assigned_at',
                  'picked_up_at', 'delivered_at']
        read_only_fields = fields
