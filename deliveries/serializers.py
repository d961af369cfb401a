from rest_framework import serializers

from .models import DeliveryOffer, DeliveryEarning


class DeliveryOfferSerializer(serializers.ModelSerializer):
    """Offer as shown to couriers (no candidate list)."""

    class Meta:
        model = DeliveryOffer
        fields = ['id', 'order', 'store_id', 'store_name',
                  'pickup_latitude', 'pickup_longitude',
                  'delivery_latitude', 'delivery_longitude',
                  'distance_km', 'earning_amount', 'status',
                  'attempt_number', 'search_radius_km',
                  'created_at', 'expires_at', 'accepted_by', 'accepted_at']
        read_only_fields = fields


class DeliveryOfferDetailSerializer(DeliveryOfferSerializer):
    """Offer with its current candidate set, for operators and collaborators."""
    visible_to_partners = serializers.PrimaryKeyRelatedField(many=True, read_only=True)

    class Meta(DeliveryOfferSerializer.Meta):
        fields = DeliveryOfferSerializer.Meta.fields + ['visible_to_partners', 'version']
        read_only_fields = fields


class DeliveryEarningSerializer(serializers.ModelSerializer):

    class Meta:
        model = DeliveryEarning
        fields = ['id', 'partner', 'order', 'gross_amount', 'platform_fee',
                  'net_amount', 'status', 'created_at', 'completed_at']
        read_only_fields = fields


class CourierActionSerializer(serializers.Serializer):
    """Serializer for courier actions on an offer (accept / decline)"""
    courier_id = serializers.IntegerField(min_value=1)


class CancelDispatchSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, default="Cancelled by store")


class DeliveryStatusUpdateSerializer(serializers.Serializer):
    """Serializer for courier-reported delivery progress"""
    status = serializers.ChoiceField(choices=["in_delivery", "delivered"])
    courier_id = serializers.IntegerField(min_value=1)
    occurred_at = serializers.DateTimeField(required=False)
