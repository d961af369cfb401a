from rest_framework import serializers
from couriers.models import CourierProfile


class CourierProfileSerializer(serializers.ModelSerializer):
    """
    Full courier record including performance metrics (dashboard view)
    """

    class Meta:
        model = CourierProfile
        fields = [
            "id",
            "full_name",
            "phone_number",
            "profile_photo_url",
            "vehicle_type",
            "vehicle_number",
            "status",
            "operational_status",
            "current_order",
            "current_latitude",
            "current_longitude",
            "last_location_update",
            "total_deliveries",
            "completed_deliveries",
            "on_time_deliveries",
            "total_earnings",
            "current_balance",
            "on_time_rate",
        ]
        read_only_fields = fields


class OperationalStatusSerializer(serializers.Serializer):
    """
    Serializer for updating courier availability (online_idle/offline).
    """
    operational_status = serializers.ChoiceField(choices=["online_idle", "offline"])
    latitude = serializers.DecimalField(max_digits=9, decimal_places=6, required=False)
    longitude = serializers.DecimalField(max_digits=9, decimal_places=6, required=False)

    def validate(self, attrs):
        if ("latitude" in attrs) != ("longitude" in attrs):
            raise serializers.ValidationError("latitude and longitude must be sent together")
        return attrs


class LocationUpdateSerializer(serializers.Serializer):
    """
    Serializer for updating courier GPS location.
    """
    latitude = serializers.DecimalField(max_digits=9, decimal_places=6)
    longitude = serializers.DecimalField(max_digits=9, decimal_places=6)
