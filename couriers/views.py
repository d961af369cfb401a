from rest_framework.views import APIView
from rest_framework.response import Response

from couriers.models import CourierProfile
from couriers.serializers import (
    CourierProfileSerializer,
    OperationalStatusSerializer,
    LocationUpdateSerializer,
)
from deliveries.models import DeliveryEarning
from deliveries.serializers import DeliveryEarningSerializer, DeliveryOfferSerializer
from orders.models import Order
from orders.serializers import OrderDeliverySerializer
from services.assignment import get_available_offers
from services.exceptions import CourierNotAvailableError

from couriers import services

EDITABLE_PROFILE_FIELDS = ("full_name", "phone_number", "profile_photo_url", "vehicle_type", "vehicle_number")


# Utility: resolve the courier addressed by the URL
def require_courier(courier_id):
    try:
        return True, CourierProfile.objects.get(pk=courier_id)
    except CourierProfile.DoesNotExist:
        return False, Response({"error": "courier_not_found", "message": "Courier profile not found"}, status=404)


class CourierProfileView(APIView):

    def get(self, request, courier_id):
        ok, profile = require_courier(courier_id)
        if ok is False:
            return profile  # Response object

        serializer = CourierProfileSerializer(profile)
        return Response(serializer.data)

    def post(self, request, courier_id):
        ok, profile = require_courier(courier_id)
        if ok is False:
            return profile

        changed = []
        for field_name in EDITABLE_PROFILE_FIELDS:
            if field_name in request.data:
                setattr(profile, field_name, request.data[field_name])
                changed.append(field_name)

        if "vehicle_type" in changed and profile.vehicle_type not in dict(CourierProfile.VEHICLE_CHOICES):
            return Response({"error": "invalid_vehicle_type", "message": "Unknown vehicle type"}, status=400)

        if changed:
            profile.save(update_fields=changed + ["updated_at"])

        serializer = CourierProfileSerializer(profile)
        return Response(serializer.data, status=200)


class CourierStatusView(APIView):

    def get(self, request, courier_id):
        ok, profile = require_courier(courier_id)
        if ok is False:
            return profile

        return Response({
            "status": profile.status,
            "operational_status": profile.operational_status,
        })

    def put(self, request, courier_id):
        ok, profile = require_courier(courier_id)
        if ok is False:
            return profile

        serializer = OperationalStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        new_status = data["operational_status"]

        try:
            services.update_operational_status(
                profile, new_status, data.get("latitude"), data.get("longitude")
            )
        except CourierNotAvailableError as exc:
            return Response({"error": exc.error_code, "message": str(exc)}, status=409)

        return Response({
            "message": f"Status updated to {new_status}",
            "operational_status": new_status
        })


class CourierLocationUpdateView(APIView):

    def get(self, request, courier_id):
        ok, profile = require_courier(courier_id)
        if ok is False:
            return profile

        return Response({
            "latitude": float(profile.current_latitude) if profile.current_latitude is not None else None,
            "longitude": float(profile.current_longitude) if profile.current_longitude is not None else None,
            "last_updated": profile.last_location_update,
            "operational_status": profile.operational_status,
        })

    def post(self, request, courier_id):
        ok, profile = require_courier(courier_id)
        if ok is False:
            return profile

        serializer = LocationUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        lat = serializer.validated_data["latitude"]
        lon = serializer.validated_data["longitude"]

        services.update_courier_location(profile, lat, lon)

        return Response({
            "message": "Location updated",
            "latitude": float(lat),
            "longitude": float(lon),
            "operational_status": profile.operational_status
        })


class CourierAvailableOffersView(APIView):

    def get(self, request, courier_id):
        ok, profile = require_courier(courier_id)
        if ok is False:
            return profile

        if profile.operational_status != "online_idle":
            return Response({
                "offers": [],
                "count": 0,
                "message": "Go online to receive delivery offers."
            })

        offers = get_available_offers(profile.pk)
        serialized = DeliveryOfferSerializer(offers, many=True)

        return Response({"offers": serialized.data, "count": len(serialized.data)})


class CourierCurrentDeliveryView(APIView):

    def get(self, request, courier_id):
        ok, profile = require_courier(courier_id)
        if ok is False:
            return profile

        order = Order.objects.filter(
            partner=profile, delivery_status__in=["partner_assigned", "in_delivery"]
        ).first()
        if not order:
            return Response({"message": "No active delivery"}, status=404)

        serializer = OrderDeliverySerializer(order)
        return Response(serializer.data)


class CourierEarningsView(APIView):

    def get(self, request, courier_id):
        ok, profile = require_courier(courier_id)
        if ok is False:
            return profile

        earnings = DeliveryEarning.objects.filter(partner=profile).order_by("-created_at")
        status_filter = request.query_params.get("status")
        if status_filter:
            earnings = earnings.filter(status=status_filter)

        serializer = DeliveryEarningSerializer(earnings, many=True)
        return Response({
            "count": len(serializer.data),
            "total_earnings": profile.total_earnings,
            "current_balance": profile.current_balance,
            "earnings": serializer.data,
        })


class CourierDeliveryHistoryView(APIView):

    def get(self, request, courier_id):
        ok, profile = require_courier(courier_id)
        if ok is False:
            return profile

        delivered = Order.objects.filter(partner=profile, delivery_status="delivered").order_by("-delivered_at")
        serializer = OrderDeliverySerializer(delivered, many=True)

        return Response({"count": delivered.count(), "deliveries": serializer.data})
