from django.contrib import admin
from couriers.models import CourierProfile


@admin.register(CourierProfile)
class CourierProfileAdmin(admin.ModelAdmin):
    """Admin panel for managing Courier Profiles"""

    list_display = [
        "full_name",
        "vehicle_type",
        "vehicle_number",
        "status",
        "operational_status",
        "current_latitude",
        "current_longitude",
        "last_location_update",
    ]

    list_filter = [
        "status",
        "operational_status",
        "vehicle_type",
    ]

    search_fields = [
        "full_name",
        "phone_number",
        "vehicle_number",
    ]

    readonly_fields = [
        "last_location_update",
        "total_deliveries",
        "completed_deliveries",
        "on_time_deliveries",
        "total_earnings",
        "current_balance",
        "on_time_rate",
    ]

    ordering = ("full_name",)
