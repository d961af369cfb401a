from django.contrib import admin
from orders.models import Order


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    """Admin panel for orders and their delivery state"""

    list_display = [
        "id",
        "store_name",
        "delivery_status",
        "partner",
        "delivery_fee",
        "distance_km",
        "created_at",
        "delivered_at",
    ]

    list_filter = [
        "delivery_status",
        "created_at",
    ]

    search_fields = [
        "store_name",
        "partner_name",
        "pickup_address",
        "delivery_address",
    ]

    readonly_fields = [
        "delivery_offer",
        "assigned_at",
        "picked_up_at",
        "delivered_at",
    ]
