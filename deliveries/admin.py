"""Tells what to show in the Django admin interface for the deliveries app"""

from django.contrib import admin
from .models import DeliveryOffer, DeliveryEarning


@admin.register(DeliveryOffer)
class DeliveryOfferAdmin(admin.ModelAdmin):
    """Delivery offer admin"""
    list_display = ['id', 'order', 'store_name', 'status', 'attempt_number', 'search_radius_km',
                    'earning_amount', 'created_at', 'expires_at', 'accepted_by']
    list_filter = ['status', 'attempt_number', 'created_at']
    search_fields = ['order__id', 'store_name', 'accepted_by__full_name']
    readonly_fields = ['version', 'scan_failures', 'created_at', 'accepted_at']
    filter_horizontal = ['visible_to_partners']
    date_hierarchy = 'created_at'


@admin.register(DeliveryEarning)
class DeliveryEarningAdmin(admin.ModelAdmin):
    list_display = ("order", "partner", "gross_amount", "platform_fee", "net_amount", "status", "completed_at")
    list_filter = ("status",)
    search_fields = ("order__id", "partner__full_name")
