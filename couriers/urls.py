from django.urls import path
from .views import (
    CourierProfileView,
    CourierStatusView,
    CourierLocationUpdateView,
    CourierAvailableOffersView,
    CourierCurrentDeliveryView,
    CourierEarningsView,
    CourierDeliveryHistoryView,
)

urlpatterns = [
    path("<int:courier_id>/profile/", CourierProfileView.as_view(), name="courier-profile"),
    path("<int:courier_id>/status/", CourierStatusView.as_view(), name="courier-status"),
    path("<int:courier_id>/location/", CourierLocationUpdateView.as_view(), name="courier-location"),
    path("<int:courier_id>/offers/", CourierAvailableOffersView.as_view(), name="courier-offers"),
    path("<int:courier_id>/current-delivery/", CourierCurrentDeliveryView.as_view(), name="courier-current-delivery"),
    path("<int:courier_id>/earnings/", CourierEarningsView.as_view(), name="courier-earnings"),
    path("<int:courier_id>/history/", CourierDeliveryHistoryView.as_view(), name="courier-history"),
]
