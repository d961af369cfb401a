from django.contrib import admin
from django.urls import path, include

from .views import health_check

urlpatterns = [
    path('admin/', admin.site.urls),
    path("health/", health_check), # Health check endpoint

    # Courier APIs (profile, status, location, offers, earnings, history)
    path('api/couriers/', include('couriers.urls')),

    # Dispatch APIs (order confirmation, offers, delivery progress)
    path('api/deliveries/', include('deliveries.urls')),
]
