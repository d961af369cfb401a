from django.urls import path
from . import views

app_name = 'deliveries'

urlpatterns = [
    # Order workflow
    path('orders/<int:order_id>/dispatch/', views.dispatch_order, name='dispatch-order'),
    path('orders/<int:order_id>/cancel-dispatch/', views.cancel_dispatch, name='cancel-dispatch'),
    path('orders/<int:order_id>/delivery-status/', views.delivery_status, name='delivery-status'),

    # Courier offer actions
    path('offers/<int:offer_id>/', views.offer_detail, name='offer-detail'),
    path('offers/<int:offer_id>/accept/', views.accept_delivery_offer, name='accept-offer'),
    path('offers/<int:offer_id>/decline/', views.decline_delivery_offer, name='decline-offer'),
]
