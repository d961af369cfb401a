import logging

from rest_framework import status
from rest_framework.decorators import api_view
from rest_framework.response import Response

from orders.serializers import OrderDeliverySerializer
from services.assignment import accept_offer, decline_offer, get_offer
from services.dispatch import cancel_order_dispatch, create_delivery_offer
from services.exceptions import (
    ActiveOfferExistsError,
    AssignmentError,
    CourierNotAvailableError,
    CourierNotFoundError,
    DispatchError,
    InvalidOrderStateError,
    InvalidStatusTransitionError,
    MissingCoordinatesError,
    OfferExpiredError,
    OfferNotAvailableError,
    OfferNotFoundError,
    OrderNotFoundError,
    SettlementError,
)
from services.settlement import update_delivery_status
from .serializers import (
    CancelDispatchSerializer,
    CourierActionSerializer,
    DeliveryOfferDetailSerializer,
    DeliveryOfferSerializer,
    DeliveryStatusUpdateSerializer,
)

logger = logging.getLogger(__name__)

# Most specific first
ERROR_STATUS = [
    ((OrderNotFoundError, OfferNotFoundError, CourierNotFoundError), status.HTTP_404_NOT_FOUND),
    ((OfferExpiredError,), status.HTTP_410_GONE),
    ((OfferNotAvailableError, ActiveOfferExistsError, InvalidOrderStateError,
      CourierNotAvailableError), status.HTTP_409_CONFLICT),
    ((MissingCoordinatesError,), status.HTTP_422_UNPROCESSABLE_ENTITY),
    ((InvalidStatusTransitionError,), status.HTTP_400_BAD_REQUEST),
    ((AssignmentError, SettlementError), status.HTTP_503_SERVICE_UNAVAILABLE),
]


def error_response(exc: DispatchError) -> Response:
    """Translate a service exception into an API error response."""
    status_code = status.HTTP_400_BAD_REQUEST
    for exc_types, code in ERROR_STATUS:
        if isinstance(exc, exc_types):
            status_code = code
            break
    return Response(
        {'success': False, 'error': exc.error_code, 'message': str(exc)},
        status=status_code
    )


# ==================== Store / Order workflow APIs ====================

@api_view(['POST'])
def dispatch_order(request, order_id):
    """
    Order confirmed by the store: open its delivery offer.

    Called by the order workflow right after the order enters waiting_partner.
    """
    try:
        offer = create_delivery_offer(order_id)
    except DispatchError as exc:
        return error_response(exc)

    candidates = offer.visible_to_partners.count()
    return Response({
        'success': True,
        'offer': DeliveryOfferDetailSerializer(offer).data,
        'partner_candidates': candidates,
        'message': (
            'Notifying nearby couriers...'
            if candidates
            else 'No couriers nearby yet. We will keep searching.'
        )
    }, status=status.HTTP_201_CREATED)


@api_view(['POST'])
def cancel_dispatch(request, order_id):
    """Stop looking for a courier (store cancelled the order)"""
    serializer = CancelDispatchSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    try:
        order = cancel_order_dispatch(order_id, serializer.validated_data['reason'])
    except DispatchError as exc:
        return error_response(exc)

    return Response({
        'success': True,
        'message': 'Dispatch cancelled',
        'order': OrderDeliverySerializer(order).data,
    })


@api_view(['POST'])
def delivery_status(request, order_id):
    """
    Courier reports delivery progress (picked up / delivered).

    Moving to ``delivered`` settles the delivery and frees the courier.
    """
    serializer = DeliveryStatusUpdateSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data

    try:
        order = update_delivery_status(
            order_id,
            data['status'],
            courier_id=data['courier_id'],
            occurred_at=data.get('occurred_at'),
        )
    except DispatchError as exc:
        return error_response(exc)

    return Response({
        'success': True,
        'order': OrderDeliverySerializer(order).data,
    })


# ==================== Courier offer actions ====================

@api_view(['GET'])
def offer_detail(request, offer_id):
    try:
        offer = get_offer(offer_id)
    except DispatchError as exc:
        return error_response(exc)
    return Response(DeliveryOfferDetailSerializer(offer).data)


@api_view(['POST'])
def accept_delivery_offer(request, offer_id):
    """Accept a delivery offer visible to this courier."""
    serializer = CourierActionSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    courier_id = serializer.validated_data['courier_id']

    try:
        result = accept_offer(offer_id, courier_id)
    except DispatchError as exc:
        return error_response(exc)

    return Response({
        'success': True,
        'offer': DeliveryOfferSerializer(result.offer).data,
        'order': OrderDeliverySerializer(result.order).data,
        'message': result.message,
    })


@api_view(['POST'])
def decline_delivery_offer(request, offer_id):
    serializer = CourierActionSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    try:
        offer = decline_offer(offer_id, serializer.validated_data['courier_id'])
    except DispatchError as exc:
        return error_response(exc)

    return Response({
        'success': True,
        'offer_id': offer.id,
        'message': 'Offer declined.',
    })
