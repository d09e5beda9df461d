from django.urls import path
from rest_framework.routers import DefaultRouter

from bookings.views import (
    PaymentWebhookView,
    ReservationViewSet,
    RoomTypeViewSet,
    RoomViewSet,
    SimulatePaymentView,
)

router = DefaultRouter()
router.register(r'rooms', RoomTypeViewSet, basename='room-type')
router.register(r'ims/rooms', RoomViewSet, basename='room')
router.register(r'reservations', ReservationViewSet, basename='reservation')

urlpatterns = [
    path('payments/webhook/', PaymentWebhookView.as_view(), name='payment-webhook'),
    path('dev/simulate-payment/<str:reference_code>/', SimulatePaymentView.as_view(), name='simulate-payment'),
] + router.urls
