import logging
from datetime import timedelta

from django.http import JsonResponse
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from . import errors
from .availability import find_available_rooms, hold_room, release_room, scoped_token
from .catalog import bookable_room_types, resolve_room_type
from .identity import identity_from_user
from .models import Reservation, Room
from .permissions import IsFrontDesk, IsStaff
from .reconciliation import (
    PUBLIC_STATUS,
    handle_event,
    parse_event,
    simulate_payment,
    verify_payment,
    verify_signature,
)
from .serializers import (
    AvailabilityQuerySerializer,
    BookingRequestSerializer,
    HoldSerializer,
    MAX_LIST_LIMIT,
    ReservationListQuerySerializer,
    ReservationSerializer,
    ReservationStatusSerializer,
    RoomSerializer,
    RoomStatusSerializer,
    RoomTypeSerializer,
    SimulatePaymentSerializer,
    WalkInSerializer,
)
from .services import (
    cancel_reservation,
    change_status,
    create_walk_in,
    create_web_reservation,
    get_reservation,
    reservations_for_guest,
    set_room_status,
)
from .sweeper import sweep_stale
from .validation import validate_alignment

logger = logging.getLogger(__name__)


def welcome(request):
    return JsonResponse({"message": "Welcome to the Hotel Booking API"})


def health_check(request):
    return JsonResponse({"status": "ok"})


class RoomTypeViewSet(viewsets.ReadOnlyModelViewSet):
    """Public catalog: one entry per room type, plus availability search."""
    serializer_class = RoomTypeSerializer
    permission_classes = [AllowAny]
    lookup_field = "slug"

    def get_queryset(self):
        return bookable_room_types()

    def retrieve(self, request, slug=None):
        return Response({"success": True, "room": self.get_serializer(resolve_room_type(slug)).data})

    def list(self, request):
        serializer = self.get_serializer(self.get_queryset(), many=True)
        return Response({"success": True, "rooms": serializer.data})

    @action(detail=True, methods=["get"])
    def availability(self, request, slug=None):
        """Every free room of this type for the requested window."""
        query = AvailabilityQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        check_in = validate_alignment(query.check_in)
        duration = query.validated_data["duration"]

        sweep_stale()
        room_type = resolve_room_type(slug)
        lock_token = ""
        if request.user.is_authenticated:
            lock_token = scoped_token(request.user.pk, query.validated_data["lock_token"])
        rooms = find_available_rooms(check_in, duration, room_type=room_type, lock_token=lock_token)
        available = [{"id": r.room_id, "number": r.number, "name": r.name} for r in rooms]
        check_out = check_in + timedelta(hours=duration)

        if available:
            noun = "Room" if len(available) == 1 else "Rooms"
            message = f"{len(available)} {room_type.name} {noun} available for your selected time!"
        else:
            message = (
                f"All {room_type.name} rooms are fully booked for the selected time. "
                "Please note: rooms require a 30-minute cleaning period between bookings."
            )
        return Response({
            "success": True,
            "available": bool(available),
            "message": message,
            "available_rooms": available,
            "room_id": available[0]["id"] if available else None,
            "room": self.get_serializer(room_type).data,
            "booking": {
                "check_in": check_in.isoformat(),
                "check_out": check_out.isoformat(),
                "duration_hours": duration,
            },
        })


class RoomViewSet(mixins.ListModelMixin, viewsets.GenericViewSet):
    """Physical rooms for the admin dashboard."""
    queryset = Room.objects.select_related("room_type").order_by("room_type__name", "number")
    serializer_class = RoomSerializer
    permission_classes = [IsStaff]

    def get_permissions(self):
        if self.action in ("hold", "release"):
            return [IsAuthenticated()]
        return super().get_permissions()

    @action(detail=True, methods=["patch"], url_path="status")
    def set_status(self, request, pk=None):
        serializer = RoomStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        room = set_room_status(pk, serializer.validated_data["status"], identity_from_user(request.user))
        return Response({"success": True, "message": f"Room {room.number} updated to {room.status}"})

    @action(detail=True, methods=["post"])
    def hold(self, request, pk=None):
        serializer = HoldSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        room = hold_room(
            pk,
            serializer.validated_data["token"],
            ttl=timedelta(minutes=serializer.validated_data["minutes"]),
            holder_id=request.user.pk,
        )
        return Response({"success": True, "lock_expires_at": room.lock_expires_at})

    @action(detail=True, methods=["post"])
    def release(self, request, pk=None):
        serializer = HoldSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        released = release_room(pk, serializer.validated_data["token"], holder_id=request.user.pk)
        return Response({"success": True, "released": released})


class ReservationViewSet(mixins.ListModelMixin, viewsets.GenericViewSet):
    serializer_class = ReservationSerializer
    permission_classes = [IsStaff]

    def get_permissions(self):
        if self.action in ("checkout", "mine", "cancel"):
            return [IsAuthenticated()]
        if self.action in ("verify", "by_reference", "sweep"):
            return [AllowAny()]
        if self.action in ("walk_in", "set_status"):
            return [IsFrontDesk()]
        return super().get_permissions()

    def get_queryset(self):
        qs = Reservation.objects.select_related("room", "room__room_type").order_by("-check_in")
        wanted = self.request.query_params.get("status")
        if wanted and wanted != "All":
            qs = qs.filter(status=wanted)
        return qs

    def list(self, request):
        query = ReservationListQuerySerializer(data=request.query_params)
        if not query.is_valid():
            raise errors.ValidationError(f"limit must be an integer between 1 and {MAX_LIST_LIMIT}.")
        serializer = self.get_serializer(self.get_queryset()[:query.validated_data["limit"]], many=True)
        return Response({"success": True, "bookings": serializer.data})

    @action(detail=False, methods=["post"])
    def checkout(self, request):
        """Reserve a room and return the payment page to send the guest to."""
        serializer = BookingRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        booking = serializer.to_booking_request()
        booking.lock_token = scoped_token(request.user.pk, booking.lock_token)
        result = create_web_reservation(booking, identity_from_user(request.user))
        return Response({
            "success": True,
            "checkout_url": result.checkout_url,
            "reference_code": result.reservation.reference_code,
            "booking": self.get_serializer(result.reservation).data,
        }, status=status.HTTP_201_CREATED)

    @action(detail=False, methods=["get"], url_path=r"verify/(?P<reference_code>[\w-]+)")
    def verify(self, request, reference_code=None):
        reservation = verify_payment(reference_code)
        return Response({
            "success": True,
            "status": PUBLIC_STATUS[reservation.status],
            "booking": self.get_serializer(reservation).data,
        })

    @action(detail=False, methods=["get"], url_path=r"by-reference/(?P<reference_code>[\w-]+)")
    def by_reference(self, request, reference_code=None):
        return Response({"success": True, "booking": self.get_serializer(get_reservation(reference_code)).data})

    @action(detail=False, methods=["get"])
    def mine(self, request):
        bookings = reservations_for_guest(identity_from_user(request.user))
        return Response({"success": True, "bookings": self.get_serializer(bookings, many=True).data})

    @action(detail=False, methods=["post"], url_path=r"cancel/(?P<reference_code>[\w-]+)")
    def cancel(self, request, reference_code=None):
        reservation = cancel_reservation(reference_code, identity_from_user(request.user))
        return Response({"success": True, "booking": self.get_serializer(reservation).data})

    @action(detail=False, methods=["post"], url_path="walk-in")
    def walk_in(self, request):
        serializer = WalkInSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        reservation = create_walk_in(
            room_id=data["room_id"],
            duration_hours=data["duration"],
            identity=identity_from_user(request.user),
            adults=data["adults"],
            children=data["children"],
            child_ages=data["child_ages"],
            guest_id=data.get("guest_id"),
        )
        return Response({
            "success": True,
            "message": f"Walk-in created for room {reservation.room.number}",
            "booking": self.get_serializer(reservation).data,
        }, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=["patch"], url_path="status")
    def set_status(self, request, pk=None):
        serializer = ReservationStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        reservation = change_status(pk, serializer.validated_data["status"], identity_from_user(request.user))
        return Response({
            "success": True,
            "message": f"Booking updated to {reservation.status}",
            "booking": self.get_serializer(reservation).data,
        })

    @action(detail=False, methods=["post"], url_path="sweep-stale")
    def sweep(self, request):
        cancelled = sweep_stale()
        return Response({"success": True, "cancelled": cancelled})


class PaymentWebhookView(APIView):
    """
    Gateway push endpoint. Only a bad signature is refused; once the body
    is authentic the gateway always gets 200 so it does not retry.
    """
    authentication_classes = []
    permission_classes = [AllowAny]

    def post(self, request):
        raw_body = request.body
        verify_signature(raw_body, request.headers.get("Paymongo-Signature"))
        try:
            outcome = handle_event(parse_event(raw_body))
        except Exception:
            logger.exception("Webhook processing failed")
            return Response({"received": True})
        return Response({"received": True, "applied": outcome.applied})


class SimulatePaymentView(APIView):
    """Development only: stands in for a gateway payment result."""
    permission_classes = [AllowAny]

    def post(self, request, reference_code):
        serializer = SimulatePaymentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        reservation = simulate_payment(reference_code, serializer.validated_data["status"])
        return Response({
            "success": True,
            "message": "Payment simulated successfully",
            "booking": ReservationSerializer(reservation).data,
        })
