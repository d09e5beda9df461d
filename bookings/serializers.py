from datetime import datetime
from decimal import Decimal, InvalidOperation

from django.utils import timezone
from rest_framework import serializers

from .catalog import SUPPORTED_DURATIONS, slug_for
from .models import Reservation, Room, RoomType
from .validation import BookingRequest


class ChildAgesField(serializers.Field):
    """
    Child ages arrive as a list ([7, 10] or ["7,10"]), a comma separated
    string ("7,10") or a single number. Normalize all of them to list[int],
    truncating fractions and dropping blanks and tokens that are not numbers.
    """

    def to_internal_value(self, data):
        if data is None or data == "":
            return []
        if isinstance(data, (list, tuple)):
            raw = ",".join(str(item) for item in data)
        else:
            raw = str(data)

        ages = []
        for token in raw.split(","):
            token = token.strip()
            if not token:
                continue
            try:
                # Truncates like parseInt: "7.5" is 7, 8.0 is 8.
                ages.append(int(Decimal(token)))
            except (InvalidOperation, ValueError, OverflowError):
                continue
        return ages

    def to_representation(self, value):
        return list(value or [])


class DurationField(serializers.Field):
    """Accepts 3, "3" or "3h"."""

    default_error_messages = {
        "invalid": "Invalid duration. Allowed values: 3h, 6h, 12h, 24h.",
    }

    def to_internal_value(self, data):
        try:
            hours = int(str(data).strip().lower().removesuffix("h"))
        except (TypeError, ValueError):
            self.fail("invalid")
        if hours not in SUPPORTED_DURATIONS:
            self.fail("invalid")
        return hours

    def to_representation(self, value):
        return f"{value}h"


def local_datetime(check_in_date, check_in_time):
    return timezone.make_aware(datetime.combine(check_in_date, check_in_time))


class RoomTypeSerializer(serializers.ModelSerializer):
    id = serializers.SerializerMethodField()
    rates = serializers.SerializerMethodField()

    class Meta:
        model = RoomType
        fields = ["id", "name", "slug", "tagline", "description", "capacity", "rates"]

    def get_id(self, instance):
        return slug_for(instance.name)

    def get_rates(self, instance):
        return {f"{hours}h": float(rate) for hours, rate in instance.rate_card.items()}

    def to_representation(self, instance):
        data = super().to_representation(instance)
        data["name"] = str(instance)
        data["type"] = instance.name
        return data


class RoomSerializer(serializers.ModelSerializer):
    type = serializers.CharField(source="room_type.name", read_only=True)

    class Meta:
        model = Room
        fields = ["id", "number", "type", "status", "lock_expires_at"]

    def to_representation(self, instance):
        data = super().to_representation(instance)
        data["rates"] = {f"{hours}h": float(rate) for hours, rate in instance.rate_card.items()}
        return data


class GuestInfoSerializer(serializers.Serializer):
    guest_id = serializers.IntegerField(required=False, allow_null=True)
    first_name = serializers.CharField(required=False, allow_blank=True, default="")
    last_name = serializers.CharField(required=False, allow_blank=True, default="")
    email = serializers.EmailField(required=False, allow_blank=True, default="")
    phone = serializers.CharField(required=False, allow_blank=True, default="")
    adults = serializers.IntegerField(required=False, default=1)
    children = serializers.IntegerField(required=False, default=0)
    child_ages = ChildAgesField(required=False, default=list)

    def to_internal_value(self, data):
        # "walk_in" is how the front end says "no guest override".
        if isinstance(data, dict) and data.get("guest_id") == "walk_in":
            data = {**data, "guest_id": None}
        return super().to_internal_value(data)


class BookingRequestSerializer(serializers.Serializer):
    room_slug = serializers.CharField()
    room_id = serializers.IntegerField(required=False, allow_null=True)
    check_in_date = serializers.DateField()
    check_in_time = serializers.TimeField()
    duration = DurationField()
    # Accepted only so it can be compared with the server price and logged.
    total_amount = serializers.DecimalField(max_digits=10, decimal_places=2, required=False, allow_null=True)
    guest_info = GuestInfoSerializer()
    lock_token = serializers.CharField(required=False, allow_blank=True, default="")

    def to_booking_request(self):
        data = self.validated_data
        guest = data["guest_info"]
        return BookingRequest(
            room_type_slug=data["room_slug"],
            room_id=data.get("room_id"),
            check_in=local_datetime(data["check_in_date"], data["check_in_time"]),
            duration_hours=data["duration"],
            adults=guest["adults"],
            children=guest["children"],
            child_ages=guest["child_ages"],
            guest_id=guest.get("guest_id"),
            client_total=data.get("total_amount"),
            first_name=guest["first_name"],
            last_name=guest["last_name"],
            email=guest["email"],
            phone=guest["phone"],
            lock_token=data["lock_token"],
        )


class AvailabilityQuerySerializer(serializers.Serializer):
    check_in_date = serializers.DateField()
    check_in_time = serializers.TimeField()
    duration = DurationField()
    lock_token = serializers.CharField(required=False, allow_blank=True, default="")

    @property
    def check_in(self):
        return local_datetime(self.validated_data["check_in_date"], self.validated_data["check_in_time"])


class HoldSerializer(serializers.Serializer):
    token = serializers.CharField(max_length=255)
    minutes = serializers.IntegerField(required=False, default=5, min_value=1, max_value=30)


class ReservationSerializer(serializers.ModelSerializer):
    room_id = serializers.IntegerField(source="room.pk", read_only=True)
    room_number = serializers.CharField(source="room.number", read_only=True)
    room_name = serializers.CharField(source="room.name", read_only=True)
    room_type = serializers.CharField(source="room.room_type.name", read_only=True)
    duration = DurationField(source="duration_hours", read_only=True)

    class Meta:
        model = Reservation
        fields = [
            "id",
            "reference_code",
            "guest",
            "room_id",
            "room_number",
            "room_name",
            "room_type",
            "check_in",
            "check_out",
            "duration",
            "duration_hours",
            "adults",
            "children",
            "child_ages",
            "source",
            "status",
            "total_amount",
            "created_at",
        ]
        read_only_fields = fields

    def to_representation(self, instance):
        data = super().to_representation(instance)
        data["payment_status"] = "paid" if instance.status in (
            Reservation.Status.CONFIRMED, Reservation.Status.CHECKED_IN, Reservation.Status.COMPLETED,
        ) else "pending"
        return data


class WalkInSerializer(serializers.Serializer):
    room_id = serializers.IntegerField()
    duration = DurationField()
    adults = serializers.IntegerField(required=False, default=1)
    children = serializers.IntegerField(required=False, default=0)
    child_ages = ChildAgesField(required=False, default=list)
    guest_id = serializers.IntegerField(required=False, allow_null=True)


class ReservationStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Reservation.Status.choices)


class RoomStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Room.Status.choices)


class SimulatePaymentSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=["paid", "failed"])


MAX_LIST_LIMIT = 500


class ReservationListQuerySerializer(serializers.Serializer):
    limit = serializers.IntegerField(required=False, default=100, min_value=1, max_value=MAX_LIST_LIMIT)
