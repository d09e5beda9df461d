from datetime import timedelta
from decimal import Decimal

from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models


class RoomType(models.Model):
    class Name(models.TextChoices):
        VALUE = "Value"
        STANDARD = "Standard"
        DELUXE = "Deluxe"
        SUPERIOR = "Superior"
        SUITE = "Suite"

    name = models.CharField(max_length=20, choices=Name.choices, unique=True)
    slug = models.SlugField(max_length=50, unique=True)
    tagline = models.CharField(max_length=255, blank=True)
    description = models.TextField(blank=True)
    capacity = models.CharField(max_length=50, blank=True)
    rate_3h = models.DecimalField(max_digits=10, decimal_places=2, validators=[MinValueValidator(Decimal("0"))])
    rate_6h = models.DecimalField(max_digits=10, decimal_places=2, validators=[MinValueValidator(Decimal("0"))])
    rate_12h = models.DecimalField(max_digits=10, decimal_places=2, validators=[MinValueValidator(Decimal("0"))])
    rate_24h = models.DecimalField(max_digits=10, decimal_places=2, validators=[MinValueValidator(Decimal("0"))])

    class Meta:
        ordering = ["rate_3h"]

    def __str__(self):
        return f"{self.name} Room"

    @property
    def rate_card(self):
        return {
            3: self.rate_3h,
            6: self.rate_6h,
            12: self.rate_12h,
            24: self.rate_24h,
        }


class Room(models.Model):
    class Status(models.TextChoices):
        AVAILABLE = "Available"
        OCCUPIED = "Occupied"
        DIRTY = "Dirty"
        MAINTENANCE = "Maintenance"

    # Dirty and Maintenance rooms are never offered, whatever the requested date.
    BOOKABLE_STATUSES = (Status.AVAILABLE, Status.OCCUPIED)

    number = models.CharField(max_length=10, unique=True)
    room_type = models.ForeignKey(RoomType, on_delete=models.PROTECT, related_name="rooms")
    status = models.CharField(max_length=12, choices=Status.choices, default=Status.AVAILABLE)
    lock_expires_at = models.DateTimeField(null=True, blank=True)
    lock_token = models.CharField(max_length=255, blank=True)

    class Meta:
        ordering = ["number"]

    def __str__(self):
        return f"{self.room_type.name} Room {self.number}"

    @property
    def name(self):
        return str(self)

    @property
    def rate_card(self):
        return self.room_type.rate_card

    def is_locked(self, now, token=""):
        if self.lock_expires_at is None or self.lock_expires_at <= now:
            return False
        return not (token and token == self.lock_token)


class Reservation(models.Model):
    class Status(models.TextChoices):
        PENDING_PAYMENT = "Pending_Payment"
        CONFIRMED = "Confirmed"
        CHECKED_IN = "Checked_In"
        COMPLETED = "Completed"
        CANCELLED = "Cancelled"

    class Source(models.TextChoices):
        WEB = "Web"
        WALK_IN = "Walk_in"

    # Statuses that hold a room for their time window.
    ACTIVE_STATUSES = (Status.PENDING_PAYMENT, Status.CONFIRMED, Status.CHECKED_IN)

    reference_code = models.CharField(max_length=40, unique=True)
    guest = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="reservations",
    )
    room = models.ForeignKey(Room, on_delete=models.PROTECT, related_name="reservations")
    checkout_session_id = models.CharField(max_length=255, blank=True)
    check_in = models.DateTimeField()
    check_out = models.DateTimeField()
    duration_hours = models.PositiveSmallIntegerField()
    adults = models.PositiveSmallIntegerField(default=1, validators=[MinValueValidator(1), MaxValueValidator(4)])
    children = models.PositiveSmallIntegerField(default=0, validators=[MaxValueValidator(2)])
    child_ages = models.JSONField(default=list, blank=True)
    source = models.CharField(max_length=10, choices=Source.choices, default=Source.WEB)
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.PENDING_PAYMENT)
    total_amount = models.DecimalField(max_digits=10, decimal_places=2)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-check_in"]
        indexes = [
            models.Index(fields=["room", "status"], name="bookings_re_room_id_3f1a2c_idx"),
            models.Index(fields=["status", "created_at"], name="bookings_re_status_8d4e7b_idx"),
        ]

    def __str__(self):
        return self.reference_code

    @property
    def is_active(self):
        return self.status in self.ACTIVE_STATUSES

    def schedule(self, check_in):
        """Set check_in and derive check_out from the booked duration."""
        self.check_in = check_in
        self.check_out = check_in + timedelta(hours=self.duration_hours)
