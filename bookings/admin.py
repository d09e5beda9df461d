from django.contrib import admin

from .models import Reservation, Room, RoomType


@admin.register(RoomType)
class RoomTypeAdmin(admin.ModelAdmin):
    list_display = ("name", "slug", "rate_3h", "rate_6h", "rate_12h", "rate_24h")
    prepopulated_fields = {"slug": ("name",)}


@admin.register(Room)
class RoomAdmin(admin.ModelAdmin):
    list_display = ("number", "room_type", "status", "lock_expires_at")
    list_filter = ("status", "room_type")


@admin.register(Reservation)
class ReservationAdmin(admin.ModelAdmin):
    list_display = ("reference_code", "room", "check_in", "check_out", "status", "source", "total_amount")
    list_filter = ("status", "source")
    search_fields = ("reference_code", "checkout_session_id")
    readonly_fields = ("reference_code", "checkout_session_id", "total_amount", "created_at", "updated_at")
