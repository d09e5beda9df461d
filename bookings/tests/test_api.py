import json
from datetime import timedelta
from decimal import Decimal

from django.contrib.auth.models import Group
from django.test import override_settings
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APITestCase

from bookings.identity import FRONT_DESK, HOUSEKEEPING, MANAGER, identity_from_user
from bookings.models import Reservation, Room
from bookings.reconciliation import PAYMENT_PAID, compute_signature

from .fakes import TEST_BOOKINGS, WEBHOOK_SECRET, FakeGateway, make_room, make_room_type, make_user

Status = Reservation.Status


@override_settings(BOOKINGS=TEST_BOOKINGS)
class BookingAPITestCase(APITestCase):
    def setUp(self):
        FakeGateway.reset()
        self.standard = make_room_type()
        self.room = make_room(self.standard, "201S")
        self.guest = make_user("guest", email="guest@example.com")
        self.check_in_date = (timezone.localdate() + timedelta(days=7)).isoformat()

    def checkout_payload(self, **overrides):
        payload = {
            "room_slug": "standard-room",
            "check_in_date": self.check_in_date,
            "check_in_time": "14:00",
            "duration": "3h",
            "total_amount": "1.00",
            "guest_info": {
                "first_name": "Ana",
                "last_name": "Cruz",
                "email": "ana@example.com",
                "adults": 2,
                "children": 1,
                "child_ages": "8",
            },
        }
        payload.update(overrides)
        return payload

    def checkout(self, **overrides):
        self.client.force_authenticate(user=self.guest)
        return self.client.post("/api/reservations/checkout/", self.checkout_payload(**overrides), format="json")

    def webhook(self, payload, signature=None):
        body = json.dumps(payload).encode()
        return self.client.post(
            "/api/payments/webhook/",
            data=body,
            content_type="application/json",
            HTTP_PAYMONGO_SIGNATURE=signature if signature is not None else compute_signature(body, WEBHOOK_SECRET),
        )

    def test_health_and_welcome(self):
        self.assertEqual(self.client.get("/health").json(), {"status": "ok"})
        self.assertEqual(self.client.get("/").status_code, status.HTTP_200_OK)

    def test_room_catalog(self):
        response = self.client.get("/api/rooms/")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        room = response.data["rooms"][0]
        self.assertEqual(room["id"], "standard-room")
        self.assertEqual(room["name"], "Standard Room")
        self.assertEqual(room["rates"]["3h"], 500.0)

    def test_room_type_by_name_or_slug(self):
        for lookup in ("standard-room", "Standard"):
            with self.subTest(lookup=lookup):
                response = self.client.get(f"/api/rooms/{lookup}/")
                self.assertEqual(response.status_code, status.HTTP_200_OK)
                self.assertEqual(response.data["room"]["type"], "Standard")

    def test_unknown_room_type(self):
        response = self.client.get("/api/rooms/penthouse/")
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data["code"], "not_found")
        self.assertFalse(response.data["success"])

    def test_availability(self):
        response = self.client.get("/api/rooms/standard-room/availability/", {
            "check_in_date": self.check_in_date, "check_in_time": "14:00", "duration": "3h",
        })
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data["available"])
        self.assertEqual(response.data["room_id"], self.room.pk)
        self.assertEqual(response.data["available_rooms"][0]["number"], "201S")

    def test_availability_rejects_misaligned_time(self):
        response = self.client.get("/api/rooms/standard-room/availability/", {
            "check_in_date": self.check_in_date, "check_in_time": "14:07", "duration": "3h",
        })
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["code"], "invalid")

    def test_availability_rejects_unsupported_duration(self):
        response = self.client.get("/api/rooms/standard-room/availability/", {
            "check_in_date": self.check_in_date, "check_in_time": "14:00", "duration": "4h",
        })
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_checkout_requires_login(self):
        response = self.client.post("/api/reservations/checkout/", self.checkout_payload(), format="json")
        self.assertIn(response.status_code, (status.HTTP_401_UNAUTHORIZED, status.HTTP_403_FORBIDDEN))
        self.assertFalse(Reservation.objects.exists())

    def test_checkout_prices_on_the_server(self):
        response = self.checkout()
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(response.data["checkout_url"].startswith("https://checkout.test/"))
        booking = response.data["booking"]
        self.assertEqual(booking["total_amount"], "650.00")
        self.assertEqual(booking["status"], Status.PENDING_PAYMENT)
        self.assertEqual(booking["duration"], "3h")
        self.assertEqual(booking["child_ages"], [8])
        self.assertEqual(FakeGateway.created[0]["billing"], {"name": "Ana Cruz", "email": "ana@example.com"})

    def test_checkout_conflict_is_retryable(self):
        self.checkout()
        response = self.checkout()
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data["code"], "conflict")
        self.assertTrue(response.data["retryable"])

    def test_checkout_gateway_outage(self):
        FakeGateway.failing = True
        response = self.checkout()
        self.assertEqual(response.status_code, status.HTTP_503_SERVICE_UNAVAILABLE)
        self.assertFalse(Reservation.objects.exists())

    def test_checkout_for_another_guest_is_refused(self):
        other = make_user("other")
        payload = self.checkout_payload()
        payload["guest_info"]["guest_id"] = other.pk
        self.client.force_authenticate(user=self.guest)
        response = self.client.post("/api/reservations/checkout/", payload, format="json")
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(response.data["code"], "security")

    def test_webhook_confirms_and_replay_is_harmless(self):
        reference = self.checkout().data["reference_code"]
        payload = {"data": {"attributes": {
            "type": PAYMENT_PAID,
            "data": {"attributes": {"metadata": {"reference_code": reference}}},
        }}}

        first = self.webhook(payload)
        second = self.webhook(payload)

        self.assertEqual(first.status_code, status.HTTP_200_OK)
        self.assertEqual(first.data, {"received": True, "applied": True})
        self.assertEqual(second.status_code, status.HTTP_200_OK)
        self.assertEqual(second.data, {"received": True, "applied": False})
        self.assertEqual(Reservation.objects.get(reference_code=reference).status, Status.CONFIRMED)

    def test_webhook_bad_signature(self):
        response = self.webhook({"data": {}}, signature="0" * 64)
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_webhook_missing_secret(self):
        with self.settings(BOOKINGS={**TEST_BOOKINGS, "WEBHOOK_SECRET": ""}):
            response = self.webhook({"data": {}}, signature="abc")
        self.assertEqual(response.status_code, status.HTTP_500_INTERNAL_SERVER_ERROR)

    def test_webhook_unhandled_event_is_acknowledged(self):
        response = self.webhook({"data": {"attributes": {"type": "payment.refunded"}}})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(response.data["applied"])

    def test_verify_and_lookup(self):
        reference = self.checkout().data["reference_code"]
        self.client.force_authenticate(user=None)
        response = self.client.get(f"/api/reservations/verify/{reference}/")
        self.assertEqual(response.data["status"], "pending")

        FakeGateway.settle(Reservation.objects.get().checkout_session_id, "paid")
        response = self.client.get(f"/api/reservations/verify/{reference}/")
        self.assertEqual(response.data["status"], "confirmed")
        self.assertEqual(response.data["booking"]["payment_status"], "paid")

        response = self.client.get(f"/api/reservations/by-reference/{reference}/")
        self.assertEqual(response.data["booking"]["reference_code"], reference)
        self.assertEqual(self.client.get("/api/reservations/by-reference/BKG-NOPE/").status_code, 404)

    def test_my_bookings_and_cancel(self):
        reference = self.checkout().data["reference_code"]
        response = self.client.get("/api/reservations/mine/")
        self.assertEqual([b["reference_code"] for b in response.data["bookings"]], [reference])

        response = self.client.post(f"/api/reservations/cancel/{reference}/")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["booking"]["status"], Status.CANCELLED)

    def test_simulated_payment(self):
        reference = self.checkout().data["reference_code"]
        response = self.client.post(f"/api/dev/simulate-payment/{reference}/", {"status": "paid"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["booking"]["status"], Status.CONFIRMED)

    def hold(self, room, token="tab-a", minutes=5):
        return self.client.post(f"/api/ims/rooms/{room.pk}/hold/", {"token": token, "minutes": minutes}, format="json")

    def test_anonymous_hold_is_refused(self):
        response = self.hold(self.room, minutes=30)
        self.assertIn(response.status_code, (status.HTTP_401_UNAUTHORIZED, status.HTTP_403_FORBIDDEN))
        self.room.refresh_from_db()
        self.assertIsNone(self.room.lock_expires_at)

        response = self.checkout()
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

    def test_room_hold(self):
        self.client.force_authenticate(user=self.guest)
        self.assertEqual(self.hold(self.room).status_code, status.HTTP_200_OK)

        other = make_user("other")
        self.client.force_authenticate(user=other)
        self.assertEqual(self.hold(self.room, token="tab-b").status_code, status.HTTP_409_CONFLICT)
        # Same client token, different caller: still someone else's hold.
        self.assertEqual(self.hold(self.room).status_code, status.HTTP_409_CONFLICT)
        response = self.client.post(f"/api/ims/rooms/{self.room.pk}/release/", {"token": "tab-a"}, format="json")
        self.assertFalse(response.data["released"])

        self.client.force_authenticate(user=self.guest)
        response = self.client.post(f"/api/ims/rooms/{self.room.pk}/release/", {"token": "tab-a"}, format="json")
        self.assertTrue(response.data["released"])

    def test_one_hold_per_guest(self):
        second = make_room(self.standard, "202S")
        self.client.force_authenticate(user=self.guest)
        self.assertEqual(self.hold(self.room).status_code, status.HTTP_200_OK)
        self.assertEqual(self.hold(second, token="tab-b").status_code, status.HTTP_409_CONFLICT)
        # Re-holding the same room extends it.
        self.assertEqual(self.hold(self.room).status_code, status.HTTP_200_OK)

    def test_holder_checks_out_held_room(self):
        self.client.force_authenticate(user=self.guest)
        self.hold(self.room)

        other = make_user("other")
        self.client.force_authenticate(user=other)
        response = self.client.post("/api/reservations/checkout/", self.checkout_payload(lock_token="tab-a"),
                                    format="json")
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

        response = self.checkout(lock_token="tab-a")
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.room.refresh_from_db()
        self.assertEqual(self.room.lock_token, "")

    def test_fractional_child_age_is_charged(self):
        for ages, parsed in (([8.0], [8]), ("7.5", [7])):
            with self.subTest(child_ages=ages):
                Reservation.objects.all().delete()
                payload = self.checkout_payload()
                payload["guest_info"]["child_ages"] = ages
                self.client.force_authenticate(user=self.guest)
                response = self.client.post("/api/reservations/checkout/", payload, format="json")
                self.assertEqual(response.status_code, status.HTTP_201_CREATED)
                self.assertEqual(response.data["booking"]["total_amount"], "650.00")
                self.assertEqual(response.data["booking"]["child_ages"], parsed)


@override_settings(BOOKINGS=TEST_BOOKINGS)
class StaffAPITestCase(APITestCase):
    def setUp(self):
        self.room = make_room(make_room_type(), "201S")
        self.guest = make_user("guest")
        self.desk = make_user("desk", role=FRONT_DESK)
        self.housekeeping = make_user("hk", role=HOUSEKEEPING)

    def reservation(self, reservation_status=Status.CONFIRMED):
        check_in = timezone.now() + timedelta(days=1)
        return Reservation.objects.create(
            reference_code="BKG-STAFF-1",
            guest=self.guest,
            room=self.room,
            check_in=check_in,
            check_out=check_in + timedelta(hours=3),
            duration_hours=3,
            status=reservation_status,
            total_amount=Decimal("500.00"),
        )

    def test_walk_in_is_front_desk_only(self):
        payload = {"room_id": self.room.pk, "duration": "3h", "adults": 2}
        self.client.force_authenticate(user=self.guest)
        self.assertEqual(self.client.post("/api/reservations/walk-in/", payload, format="json").status_code, 403)

        self.client.force_authenticate(user=self.desk)
        response = self.client.post("/api/reservations/walk-in/", payload, format="json")
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data["booking"]["status"], Status.CHECKED_IN)
        self.assertEqual(response.data["booking"]["source"], Reservation.Source.WALK_IN)

    def test_front_desk_status_changes(self):
        reservation = self.reservation()
        self.client.force_authenticate(user=self.desk)
        url = f"/api/reservations/{reservation.pk}/status/"

        response = self.client.patch(url, {"status": Status.CHECKED_IN}, format="json")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(Room.objects.get().status, Room.Status.OCCUPIED)

        response = self.client.patch(url, {"status": Status.CONFIRMED}, format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        response = self.client.patch(url, {"status": Status.COMPLETED}, format="json")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(Room.objects.get().status, Room.Status.DIRTY)

        response = self.client.patch(url, {"status": Status.CANCELLED}, format="json")
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

    def test_reservation_list_is_staff_only(self):
        self.reservation()
        self.client.force_authenticate(user=self.guest)
        self.assertEqual(self.client.get("/api/reservations/").status_code, status.HTTP_403_FORBIDDEN)

        self.client.force_authenticate(user=self.housekeeping)
        response = self.client.get("/api/reservations/", {"status": Status.CONFIRMED})
        self.assertEqual(len(response.data["bookings"]), 1)
        response = self.client.get("/api/reservations/", {"status": Status.CANCELLED})
        self.assertEqual(response.data["bookings"], [])

    def test_reservation_list_limit_is_validated(self):
        self.reservation()
        self.client.force_authenticate(user=self.desk)
        for limit in ("-1", "0", "abc"):
            with self.subTest(limit=limit):
                response = self.client.get("/api/reservations/", {"limit": limit})
                self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
                self.assertEqual(response.data["code"], "invalid")
        response = self.client.get("/api/reservations/", {"limit": "1"})
        self.assertEqual(len(response.data["bookings"]), 1)

    def test_highest_role_wins(self):
        manager_group, _ = Group.objects.get_or_create(name=MANAGER)
        self.housekeeping.groups.add(manager_group)
        self.assertEqual(identity_from_user(self.housekeeping).role, MANAGER)
        self.client.force_authenticate(user=self.housekeeping)
        payload = {"room_id": self.room.pk, "duration": "3h"}
        response = self.client.post("/api/reservations/walk-in/", payload, format="json")
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

    def test_housekeeping_cleans_room(self):
        Room.objects.update(status=Room.Status.DIRTY)
        self.client.force_authenticate(user=self.housekeeping)
        response = self.client.get("/api/ims/rooms/")
        self.assertEqual(response.data[0]["status"], Room.Status.DIRTY)

        response = self.client.patch(f"/api/ims/rooms/{self.room.pk}/status/",
                                     {"status": Room.Status.AVAILABLE}, format="json")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(Room.objects.get().status, Room.Status.AVAILABLE)
