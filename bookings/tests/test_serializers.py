from django.test import SimpleTestCase
from rest_framework.exceptions import ValidationError

from bookings.serializers import ChildAgesField, DurationField, ReservationListQuerySerializer


class ChildAgesFieldTestCase(SimpleTestCase):
    def setUp(self):
        self.field = ChildAgesField()

    def parse(self, data):
        return self.field.to_internal_value(data)

    def test_list_and_comma_string(self):
        self.assertEqual(self.parse([7, 10]), [7, 10])
        self.assertEqual(self.parse(["7,10"]), [7, 10])
        self.assertEqual(self.parse("7, 10"), [7, 10])
        self.assertEqual(self.parse(9), [9])

    def test_fractional_ages_truncate(self):
        """An 8.0 or "7.5" year old is still a chargeable child."""
        self.assertEqual(self.parse([8.0]), [8])
        self.assertEqual(self.parse("7.5"), [7])
        self.assertEqual(self.parse(["12.9", 6.2]), [12, 6])

    def test_non_numbers_and_blanks_are_dropped(self):
        self.assertEqual(self.parse("8,abc,,NaN"), [8])
        self.assertEqual(self.parse(""), [])
        self.assertEqual(self.parse(None), [])


class DurationFieldTestCase(SimpleTestCase):
    def test_accepted_forms(self):
        field = DurationField()
        for value in (3, "3", "3h", " 3H "):
            self.assertEqual(field.to_internal_value(value), 3)

    def test_unsupported_duration(self):
        with self.assertRaises(ValidationError):
            DurationField().to_internal_value("5h")


class ReservationListQueryTestCase(SimpleTestCase):
    def test_limit_bounds(self):
        self.assertTrue(ReservationListQuerySerializer(data={}).is_valid())
        for bad in ("-1", "0", "abc", "100000"):
            with self.subTest(limit=bad):
                self.assertFalse(ReservationListQuerySerializer(data={"limit": bad}).is_valid())
