#!/usr/bin/env python3
"""
Unit Tests for the Normalization Engine

Every test feeds a raw payload in one of the shapes the backend is known to
produce and checks the canonical entity that comes out.
"""

import unittest
from datetime import datetime, timedelta
from decimal import Decimal

from parkspot_client.domain.errors import NormalizationError
from parkspot_client.domain.models import BookingStatus, SlotStatus, UserRole, VehicleSize
from parkspot_client.domain.normalization import (
    extract_auth_payload, extract_data, get_path, is_empty, locate_entity,
    locate_list, normalize_booking, normalize_floor, normalize_garage,
    normalize_garages, normalize_payment_intent, normalize_slot,
    normalize_slots, normalize_user, parse_timestamp, resolve_slot_status,
)


# ============================================================================
# PATH HELPERS
# ============================================================================

class TestPathHelpers(unittest.TestCase):
    """Test emptiness rules and dotted path lookup"""

    def test_placeholder_strings_are_empty(self):
        """Test that "undefined", "null" and blank text count as absent"""
        for value in (None, "", "   ", "undefined", "null", "NULL"):
            self.assertTrue(is_empty(value), value)

    def test_false_and_zero_are_values(self):
        """Test that falsy non-text values are not treated as absent"""
        for value in (False, 0, 0.0, [], {}):
            self.assertFalse(is_empty(value), value)

    def test_get_path_walks_mappings_and_lists(self):
        """Test dotted paths through nested dicts and list indexes"""
        payload = {"data": {"items": [{"id": 1}, {"id": 2}]}}
        self.assertEqual(get_path(payload, "data.items.1.id"), 2)
        self.assertIsNone(get_path(payload, "data.items.5.id"))
        self.assertIsNone(get_path(payload, "data.missing.id"))


# ============================================================================
# ENVELOPES
# ============================================================================

class TestEnvelopes(unittest.TestCase):
    """Test envelope stripping and entity location"""

    def test_extract_data_strips_one_level(self):
        """Test a single data envelope is removed"""
        self.assertEqual(extract_data({"data": {"data": [1]}}), {"data": [1]})
        self.assertEqual(extract_data([1, 2]), [1, 2])
        self.assertEqual(extract_data({"data": None, "id": 3}), {"data": None, "id": 3})

    def test_locate_list_checks_keys_in_order(self):
        """Test the first list-valued key wins"""
        payload = {"slots": "nope", "parkingSlots": [{"id": 1}], "spots": [{"id": 2}]}
        self.assertEqual(locate_list(payload, ("slots", "parkingSlots", "spots")), [{"id": 1}])
        self.assertIsNone(locate_list({"other": []}, ("slots",)))

    def test_locate_entity_strategies(self):
        """Test root id, alternate roots and one data level deeper"""
        self.assertEqual(locate_entity({"id": 1, "x": 2})["x"], 2)
        self.assertEqual(locate_entity({"booking": {"id": 4}}, ("booking",)), {"id": 4})
        self.assertEqual(locate_entity({"data": {"booking": {"id": 5}}}, ("booking",)), {"id": 5})
        self.assertEqual(locate_entity({"data": {"id": 6}}), {"id": 6})
        self.assertIsNone(locate_entity({"message": "ok"}, ("booking",)))


class TestAuthExtraction(unittest.TestCase):
    """Test flexible login/register response extraction"""

    USER = {"id": 7, "name": "Ada", "email": "ada@example.com"}

    def test_doubly_wrapped_equals_flat(self):
        """Test {data:{data:{user,token}}} yields the same result as {user,token}"""
        flat = extract_auth_payload(extract_data({"user": self.USER, "token": "t-1"}))
        nested = extract_auth_payload(extract_data({"data": {"data": {"user": self.USER, "token": "t-1"}}}))
        self.assertEqual(flat, nested)
        self.assertEqual(nested.token, "t-1")
        self.assertEqual(nested.user["email"], "ada@example.com")

    def test_user_at_index_zero_and_access_token(self):
        """Test user as first array element and access_token key"""
        payload = extract_auth_payload({"0": self.USER, "access_token": "abc"})
        self.assertEqual(payload.user["id"], 7)
        self.assertEqual(payload.token, "abc")

        listed = extract_auth_payload({"data": [self.USER], "token": "abc"})
        self.assertEqual(listed.user["id"], 7)

    def test_placeholder_token_is_absent(self):
        """Test token "undefined" is not a token"""
        payload = extract_auth_payload({"user": self.USER, "token": "undefined"})
        self.assertIsNone(payload.token)


# ============================================================================
# ENTITY MAPPERS
# ============================================================================

class TestNormalizeUser(unittest.TestCase):
    """Test user normalization"""

    def test_numeric_id_becomes_string(self):
        user = normalize_user({"id": 12, "name": "Bo", "email": "bo@x.io", "role": "ADMIN"})
        self.assertEqual(user.id, "12")
        self.assertEqual(user.role, UserRole.ADMIN)

    def test_missing_email_is_normalization_error(self):
        """Test required fields raise NormalizationError"""
        with self.assertRaises(NormalizationError) as ctx:
            normalize_user({"id": 1, "name": "No Mail"})
        self.assertIn("email", str(ctx.exception))

    def test_fallback_fills_missing_fields(self):
        user = normalize_user({"id": 1}, fallback={"name": "Cy", "email": "cy@x.io"})
        self.assertEqual((user.name, user.email), ("Cy", "cy@x.io"))


class TestNormalizeSlot(unittest.TestCase):
    """Test the three availability encodings"""

    def test_is_booked_true_means_occupied(self):
        self.assertEqual(resolve_slot_status({"is_booked": True}), SlotStatus.OCCUPIED)

    def test_is_available_false_means_occupied(self):
        self.assertEqual(resolve_slot_status({"is_available": False}), SlotStatus.OCCUPIED)

    def test_explicit_reserved_wins_over_flags(self):
        """Test a recognized status string takes precedence"""
        raw = {"status": "reserved", "is_booked": False, "is_available": True}
        self.assertEqual(resolve_slot_status(raw), SlotStatus.RESERVED)

    def test_any_status_string_blocks_flags(self):
        """Test flags are ignored once a status string is present"""
        self.assertEqual(resolve_slot_status({"status": "maintenance", "is_booked": True}), SlotStatus.AVAILABLE)
        self.assertEqual(resolve_slot_status({"status": "weird", "is_available": False}), SlotStatus.AVAILABLE)
        self.assertEqual(resolve_slot_status({"status": "  ", "is_booked": 1}), SlotStatus.OCCUPIED)

    def test_default_is_available(self):
        self.assertEqual(resolve_slot_status({}), SlotStatus.AVAILABLE)

    def test_slot_fields_and_defaults(self):
        """Test string numbers are coerced and missing price defaults"""
        slot = normalize_slot({"id": 3, "floor": "2", "size": "Large", "price": "4.5"})
        self.assertEqual(slot.id, "3")
        self.assertEqual(slot.number, "3")
        self.assertEqual(slot.level, 2)
        self.assertEqual(slot.vehicle_size, VehicleSize.LARGE)
        self.assertEqual(slot.price_per_hour, Decimal("4.50"))

        fallback = normalize_slot({"id": "s1", "price_per_hour": "-3"})
        self.assertEqual(fallback.price_per_hour, Decimal("1.00"))

    def test_slot_envelopes(self):
        """Test slot listings in every known envelope"""
        items = [{"id": 1}, {"id": 2}]
        for payload in (items, {"slots": items}, {"data": items}, {"parking": items},
                        {"parkingSlots": items}, {"data": {"slots": items}}):
            self.assertEqual([s.id for s in normalize_slots(payload)], ["1", "2"], payload)
        self.assertEqual(normalize_slots({"message": "none"}), [])


class TestNormalizeGarage(unittest.TestCase):
    """Test garage normalization"""

    def test_missing_image_is_none_never_placeholder(self):
        """Test absent and placeholder images both become None"""
        for raw in ({"id": 1}, {"id": 1, "image": "undefined"}, {"id": 1, "photo": "null"}):
            self.assertIsNone(normalize_garage(raw).image, raw)

    def test_image_synonyms_in_priority_order(self):
        garage = normalize_garage({"id": 1, "photo_url": "b.png", "picture": "c.png"})
        self.assertEqual(garage.image, "b.png")

    def test_location_from_flat_fields(self):
        garage = normalize_garage({
            "id": "g1", "latitude": "52.1", "longitude": 4.3,
            "address": "Main St 1", "city": "Delft",
        })
        self.assertEqual(garage.location.lat, 52.1)
        self.assertEqual(garage.location.lng, 4.3)
        self.assertEqual(garage.location.city, "Delft")

    def test_nested_location_wins(self):
        garage = normalize_garage({"id": 1, "location": {"lat": 1, "lng": 2}, "latitude": 9})
        self.assertEqual(garage.location.get_coordinates(), (1.0, 2.0))

    def test_counts_and_price(self):
        """Test counts are coerced and available never exceeds total"""
        garage = normalize_garage({
            "id": 1, "total_slots": "10", "real_available_slots": 12,
            "price_per_hour": "2.5", "amenities": ["EV", "EV", "Covered"],
        })
        self.assertEqual(garage.available_slots, 12)
        self.assertEqual(garage.total_slots, 12)
        self.assertEqual(garage.price_per_hour, Decimal("2.50"))
        self.assertEqual(garage.amenities, ("EV", "Covered"))

    def test_embedded_floors(self):
        garage = normalize_garage({"id": 1, "floors": [{"level": 1, "slots": [{"id": 1, "is_booked": True}]}]})
        self.assertEqual(len(garage.floors), 1)
        self.assertEqual(garage.floors[0].name, "1st Floor")
        self.assertEqual(garage.floors[0].available_slots, 0)
        self.assertEqual(garage.floors[0].total_slots, 1)

    def test_garage_listing_envelopes(self):
        self.assertEqual(len(normalize_garages({"data": [{"id": 1}, {"id": 2}]})), 2)
        self.assertEqual(len(normalize_garages({"places": [{"id": 1}]})), 1)

    def test_floor_defaults(self):
        floor = normalize_floor({"level": -1})
        self.assertEqual(floor.id, "floor--1")
        self.assertEqual(floor.name, "Floor -1")


class TestNormalizeBooking(unittest.TestCase):
    """Test booking normalization"""

    def raw(self, **overrides):
        raw = {
            "id": 55,
            "place": {"id": 9, "name": "Central"},
            "parking_spot": {"id": 31},
            "user_id": 4,
            "status": "upcoming",
            "total_amount": "12.5",
            "vehicle_plate": "  AB-123 ",
            "start_time": "2024-05-01 10:00:00",
            "end_time": "2024-05-01 13:00:00",
        }
        raw.update(overrides)
        return raw

    def test_nested_ids_and_synonyms(self):
        booking = normalize_booking(self.raw())
        self.assertEqual(booking.id, "55")
        self.assertEqual(booking.garage_id, "9")
        self.assertEqual(booking.slot_id, "31")
        self.assertEqual(booking.status, BookingStatus.CONFIRMED)
        self.assertEqual(booking.total_price, Decimal("12.50"))
        self.assertEqual(booking.vehicle_plate, "AB-123")
        self.assertEqual(booking.place["name"], "Central")

    def test_duration_derived_from_window(self):
        booking = normalize_booking(self.raw())
        self.assertEqual(booking.time.duration_hours, 3)
        self.assertEqual(booking.time.start, datetime(2024, 5, 1, 10, 0, 0))

    def test_missing_end_uses_duration(self):
        booking = normalize_booking(self.raw(end_time=None, duration_hours=2))
        self.assertEqual(booking.time.end - booking.time.start, timedelta(hours=2))

    def test_end_not_after_start_is_corrected(self):
        booking = normalize_booking(self.raw(end_time="2024-05-01 09:00:00", duration_hours="1"))
        self.assertEqual(booking.time.end, datetime(2024, 5, 1, 11, 0, 0))

    def test_missing_window_is_error(self):
        with self.assertRaises(NormalizationError):
            normalize_booking(self.raw(start_time=None, end_time=None))

    def test_short_plate_is_error(self):
        with self.assertRaises(NormalizationError):
            normalize_booking(self.raw(vehicle_plate=" A1 "))

    def test_missing_plate_is_none(self):
        for plate in (None, "", "undefined"):
            self.assertIsNone(normalize_booking(self.raw(vehicle_plate=plate)).vehicle_plate)

    def test_mixed_timezones_are_compared_in_utc(self):
        """Test an offset start is converted before meeting a naive end"""
        booking = normalize_booking(self.raw(
            start_time="2024-05-01T10:00:00+02:00",
            end_time="2024-05-01 10:00:00",
            duration_hours=None,
        ))
        self.assertEqual(booking.time.start, datetime(2024, 5, 1, 8, 0, 0))
        self.assertEqual(booking.time.end, datetime(2024, 5, 1, 10, 0, 0))
        self.assertEqual(booking.time.duration_hours, 2)

    def test_status_defaults(self):
        """Test missing status uses the default and unknown maps to pending"""
        self.assertEqual(
            normalize_booking(self.raw(status=None), default_status=BookingStatus.COMPLETED).status,
            BookingStatus.COMPLETED,
        )
        self.assertEqual(normalize_booking(self.raw(status="mystery")).status, BookingStatus.PENDING)
        self.assertEqual(normalize_booking(self.raw(status="canceled")).status, BookingStatus.CANCELLED)

    def test_fallback_supplies_plate(self):
        booking = normalize_booking(self.raw(vehicle_plate=None), fallback={"vehicle_plate": "XYZ-9"})
        self.assertEqual(booking.vehicle_plate, "XYZ-9")


class TestMisc(unittest.TestCase):

    def test_parse_timestamp_formats(self):
        self.assertEqual(parse_timestamp("2024-01-02 03:04:05"), datetime(2024, 1, 2, 3, 4, 5))
        self.assertEqual(parse_timestamp("2024-01-02T03:04:05Z").utcoffset(), timedelta(0))
        self.assertIsNone(parse_timestamp("not a date"))

    def test_payment_intent(self):
        intent = normalize_payment_intent({"data": {"booking": {"id": 8}, "status": "paid"}})
        self.assertEqual(intent.booking_id, "8")
        self.assertEqual(intent.status, "paid")


if __name__ == "__main__":
    unittest.main()
