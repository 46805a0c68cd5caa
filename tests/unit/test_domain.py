#!/usr/bin/env python3
"""
Unit Tests for the Domain Layer

Entities, the booking state machine, floor derivation, booking partitions
and price quotes.
"""

import unittest
from datetime import datetime, timedelta
from decimal import Decimal

from parkspot_client.domain.aggregates import (
    BookingPartition, derive_floors, floor_name, partition_bookings, quote_total,
)
from parkspot_client.domain.models import (
    Booking, BookingStatus, Garage, Slot, SlotStatus, TimeWindow, User, UserRole,
)

START = datetime(2024, 6, 1, 9, 0, 0)


def make_booking(booking_id="1", status=BookingStatus.CONFIRMED):
    return Booking(
        id=booking_id,
        garage_id="g1",
        user_id="u1",
        slot_id="s1",
        status=status,
        total_price=Decimal("4.00"),
        vehicle_plate="ABC-1",
        time=TimeWindow.starting_at(START, 2),
    )


# ============================================================================
# VALUE OBJECTS AND ENTITIES
# ============================================================================

class TestTimeWindow(unittest.TestCase):
    """Test the booked interval invariants"""

    def test_starting_at(self):
        window = TimeWindow.starting_at(START, 3)
        self.assertEqual(window.end, START + timedelta(hours=3))
        self.assertEqual(window.span_hours, 3.0)

    def test_end_must_follow_start(self):
        with self.assertRaises(ValueError):
            TimeWindow(start=START, end=START, duration_hours=1)

    def test_duration_at_least_one_hour(self):
        with self.assertRaises(ValueError):
            TimeWindow.starting_at(START, 0)


class TestEntities(unittest.TestCase):

    def test_user_round_trips_through_cache_dict(self):
        """Test the cached snapshot rebuilds an equal user"""
        user = User(id="1", name="Ada", email="ada@x.io", role=UserRole.ADMIN)
        self.assertEqual(User.from_dict(user.to_dict()), user)
        self.assertTrue(user.is_admin)

    def test_booking_plate_is_trimmed_and_checked(self):
        booking = Booking(**{**make_booking().__dict__, "vehicle_plate": "  XY-99  "})
        self.assertEqual(booking.vehicle_plate, "XY-99")
        with self.assertRaises(ValueError):
            Booking(**{**make_booking().__dict__, "vehicle_plate": " XY "})
        self.assertIsNone(Booking(**{**make_booking().__dict__, "vehicle_plate": None}).vehicle_plate)

    def test_garage_available_cannot_exceed_total(self):
        with self.assertRaises(ValueError):
            Garage(id="g", name="G", total_slots=1, available_slots=2)

    def test_negative_slot_price_rejected(self):
        with self.assertRaises(ValueError):
            Slot(id="s", number="1", price_per_hour=Decimal("-1"))


class TestBookingStateMachine(unittest.TestCase):
    """Test lifecycle transitions"""

    def test_allowed_transitions(self):
        booking = make_booking(status=BookingStatus.PENDING)
        active = booking.with_status(BookingStatus.ACTIVE)
        self.assertEqual(active.status, BookingStatus.ACTIVE)
        self.assertEqual(booking.status, BookingStatus.PENDING)
        self.assertEqual(active.with_status(BookingStatus.COMPLETED).status, BookingStatus.COMPLETED)

    def test_terminal_states_do_not_move(self):
        for terminal in (BookingStatus.COMPLETED, BookingStatus.CANCELLED):
            booking = make_booking(status=terminal)
            self.assertTrue(terminal.is_terminal)
            with self.assertRaises(ValueError):
                booking.with_status(BookingStatus.ACTIVE)

    def test_pending_cannot_complete_directly(self):
        with self.assertRaises(ValueError):
            make_booking(status=BookingStatus.PENDING).with_status(BookingStatus.COMPLETED)


# ============================================================================
# AGGREGATES
# ============================================================================

class TestDeriveFloors(unittest.TestCase):
    """Test floor derivation from flat slot lists"""

    def test_levels_grouped_and_ordered(self):
        """Test slots at levels {0,0,1,2} give three floors ordered [0,1,2]"""
        slots = [
            Slot(id="c", number="C1", level=2),
            Slot(id="a", number="A1", level=0),
            Slot(id="b", number="B1", level=1, status=SlotStatus.OCCUPIED),
            Slot(id="a2", number="A2", level=0),
        ]
        floors = derive_floors(slots)
        self.assertEqual([f.level for f in floors], [0, 1, 2])
        self.assertEqual([s.id for s in floors[0].slots], ["a", "a2"])
        self.assertEqual(floors[0].name, "Ground Floor")
        self.assertEqual(floors[1].available_slots, 0)
        self.assertEqual(floors[1].total_slots, 1)

    def test_no_slots_gives_synthetic_floor(self):
        floors = derive_floors([])
        self.assertEqual(len(floors), 1)
        self.assertEqual(floors[0].name, "General Parking")
        self.assertEqual(floors[0].total_slots, 0)

    def test_floor_names(self):
        self.assertEqual(
            [floor_name(n) for n in (0, 1, 2, 3, 7)],
            ["Ground Floor", "1st Floor", "2nd Floor", "3rd Floor", "Floor 7"],
        )


class TestPartitionAndQuote(unittest.TestCase):

    def test_partition_by_status(self):
        bookings = [
            make_booking("1", BookingStatus.PENDING),
            make_booking("2", BookingStatus.COMPLETED),
            make_booking("3", BookingStatus.ACTIVE),
            make_booking("4", BookingStatus.CANCELLED),
        ]
        partition = partition_bookings(bookings)
        self.assertEqual([b.id for b in partition.current], ["1", "3"])
        self.assertEqual([b.id for b in partition.past], ["2", "4"])
        self.assertEqual(len(partition), 4)
        self.assertEqual(len(BookingPartition.empty()), 0)

    def test_quote_total(self):
        """Test $5/h for 2 h is exactly 10.00"""
        self.assertEqual(quote_total(Decimal("5"), 2), Decimal("10.00"))
        self.assertEqual(quote_total(Decimal("2.335"), 1), Decimal("2.34"))
        with self.assertRaises(ValueError):
            quote_total(Decimal("5"), 0)


if __name__ == "__main__":
    unittest.main()
