# File: src/parkspot_client/domain/aggregates.py
"""
Aggregations over normalized entities

1. Floors - derived by grouping a garage's flat slot list by level
2. Booking partitions - current vs. past, by lifecycle status
3. Price quotes - hourly rate x duration
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, Iterable, List, Tuple

from .models import (
    Booking, Floor, Slot,
    MIN_DURATION_HOURS, to_money,
)

SYNTHETIC_FLOOR_ID = "general-parking"
SYNTHETIC_FLOOR_NAME = "General Parking"


def floor_name(level: int) -> str:
    """Display name for a floor level"""
    if level == 0:
        return "Ground Floor"
    if level == 1:
        return "1st Floor"
    if level == 2:
        return "2nd Floor"
    if level == 3:
        return "3rd Floor"
    return f"Floor {level}"


def derive_floors(slots: Iterable[Slot]) -> List[Floor]:
    """
    Group slots into floors by level, ascending

    Slot order inside a floor follows the input order. With no slots at all a
    single zero-capacity floor is returned so a floor picker always has one
    entry to render.
    """
    by_level: Dict[int, List[Slot]] = {}
    for slot in slots:
        by_level.setdefault(slot.level, []).append(slot)

    if not by_level:
        return [Floor(
            id=SYNTHETIC_FLOOR_ID,
            name=SYNTHETIC_FLOOR_NAME,
            level=0,
            total_slots=0,
            available_slots=0,
            slots=(),
        )]

    floors = []
    for level in sorted(by_level):
        floor_slots = tuple(by_level[level])
        floors.append(Floor(
            id=f"floor-{level}",
            name=floor_name(level),
            level=level,
            total_slots=len(floor_slots),
            available_slots=sum(1 for slot in floor_slots if slot.is_available),
            slots=floor_slots,
        ))
    return floors


@dataclass(frozen=True)
class BookingPartition:
    """Bookings split into current (pending/confirmed/active) and past"""
    current: Tuple[Booking, ...] = field(default=())
    past: Tuple[Booking, ...] = field(default=())

    @classmethod
    def empty(cls) -> "BookingPartition":
        return cls()

    def __len__(self) -> int:
        return len(self.current) + len(self.past)


def partition_bookings(bookings: Iterable[Booking]) -> BookingPartition:
    current, past = [], []
    for booking in bookings:
        (current if booking.is_current else past).append(booking)
    return BookingPartition(current=tuple(current), past=tuple(past))


def quote_total(price_per_hour: Decimal, duration_hours: int) -> Decimal:
    """Total price for a stay: hourly rate x duration, rounded to cents"""
    if duration_hours < MIN_DURATION_HOURS:
        raise ValueError(f"Duration must be at least {MIN_DURATION_HOURS} hour, got {duration_hours}")
    return to_money(Decimal(price_per_hour) * duration_hours)
