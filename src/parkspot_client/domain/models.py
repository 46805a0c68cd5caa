# File: src/parkspot_client/domain/models.py
"""
Domain Models for the ParkSpot client

This module contains the canonical entity shapes every backend payload is
normalized into:
1. Enums: roles, slot statuses, vehicle sizes, booking statuses
2. Value Objects: Location, TimeWindow
3. Entities: User, Slot, Floor, Garage, Booking, PaymentIntent

Entities are immutable. State changes produce a new instance (see
Booking.with_status) so a caller never observes a half-updated booking.
"""

from dataclasses import dataclass, field, replace, asdict
from datetime import datetime, timedelta
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import Any, Dict, FrozenSet, Optional, Tuple

CENTS = Decimal("0.01")
MIN_PLATE_LENGTH = 3
MIN_DURATION_HOURS = 1


def to_money(value: Decimal) -> Decimal:
    """Round a monetary amount to cents"""
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


# ============================================================================
# ENUMS
# ============================================================================

class UserRole(str, Enum):
    USER = "user"
    ADMIN = "admin"


class SlotStatus(str, Enum):
    """Three-way availability of a reservable unit"""
    AVAILABLE = "available"
    OCCUPIED = "occupied"
    RESERVED = "reserved"


class VehicleSize(str, Enum):
    COMPACT = "compact"
    STANDARD = "standard"
    LARGE = "large"


class BookingStatus(str, Enum):
    """
    Booking lifecycle states

    pending -> confirmed/active -> completed, and any non-terminal state may
    be cancelled.
    """
    PENDING = "pending"
    CONFIRMED = "confirmed"
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @property
    def is_current(self) -> bool:
        return self in CURRENT_STATUSES

    @property
    def is_terminal(self) -> bool:
        return self in (BookingStatus.COMPLETED, BookingStatus.CANCELLED)

    def can_transition_to(self, target: "BookingStatus") -> bool:
        """Check whether the lifecycle allows moving to target"""
        if target is self:
            return True
        return target in ALLOWED_TRANSITIONS[self]


CURRENT_STATUSES: FrozenSet[BookingStatus] = frozenset({
    BookingStatus.PENDING,
    BookingStatus.CONFIRMED,
    BookingStatus.ACTIVE,
})

ALLOWED_TRANSITIONS: Dict[BookingStatus, FrozenSet[BookingStatus]] = {
    BookingStatus.PENDING: frozenset({
        BookingStatus.CONFIRMED, BookingStatus.ACTIVE, BookingStatus.CANCELLED,
    }),
    BookingStatus.CONFIRMED: frozenset({
        BookingStatus.ACTIVE, BookingStatus.COMPLETED, BookingStatus.CANCELLED,
    }),
    BookingStatus.ACTIVE: frozenset({
        BookingStatus.COMPLETED, BookingStatus.CANCELLED,
    }),
    BookingStatus.COMPLETED: frozenset(),
    BookingStatus.CANCELLED: frozenset(),
}


# ============================================================================
# VALUE OBJECTS
# ============================================================================

@dataclass(frozen=True)
class Location:
    """Value Object: coordinates and address of a garage"""
    lat: float = 0.0
    lng: float = 0.0
    address: str = ""
    city: Optional[str] = None

    def get_coordinates(self) -> Tuple[float, float]:
        return (self.lat, self.lng)


@dataclass(frozen=True)
class TimeWindow:
    """
    Value Object: the booked interval

    end must be strictly after start and the duration is at least one hour.
    """
    start: datetime
    end: datetime
    duration_hours: int

    def __post_init__(self):
        if self.end <= self.start:
            raise ValueError(f"Booking end {self.end} must be after start {self.start}")
        if self.duration_hours < MIN_DURATION_HOURS:
            raise ValueError(f"Duration must be at least {MIN_DURATION_HOURS} hour, got {self.duration_hours}")

    @classmethod
    def starting_at(cls, start: datetime, duration_hours: int) -> "TimeWindow":
        return cls(start=start, end=start + timedelta(hours=duration_hours), duration_hours=duration_hours)

    @property
    def span_hours(self) -> float:
        return (self.end - self.start).total_seconds() / 3600


# ============================================================================
# ENTITIES
# ============================================================================

@dataclass(frozen=True)
class User:
    id: str
    name: str
    email: str
    phone: Optional[str] = None
    avatar_url: Optional[str] = None
    role: UserRole = UserRole.USER

    def __post_init__(self):
        if not self.id:
            raise ValueError("User id cannot be empty")
        if not self.email:
            raise ValueError("User email cannot be empty")

    @property
    def is_admin(self) -> bool:
        return self.role is UserRole.ADMIN

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-safe dictionary for the session cache"""
        data = asdict(self)
        data["role"] = self.role.value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "User":
        """Rebuild a cached snapshot produced by to_dict"""
        return cls(
            id=str(data["id"]),
            name=str(data.get("name") or ""),
            email=str(data["email"]),
            phone=data.get("phone"),
            avatar_url=data.get("avatar_url"),
            role=UserRole(data.get("role") or UserRole.USER.value),
        )


@dataclass(frozen=True)
class Slot:
    """
    Entity: a reservable parking unit

    status reflects the last server response only. Never derive booking
    decisions from a locally edited copy.
    """
    id: str
    number: str
    status: SlotStatus = SlotStatus.AVAILABLE
    level: int = 0
    vehicle_size: VehicleSize = VehicleSize.STANDARD
    price_per_hour: Decimal = Decimal("1.00")

    def __post_init__(self):
        if not self.id:
            raise ValueError("Slot id cannot be empty")
        if self.price_per_hour < 0:
            raise ValueError("Slot price cannot be negative")

    @property
    def is_available(self) -> bool:
        return self.status is SlotStatus.AVAILABLE


@dataclass(frozen=True)
class Floor:
    id: str
    name: str
    level: int
    total_slots: int = 0
    available_slots: int = 0
    slots: Tuple[Slot, ...] = ()

    def __post_init__(self):
        if self.total_slots < 0 or self.available_slots < 0:
            raise ValueError("Floor slot counts cannot be negative")


@dataclass(frozen=True)
class Garage:
    id: str
    name: str
    description: str = ""
    image: Optional[str] = None
    rating: Optional[float] = None
    price_per_hour: Decimal = Decimal("1.00")
    amenities: Tuple[str, ...] = ()
    total_slots: int = 0
    available_slots: int = 0
    location: Location = field(default_factory=Location)
    floors: Optional[Tuple[Floor, ...]] = None

    def __post_init__(self):
        if not self.id:
            raise ValueError("Garage id cannot be empty")
        if self.price_per_hour < 0:
            raise ValueError("Garage price cannot be negative")
        if self.total_slots < 0 or self.available_slots < 0:
            raise ValueError("Garage slot counts cannot be negative")
        if self.available_slots > self.total_slots:
            raise ValueError(
                f"Available slots ({self.available_slots}) exceed total slots ({self.total_slots})"
            )


@dataclass(frozen=True)
class Booking:
    """
    Entity: a reservation of one slot for one time window

    Bookings are never deleted client-side. They move between the current
    and past partitions by status.
    """
    id: str
    garage_id: str
    user_id: str
    slot_id: str
    status: BookingStatus
    total_price: Decimal
    vehicle_plate: Optional[str]
    time: TimeWindow
    garage: Optional[Dict[str, Any]] = None
    place: Optional[Dict[str, Any]] = None

    def __post_init__(self):
        if not self.id:
            raise ValueError("Booking id cannot be empty")
        if self.total_price < 0:
            raise ValueError("Booking total cannot be negative")
        if self.vehicle_plate is not None:
            plate = self.vehicle_plate.strip()
            if len(plate) < MIN_PLATE_LENGTH:
                raise ValueError(f"Vehicle plate must be at least {MIN_PLATE_LENGTH} characters")
            object.__setattr__(self, "vehicle_plate", plate)

    @property
    def is_current(self) -> bool:
        return self.status.is_current

    def with_status(self, status: BookingStatus) -> "Booking":
        """Return a copy in the given status, enforcing the lifecycle"""
        if not self.status.can_transition_to(status):
            raise ValueError(f"Booking #{self.id} cannot move from {self.status.value} to {status.value}")
        return replace(self, status=status)


@dataclass(frozen=True)
class PaymentIntent:
    """Opaque payment result, addressable only through its booking"""
    booking_id: Optional[str]
    status: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict, compare=False)
