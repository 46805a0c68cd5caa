# File: src/parkspot_client/domain/normalization.py
"""
Normalization Engine

Pure functions mapping raw backend payloads to the domain entities.

The backend is inconsistent: fields arrive in camelCase or snake_case, under
domain synonyms (photo/picture/image, garage/place, slot/spot/parking_spot),
wrapped in zero, one or two `data` envelopes, and with numbers encoded as
strings. Every ambiguity is resolved through a declarative table mapping each
entity field to an ordered list of source paths. The first non-empty source
wins; sources are never mixed. When no source yields a value the table default
applies, except for required fields whose absence raises NormalizationError.

Empty means: missing, None, blank text, or the literal strings "undefined" and
"null" that some serializers emit for absent values. False and 0 are values.
"""

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from .aggregates import floor_name
from .errors import NormalizationError
from .models import (
    Booking, BookingStatus, Floor, Garage, Location, PaymentIntent,
    Slot, SlotStatus, TimeWindow, User, UserRole, VehicleSize,
    MIN_PLATE_LENGTH, to_money,
)

logger = logging.getLogger(__name__)

PLACEHOLDER_STRINGS = frozenset({"undefined", "null"})
DEFAULT_HOURLY_PRICE = Decimal("1.00")
DEFAULT_TOTAL_PRICE = Decimal("0.00")


# ============================================================================
# FIELD TABLES
# ============================================================================

@dataclass(frozen=True)
class FieldSpec:
    """Ordered source paths for one entity field"""
    sources: Tuple[str, ...]
    default: Any = None
    required: bool = False


USER_FIELDS: Dict[str, FieldSpec] = {
    "id": FieldSpec(("id", "user_id", "userId"), required=True),
    "name": FieldSpec(("name", "full_name", "fullName", "username"), default=""),
    "email": FieldSpec(("email", "email_address"), required=True),
    "phone": FieldSpec(("phone", "phone_number", "phoneNumber")),
    "avatar_url": FieldSpec(("avatarUrl", "avatar_url", "avatar")),
    "role": FieldSpec(("role", "user_role", "userRole"), default=UserRole.USER.value),
}

GARAGE_FIELDS: Dict[str, FieldSpec] = {
    "id": FieldSpec(("id", "garage_id", "place_id"), required=True),
    "name": FieldSpec(("name", "title"), default=""),
    "description": FieldSpec(("description",), default=""),
    "image": FieldSpec((
        "image", "image_url", "imageUrl",
        "photo", "photo_url", "photoUrl",
        "picture", "picture_url", "img",
    )),
    "rating": FieldSpec(("rating", "average_rating")),
    "price_per_hour": FieldSpec(("pricePerHour", "price_per_hour", "hourly_rate", "price")),
    "amenities": FieldSpec(("amenities", "features"), default=()),
    "total_slots": FieldSpec(("totalSlots", "total_slots", "capacity")),
    "available_slots": FieldSpec(("availableSlots", "available_slots", "real_available_slots")),
    "lat": FieldSpec(("location.lat", "location.latitude", "latitude", "lat")),
    "lng": FieldSpec(("location.lng", "location.longitude", "longitude", "lng")),
    "address": FieldSpec(("location.address", "address"), default=""),
    "city": FieldSpec(("location.city", "city")),
    "floors": FieldSpec(("floors",)),
}

SLOT_FIELDS: Dict[str, FieldSpec] = {
    "id": FieldSpec(("id", "slot_id", "spot_id", "parking_spot_id"), required=True),
    "number": FieldSpec(("number", "slot_number", "spot_number", "name", "label")),
    "level": FieldSpec(("level", "floor", "floor_number", "floor_id", "floor_level")),
    "vehicle_size": FieldSpec(("vehicleSize", "vehicle_size", "size"), default=VehicleSize.STANDARD.value),
    "price_per_hour": FieldSpec(("pricePerHour", "price_per_hour", "price", "hourly_rate")),
}

SLOT_STATUS_TEXT = ("status", "slot_status", "state")
SLOT_BOOKED_FLAGS = ("is_booked", "isBooked")
SLOT_AVAILABLE_FLAGS = ("is_available", "isAvailable")

FLOOR_FIELDS: Dict[str, FieldSpec] = {
    "level": FieldSpec(("level", "floor_number", "number")),
    "id": FieldSpec(("id", "floor_id")),
    "name": FieldSpec(("name", "label")),
    "total_slots": FieldSpec(("totalSlots", "total_slots")),
    "available_slots": FieldSpec(("availableSlots", "available_slots")),
    "slots": FieldSpec(("slots", "layout", "parking_spots", "spots")),
}

BOOKING_FIELDS: Dict[str, FieldSpec] = {
    "id": FieldSpec(("id", "booking_id", "bookingId"), required=True),
    "garage_id": FieldSpec((
        "garage.id", "place.id",
        "garage_id", "place_id",
        "garageId", "placeId",
    ), default=""),
    "user_id": FieldSpec(("user.id", "user_id", "userId"), default=""),
    "slot_id": FieldSpec((
        "parking_spot.id", "spot.id", "slot.id",
        "parking_spot_id", "spot_id", "slot_id",
        "slotId", "spotId", "parkingSpotId",
    ), default=""),
    "status": FieldSpec(("status", "booking_status")),
    "total_price": FieldSpec(("total_amount", "total_price", "totalPrice", "amount")),
    "vehicle_plate": FieldSpec(("vehicle_plate", "vehiclePlate", "plate", "license_plate")),
    "start": FieldSpec(("start_time", "startTime", "time.start", "start", "created_at", "createdAt")),
    "end": FieldSpec(("end_time", "endTime", "time.end", "end")),
    "duration_hours": FieldSpec(("duration_hours", "durationHours", "duration", "time.durationHours")),
}

SLOT_STATUS_SYNONYMS: Dict[str, SlotStatus] = {
    "available": SlotStatus.AVAILABLE,
    "free": SlotStatus.AVAILABLE,
    "occupied": SlotStatus.OCCUPIED,
    "booked": SlotStatus.OCCUPIED,
    "taken": SlotStatus.OCCUPIED,
    "reserved": SlotStatus.RESERVED,
}

BOOKING_STATUS_SYNONYMS: Dict[str, BookingStatus] = {
    "pending": BookingStatus.PENDING,
    "confirmed": BookingStatus.CONFIRMED,
    "upcoming": BookingStatus.CONFIRMED,
    "active": BookingStatus.ACTIVE,
    "completed": BookingStatus.COMPLETED,
    "ended": BookingStatus.COMPLETED,
    "finished": BookingStatus.COMPLETED,
    "cancelled": BookingStatus.CANCELLED,
    "canceled": BookingStatus.CANCELLED,
}

# Envelope keys, in priority order
SLOT_LIST_KEYS = ("slots", "data", "parking", "parkingSlots", "parking_spots", "spots")
GARAGE_LIST_KEYS = ("garages", "places", "data")
BOOKING_LIST_KEYS = ("bookings", "data")
AUTH_USER_LOCATIONS = ("user", "0", "data.user", "data.0")
AUTH_TOKEN_LOCATIONS = ("token", "access_token", "data.token", "data.access_token")


# ============================================================================
# PATH RESOLUTION
# ============================================================================

def is_empty(value: Any) -> bool:
    """Check whether a raw value counts as absent"""
    if value is None:
        return True
    if isinstance(value, str):
        text = value.strip()
        return not text or text.lower() in PLACEHOLDER_STRINGS
    return False


def get_path(source: Any, path: str) -> Any:
    """Walk a dotted path through nested mappings and sequences"""
    current = source
    for segment in path.split("."):
        if isinstance(current, Mapping):
            current = current.get(segment)
        elif isinstance(current, (list, tuple)) and segment.isdigit():
            index = int(segment)
            current = current[index] if index < len(current) else None
        else:
            return None
        if current is None:
            return None
    return current


def first_present(source: Any, paths: Iterable[str]) -> Any:
    """Return the first non-empty value found along paths"""
    for path in paths:
        value = get_path(source, path)
        if not is_empty(value):
            return value
    return None


def first_mapping(source: Any, paths: Iterable[str]) -> Optional[Dict[str, Any]]:
    """Return the first mapping found along paths"""
    for path in paths:
        value = get_path(source, path)
        if isinstance(value, Mapping):
            return dict(value)
    return None


def resolve_fields(
    entity: str,
    raw: Mapping[str, Any],
    table: Mapping[str, FieldSpec],
    fallback: Optional[Mapping[str, Any]] = None,
) -> Dict[str, Any]:
    """Resolve every field in table against raw, then fallback, then default"""
    values: Dict[str, Any] = {}
    for name, spec in table.items():
        value = first_present(raw, spec.sources)
        if value is None and fallback is not None and not is_empty(fallback.get(name)):
            value = fallback[name]
        if value is None:
            if spec.required:
                raise NormalizationError(entity, f"missing {name} (looked in {', '.join(spec.sources)})")
            value = spec.default
        values[name] = value
    return values


# ============================================================================
# COERCION
# ============================================================================

def to_decimal(value: Any, default: Decimal) -> Decimal:
    """Coerce numbers and numeric strings; anything else yields default"""
    if value is None or isinstance(value, bool):
        return default
    try:
        number = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return default
    if not number.is_finite():
        return default
    return number


def to_int(value: Any, default: int = 0) -> int:
    number = to_decimal(value, Decimal(default))
    return int(number)


def to_float(value: Any, default: Optional[float] = None) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return default
    try:
        number = float(str(value).strip())
    except ValueError:
        return default
    return number if math.isfinite(number) else default


def to_bool(value: Any) -> Optional[bool]:
    """Coerce boolean-like values; unrecognized values yield None"""
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        text = value.strip().lower()
        if text in ("true", "1", "yes"):
            return True
        if text in ("false", "0", "no"):
            return False
    return None


def to_price(value: Any, default: Decimal = DEFAULT_HOURLY_PRICE) -> Decimal:
    price = to_decimal(value, default)
    if price < 0:
        price = default
    return to_money(price)


def to_count(value: Any) -> int:
    return max(to_int(value, 0), 0)


def to_text(value: Any) -> Optional[str]:
    return None if is_empty(value) else str(value).strip()


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse `YYYY-MM-DD HH:MM:SS`, ISO-8601 or epoch values"""
    if isinstance(value, datetime):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        seconds = value / 1000 if value > 1e12 else value
        return datetime.fromtimestamp(seconds, tz=timezone.utc)
    if isinstance(value, str) and not is_empty(value):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            return datetime.fromisoformat(text)
        except ValueError:
            return None
    return None


def _naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def _same_awareness(start: datetime, end: datetime) -> Tuple[datetime, datetime]:
    """Compare mixed values as naive UTC; aware values are converted first"""
    if (start.tzinfo is None) != (end.tzinfo is None):
        return _naive_utc(start), _naive_utc(end)
    return start, end


def _positive_hours(value: Any) -> Optional[int]:
    number = to_decimal(value, Decimal(0))
    if number <= 0:
        return None
    return int(math.ceil(number))


# ============================================================================
# ENVELOPES
# ============================================================================

def extract_data(body: Any) -> Any:
    """Strip one `data` envelope when present"""
    if isinstance(body, Mapping) and "data" in body and body["data"] is not None:
        return body["data"]
    return body


def locate_list(payload: Any, keys: Iterable[str]) -> Optional[List[Any]]:
    """Find a list either at the root or under the first matching key"""
    if isinstance(payload, list):
        return payload
    if isinstance(payload, Mapping):
        for key in keys:
            value = payload.get(key)
            if isinstance(value, list):
                logger.debug(f"List located under '{key}'")
                return value
    return None


def locate_entity(payload: Any, roots: Iterable[str] = ()) -> Optional[Dict[str, Any]]:
    """
    Find a single entity object

    Strategies, first match wins:
    1. the payload itself when it carries an id
    2. payload[root] for each alternate root name
    3. the same two checks one `data` level deeper
    """
    roots = tuple(roots)
    candidates = [payload]
    if isinstance(payload, Mapping):
        candidates.append(payload.get("data"))
    for candidate in candidates:
        if not isinstance(candidate, Mapping):
            continue
        if not is_empty(candidate.get("id")):
            return dict(candidate)
        for root in roots:
            nested = candidate.get(root)
            if isinstance(nested, Mapping):
                logger.debug(f"Entity located under '{root}'")
                return dict(nested)
    return None


@dataclass(frozen=True)
class AuthPayload:
    """User object and token pulled from an authentication response"""
    user: Optional[Dict[str, Any]]
    token: Optional[str]


def extract_auth_payload(payload: Any) -> AuthPayload:
    """
    Flexible extraction for login/register responses

    The user may sit under `user`, at index 0, or one `data` level deeper;
    the token under `token`/`access_token`, possibly one `data` level deeper.
    Placeholder tokens ("undefined", "null") are treated as absent.
    """
    user = first_mapping(payload, AUTH_USER_LOCATIONS)
    token_value = first_present(payload, AUTH_TOKEN_LOCATIONS)
    token = str(token_value).strip() if isinstance(token_value, (str, int)) else None
    return AuthPayload(user=user, token=token or None)


# ============================================================================
# ENTITY MAPPERS
# ============================================================================

def _require_mapping(entity: str, raw: Any) -> Mapping[str, Any]:
    if not isinstance(raw, Mapping):
        raise NormalizationError(entity, f"expected an object, got {type(raw).__name__}")
    return raw


def _build(entity: str, factory, **kwargs):
    try:
        return factory(**kwargs)
    except ValueError as exc:
        raise NormalizationError(entity, str(exc)) from exc


def normalize_user(raw: Any, fallback: Optional[Mapping[str, Any]] = None) -> User:
    raw = _require_mapping("user", raw)
    values = resolve_fields("user", raw, USER_FIELDS, fallback)
    role = UserRole.ADMIN if str(values["role"]).strip().lower() == "admin" else UserRole.USER
    return _build(
        "user", User,
        id=str(values["id"]).strip(),
        name=str(values["name"]).strip(),
        email=str(values["email"]).strip(),
        phone=to_text(values["phone"]),
        avatar_url=to_text(values["avatar_url"]),
        role=role,
    )


def resolve_slot_status(raw: Mapping[str, Any]) -> SlotStatus:
    """
    Collapse the three availability encodings into SlotStatus

    Any status string wins and the flags are then ignored; an unrecognized
    string maps to the default (available). Without one, `is_booked`, then
    `is_available`, then the default.
    """
    text = first_present(raw, SLOT_STATUS_TEXT)
    if text is not None:
        return SLOT_STATUS_SYNONYMS.get(str(text).strip().lower(), SlotStatus.AVAILABLE)
    booked = to_bool(first_present(raw, SLOT_BOOKED_FLAGS))
    if booked is not None:
        return SlotStatus.OCCUPIED if booked else SlotStatus.AVAILABLE
    available = to_bool(first_present(raw, SLOT_AVAILABLE_FLAGS))
    if available is not None:
        return SlotStatus.AVAILABLE if available else SlotStatus.OCCUPIED
    return SlotStatus.AVAILABLE


def resolve_vehicle_size(value: Any) -> VehicleSize:
    text = str(value).strip().lower()
    if "compact" in text or "small" in text:
        return VehicleSize.COMPACT
    if "large" in text or "big" in text:
        return VehicleSize.LARGE
    return VehicleSize.STANDARD


def normalize_slot(raw: Any) -> Slot:
    raw = _require_mapping("slot", raw)
    values = resolve_fields("slot", raw, SLOT_FIELDS)
    slot_id = str(values["id"]).strip()
    number = to_text(values["number"]) or slot_id
    return _build(
        "slot", Slot,
        id=slot_id,
        number=number,
        status=resolve_slot_status(raw),
        level=to_int(values["level"], 0),
        vehicle_size=resolve_vehicle_size(values["vehicle_size"]),
        price_per_hour=to_price(values["price_per_hour"]),
    )


def normalize_slots(payload: Any) -> List[Slot]:
    """Normalize a slot listing in any of its known envelopes"""
    items = locate_list(extract_data(payload), SLOT_LIST_KEYS) or []
    return [normalize_slot(item) for item in items]


def normalize_floor(raw: Any) -> Floor:
    raw = _require_mapping("floor", raw)
    values = resolve_fields("floor", raw, FLOOR_FIELDS)
    level = to_int(values["level"], 0)
    raw_slots = values["slots"] if isinstance(values["slots"], list) else []
    slots = tuple(normalize_slot(item) for item in raw_slots)
    total = to_count(values["total_slots"]) if values["total_slots"] is not None else len(slots)
    if values["available_slots"] is not None:
        available = to_count(values["available_slots"])
    else:
        available = sum(1 for slot in slots if slot.is_available)
    return _build(
        "floor", Floor,
        id=to_text(values["id"]) or f"floor-{level}",
        name=to_text(values["name"]) or floor_name(level),
        level=level,
        total_slots=max(total, available),
        available_slots=available,
        slots=slots,
    )


def _amenities(value: Any) -> Tuple[str, ...]:
    if isinstance(value, str):
        items: Iterable[Any] = value.split(",")
    elif isinstance(value, (list, tuple, set, frozenset)):
        items = value
    else:
        return ()
    seen: Dict[str, None] = {}
    for item in items:
        text = to_text(item)
        if text:
            seen.setdefault(text, None)
    return tuple(seen)


def normalize_garage(raw: Any) -> Garage:
    raw = _require_mapping("garage", raw)
    values = resolve_fields("garage", raw, GARAGE_FIELDS)
    total = to_count(values["total_slots"])
    available = to_count(values["available_slots"])
    floors = None
    if isinstance(values["floors"], list):
        floors = tuple(normalize_floor(item) for item in values["floors"])
    return _build(
        "garage", Garage,
        id=str(values["id"]).strip(),
        name=str(values["name"]).strip(),
        description=str(values["description"]).strip(),
        image=to_text(values["image"]),
        rating=to_float(values["rating"]),
        price_per_hour=to_price(values["price_per_hour"]),
        amenities=_amenities(values["amenities"]),
        total_slots=max(total, available),
        available_slots=available,
        location=Location(
            lat=to_float(values["lat"], 0.0),
            lng=to_float(values["lng"], 0.0),
            address=str(values["address"]).strip(),
            city=to_text(values["city"]),
        ),
        floors=floors,
    )


def normalize_garages(payload: Any) -> List[Garage]:
    items = locate_list(extract_data(payload), GARAGE_LIST_KEYS) or []
    return [normalize_garage(item) for item in items]


def resolve_booking_status(value: Any, default: BookingStatus = BookingStatus.PENDING) -> BookingStatus:
    if is_empty(value):
        return default
    return BOOKING_STATUS_SYNONYMS.get(str(value).strip().lower(), BookingStatus.PENDING)


def _time_window(values: Mapping[str, Any]) -> TimeWindow:
    start = parse_timestamp(values["start"])
    end = parse_timestamp(values["end"])
    duration = _positive_hours(values["duration_hours"])
    if start is None and end is None:
        raise NormalizationError("booking", "missing start and end time")
    if start is None:
        start = end - timedelta(hours=duration or 1)
    if end is not None:
        start, end = _same_awareness(start, end)
    if duration is None:
        if end is not None and end > start:
            duration = max(1, math.ceil((end - start).total_seconds() / 3600))
        else:
            duration = 1
    if end is None or end <= start:
        end = start + timedelta(hours=duration)
    return TimeWindow(start=start, end=end, duration_hours=duration)


def normalize_booking(
    raw: Any,
    fallback: Optional[Mapping[str, Any]] = None,
    default_status: BookingStatus = BookingStatus.PENDING,
) -> Booking:
    """
    Map a raw booking to Booking

    fallback supplies values known to the caller (e.g. the plate and ids sent
    with a reserve call) for fields the response omits.
    """
    raw = _require_mapping("booking", raw)
    values = resolve_fields("booking", raw, BOOKING_FIELDS, fallback)
    plate = to_text(values["vehicle_plate"])
    if plate is not None and len(plate) < MIN_PLATE_LENGTH:
        raise NormalizationError("booking", f"vehicle plate must be at least {MIN_PLATE_LENGTH} characters")
    total = to_decimal(values["total_price"], DEFAULT_TOTAL_PRICE)
    garage = raw.get("garage")
    place = raw.get("place")
    return _build(
        "booking", Booking,
        id=str(values["id"]).strip(),
        garage_id=str(values["garage_id"]).strip(),
        user_id=str(values["user_id"]).strip(),
        slot_id=str(values["slot_id"]).strip(),
        status=resolve_booking_status(values["status"], default_status),
        total_price=to_money(total if total >= 0 else DEFAULT_TOTAL_PRICE),
        vehicle_plate=plate,
        time=_time_window(values),
        garage=dict(garage) if isinstance(garage, Mapping) else None,
        place=dict(place) if isinstance(place, Mapping) else None,
    )


def normalize_payment_intent(payload: Any) -> PaymentIntent:
    data = extract_data(payload)
    if not isinstance(data, Mapping):
        return PaymentIntent(booking_id=None, raw={"value": data})
    booking_id = first_present(data, ("booking.id", "booking_id", "bookingId", "id"))
    status = first_present(data, ("status", "payment_status", "paymentStatus"))
    return PaymentIntent(
        booking_id=str(booking_id) if booking_id is not None else None,
        status=str(status) if status is not None else None,
        raw=dict(data),
    )
