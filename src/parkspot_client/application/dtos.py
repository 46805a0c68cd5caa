# File: src/parkspot_client/application/dtos.py
"""
Data Transfer Objects for outgoing requests

Request DTOs validate caller input before anything is sent and render the
exact wire form the backend expects. Fields accept both snake_case names and
the camelCase aliases used by page code.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ..domain.aggregates import quote_total
from ..domain.models import MIN_DURATION_HOURS, MIN_PLATE_LENGTH, Slot, TimeWindow, to_money


def format_backend_timestamp(value: datetime) -> str:
    """Render `YYYY-MM-DD HH:MM:SS`, zero-padded, as the payment endpoint requires"""
    return (
        f"{value.year:04d}-{value.month:02d}-{value.day:02d} "
        f"{value.hour:02d}:{value.minute:02d}:{value.second:02d}"
    )


def _validate_plate(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    plate = value.strip()
    if len(plate) < MIN_PLATE_LENGTH:
        raise ValueError(f"Vehicle plate must be at least {MIN_PLATE_LENGTH} characters")
    return plate


# ============================================================================
# BASE DTO CLASSES
# ============================================================================

class BaseDTO(BaseModel):
    """Base DTO with common functionality"""

    model_config = ConfigDict(
        populate_by_name=True,
        use_enum_values=False,
    )

    def to_dict(self, exclude_none: bool = False, **kwargs) -> Dict[str, Any]:
        """Convert DTO to dictionary"""
        return self.model_dump(exclude_none=exclude_none, **kwargs)


# ============================================================================
# AUTH DTOs
# ============================================================================

class LoginRequestDTO(BaseDTO):
    email: str = Field(min_length=3, description="Account email")
    password: str = Field(min_length=1, description="Account password")


class RegisterRequestDTO(BaseDTO):
    name: str = Field(min_length=1, description="Display name")
    email: str = Field(min_length=3, description="Account email")
    password: str = Field(min_length=1, description="Account password")


class ProfileUpdateDTO(BaseDTO):
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None

    @model_validator(mode="after")
    def require_one_field(self) -> "ProfileUpdateDTO":
        if self.name is None and self.email is None and self.phone is None:
            raise ValueError("Nothing to update")
        return self


# ============================================================================
# BOOKING DTOs
# ============================================================================

class ReserveRequestDTO(BaseDTO):
    """Body of the reserve call"""
    duration_hours: int = Field(alias="durationHours", ge=MIN_DURATION_HOURS, description="Hours to reserve")
    vehicle_plate: Optional[str] = Field(default=None, alias="vehiclePlate")

    @field_validator("vehicle_plate")
    @classmethod
    def check_plate(cls, v: Optional[str]) -> Optional[str]:
        return _validate_plate(v)

    def to_backend_payload(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class PaymentMethod(str, Enum):
    CARD = "card"
    CREDIT_CARD = "credit_card"
    WALLET = "wallet"
    CASH = "cash"

    @property
    def backend_value(self) -> str:
        """Token the payment endpoint understands"""
        if self is PaymentMethod.CARD:
            return PaymentMethod.CREDIT_CARD.value
        return self.value


class PaymentRequestDTO(BaseDTO):
    """
    Payment for one booking

    The backend only accepts snake_case keys and `YYYY-MM-DD HH:MM:SS`
    timestamps; to_backend_payload renders exactly that.
    """
    parking_spot_id: str = Field(alias="parkingSpotId", min_length=1)
    garage_id: str = Field(alias="garageId", min_length=1)
    user_id: str = Field(alias="userId", min_length=1)
    total_amount: Decimal = Field(alias="totalAmount", ge=0)
    start_time: datetime = Field(alias="startTime")
    end_time: datetime = Field(alias="endTime")
    duration_hours: int = Field(alias="durationHours", ge=MIN_DURATION_HOURS)
    payment_method: PaymentMethod = Field(alias="paymentMethod")
    vehicle_plate: Optional[str] = Field(default=None, alias="vehiclePlate")

    @field_validator("vehicle_plate")
    @classmethod
    def check_plate(cls, v: Optional[str]) -> Optional[str]:
        return _validate_plate(v)

    @field_validator("parking_spot_id", "garage_id", "user_id", mode="before")
    @classmethod
    def stringify_ids(cls, v: Any) -> Any:
        return str(v) if isinstance(v, int) and not isinstance(v, bool) else v

    @model_validator(mode="after")
    def validate_window(self) -> "PaymentRequestDTO":
        if self.end_time <= self.start_time:
            raise ValueError("End time must be after start time")
        return self

    @classmethod
    def for_slot(
        cls,
        slot: Slot,
        garage_id: str,
        user_id: str,
        duration_hours: int,
        payment_method: PaymentMethod,
        vehicle_plate: Optional[str] = None,
        start: Optional[datetime] = None,
    ) -> "PaymentRequestDTO":
        """Build a payment starting now for slot, priced at rate x duration"""
        window = TimeWindow.starting_at(start or datetime.now(), duration_hours)
        return cls(
            parking_spot_id=slot.id,
            garage_id=garage_id,
            user_id=user_id,
            total_amount=quote_total(slot.price_per_hour, duration_hours),
            start_time=window.start,
            end_time=window.end,
            duration_hours=duration_hours,
            payment_method=payment_method,
            vehicle_plate=vehicle_plate,
        )

    def to_backend_payload(self) -> Dict[str, Any]:
        payload = {
            "parking_spot_id": self.parking_spot_id,
            "garage_id": self.garage_id,
            "user_id": self.user_id,
            "total_amount": float(to_money(self.total_amount)),
            "start_time": format_backend_timestamp(self.start_time),
            "end_time": format_backend_timestamp(self.end_time),
            "duration_hours": self.duration_hours,
            "payment_method": self.payment_method.backend_value,
        }
        if self.vehicle_plate is not None:
            payload["vehicle_plate"] = self.vehicle_plate
        return payload
