# File: src/parkspot_client/__init__.py
"""
ParkSpot client

Backend integration layer for the ParkSpot parking app: a tolerant payload
normalizer, a session manager with a global authorization-failure interceptor,
and a booking lifecycle service.

    from parkspot_client import ClientConfig, ClientFactory

    client = ClientFactory().create(ClientConfig.from_env())
    user, _ = client.session.login("ada@example.com", "secret")
    slots = client.bookings.fetch_parking_slots("7")
"""

from .application.account_service import AccountService
from .application.booking_service import BookingService
from .application.dtos import PaymentMethod, PaymentRequestDTO, ReserveRequestDTO
from .application.error_classifier import ClassifiedError, ErrorClassifier
from .application.garage_service import GarageService
from .application.session import SessionManager, SessionState
from .config import ClientConfig, setup_logging
from .domain.aggregates import BookingPartition
from .domain.errors import (
    ApiError, AuthError, BookingValidationError, ErrorKind,
    NormalizationError, ParkSpotError, TransportError, TransportErrorKind,
)
from .domain.models import (
    Booking, BookingStatus, Floor, Garage, Location, PaymentIntent,
    Slot, SlotStatus, TimeWindow, User, UserRole, VehicleSize,
)
from .infrastructure.factories import ClientFactory, ParkSpotClient
from .infrastructure.messaging import DomainEvent, EventBus, EventType

__version__ = "1.0.0"

__all__ = [
    "AccountService", "BookingService", "GarageService", "SessionManager", "SessionState",
    "PaymentMethod", "PaymentRequestDTO", "ReserveRequestDTO",
    "ClassifiedError", "ErrorClassifier",
    "ClientConfig", "setup_logging",
    "BookingPartition",
    "ApiError", "AuthError", "BookingValidationError", "ErrorKind",
    "NormalizationError", "ParkSpotError", "TransportError", "TransportErrorKind",
    "Booking", "BookingStatus", "Floor", "Garage", "Location", "PaymentIntent",
    "Slot", "SlotStatus", "TimeWindow", "User", "UserRole", "VehicleSize",
    "ClientFactory", "ParkSpotClient",
    "DomainEvent", "EventBus", "EventType",
]
