# File: src/parkspot_client/application/booking_service.py
"""
Booking Lifecycle Service

This service drives a reservation through its lifecycle against the
backend's asymmetric endpoints:

    pending --reserve--> confirmed/active --pay--> active --end--> completed
    pending|confirmed|active --cancel--> cancelled

Responsibilities:
1. Reserve, release, pay and end calls, each sent exactly once
2. Compensating operations: cancel is a release, create_booking is a reserve
3. Slot reads: flat listing, single slot lookup, floors derived by level
4. Booking reads: single booking, current/past listing

The service holds no booking state of its own. Every failure is classified
once here and raised as ApiError; the bookings listing alone degrades to an
empty partition instead of raising.
"""

import logging
from dataclasses import replace
from datetime import datetime
from decimal import Decimal
from typing import Any, Callable, Dict, List, Mapping, Optional, Union
from uuid import uuid4

from pydantic import ValidationError

from ..domain.aggregates import BookingPartition, derive_floors, partition_bookings, quote_total
from ..domain.errors import (
    ApiError, BookingValidationError, ErrorKind, NormalizationError,
    ParkSpotError, TransportError, TransportErrorKind,
)
from ..domain.models import Booking, BookingStatus, Floor, PaymentIntent, Slot
from ..domain.normalization import (
    BOOKING_LIST_KEYS, extract_data, locate_entity, locate_list,
    normalize_booking, normalize_payment_intent, normalize_slots,
)
from ..infrastructure.messaging import EventType, NotificationPort, NullNotificationPort
from ..infrastructure.transport import Transport
from .dtos import PaymentRequestDTO, ReserveRequestDTO
from .error_classifier import ErrorClassifier

ALREADY_COMPLETED_MARKERS = ("already completed", "already ended", "already finished")
ALREADY_RELEASED_MARKERS = ("already released", "already available", "not reserved", "already free")
IDEMPOTENCY_HEADER = "Idempotency-Key"
BOOKING_ROOTS = ("booking", "reservation")


def _client_error_mentions(error: TransportError, markers) -> bool:
    """True for a 4xx (other than 401) whose message contains a marker"""
    if error.kind is not TransportErrorKind.HTTP or error.status is None:
        return False
    if not 400 <= error.status < 500 or error.status == 401:
        return False
    message = error.backend_message
    if message is None and isinstance(error.body, str):
        message = error.body
    if not message:
        return False
    lowered = message.lower()
    return any(marker in lowered for marker in markers)


class BookingService:
    """
    Main application service for bookings

    Args:
        transport: credentialed transport (the session manager's hooks are
            already installed on it)
        notifier: live-update port; defaults to the disabled channel
        clock: source of "now" for reserve windows
    """

    def __init__(
        self,
        transport: Transport,
        classifier: Optional[ErrorClassifier] = None,
        notifier: Optional[NotificationPort] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self._transport = transport
        self._classifier = classifier or ErrorClassifier()
        self._notifier = notifier or NullNotificationPort()
        self._clock = clock or datetime.now
        self.logger = logging.getLogger(self.__class__.__name__)

    # ========================================================================
    # SLOTS AND FLOORS
    # ========================================================================

    def fetch_parking_slots(self, garage_id: str) -> List[Slot]:
        """Current slots of a garage, straight from the server"""
        try:
            return self._slots(garage_id)
        except ParkSpotError as e:
            raise self._fail("fetch slots", e) from e

    def fetch_single_slot(self, garage_id: str, slot_id: str) -> Slot:
        """Select one slot from the full listing (there is no single-slot endpoint)"""
        try:
            for slot in self._slots(garage_id):
                if slot.id == str(slot_id):
                    return slot
        except ParkSpotError as e:
            raise self._fail("fetch slot", e) from e
        raise ApiError(ErrorKind.NOT_FOUND, f"Slot {slot_id} not found in garage {garage_id}")

    def derive_floors(self, garage_id: str) -> List[Floor]:
        """Floors built by grouping the garage's slots by level"""
        try:
            return derive_floors(self._slots(garage_id))
        except ParkSpotError as e:
            raise self._fail("fetch floors", e) from e

    def quote(self, slot: Slot, duration_hours: int) -> Decimal:
        """Total price for slot over duration_hours"""
        try:
            return quote_total(slot.price_per_hour, duration_hours)
        except ValueError as e:
            raise ApiError(ErrorKind.VALIDATION, str(e)) from e

    # ========================================================================
    # LIFECYCLE
    # ========================================================================

    def reserve_slot(
        self,
        garage_id: str,
        slot_id: str,
        duration_hours: int,
        vehicle_plate: Optional[str] = None,
        idempotency_key: Optional[str] = None,
    ) -> Booking:
        """
        Allocate a slot

        This is the one irreversible allocation call. It is never retried; a
        retry is a new, user-initiated call.
        """
        self.logger.info(f"Reserving slot {slot_id} in garage {garage_id} for {duration_hours}h")
        try:
            request = ReserveRequestDTO(duration_hours=duration_hours, vehicle_plate=vehicle_plate)
            requested_at = self._clock()
            response = self._transport.send(
                "POST",
                f"/places/{garage_id}/parking/{slot_id}/reserve",
                body=request.to_backend_payload(),
                headers={IDEMPOTENCY_HEADER: idempotency_key or str(uuid4())},
            )
            raw = locate_entity(extract_data(response.body), BOOKING_ROOTS)
            if raw is None:
                raise NormalizationError("booking", "reserve response carried no booking")
            booking = normalize_booking(
                raw,
                fallback={
                    "garage_id": str(garage_id),
                    "slot_id": str(slot_id),
                    "vehicle_plate": request.vehicle_plate,
                    "duration_hours": request.duration_hours,
                    "start": requested_at,
                },
                default_status=BookingStatus.CONFIRMED,
            )
        except (ParkSpotError, ValidationError) as e:
            raise self._fail("reserve slot", e) from e

        self.logger.info(f"Booking #{booking.id} reserved ({booking.status.value})")
        self._notify(EventType.BOOKING_RESERVED, booking)
        return booking

    def create_booking(
        self,
        garage_id: str,
        slot_id: str,
        duration_hours: int,
        vehicle_plate: Optional[str] = None,
        idempotency_key: Optional[str] = None,
    ) -> Booking:
        """Compensating operation: creating a booking means reserving its slot"""
        if not garage_id or not slot_id:
            raise self._fail(
                "create booking",
                BookingValidationError("garage_id", "Garage ID and Slot ID are required"),
            )
        return self.reserve_slot(garage_id, slot_id, duration_hours, vehicle_plate, idempotency_key)

    def release_slot(self, garage_id: str, slot_id: str) -> None:
        try:
            self._release(garage_id, slot_id)
        except ParkSpotError as e:
            raise self._fail("release slot", e) from e

    def cancel_booking(self, booking_id: str) -> Booking:
        """
        Compensating operation: cancel by releasing the booked slot

        There is no cancel endpoint. The booking is looked up for its garage
        and slot, the slot is released, and the booking is returned as
        cancelled. A release rejected because the slot is already free counts
        as done, so cancelling twice is harmless.
        """
        try:
            booking = self._fetch_booking(booking_id)
            if booking.status is BookingStatus.CANCELLED:
                return booking
            if booking.status is BookingStatus.COMPLETED:
                raise BookingValidationError(
                    "status", f"Booking #{booking_id} is already completed and cannot be cancelled"
                )
            if not booking.slot_id:
                raise NormalizationError("booking", "missing slot_id")
            try:
                self._release(booking.garage_id, booking.slot_id)
            except TransportError as e:
                if not _client_error_mentions(e, ALREADY_RELEASED_MARKERS):
                    raise
                self.logger.warning(f"Slot {booking.slot_id} was already released; treating cancel as done")
            cancelled = booking.with_status(BookingStatus.CANCELLED)
        except ParkSpotError as e:
            raise self._fail("cancel booking", e) from e

        self.logger.info(f"Booking #{booking_id} cancelled")
        self._notify(EventType.BOOKING_CANCELLED, cancelled)
        return cancelled

    def pay(
        self,
        payload: Union[PaymentRequestDTO, Mapping[str, Any]],
        idempotency_key: Optional[str] = None,
    ) -> PaymentIntent:
        """
        Pay for a booking

        payload may be a PaymentRequestDTO or a mapping using either the
        snake_case field names or their camelCase aliases.
        """
        try:
            request = (
                payload if isinstance(payload, PaymentRequestDTO)
                else PaymentRequestDTO.model_validate(dict(payload))
            )
            self.logger.info(
                f"Paying {request.total_amount} for slot {request.parking_spot_id} "
                f"via {request.payment_method.backend_value}"
            )
            response = self._transport.send(
                "POST",
                "/bookings/pay",
                body=request.to_backend_payload(),
                headers={IDEMPOTENCY_HEADER: idempotency_key or str(uuid4())},
            )
            intent = normalize_payment_intent(response.body)
        except (ParkSpotError, ValidationError) as e:
            raise self._fail("pay", e) from e

        self._notifier_emit(EventType.BOOKING_PAID, {
            "booking_id": intent.booking_id,
            "garage_id": request.garage_id,
            "slot_id": request.parking_spot_id,
        })
        return intent

    def end_booking(self, booking_id: str) -> Booking:
        """
        Mark a booking completed

        Ending a booking the backend already considers ended is not a
        failure: the stored booking is returned as completed.
        """
        try:
            try:
                response = self._transport.send("PUT", f"/bookings/{booking_id}/end")
            except TransportError as e:
                if not _client_error_mentions(e, ALREADY_COMPLETED_MARKERS):
                    raise
                self.logger.info(f"Booking #{booking_id} was already completed")
                booking = self._as_completed(self._fetch_booking(booking_id))
            else:
                raw = locate_entity(extract_data(response.body), BOOKING_ROOTS)
                if raw is None:
                    booking = self._as_completed(self._fetch_booking(booking_id))
                else:
                    booking = normalize_booking(raw, default_status=BookingStatus.COMPLETED)
        except ParkSpotError as e:
            raise self._fail("end booking", e) from e

        self._notify(EventType.BOOKING_ENDED, booking)
        return booking

    # ========================================================================
    # BOOKING READS
    # ========================================================================

    def get_booking(self, booking_id: str) -> Booking:
        try:
            return self._fetch_booking(booking_id)
        except ParkSpotError as e:
            raise self._fail("fetch booking", e) from e

    def list_bookings(self, user_id: Optional[str] = None) -> BookingPartition:
        """
        Current and past bookings of the signed-in user

        A backend-provided {current, past} split is used as is; a flat list is
        partitioned by status here. Never raises: any failure yields two empty
        buckets so a listing page can still render.
        """
        try:
            query = {"user_id": user_id} if user_id else None
            response = self._transport.send("GET", "/bookings", query=query)
            data = extract_data(response.body)
            if isinstance(data, Mapping) and ("current" in data or "past" in data):
                return BookingPartition(
                    current=tuple(self._each_booking(data.get("current") or [])),
                    past=tuple(self._each_booking(data.get("past") or [], BookingStatus.COMPLETED)),
                )
            items = locate_list(data, BOOKING_LIST_KEYS) or []
            return partition_bookings(self._each_booking(items))
        except Exception as e:
            self.logger.warning(f"Error fetching bookings, showing none: {e}")
            return BookingPartition.empty()

    def _each_booking(self, items, default_status: BookingStatus = BookingStatus.PENDING) -> List[Booking]:
        """Normalize listing items one by one; malformed items are skipped"""
        bookings = []
        for item in items:
            try:
                bookings.append(normalize_booking(item, default_status=default_status))
            except NormalizationError as e:
                self.logger.warning(f"Skipping booking in listing: {e}")
        return bookings

    # ========================================================================
    # INTERNALS (raise unclassified errors)
    # ========================================================================

    def _slots(self, garage_id: str) -> List[Slot]:
        response = self._transport.send("GET", f"/garages/{garage_id}/parking")
        return normalize_slots(response.body)

    def _release(self, garage_id: str, slot_id: str) -> None:
        self.logger.info(f"Releasing slot {slot_id} in garage {garage_id}")
        self._transport.send("POST", f"/places/{garage_id}/parking/{slot_id}/release")

    def _fetch_booking(self, booking_id: str) -> Booking:
        response = self._transport.send("GET", f"/bookings/{booking_id}")
        raw = locate_entity(extract_data(response.body), BOOKING_ROOTS)
        if raw is None:
            raise ApiError(ErrorKind.NOT_FOUND, f"Booking #{booking_id} not found")
        booking = normalize_booking(raw)
        if not booking.garage_id:
            raise NormalizationError("booking", "missing garage_id")
        return booking

    @staticmethod
    def _as_completed(booking: Booking) -> Booking:
        # The server is authoritative here, even over a locally terminal status.
        return replace(booking, status=BookingStatus.COMPLETED)

    def _fail(self, action: str, error: Exception) -> ApiError:
        api_error = self._classifier.to_api_error(error)
        self.logger.error(f"Failed to {action}: {api_error.message}")
        return api_error

    def _notify(self, event_type: EventType, booking: Booking) -> None:
        self._notifier_emit(event_type, {
            "booking_id": booking.id,
            "garage_id": booking.garage_id,
            "slot_id": booking.slot_id,
            "status": booking.status.value,
        })

    def _notifier_emit(self, event_type: EventType, payload: Dict[str, Any]) -> None:
        try:
            self._notifier.emit(event_type.value, payload)
        except Exception as e:
            self.logger.warning(f"Notification {event_type.value} not delivered: {e}")
