# File: src/parkspot_client/application/garage_service.py
"""
Garage catalog service: browsing and search for everyone, create and
slot management for admins.
"""

import logging
from typing import Any, List, Mapping, Optional

from ..domain.errors import ApiError, ErrorKind, NormalizationError, ParkSpotError
from ..domain.models import Garage, Slot
from ..domain.normalization import (
    extract_data, locate_entity, normalize_garage, normalize_garages, normalize_slot,
)
from ..infrastructure.transport import Transport
from .error_classifier import ErrorClassifier

GARAGE_ROOTS = ("garage", "place")
SLOT_ROOTS = ("slot", "parking_spot", "spot", "parking")


class GarageService:

    def __init__(self, transport: Transport, classifier: Optional[ErrorClassifier] = None):
        self._transport = transport
        self._classifier = classifier or ErrorClassifier()
        self.logger = logging.getLogger(self.__class__.__name__)

    def fetch_garages(
        self,
        lat: Optional[float] = None,
        lng: Optional[float] = None,
        q: Optional[str] = None,
        filters: Optional[str] = None,
        name: Optional[str] = None,
    ) -> List[Garage]:
        """All garages, optionally near (lat, lng) or matching a query"""
        query = {"lat": lat, "lng": lng, "q": q, "filters": filters, "name": name}
        try:
            response = self._transport.send("GET", "/garages", query=query)
            garages = normalize_garages(response.body)
        except ParkSpotError as e:
            raise self._fail("fetch garages", e) from e
        self.logger.debug(f"Fetched {len(garages)} garages")
        return garages

    def search_places(self, name: str) -> List[Garage]:
        try:
            response = self._transport.send("GET", "/garages/search", query={"name": name})
            return normalize_garages(response.body)
        except ParkSpotError as e:
            raise self._fail("search garages", e) from e

    def fetch_garage(self, garage_id: str) -> Garage:
        try:
            response = self._transport.send("GET", f"/garages/{garage_id}")
            raw = locate_entity(extract_data(response.body), GARAGE_ROOTS)
            if raw is None:
                raise ApiError(ErrorKind.NOT_FOUND, f"Garage {garage_id} not found")
            return normalize_garage(raw)
        except ParkSpotError as e:
            raise self._fail("fetch garage", e) from e

    # ========================================================================
    # ADMIN
    # ========================================================================

    def create_garage(self, payload: Mapping[str, Any]) -> Garage:
        """Create a garage (admin only); payload is sent as given"""
        try:
            response = self._transport.send("POST", "/garages", body=dict(payload))
            raw = locate_entity(extract_data(response.body), GARAGE_ROOTS)
            if raw is None:
                raise NormalizationError("garage", "create response carried no garage")
            garage = normalize_garage(raw)
        except ParkSpotError as e:
            raise self._fail("create garage", e) from e
        self.logger.info(f"Garage {garage.id} created")
        return garage

    def create_parking_slot(self, garage_id: str, payload: Mapping[str, Any]) -> Slot:
        try:
            response = self._transport.send("POST", f"/places/{garage_id}/parking", body=dict(payload))
            raw = locate_entity(extract_data(response.body), SLOT_ROOTS)
            if raw is None:
                raise NormalizationError("slot", "create response carried no slot")
            slot = normalize_slot(raw)
        except ParkSpotError as e:
            raise self._fail("create parking slot", e) from e
        self.logger.info(f"Slot {slot.id} created in garage {garage_id}")
        return slot

    def delete_parking_slot(self, garage_id: str, slot_id: str) -> None:
        try:
            self._transport.send("DELETE", f"/places/{garage_id}/parking/{slot_id}")
        except ParkSpotError as e:
            raise self._fail("delete parking slot", e) from e
        self.logger.info(f"Slot {slot_id} deleted from garage {garage_id}")

    def _fail(self, action: str, error: Exception) -> ApiError:
        api_error = self._classifier.to_api_error(error)
        self.logger.error(f"Failed to {action}: {api_error.message}")
        return api_error
