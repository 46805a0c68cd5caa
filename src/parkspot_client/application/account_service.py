# File: src/parkspot_client/application/account_service.py
"""
Account service: profile read, update and delete

Profile changes of the signed-in user are mirrored into the session's cached
user snapshot; deleting that profile ends the session.
"""

import logging
from typing import Optional

from pydantic import ValidationError

from ..domain.errors import ApiError, ErrorKind, ParkSpotError
from ..domain.models import User
from ..domain.normalization import extract_data, locate_entity, normalize_user
from ..infrastructure.transport import Transport
from .dtos import ProfileUpdateDTO
from .error_classifier import ErrorClassifier
from .session import SessionManager

PROFILE_ROOTS = ("user", "profile")


class AccountService:

    def __init__(
        self,
        transport: Transport,
        session: SessionManager,
        classifier: Optional[ErrorClassifier] = None,
    ):
        self._transport = transport
        self._session = session
        self._classifier = classifier or ErrorClassifier()
        self.logger = logging.getLogger(self.__class__.__name__)

    def fetch_profile(self, user_id: str) -> User:
        try:
            response = self._transport.send("GET", f"/profile/{user_id}")
            return self._user_from(response.body, user_id)
        except ParkSpotError as e:
            raise self._fail("fetch profile", e) from e

    def update_profile(
        self,
        user_id: str,
        name: Optional[str] = None,
        email: Optional[str] = None,
        phone: Optional[str] = None,
    ) -> User:
        """Send only the given fields; returns the updated user"""
        try:
            updates = ProfileUpdateDTO(name=name, email=email, phone=phone)
            response = self._transport.send(
                "PUT", f"/profile/{user_id}", body=updates.to_dict(exclude_none=True)
            )
            user = self._user_from(response.body, user_id)
        except (ParkSpotError, ValidationError) as e:
            raise self._fail("update profile", e) from e

        current = self._session.user
        if current is not None and current.id == user.id:
            self._session.replace_user(user)
        self.logger.info(f"Profile {user.id} updated")
        return user

    def delete_profile(self, user_id: str) -> None:
        try:
            self._transport.send("DELETE", f"/profile/{user_id}")
        except ParkSpotError as e:
            raise self._fail("delete profile", e) from e
        self._session.clear()
        self.logger.info(f"Profile {user_id} deleted; session cleared")

    def _user_from(self, body, user_id: str) -> User:
        raw = locate_entity(extract_data(body), PROFILE_ROOTS)
        if raw is None:
            raise ApiError(ErrorKind.NOT_FOUND, f"Profile {user_id} not found")
        return normalize_user(raw)

    def _fail(self, action: str, error: Exception) -> ApiError:
        api_error = self._classifier.to_api_error(error)
        self.logger.error(f"Failed to {action}: {api_error.message}")
        return api_error
