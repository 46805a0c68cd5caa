# File: src/parkspot_client/application/session.py
"""
Session Manager

Sole owner of the authentication state: the bearer token and the cached user
snapshot. States are Anonymous (no token) and Authenticated. The pair is held
in one immutable SessionState and always replaced as a whole, so readers see
either the old pair or the new one.

Two hooks are installed on the Transport:
- request hook: attaches `Authorization: Bearer <token>` to every
  non-anonymous request, read at send time
- response hook: on 401 for an authenticated request, clears the session and
  publishes SESSION_EXPIRED with the redirect target. The clear is keyed on
  the token that was sent, so concurrent 401s for one credential fire once.
"""

import json
import logging
import threading
from dataclasses import dataclass, replace
from typing import Optional, Tuple

from pydantic import ValidationError

from ..config import ClientConfig
from ..domain.errors import AuthError, ParkSpotError
from ..domain.models import User
from ..domain.normalization import extract_auth_payload, extract_data, is_empty, normalize_user
from ..infrastructure.messaging import DomainEvent, EventBus, EventType
from ..infrastructure.repositories import SessionRepository
from ..infrastructure.transport import RawResponse, RequestContext, Transport
from .dtos import LoginRequestDTO, RegisterRequestDTO
from .error_classifier import ErrorClassifier

UNAUTHORIZED_STATUS = 401


@dataclass(frozen=True)
class SessionState:
    token: Optional[str] = None
    user: Optional[User] = None

    @property
    def is_authenticated(self) -> bool:
        return self.token is not None


ANONYMOUS = SessionState()


def is_usable_token(value: Optional[str]) -> bool:
    """Tokens equal to the placeholders for "no value" are not tokens"""
    return value is not None and not is_empty(value)


class SessionManager:

    def __init__(
        self,
        transport: Transport,
        repository: SessionRepository,
        event_bus: Optional[EventBus] = None,
        config: Optional[ClientConfig] = None,
        classifier: Optional[ErrorClassifier] = None,
    ):
        self._transport = transport
        self._repository = repository
        self._events = event_bus or EventBus()
        self._config = config or ClientConfig()
        self._classifier = classifier or ErrorClassifier()
        self._state = ANONYMOUS
        self._lock = threading.Lock()
        self.logger = logging.getLogger(self.__class__.__name__)

        transport.add_request_hook(self._attach_credentials)
        transport.add_response_hook(self._intercept_unauthorized)

    # ------------------------------------------------------------------
    # State access
    # ------------------------------------------------------------------

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def token(self) -> Optional[str]:
        return self._state.token

    @property
    def user(self) -> Optional[User]:
        return self._state.user

    @property
    def is_authenticated(self) -> bool:
        return self._state.is_authenticated

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def hydrate(self) -> bool:
        """
        Restore a stored session on process start

        Returns True when a usable token was found. Without one nothing is
        read further or written.
        """
        token = self._repository.get(self._config.token_key)
        if not is_usable_token(token):
            self.logger.info("No stored auth token found")
            return False
        user = self._load_user()
        with self._lock:
            self._state = SessionState(token=token, user=user)
        self.logger.info("Auth token hydrated from storage")
        return True

    def login(self, email: str, password: str) -> Tuple[User, str]:
        """Authenticate and install the returned token; raises AuthError"""
        try:
            request = LoginRequestDTO(email=email, password=password)
            response = self._transport.send(
                "POST", "/auth-access-token", body=request.to_dict(), anonymous=True
            )
            payload = extract_auth_payload(extract_data(response.body))
            if payload.user is None:
                raise AuthError("Login failed: No user data received from server")
            user = normalize_user(payload.user)
            if not is_usable_token(payload.token):
                raise AuthError("Login failed: No authentication token received from server")
        except (ParkSpotError, ValidationError) as e:
            self.logger.error(f"Login failed: {e}")
            self.clear()
            raise self._auth_error(e) from e

        self._install(payload.token, user)
        self.logger.info(f"User {user.id} logged in")
        self._events.publish(DomainEvent(EventType.SESSION_STARTED, {"user_id": user.id}))
        return user, payload.token

    def register(self, name: str, email: str, password: str) -> User:
        """
        Create an account

        When the response also carries a token the new user is logged in;
        otherwise the session stays anonymous.
        """
        try:
            request = RegisterRequestDTO(name=name, email=email, password=password)
            response = self._transport.send(
                "POST", "/register", body=request.to_dict(), anonymous=True
            )
            payload = extract_auth_payload(extract_data(response.body))
            if payload.user is None:
                raise AuthError("Registration failed: No user data received")
            user = normalize_user(payload.user, fallback={"name": request.name, "email": request.email})
        except (ParkSpotError, ValidationError) as e:
            self.logger.error(f"Registration failed: {e}")
            self.clear()
            raise self._auth_error(e) from e

        if is_usable_token(payload.token):
            self._install(payload.token, user)
            self._events.publish(DomainEvent(EventType.SESSION_STARTED, {"user_id": user.id}))
            self.logger.info(f"User {user.id} registered and logged in")
        else:
            self.logger.info(f"User {user.id} registered; no token issued")
        return user

    def logout(self) -> None:
        """Notify the server (best effort), then always clear the session"""
        token = self._state.token
        path = f"/logout/{token}" if token else "/logout"
        try:
            self._transport.send("DELETE", path)
        except ParkSpotError as e:
            self.logger.warning(f"Logout notification failed: {e}")
        finally:
            self.clear()
            self._events.publish(DomainEvent(EventType.SESSION_ENDED, {}))
            self.logger.info("Logged out")

    def refresh(self) -> str:
        """Exchange the current token for a fresh one"""
        try:
            response = self._transport.send("POST", "/auth/refresh")
            token = extract_auth_payload(extract_data(response.body)).token
            if not is_usable_token(token):
                raise AuthError("Token refresh failed: No authentication token received from server")
        except ParkSpotError as e:
            raise self._classifier.to_api_error(e) from e

        with self._lock:
            self._state = replace(self._state, token=token)
            self._repository.set(self._config.token_key, token)
        self.logger.info("Auth token refreshed")
        return token

    def replace_user(self, user: User) -> None:
        """Swap the cached user snapshot, keeping the token"""
        with self._lock:
            self._state = replace(self._state, user=user)
            self._repository.set(self._config.user_key, json.dumps(user.to_dict()))

    def clear(self) -> None:
        """Drop token and user from memory and storage as a unit"""
        with self._lock:
            self._clear_locked()

    def invalidate(self, sent_token: Optional[str]) -> bool:
        """
        Force the Anonymous state after an authorization failure

        Only the credential that was actually rejected is cleared. A second
        rejection of the same credential finds it gone and does nothing.
        """
        with self._lock:
            if self._state.token is None or self._state.token != sent_token:
                return False
            self._clear_locked()
        self.logger.warning("Session expired; credentials cleared")
        self._events.publish(DomainEvent(
            EventType.SESSION_EXPIRED,
            {"redirect_to": self._config.login_path},
        ))
        return True

    # ------------------------------------------------------------------
    # Transport hooks
    # ------------------------------------------------------------------

    def _attach_credentials(self, context: RequestContext) -> None:
        if context.anonymous:
            context.headers.pop("Authorization", None)
            return
        token = self._state.token
        if token is not None:
            context.headers["Authorization"] = f"Bearer {token}"
            context.token = token

    def _intercept_unauthorized(self, context: RequestContext, response: RawResponse) -> None:
        if response.status == UNAUTHORIZED_STATUS and not context.anonymous:
            self.invalidate(context.token)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _install(self, token: str, user: User) -> None:
        with self._lock:
            self._state = SessionState(token=token, user=user)
            self._repository.set(self._config.token_key, token)
            self._repository.set(self._config.user_key, json.dumps(user.to_dict()))

    def _clear_locked(self) -> None:
        self._state = ANONYMOUS
        self._repository.clear([self._config.token_key, self._config.user_key])

    def _load_user(self) -> Optional[User]:
        raw = self._repository.get(self._config.user_key)
        if is_empty(raw):
            return None
        try:
            return User.from_dict(json.loads(raw))
        except (ValueError, KeyError, TypeError) as e:
            self.logger.warning(f"Discarding malformed cached user: {e}")
            return None

    def _auth_error(self, error: Exception) -> AuthError:
        if isinstance(error, AuthError):
            return error
        classified = self._classifier.classify(error)
        return AuthError(classified.message, kind=classified.kind, status=classified.status)
