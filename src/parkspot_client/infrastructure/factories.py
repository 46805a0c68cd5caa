# File: src/parkspot_client/infrastructure/factories.py
"""
Factories wiring the client together

1. RepositoryFactory - picks the session store named by the configuration
2. NotifierFactory - live-update channel, disabled unless configured
3. ClientFactory - builds the Transport, SessionManager and services that
   share it, returned as one ParkSpotClient
"""

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

import requests

from ..config import ClientConfig
from .messaging import EventBus, EventBusNotificationPort, NotificationPort, NullNotificationPort
from .repositories import (
    InMemorySessionRepository, JsonFileSessionRepository,
    RedisSessionRepository, SessionRepository,
)
from .transport import Transport

if TYPE_CHECKING:
    from ..application.account_service import AccountService
    from ..application.booking_service import BookingService
    from ..application.garage_service import GarageService
    from ..application.session import SessionManager


# ============================================================================
# REPOSITORY AND NOTIFIER FACTORIES
# ============================================================================

class RepositoryFactory:
    """Factory for creating session repositories"""

    @staticmethod
    def create(config: ClientConfig) -> SessionRepository:
        if config.storage_backend == "file":
            return JsonFileSessionRepository(config.storage_path)
        if config.storage_backend == "redis":
            return RedisSessionRepository(url=config.redis_url)
        return InMemorySessionRepository()


class NotifierFactory:

    @staticmethod
    def create(config: ClientConfig, events: EventBus) -> NotificationPort:
        if config.realtime_enabled:
            return EventBusNotificationPort(events)
        return NullNotificationPort()


# ============================================================================
# CLIENT FACTORY
# ============================================================================

@dataclass
class ParkSpotClient:
    """Everything a caller needs, sharing one transport and one session"""
    config: ClientConfig
    transport: Transport
    events: EventBus
    notifier: NotificationPort
    session: "SessionManager"
    bookings: "BookingService"
    garages: "GarageService"
    accounts: "AccountService"

    def close(self) -> None:
        self.notifier.disconnect()
        self.transport.close()


class ClientFactory:
    """Factory for creating a fully wired client"""

    def __init__(self):
        self.logger = logging.getLogger(self.__class__.__name__)

    def create(
        self,
        config: Optional[ClientConfig] = None,
        http_session: Optional[requests.Session] = None,
        repository: Optional[SessionRepository] = None,
        notifier: Optional[NotificationPort] = None,
        hydrate: bool = True,
    ) -> ParkSpotClient:
        """
        Build a client; a stored session is restored unless hydrate is False

        Any collaborator may be passed in (tests pass a scripted HTTP session
        and an in-memory repository).
        """
        from ..application.account_service import AccountService
        from ..application.booking_service import BookingService
        from ..application.error_classifier import ErrorClassifier
        from ..application.garage_service import GarageService
        from ..application.session import SessionManager

        config = config or ClientConfig()
        events = EventBus()
        classifier = ErrorClassifier()
        transport = Transport(
            config.base_url,
            timeout=config.timeout_seconds,
            default_headers=config.default_headers,
            session=http_session,
        )
        notifier = notifier or NotifierFactory.create(config, events)
        session = SessionManager(
            transport,
            repository or RepositoryFactory.create(config),
            event_bus=events,
            config=config,
            classifier=classifier,
        )
        if hydrate:
            session.hydrate()
        if config.realtime_enabled:
            notifier.connect(session.token)

        self.logger.info(f"Client created for {config.base_url} ({config.storage_backend} session store)")
        return ParkSpotClient(
            config=config,
            transport=transport,
            events=events,
            notifier=notifier,
            session=session,
            bookings=BookingService(transport, classifier=classifier, notifier=notifier),
            garages=GarageService(transport, classifier=classifier),
            accounts=AccountService(transport, session, classifier=classifier),
        )
