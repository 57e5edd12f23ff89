"""
Service Container - Dependency Injection Container

Wires one user's session to its collaborators. Services are lazy-loaded on
first access and all share the session's reducer; nothing is a module-level
singleton, so several containers (users, tests) can coexist.
"""

from dataclasses import dataclass, field
from typing import Optional
import logging

from src.db.user_store import UserDocumentStore
from src.services.health_sources import HealthDataSource

logger = logging.getLogger(__name__)


@dataclass
class ServiceContainer:
    """
    Dependency injection container for one signed-in user.

    Infrastructure (store, health source) is injected; services are built
    lazily via properties.
    """

    user_id: str
    store: UserDocumentStore
    health_source: HealthDataSource
    timezone: Optional[str] = None

    _session: Optional[object] = field(default=None, init=False, repr=False)
    _health_sync: Optional[object] = field(default=None, init=False, repr=False)
    _subscription: Optional[object] = field(default=None, init=False, repr=False)
    _leaderboard: Optional[object] = field(default=None, init=False, repr=False)

    @property
    def session(self):
        """Get ProgressSession instance (lazy-loaded)"""
        if self._session is None:
            from src.services.progress_session import ProgressSession
            self._session = ProgressSession(self.user_id, self.store, timezone=self.timezone)
            logger.debug("ProgressSession instantiated")
        return self._session

    @property
    def reducer(self):
        """The session's StepProgressReducer"""
        return self.session.reducer

    @property
    def health_sync(self):
        """Get HealthSyncService instance (lazy-loaded)"""
        if self._health_sync is None:
            from src.services.health_sync import HealthSyncService
            self._health_sync = HealthSyncService(
                self.reducer,
                self.health_source,
                persist=self.session.persist_sync,
            )
            logger.debug("HealthSyncService instantiated")
        return self._health_sync

    @property
    def subscription(self):
        """Get SubscriptionService instance (lazy-loaded)"""
        if self._subscription is None:
            from src.services.subscription import SubscriptionService
            self._subscription = SubscriptionService(self.reducer, self.store, self.user_id)
            logger.debug("SubscriptionService instantiated")
        return self._subscription

    @property
    def leaderboard(self):
        """Get LeaderboardService instance (lazy-loaded)"""
        if self._leaderboard is None:
            from src.services.leaderboard import LeaderboardService
            self._leaderboard = LeaderboardService(self.store)
            logger.debug("LeaderboardService instantiated")
        return self._leaderboard

    async def start(self):
        """Start the session (hydrate from the store) and return its reducer"""
        return await self.session.start()

    async def shutdown(self) -> None:
        """Flush pending writes and detach persistence"""
        if self._health_sync is not None:
            await self._health_sync.drain()
        if self._session is not None:
            await self._session.drain()
            self._session.stop()
        logger.info(f"Service container for user {self.user_id} shut down")
