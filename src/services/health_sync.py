"""
HealthSyncService - Health Data to XP Sync

Reads today's absolute step total from a health source and feeds it to the
step progress reducer:

- Requests read permission once, caching a grant
- Re-syncs whenever the app returns to the foreground
- Applies the premium XP multiplier to step XP
- Persists the new totals fire-and-forget; failures are logged, never raised
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Awaitable, Callable, Optional, Set

from src.config import PREMIUM_XP_MULTIPLIER, STANDARD_XP_MULTIPLIER
from src.exceptions import HealthDataError
from src.gamification.step_progress import StepProgressReducer
from src.services.health_sources import HealthDataSource
from src.utils.datetime_helpers import now_utc

logger = logging.getLogger(__name__)

# (total_xp, steps_today, synced_at)
PersistCallback = Callable[[float, int, datetime], Awaitable[None]]

FOREGROUND_STATE = "active"


@dataclass(frozen=True)
class SyncResult:
    raw_steps: int
    multiplier: float
    previous_total_xp: float
    total_xp: float
    synced_at: datetime

    @property
    def xp_earned(self) -> float:
        return self.total_xp - self.previous_total_xp


class HealthSyncService:
    """
    Serialized health-read-and-sync cycles for one session.

    Only one cycle runs at a time. A trigger that arrives while a cycle is in
    flight is dropped, not queued; the next foreground event syncs again.
    """

    def __init__(
        self,
        reducer: StepProgressReducer,
        source: HealthDataSource,
        persist: Optional[PersistCallback] = None,
        standard_multiplier: float = STANDARD_XP_MULTIPLIER,
        premium_multiplier: float = PREMIUM_XP_MULTIPLIER
    ):
        self.reducer = reducer
        self.source = source
        self.persist = persist
        self.standard_multiplier = standard_multiplier
        self.premium_multiplier = premium_multiplier

        self._permissions_granted = False
        self._is_syncing = False
        self._pending: Set[asyncio.Task] = set()
        logger.debug(f"HealthSyncService initialized with source '{source.name}'")

    @property
    def is_syncing(self) -> bool:
        return self._is_syncing

    def current_multiplier(self) -> float:
        """XP multiplier for the reducer's current premium flag"""
        return self.premium_multiplier if self.reducer.state.is_premium else self.standard_multiplier

    async def ensure_permissions(self) -> bool:
        """Request read permission unless already granted this session"""
        if self._permissions_granted:
            return True

        try:
            granted = await self.source.request_permissions()
        except HealthDataError as e:
            logger.warning(f"Permission request to '{self.source.name}' failed: {e.message}")
            granted = False

        self._permissions_granted = granted
        if not granted:
            logger.warning(f"Step read permission not granted by '{self.source.name}'")
        return granted

    async def _read_steps(self) -> int:
        """Read today's steps; a failed read counts as zero steps"""
        try:
            return max(int(await self.source.read_steps_today()), 0)
        except HealthDataError as e:
            logger.warning(f"Reading steps from '{self.source.name}' failed, treating as 0: {e.message}")
            return 0

    async def sync(self) -> Optional[SyncResult]:
        """
        Run one read-and-sync cycle.

        Returns:
            SyncResult, or None if the cycle was dropped (already in flight)
            or permission was denied
        """
        if self._is_syncing:
            logger.warning("Health sync already in flight, dropping trigger")
            return None
        self._is_syncing = True

        try:
            if not await self.ensure_permissions():
                return None

            raw_steps = await self._read_steps()
            multiplier = self.current_multiplier()
            previous_total_xp = self.reducer.state.total_xp

            total_xp = self.reducer.sync_from_health(raw_steps, multiplier)
            synced_at = now_utc()

            if self.persist is not None:
                self._schedule_persist(total_xp, self.reducer.state.steps_today, synced_at)

            return SyncResult(
                raw_steps=raw_steps,
                multiplier=multiplier,
                previous_total_xp=previous_total_xp,
                total_xp=total_xp,
                synced_at=synced_at,
            )
        finally:
            self._is_syncing = False

    async def on_app_state_change(self, state: str) -> Optional[SyncResult]:
        """Sync when the app comes back to the foreground"""
        if state != FOREGROUND_STATE:
            return None
        return await self.sync()

    def _schedule_persist(self, total_xp: float, steps_today: int, synced_at: datetime) -> None:
        task = asyncio.create_task(self._persist_safely(total_xp, steps_today, synced_at))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _persist_safely(self, total_xp: float, steps_today: int, synced_at: datetime) -> None:
        try:
            await self.persist(total_xp, steps_today, synced_at)
        except Exception as e:
            logger.error(f"Persisting synced progress failed (non-fatal): {e}", exc_info=True)

    async def drain(self) -> None:
        """Wait for scheduled persistence writes to finish"""
        if self._pending:
            await asyncio.gather(*list(self._pending))
