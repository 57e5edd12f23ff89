"""
ProgressSession - One user's progress for the lifetime of the app session

Owns the StepProgressReducer for a user, restores it from the user store at
start, resets daily counters on a new-day login, and writes every committed
change back to the store as a fire-and-forget merge.
"""

import asyncio
import logging
from datetime import datetime
from typing import Any, Callable, Dict, Optional, Set

from src.db.user_store import UserDocumentStore
from src.gamification.step_progress import StepProgressEvent, StepProgressReducer
from src.models.progress import UserDocument
from src.utils.datetime_helpers import is_same_day, now_utc

logger = logging.getLogger(__name__)


class ProgressSession:
    """
    Session owner of the step progress state.

    Args:
        user_id: Document ID of the signed-in user
        store: Persistence for user documents
        timezone: IANA timezone deciding where the day boundary falls
        clock: Returns the current UTC time (injectable for tests)
    """

    def __init__(
        self,
        user_id: str,
        store: UserDocumentStore,
        timezone: Optional[str] = None,
        clock: Callable[[], datetime] = now_utc
    ):
        self.user_id = user_id
        self.store = store
        self.timezone = timezone
        self.clock = clock
        self.reducer = StepProgressReducer()

        self._unsubscribe: Optional[Callable[[], None]] = None
        self._pending: Set[asyncio.Task] = set()
        self.document: Optional[UserDocument] = None

    @property
    def started(self) -> bool:
        return self._unsubscribe is not None

    async def start(self) -> StepProgressReducer:
        """
        Restore persisted progress and start writing changes back.

        Returns:
            The hydrated reducer for this session
        """
        if self.started:
            return self.reducer

        self.document = await self.store.get_or_create(self.user_id)
        document = self.document

        self.reducer.hydrate(document.total_xp, document.steps_today, document.is_premium)

        # Subscribe after hydrating so restoring never writes back
        self._unsubscribe = self.reducer.subscribe(self.persist_event)

        if document.last_sync is not None and not is_same_day(document.last_sync, self.clock(), self.timezone):
            logger.info(
                f"New day for user {self.user_id} (last sync {document.last_sync.isoformat()}), "
                f"resetting daily stats"
            )
            self.reducer.reset_daily_stats()

        logger.info(
            f"Session started for user {self.user_id}: "
            f"level {self.reducer.state.current_level}, {self.reducer.state.total_xp} XP"
        )
        return self.reducer

    def rollover(self) -> None:
        """Day boundary reached while the session is open (midnight trigger)"""
        logger.info(f"Day rollover for user {self.user_id}")
        self.reducer.reset_daily_stats()

    def stop(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    # ── Persistence ───────────────────────────────────────────────────────────

    def persist_event(self, event: StepProgressEvent) -> None:
        """
        Reducer listener: schedule a merge write of the new snapshot.

        Health syncs are persisted by persist_sync instead, which also records
        syncs that found no new steps.
        """
        if event.operation == "sync_from_health":
            return

        state = event.state
        fields: Dict[str, Any] = {
            "total_xp": state.total_xp,
            "steps_today": state.steps_today,
            "daily_bonus_granted": state.daily_bonus_granted,
            "is_premium": state.is_premium,
        }
        if event.operation != "set_premium":
            fields["last_sync"] = self.clock()

        self._schedule_write(fields, event.operation)

    async def persist_sync(self, total_xp: float, steps_today: int, synced_at: datetime) -> None:
        """Persist callback for HealthSyncService"""
        await self.store.set_document(
            self.user_id,
            {
                "total_xp": total_xp,
                "steps_today": steps_today,
                "daily_bonus_granted": self.reducer.state.daily_bonus_granted,
                "last_sync": synced_at,
            },
        )

    def _schedule_write(self, fields: Dict[str, Any], operation: str) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning(f"No running event loop, progress after {operation} not persisted")
            return

        task = loop.create_task(self._write_safely(fields, operation))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _write_safely(self, fields: Dict[str, Any], operation: str) -> None:
        try:
            await self.store.set_document(self.user_id, fields)
        except Exception as e:
            logger.error(
                f"Persisting progress for user {self.user_id} after {operation} failed (non-fatal): {e}",
                exc_info=True
            )

    async def drain(self) -> None:
        """Wait for scheduled writes to finish"""
        if self._pending:
            await asyncio.gather(*list(self._pending))
