"""
Step Progress Reducer

Owns one session's canonical progress state and the only operations allowed
to change it. Every operation is synchronous and replaces the whole snapshot
at once, so readers never see total_xp updated without the derived fields.

The reducer performs no I/O and no locking. Callers serialize
sync_from_health themselves (see HealthSyncService) and persist the new
snapshot after an operation returns, usually by subscribing to events.
"""

import logging
import math
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from src.exceptions import ValidationError
from src.gamification.evolution import (
    DAILY_GOAL_BONUS_XP,
    RankProgressInfo,
    calculate_level,
    get_rank,
    get_rank_progress,
    is_daily_goal_reached,
    level_progress,
    steps_to_xp,
    xp_required_for_level,
)
from src.models.progress import StepProgressState

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StepProgressEvent:
    """Emitted to subscribers after a state-changing operation commits"""
    operation: str  # add_steps, hydrate, set_premium, reset_daily_stats, sync_from_health
    previous: StepProgressState
    state: StepProgressState
    xp_earned: float = 0.0
    bonus_awarded: bool = False

    @property
    def leveled_up(self) -> bool:
        return self.state.current_level > self.previous.current_level


StepProgressListener = Callable[[StepProgressEvent], None]


def derive_from_xp(total_xp: float) -> Dict[str, object]:
    """Recompute the cached level fields for a total XP value"""
    level = calculate_level(total_xp)
    return {
        "current_level": level,
        "current_rank": get_rank(level),
        "progress": level_progress(total_xp),
        "xp_to_next_level": max(0, xp_required_for_level(level + 1) - total_xp),
    }


class StepProgressReducer:
    """
    Mutable holder of a StepProgressState.

    Create one per user session and pass it to the components that need it.
    """

    def __init__(self, initial: Optional[StepProgressState] = None):
        self._state = initial or StepProgressState(**derive_from_xp(0.0))
        self._listeners: List[StepProgressListener] = []

    @property
    def state(self) -> StepProgressState:
        """Current snapshot (immutable)"""
        return self._state

    def rank_progress(self) -> RankProgressInfo:
        """Progress through the current rank band for the current snapshot"""
        return get_rank_progress(self._state.total_xp)

    # ── Subscriptions ─────────────────────────────────────────────────────────

    def subscribe(self, listener: StepProgressListener) -> Callable[[], None]:
        """
        Register a listener for committed state changes.

        Returns:
            A callable that removes the listener again
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _commit(
        self,
        operation: str,
        new_state: StepProgressState,
        xp_earned: float = 0.0,
        bonus_awarded: bool = False
    ) -> None:
        previous = self._state
        self._state = new_state

        event = StepProgressEvent(
            operation=operation,
            previous=previous,
            state=new_state,
            xp_earned=xp_earned,
            bonus_awarded=bonus_awarded,
        )

        if event.leveled_up:
            logger.info(
                f"Level up: {previous.current_level} -> {new_state.current_level} "
                f"(rank: {new_state.current_rank.value if new_state.current_rank else 'none'})"
            )

        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as e:
                # Listener failures never undo a committed state
                logger.error(f"Step progress listener failed after {operation}: {e}", exc_info=True)

    def _apply_xp(
        self,
        operation: str,
        earned_xp: float,
        steps_today: int,
        check_bonus_against: int
    ) -> float:
        """Add XP (plus the daily bonus when due) and commit the new snapshot"""
        state = self._state

        bonus_awarded = False
        if not state.daily_bonus_granted and is_daily_goal_reached(check_bonus_against):
            earned_xp += DAILY_GOAL_BONUS_XP
            bonus_awarded = True
            logger.info(f"Daily goal reached with {check_bonus_against} steps, +{DAILY_GOAL_BONUS_XP} XP bonus")

        updated_xp = state.total_xp + earned_xp

        self._commit(
            operation,
            state.model_copy(update={
                "total_xp": updated_xp,
                "steps_today": steps_today,
                "daily_bonus_granted": state.daily_bonus_granted or bonus_awarded,
                **derive_from_xp(updated_xp),
            }),
            xp_earned=earned_xp,
            bonus_awarded=bonus_awarded,
        )
        return updated_xp

    # ── Operations ────────────────────────────────────────────────────────────

    def add_steps(self, new_steps: int) -> None:
        """
        Add a step increment (manual or simulated step event).

        No multiplier is applied here. Non-positive increments are ignored.
        """
        if new_steps <= 0:
            return

        updated_steps = self._state.steps_today + new_steps
        self._apply_xp(
            "add_steps",
            steps_to_xp(new_steps),
            steps_today=updated_steps,
            check_bonus_against=updated_steps,
        )
        logger.debug(f"Added {new_steps} steps, steps today: {updated_steps}")

    def hydrate(self, total_xp: float, steps_today: int, is_premium: bool) -> None:
        """
        Replace the state with previously persisted values.

        If the restored step count already meets the daily goal the bonus is
        treated as consumed, so restarting the app never grants it twice.

        Raises:
            ValidationError: If total_xp is infinite or NaN
        """
        if not math.isfinite(total_xp):
            raise ValidationError(
                message=f"Cannot restore non-finite total_xp: {total_xp}",
                field="total_xp",
                value=total_xp,
                operation="hydrate",
            )

        total_xp = max(total_xp, 0)
        steps_today = max(steps_today, 0)

        self._commit(
            "hydrate",
            StepProgressState(
                total_xp=total_xp,
                steps_today=steps_today,
                is_premium=is_premium,
                daily_bonus_granted=is_daily_goal_reached(steps_today),
                **derive_from_xp(total_xp),
            ),
        )
        logger.info(f"Hydrated progress: {total_xp} XP, {steps_today} steps today, premium={is_premium}")

    def set_premium(self, value: bool) -> None:
        """Set the premium flag (after a purchase or restore)"""
        if value == self._state.is_premium:
            return
        self._commit("set_premium", self._state.model_copy(update={"is_premium": value}))
        logger.info(f"Premium set to {value}")

    def reset_daily_stats(self) -> None:
        """Zero today's steps and clear the bonus flag, once per day boundary"""
        self._commit(
            "reset_daily_stats",
            self._state.model_copy(update={"steps_today": 0, "daily_bonus_granted": False}),
        )
        logger.info("Daily stats reset")

    def sync_from_health(self, raw_steps_today: int, xp_multiplier: float) -> float:
        """
        Apply an absolute "steps so far today" reading from a health source.

        Only forward progress counts: a reading at or below the stored count is
        a no-op (day rollovers are reset through reset_daily_stats, not here).
        The multiplier scales step XP only; the daily bonus is added as is.
        steps_today is set to the raw reading, never scaled.

        Args:
            raw_steps_today: Absolute step total for today
            xp_multiplier: Positive XP multiplier (1.0 standard, 1.5 premium)

        Returns:
            The new total XP, for the caller to persist

        Raises:
            ValidationError: If xp_multiplier is not positive
        """
        if xp_multiplier <= 0:
            raise ValidationError(
                message="XP multiplier must be positive",
                field="xp_multiplier",
                value=xp_multiplier,
                operation="sync_from_health",
            )

        raw_steps_today = max(raw_steps_today, 0)
        state = self._state
        delta = max(raw_steps_today - state.steps_today, 0)

        if delta == 0:
            logger.debug(
                f"No new steps (reported {raw_steps_today}, recorded {state.steps_today})"
            )
            return state.total_xp

        updated_xp = self._apply_xp(
            "sync_from_health",
            steps_to_xp(delta) * xp_multiplier,
            steps_today=raw_steps_today,
            check_bonus_against=raw_steps_today,
        )

        logger.info(
            f"Synced {delta} new steps at {xp_multiplier}x. "
            f"Total: {updated_xp} XP, Level: {self._state.current_level}"
        )
        return updated_xp
