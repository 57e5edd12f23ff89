"""
Daily activity figures derived from today's raw step count

Used for the home screen step ring and stat cards. Estimates are rough
averages, not personalised to stride length or body weight.
"""

from dataclasses import dataclass

from src.gamification.evolution import DAILY_GOAL_STEPS

KCAL_PER_STEP = 0.04
KM_PER_STEP = 0.0008
STEPS_PER_ACTIVE_MINUTE = 100


@dataclass(frozen=True)
class ActivityStats:
    steps: int
    goal_progress: float  # 0–1 toward the daily goal
    steps_left: int
    goal_reached: bool
    calories: int
    distance_km: float
    active_minutes: int


def compute_activity_stats(steps_today: int) -> ActivityStats:
    """Ring progress and rough calorie/distance/time estimates for a step count"""
    steps = max(steps_today, 0)

    return ActivityStats(
        steps=steps,
        goal_progress=min(steps / DAILY_GOAL_STEPS, 1.0),
        steps_left=max(DAILY_GOAL_STEPS - steps, 0),
        goal_reached=steps >= DAILY_GOAL_STEPS,
        calories=round(steps * KCAL_PER_STEP),
        distance_km=round(steps * KM_PER_STEP, 1),
        active_minutes=round(steps / STEPS_PER_ACTIVE_MINUTE),
    )
