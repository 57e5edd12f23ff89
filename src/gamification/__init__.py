"""
Gamification core for StepXP

This package turns step counts into progression:
- XP and leveling engine (pure math)
- Rank bands and rank-band progress
- Daily activity stats for the step ring
- The step progress reducer that owns session state
"""

from src.gamification.evolution import (
    Rank,
    calculate_level,
    compute_evolution,
    get_rank,
    get_rank_progress,
    level_progress,
    steps_to_xp,
    xp_required_for_level,
)

__all__ = [
    "Rank",
    "calculate_level",
    "compute_evolution",
    "get_rank",
    "get_rank_progress",
    "level_progress",
    "steps_to_xp",
    "xp_required_for_level",
]
