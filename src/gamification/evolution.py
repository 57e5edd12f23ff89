"""
XP and Leveling Engine

Pure functions mapping step counts and cumulative XP to a level, a rank and
progress fractions. Nothing here stores state or performs I/O.

Leveling Curve:
- level = floor(sqrt(total_xp / 100))
- XP needed to reach the start of level n = n² × 100

XP Award Rules:
- Walking: 0.1 XP per step
- Daily goal (10,000 steps): one-time 500 XP bonus per day

Negative inputs are clamped to zero by every function in this module. Infinite
or NaN XP is rejected with ValidationError; stored totals are always finite.
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from src.exceptions import ValidationError

STEPS_TO_XP = 0.1

DAILY_GOAL_STEPS = 10_000
DAILY_GOAL_BONUS_XP = 500

XP_PER_LEVEL_UNIT = 100

NO_RANK_LABEL = "—"
MAX_RANK_LABEL = "MAX"
NEXT_RANK_PREFIX = "PRO"


class Rank(str, Enum):
    """Rank titles, ordered from lowest to highest"""
    STATIC = "Static"
    CRAWLER = "Crawler"
    STROLLER = "Stroller"
    WALKER = "Walker"
    HIKER = "Hiker"
    SCOUT = "Scout"
    RANGER = "Ranger"
    ATHLETE = "Athlete"
    MACHINE = "Machine"
    TITAN = "Titan"


@dataclass(frozen=True)
class RankBand:
    """Inclusive level range covered by one rank"""
    min_level: int
    max_level: int
    rank: Rank

    def contains(self, level: int) -> bool:
        return self.min_level <= level <= self.max_level


RANK_BANDS: List[RankBand] = [
    RankBand(1, 10, Rank.STATIC),
    RankBand(11, 20, Rank.CRAWLER),
    RankBand(21, 30, Rank.STROLLER),
    RankBand(31, 40, Rank.WALKER),
    RankBand(41, 50, Rank.HIKER),
    RankBand(51, 60, Rank.SCOUT),
    RankBand(61, 70, Rank.RANGER),
    RankBand(71, 80, Rank.ATHLETE),
    RankBand(81, 90, Rank.MACHINE),
    RankBand(91, 100, Rank.TITAN),
]


@dataclass(frozen=True)
class EvolutionState:
    """All-in-one level view of a total XP value"""
    total_xp: float
    level: int
    rank: Optional[Rank]
    progress: float  # 0–1 toward next level
    xp_to_next_level: float


@dataclass(frozen=True)
class RankProgressInfo:
    """Progress through the current rank band, for the "72% to HIKER" bar"""
    progress: float  # 0–1 through the band's XP range
    current_rank: Optional[Rank]
    from_label: str
    to_label: str
    pct: int


def _non_negative(value: float) -> float:
    return value if value > 0 else 0


def _finite_xp(total_xp: float, operation: str) -> float:
    if not math.isfinite(total_xp):
        raise ValidationError(
            message=f"total_xp must be finite, got {total_xp}",
            field="total_xp",
            value=total_xp,
            operation=operation,
        )
    return _non_negative(total_xp)


def steps_to_xp(steps: float) -> float:
    """
    Convert raw step count to XP earned from walking.
    1 step → 0.1 XP, no rounding.
    """
    return _non_negative(steps) * STEPS_TO_XP


def is_daily_goal_reached(steps_today: int) -> bool:
    """
    True once today's steps reach the daily goal.
    Callers are responsible for granting the bonus only once per day.
    """
    return steps_today >= DAILY_GOAL_STEPS


def xp_required_for_level(level: int) -> int:
    """XP needed to reach the START of a level (inverse of calculate_level)"""
    level = int(_non_negative(level))
    return level * level * XP_PER_LEVEL_UNIT


def calculate_level(total_xp: float) -> int:
    """
    Calculate level from total XP: floor(sqrt(total_xp / 100)).

    Computed with an integer square root on floor(total_xp), which gives the
    same largest n with n² × 100 <= total_xp without float rounding at level
    boundaries.
    """
    whole_xp = math.floor(_finite_xp(total_xp, "calculate_level"))
    return math.isqrt(whole_xp // XP_PER_LEVEL_UNIT)


def level_progress(total_xp: float) -> float:
    """Progress (0–1) from the current level's floor toward the next level"""
    total_xp = _finite_xp(total_xp, "level_progress")
    level = calculate_level(total_xp)
    current_floor = xp_required_for_level(level)
    next_floor = xp_required_for_level(level + 1)
    span = next_floor - current_floor
    if span <= 0:
        return 1.0
    return (total_xp - current_floor) / span


def _band_index(level: int) -> Optional[int]:
    for index, band in enumerate(RANK_BANDS):
        if band.contains(level):
            return index
    return None


def get_rank(level: int) -> Optional[Rank]:
    """
    Rank title for a level.
    Returns None for levels outside every band (level 0, or above 100).
    """
    index = _band_index(level)
    return RANK_BANDS[index].rank if index is not None else None


def compute_evolution(total_xp: float) -> EvolutionState:
    total_xp = _finite_xp(total_xp, "compute_evolution")
    level = calculate_level(total_xp)

    return EvolutionState(
        total_xp=total_xp,
        level=level,
        rank=get_rank(level),
        progress=level_progress(total_xp),
        xp_to_next_level=max(0, xp_required_for_level(level + 1) - total_xp),
    )


def get_rank_progress(total_xp: float) -> RankProgressInfo:
    """
    Progress within the current RANK band rather than the current level.

    The band's XP range runs from the floor of its first level to the floor of
    the level after its last one. Levels outside every band yield zero progress
    and placeholder labels.
    """
    total_xp = _finite_xp(total_xp, "get_rank_progress")
    index = _band_index(calculate_level(total_xp))

    if index is None:
        return RankProgressInfo(
            progress=0.0,
            current_rank=None,
            from_label=NO_RANK_LABEL,
            to_label=NO_RANK_LABEL,
            pct=0,
        )

    band = RANK_BANDS[index]
    next_band = RANK_BANDS[index + 1] if index + 1 < len(RANK_BANDS) else None

    start_xp = xp_required_for_level(band.min_level)
    end_xp = xp_required_for_level(band.max_level + 1)
    span = end_xp - start_xp

    if span > 0:
        progress = min(max((total_xp - start_xp) / span, 0.0), 1.0)
    else:
        progress = 1.0

    return RankProgressInfo(
        progress=progress,
        current_rank=band.rank,
        from_label=band.rank.value.upper(),
        to_label=f"{NEXT_RANK_PREFIX} {next_band.rank.value.upper()}" if next_band else MAX_RANK_LABEL,
        pct=round(progress * 100),
    )
