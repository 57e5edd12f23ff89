"""
LeaderboardService - Sorted reads over user documents

Top lists and "my rank" lookups for daily, weekly, monthly and all-time
boards, globally or within one country.
"""

import logging
from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel

from src.config import LEADERBOARD_LIMIT
from src.db.user_store import UserDocumentStore
from src.models.progress import UserDocument
from src.utils.datetime_helpers import format_relative_time

logger = logging.getLogger(__name__)


class TimeFilter(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    ALL_TIME = "all_time"


FILTER_FIELDS = {
    TimeFilter.DAILY: "steps_today",
    TimeFilter.WEEKLY: "steps_week",
    TimeFilter.MONTHLY: "steps_month",
    TimeFilter.ALL_TIME: "total_xp",
}


class LeaderboardEntry(BaseModel):
    """One ranked row"""
    rank: int
    user_id: str
    display_name: str
    photo_url: Optional[str] = None
    country: Optional[str] = None
    total_xp: float
    steps_today: int
    value: float  # the figure the board is sorted by
    last_sync: Optional[datetime] = None

    def activity_label(self, now: Optional[datetime] = None) -> str:
        return format_relative_time(self.last_sync, now)


def filter_value(document: UserDocument, time_filter: TimeFilter) -> float:
    """
    Sort value of a document for a board.

    Weekly and monthly totals fall back to today's steps when never recorded.
    """
    value = getattr(document, FILTER_FIELDS[time_filter])
    if value is None:
        return document.steps_today
    return value


class LeaderboardService:
    """Ranking queries against the user store"""

    def __init__(self, store: UserDocumentStore, limit: int = LEADERBOARD_LIMIT):
        self.store = store
        self.limit = limit

    async def _documents(self, country: Optional[str]) -> List[UserDocument]:
        documents = await self.store.list_documents()
        if country is not None:
            documents = [d for d in documents if d.country == country]
        return documents

    async def _top(self, time_filter: TimeFilter, country: Optional[str]) -> List[LeaderboardEntry]:
        documents = await self._documents(country)
        # Ties keep a stable order by user id
        ranked = sorted(
            documents,
            key=lambda d: (-filter_value(d, time_filter), d.user_id)
        )[:self.limit]

        return [
            LeaderboardEntry(
                rank=position,
                user_id=d.user_id,
                display_name=d.display_name,
                photo_url=d.photo_url,
                country=d.country,
                total_xp=d.total_xp,
                steps_today=d.steps_today,
                value=filter_value(d, time_filter),
                last_sync=d.last_sync,
            )
            for position, d in enumerate(ranked, start=1)
        ]

    async def top_global(self, time_filter: TimeFilter) -> List[LeaderboardEntry]:
        """Top users worldwide for a board"""
        entries = await self._top(time_filter, None)
        logger.debug(f"Global {time_filter.value} leaderboard: {len(entries)} entries")
        return entries

    async def top_local(self, country: str, time_filter: TimeFilter) -> List[LeaderboardEntry]:
        """Top users in one country (ISO 3166-1 alpha-2)"""
        entries = await self._top(time_filter, country)
        logger.debug(f"{country} {time_filter.value} leaderboard: {len(entries)} entries")
        return entries

    async def _rank(self, time_filter: TimeFilter, my_value: float, country: Optional[str]) -> int:
        documents = await self._documents(country)
        above = sum(1 for d in documents if filter_value(d, time_filter) > my_value)
        return above + 1

    async def my_global_rank(self, time_filter: TimeFilter, my_value: float) -> int:
        """1 + number of users strictly ahead worldwide"""
        return await self._rank(time_filter, my_value, None)

    async def my_local_rank(self, country: str, time_filter: TimeFilter, my_value: float) -> int:
        """1 + number of users strictly ahead in one country"""
        return await self._rank(time_filter, my_value, country)
