"""
Health data sources

A health source grants read permission and reports the absolute number of
steps taken so far today. Platform stores (HealthKit, Health Connect) sit
behind this protocol; StaticHealthSource is the local mock used by the CLI
and tests.
"""

import logging
from typing import Optional, Protocol

from src.exceptions import HealthDataError

logger = logging.getLogger(__name__)


class HealthDataSource(Protocol):
    """Read-only access to today's step total"""

    name: str

    async def request_permissions(self) -> bool:
        """Ask the platform for step read access. True if granted.

        Raises:
            HealthDataError: If the platform cannot be asked
        """
        ...

    async def read_steps_today(self) -> int:
        """Absolute step count since local midnight

        Raises:
            HealthDataError: If the platform store cannot be read
        """
        ...


class StaticHealthSource:
    """
    Mock health source returning a settable step count.

    Args:
        steps: Initial steps-today reading
        permission_granted: Whether request_permissions succeeds
        error: If set, read_steps_today fails with it, wrapped in
            HealthDataError (simulates a failed platform read)
    """

    name = "static"

    def __init__(
        self,
        steps: int = 0,
        permission_granted: bool = True,
        error: Optional[Exception] = None
    ):
        self.steps = steps
        self.permission_granted = permission_granted
        self.error = error
        self.permission_requests = 0
        self.reads = 0

    async def request_permissions(self) -> bool:
        self.permission_requests += 1
        return self.permission_granted

    async def read_steps_today(self) -> int:
        self.reads += 1
        if self.error is not None:
            if isinstance(self.error, HealthDataError):
                raise self.error
            raise HealthDataError(
                message=f"Step read failed: {self.error}",
                source=self.name,
                operation="read_steps_today",
                cause=self.error
            ) from self.error
        return self.steps

    def walk(self, steps: int) -> None:
        """Advance the reading, as if the user took more steps"""
        self.steps += steps
        logger.debug(f"Static source now reports {self.steps} steps")
