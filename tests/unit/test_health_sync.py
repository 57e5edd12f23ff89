"""Unit tests for HealthSyncService (src/services/health_sync.py)"""
import asyncio
import logging
import pytest
from unittest.mock import AsyncMock

from src.exceptions import HealthDataError
from src.gamification.evolution import DAILY_GOAL_BONUS_XP
from src.services.health_sources import StaticHealthSource
from src.services.health_sync import HealthSyncService


class BlockingHealthSource(StaticHealthSource):
    """Health source whose read waits until released"""

    def __init__(self, steps: int):
        super().__init__(steps=steps)
        self.read_started = asyncio.Event()
        self.release = asyncio.Event()

    async def read_steps_today(self) -> int:
        self.reads += 1
        self.read_started.set()
        await self.release.wait()
        return self.steps


# ============================================================================
# Basic Sync Tests
# ============================================================================

@pytest.mark.asyncio
async def test_sync_feeds_reducer(reducer, health_source):
    """Test a sync reads the source and applies the standard multiplier"""
    health_source.steps = 5_000
    service = HealthSyncService(reducer, health_source, standard_multiplier=1.0, premium_multiplier=1.5)

    result = await service.sync()

    assert result is not None
    assert result.raw_steps == 5_000
    assert result.multiplier == 1.0
    assert result.total_xp == pytest.approx(500)
    assert result.xp_earned == pytest.approx(500)
    assert reducer.state.steps_today == 5_000


@pytest.mark.asyncio
async def test_sync_premium_multiplier(reducer, health_source):
    """Test premium users get the premium multiplier on step XP"""
    reducer.set_premium(True)
    health_source.steps = 5_000
    service = HealthSyncService(reducer, health_source, standard_multiplier=1.0, premium_multiplier=1.5)

    result = await service.sync()

    assert result.multiplier == 1.5
    assert reducer.state.total_xp == pytest.approx(750)


@pytest.mark.asyncio
async def test_sync_premium_bonus_not_multiplied(reducer, health_source):
    reducer.set_premium(True)
    health_source.steps = 12_000
    service = HealthSyncService(reducer, health_source, standard_multiplier=1.0, premium_multiplier=1.5)

    await service.sync()

    assert reducer.state.total_xp == pytest.approx(1_200 * 1.5 + DAILY_GOAL_BONUS_XP)


@pytest.mark.asyncio
async def test_repeated_syncs_only_count_new_steps(reducer, health_source):
    service = HealthSyncService(reducer, health_source, standard_multiplier=1.0)

    health_source.steps = 3_000
    await service.sync()
    health_source.walk(1_000)
    await service.sync()
    result = await service.sync()

    assert result.xp_earned == 0
    assert reducer.state.total_xp == pytest.approx(400)


# ============================================================================
# Permission Tests
# ============================================================================

@pytest.mark.asyncio
async def test_permission_requested_once(reducer, health_source):
    """Test a granted permission is cached for the session"""
    service = HealthSyncService(reducer, health_source)

    await service.sync()
    await service.sync()

    assert health_source.permission_requests == 1


@pytest.mark.asyncio
async def test_permission_denied_skips_sync(reducer):
    source = StaticHealthSource(steps=5_000, permission_granted=False)
    service = HealthSyncService(reducer, source)

    result = await service.sync()

    assert result is None
    assert source.reads == 0
    assert reducer.state.total_xp == 0
    assert service.is_syncing is False


@pytest.mark.asyncio
async def test_permission_denied_is_asked_again(reducer):
    source = StaticHealthSource(steps=100, permission_granted=False)
    service = HealthSyncService(reducer, source)

    await service.sync()
    source.permission_granted = True
    result = await service.sync()

    assert source.permission_requests == 2
    assert result is not None


# ============================================================================
# Failure Handling Tests
# ============================================================================

@pytest.mark.asyncio
async def test_read_failure_counts_as_zero_steps(reducer):
    """Test a failed platform read is not surfaced and adds no XP"""
    source = StaticHealthSource(error=RuntimeError("HealthKit unavailable"))
    service = HealthSyncService(reducer, source)

    result = await service.sync()

    assert result is not None
    assert result.raw_steps == 0
    assert reducer.state.total_xp == 0


@pytest.mark.asyncio
async def test_static_source_wraps_read_failure():
    source = StaticHealthSource(error=RuntimeError("HealthKit unavailable"))

    with pytest.raises(HealthDataError) as exc_info:
        await source.read_steps_today()

    assert exc_info.value.source == "static"
    assert isinstance(exc_info.value.cause, RuntimeError)


@pytest.mark.asyncio
async def test_permission_request_failure_counts_as_denied(reducer, health_source):
    """Test an unreachable health store denies permission for this cycle"""
    health_source.request_permissions = AsyncMock(
        side_effect=HealthDataError("Health Connect not installed", source="health_connect")
    )
    service = HealthSyncService(reducer, health_source)

    result = await service.sync()

    assert result is None
    assert health_source.reads == 0
    assert service.is_syncing is False


@pytest.mark.asyncio
async def test_unexpected_source_error_propagates(reducer, health_source):
    """Test only HealthDataError is absorbed; other failures surface"""
    health_source.read_steps_today = AsyncMock(side_effect=TypeError("bad reading"))
    service = HealthSyncService(reducer, health_source)

    with pytest.raises(TypeError):
        await service.sync()

    assert service.is_syncing is False
    assert reducer.state.total_xp == 0


@pytest.mark.asyncio
async def test_persist_called_with_new_totals(reducer, health_source):
    persist = AsyncMock()
    health_source.steps = 2_000
    service = HealthSyncService(reducer, health_source, persist=persist, standard_multiplier=1.0)

    result = await service.sync()
    await service.drain()

    persist.assert_awaited_once_with(pytest.approx(200), 2_000, result.synced_at)


@pytest.mark.asyncio
async def test_persist_called_even_without_new_steps(reducer, health_source):
    """Test a no-op sync still records the sync time"""
    persist = AsyncMock()
    service = HealthSyncService(reducer, health_source, persist=persist)

    await service.sync()
    await service.drain()

    assert persist.await_count == 1


@pytest.mark.asyncio
async def test_persist_failure_is_non_fatal(reducer, health_source, caplog):
    """Test a failing write is logged and leaves in-memory state alone"""
    persist = AsyncMock(side_effect=OSError("read-only file system"))
    health_source.steps = 1_000
    service = HealthSyncService(reducer, health_source, persist=persist, standard_multiplier=1.0)

    with caplog.at_level(logging.ERROR):
        result = await service.sync()
        await service.drain()

    assert result.total_xp == pytest.approx(100)
    assert reducer.state.total_xp == pytest.approx(100)
    assert "non-fatal" in caplog.text


# ============================================================================
# Concurrency Guard Tests
# ============================================================================

@pytest.mark.asyncio
async def test_concurrent_trigger_is_dropped(reducer):
    """Test a second sync while one is in flight returns None and reads nothing"""
    source = BlockingHealthSource(steps=5_000)
    service = HealthSyncService(reducer, source, standard_multiplier=1.0)

    first = asyncio.create_task(service.sync())
    await source.read_started.wait()

    assert service.is_syncing is True
    second = await service.sync()
    assert second is None

    source.release.set()
    result = await first

    assert result.total_xp == pytest.approx(500)
    assert source.reads == 1
    assert reducer.state.total_xp == pytest.approx(500)
    assert service.is_syncing is False


@pytest.mark.asyncio
async def test_latch_cleared_after_error(reducer, health_source):
    """Test the in-flight latch is released even if the reducer rejects the call"""
    service = HealthSyncService(reducer, health_source, standard_multiplier=0)

    with pytest.raises(Exception):
        await service.sync()

    assert service.is_syncing is False


# ============================================================================
# App State Tests
# ============================================================================

@pytest.mark.asyncio
async def test_foreground_triggers_sync(reducer, health_source):
    health_source.steps = 1_000
    service = HealthSyncService(reducer, health_source, standard_multiplier=1.0)

    assert await service.on_app_state_change("background") is None
    assert health_source.reads == 0

    result = await service.on_app_state_change("active")
    assert result.total_xp == pytest.approx(100)
