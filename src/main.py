"""Main entry point: run one simulated StepXP session"""
import argparse
import asyncio
import logging
from pathlib import Path
from typing import List, Optional

from src.config import validate_config, DATA_PATH, LOG_LEVEL
from src.db.user_store import UserDocumentStore
from src.gamification.activity_stats import compute_activity_stats
from src.gamification.evolution import NO_RANK_LABEL
from src.services.container import ServiceContainer
from src.services.health_sources import StaticHealthSource

# Configure logging
logging.basicConfig(
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    level=getattr(logging, LOG_LEVEL.upper(), logging.INFO)
)

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Sync a step reading into a StepXP profile")
    parser.add_argument("--user", default="local-user", help="User document ID (default: local-user)")
    parser.add_argument("--steps", type=int, required=True, help="Absolute steps taken today")
    parser.add_argument("--premium", action="store_true", help="Purchase Pro before syncing")
    parser.add_argument("--timezone", help="IANA timezone for the day boundary (default: UTC)")
    parser.add_argument("--data-path", type=Path, default=DATA_PATH, help=f"Data directory (default: {DATA_PATH})")
    return parser


async def run(args: argparse.Namespace) -> None:
    """Start a session, sync one reading, print the result"""
    container = ServiceContainer(
        user_id=args.user,
        store=UserDocumentStore(args.data_path),
        health_source=StaticHealthSource(steps=args.steps),
        timezone=args.timezone,
    )

    try:
        reducer = await container.start()

        if args.premium and not reducer.state.is_premium:
            await container.subscription.purchase("stepxp_pro_monthly")

        result = await container.health_sync.sync()
        state = reducer.state
        rank_info = reducer.rank_progress()
        stats = compute_activity_stats(state.steps_today)

        if result is not None:
            print(f"Synced {result.raw_steps} steps at {result.multiplier}x: +{result.xp_earned:g} XP")
        print(f"Total XP:      {state.total_xp:g}")
        print(f"Level:         {state.current_level} ({state.progress:.0%} to next, {state.xp_to_next_level:g} XP left)")
        print(f"Rank:          {state.current_rank.value if state.current_rank else NO_RANK_LABEL}")
        print(f"Rank progress: {rank_info.pct}% {rank_info.from_label} -> {rank_info.to_label}")
        print(f"Today:         {stats.steps} steps, {stats.steps_left} to goal, "
              f"{stats.calories} kcal, {stats.distance_km} km, {stats.active_minutes} min")
    finally:
        await container.shutdown()


def main(argv: Optional[List[str]] = None) -> None:
    """Main application entry point"""
    args = build_parser().parse_args(argv)

    logger.info("Validating configuration...")
    validate_config()

    asyncio.run(run(args))


if __name__ == "__main__":
    main()
