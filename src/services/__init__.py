"""
Service Layer Package

Services that sit between the gamification core and its collaborators.

- ProgressSession: owns a user's step progress reducer, hydration, rollover
- HealthSyncService: health source reads fed into the reducer
- SubscriptionService: Pro purchases and the premium flag
- LeaderboardService: ranked reads over user documents
"""

from src.services.container import ServiceContainer

__all__ = [
    "ServiceContainer",
]
