"""
SubscriptionService - Mock in-app purchases for StepXP Pro

Pro unlocks the premium XP multiplier. Purchases always succeed for known
packages; the entitlement is the is_premium flag on the user document.
"""

import logging
from typing import Dict, List

from pydantic import BaseModel

from src.db.user_store import UserDocumentStore
from src.exceptions import StorageError, SubscriptionError, ValidationError
from src.gamification.step_progress import StepProgressReducer

logger = logging.getLogger(__name__)

ENTITLEMENT_ID = "pro"


class ProPackage(BaseModel):
    """A purchasable Pro plan"""
    identifier: str
    package_type: str  # MONTHLY, ANNUAL
    title: str
    description: str
    price: float
    price_string: str


PACKAGES: Dict[str, ProPackage] = {
    "stepxp_pro_monthly": ProPackage(
        identifier="stepxp_pro_monthly",
        package_type="MONTHLY",
        title="StepXP Pro Monthly",
        description="Unlock 1.5x XP Boost",
        price=4.99,
        price_string="$4.99",
    ),
    "stepxp_pro_annual": ProPackage(
        identifier="stepxp_pro_annual",
        package_type="ANNUAL",
        title="StepXP Pro Annual",
        description="Unlock 1.5x XP Boost (Save 33%)",
        price=39.99,
        price_string="$39.99",
    ),
}


class SubscriptionService:
    """
    Purchase, restore and check the Pro entitlement for one user.

    Every path writes the entitlement to the store first and only then flips
    the reducer flag, so a failed write leaves the session unchanged.
    """

    def __init__(self, reducer: StepProgressReducer, store: UserDocumentStore, user_id: str):
        self.reducer = reducer
        self.store = store
        self.user_id = user_id
        logger.debug("SubscriptionService initialized")

    async def get_offerings(self) -> List[ProPackage]:
        """Available Pro packages, monthly first"""
        return list(PACKAGES.values())

    async def _set_premium_state(self, value: bool, operation: str) -> None:
        try:
            await self.store.set_document(self.user_id, {"is_premium": value})
        except StorageError as e:
            raise SubscriptionError(
                message=f"Could not record entitlement for {self.user_id}: {e.message}",
                user_id=self.user_id,
                operation=operation,
                cause=e
            ) from e
        self.reducer.set_premium(value)

    async def check_premium_status(self) -> bool:
        """True if the stored user document carries the Pro entitlement"""
        document = await self.store.get_document(self.user_id)
        return bool(document and document.is_premium)

    async def purchase(self, package_id: str) -> bool:
        """
        Buy a Pro package.

        Raises:
            ValidationError: If the package is not on offer
            SubscriptionError: If the entitlement could not be stored
        """
        package = PACKAGES.get(package_id)
        if package is None:
            raise ValidationError(
                message=f"Unknown package '{package_id}'",
                field="package_id",
                value=package_id,
                user_id=self.user_id,
                operation="purchase",
            )

        logger.info(f"User {self.user_id} purchasing {package.identifier} ({package.price_string})")
        await self._set_premium_state(True, operation="purchase")
        return True

    async def restore(self) -> bool:
        """
        Re-apply the stored entitlement. Returns whether the user is Pro.

        Raises:
            SubscriptionError: If the stored entitlement could not be read or written
        """
        try:
            is_pro = await self.check_premium_status()
        except StorageError as e:
            raise SubscriptionError(
                message=f"Could not read entitlement for {self.user_id}: {e.message}",
                user_id=self.user_id,
                operation="restore",
                cause=e
            ) from e
        await self._set_premium_state(is_pro, operation="restore")
        logger.info(f"Restored purchases for user {self.user_id}: premium={is_pro}")
        return is_pro
