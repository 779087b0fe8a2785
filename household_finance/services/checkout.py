"""
Checkout collaborator.

The orchestrator hands the signed-in user to a ``CheckoutService`` and
gets back either the upgraded user or None when the user gave up. How
payment is collected is the service's business.
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Optional

from household_finance.models.user import User, UserPlan
from household_finance.services.storage import FinanceStoreInterface


class CheckoutService(ABC):
    """Upgrades a user to the premium plan."""

    @abstractmethod
    async def checkout(self, user: User) -> Optional[User]:
        """
        Run the checkout for ``user``.

        Returns:
            The updated user (plan = premium) on success, None if cancelled
        """
        pass


class SimulatedCheckout(CheckoutService):
    """
    Demo checkout: approves after a short pause and records the plan
    change in the store.
    """

    def __init__(self, store: FinanceStoreInterface, approve: bool = True, delay_seconds: float = 0.0):
        self._store = store
        self._approve = approve
        self._delay = delay_seconds

    async def checkout(self, user: User) -> Optional[User]:
        await asyncio.sleep(self._delay)
        if not self._approve:
            return None
        return await self._store.update_user(user.id, {"plan": UserPlan.PREMIUM})
