"""
Plan quota.

Premium users (active or trialing subscription) may save any number of
plans; everyone else is capped at ``free_plan_limit``.
"""

import logging

from raceplanner.shared.errors import DependencyError, QuotaExceededError
from raceplanner.stores.base import RecordStore, StoreError
from .duplication import PLAN_TABLE

logger = logging.getLogger(__name__)

SUBSCRIPTIONS_TABLE = "subscriptions"
PREMIUM_STATUSES = ("active", "trialing")


class PlanQuotaService:
    """Checks whether a user may create another plan."""

    def __init__(self, records: RecordStore, free_plan_limit: int = 1):
        self.records = records
        self.free_plan_limit = free_plan_limit

    async def is_premium(self, user_id: str) -> bool:
        rows = await self.records.select(
            SUBSCRIPTIONS_TABLE, {"user_id": user_id}, columns=["status"], limit=1
        )
        status = (rows[0].get("status") or "").strip().lower() if rows else ""
        return status in PREMIUM_STATUSES

    async def ensure_can_create_plan(self, user_id: str) -> None:
        """
        Raises:
            QuotaExceededError: Free user already at the plan limit
            DependencyError: Quota lookup failed (500)
        """
        try:
            if await self.is_premium(user_id):
                return

            existing = await self.records.select(
                PLAN_TABLE, {"user_id": user_id}, columns=["id"], limit=self.free_plan_limit
            )
        except StoreError as e:
            logger.error(f"Unable to evaluate plan count for {user_id}: {e}")
            raise DependencyError("Unable to create plan.", status_code=500) from e

        if len(existing) >= self.free_plan_limit:
            logger.info(f"Plan quota reached for user {user_id} ({len(existing)} plans)")
            raise QuotaExceededError()
