"""Per-user monthly query quota."""

import logging
from datetime import datetime
from typing import Callable, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from solver.database.models import User

logger = logging.getLogger(__name__)


class QuotaTracker:
    """Admission checks and usage accounting against a user's monthly limit.

    The monthly window is reset lazily: every admission check compares the
    current month/year with the stored reset date. There is no timer.
    """

    def __init__(
        self,
        session: AsyncSession,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.session = session
        self.clock = clock or datetime.utcnow

    def _check_monthly_reset(self, user: User) -> None:
        """Reset the monthly window if the calendar month changed."""
        now = self.clock()
        last_reset = user.last_reset_date

        if last_reset is None or (
            now.month != last_reset.month or now.year != last_reset.year
        ):
            logger.info(
                f"Resetting monthly queries for user {user.id} "
                f"({user.monthly_queries} used since {last_reset})"
            )
            user.monthly_queries = 0
            user.last_reset_date = now

    def can_admit(self, user: User) -> bool:
        """Check whether the user may submit another problem this month."""
        self._check_monthly_reset(user)
        return user.monthly_queries < user.query_limit

    async def record_usage(self, user: User) -> None:
        """Charge one query. Call only after the problem was durably recorded."""
        user.total_queries += 1
        user.monthly_queries += 1
        await self.session.commit()

    @staticmethod
    def usage(user: User) -> dict:
        """Current usage summary for display or rejection messages."""
        return {
            "current": user.monthly_queries,
            "limit": user.query_limit,
            "plan": user.plan.value if user.plan else "free",
        }
