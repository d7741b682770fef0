import unittest
from datetime import datetime
from unittest.mock import AsyncMock

from solver.database.models import SubscriptionPlan, User
from solver.services.quota import QuotaTracker


def _user(monthly: int = 0, limit: int = 3, last_reset: datetime = None) -> User:
    return User(
        id=1,
        username="alice",
        monthly_queries=monthly,
        total_queries=monthly,
        query_limit=limit,
        plan=SubscriptionPlan.FREE,
        last_reset_date=last_reset or datetime(2024, 3, 5),
    )


class QuotaTrackerTests(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self.session = AsyncMock()
        self.now = datetime(2024, 3, 20, 12, 0)
        self.tracker = QuotaTracker(self.session, clock=lambda: self.now)

    async def test_limit_admits_exactly_that_many_queries(self) -> None:
        user = _user(limit=3)
        admitted = 0

        for _ in range(5):
            if not self.tracker.can_admit(user):
                break
            await self.tracker.record_usage(user)
            admitted += 1

        self.assertEqual(admitted, 3)
        self.assertEqual(user.monthly_queries, 3)
        self.assertEqual(user.total_queries, 3)
        self.assertEqual(self.session.commit.await_count, 3)

    async def test_new_month_resets_window_before_admission(self) -> None:
        user = _user(monthly=3, limit=3, last_reset=datetime(2024, 2, 28))

        self.assertTrue(self.tracker.can_admit(user))
        self.assertEqual(user.monthly_queries, 0)
        self.assertEqual(user.last_reset_date, self.now)
        self.assertEqual(user.total_queries, 3)

    def test_same_month_of_another_year_resets(self) -> None:
        user = _user(monthly=3, limit=3, last_reset=datetime(2023, 3, 20))

        self.assertTrue(self.tracker.can_admit(user))
        self.assertEqual(user.monthly_queries, 0)

    def test_same_month_keeps_counter(self) -> None:
        user = _user(monthly=3, limit=3, last_reset=datetime(2024, 3, 1))

        self.assertFalse(self.tracker.can_admit(user))
        self.assertEqual(user.monthly_queries, 3)

    def test_zero_limit_rejects_everything(self) -> None:
        self.assertFalse(self.tracker.can_admit(_user(limit=0)))

    def test_usage_summary(self) -> None:
        self.assertEqual(
            QuotaTracker.usage(_user(monthly=2, limit=50)),
            {"current": 2, "limit": 50, "plan": "free"},
        )


if __name__ == "__main__":
    unittest.main()
