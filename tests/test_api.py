import unittest
from unittest.mock import AsyncMock, MagicMock

import httpx
from fastapi import Depends
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_db, get_problem_service
from api.main import app
from solver.database.models import Solution, User, UserRole
from solver.services.code_executor import ExecutionResult, Judge0Client
from solver.services.problem_service import ProblemService
from solver.services.solution_generator import SolutionGenerator

from tests.support import DatabaseTestCase, _FakeProvider, failing_provider, fake_registry

PROBLEM = {
    "title": "Sum a list",
    "description": "Print the sum of [1, 2, 3].",
    "category": "programming",
    "language": "python",
    "difficulty": "easy",
    "tags": ["lists"],
    "ai_model": "gpt-4",
}


class ApiTestCase(DatabaseTestCase):
    async def asyncSetUp(self) -> None:
        await super().asyncSetUp()
        self.provider = _FakeProvider()
        self.executor = MagicMock(spec=Judge0Client)
        self.executor.execute = AsyncMock(
            return_value=ExecutionResult(status="Accepted", status_id=3, output="6\n")
        )

        async def _get_db():
            async with self.session_factory() as session:
                try:
                    yield session
                    await session.commit()
                except Exception:
                    await session.rollback()
                    raise

        def _get_problem_service(session: AsyncSession = Depends(get_db)) -> ProblemService:
            generator = SolutionGenerator(fake_registry(self.provider))
            return ProblemService(session, generator, self.executor)

        app.dependency_overrides[get_db] = _get_db
        app.dependency_overrides[get_problem_service] = _get_problem_service
        self.client = httpx.AsyncClient(
            transport=httpx.ASGITransport(app=app), base_url="http://test"
        )

    async def asyncTearDown(self) -> None:
        await self.client.aclose()
        app.dependency_overrides.clear()
        await super().asyncTearDown()

    async def register(self, username: str = "alice") -> dict:
        resp = await self.client.post(
            "/api/auth/register",
            json={
                "username": username,
                "email": f"{username}@example.com",
                "password": "secret123",
            },
        )
        self.assertEqual(resp.status_code, 201, resp.text)
        return {"Authorization": f"Bearer {resp.json()['access_token']}"}

    async def set_user(self, username: str, **values) -> None:
        await self.session.execute(
            update(User).where(User.username == username).values(**values)
        )
        await self.session.commit()

    async def solve(self, headers: dict) -> dict:
        resp = await self.client.post("/api/problems", json=PROBLEM, headers=headers)
        self.assertEqual(resp.status_code, 201, resp.text)
        return resp.json()["problem"]


class AuthApiTests(ApiTestCase):
    async def test_health(self) -> None:
        resp = await self.client.get("/health")

        self.assertEqual(resp.json(), {"status": "ok"})

    async def test_register_login_and_me(self) -> None:
        await self.register()

        resp = await self.client.post(
            "/api/auth/login",
            json={"login": "alice@example.com", "password": "secret123"},
        )
        self.assertEqual(resp.status_code, 200)
        headers = {"Authorization": f"Bearer {resp.json()['access_token']}"}

        me = (await self.client.get("/api/auth/me", headers=headers)).json()
        self.assertEqual(me["username"], "alice")
        self.assertEqual(me["plan"], "free")
        self.assertEqual(me["query_limit"], 50)
        self.assertNotIn("password_hash", me)

    async def test_duplicate_username(self) -> None:
        await self.register()

        resp = await self.client.post(
            "/api/auth/register",
            json={"username": "alice", "email": "other@example.com", "password": "secret123"},
        )

        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["detail"], "Username already taken")

    async def test_username_cannot_look_like_an_email(self) -> None:
        await self.register("bob")

        resp = await self.client.post(
            "/api/auth/register",
            json={
                "username": "bob@example.com",
                "email": "eve@example.com",
                "password": "secret123",
            },
        )

        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["detail"], "Username cannot contain '@'")

    async def test_email_login_ignores_usernames_equal_to_the_email(self) -> None:
        await self.register("bob")
        # Stored directly, as an account created before usernames were restricted
        await self.create_user("bob@example.com")

        resp = await self.client.post(
            "/api/auth/login",
            json={"login": "bob@example.com", "password": "secret123"},
        )
        self.assertEqual(resp.status_code, 200, resp.text)
        headers = {"Authorization": f"Bearer {resp.json()['access_token']}"}

        me = (await self.client.get("/api/auth/me", headers=headers)).json()
        self.assertEqual(me["username"], "bob")

    async def test_wrong_password(self) -> None:
        await self.register()

        resp = await self.client.post(
            "/api/auth/login", json={"login": "alice", "password": "nope"}
        )

        self.assertEqual(resp.status_code, 401)

    async def test_deactivated_user_is_rejected(self) -> None:
        headers = await self.register()
        await self.set_user("alice", is_active=False)

        resp = await self.client.get("/api/auth/me", headers=headers)

        self.assertEqual(resp.status_code, 403)

    async def test_missing_or_bad_token(self) -> None:
        self.assertEqual((await self.client.get("/api/problems")).status_code, 401)

        resp = await self.client.get(
            "/api/problems", headers={"Authorization": "Bearer not-a-jwt"}
        )
        self.assertEqual(resp.status_code, 401)
        self.assertEqual(resp.json()["detail"], "Invalid or expired token")


class ProblemApiTests(ApiTestCase):
    async def test_solve_returns_problem_with_solution(self) -> None:
        headers = await self.register()

        problem = await self.solve(headers)

        self.assertEqual(problem["status"], "solved")
        solution = problem["solution"]
        self.assertEqual(solution["code"]["snippet"], "print(sum([1, 2, 3]))")
        self.assertEqual(solution["code"]["optimized_version"], "print(1 + 2 + 3)")
        self.assertEqual(solution["steps"][0]["step_number"], 1)
        self.assertEqual(solution["execution_result"]["status"], "Accepted")
        self.assertEqual(solution["token_usage"]["total"], 200)

        me = (await self.client.get("/api/auth/me", headers=headers)).json()
        self.assertEqual(me["monthly_queries"], 1)

    async def test_generation_failure_returns_500_with_failed_problem(self) -> None:
        headers = await self.register()
        self.provider = failing_provider("Rate limit reached")

        resp = await self.client.post("/api/problems", json=PROBLEM, headers=headers)

        self.assertEqual(resp.status_code, 500)
        body = resp.json()
        self.assertEqual(body["message"], "Failed to generate solution")
        self.assertEqual(body["error"], "AI service error: Rate limit reached")
        self.assertEqual(body["problem"]["status"], "failed")
        self.assertIsNone(body["problem"]["solution_id"])

    async def test_quota_exhausted_returns_429(self) -> None:
        headers = await self.register()
        await self.set_user("alice", query_limit=0)

        resp = await self.client.post("/api/problems", json=PROBLEM, headers=headers)

        self.assertEqual(resp.status_code, 429)
        detail = resp.json()["detail"]
        self.assertEqual(detail["usage"], {"current": 0, "limit": 0, "plan": "free"})
        self.assertIn("Monthly query limit", detail["message"])

    async def test_invalid_submission_is_rejected(self) -> None:
        headers = await self.register()

        for body in (dict(PROBLEM, category="poetry"), dict(PROBLEM, title="  ")):
            with self.subTest(body=body):
                resp = await self.client.post("/api/problems", json=body, headers=headers)
                self.assertEqual(resp.status_code, 422)

    async def test_list_and_stats(self) -> None:
        headers = await self.register()
        await self.solve(headers)
        await self.solve(headers)

        resp = await self.client.get(
            "/api/problems", params={"limit": 1, "status": "solved"}, headers=headers
        )
        body = resp.json()
        self.assertEqual(len(body["items"]), 1)
        self.assertEqual(body["pagination"], {"total": 2, "page": 1, "pages": 2, "limit": 1})
        self.assertIsNotNone(body["items"][0]["solution"])

        stats = (await self.client.get("/api/problems/stats/summary", headers=headers)).json()
        self.assertEqual(stats["summary"]["total"], 2)
        self.assertEqual(stats["summary"]["solved"], 2)
        self.assertEqual(stats["by_category"], [{"category": "programming", "count": 2}])

    async def test_get_counts_views_and_checks_owner(self) -> None:
        headers = await self.register()
        problem = await self.solve(headers)
        url = f"/api/problems/{problem['id']}"

        await self.client.get(url, headers=headers)
        resp = await self.client.get(url, headers=headers)
        self.assertEqual(resp.json()["views"], 2)

        other = await self.register("mallory")
        self.assertEqual((await self.client.get(url, headers=other)).status_code, 403)
        self.assertEqual(
            (await self.client.get("/api/problems/9999", headers=headers)).status_code, 404
        )

    async def test_bookmark_and_feedback(self) -> None:
        headers = await self.register()
        problem = await self.solve(headers)
        base = f"/api/problems/{problem['id']}"

        resp = await self.client.put(f"{base}/bookmark", headers=headers)
        self.assertEqual(resp.json(), {"message": "Problem bookmarked", "bookmarked": True})

        resp = await self.client.post(
            f"{base}/feedback", json={"rating": 4, "comment": "Helpful"}, headers=headers
        )
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["feedback"], {"rating": 4, "comment": "Helpful"})

        resp = await self.client.post(f"{base}/feedback", json={"rating": 9}, headers=headers)
        self.assertEqual(resp.status_code, 422)

    async def test_delete_cascades_to_solution(self) -> None:
        headers = await self.register()
        problem = await self.solve(headers)

        resp = await self.client.delete(f"/api/problems/{problem['id']}", headers=headers)

        self.assertEqual(resp.status_code, 200)
        count = await self.session.execute(select(func.count()).select_from(Solution))
        self.assertEqual(count.scalar(), 0)

    async def test_languages(self) -> None:
        resp = await self.client.get("/api/problems/languages")

        self.assertIn("python", resp.json())


class AdminApiTests(ApiTestCase):
    async def asyncSetUp(self) -> None:
        await super().asyncSetUp()
        self.admin = await self.register("root")
        await self.set_user("root", role=UserRole.ADMIN)

    async def test_regular_users_are_forbidden(self) -> None:
        headers = await self.register()

        resp = await self.client.get("/api/admin/stats", headers=headers)

        self.assertEqual(resp.status_code, 403)

    async def test_stats(self) -> None:
        await self.solve(await self.register())

        stats = (await self.client.get("/api/admin/stats", headers=self.admin)).json()

        self.assertEqual(stats["users"]["total"], 2)
        self.assertEqual(stats["users"]["admins"], 1)
        self.assertEqual(stats["problems"]["solved"], 1)
        self.assertEqual(stats["api_usage"]["total_queries"], 1)
        self.assertEqual(stats["subscriptions"], [{"plan": "free", "count": 2}])
        self.assertEqual(len(stats["recent_activity"]), 1)

    async def test_plan_change_applies_plan_limit(self) -> None:
        await self.register()
        users = (await self.client.get(
            "/api/admin/users", params={"search": "alice"}, headers=self.admin
        )).json()
        user_id = users["items"][0]["id"]

        resp = await self.client.put(
            f"/api/admin/users/{user_id}", json={"plan": "pro"}, headers=self.admin
        )

        self.assertEqual(resp.json()["plan"], "pro")
        self.assertEqual(resp.json()["query_limit"], 500)

    async def test_admin_cannot_delete_self(self) -> None:
        me = (await self.client.get("/api/auth/me", headers=self.admin)).json()

        resp = await self.client.delete(f"/api/admin/users/{me['id']}", headers=self.admin)

        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["detail"], "Cannot delete your own account")

    async def test_delete_user_removes_problems_and_solutions(self) -> None:
        headers = await self.register()
        problem = await self.solve(headers)

        detail = (await self.client.get(
            f"/api/admin/users/{problem['user_id']}", headers=self.admin
        )).json()
        self.assertEqual(detail["problems_by_status"]["solved"], 1)

        resp = await self.client.delete(
            f"/api/admin/users/{problem['user_id']}", headers=self.admin
        )
        self.assertEqual(resp.status_code, 200)

        listing = (await self.client.get("/api/admin/problems", headers=self.admin)).json()
        self.assertEqual(listing["total"], 0)
        count = await self.session.execute(select(func.count()).select_from(Solution))
        self.assertEqual(count.scalar(), 0)


if __name__ == "__main__":
    unittest.main()
