import unittest
from datetime import datetime
from typing import List, Optional

from aiohttp import test_utils, web

from solver.database.connection import build_engine, build_session_factory, init_db
from solver.database.models import SubscriptionPlan, User, UserRole
from solver.exceptions import GenerationFailed
from solver.services.providers import CompletionResult, ProviderRegistry
from solver.services.user_service import hash_password

SAMPLE_ANSWER = """Use the built-in sum over the list.

1. Read the numbers
2. Add them together

```python
print(sum([1, 2, 3]))
```

A variant that avoids the intermediate list:

```python
print(1 + 2 + 3)
```
"""


class _FakeProvider:
    name = "Fake"

    def __init__(
        self,
        text: str = SAMPLE_ANSWER,
        error: Optional[Exception] = None,
    ) -> None:
        self.text = text
        self.error = error
        self.calls: List[dict] = []

    @property
    def is_configured(self) -> bool:
        return True

    async def complete(self, **kwargs) -> CompletionResult:
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return CompletionResult(
            text=self.text,
            model=kwargs["model"],
            prompt_tokens=120,
            completion_tokens=80,
            total_tokens=200,
        )

    async def close(self) -> None:
        pass


def fake_registry(provider: Optional[_FakeProvider] = None) -> ProviderRegistry:
    registry = ProviderRegistry(default_family="fake")
    registry.register(
        "fake",
        provider or _FakeProvider(),
        models={"gpt-4": "gpt-4-0613", "gpt-3.5-turbo": "gpt-3.5-turbo-0125"},
        prefixes=("gpt",),
    )
    return registry


def failing_provider(reason: str = "Rate limit reached") -> _FakeProvider:
    return _FakeProvider(error=GenerationFailed(reason))


class DatabaseTestCase(unittest.IsolatedAsyncioTestCase):
    """Fresh in-memory database per test."""

    async def asyncSetUp(self) -> None:
        self.engine = build_engine("sqlite+aiosqlite://")
        await init_db(self.engine)
        self.session_factory = build_session_factory(self.engine)
        self.session = self.session_factory()

    async def asyncTearDown(self) -> None:
        await self.session.close()
        await self.engine.dispose()

    async def create_user(
        self,
        username: str = "alice",
        password: str = "secret123",
        role: UserRole = UserRole.USER,
        query_limit: int = 50,
        monthly_queries: int = 0,
    ) -> User:
        now = datetime.utcnow()
        user = User(
            username=username,
            email=f"{username}@example.com",
            password_hash=hash_password(password),
            role=role,
            is_active=True,
            plan=SubscriptionPlan.FREE,
            query_limit=query_limit,
            monthly_queries=monthly_queries,
            total_queries=monthly_queries,
            last_reset_date=now,
            subscription_start=now,
        )
        self.session.add(user)
        await self.session.commit()
        return user


async def start_stub_server(*routes: web.RouteDef) -> test_utils.TestServer:
    """Serve the given aiohttp routes on a local port."""
    app = web.Application()
    app.add_routes(routes)
    server = test_utils.TestServer(app)
    await server.start_server()
    return server
