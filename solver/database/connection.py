"""Engine and session factory for the solver database."""

from pathlib import Path
from typing import Any, Dict, Optional

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from solver.config import settings
from solver.database.models import Base

SQLITE_PREFIX = "sqlite+aiosqlite:///"
SQLITE_MEMORY_URLS = ("sqlite+aiosqlite://", f"{SQLITE_PREFIX}:memory:")


def _ensure_sqlite_dir(url: str) -> None:
    """Create the parent directory of a file-backed SQLite database."""
    if not url.startswith(SQLITE_PREFIX):
        return
    db_path = url[len(SQLITE_PREFIX):]
    if db_path.startswith("./"):
        db_path = db_path[2:]
    if db_path:
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)


def build_engine(url: str, echo: bool = False) -> AsyncEngine:
    """Create an async engine. In-memory SQLite keeps a single shared connection."""
    options: Dict[str, Any] = {"echo": echo}
    if url in SQLITE_MEMORY_URLS:
        options["poolclass"] = StaticPool
        options["connect_args"] = {"check_same_thread": False}
    else:
        _ensure_sqlite_dir(url)
        options["pool_pre_ping"] = True
    return create_async_engine(url, **options)


def build_session_factory(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    # Committed objects stay readable without a lazy refresh
    return async_sessionmaker(bind, class_=AsyncSession, expire_on_commit=False)


engine = build_engine(settings.database_url, echo=settings.debug)
async_session = build_session_factory(engine)


async def init_db(bind: Optional[AsyncEngine] = None) -> None:
    """Create all tables on the given engine (the application engine by default)."""
    async with (bind or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    """Close database connections."""
    await engine.dispose()
