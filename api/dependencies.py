"""FastAPI dependencies."""

from collections.abc import AsyncGenerator
from datetime import datetime, timedelta
from functools import lru_cache

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from sqlalchemy.ext.asyncio import AsyncSession

from api.config import api_settings
from solver.config import settings
from solver.database import async_session
from solver.database.models import User, UserRole
from solver.database.repositories import UserRepository
from solver.services.code_executor import Judge0Client, build_code_executor
from solver.services.problem_service import ProblemService
from solver.services.providers import ProviderRegistry, build_provider_registry
from solver.services.solution_generator import SolutionGenerator

security = HTTPBearer(auto_error=False)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Get database session."""
    async with async_session() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


@lru_cache
def get_provider_registry() -> ProviderRegistry:
    """Process-wide provider registry built from settings."""
    return build_provider_registry(settings)


@lru_cache
def get_code_executor() -> Judge0Client:
    """Process-wide Judge0 client built from settings."""
    return build_code_executor(settings)


def get_solution_generator(
    registry: ProviderRegistry = Depends(get_provider_registry),
) -> SolutionGenerator:
    return SolutionGenerator(
        registry,
        temperature=settings.ai_temperature,
        max_tokens=settings.ai_max_tokens,
    )


def get_problem_service(
    session: AsyncSession = Depends(get_db),
    generator: SolutionGenerator = Depends(get_solution_generator),
    executor: Judge0Client = Depends(get_code_executor),
) -> ProblemService:
    return ProblemService(session, generator, executor)


def create_access_token(user_id: int) -> str:
    """Create JWT access token."""
    expire = datetime.utcnow() + timedelta(minutes=api_settings.jwt_expire_minutes)
    to_encode = {
        "sub": str(user_id),  # JWT 'sub' claim must be a string
        "exp": expire,
    }
    return jwt.encode(
        to_encode,
        api_settings.jwt_secret,
        algorithm=api_settings.jwt_algorithm,
    )


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    session: AsyncSession = Depends(get_db),
) -> User:
    """Validate JWT token and return the active user."""
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Not authorized to access this route. Please login.",
        headers={"WWW-Authenticate": "Bearer"},
    )

    if credentials is None:
        raise credentials_exception

    try:
        payload = jwt.decode(
            credentials.credentials,
            api_settings.jwt_secret,
            algorithms=[api_settings.jwt_algorithm],
        )
        user_id = int(payload.get("sub"))
    except (JWTError, TypeError, ValueError):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user = await UserRepository(session).get_by_id(user_id)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account has been deactivated",
        )

    return user


async def get_current_admin(user: User = Depends(get_current_user)) -> User:
    """Require the admin role."""
    if user.role != UserRole.ADMIN:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"User role '{user.role.value}' is not authorized to access this route",
        )
    return user
