"""Authentication routes."""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import create_access_token, get_current_user, get_db
from api.schemas import LoginRequest, RegisterRequest, Token, UserResponse
from solver.database.models import User
from solver.services.user_service import UserService

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/register", response_model=Token, status_code=status.HTTP_201_CREATED)
async def register(
    data: RegisterRequest,
    session: AsyncSession = Depends(get_db),
) -> Token:
    """Create an account and return a token for it."""
    user, error = await UserService(session).register(
        username=data.username,
        email=data.email,
        password=data.password,
        first_name=data.first_name,
        last_name=data.last_name,
    )
    if not user:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=error)

    return Token(access_token=create_access_token(user.id))


@router.post("/login", response_model=Token)
async def login(
    data: LoginRequest,
    session: AsyncSession = Depends(get_db),
) -> Token:
    """Authenticate with username or email."""
    user = await UserService(session).authenticate(data.login, data.password)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account has been deactivated",
        )

    return Token(access_token=create_access_token(user.id))


@router.get("/me", response_model=UserResponse)
async def get_me(user: User = Depends(get_current_user)) -> UserResponse:
    """Get the authenticated user."""
    return UserResponse.model_validate(user)
