"""User service for business logic related to users."""

import hashlib
import hmac
import logging
import re
import secrets
from datetime import datetime
from typing import Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from solver.config import Settings, settings
from solver.database.models import SubscriptionPlan, User, UserRole
from solver.database.repositories import ProblemRepository, UserRepository
from solver.services.problem_service import delete_problem_cascade

logger = logging.getLogger(__name__)

EMAIL_RE = re.compile(r"^\S+@\S+\.\S+$")
PBKDF2_ITERATIONS = 260_000


def hash_password(password: str, salt: Optional[str] = None) -> str:
    """Hash a password as ``pbkdf2_sha256$iterations$salt$hexdigest``."""
    salt = salt or secrets.token_hex(16)
    digest = hashlib.pbkdf2_hmac(
        "sha256", password.encode(), salt.encode(), PBKDF2_ITERATIONS
    ).hex()
    return f"pbkdf2_sha256${PBKDF2_ITERATIONS}${salt}${digest}"


def verify_password(password: str, password_hash: str) -> bool:
    """Check a password against a stored hash."""
    try:
        algorithm, iterations, salt, expected = password_hash.split("$")
    except ValueError:
        return False
    if algorithm != "pbkdf2_sha256":
        return False
    digest = hashlib.pbkdf2_hmac(
        "sha256", password.encode(), salt.encode(), int(iterations)
    ).hex()
    return hmac.compare_digest(digest, expected)


class UserService:
    """Service for user-related business logic."""

    def __init__(self, session: AsyncSession, config: Settings = settings):
        self.session = session
        self.config = config
        self.user_repo = UserRepository(session)
        self.problem_repo = ProblemRepository(session)

    async def register(
        self,
        username: str,
        email: str,
        password: str,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
    ) -> Tuple[Optional[User], str]:
        """
        Create a new account on the free plan.

        Returns:
            tuple(user or None, error_message)
        """
        username = username.strip()
        email = email.strip().lower()

        if not 3 <= len(username) <= 30:
            return None, "Username must be between 3 and 30 characters"
        if "@" in username:
            return None, "Username cannot contain '@'"
        if not EMAIL_RE.match(email):
            return None, "Please enter a valid email"
        if len(password) < 6:
            return None, "Password must be at least 6 characters"

        if await self.user_repo.get_by_username(username):
            return None, "Username already taken"
        if await self.user_repo.get_by_email(email):
            return None, "Email already registered"

        user = await self.user_repo.create(
            username=username,
            email=email,
            password_hash=hash_password(password),
            plan=SubscriptionPlan.FREE,
            query_limit=self.config.plan_query_limit(SubscriptionPlan.FREE.value),
            first_name=first_name,
            last_name=last_name,
        )
        await self.session.commit()
        logger.info(f"Registered user {user.id} ({user.username})")
        return user, ""

    async def authenticate(self, login: str, password: str) -> Optional[User]:
        """Return the user if the credentials match, recording the login time."""
        user = await self.user_repo.get_by_login(login.strip())
        if not user or not verify_password(password, user.password_hash):
            return None

        user.last_login = datetime.utcnow()
        await self.session.commit()
        return user

    async def update_user(
        self,
        user: User,
        acting_admin_id: int,
        role: Optional[UserRole] = None,
        is_active: Optional[bool] = None,
        plan: Optional[SubscriptionPlan] = None,
        query_limit: Optional[int] = None,
    ) -> Tuple[bool, str]:
        """
        Apply admin changes to a user.

        Changing the plan also applies the plan's limit unless an explicit
        query_limit is given.

        Returns:
            tuple(success, error_message)
        """
        if user.id == acting_admin_id and role == UserRole.USER:
            return False, "Cannot demote yourself"

        if role is not None:
            user.role = role
        if is_active is not None:
            user.is_active = is_active
        if plan is not None:
            user.plan = plan
            user.subscription_start = datetime.utcnow()
            if query_limit is None:
                user.query_limit = self.config.plan_query_limit(plan.value)
        if query_limit is not None:
            user.query_limit = query_limit

        await self.session.commit()
        return True, ""

    async def delete_user(self, user: User, acting_admin_id: int) -> Tuple[bool, str]:
        """Delete a user with all of their problems and solutions."""
        if user.id == acting_admin_id:
            return False, "Cannot delete your own account"

        user_id = user.id
        problems = await self.problem_repo.get_user_problems(user_id)
        for problem in problems:
            await delete_problem_cascade(self.session, problem)
        await self.user_repo.delete(user)
        await self.session.commit()

        logger.info(f"Deleted user {user_id} and {len(problems)} problems")
        return True, ""
