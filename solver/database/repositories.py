"""Repository pattern implementations for database operations."""

from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import Select, delete, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from solver.database.models import (
    Difficulty,
    Problem,
    ProblemCategory,
    ProblemStatus,
    Solution,
    SubscriptionPlan,
    User,
    UserRole,
)

PROBLEM_SORT_FIELDS = {
    "createdAt": Problem.created_at,
    "created_at": Problem.created_at,
    "updated_at": Problem.updated_at,
    "title": Problem.title,
    "views": Problem.views,
    "difficulty": Problem.difficulty,
    "status": Problem.status,
}


class UserRepository:
    """Repository for User model operations."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, user_id: int) -> Optional[User]:
        """Get user by database ID."""
        return await self.session.get(User, user_id)

    async def get_by_username(self, username: str) -> Optional[User]:
        result = await self.session.execute(
            select(User).where(User.username == username)
        )
        return result.scalar_one_or_none()

    async def get_by_email(self, email: str) -> Optional[User]:
        result = await self.session.execute(
            select(User).where(User.email == email.lower())
        )
        return result.scalar_one_or_none()

    async def get_by_login(self, login: str) -> Optional[User]:
        """Get user by email when the login contains '@', by username otherwise."""
        if "@" in login:
            return await self.get_by_email(login)
        return await self.get_by_username(login)

    async def create(
        self,
        username: str,
        email: str,
        password_hash: str,
        role: UserRole = UserRole.USER,
        plan: SubscriptionPlan = SubscriptionPlan.FREE,
        query_limit: int = 50,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
    ) -> User:
        """Create new user record."""
        now = datetime.utcnow()
        user = User(
            username=username,
            email=email.lower(),
            password_hash=password_hash,
            role=role,
            plan=plan,
            query_limit=query_limit,
            first_name=first_name,
            last_name=last_name,
            last_reset_date=now,
            subscription_start=now,
        )
        self.session.add(user)
        await self.session.flush()
        return user

    def _filtered(
        self,
        query: Select,
        search: Optional[str] = None,
        role: Optional[UserRole] = None,
        plan: Optional[SubscriptionPlan] = None,
        is_active: Optional[bool] = None,
    ) -> Select:
        if search:
            search_filter = f"%{search}%"
            query = query.where(
                (User.username.ilike(search_filter)) | (User.email.ilike(search_filter))
            )
        if role is not None:
            query = query.where(User.role == role)
        if plan is not None:
            query = query.where(User.plan == plan)
        if is_active is not None:
            query = query.where(User.is_active == is_active)
        return query

    async def get_all(
        self,
        offset: int = 0,
        limit: int = 100,
        search: Optional[str] = None,
        role: Optional[UserRole] = None,
        plan: Optional[SubscriptionPlan] = None,
        is_active: Optional[bool] = None,
    ) -> List[User]:
        """Get all users with pagination and optional filters."""
        query = self._filtered(
            select(User).order_by(User.created_at.desc(), User.id.desc()),
            search=search,
            role=role,
            plan=plan,
            is_active=is_active,
        )
        result = await self.session.execute(query.offset(offset).limit(limit))
        return list(result.scalars().all())

    async def count(
        self,
        search: Optional[str] = None,
        role: Optional[UserRole] = None,
        plan: Optional[SubscriptionPlan] = None,
        is_active: Optional[bool] = None,
    ) -> int:
        """Count users matching the filters."""
        query = self._filtered(
            select(func.count(User.id)),
            search=search,
            role=role,
            plan=plan,
            is_active=is_active,
        )
        result = await self.session.execute(query)
        return result.scalar() or 0

    async def count_new_since(self, days: int = 30) -> int:
        """Count users registered in the last ``days`` days."""
        since = datetime.utcnow() - timedelta(days=days)
        result = await self.session.execute(
            select(func.count(User.id)).where(User.created_at >= since)
        )
        return result.scalar() or 0

    async def get_usage_totals(self) -> Dict[str, float]:
        """Sum of lifetime queries and average monthly queries across users."""
        result = await self.session.execute(
            select(
                func.sum(User.total_queries),
                func.avg(User.monthly_queries),
            )
        )
        total, avg_monthly = result.one()
        return {
            "total_queries": int(total or 0),
            "avg_monthly_queries": float(avg_monthly or 0.0),
        }

    async def get_plan_distribution(self) -> List[dict]:
        """Count users per subscription plan."""
        result = await self.session.execute(
            select(User.plan, func.count(User.id).label("count")).group_by(User.plan)
        )
        return [{"plan": row.plan.value, "count": row.count} for row in result.all()]

    async def delete(self, user: User) -> None:
        await self.session.delete(user)
        await self.session.flush()


class ProblemRepository:
    """Repository for Problem model operations."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(
        self,
        user_id: int,
        title: str,
        description: str,
        category: ProblemCategory,
        language: Optional[str] = None,
        difficulty: Difficulty = Difficulty.MEDIUM,
        tags: Optional[List[str]] = None,
        status: ProblemStatus = ProblemStatus.PENDING,
    ) -> Problem:
        """Create new problem record."""
        problem = Problem(
            user_id=user_id,
            title=title,
            description=description,
            category=category,
            language=language,
            difficulty=difficulty,
            tags=tags or [],
            status=status,
        )
        self.session.add(problem)
        await self.session.flush()
        return problem

    async def get_by_id(self, problem_id: int) -> Optional[Problem]:
        """Get problem by ID."""
        return await self.session.get(Problem, problem_id)

    def _filtered(
        self,
        query: Select,
        user_id: Optional[int] = None,
        category: Optional[ProblemCategory] = None,
        status: Optional[ProblemStatus] = None,
        difficulty: Optional[Difficulty] = None,
        search: Optional[str] = None,
    ) -> Select:
        if user_id is not None:
            query = query.where(Problem.user_id == user_id)
        if category is not None:
            query = query.where(Problem.category == category)
        if status is not None:
            query = query.where(Problem.status == status)
        if difficulty is not None:
            query = query.where(Problem.difficulty == difficulty)
        if search:
            search_filter = f"%{search}%"
            query = query.where(
                or_(
                    Problem.title.ilike(search_filter),
                    Problem.description.ilike(search_filter),
                )
            )
        return query

    async def get_many(
        self,
        offset: int = 0,
        limit: int = 10,
        sort_by: str = "created_at",
        order: str = "desc",
        **filters: Any,
    ) -> List[Problem]:
        """Get problems with filters, sorting and pagination."""
        column = PROBLEM_SORT_FIELDS.get(sort_by, Problem.created_at)
        ordering = column.desc() if order == "desc" else column.asc()
        tiebreak = Problem.id.desc() if order == "desc" else Problem.id.asc()

        query = self._filtered(select(Problem), **filters)
        query = query.order_by(ordering, tiebreak).offset(offset).limit(limit)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def count(self, **filters: Any) -> int:
        """Count problems matching the filters."""
        result = await self.session.execute(
            self._filtered(select(func.count(Problem.id)), **filters)
        )
        return result.scalar() or 0

    async def get_user_problems(self, user_id: int) -> List[Problem]:
        """Get every problem owned by a user."""
        result = await self.session.execute(
            select(Problem).where(Problem.user_id == user_id)
        )
        return list(result.scalars().all())

    async def count_by_status(self, user_id: Optional[int] = None) -> Dict[str, int]:
        """Count problems per lifecycle status."""
        query = select(Problem.status, func.count(Problem.id).label("count"))
        if user_id is not None:
            query = query.where(Problem.user_id == user_id)
        result = await self.session.execute(query.group_by(Problem.status))
        counts = {status.value: 0 for status in ProblemStatus}
        for row in result.all():
            counts[row.status.value] = row.count
        return counts

    async def count_by_category(self, user_id: Optional[int] = None) -> List[dict]:
        """Count problems per category, most popular first."""
        query = select(Problem.category, func.count(Problem.id).label("count"))
        if user_id is not None:
            query = query.where(Problem.user_id == user_id)
        result = await self.session.execute(
            query.group_by(Problem.category).order_by(func.count(Problem.id).desc())
        )
        return [
            {"category": row.category.value, "count": row.count}
            for row in result.all()
        ]

    async def get_recent(
        self, limit: int = 10, user_id: Optional[int] = None
    ) -> List[Problem]:
        """Get most recently created problems."""
        query = select(Problem).order_by(Problem.created_at.desc(), Problem.id.desc())
        if user_id is not None:
            query = query.where(Problem.user_id == user_id)
        result = await self.session.execute(query.limit(limit))
        return list(result.scalars().all())

    async def delete(self, problem: Problem) -> None:
        await self.session.delete(problem)
        await self.session.flush()


class SolutionRepository:
    """Repository for Solution model operations."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, problem_id: int, **fields: Any) -> Solution:
        """Create new solution record."""
        solution = Solution(problem_id=problem_id, **fields)
        self.session.add(solution)
        await self.session.flush()
        return solution

    async def get_by_id(self, solution_id: int) -> Optional[Solution]:
        """Get solution by ID."""
        return await self.session.get(Solution, solution_id)

    async def get_by_ids(self, solution_ids: Iterable[int]) -> Dict[int, Solution]:
        """Get solutions keyed by ID."""
        ids = [i for i in solution_ids if i is not None]
        if not ids:
            return {}
        result = await self.session.execute(
            select(Solution).where(Solution.id.in_(ids))
        )
        return {s.id: s for s in result.scalars().all()}

    async def delete_for_problem(
        self, problem_id: int, solution_id: Optional[int] = None
    ) -> None:
        """Delete the solution of a problem, by reference and by back-reference."""
        condition = Solution.problem_id == problem_id
        if solution_id is not None:
            condition = or_(condition, Solution.id == solution_id)
        await self.session.execute(delete(Solution).where(condition))
