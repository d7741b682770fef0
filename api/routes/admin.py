"""Admin routes: dashboard statistics, user and problem management."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_current_admin, get_db
from api.schemas.problem import ProblemResponse
from api.schemas.stats import (
    AdminProblemListResponse,
    ApiUsage,
    CategoryCount,
    PlanCount,
    ProblemCounts,
    RecentProblem,
    StatsResponse,
    UserCounts,
    UserDetailResponse,
)
from api.schemas.user import UserListResponse, UserResponse, UserUpdate
from solver.database.models import (
    Problem,
    ProblemCategory,
    ProblemStatus,
    SubscriptionPlan,
    User,
    UserRole,
)
from solver.database.repositories import (
    ProblemRepository,
    SolutionRepository,
    UserRepository,
)
from solver.services.problem_service import delete_problem_cascade
from solver.services.user_service import UserService

router = APIRouter(prefix="/api/admin", tags=["admin"])
logger = logging.getLogger(__name__)


def _recent(problem: Problem) -> RecentProblem:
    return RecentProblem(
        id=problem.id,
        user_id=problem.user_id,
        title=problem.title,
        category=problem.category.value,
        status=problem.status.value,
        created_at=problem.created_at,
    )


async def _get_user_or_404(session: AsyncSession, user_id: int) -> User:
    user = await UserRepository(session).get_by_id(user_id)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found",
        )
    return user


@router.get("/stats", response_model=StatsResponse)
async def get_stats(
    session: AsyncSession = Depends(get_db),
    _: User = Depends(get_current_admin),
) -> StatsResponse:
    """Get dashboard statistics."""
    user_repo = UserRepository(session)
    problem_repo = ProblemRepository(session)

    by_status = await problem_repo.count_by_status()
    by_category = await problem_repo.count_by_category()
    usage = await user_repo.get_usage_totals()
    plans = await user_repo.get_plan_distribution()
    recent = await problem_repo.get_recent(limit=10)

    return StatsResponse(
        users=UserCounts(
            total=await user_repo.count(),
            active=await user_repo.count(is_active=True),
            admins=await user_repo.count(role=UserRole.ADMIN),
            new_this_month=await user_repo.count_new_since(days=30),
        ),
        problems=ProblemCounts(
            total=sum(by_status.values()),
            by_category=[CategoryCount(**c) for c in by_category],
            **by_status,
        ),
        api_usage=ApiUsage(**usage),
        subscriptions=[PlanCount(**p) for p in plans],
        recent_activity=[_recent(p) for p in recent],
    )


@router.get("/users", response_model=UserListResponse)
async def list_users(
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    search: Optional[str] = None,
    role: Optional[UserRole] = None,
    plan: Optional[SubscriptionPlan] = None,
    is_active: Optional[bool] = None,
    session: AsyncSession = Depends(get_db),
    _: User = Depends(get_current_admin),
) -> UserListResponse:
    """Get paginated list of users."""
    repo = UserRepository(session)
    filters = dict(search=search, role=role, plan=plan, is_active=is_active)

    offset = (page - 1) * per_page
    users = await repo.get_all(offset=offset, limit=per_page, **filters)
    total = await repo.count(**filters)

    return UserListResponse(
        items=[UserResponse.model_validate(u) for u in users],
        total=total,
        page=page,
        per_page=per_page,
    )


@router.get("/users/{user_id}", response_model=UserDetailResponse)
async def get_user(
    user_id: int,
    session: AsyncSession = Depends(get_db),
    _: User = Depends(get_current_admin),
) -> UserDetailResponse:
    """Get user by ID with their problem statistics."""
    user = await _get_user_or_404(session, user_id)
    problem_repo = ProblemRepository(session)

    by_status = await problem_repo.count_by_status(user_id=user.id)
    recent = await problem_repo.get_recent(limit=5, user_id=user.id)

    return UserDetailResponse(
        user=UserResponse.model_validate(user),
        problems_by_status=by_status,
        recent_activity=[_recent(p) for p in recent],
    )


@router.put("/users/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: int,
    update_data: UserUpdate,
    session: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin),
) -> UserResponse:
    """Update role, activation, plan or query limit."""
    user = await _get_user_or_404(session, user_id)

    ok, error = await UserService(session).update_user(
        user,
        acting_admin_id=admin.id,
        role=update_data.role,
        is_active=update_data.is_active,
        plan=update_data.plan,
        query_limit=update_data.query_limit,
    )
    if not ok:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=error)

    logger.info(f"Admin {admin.id} updated user {user.id}")
    return UserResponse.model_validate(user)


@router.delete("/users/{user_id}")
async def delete_user(
    user_id: int,
    session: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin),
) -> dict:
    """Delete user and all of their problems."""
    user = await _get_user_or_404(session, user_id)

    ok, error = await UserService(session).delete_user(user, acting_admin_id=admin.id)
    if not ok:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=error)

    return {"message": "User and associated data deleted successfully"}


@router.get("/problems", response_model=AdminProblemListResponse)
async def list_problems(
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    category: Optional[ProblemCategory] = None,
    status_filter: Optional[ProblemStatus] = Query(None, alias="status"),
    user_id: Optional[int] = None,
    search: Optional[str] = None,
    session: AsyncSession = Depends(get_db),
    _: User = Depends(get_current_admin),
) -> AdminProblemListResponse:
    """Get paginated list of problems across all users."""
    repo = ProblemRepository(session)
    filters = dict(
        user_id=user_id,
        category=category,
        status=status_filter,
        search=search,
    )

    problems = await repo.get_many(
        offset=(page - 1) * per_page,
        limit=per_page,
        **filters,
    )
    total = await repo.count(**filters)
    solutions = await SolutionRepository(session).get_by_ids(
        p.solution_id for p in problems
    )

    return AdminProblemListResponse(
        items=[
            ProblemResponse.from_models(p, solutions.get(p.solution_id))
            for p in problems
        ],
        total=total,
        page=page,
        per_page=per_page,
    )


@router.delete("/problems/{problem_id}")
async def delete_problem(
    problem_id: int,
    session: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin),
) -> dict:
    """Delete any problem and its solution."""
    problem = await ProblemRepository(session).get_by_id(problem_id)
    if not problem:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Problem not found",
        )

    await delete_problem_cascade(session, problem)
    await session.commit()

    logger.info(f"Admin {admin.id} deleted problem {problem_id}")
    return {"message": "Problem deleted successfully"}
