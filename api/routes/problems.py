"""Problem submission and management routes."""

import math
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_current_user, get_db, get_problem_service
from api.schemas.problem import (
    BookmarkResponse,
    FeedbackRequest,
    Pagination,
    ProblemCreate,
    ProblemListResponse,
    ProblemResponse,
    SolutionResponse,
    SolveResponse,
)
from api.schemas.stats import CategoryCount, ProblemSummary, UserStatsResponse
from solver.database.models import (
    Difficulty,
    Problem,
    ProblemCategory,
    ProblemStatus,
    User,
    UserRole,
)
from solver.database.repositories import ProblemRepository, SolutionRepository
from solver.exceptions import QuotaExceeded
from solver.services.code_executor import Judge0Client
from solver.services.problem_service import ProblemService

router = APIRouter(prefix="/api/problems", tags=["problems"])


async def _get_problem_or_404(session: AsyncSession, problem_id: int) -> Problem:
    problem = await ProblemRepository(session).get_by_id(problem_id)
    if not problem:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Problem not found",
        )
    return problem


def _ensure_access(problem: Problem, user: User, allow_admin: bool = True) -> None:
    if problem.user_id == user.id:
        return
    if allow_admin and user.role == UserRole.ADMIN:
        return
    raise HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail="Not authorized to access this problem",
    )


@router.post("", response_model=SolveResponse, status_code=status.HTTP_201_CREATED)
async def create_problem(
    data: ProblemCreate,
    user: User = Depends(get_current_user),
    service: ProblemService = Depends(get_problem_service),
):
    """Create a problem and solve it."""
    try:
        outcome = await service.solve(
            user,
            title=data.title,
            description=data.description,
            category=data.category,
            language=data.language,
            difficulty=data.difficulty,
            tags=data.tags,
            ai_model=data.ai_model,
        )
    except QuotaExceeded as e:
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail={
                "message": str(e),
                "usage": {"current": e.current, "limit": e.limit, "plan": e.plan},
            },
        )

    if not outcome.solved:
        problem = ProblemResponse.from_models(outcome.problem)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "message": "Failed to generate solution",
                "error": outcome.error,
                "problem": problem.model_dump(mode="json"),
            },
        )

    return SolveResponse(
        message="Problem solved successfully",
        problem=ProblemResponse.from_models(outcome.problem, outcome.solution),
    )


@router.get("", response_model=ProblemListResponse)
async def list_problems(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    category: Optional[ProblemCategory] = None,
    status_filter: Optional[ProblemStatus] = Query(None, alias="status"),
    difficulty: Optional[Difficulty] = None,
    search: Optional[str] = None,
    sort_by: str = "created_at",
    order: str = Query("desc", pattern="^(asc|desc)$"),
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
) -> ProblemListResponse:
    """Get the user's problems with their solutions."""
    repo = ProblemRepository(session)
    filters = dict(
        user_id=user.id,
        category=category,
        status=status_filter,
        difficulty=difficulty,
        search=search,
    )

    problems = await repo.get_many(
        offset=(page - 1) * limit,
        limit=limit,
        sort_by=sort_by,
        order=order,
        **filters,
    )
    total = await repo.count(**filters)
    solutions = await SolutionRepository(session).get_by_ids(
        p.solution_id for p in problems
    )

    return ProblemListResponse(
        items=[
            ProblemResponse.from_models(p, solutions.get(p.solution_id))
            for p in problems
        ],
        pagination=Pagination(
            total=total,
            page=page,
            pages=math.ceil(total / limit),
            limit=limit,
        ),
    )


@router.get("/stats/summary", response_model=UserStatsResponse)
async def get_summary(
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
) -> UserStatsResponse:
    """Get the user's problem statistics."""
    repo = ProblemRepository(session)
    by_status = await repo.count_by_status(user_id=user.id)
    by_category = await repo.count_by_category(user_id=user.id)

    return UserStatsResponse(
        summary=ProblemSummary(total=sum(by_status.values()), **by_status),
        by_category=[CategoryCount(**c) for c in by_category],
    )


@router.get("/languages", response_model=List[str])
async def get_languages() -> List[str]:
    """Languages that can be executed in the sandbox."""
    return Judge0Client.supported_languages()


@router.get("/{problem_id}", response_model=ProblemResponse)
async def get_problem(
    problem_id: int,
    user: User = Depends(get_current_user),
    service: ProblemService = Depends(get_problem_service),
) -> ProblemResponse:
    """Get a problem with its solution. Counts as a view."""
    problem = await _get_problem_or_404(service.session, problem_id)
    _ensure_access(problem, user)

    await service.record_view(problem)
    solution = await service.get_solution(problem)
    return ProblemResponse.from_models(problem, solution)


@router.delete("/{problem_id}")
async def delete_problem(
    problem_id: int,
    user: User = Depends(get_current_user),
    service: ProblemService = Depends(get_problem_service),
) -> dict:
    """Delete a problem and its solution."""
    problem = await _get_problem_or_404(service.session, problem_id)
    _ensure_access(problem, user)

    await service.delete_problem(problem)
    return {"message": "Problem deleted successfully"}


@router.put("/{problem_id}/bookmark", response_model=BookmarkResponse)
async def toggle_bookmark(
    problem_id: int,
    user: User = Depends(get_current_user),
    service: ProblemService = Depends(get_problem_service),
) -> BookmarkResponse:
    """Toggle bookmark status."""
    problem = await _get_problem_or_404(service.session, problem_id)
    _ensure_access(problem, user, allow_admin=False)

    bookmarked = await service.toggle_bookmark(problem)
    return BookmarkResponse(
        message=f"Problem {'bookmarked' if bookmarked else 'unbookmarked'}",
        bookmarked=bookmarked,
    )


@router.post("/{problem_id}/feedback", response_model=SolutionResponse)
async def add_feedback(
    problem_id: int,
    data: FeedbackRequest,
    user: User = Depends(get_current_user),
    service: ProblemService = Depends(get_problem_service),
) -> SolutionResponse:
    """Rate the solution of a problem."""
    problem = await _get_problem_or_404(service.session, problem_id)
    _ensure_access(problem, user, allow_admin=False)

    solution = await service.get_solution(problem)
    if not solution:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Problem has no solution",
        )

    await service.add_feedback(solution, data.rating, data.comment)
    return SolutionResponse.from_model(solution)
