"""Statistics schemas."""

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel

from api.schemas.problem import ProblemResponse
from api.schemas.user import UserResponse


class CategoryCount(BaseModel):
    """Category with count."""

    category: str
    count: int


class PlanCount(BaseModel):
    """Subscription plan with count."""

    plan: str
    count: int


class ProblemSummary(BaseModel):
    """Per-user problem totals."""

    total: int
    solved: int
    pending: int
    processing: int
    failed: int


class UserStatsResponse(BaseModel):
    summary: ProblemSummary
    by_category: List[CategoryCount]


class RecentProblem(BaseModel):
    id: int
    user_id: int
    title: str
    category: str
    status: str
    created_at: datetime


class UserCounts(BaseModel):
    total: int
    active: int
    admins: int
    new_this_month: int


class ProblemCounts(BaseModel):
    total: int
    solved: int
    pending: int
    processing: int
    failed: int
    by_category: List[CategoryCount]


class ApiUsage(BaseModel):
    total_queries: int
    avg_monthly_queries: float


class StatsResponse(BaseModel):
    """Admin dashboard statistics."""

    users: UserCounts
    problems: ProblemCounts
    api_usage: ApiUsage
    subscriptions: List[PlanCount]
    recent_activity: List[RecentProblem]


class UserDetailResponse(BaseModel):
    """User with problem statistics."""

    user: UserResponse
    problems_by_status: Dict[str, int]
    recent_activity: List[RecentProblem]


class AdminProblemListResponse(BaseModel):
    items: List[ProblemResponse]
    total: int
    page: int
    per_page: int
    message: Optional[str] = None
