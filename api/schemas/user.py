"""User schemas."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from solver.database.models import SubscriptionPlan, UserRole


class UserResponse(BaseModel):
    """User response schema. Never includes the password hash."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    email: str
    role: UserRole
    is_active: bool
    total_queries: int
    monthly_queries: int
    last_reset_date: datetime
    plan: SubscriptionPlan
    query_limit: int
    first_name: Optional[str]
    last_name: Optional[str]
    last_login: Optional[datetime]
    created_at: datetime


class UserUpdate(BaseModel):
    """Admin update schema."""

    role: Optional[UserRole] = None
    is_active: Optional[bool] = None
    plan: Optional[SubscriptionPlan] = None
    query_limit: Optional[int] = Field(default=None, ge=0)


class UserListResponse(BaseModel):
    """Paginated user list response."""

    items: List[UserResponse]
    total: int
    page: int
    per_page: int
