"""SQLAlchemy models for the problem solver."""

import enum
from datetime import datetime
from typing import Any, List, Optional

from sqlalchemy import JSON, Enum, ForeignKey, String, Text
from sqlalchemy.ext.asyncio import AsyncAttrs
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(AsyncAttrs, DeclarativeBase):
    """Base class for all models with async attributes support."""

    pass


class UserRole(str, enum.Enum):
    """User roles."""

    USER = "user"
    ADMIN = "admin"


class SubscriptionPlan(str, enum.Enum):
    """Subscription plans."""

    FREE = "free"
    PRO = "pro"
    ENTERPRISE = "enterprise"


class ProblemCategory(str, enum.Enum):
    """Closed set of problem categories."""

    PROGRAMMING = "programming"
    MATHEMATICS = "mathematics"
    WRITING = "writing"
    DEBUGGING = "debugging"
    OPTIMIZATION = "optimization"
    DATA_SCIENCE = "data-science"
    ALGORITHM = "algorithm"
    DATABASE = "database"
    SYSTEM_DESIGN = "system-design"
    OTHER = "other"


class Difficulty(str, enum.Enum):
    """Problem difficulty levels."""

    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class ProblemStatus(str, enum.Enum):
    """Problem lifecycle states. SOLVED and FAILED are terminal."""

    PENDING = "pending"
    PROCESSING = "processing"
    SOLVED = "solved"
    FAILED = "failed"


class User(Base):
    """Registered user with embedded quota and subscription state."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True)
    username: Mapped[str] = mapped_column(String(30), unique=True, index=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    password_hash: Mapped[str] = mapped_column()
    role: Mapped[UserRole] = mapped_column(Enum(UserRole), default=UserRole.USER)
    is_active: Mapped[bool] = mapped_column(default=True)

    # API usage
    total_queries: Mapped[int] = mapped_column(default=0)
    monthly_queries: Mapped[int] = mapped_column(default=0)
    last_reset_date: Mapped[datetime] = mapped_column(default=datetime.utcnow)

    # Subscription
    plan: Mapped[SubscriptionPlan] = mapped_column(
        Enum(SubscriptionPlan), default=SubscriptionPlan.FREE
    )
    query_limit: Mapped[int] = mapped_column(default=50)  # Free tier limit
    subscription_start: Mapped[datetime] = mapped_column(default=datetime.utcnow)
    subscription_end: Mapped[Optional[datetime]] = mapped_column(nullable=True)

    # Profile
    first_name: Mapped[Optional[str]] = mapped_column(nullable=True)
    last_name: Mapped[Optional[str]] = mapped_column(nullable=True)
    bio: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    last_login: Mapped[Optional[datetime]] = mapped_column(nullable=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, username={self.username}, plan={self.plan})>"


class Problem(Base):
    """Problem submitted by a user.

    ``solution_id`` is a plain reference: the database does not enforce it, and
    deleting a problem must delete its solution explicitly.
    """

    __tablename__ = "problems"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        index=True,
    )

    # Content
    title: Mapped[str] = mapped_column(String(200))
    description: Mapped[str] = mapped_column(Text)
    category: Mapped[ProblemCategory] = mapped_column(Enum(ProblemCategory), index=True)
    language: Mapped[Optional[str]] = mapped_column(nullable=True)
    difficulty: Mapped[Difficulty] = mapped_column(
        Enum(Difficulty), default=Difficulty.MEDIUM
    )
    tags: Mapped[List[str]] = mapped_column(JSON, default=list)

    # Lifecycle
    status: Mapped[ProblemStatus] = mapped_column(
        Enum(ProblemStatus), default=ProblemStatus.PENDING, index=True
    )
    solution_id: Mapped[Optional[int]] = mapped_column(nullable=True)
    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Flags
    is_public: Mapped[bool] = mapped_column(default=False)
    views: Mapped[int] = mapped_column(default=0)
    bookmarked: Mapped[bool] = mapped_column(default=False)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(default=datetime.utcnow, index=True)
    updated_at: Mapped[datetime] = mapped_column(
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
    )

    def __repr__(self) -> str:
        return f"<Problem(id={self.id}, user_id={self.user_id}, status={self.status})>"


class Solution(Base):
    """AI-generated solution, owned one-to-one by a Problem."""

    __tablename__ = "solutions"

    id: Mapped[int] = mapped_column(primary_key=True)
    problem_id: Mapped[int] = mapped_column(unique=True, index=True)

    # AI answer
    ai_model: Mapped[str] = mapped_column(default="gpt-4")
    answer: Mapped[str] = mapped_column(Text)
    explanation: Mapped[str] = mapped_column(Text, default="")

    # Primary code block and its optional optimized alternative
    code_language: Mapped[str] = mapped_column(default="")
    code_snippet: Mapped[str] = mapped_column(Text, default="")
    code_optimized_version: Mapped[str] = mapped_column(Text, default="")

    # [{"step_number": 1, "description": "...", "code": null}, ...]
    steps: Mapped[List[dict]] = mapped_column(JSON, default=list)

    # Attached after execution (second write)
    execution_result: Mapped[Optional[dict[str, Any]]] = mapped_column(
        JSON, nullable=True
    )

    # AI stats
    prompt_tokens: Mapped[int] = mapped_column(default=0)
    completion_tokens: Mapped[int] = mapped_column(default=0)
    total_tokens: Mapped[int] = mapped_column(default=0)
    processing_time: Mapped[int] = mapped_column(default=0)  # ms

    # Feedback
    feedback_rating: Mapped[Optional[int]] = mapped_column(nullable=True)
    feedback_comment: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
    )

    def __repr__(self) -> str:
        return f"<Solution(id={self.id}, problem_id={self.problem_id}, model={self.ai_model})>"
