"""Problem and solution schemas."""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from solver.database.models import Difficulty, ProblemCategory, ProblemStatus


class ProblemCreate(BaseModel):
    """Problem submission."""

    title: str = Field(min_length=1, max_length=200)
    description: str = Field(min_length=1, max_length=5000)
    category: ProblemCategory
    language: Optional[str] = None
    difficulty: Optional[Difficulty] = None
    tags: List[str] = Field(default_factory=list)
    ai_model: Optional[str] = None

    @field_validator("title", "description", mode="before")
    @classmethod
    def strip_text(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("language", mode="before")
    @classmethod
    def strip_language(cls, v):
        if isinstance(v, str):
            return v.strip() or None
        return v


class CodeResponse(BaseModel):
    language: str
    snippet: str
    optimized_version: str


class StepResponse(BaseModel):
    step_number: int
    description: str
    code: Optional[str] = None


class TokenUsageResponse(BaseModel):
    prompt: int
    completion: int
    total: int


class FeedbackResponse(BaseModel):
    rating: Optional[int]
    comment: Optional[str]


class SolutionResponse(BaseModel):
    """Solution with its structured sections."""

    id: int
    problem_id: int
    ai_model: str
    answer: str
    explanation: str
    code: CodeResponse
    steps: List[StepResponse]
    execution_result: Optional[Dict[str, Any]]
    token_usage: TokenUsageResponse
    processing_time: int
    feedback: FeedbackResponse
    created_at: datetime

    @classmethod
    def from_model(cls, solution) -> "SolutionResponse":
        return cls(
            id=solution.id,
            problem_id=solution.problem_id,
            ai_model=solution.ai_model,
            answer=solution.answer,
            explanation=solution.explanation or "",
            code=CodeResponse(
                language=solution.code_language or "",
                snippet=solution.code_snippet or "",
                optimized_version=solution.code_optimized_version or "",
            ),
            steps=[StepResponse(**step) for step in solution.steps or []],
            execution_result=solution.execution_result,
            token_usage=TokenUsageResponse(
                prompt=solution.prompt_tokens,
                completion=solution.completion_tokens,
                total=solution.total_tokens,
            ),
            processing_time=solution.processing_time,
            feedback=FeedbackResponse(
                rating=solution.feedback_rating,
                comment=solution.feedback_comment,
            ),
            created_at=solution.created_at,
        )


class ProblemResponse(BaseModel):
    """Problem with its optional solution."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    title: str
    description: str
    category: ProblemCategory
    language: Optional[str]
    difficulty: Difficulty
    tags: List[str]
    status: ProblemStatus
    solution_id: Optional[int]
    error_message: Optional[str]
    views: int
    bookmarked: bool
    created_at: datetime
    updated_at: datetime
    solution: Optional[SolutionResponse] = None

    @classmethod
    def from_models(cls, problem, solution=None) -> "ProblemResponse":
        response = cls.model_validate(problem)
        if solution is not None:
            response.solution = SolutionResponse.from_model(solution)
        return response


class Pagination(BaseModel):
    total: int
    page: int
    pages: int
    limit: int


class ProblemListResponse(BaseModel):
    """Paginated problem list."""

    items: List[ProblemResponse]
    pagination: Pagination


class SolveResponse(BaseModel):
    """Result of a problem submission."""

    message: str
    problem: ProblemResponse


class FeedbackRequest(BaseModel):
    rating: int = Field(ge=1, le=5)
    comment: Optional[str] = Field(default=None, max_length=2000)


class BookmarkResponse(BaseModel):
    message: str
    bookmarked: bool
