"""Pydantic schemas for the HTTP API."""

from api.schemas.auth import LoginRequest, RegisterRequest, Token
from api.schemas.problem import (
    ProblemCreate,
    ProblemListResponse,
    ProblemResponse,
    SolutionResponse,
    SolveResponse,
)
from api.schemas.stats import StatsResponse, UserStatsResponse
from api.schemas.user import UserListResponse, UserResponse, UserUpdate

__all__ = [
    "LoginRequest",
    "RegisterRequest",
    "Token",
    "ProblemCreate",
    "ProblemListResponse",
    "ProblemResponse",
    "SolutionResponse",
    "SolveResponse",
    "StatsResponse",
    "UserStatsResponse",
    "UserListResponse",
    "UserResponse",
    "UserUpdate",
]
