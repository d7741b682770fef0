"""Database module for the problem solver."""

from solver.database.connection import async_session, close_db, engine, init_db
from solver.database.models import Base, Problem, Solution, User
from solver.database.repositories import (
    ProblemRepository,
    SolutionRepository,
    UserRepository,
)

__all__ = [
    "Base",
    "User",
    "Problem",
    "Solution",
    "engine",
    "async_session",
    "init_db",
    "close_db",
    "UserRepository",
    "ProblemRepository",
    "SolutionRepository",
]
