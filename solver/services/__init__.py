"""Services module for the problem solver."""

from solver.services.code_executor import ExecutionResult, Judge0Client
from solver.services.problem_service import ProblemService, SolveOutcome
from solver.services.providers import ProviderRegistry, build_provider_registry
from solver.services.quota import QuotaTracker
from solver.services.response_parser import parse_response
from solver.services.solution_generator import SolutionGenerator
from solver.services.user_service import UserService

__all__ = [
    "ExecutionResult",
    "Judge0Client",
    "ProblemService",
    "SolveOutcome",
    "ProviderRegistry",
    "build_provider_registry",
    "QuotaTracker",
    "parse_response",
    "SolutionGenerator",
    "UserService",
]
