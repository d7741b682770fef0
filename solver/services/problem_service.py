"""Problem lifecycle: admission, generation, execution and bookkeeping."""

import logging
from dataclasses import dataclass
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from solver.database.models import (
    Difficulty,
    Problem,
    ProblemCategory,
    ProblemStatus,
    Solution,
    User,
)
from solver.database.repositories import ProblemRepository, SolutionRepository
from solver.exceptions import (
    ExecutionTransportFailed,
    GenerationFailed,
    QuotaExceeded,
    ValidationFailed,
)
from solver.services.code_executor import (
    EXECUTION_FAILED,
    VALIDATION_FAILED,
    ExecutionResult,
    Judge0Client,
)
from solver.services.quota import QuotaTracker
from solver.services.solution_generator import GeneratedSolution, SolutionGenerator

logger = logging.getLogger(__name__)


@dataclass
class SolveOutcome:
    """Final state of one pipeline run."""

    problem: Problem
    solution: Optional[Solution] = None
    error: Optional[str] = None

    @property
    def solved(self) -> bool:
        return self.problem.status == ProblemStatus.SOLVED


def normalize_tags(tags: Optional[List[str]]) -> List[str]:
    """Trim and lower-case tags, dropping empty ones."""
    return [t.strip().lower() for t in tags or [] if t and t.strip()]


class ProblemService:
    """Drives a problem from submission to a terminal state.

    Every step is committed before the next one starts, so a crash leaves the
    problem in its last durable state (``processing`` at worst).
    """

    def __init__(
        self,
        session: AsyncSession,
        generator: SolutionGenerator,
        executor: Judge0Client,
        quota: Optional[QuotaTracker] = None,
    ):
        self.session = session
        self.generator = generator
        self.executor = executor
        self.quota = quota or QuotaTracker(session)
        self.problem_repo = ProblemRepository(session)
        self.solution_repo = SolutionRepository(session)

    async def solve(
        self,
        user: User,
        *,
        title: str,
        description: str,
        category: ProblemCategory,
        language: Optional[str] = None,
        difficulty: Optional[Difficulty] = None,
        tags: Optional[List[str]] = None,
        ai_model: Optional[str] = None,
    ) -> SolveOutcome:
        """
        Solve a problem for a user.

        Returns:
            SolveOutcome with the problem in ``solved`` or ``failed``

        Raises:
            QuotaExceeded: admission denied, nothing was written
        """
        if not self.quota.can_admit(user):
            usage = self.quota.usage(user)
            logger.info(f"User {user.id} rejected at admission: {usage}")
            raise QuotaExceeded(**usage)

        problem = await self.problem_repo.create(
            user_id=user.id,
            title=title,
            description=description,
            category=category,
            language=language or None,
            difficulty=difficulty or Difficulty.MEDIUM,
            tags=normalize_tags(tags),
            status=ProblemStatus.PROCESSING,
        )
        await self.session.commit()
        logger.info(f"Problem {problem.id} accepted for user {user.id}")

        try:
            generated = await self.generator.generate(problem, ai_model)
        except GenerationFailed as e:
            logger.warning(f"Problem {problem.id} failed: {e}")
            await self._mark_failed(problem, str(e))
            return SolveOutcome(problem=problem, error=str(e))
        except Exception as e:
            logger.exception(f"Unexpected error while solving problem {problem.id}")
            await self._mark_failed(problem, f"{type(e).__name__}: {e}")
            raise

        solution = await self.solution_repo.create(
            problem_id=problem.id, **generated.to_record()
        )
        await self.session.commit()

        if generated.code.snippet and problem.language:
            result = await self._run_code(problem, generated)
            solution.execution_result = result.to_dict()
            await self.session.commit()

        problem.solution_id = solution.id
        problem.status = ProblemStatus.SOLVED
        problem.error_message = None
        await self.session.commit()

        await self.quota.record_usage(user)
        logger.info(f"Problem {problem.id} solved (solution {solution.id})")

        return SolveOutcome(problem=problem, solution=solution)

    async def _mark_failed(self, problem: Problem, reason: str) -> None:
        problem.status = ProblemStatus.FAILED
        problem.error_message = reason
        await self.session.commit()

    async def _run_code(
        self, problem: Problem, generated: GeneratedSolution
    ) -> ExecutionResult:
        """Best-effort execution. Failures become placeholder results."""
        try:
            result = await self.executor.execute(
                generated.code.snippet, problem.language
            )
        except ValidationFailed as e:
            logger.info(f"Problem {problem.id} code not executed: {e.reason}")
            return ExecutionResult.placeholder(VALIDATION_FAILED, e.reason)
        except ExecutionTransportFailed as e:
            logger.error(f"Code execution error for problem {problem.id}: {e}")
            return ExecutionResult.placeholder(EXECUTION_FAILED, str(e))

        if result.is_degraded:
            logger.info(f"Problem {problem.id} execution degraded: {result.status}")
        return result

    async def get_solution(self, problem: Problem) -> Optional[Solution]:
        if problem.solution_id is None:
            return None
        return await self.solution_repo.get_by_id(problem.solution_id)

    async def record_view(self, problem: Problem) -> None:
        problem.views += 1
        await self.session.commit()

    async def toggle_bookmark(self, problem: Problem) -> bool:
        """Flip the bookmark flag and return the new value."""
        problem.bookmarked = not problem.bookmarked
        await self.session.commit()
        return problem.bookmarked

    async def add_feedback(
        self, solution: Solution, rating: int, comment: Optional[str] = None
    ) -> Solution:
        """Attach user feedback. The only mutation allowed after execution."""
        if not 1 <= rating <= 5:
            raise ValueError("Rating must be between 1 and 5")
        solution.feedback_rating = rating
        solution.feedback_comment = comment
        await self.session.commit()
        return solution

    async def delete_problem(self, problem: Problem) -> None:
        """Delete a problem and its solution in one transaction."""
        problem_id = problem.id
        await delete_problem_cascade(self.session, problem)
        await self.session.commit()
        logger.info(f"Problem {problem_id} deleted")


async def delete_problem_cascade(session: AsyncSession, problem: Problem) -> None:
    """Delete the solution first, then the problem. The caller commits."""
    await SolutionRepository(session).delete_for_problem(
        problem.id, problem.solution_id
    )
    await ProblemRepository(session).delete(problem)
