"""Build prompts, call an AI provider and structure the answer."""

import logging
import time
from dataclasses import dataclass, field
from typing import List, Optional

from solver.database.models import Problem
from solver.exceptions import GenerationFailed
from solver.services.providers import ProviderRegistry
from solver.services.response_parser import CodeBlock, parse_response
from solver.utils.prompts import build_user_prompt, get_system_prompt

logger = logging.getLogger(__name__)


@dataclass
class GeneratedSolution:
    """Everything needed to create a Solution record."""

    answer: str
    ai_model: str
    explanation: str = ""
    code: CodeBlock = field(default_factory=CodeBlock)
    steps: List[dict] = field(default_factory=list)
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0
    processing_time: int = 0  # ms

    def to_record(self) -> dict:
        """Field mapping for ``SolutionRepository.create``."""
        return {
            "ai_model": self.ai_model,
            "answer": self.answer,
            "explanation": self.explanation,
            "code_language": self.code.language,
            "code_snippet": self.code.snippet,
            "code_optimized_version": self.code.optimized_version,
            "steps": self.steps,
            "prompt_tokens": self.prompt_tokens,
            "completion_tokens": self.completion_tokens,
            "total_tokens": self.total_tokens,
            "processing_time": self.processing_time,
        }


class SolutionGenerator:
    """Generates a structured solution for a problem. Never retries."""

    def __init__(
        self,
        registry: ProviderRegistry,
        temperature: float = 0.7,
        max_tokens: int = 2000,
    ):
        self.registry = registry
        self.temperature = temperature
        self.max_tokens = max_tokens

    async def generate(
        self, problem: Problem, preferred_model: Optional[str] = None
    ) -> GeneratedSolution:
        """
        Ask the routed provider to solve the problem.

        Args:
            problem: Problem with title, description, category, language, difficulty
            preferred_model: Model alias such as "gpt-4" or "claude-3"

        Returns:
            GeneratedSolution with parsed sections, token usage and timing

        Raises:
            GenerationFailed: provider call failed (ProviderUnavailable if unconfigured)
        """
        provider, route = self.registry.resolve(preferred_model)

        category = getattr(problem.category, "value", problem.category)
        difficulty = getattr(problem.difficulty, "value", problem.difficulty)
        system_prompt = get_system_prompt(category)
        user_prompt = build_user_prompt(
            title=problem.title,
            description=problem.description,
            language=problem.language,
            difficulty=difficulty,
        )

        logger.info(
            f"Generating solution for problem {problem.id} with {route.alias} "
            f"({provider.name}:{route.model_id})"
        )
        start_time = time.monotonic()

        try:
            result = await provider.complete(
                model=route.model_id,
                system_prompt=system_prompt,
                user_prompt=user_prompt,
                temperature=self.temperature,
                max_tokens=self.max_tokens,
            )
        except GenerationFailed:
            raise
        except Exception as e:
            logger.error(f"{provider.name} error: {type(e).__name__}: {e}")
            raise GenerationFailed(str(e)) from e

        processing_time = int((time.monotonic() - start_time) * 1000)
        parsed = parse_response(result.text)

        logger.info(
            f"Solution generated in {processing_time}ms "
            f"({result.total_tokens} tokens, {len(parsed.steps)} steps)"
        )

        return GeneratedSolution(
            answer=result.text,
            ai_model=route.alias,
            explanation=parsed.explanation,
            code=parsed.code,
            steps=parsed.steps_as_dicts(),
            prompt_tokens=result.prompt_tokens,
            completion_tokens=result.completion_tokens,
            total_tokens=result.total_tokens,
            processing_time=processing_time,
        )
