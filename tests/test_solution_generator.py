import unittest

from solver.database.models import Difficulty, Problem, ProblemCategory
from solver.exceptions import GenerationFailed
from solver.services.solution_generator import SolutionGenerator

from tests.support import _FakeProvider, failing_provider, fake_registry


def _problem(**overrides) -> Problem:
    values = dict(
        id=7,
        user_id=1,
        title="Sum a list",
        description="Print the sum of [1, 2, 3].",
        category=ProblemCategory.PROGRAMMING,
        language="python",
        difficulty=Difficulty.EASY,
        tags=[],
    )
    values.update(overrides)
    return Problem(**values)


class SolutionGeneratorTests(unittest.IsolatedAsyncioTestCase):
    async def test_builds_prompts_and_parses_answer(self) -> None:
        provider = _FakeProvider()
        generator = SolutionGenerator(fake_registry(provider), temperature=0.2, max_tokens=500)

        generated = await generator.generate(_problem(), "gpt-4")

        call = provider.calls[0]
        self.assertEqual(call["model"], "gpt-4-0613")
        self.assertEqual(call["temperature"], 0.2)
        self.assertEqual(call["max_tokens"], 500)
        self.assertIn("programming", call["system_prompt"].lower())
        self.assertIn("Sum a list", call["user_prompt"])
        self.assertIn("python", call["user_prompt"])

        self.assertEqual(generated.ai_model, "gpt-4")
        self.assertEqual(generated.code.language, "python")
        self.assertEqual(generated.code.snippet, "print(sum([1, 2, 3]))")
        self.assertEqual(len(generated.steps), 2)
        self.assertEqual(generated.total_tokens, 200)
        self.assertGreaterEqual(generated.processing_time, 0)

    async def test_unknown_model_uses_default_alias(self) -> None:
        generator = SolutionGenerator(fake_registry())

        generated = await generator.generate(_problem(), "mistral-large")

        self.assertEqual(generated.ai_model, "gpt-4")

    async def test_record_fields_match_solution_columns(self) -> None:
        generated = await SolutionGenerator(fake_registry()).generate(_problem())
        record = generated.to_record()

        self.assertEqual(record["code_snippet"], "print(sum([1, 2, 3]))")
        self.assertEqual(record["code_optimized_version"], "print(1 + 2 + 3)")
        self.assertEqual(record["prompt_tokens"], 120)
        self.assertEqual(record["steps"][0]["step_number"], 1)

    async def test_provider_failure_propagates(self) -> None:
        generator = SolutionGenerator(fake_registry(failing_provider("quota exhausted")))

        with self.assertRaises(GenerationFailed) as ctx:
            await generator.generate(_problem())

        self.assertEqual(str(ctx.exception), "AI service error: quota exhausted")

    async def test_unexpected_errors_become_generation_failures(self) -> None:
        generator = SolutionGenerator(
            fake_registry(_FakeProvider(error=RuntimeError("socket closed")))
        )

        with self.assertRaises(GenerationFailed) as ctx:
            await generator.generate(_problem())

        self.assertEqual(ctx.exception.reason, "socket closed")


if __name__ == "__main__":
    unittest.main()
