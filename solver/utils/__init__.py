"""Utils module for the problem solver."""

from solver.utils.prompts import SYSTEM_PROMPTS, build_user_prompt, get_system_prompt

__all__ = [
    "SYSTEM_PROMPTS",
    "build_user_prompt",
    "get_system_prompt",
]
