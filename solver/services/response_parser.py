"""Extract structured sections from free-form AI answers.

The parser is a heuristic, not a semantic reader:

* Only the first two fenced code blocks are kept (snippet and optimized
  version); any further blocks are dropped.
* Every ``<n>. text`` line becomes a step, including numbered lines inside code
  blocks and numbered lists that are not really steps.
* The explanation is whatever precedes the first code fence, or the first three
  lines when there is no fenced code at all.
"""

import re
from dataclasses import asdict, dataclass, field
from typing import List, Optional

CODE_BLOCK_RE = re.compile(r"```(\w+)?\n([\s\S]*?)```")
STEP_RE = re.compile(r"^[ \t]*(\d+)\.[ \t]+(\S[^\n]*)$", re.MULTILINE)

DEFAULT_CODE_LANGUAGE = "text"
EXPLANATION_FALLBACK_LINES = 3


@dataclass
class CodeBlock:
    language: str = ""
    snippet: str = ""
    optimized_version: str = ""


@dataclass
class Step:
    step_number: int
    description: str
    code: Optional[str] = None


@dataclass
class ParsedResponse:
    explanation: str = ""
    code: CodeBlock = field(default_factory=CodeBlock)
    steps: List[Step] = field(default_factory=list)

    def steps_as_dicts(self) -> List[dict]:
        return [asdict(step) for step in self.steps]


def extract_code_blocks(text: str) -> List[CodeBlock]:
    """Find fenced code blocks in document order."""
    return [
        CodeBlock(
            language=match.group(1) or DEFAULT_CODE_LANGUAGE,
            snippet=match.group(2).strip(),
        )
        for match in CODE_BLOCK_RE.finditer(text)
    ]


def extract_steps(text: str) -> List[Step]:
    """Collect numbered lines, renumbered from 1 regardless of the source numbers."""
    return [
        Step(step_number=index, description=match.group(2).strip())
        for index, match in enumerate(STEP_RE.finditer(text), start=1)
    ]


def extract_explanation(text: str) -> str:
    """Text before the first fenced block, or the first lines as a fallback."""
    first_block = CODE_BLOCK_RE.search(text)
    if first_block:
        return text[: first_block.start()].strip()
    return "\n".join(text.split("\n")[:EXPLANATION_FALLBACK_LINES]).strip()


def parse_response(raw_text: Optional[str]) -> ParsedResponse:
    """Split a raw AI answer into explanation, code and steps. Never raises."""
    text = raw_text or ""

    code = CodeBlock()
    blocks = extract_code_blocks(text)
    if blocks:
        code.language = blocks[0].language
        code.snippet = blocks[0].snippet
        if len(blocks) > 1:
            code.optimized_version = blocks[1].snippet

    return ParsedResponse(
        explanation=extract_explanation(text),
        code=code,
        steps=extract_steps(text),
    )
