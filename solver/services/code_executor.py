"""Judge0 sandbox client for running generated code."""

import asyncio
import enum
import logging
import re
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, NamedTuple, Optional

import aiohttp
from aiohttp import ClientTimeout

from solver.config import Settings
from solver.exceptions import ExecutionTransportFailed, ValidationFailed

logger = logging.getLogger(__name__)

# Language ID mappings for Judge0
LANGUAGE_IDS = {
    "javascript": 63,
    "python": 71,
    "java": 62,
    "cpp": 54,
    "c": 50,
    "csharp": 51,
    "ruby": 72,
    "go": 60,
    "rust": 73,
    "php": 68,
    "swift": 83,
    "kotlin": 78,
    "typescript": 74,
}

STATUS_LABELS = {
    1: "In Queue",
    2: "Processing",
    3: "Accepted",
    4: "Wrong Answer",
    5: "Time Limit Exceeded",
    6: "Compilation Error",
    7: "Runtime Error (SIGSEGV)",
    8: "Runtime Error (SIGXFSZ)",
    9: "Runtime Error (SIGFPE)",
    10: "Runtime Error (SIGABRT)",
    11: "Runtime Error (NZEC)",
    12: "Runtime Error (Other)",
    13: "Internal Error",
    14: "Exec Format Error",
}

BUSY_STATUSES = frozenset({1, 2})
ACCEPTED_STATUS = 3

EXECUTION_FAILED = "Execution Failed"
VALIDATION_FAILED = "Validation Failed"


class ValidationResult(NamedTuple):
    """Result of the pre-flight code check."""

    is_valid: bool
    reason: Optional[str] = None


class PollState(str, enum.Enum):
    """Lifecycle of one sandbox job as seen by the client."""

    SUBMITTED = "submitted"
    POLLING = "polling"
    TERMINAL = "terminal"
    POLL_LIMIT_REACHED = "poll_limit_reached"


@dataclass
class ExecutionResult:
    """Normalized sandbox outcome stored on a Solution."""

    status: str
    status_id: Optional[int] = None
    output: str = ""
    error: str = ""
    time: str = "0"
    memory: str = "0"
    exit_code: Optional[int] = None

    @property
    def is_busy(self) -> bool:
        return self.status_id in BUSY_STATUSES

    @property
    def is_degraded(self) -> bool:
        """Communication completed but the run did not succeed."""
        return self.status_id != ACCEPTED_STATUS

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def placeholder(cls, status: str, error: str) -> "ExecutionResult":
        """Stand-in result when the sandbox was never reached or failed."""
        return cls(status=status, error=error)

    @classmethod
    def from_submission(cls, payload: Dict[str, Any]) -> "ExecutionResult":
        """Map a raw Judge0 submission payload to a normalized result."""
        status = payload.get("status")
        if not isinstance(status, dict) or "id" not in status:
            raise ExecutionTransportFailed("Submission payload missing status")

        status_id = status["id"]
        return cls(
            status=STATUS_LABELS.get(status_id, "Unknown"),
            status_id=status_id,
            output=payload.get("stdout") or "",
            error=payload.get("stderr") or payload.get("compile_output") or "",
            time=str(payload.get("time") or "0"),
            memory=str(payload.get("memory") or "0"),
            exit_code=payload.get("exit_code"),
        )


class Judge0Client:
    """Async client for the Judge0 CE API (RapidAPI flavour)."""

    # Potentially dangerous operations across languages
    DANGEROUS_PATTERNS = [
        r"exec\s*\(",
        r"eval\s*\(",
        r"system\s*\(",
        r"popen\s*\(",
        r"os\.system",
        r"subprocess\.",
        r"import\s+os",
        r"from\s+os\s+import",
        r"__import__\s*\(",
        r"require\s*\(\s*['\"]child_process['\"]\s*\)",
        r"from\s+['\"]child_process['\"]",
        r"Runtime\.getRuntime\(\)",
        r"ProcessBuilder",
        r"shell_exec\s*\(",
        r"std::process::Command",
    ]

    def __init__(
        self,
        api_url: str,
        api_key: str,
        api_host: str,
        cpu_time_limit: int = 2,
        memory_limit: int = 128000,
        max_polls: int = 10,
        poll_interval: float = 1.0,
        timeout: int = 30,
    ):
        self.api_url = api_url.rstrip("/")
        self.api_key = api_key
        self.api_host = api_host
        self.cpu_time_limit = cpu_time_limit
        self.memory_limit = memory_limit
        self.max_polls = max_polls
        self.poll_interval = poll_interval
        self.timeout = ClientTimeout(total=timeout)
        self._session: Optional[aiohttp.ClientSession] = None
        self._dangerous_re = [
            re.compile(p, re.IGNORECASE) for p in self.DANGEROUS_PATTERNS
        ]

    @staticmethod
    def supported_languages() -> List[str]:
        return list(LANGUAGE_IDS)

    @staticmethod
    def language_id(language: Optional[str]) -> Optional[int]:
        if not language:
            return None
        return LANGUAGE_IDS.get(language.strip().lower())

    def validate(self, code: Optional[str], language: Optional[str]) -> ValidationResult:
        """
        Check code before it is sent anywhere.

        Args:
            code: Source code
            language: Language name (e.g. "python")

        Returns:
            ValidationResult with is_valid and optional reason
        """
        if not code or not code.strip():
            return ValidationResult(False, "Code cannot be empty")

        if not language:
            return ValidationResult(False, "Programming language must be specified")

        if self.language_id(language) is None:
            return ValidationResult(
                False, f"Language '{language}' not supported for execution"
            )

        for pattern in self._dangerous_re:
            if pattern.search(code):
                return ValidationResult(
                    False, "Code contains potentially dangerous operations"
                )

        return ValidationResult(True)

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create aiohttp session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=self.timeout,
                headers={
                    "Content-Type": "application/json",
                    "X-RapidAPI-Key": self.api_key,
                    "X-RapidAPI-Host": self.api_host,
                },
            )
        return self._session

    async def close(self) -> None:
        """Close the aiohttp session."""
        if self._session and not self._session.closed:
            await self._session.close()

    async def _request(
        self, method: str, endpoint: str, json_data: Optional[dict] = None
    ) -> Dict[str, Any]:
        """Make one HTTP request and decode the JSON body."""
        session = await self._get_session()
        url = f"{self.api_url}{endpoint}"

        try:
            async with session.request(method, url, json=json_data) as resp:
                if resp.status >= 400:
                    body = await resp.text()
                    raise ExecutionTransportFailed(
                        f"Judge0 returned {resp.status}: {body[:200]}",
                        status=resp.status,
                    )
                data = await resp.json(content_type=None)
        except aiohttp.ClientError as e:
            raise ExecutionTransportFailed(str(e)) from e
        except asyncio.TimeoutError as e:
            raise ExecutionTransportFailed("Judge0 request timed out") from e
        except ValueError as e:
            raise ExecutionTransportFailed(f"Invalid JSON from Judge0: {e}") from e

        if not isinstance(data, dict):
            raise ExecutionTransportFailed("Unexpected Judge0 response")
        return data

    async def submit(self, code: str, language_id: int, stdin: str = "") -> str:
        """Submit code without waiting. Returns the job token."""
        data = await self._request(
            "POST",
            "/submissions?base64_encoded=false&wait=false",
            {
                "source_code": code,
                "language_id": language_id,
                "stdin": stdin,
                "cpu_time_limit": self.cpu_time_limit,
                "memory_limit": self.memory_limit,
            },
        )
        token = data.get("token")
        if not token:
            raise ExecutionTransportFailed("Judge0 did not return a submission token")
        return token

    async def get_submission(self, token: str) -> Dict[str, Any]:
        """Fetch the current state of a submission."""
        return await self._request("GET", f"/submissions/{token}?base64_encoded=false")

    @staticmethod
    def _enter(token: str, state: PollState) -> PollState:
        logger.debug(f"Judge0 job {token} -> {state.value}")
        return state

    async def _wait(self) -> None:
        """Pause between polls. Cancelling the surrounding task interrupts it."""
        await asyncio.sleep(self.poll_interval)

    async def execute(
        self, code: str, language: str, stdin: str = ""
    ) -> ExecutionResult:
        """
        Validate, submit and poll until the job leaves the busy states.

        Polling is bounded: after ``max_polls`` extra fetches the last (possibly
        still busy) result is returned as-is.

        Raises:
            ValidationFailed: code rejected before submission
            ExecutionTransportFailed: sandbox unreachable or misbehaving
        """
        check = self.validate(code, language)
        if not check.is_valid:
            raise ValidationFailed(check.reason)

        if not self.api_key:
            raise ExecutionTransportFailed("Judge0 API key not configured")

        token = await self.submit(code, self.language_id(language), stdin)
        state = self._enter(token, PollState.SUBMITTED)
        logger.info(f"Submitted {language} code to Judge0 (token={token})")

        result = ExecutionResult.from_submission(await self.get_submission(token))
        polls = 0
        state = self._enter(token, PollState.POLLING)

        while result.is_busy:
            if polls >= self.max_polls:
                state = self._enter(token, PollState.POLL_LIMIT_REACHED)
                break
            await self._wait()
            result = ExecutionResult.from_submission(await self.get_submission(token))
            polls += 1
        else:
            state = self._enter(token, PollState.TERMINAL)

        if state is PollState.POLL_LIMIT_REACHED:
            logger.warning(
                f"Judge0 job {token} still '{result.status}' after {polls} polls"
            )
        else:
            logger.info(f"Judge0 job {token} finished: {result.status} ({polls} polls)")

        return result


def build_code_executor(config: Settings) -> Judge0Client:
    """Create a Judge0 client from configuration."""
    return Judge0Client(
        api_url=config.judge0_api_url,
        api_key=config.rapidapi_key,
        api_host=config.rapidapi_host,
        cpu_time_limit=config.judge0_cpu_time_limit,
        memory_limit=config.judge0_memory_limit,
        max_polls=config.judge0_max_polls,
        poll_interval=config.judge0_poll_interval,
        timeout=config.judge0_timeout,
    )
