"""Domain errors raised by the solving pipeline."""

from typing import Optional


class SolverError(Exception):
    """Base class for all pipeline errors."""


class QuotaExceeded(SolverError):
    """Admission denied: the monthly query window is used up."""

    def __init__(self, current: int, limit: int, plan: str):
        self.current = current
        self.limit = limit
        self.plan = plan
        super().__init__(
            f"Monthly query limit ({limit}) reached. Please upgrade your plan."
        )


class GenerationFailed(SolverError):
    """The AI call failed or returned an error."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"AI service error: {reason}")


class ProviderUnavailable(GenerationFailed):
    """The requested AI provider has no credential configured."""

    def __init__(self, provider: str):
        self.provider = provider
        super().__init__(f"{provider} API key not configured")


class ValidationFailed(SolverError):
    """Code was rejected by pre-flight checks and never reached the sandbox."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(reason)


class ExecutionTransportFailed(SolverError):
    """The sandbox could not be reached or answered with garbage."""

    def __init__(self, reason: str, status: Optional[int] = None):
        self.reason = reason
        self.status = status
        super().__init__(f"Code execution failed: {reason}")
