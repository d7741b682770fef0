"""AI completion providers and model-name dispatch."""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol, Tuple

import aiohttp
from aiohttp import ClientTimeout

from solver.config import Settings
from solver.exceptions import GenerationFailed, ProviderUnavailable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CompletionResult:
    """Generated text plus token usage normalized across providers."""

    text: str
    model: str
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class ChatProvider(Protocol):
    """Capability every AI backend must offer."""

    name: str

    @property
    def is_configured(self) -> bool:
        ...

    async def complete(
        self,
        *,
        model: str,
        system_prompt: str,
        user_prompt: str,
        temperature: float,
        max_tokens: int,
    ) -> CompletionResult:
        ...

    async def close(self) -> None:
        ...


def _error_message(payload: Any, fallback: str) -> str:
    """Pull the provider's error message out of an error envelope."""
    if isinstance(payload, dict):
        error = payload.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if isinstance(error, str):
            return error
    return fallback


class HTTPChatProvider:
    """Shared aiohttp plumbing for JSON chat APIs. One request per call, no retry."""

    name = "provider"

    def __init__(self, api_key: str, base_url: str, timeout: int = 60):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = ClientTimeout(total=timeout)
        self._session: Optional[aiohttp.ClientSession] = None

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    def _headers(self) -> Dict[str, str]:
        raise NotImplementedError

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create aiohttp session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=self.timeout,
                headers=self._headers(),
            )
        return self._session

    async def close(self) -> None:
        """Close the aiohttp session."""
        if self._session and not self._session.closed:
            await self._session.close()

    async def _post_json(self, endpoint: str, payload: dict) -> Dict[str, Any]:
        """POST a JSON payload and return the decoded response body."""
        session = await self._get_session()
        url = f"{self.base_url}{endpoint}"

        try:
            async with session.post(url, json=payload) as resp:
                try:
                    data = await resp.json(content_type=None)
                except ValueError:
                    data = None

                if resp.status >= 400:
                    message = _error_message(data, f"HTTP {resp.status}")
                    logger.warning(f"{self.name} returned {resp.status}: {message}")
                    raise GenerationFailed(message)

                if not isinstance(data, dict):
                    raise GenerationFailed(f"{self.name} returned a malformed response")
                return data

        except aiohttp.ClientError as e:
            logger.warning(f"{self.name} connection error: {e}")
            raise GenerationFailed(str(e)) from e

        except asyncio.TimeoutError as e:
            logger.warning(f"{self.name} request timed out")
            raise GenerationFailed(f"{self.name} request timed out") from e

    def _require_key(self) -> None:
        if not self.is_configured:
            raise ProviderUnavailable(self.name)


class OpenAIProvider(HTTPChatProvider):
    """OpenAI Chat Completions API."""

    name = "OpenAI"

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    async def complete(
        self,
        *,
        model: str,
        system_prompt: str,
        user_prompt: str,
        temperature: float,
        max_tokens: int,
    ) -> CompletionResult:
        self._require_key()

        payload = {
            "model": model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        response = await self._post_json("/chat/completions", payload)

        try:
            content = response["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise GenerationFailed("OpenAI response missing choices") from e

        usage = response.get("usage") or {}
        return CompletionResult(
            text=content or "",
            model=model,
            prompt_tokens=usage.get("prompt_tokens") or 0,
            completion_tokens=usage.get("completion_tokens") or 0,
            total_tokens=usage.get("total_tokens") or 0,
        )


class AnthropicProvider(HTTPChatProvider):
    """Anthropic Messages API."""

    name = "Anthropic"
    API_VERSION = "2023-06-01"

    def _headers(self) -> Dict[str, str]:
        return {
            "x-api-key": self.api_key,
            "anthropic-version": self.API_VERSION,
            "Content-Type": "application/json",
        }

    async def complete(
        self,
        *,
        model: str,
        system_prompt: str,
        user_prompt: str,
        temperature: float,
        max_tokens: int,
    ) -> CompletionResult:
        self._require_key()

        payload = {
            "model": model,
            "system": system_prompt,
            "messages": [{"role": "user", "content": user_prompt}],
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        response = await self._post_json("/messages", payload)

        try:
            content = response["content"][0]["text"]
        except (KeyError, IndexError, TypeError) as e:
            raise GenerationFailed("Anthropic response missing content") from e

        usage = response.get("usage") or {}
        input_tokens = usage.get("input_tokens") or 0
        output_tokens = usage.get("output_tokens") or 0
        return CompletionResult(
            text=content or "",
            model=model,
            prompt_tokens=input_tokens,
            completion_tokens=output_tokens,
            total_tokens=input_tokens + output_tokens,
        )


@dataclass(frozen=True)
class ModelRoute:
    """Where a model alias is served: provider name and concrete model id."""

    alias: str
    provider: str
    model_id: str


class ProviderRegistry:
    """Maps model names to providers.

    Exact aliases win. Otherwise the first registered family prefix that matches
    the name picks the provider, using that family's default alias. Anything
    else goes to the default family.
    """

    def __init__(self, default_family: str):
        self.default_family = default_family
        self._providers: Dict[str, ChatProvider] = {}
        self._routes: Dict[str, ModelRoute] = {}
        self._family_defaults: Dict[str, str] = {}
        self._prefixes: List[Tuple[str, str]] = []

    def register(
        self,
        family: str,
        provider: ChatProvider,
        models: Dict[str, str],
        prefixes: Tuple[str, ...] = (),
    ) -> None:
        """Register a provider with its alias -> model id table.

        The first alias in ``models`` is the family default.
        """
        self._providers[family] = provider
        for alias, model_id in models.items():
            self._routes[alias] = ModelRoute(alias=alias, provider=family, model_id=model_id)
            self._family_defaults.setdefault(family, alias)
        for prefix in prefixes:
            self._prefixes.append((prefix.lower(), family))

    def resolve(self, model_name: Optional[str]) -> Tuple[ChatProvider, ModelRoute]:
        name = (model_name or "").strip().lower()

        route = self._routes.get(name)
        if route is None:
            family = self.default_family
            for prefix, candidate in self._prefixes:
                if name.startswith(prefix):
                    family = candidate
                    break
            route = self._routes[self._family_defaults[family]]

        return self._providers[route.provider], route

    @property
    def models(self) -> List[str]:
        return list(self._routes)

    async def close(self) -> None:
        for provider in self._providers.values():
            await provider.close()


def build_provider_registry(config: Settings) -> ProviderRegistry:
    """Wire OpenAI (primary) and Anthropic (secondary) from configuration."""
    registry = ProviderRegistry(default_family="openai")
    registry.register(
        "openai",
        OpenAIProvider(
            api_key=config.openai_api_key,
            base_url=config.openai_base_url,
            timeout=config.ai_timeout,
        ),
        models={
            "gpt-4": config.openai_model,
            "gpt-3.5-turbo": config.openai_fallback_model,
        },
        prefixes=("gpt",),
    )
    registry.register(
        "anthropic",
        AnthropicProvider(
            api_key=config.anthropic_api_key,
            base_url=config.anthropic_base_url,
            timeout=config.ai_timeout,
        ),
        models={
            "claude-3": config.anthropic_model,
            "claude-2": config.anthropic_legacy_model,
        },
        prefixes=("claude",),
    )
    return registry
