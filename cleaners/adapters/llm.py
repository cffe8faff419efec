"""
Model gateway adapters.

Provides a unified ``complete()`` interface over hosted chat-completion
providers (OpenRouter, OpenAI, Anthropic).

Every client is timeout-bound and built with SDK retries disabled: a slow
or failing provider fails the single request instead of stalling it.
SDK-specific errors are translated to GatewayError so the orchestrator
never sees provider types.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, NoReturn, Protocol, Sequence

from cleaners.config import (
    ANTHROPIC_API_KEY,
    ANTHROPIC_MODEL,
    LLM_MAX_TOKENS,
    LLM_PROVIDER,
    LLM_TEMPERATURE,
    LLM_TIMEOUT,
    OPENAI_API_KEY,
    OPENAI_MODEL,
    OPENROUTER_API_KEY,
    OPENROUTER_BASE_URL,
    OPENROUTER_MODEL,
    PROVIDER_ANTHROPIC,
    PROVIDER_OPENAI,
    PROVIDER_OPENROUTER,
    get_logger,
)
from cleaners.core import GatewayError, Role, SessionMessage, build_chat_messages
from cleaners.utils import require_import

logger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Protocol
# ---------------------------------------------------------------------------


class ModelGateway(Protocol):
    """
    Protocol for hosted text-completion providers.

    Implementations return a single completion string or raise GatewayError.
    """

    def complete(
        self,
        system_prompt: str,
        prior_turns: Sequence[SessionMessage],
        user_message: str,
    ) -> str:
        """
        Generate the assistant reply for the current turn.

        Args:
            system_prompt: Persona instruction with any context merged in.
            prior_turns: Earlier session turns, oldest first.
            user_message: The current user message, sent last.

        Returns:
            The completion text.

        Raises:
            GatewayError: On transport, rate-limit, or payload failures.
        """
        ...


# ---------------------------------------------------------------------------
# Base class with shared logic
# ---------------------------------------------------------------------------


class GatewayBase(ABC):
    """Base class with shared initialization and error translation."""

    client: Any
    model: str
    temperature: float
    max_tokens: int
    _sdk: Any
    _name: str
    _api_errors: tuple[type[Exception], ...]

    def _init_common(
        self,
        model: str,
        temperature: float,
        max_tokens: int,
        sdk: Any,
        name: str,
    ) -> None:
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self._sdk = sdk
        self._name = name
        self._api_errors = (sdk.APIError,)

    def _translate_error(self, exc: Exception) -> NoReturn:
        """Translate SDK-specific API errors to GatewayError."""
        sdk = self._sdk
        # APITimeoutError subclasses APIConnectionError; check it first
        if isinstance(exc, sdk.APITimeoutError):
            raise GatewayError(
                f"{self._name} API request timed out: {exc}",
                kind=GatewayError.TRANSPORT,
                timed_out=True,
            ) from exc
        if isinstance(exc, sdk.RateLimitError):
            raise GatewayError(
                f"{self._name} API rate limited: {exc}",
                kind=GatewayError.RATE_LIMITED,
            ) from exc
        if isinstance(exc, sdk.APIConnectionError):
            raise GatewayError(
                f"Failed to connect to {self._name} API: {exc}",
                kind=GatewayError.TRANSPORT,
            ) from exc
        if isinstance(exc, sdk.APIStatusError):
            raise GatewayError(
                f"{self._name} API error (status {exc.status_code}): {exc}",
                kind=GatewayError.TRANSPORT,
            ) from exc
        raise GatewayError(
            f"{self._name} API returned an invalid response: {exc}",
            kind=GatewayError.INVALID_RESPONSE,
        ) from exc

    def _invalid_response(self, detail: str) -> GatewayError:
        return GatewayError(
            f"{self._name} API returned an invalid response: {detail}",
            kind=GatewayError.INVALID_RESPONSE,
        )

    @abstractmethod
    def complete(
        self,
        system_prompt: str,
        prior_turns: Sequence[SessionMessage],
        user_message: str,
    ) -> str:
        """Generate the assistant reply for the current turn."""
        ...


# ---------------------------------------------------------------------------
# OpenAI-compatible Gateways
# ---------------------------------------------------------------------------


class OpenAIGateway(GatewayBase):
    """
    OpenAI chat-completions gateway.

    Also serves any OpenAI-compatible endpoint via ``base_url``.
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str = OPENAI_MODEL,
        temperature: float = LLM_TEMPERATURE,
        max_tokens: int = LLM_MAX_TOKENS,
        timeout: float = LLM_TIMEOUT,
        base_url: str | None = None,
        client: Any = None,
        name: str = "OpenAI",
    ):
        """
        Initialize OpenAI gateway.

        Args:
            api_key: API key. Defaults to OPENAI_API_KEY from config.
            model: Model ID to use.
            temperature: Sampling temperature.
            max_tokens: Maximum tokens to generate.
            timeout: Request timeout in seconds.
            base_url: Alternative OpenAI-compatible endpoint.
            client: Pre-built SDK client (tests, custom transports).
            name: Provider name used in error messages.

        Raises:
            ImportError: If openai package is not installed.
        """
        openai = require_import("openai")

        self.client = client or openai.OpenAI(
            api_key=api_key or OPENAI_API_KEY,
            base_url=base_url,
            timeout=timeout,
            max_retries=0,
        )
        self._init_common(
            model=model,
            temperature=temperature,
            max_tokens=max_tokens,
            sdk=openai,
            name=name,
        )

    def complete(
        self,
        system_prompt: str,
        prior_turns: Sequence[SessionMessage],
        user_message: str,
    ) -> str:
        """
        Generate a reply using a chat-completions model.

        Raises:
            GatewayError: On any provider failure or an empty completion.
        """
        messages = build_chat_messages(system_prompt, prior_turns, user_message)
        try:
            response = self.client.chat.completions.create(
                model=self.model,
                max_tokens=self.max_tokens,
                temperature=self.temperature,
                messages=messages,
            )
        except self._api_errors as exc:
            self._translate_error(exc)

        try:
            text = response.choices[0].message.content
        except (AttributeError, IndexError, TypeError) as exc:
            raise self._invalid_response("no choices in completion") from exc
        if not text or not text.strip():
            raise self._invalid_response("empty completion")

        if response.usage:
            logger.debug("%s completion used %d tokens", self._name, response.usage.total_tokens)
        return text


class OpenRouterGateway(OpenAIGateway):
    """OpenRouter gateway (OpenAI-compatible API with provider-prefixed model ids)."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str = OPENROUTER_MODEL,
        temperature: float = LLM_TEMPERATURE,
        max_tokens: int = LLM_MAX_TOKENS,
        timeout: float = LLM_TIMEOUT,
        base_url: str = OPENROUTER_BASE_URL,
        client: Any = None,
    ):
        super().__init__(
            api_key=api_key or OPENROUTER_API_KEY,
            model=model,
            temperature=temperature,
            max_tokens=max_tokens,
            timeout=timeout,
            base_url=base_url,
            client=client,
            name="OpenRouter",
        )


# ---------------------------------------------------------------------------
# Anthropic Gateway
# ---------------------------------------------------------------------------


class AnthropicGateway(GatewayBase):
    """
    Anthropic Claude gateway.

    The system prompt travels in the dedicated ``system`` field and the
    turn list must open with a user message.
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str = ANTHROPIC_MODEL,
        temperature: float = LLM_TEMPERATURE,
        max_tokens: int = LLM_MAX_TOKENS,
        timeout: float = LLM_TIMEOUT,
        client: Any = None,
    ):
        anthropic = require_import("anthropic")

        self.client = client or anthropic.Anthropic(
            api_key=api_key or ANTHROPIC_API_KEY,
            timeout=timeout,
            max_retries=0,
        )
        self._init_common(
            model=model,
            temperature=temperature,
            max_tokens=max_tokens,
            sdk=anthropic,
            name="Anthropic",
        )

    @staticmethod
    def _turns(prior_turns: Sequence[SessionMessage], user_message: str) -> list[dict]:
        turns = [t.to_chat_turn() for t in prior_turns if t.role is not Role.SYSTEM]
        # FIFO eviction can leave an assistant turn at the front
        while turns and turns[0]["role"] != Role.USER.value:
            turns.pop(0)
        turns.append({"role": Role.USER.value, "content": user_message})
        return turns

    def complete(
        self,
        system_prompt: str,
        prior_turns: Sequence[SessionMessage],
        user_message: str,
    ) -> str:
        try:
            response = self.client.messages.create(
                model=self.model,
                max_tokens=self.max_tokens,
                temperature=self.temperature,
                system=system_prompt,
                messages=self._turns(prior_turns, user_message),
            )
        except self._api_errors as exc:
            self._translate_error(exc)

        text = ""
        for block in getattr(response, "content", None) or []:
            if getattr(block, "text", None):
                text = block.text
                break
        if not text.strip():
            raise self._invalid_response("no text block in completion")
        return text


# ---------------------------------------------------------------------------
# Factory Function
# ---------------------------------------------------------------------------


def get_gateway(provider: str | None = None) -> ModelGateway:
    """
    Get the configured model gateway.

    Args:
        provider: "openrouter", "openai" or "anthropic".
            Defaults to LLM_PROVIDER from config.

    Raises:
        ValueError: If provider is not recognized.
    """
    provider = provider.lower().strip() if provider else LLM_PROVIDER

    if provider == PROVIDER_OPENROUTER:
        return OpenRouterGateway()
    elif provider == PROVIDER_OPENAI:
        return OpenAIGateway()
    elif provider == PROVIDER_ANTHROPIC:
        return AnthropicGateway()
    else:
        raise ValueError(
            f"Unknown LLM provider: {provider}. "
            f"Use '{PROVIDER_OPENROUTER}', '{PROVIDER_OPENAI}' or '{PROVIDER_ANTHROPIC}'."
        )


__all__ = [
    "ModelGateway",
    "GatewayBase",
    "OpenAIGateway",
    "OpenRouterGateway",
    "AnthropicGateway",
    "get_gateway",
]
