"""Text-completion clients: Anthropic (direct or Bedrock) and OpenRouter."""

import logging
from abc import ABC, abstractmethod
from typing import Any, Literal

import httpx
from anthropic import AsyncAnthropic, AsyncAnthropicBedrock
from langfuse.decorators import langfuse_context, observe
from pydantic import BaseModel

from autoapply.ai.tracing import is_tracing_enabled
from autoapply.config import LLMProvider, Settings, settings as default_settings
from autoapply.exceptions import CompletionError

logger = logging.getLogger(__name__)


class ChatMessage(BaseModel):
    """One role-tagged chat message."""

    role: Literal["system", "user", "assistant"]
    content: str


class CompletionClient(ABC):
    """Single-call text completion over a list of chat messages."""

    @abstractmethod
    async def complete(
        self,
        messages: list[ChatMessage],
        model: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> str:
        """Return the completion text for ``messages``.

        Raises:
            CompletionError: If the backend fails or returns no text
        """
        ...


def _record_generation(model: str, input_tokens: int, output_tokens: int, temperature: float, max_tokens: int) -> None:
    if not is_tracing_enabled():
        return
    langfuse_context.update_current_observation(
        model=model,
        usage={"input": input_tokens, "output": output_tokens},
        model_parameters={"temperature": temperature, "max_tokens": max_tokens},
    )


class AnthropicCompletionClient(CompletionClient):
    """Claude via the Anthropic API, or via AWS Bedrock when enabled."""

    def __init__(self, settings: Settings | None = None, client: AsyncAnthropic | AsyncAnthropicBedrock | None = None):
        self.settings = settings or default_settings
        if client is not None:
            self.client = client
        elif self.settings.bedrock_enabled:
            # Uses AWS credentials from environment/~/.aws/credentials
            self.client = AsyncAnthropicBedrock(aws_region=self.settings.bedrock_region)
        else:
            if not self.settings.anthropic_api_key:
                raise CompletionError(
                    "Anthropic API key is required when Bedrock is not enabled. "
                    "Set ANTHROPIC_API_KEY or enable BEDROCK_ENABLED=true."
                )
            self.client = AsyncAnthropic(api_key=self.settings.anthropic_api_key)

    @property
    def default_model(self) -> str:
        if self.settings.bedrock_enabled:
            return self.settings.bedrock_model_id
        return self.settings.anthropic_model

    @observe(as_type="generation")
    async def complete(
        self,
        messages: list[ChatMessage],
        model: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> str:
        model = model or self.default_model
        temperature = self.settings.llm_temperature if temperature is None else temperature
        max_tokens = max_tokens or self.settings.llm_max_tokens

        system = "\n\n".join(m.content for m in messages if m.role == "system")
        create_kwargs: dict[str, Any] = {
            "model": model,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "messages": [{"role": m.role, "content": m.content} for m in messages if m.role != "system"],
        }
        if system:
            create_kwargs["system"] = system

        try:
            response = await self.client.messages.create(**create_kwargs)
        except Exception as e:
            raise CompletionError(f"Anthropic request failed: {e}") from e

        if response.usage:
            _record_generation(
                model, response.usage.input_tokens, response.usage.output_tokens, temperature, max_tokens
            )

        text_content = ""
        for block in response.content:
            if block.type == "text":
                text_content += block.text

        if not text_content:
            raise CompletionError("Anthropic returned no text content")
        return text_content


class OpenRouterCompletionClient(CompletionClient):
    """OpenAI-compatible chat completions through OpenRouter."""

    def __init__(self, settings: Settings | None = None, transport: httpx.AsyncBaseTransport | None = None):
        self.settings = settings or default_settings
        if not self.settings.openrouter_api_key:
            raise CompletionError("OpenRouter API key is required. Set OPENROUTER_API_KEY.")
        self._transport = transport

    @property
    def headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.settings.openrouter_api_key}",
            "Content-Type": "application/json",
            "HTTP-Referer": self.settings.app_url,
            "X-Title": self.settings.app_title,
        }

    @observe(as_type="generation")
    async def complete(
        self,
        messages: list[ChatMessage],
        model: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> str:
        model = model or self.settings.openrouter_model
        temperature = self.settings.llm_temperature if temperature is None else temperature
        max_tokens = max_tokens or self.settings.llm_max_tokens

        payload = {
            "model": model,
            "messages": [m.model_dump() for m in messages],
            "temperature": temperature,
            "max_tokens": max_tokens,
        }

        async with httpx.AsyncClient(
            base_url=self.settings.openrouter_base_url,
            timeout=self.settings.browser_timeout / 1000,
            transport=self._transport,
        ) as client:
            try:
                response = await client.post("/chat/completions", json=payload, headers=self.headers)
            except httpx.HTTPError as e:
                raise CompletionError(f"OpenRouter request failed: {e}") from e

        if response.is_error:
            raise CompletionError(self._error_message(response))

        data = response.json()
        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise CompletionError(f"Unexpected OpenRouter response: {e}") from e

        usage = data.get("usage") or {}
        _record_generation(
            model, usage.get("prompt_tokens", 0), usage.get("completion_tokens", 0), temperature, max_tokens
        )
        if not content:
            raise CompletionError("OpenRouter returned no content")
        return content

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            body = None
        error = body.get("error") if isinstance(body, dict) else None
        message = error.get("message") if isinstance(error, dict) else error
        return str(message) if message else f"OpenRouter API error ({response.status_code})"


def get_completion_client(settings: Settings | None = None) -> CompletionClient:
    """
    Get the configured completion client.

    Args:
        settings: Settings to read the provider and keys from.

    Returns:
        AnthropicCompletionClient or OpenRouterCompletionClient.

    Raises:
        CompletionError: If the selected provider has no credentials.
    """
    settings = settings or default_settings
    if settings.llm_provider == LLMProvider.OPENROUTER:
        return OpenRouterCompletionClient(settings)
    return AnthropicCompletionClient(settings)
