"""OpenAI-compatible completion provider adapter.

Wraps the ``openai`` async client to implement :class:`ILLMProvider`.  When
``openai_base_url`` is configured (IONOS AI Model Hub, TogetherAI, vLLM,
Ollama's OpenAI endpoint) the client points at that URL instead of the
default OpenAI endpoint.

Structured output uses the ``json_schema`` response format in strict mode;
the schema is passed through unchanged, so callers must supply a schema
that satisfies strict-mode rules (every property required,
``additionalProperties: false``).
"""

from __future__ import annotations

from typing import Any

import openai
import structlog

from machine_rag.config.settings import Settings
from machine_rag.interfaces.llm_provider import ILLMProvider
from machine_rag.models.chat import ChatTurn
from machine_rag.utils.errors import LLMError

logger = structlog.get_logger(logger_name=__name__)


class OpenAILLMProvider(ILLMProvider):
    """Completion provider backed by an OpenAI-compatible chat API.

    The rest of the package never imports ``openai`` for completions; SDK
    errors are wrapped in :class:`LLMError`.
    """

    def __init__(self, settings: Settings, client: openai.AsyncOpenAI | None = None) -> None:
        self._settings = settings
        self._api_key = settings.openai_api_key

        if client is None:
            client_kwargs: dict = {
                "api_key": self._api_key,
                "timeout": openai.Timeout(settings.llm_timeout_seconds, connect=5.0),
            }
            if settings.openai_base_url:
                client_kwargs["base_url"] = settings.openai_base_url
            client = openai.AsyncOpenAI(**client_kwargs)

        self._client = client
        self._text_model = settings.openai_text_model
        self._provider_label = "openai-compatible" if settings.openai_base_url else "openai"

    # ------------------------------------------------------------------
    # ILLMProvider implementation
    # ------------------------------------------------------------------

    async def complete(
        self,
        messages: list[ChatTurn],
        temperature: float = 0.3,
        max_tokens: int = 1024,
        response_schema: dict[str, Any] | None = None,
    ) -> str:
        """Generate a chat completion for *messages*.

        With *response_schema* the request asks for strict structured output
        named after the schema's ``title`` (default ``"structured_output"``).
        """
        request: dict[str, Any] = {
            "model": self._text_model,
            "messages": [{"role": m.role, "content": m.content} for m in messages],
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        if response_schema is not None:
            request["response_format"] = {
                "type": "json_schema",
                "json_schema": {
                    "name": response_schema.get("title", "structured_output"),
                    "strict": True,
                    "schema": response_schema,
                },
            }

        try:
            response = await self._client.chat.completions.create(**request)
        except openai.APITimeoutError as exc:
            raise LLMError(
                message=f"{self._provider_label} timed out after {self._settings.llm_timeout_seconds}s",
                provider_name=self.get_provider_name(),
            ) from exc
        except openai.APIError as exc:
            raise LLMError(
                message=f"{self._provider_label} API error: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        if not response.choices or response.choices[0].message.content is None:
            raise LLMError(
                message=f"{self._provider_label} returned empty response",
                provider_name=self.get_provider_name(),
            )
        content = response.choices[0].message.content
        logger.info(
            "openai_completion",
            model=self._text_model,
            provider=self._provider_label,
            structured=response_schema is not None,
            tokens=response.usage.total_tokens if response.usage else None,
        )
        return content

    def get_provider_name(self) -> str:
        return self._provider_label

    def is_available(self) -> bool:
        """Return ``True`` if an API key is configured."""
        return bool(self._api_key)
