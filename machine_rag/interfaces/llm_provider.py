"""Abstract base class for completion service providers.

Defines the contract for the chat-completion backend used both for intent
classification (strict structured output) and for the final grounded
answer.  Implementations wrap an OpenAI-compatible API; tests inject
mocks through the same interface.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from machine_rag.models.chat import ChatTurn


# Concrete implementation: OpenAILLMProvider
# Located in: machine_rag/providers/llm/
class ILLMProvider(ABC):
    """Contract for completion services used by the query pipeline."""

    @abstractmethod
    async def complete(
        self,
        messages: list[ChatTurn],
        temperature: float = 0.3,
        max_tokens: int = 1024,
        response_schema: dict[str, Any] | None = None,
    ) -> str:
        """Generate a reply to a conversation.

        Parameters
        ----------
        messages:
            Ordered conversation, usually starting with a system turn.
        temperature:
            Sampling temperature (0.0 = deterministic, 1.0 = creative).
        max_tokens:
            Upper bound on the number of tokens in the response.
        response_schema:
            Optional JSON schema.  When given, the provider must request
            strict structured output conforming to it and return the raw
            JSON text.

        Returns
        -------
        str
            The model's reply text.

        Raises
        ------
        machine_rag.utils.errors.LLMError
            If the API call fails or returns no content.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a short identifier, e.g. ``"openai"`` or ``"openai-compatible"``."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the provider is configured (credentials present)."""
