"""Completion provider adapters.

One concrete implementation of ILLMProvider
(machine_rag/interfaces/llm_provider.py):
    - OpenAILLMProvider -- any OpenAI-compatible chat completions API
"""

from machine_rag.providers.llm.openai_provider import OpenAILLMProvider

__all__ = ["OpenAILLMProvider"]
