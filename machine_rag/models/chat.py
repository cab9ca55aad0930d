"""Conversation turn model shared by the orchestrator and the LLM provider."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

ChatRole = Literal["system", "user", "assistant"]


class ChatTurn(BaseModel):
    """One message of a conversation."""

    model_config = ConfigDict(frozen=True)

    role: ChatRole = Field(description="Author of the turn.")
    content: str = Field(description="Message text.")
