"""State and message schemas for the chat pipeline.

``ChatState`` is the LangGraph state flowing through the gate and
retrieval nodes.  It lives for a single request; nothing is persisted.
"""

from __future__ import annotations

from typing import Literal, TypedDict

from pydantic import BaseModel


class ChatMessage(BaseModel):
    """One turn of the conversation as sent by the chat UI."""

    role: Literal["user", "assistant", "system"]
    content: str


class IntentDecision(BaseModel):
    """Structured-output schema for the question check."""

    answer: Literal["yes", "no"]


class ChatState(TypedDict, total=False):
    """Graph state for one chat request.

    Attributes
    ----------
    messages:
        Full conversation, oldest first; the last entry is the user turn.
    document_id:
        Scopes retrieval to the chunks of one uploaded file.
    should_retrieve:
        Gate decision for the last user turn.
    context:
        Grounding context; ``""`` when retrieval was skipped or found nothing.
    """

    messages: list[ChatMessage]
    document_id: str
    should_retrieve: bool
    context: str


def create_initial_state(messages: list[ChatMessage], document_id: str) -> ChatState:
    """Return a fully-populated initial state dict."""
    return ChatState(
        messages=list(messages),
        document_id=document_id,
        should_retrieve=False,
        context="",
    )
