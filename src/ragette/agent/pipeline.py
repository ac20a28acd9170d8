"""Chat pipeline — validate, gate, retrieve, then stream."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Sequence
from typing import TYPE_CHECKING

from ragette.agent.graph import build_graph
from ragette.agent.state import ChatMessage, ChatState, create_initial_state
from ragette.exceptions import InvalidChatRequestError

if TYPE_CHECKING:
    from ragette.agent.gate import IntentGate
    from ragette.agent.streamer import ChatStreamer
    from ragette.retrieval.retriever import RetrievalOrchestrator

logger = logging.getLogger(__name__)


def validate_chat_request(messages: Sequence[ChatMessage], document_id: str) -> None:
    """Raise :class:`InvalidChatRequestError` for unusable input."""
    if not messages:
        raise InvalidChatRequestError("messages must not be empty")
    if messages[-1].role != "user":
        raise InvalidChatRequestError("the last message must come from the user")
    if not document_id or not document_id.strip():
        raise InvalidChatRequestError("fileId is required")


class ChatPipeline:
    """Answers one chat request for one document.

    :meth:`prepare` runs the gate and retrieval graph and raises on
    failure; :meth:`stream` then produces the token stream.  Splitting
    the two keeps errors out of a response that has already started.
    """

    def __init__(self, gate: IntentGate, retriever: RetrievalOrchestrator, streamer: ChatStreamer) -> None:
        self._graph = build_graph(gate, retriever)
        self._streamer = streamer

    async def prepare(self, messages: Sequence[ChatMessage], document_id: str) -> ChatState:
        validate_chat_request(messages, document_id)
        state = await self._graph.ainvoke(create_initial_state(list(messages), document_id))
        logger.info(
            "Prepared chat turn for %s: retrieve=%s, context=%d char(s)",
            document_id,
            state.get("should_retrieve", False),
            len(state.get("context", "")),
        )
        return state

    def stream(self, state: ChatState) -> AsyncIterator[str]:
        return self._streamer.stream(state["messages"], state.get("context", ""))

    async def answer(self, messages: Sequence[ChatMessage], document_id: str) -> AsyncIterator[str]:
        """Prepare the turn, then return its token stream."""
        return self.stream(await self.prepare(messages, document_id))
