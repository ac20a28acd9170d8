"""Graph nodes — each coroutine is one step of the chat pipeline.

Node contract
-------------
* Accepts the :class:`ChatState` dict plus its injected collaborator.
* Returns a *partial* dict with **only the keys that changed**.
* Holds no hidden global state, so every node is testable with fakes.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from langgraph.graph import END

from ragette.agent.state import ChatState

if TYPE_CHECKING:
    from ragette.agent.gate import IntentGate
    from ragette.retrieval.retriever import RetrievalOrchestrator

logger = logging.getLogger(__name__)


async def check_intent(state: ChatState, gate: IntentGate) -> dict[str, Any]:
    """Ask the gate whether the last user turn needs retrieval."""
    last_message = state["messages"][-1]
    return {"should_retrieve": await gate.should_retrieve(last_message)}


async def retrieve_context(state: ChatState, retriever: RetrievalOrchestrator) -> dict[str, Any]:
    """Fetch grounding context scoped to the request's document."""
    query = state["messages"][-1].content
    context = await retriever.retrieve(query, state["document_id"])
    return {"context": context}


def route_after_gate(state: ChatState) -> str:
    """Conditional edge after ``check_intent``.

    Returns
    -------
    str
        ``"retrieve_context"`` on a positive gate decision, else ``END``.
    """
    if state.get("should_retrieve", False):
        return "retrieve_context"
    logger.debug("Skipping retrieval for document %s", state.get("document_id"))
    return END
