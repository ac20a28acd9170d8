"""LangGraph graph definition — the pre-generation half of a chat turn.

1. **Check intent** — a cheap classification call on the last user turn.
2. **Retrieve** — only on a positive decision, embed the turn and pull
   the closest chunks of the request's document into a context block.

Generation itself is streamed outside the graph by
:class:`~ragette.agent.streamer.ChatStreamer`, so that every failure in
these two steps happens before the first token is sent.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from langgraph.graph import END, StateGraph

from ragette.agent.nodes import check_intent, retrieve_context, route_after_gate
from ragette.agent.state import ChatState

if TYPE_CHECKING:
    from ragette.agent.gate import IntentGate
    from ragette.retrieval.retriever import RetrievalOrchestrator


def build_graph(gate: IntentGate, retriever: RetrievalOrchestrator) -> Any:
    """Compile the gate → (retrieve) workflow with injected collaborators.

    Returns
    -------
    CompiledGraph
        Call ``await graph.ainvoke(create_initial_state(...))``.
    """

    async def _check_intent(state: ChatState) -> dict[str, Any]:
        return await check_intent(state, gate)

    async def _retrieve_context(state: ChatState) -> dict[str, Any]:
        return await retrieve_context(state, retriever)

    workflow = StateGraph(ChatState)
    workflow.add_node("check_intent", _check_intent)
    workflow.add_node("retrieve_context", _retrieve_context)

    workflow.set_entry_point("check_intent")
    workflow.add_conditional_edges(
        "check_intent",
        route_after_gate,
        {"retrieve_context": "retrieve_context", END: END},
    )
    workflow.add_edge("retrieve_context", END)

    return workflow.compile()
