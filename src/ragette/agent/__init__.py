"""
Agent — the conversational half of the system.

A LangGraph workflow gates each user turn with a cheap classification
call, optionally retrieves document-scoped context, and hands over to a
streaming generation call.  All LLM and store clients are injected, so
the whole flow runs locally against fakes.

Public API
----------
- :class:`ChatPipeline` — prepare and stream one chat turn.
- :class:`IntentGate` — question check in front of retrieval.
- :class:`ChatStreamer` — grounded, cancellable token stream.
- :func:`build_graph` — compile the gate → retrieve workflow.
- :class:`ChatMessage`, :class:`ChatState` — request and graph state schemas.
"""

from ragette.agent.gate import IntentGate, interpret_gate_answer
from ragette.agent.graph import build_graph
from ragette.agent.pipeline import ChatPipeline
from ragette.agent.state import ChatMessage, ChatState, create_initial_state
from ragette.agent.streamer import ChatStreamer

__all__ = [
    "ChatMessage",
    "ChatPipeline",
    "ChatState",
    "ChatStreamer",
    "IntentGate",
    "build_graph",
    "create_initial_state",
    "interpret_gate_answer",
]
