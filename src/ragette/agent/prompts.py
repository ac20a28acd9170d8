"""Prompt templates for the chat pipeline.

Every LLM call uses a dedicated prompt from this module.  Keeping prompts
in one place makes them easy to audit, version, and A/B test.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from langchain_core.messages import AIMessage, HumanMessage, SystemMessage

if TYPE_CHECKING:
    from langchain_core.messages import BaseMessage

    from ragette.agent.state import ChatMessage

# ── 1. Question check (intent gate) ───────────────────────────────────

QUESTION_CHECK_SYSTEM = """\
You are a classifier in front of a document question-answering assistant.

Decide whether the user's message is a question, or implies a question,
that could be answered from the contents of an uploaded document.
Requests for information ("tell me about", "summarise", "explain") count
as questions.  Greetings, thanks and small talk do not.

Answer with exactly one word: "yes" or "no".  No punctuation, no
explanation.
"""


def build_question_check_prompt(message: ChatMessage) -> list[BaseMessage]:
    """Build the prompt for the intent gate."""
    return [
        SystemMessage(content=QUESTION_CHECK_SYSTEM),
        HumanMessage(content=message.content),
    ]


# ── 2. Grounded answer (chat streamer) ────────────────────────────────

SYSTEM_WITH_CONTEXT = """\
You are a helpful assistant answering questions about a file the user
uploaded.

Use the context below, taken from that file, to answer.  If the context
does not contain the answer, say so instead of making one up.  Keep
answers concise and quote the file where it helps.

START CONTEXT
{context}
END CONTEXT
"""

SYSTEM_WITHOUT_CONTEXT = """\
You are a helpful assistant answering questions about a file the user
uploaded.

No passages from the file are relevant to the latest message.  Reply
conversationally; if the user is asking about the file, answer from
general knowledge and make clear that you could not find file-specific
information.
"""


def build_system_prompt(context: str) -> str:
    """Return the system prompt; blank *context* selects the no-context variant."""
    if not context.strip():
        return SYSTEM_WITHOUT_CONTEXT
    return SYSTEM_WITH_CONTEXT.format(context=context)


_ROLE_TO_MESSAGE = {
    "user": HumanMessage,
    "assistant": AIMessage,
    "system": SystemMessage,
}


def to_langchain_messages(messages: list[ChatMessage]) -> list[BaseMessage]:
    """Convert wire-format chat messages to LangChain messages."""
    return [_ROLE_TO_MESSAGE[m.role](content=m.content) for m in messages]


def build_chat_prompt(messages: list[ChatMessage], context: str) -> list[BaseMessage]:
    """System prompt followed by the full conversation history."""
    return [SystemMessage(content=build_system_prompt(context)), *to_langchain_messages(messages)]


def content_text(content: Any) -> str:
    """Flatten message content; some providers send a list of parts."""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        return "".join(p if isinstance(p, str) else str(p.get("text", "")) for p in content)
    return ""
