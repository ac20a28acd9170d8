"""Chat streamer — grounded generation streamed token by token."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from typing import TYPE_CHECKING

from ragette.agent.prompts import build_chat_prompt, content_text

if TYPE_CHECKING:
    from langchain_core.language_models import BaseChatModel
    from langchain_core.messages import BaseMessage

    from ragette.agent.state import ChatMessage

logger = logging.getLogger(__name__)


class ChatStreamer:
    """Streams the answer for a conversation plus grounding context.

    The stream is single-pass and forward-only.  Closing it early (the
    client disconnected) or cancelling the consuming task closes the
    upstream completion stream, so generation stops promptly.
    """

    def __init__(self, llm: BaseChatModel) -> None:
        self._llm = llm

    def build_messages(self, messages: list[ChatMessage], context: str) -> list[BaseMessage]:
        return build_chat_prompt(messages, context)

    async def stream(self, messages: list[ChatMessage], context: str) -> AsyncIterator[str]:
        """Yield non-empty text tokens as the model produces them."""
        prompt = self.build_messages(messages, context)
        upstream = self._llm.astream(prompt)
        produced = 0
        try:
            async for chunk in upstream:
                token = content_text(chunk.content)
                if token:
                    produced += 1
                    yield token
        except (GeneratorExit, asyncio.CancelledError):
            # StreamAbort: the caller is gone, nobody to report to.
            logger.info("Chat stream abandoned after %d token(s)", produced)
            raise
        finally:
            await upstream.aclose()
        logger.debug("Chat stream completed with %d token(s)", produced)
