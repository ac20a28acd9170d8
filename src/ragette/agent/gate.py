"""Intent gate — a cheap classification call in front of retrieval.

The gate favours availability over precision: any answer other than a
clean affirmative skips retrieval instead of failing the request.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from langchain_core.exceptions import OutputParserException
from pydantic import ValidationError

from ragette.agent.prompts import build_question_check_prompt, content_text
from ragette.agent.state import IntentDecision
from ragette.exceptions import GateError

if TYPE_CHECKING:
    from langchain_core.language_models import BaseChatModel

    from ragette.agent.state import ChatMessage

logger = logging.getLogger(__name__)

AFFIRMATIVE = "yes"
NEGATIVE = "no"


def interpret_gate_answer(text: str | None) -> bool:
    """Return ``True`` only for a case-insensitive ``"yes"``.

    Surrounding whitespace is ignored; anything else is a negative
    decision.  Answers that are neither ``yes`` nor ``no`` are logged as
    ambiguous.
    """
    normalized = (text or "").strip().lower()
    if normalized == AFFIRMATIVE:
        return True
    if normalized != NEGATIVE:
        logger.warning("GateAmbiguousResponse: %.80r treated as no", text)
    return False


class IntentGate:
    """Decides whether the latest user turn needs retrieval.

    Parameters
    ----------
    llm:
        Chat model used for the (non-streamed) classification call.
    structured:
        Constrain the answer to :class:`IntentDecision` via the model's
        structured-output facility instead of matching free text.
    """

    def __init__(self, llm: BaseChatModel, *, structured: bool = False) -> None:
        self._llm = llm
        self.structured = structured

    async def should_retrieve(self, message: ChatMessage) -> bool:
        """Classify *message*.

        Raises
        ------
        GateError
            When the classification call itself fails.
        """
        prompt = build_question_check_prompt(message)
        try:
            if self.structured:
                try:
                    decision = await self._llm.with_structured_output(IntentDecision).ainvoke(prompt)
                except (OutputParserException, ValidationError) as exc:
                    logger.warning("GateAmbiguousResponse: unparseable structured answer (%s)", exc)
                    return False
                answer = decision.answer if isinstance(decision, IntentDecision) else None
            else:
                response = await self._llm.ainvoke(prompt)
                answer = content_text(response.content)
        except Exception as exc:
            raise GateError(f"Question check failed: {exc!r}") from exc

        result = interpret_gate_answer(answer)
        logger.info("Question check: %r -> retrieve=%s", answer, result)
        return result
