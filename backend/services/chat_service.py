"""Chat orchestration: prompt, model calls, normalization, history."""
import asyncio
import logging
from dataclasses import dataclass
from typing import List

from config import MAX_MESSAGE_LENGTH
from models.answer import StructuredAnswer
from models.conversation import Turn
from services.llm_client import LLMClient
from services.prompt_builder import build_answer_prompt, build_related_questions_prompt
from services.response_normalizer import (
    MAX_RELATED_QUESTIONS,
    FALLBACK_RELATED_QUESTIONS,
    parse_structured_answer,
    extract_related_questions,
)
from services.session_store import SessionStore

logger = logging.getLogger(__name__)


class InvalidMessageError(ValueError):
    """Raised when a chat message is missing, blank, or too long."""


@dataclass
class ChatResult:
    """Outcome of one chat exchange."""
    answer: StructuredAnswer
    related_questions: List[str]
    session_id: str
    model: str
    structured: bool


class ChatService:
    """
    Answers one user message within a session.

    The answer call and the related-questions call run concurrently. The
    answer call is fail-fast: its LLMClientError propagates and the session
    is left untouched. The related-questions call is best-effort: a failure
    is logged and the fallback list is used.
    """

    def __init__(self, llm_client: LLMClient, session_store: SessionStore, max_message_length: int = MAX_MESSAGE_LENGTH):
        self.llm_client = llm_client
        self.session_store = session_store
        self.max_message_length = max_message_length

    def validate_message(self, message) -> str:
        if not isinstance(message, str) or not message.strip():
            raise InvalidMessageError("Message is required")
        if len(message) > self.max_message_length:
            raise InvalidMessageError(
                f"Message is too long (maximum {self.max_message_length} characters)"
            )
        return message

    async def answer(self, message: str, session_id: str) -> ChatResult:
        """
        Answer a message and record the turn.

        Args:
            message: User question
            session_id: Session the question belongs to

        Returns:
            ChatResult with the structured answer and related questions

        Raises:
            InvalidMessageError: Before any model call, for bad input
            LLMClientError: When the answer call fails
        """
        message = self.validate_message(message)

        context = self.session_store.get_context(session_id)

        answer_prompt = build_answer_prompt(message, context or None)
        related_prompt = build_related_questions_prompt(message)

        answer_outcome, related_outcome = await asyncio.gather(
            self.llm_client.generate(answer_prompt),
            self.llm_client.generate(related_prompt),
            return_exceptions=True,
        )

        if isinstance(answer_outcome, BaseException):
            raise answer_outcome

        parsed = parse_structured_answer(answer_outcome.text)
        answer = parsed.answer
        related_questions = self._related_questions(answer, related_outcome, session_id)
        answer.related_questions = related_questions

        self.session_store.append(
            session_id,
            Turn(question=message, answer=answer, timestamp=self.session_store.clock())
        )

        logger.info(
            f"Answered message for session {session_id}: kind={parsed.kind}, "
            f"related_questions={len(related_questions)}"
        )

        return ChatResult(
            answer=answer,
            related_questions=related_questions,
            session_id=session_id,
            model=answer_outcome.model_used,
            structured=parsed.is_structured,
        )

    def _related_questions(self, answer: StructuredAnswer, related_outcome, session_id: str) -> List[str]:
        if answer.related_questions:
            return answer.related_questions[:MAX_RELATED_QUESTIONS]

        if isinstance(related_outcome, BaseException):
            logger.warning(f"Related questions call failed for session {session_id}: {related_outcome}")
            extracted = []
        else:
            extracted = extract_related_questions(related_outcome.text)

        return extracted or list(FALLBACK_RELATED_QUESTIONS)
