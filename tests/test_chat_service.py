"""Unit tests for ChatService."""
import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'backend'))

import asyncio
import json
import pytest
from datetime import datetime, timezone
from unittest.mock import AsyncMock, Mock
from services.chat_service import ChatService, InvalidMessageError
from services.llm_client import LLMResponse, LLMError, LLMClientError
from services.response_normalizer import FALLBACK_RELATED_QUESTIONS
from services.session_store import SessionStore


NOW = datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc)

STRUCTURED_REPLY = json.dumps({
    "introduction": "The RBI is India's central bank.",
    "explanation": "It was established in 1935.",
    "examples": "Repo rate changes.",
    "numericalSolution": "",
    "previousYearQuestions": [],
    "relatedTopics": ["Monetary Policy"],
    "relatedQuestions": [],
})

RELATED_REPLY = "RELATED_QUESTIONS:\n1. What is the repo rate?\n2. What is CRR?\n3. What is SLR?"


def llm_response(text: str) -> LLMResponse:
    return LLMResponse(text=text, tokens_input=10, tokens_output=20, latency_ms=5, model_used="test-model")


def fake_llm(answer=STRUCTURED_REPLY, related=RELATED_REPLY):
    """LLM client mock that answers by prompt type; values may be exceptions."""
    def respond(prompt, **kwargs):
        outcome = related if "RELATED_QUESTIONS:" in prompt else answer
        if isinstance(outcome, Exception):
            raise outcome
        return llm_response(outcome)

    client = Mock()
    client.generate = AsyncMock(side_effect=respond)
    return client


def llm_failure(code="RATE_LIMIT_ERROR") -> LLMClientError:
    return LLMClientError(LLMError(code=code, message="boom", details={"original_error": "boom"}))


@pytest.fixture
def store():
    return SessionStore(clock=lambda: NOW)


class TestChatService:
    """Test suite for ChatService."""

    def test_structured_answer_with_extracted_related_questions(self, store):
        service = ChatService(fake_llm(), store)
        result = asyncio.run(service.answer("What is RBI?", "s1"))

        assert result.structured is True
        assert result.session_id == "s1"
        assert result.model == "test-model"
        assert result.answer.introduction == "The RBI is India's central bank."
        assert result.related_questions == ["What is the repo rate?", "What is CRR?", "What is SLR?"]
        assert result.answer.related_questions == result.related_questions

    def test_answer_related_questions_take_precedence(self, store):
        reply = json.dumps({"explanation": "x", "relatedQuestions": ["A?", "B?", "C?", "D?"]})
        service = ChatService(fake_llm(answer=reply), store)
        result = asyncio.run(service.answer("Q", "s1"))
        assert result.related_questions == ["A?", "B?", "C?"]

    def test_fallback_answer_for_plain_text(self, store):
        service = ChatService(fake_llm(answer="Plain text answer. More detail."), store)
        result = asyncio.run(service.answer("Q", "s1"))

        assert result.structured is False
        assert result.answer.explanation == "Plain text answer. More detail."
        assert result.answer.introduction == "Plain text answer."

    def test_unparseable_related_reply_uses_fallback_list(self, store):
        service = ChatService(fake_llm(related="No numbered lines"), store)
        result = asyncio.run(service.answer("Q", "s1"))
        assert result.related_questions == FALLBACK_RELATED_QUESTIONS

    def test_related_call_failure_is_best_effort(self, store):
        service = ChatService(fake_llm(related=llm_failure()), store)
        result = asyncio.run(service.answer("Q", "s1"))

        assert result.related_questions == FALLBACK_RELATED_QUESTIONS
        assert len(store.get("s1")) == 1

    def test_answer_call_failure_propagates_without_mutation(self, store):
        service = ChatService(fake_llm(), store)
        asyncio.run(service.answer("First", "s1"))

        service.llm_client = fake_llm(answer=llm_failure("AUTHENTICATION_ERROR"))
        with pytest.raises(LLMClientError) as exc_info:
            asyncio.run(service.answer("Second", "s1"))

        assert exc_info.value.error.code == "AUTHENTICATION_ERROR"
        assert [t.question for t in store.get("s1")] == ["First"]

    def test_turn_is_recorded_with_clock_timestamp(self, store):
        service = ChatService(fake_llm(), store)
        asyncio.run(service.answer("What is RBI?", "s1"))

        turn = store.get("s1")[0]
        assert turn.question == "What is RBI?"
        assert turn.timestamp == NOW
        assert turn.answer.explanation == "It was established in 1935."

    def test_previous_turns_are_sent_as_context(self, store):
        llm = fake_llm()
        service = ChatService(llm, store)
        asyncio.run(service.answer("What is RBI?", "s1"))
        asyncio.run(service.answer("When was it founded?", "s1"))

        prompts = [c.args[0] for c in llm.generate.call_args_list]
        last_answer_prompt = [p for p in prompts if "RELATED_QUESTIONS:" not in p][-1]
        assert "Previous conversation:" in last_answer_prompt
        assert "User: What is RBI?" in last_answer_prompt

    def test_history_is_capped(self, store):
        service = ChatService(fake_llm(), store)
        for i in range(12):
            asyncio.run(service.answer(f"Q{i}", "s1"))

        turns = store.get("s1")
        assert len(turns) == 10
        assert turns[0].question == "Q2"
        assert turns[-1].question == "Q11"

    @pytest.mark.parametrize("message", [None, "", "   ", 42])
    def test_invalid_message_makes_no_model_call(self, store, message):
        llm = fake_llm()
        service = ChatService(llm, store)

        with pytest.raises(InvalidMessageError, match="Message is required"):
            asyncio.run(service.answer(message, "s1"))

        llm.generate.assert_not_called()
        assert "s1" not in store

    def test_too_long_message_is_rejected(self, store):
        llm = fake_llm()
        service = ChatService(llm, store, max_message_length=10)

        with pytest.raises(InvalidMessageError, match="too long"):
            asyncio.run(service.answer("x" * 11, "s1"))
        llm.generate.assert_not_called()

    def test_failed_first_request_does_not_create_session(self, store):
        service = ChatService(fake_llm(answer=llm_failure()), store)

        with pytest.raises(LLMClientError):
            asyncio.run(service.answer("Q", "unseen"))

        assert "unseen" not in store
        assert len(store) == 0

    def test_blank_answer_related_questions_do_not_win(self, store):
        reply = json.dumps({"explanation": "x", "relatedQuestions": ["", "  ", ""]})
        service = ChatService(fake_llm(answer=reply), store)
        result = asyncio.run(service.answer("Q", "s1"))
        assert result.related_questions == ["What is the repo rate?", "What is CRR?", "What is SLR?"]
