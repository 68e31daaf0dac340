"""Unit tests for prompt building."""
import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'backend'))

import json
from datetime import datetime, timezone
from models.answer import StructuredAnswer
from models.conversation import Turn
from services.prompt_builder import build_answer_prompt, build_related_questions_prompt, format_history


TS = datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc)


def test_answer_prompt_without_context():
    """Test prompt building without conversation history."""
    prompt = build_answer_prompt("What is Article 370?")

    assert '"What is Article 370?"' in prompt
    assert "Current question: What is Article 370?" in prompt
    assert "UPSC" in prompt
    assert '"previousYearQuestions"' in prompt
    assert "Previous conversation:" not in prompt


def test_answer_prompt_with_context():
    """Test prompt building with conversation history."""
    context = "User: What is GDP?\nAssistant: Gross Domestic Product."
    prompt = build_answer_prompt("And GNP?", context)

    assert prompt.startswith("Previous conversation:\n" + context)
    assert "And GNP?" in prompt


def test_answer_prompt_is_deterministic():
    assert build_answer_prompt("Q", "ctx") == build_answer_prompt("Q", "ctx")


def test_related_questions_prompt():
    prompt = build_related_questions_prompt("Monetary policy")
    assert '"Monetary policy"' in prompt
    assert "RELATED_QUESTIONS:" in prompt
    assert "1. [Question 1]" in prompt


def test_format_history_empty():
    assert format_history([]) == ""


def test_format_history_alternates_user_and_assistant():
    turns = [
        Turn(question="Q1", answer="A1", timestamp=TS),
        Turn(question="Q2", answer="A2", timestamp=TS),
    ]
    assert format_history(turns) == "User: Q1\nAssistant: A1\n\nUser: Q2\nAssistant: A2"


def test_format_history_serializes_structured_answers():
    answer = StructuredAnswer(introduction="Intro", explanation="Body")
    history = format_history([Turn(question="Q", answer=answer, timestamp=TS)])

    prefix = "User: Q\nAssistant: "
    assert history.startswith(prefix)
    assert json.loads(history[len(prefix):]) == answer.to_dict()
