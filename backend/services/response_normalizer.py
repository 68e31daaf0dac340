"""
Response normalizer for model replies.

Model output is free text that is *asked* to be JSON. This module turns it
into a StructuredAnswer with a two-stage parse: locate and decode a JSON
object, or fall back to wrapping the raw text. Parsing never raises.
"""

import json
import logging
import re
from typing import List

from models.answer import StructuredAnswer, ParsedAnswer, STRUCTURED, FALLBACK

logger = logging.getLogger(__name__)

# First "{" to last "}", across newlines.
_JSON_OBJECT = re.compile(r"\{.*\}", re.DOTALL)
_NUMBERED_LINE = re.compile(r"^\d+\.\s")

MAX_RELATED_QUESTIONS = 3

FALLBACK_RELATED_QUESTIONS = [
    "What are the most important topics to revise for this exam?",
    "Can you explain this topic with a previous year question?",
    "How is this topic usually asked in competitive exams?",
]


def parse_structured_answer(text: str) -> ParsedAnswer:
    """
    Parse a model reply into a StructuredAnswer.

    Args:
        text: Raw model reply

    Returns:
        ParsedAnswer tagged STRUCTURED when a JSON object was decoded,
        FALLBACK when the raw text had to be wrapped
    """
    text = text or ""
    match = _JSON_OBJECT.search(text)
    if match:
        try:
            data = json.loads(match.group(0))
        except json.JSONDecodeError as e:
            logger.warning(f"Model reply contained invalid JSON, using fallback: {e}")
        else:
            if isinstance(data, dict):
                return ParsedAnswer(kind=STRUCTURED, answer=StructuredAnswer.from_dict(data))
            logger.warning("Model reply JSON was not an object, using fallback")
    else:
        logger.warning("No JSON object found in model reply, using fallback")

    return ParsedAnswer(kind=FALLBACK, answer=fallback_answer(text))


def fallback_answer(text: str) -> StructuredAnswer:
    """Wrap free text: the whole reply as explanation, its first sentence as introduction."""
    return StructuredAnswer(
        introduction=first_sentence(text),
        explanation=text,
    )


def first_sentence(text: str) -> str:
    """Text up to and including the first period, stripped."""
    head, dot, _ = text.partition(".")
    return (head + dot).strip()


def extract_related_questions(text: str, limit: int = MAX_RELATED_QUESTIONS) -> List[str]:
    """
    Extract numbered questions ("1. ...") from a model reply.

    Non-matching lines are ignored and the first `limit` matches are kept
    in order.

    Args:
        text: Raw model reply
        limit: Maximum number of questions to return

    Returns:
        List of question strings, possibly empty
    """
    questions: List[str] = []
    for line in (text or "").splitlines():
        line = line.strip()
        if not _NUMBERED_LINE.match(line):
            continue
        question = _NUMBERED_LINE.sub("", line, count=1).strip()
        if question:
            questions.append(question)
        if len(questions) >= limit:
            break
    return questions
