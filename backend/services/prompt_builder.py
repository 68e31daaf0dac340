"""Prompt templates for exam-preparation answers and related questions."""
import json
from typing import Iterable, Optional

from models.answer import StructuredAnswer
from models.conversation import Turn

TARGET_EXAMS = "UPSC, SSC, Banking, State PSCs, Railways, Defence"

ANSWER_FORMAT = """{
  "introduction": "Brief 2-3 line introduction about the topic and its significance",
  "explanation": "Detailed explanation covering key concepts, provisions, historical context, current relevance",
  "examples": "Relevant examples, case studies, or practical applications",
  "numericalSolution": "If the question involves numerical problems, provide step-by-step solution here, otherwise leave empty",
  "previousYearQuestions": [
    {
      "exam": "Exam Name (e.g., UPSC Civil Services)",
      "year": "Year",
      "question": "Exact question asked"
    }
  ],
  "relatedTopics": ["Topic 1", "Topic 2", "Topic 3"],
  "relatedQuestions": ["Question 1", "Question 2", "Question 3"]
}"""


def format_history(turns: Iterable[Turn]) -> str:
    """
    Render prior turns as alternating User/Assistant lines.

    Structured answers are serialized as JSON so the model sees the same
    shape it is asked to produce.

    Args:
        turns: Turns in chronological order

    Returns:
        Formatted history, or an empty string when there are no turns
    """
    blocks = []
    for turn in turns:
        if isinstance(turn.answer, StructuredAnswer):
            answer = json.dumps(turn.answer.to_dict(), ensure_ascii=False)
        else:
            answer = turn.answer
        blocks.append(f"User: {turn.question}\nAssistant: {answer}")
    return "\n\n".join(blocks)


def build_answer_prompt(question: str, context: Optional[str] = None) -> str:
    """
    Build the main answer prompt.

    Args:
        question: User question
        context: Formatted conversation history (see format_history)

    Returns:
        Complete prompt string
    """
    history_section = ""
    if context:
        history_section = f"""Previous conversation:
{context}

"""

    prompt = f"""{history_section}You are an expert government exam preparation assistant for Indian competitive exams ({TARGET_EXAMS}).

For the question: "{question}"

Provide a structured response in the following EXACT JSON format:

{ANSWER_FORMAT}

IMPORTANT GUIDELINES:
- Keep all content exam-focused and accurate
- Include constitutional articles, amendments, dates where relevant
- For previousYearQuestions, provide REAL questions from actual exams if known
- If no specific PYQs are available, mention "This topic is frequently asked in [Exam Names]"
- Make explanations clear and conceptual
- Focus on frequently asked aspects in competitive exams
- Ensure JSON format is strictly maintained
- For numerical questions, show complete step-by-step solutions

Current question: {question}

Provide response in the exact JSON format specified above."""

    return prompt


def build_related_questions_prompt(topic: str) -> str:
    """Build the prompt asking for three numbered follow-up exam questions."""
    return f"""Based on the topic: "{topic}"
Generate 3 related exam questions in this format:
RELATED_QUESTIONS:
1. [Question 1]
2. [Question 2]
3. [Question 3]"""
