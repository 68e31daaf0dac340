"""Structured answer data models."""
from dataclasses import dataclass, field
from typing import Any, Dict, List

STRUCTURED = "structured"
FALLBACK = "fallback"


def _text(value: Any) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def _text_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    items = [_text(item).strip() for item in value if item is not None]
    return [item for item in items if item]


@dataclass
class PreviousYearQuestion:
    """A question asked in a past sitting of a competitive exam."""
    exam: str
    year: str
    question: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PreviousYearQuestion":
        return cls(
            exam=_text(data.get("exam")),
            year=_text(data.get("year")),
            question=_text(data.get("question")),
        )

    def to_dict(self) -> Dict[str, str]:
        return {"exam": self.exam, "year": self.year, "question": self.question}


@dataclass
class StructuredAnswer:
    """
    Fixed-shape exam answer produced from model output.

    Every field may be empty when the model reply could not be parsed.
    Serialized keys are camelCase to match the chat UI.
    """
    introduction: str = ""
    explanation: str = ""
    examples: str = ""
    numerical_solution: str = ""
    previous_year_questions: List[PreviousYearQuestion] = field(default_factory=list)
    related_topics: List[str] = field(default_factory=list)
    related_questions: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StructuredAnswer":
        """Coerce a loosely shaped dict into a StructuredAnswer, defaulting missing fields."""
        pyqs = data.get("previousYearQuestions")
        return cls(
            introduction=_text(data.get("introduction")),
            explanation=_text(data.get("explanation")),
            examples=_text(data.get("examples")),
            numerical_solution=_text(data.get("numericalSolution")),
            previous_year_questions=[
                PreviousYearQuestion.from_dict(item)
                for item in (pyqs if isinstance(pyqs, list) else [])
                if isinstance(item, dict)
            ],
            related_topics=_text_list(data.get("relatedTopics")),
            related_questions=_text_list(data.get("relatedQuestions")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "introduction": self.introduction,
            "explanation": self.explanation,
            "examples": self.examples,
            "numericalSolution": self.numerical_solution,
            "previousYearQuestions": [q.to_dict() for q in self.previous_year_questions],
            "relatedTopics": list(self.related_topics),
            "relatedQuestions": list(self.related_questions),
        }


@dataclass
class ParsedAnswer:
    """
    Result of normalizing a model reply.

    Attributes:
        kind: STRUCTURED when a JSON object was found and parsed, FALLBACK otherwise
        answer: The structured answer (degraded to free text on FALLBACK)
    """
    kind: str
    answer: StructuredAnswer

    @property
    def is_structured(self) -> bool:
        return self.kind == STRUCTURED
