"""Conversation data models."""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Union

from models.answer import StructuredAnswer


@dataclass(frozen=True)
class Turn:
    """Represents a single question/answer exchange in a session."""
    question: str
    answer: Union[StructuredAnswer, str]
    timestamp: datetime

    def to_dict(self) -> Dict[str, Any]:
        answer = self.answer.to_dict() if isinstance(self.answer, StructuredAnswer) else self.answer
        return {
            "question": self.question,
            "answer": answer,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass
class Session:
    """Ordered, length-capped turn history for one client session."""
    session_id: str
    turns: List[Turn] = field(default_factory=list)

    @property
    def last_active(self):
        """Timestamp of the most recent turn, or None for an empty session."""
        return self.turns[-1].timestamp if self.turns else None
