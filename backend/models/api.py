"""Request and response schemas for the HTTP API."""
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field


class ChatRequest(BaseModel):
    """Body of POST /api/chat. Presence and length of `message` are checked by the handler."""
    message: Optional[str] = None
    sessionId: Optional[str] = None


class ChatResponse(BaseModel):
    answer: Dict[str, Any]
    relatedQuestions: List[str] = Field(default_factory=list)
    sessionId: str
    model: str
    structured: bool = True


class TurnPayload(BaseModel):
    question: str
    answer: Union[Dict[str, Any], str]
    timestamp: str


class ConversationHistoryResponse(BaseModel):
    sessionId: str
    history: List[TurnPayload] = Field(default_factory=list)
    count: int = 0


class ClearConversationResponse(BaseModel):
    sessionId: str
    deleted: bool
    message: str
