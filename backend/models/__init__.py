"""Data models for the Govt Exam Assistant API."""
from .answer import StructuredAnswer, PreviousYearQuestion, ParsedAnswer, STRUCTURED, FALLBACK
from .conversation import Session, Turn
from .api import ChatRequest, ChatResponse, ConversationHistoryResponse, ClearConversationResponse

__all__ = [
    "StructuredAnswer",
    "PreviousYearQuestion",
    "ParsedAnswer",
    "STRUCTURED",
    "FALLBACK",
    "Session",
    "Turn",
    "ChatRequest",
    "ChatResponse",
    "ConversationHistoryResponse",
    "ClearConversationResponse",
]
