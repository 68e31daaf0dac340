"""Services for the Govt Exam Assistant API."""
from .llm_client import LLMClient, LLMResponse, LLMError, LLMClientError, classify_error_text
from .prompt_builder import build_answer_prompt, build_related_questions_prompt, format_history
from .response_normalizer import parse_structured_answer, extract_related_questions, FALLBACK_RELATED_QUESTIONS
from .session_store import SessionStore, SessionSweeper
from .chat_service import ChatService, ChatResult, InvalidMessageError

__all__ = ['LLMClient', 'LLMResponse', 'LLMError', 'LLMClientError', 'classify_error_text', 'build_answer_prompt', 'build_related_questions_prompt', 'format_history', 'parse_structured_answer', 'extract_related_questions', 'FALLBACK_RELATED_QUESTIONS', 'SessionStore', 'SessionSweeper', 'ChatService', 'ChatResult', 'InvalidMessageError']
