"""Main entry point for the Govt Exam Assistant API."""
import logging
import uuid
from typing import Any, Dict

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from config import PORT, CORS_ORIGINS, ENVIRONMENT, LOG_FORMAT, LOG_LEVEL, MODEL_NAME, is_production
from logger import setup_logging
from models.api import ChatRequest, ChatResponse, ConversationHistoryResponse, ClearConversationResponse
from services.chat_service import ChatService, InvalidMessageError
from services.llm_client import (
    LLMClient,
    LLMClientError,
    AUTHENTICATION_ERROR,
    RATE_LIMIT_ERROR,
    MODEL_UNAVAILABLE,
)
from services.session_store import SessionStore, SessionSweeper

if LOG_FORMAT == "json":
    setup_logging(LOG_LEVEL)

# Initialize logging
logger = logging.getLogger(__name__)

API_ENDPOINTS = [
    "GET /",
    "GET /api/health",
    "POST /api/chat",
    "GET /api/conversation/:sessionId",
    "DELETE /api/conversation/:sessionId",
]

# Client-facing message and suggestion per error category
ERROR_CATEGORIES = {
    AUTHENTICATION_ERROR: (
        "Invalid API key configuration",
        "The server's model credential is invalid. Please contact the administrator.",
    ),
    RATE_LIMIT_ERROR: (
        "API quota exceeded",
        "Too many requests right now. Please wait a minute and try again.",
    ),
    MODEL_UNAVAILABLE: (
        "AI model temporarily unavailable",
        "The model service is busy or unavailable. Please try again shortly.",
    ),
}
GENERIC_ERROR = (
    "Failed to generate response",
    "Please try again with a different question.",
)
INTERNAL_ERROR = {"error": "Internal server error", "suggestion": "Please try again later."}

# Initialize FastAPI app
app = FastAPI(
    title="Govt Exam Assistant API",
    description="Exam preparation chatbot backend for Indian competitive exams",
    version="1.0.0"
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)

# Initialize services (will be done on startup)
llm_client: LLMClient = None
session_store: SessionStore = SessionStore()
chat_service: ChatService = None
session_sweeper: SessionSweeper = None


@app.on_event("startup")
async def startup_event():
    """Initialize services on startup."""
    global llm_client, chat_service, session_sweeper

    logger.info("Initializing Govt Exam Assistant services...")

    try:
        # Refuses to start without GROQ_API_KEY
        llm_client = LLMClient()
        logger.info("Initialized LLMClient")

        chat_service = ChatService(llm_client, session_store)
        logger.info("Initialized ChatService")

        session_sweeper = SessionSweeper(session_store)
        session_sweeper.start()

        logger.info(f"All services initialized successfully (environment={ENVIRONMENT})")
    except Exception as e:
        logger.error(f"Failed to initialize services: {e}", exc_info=True)
        raise


@app.on_event("shutdown")
async def shutdown_event():
    """Stop background tasks."""
    if session_sweeper is not None:
        await session_sweeper.stop()


def error_payload(error: LLMClientError) -> Dict[str, Any]:
    """Map an LLM failure to the client-facing error body."""
    message, suggestion = ERROR_CATEGORIES.get(error.error.code, GENERIC_ERROR)
    payload: Dict[str, Any] = {"error": message, "suggestion": suggestion}
    if not is_production():
        payload["details"] = error.error.details.get("original_error", error.error.message)
    return payload


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Return `{error, ...}` bodies instead of FastAPI's `{detail}`."""
    if exc.status_code == 404 and exc.detail == "Not Found":
        content = {"error": "Endpoint not found", "availableEndpoints": API_ENDPOINTS}
    elif isinstance(exc.detail, dict):
        content = exc.detail
    else:
        content = {"error": exc.detail}
    return JSONResponse(status_code=exc.status_code, content=content, headers=getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.warning(f"Rejected malformed request to {request.url.path}: {exc.errors()}")
    return JSONResponse(status_code=400, content={"error": "Invalid request body"})


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    # Starlette runs Exception handlers outside CORSMiddleware, so this body carries no CORS headers
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(status_code=500, content=dict(INTERNAL_ERROR))


@app.get("/")
async def root():
    """Service metadata."""
    return {
        "message": "Govt Exam Assistant API",
        "version": app.version,
        "model": MODEL_NAME,
        "endpoints": API_ENDPOINTS,
    }


@app.get("/api/health")
async def health(probe: bool = False):
    """
    Liveness and model identity.

    With `?probe=true` the configured model is called once and a failure
    is reported as 503.
    """
    body = {
        "status": "OK",
        "message": "Govt Exam Assistant API is running",
        "model": MODEL_NAME,
        "environment": ENVIRONMENT,
        "activeSessions": len(session_store),
        "features": "Structured JSON responses for exam preparation",
    }
    if not probe:
        return body

    if llm_client is None:
        return JSONResponse(status_code=503, content={"status": "ERROR", "error": "Model client not initialized"})

    try:
        await llm_client.probe()
    except LLMClientError as e:
        logger.error(f"Health probe failed: {e.error.code}")
        content = {"status": "ERROR", **error_payload(e)}
        return JSONResponse(status_code=503, content=content)

    body["modelProbe"] = "OK"
    return body


@app.post("/api/chat", response_model=ChatResponse)
async def chat_endpoint(request: ChatRequest) -> ChatResponse:
    """
    Answer an exam-preparation question.

    Args:
        request: ChatRequest with message and optional sessionId

    Returns:
        ChatResponse with structured answer and related questions

    Raises:
        HTTPException: 400 for invalid input, 500 when the model call fails
    """
    session_id = request.sessionId or f"sess_{uuid.uuid4().hex[:12]}"

    try:
        result = await chat_service.answer(request.message, session_id)
    except InvalidMessageError as e:
        raise HTTPException(status_code=400, detail={"error": str(e)})
    except LLMClientError as e:
        logger.error(f"LLM client error for session {session_id}: {e.error.code} {e.error.message}")
        raise HTTPException(status_code=500, detail=error_payload(e))
    except Exception as e:
        # Raised as HTTPException so the response still passes through CORSMiddleware
        logger.error(f"Unexpected error processing chat for session {session_id}: {e}", exc_info=True)
        detail = dict(INTERNAL_ERROR)
        if not is_production():
            detail["details"] = str(e)
        raise HTTPException(status_code=500, detail=detail)

    return ChatResponse(
        answer=result.answer.to_dict(),
        relatedQuestions=result.related_questions,
        sessionId=result.session_id,
        model=result.model,
        structured=result.structured,
    )


@app.get("/api/conversation/{session_id}", response_model=ConversationHistoryResponse)
async def get_conversation(session_id: str) -> ConversationHistoryResponse:
    """Full in-memory history of a session, for debugging."""
    turns = session_store.get(session_id) or []
    return ConversationHistoryResponse(
        sessionId=session_id,
        history=[turn.to_dict() for turn in turns],
        count=len(turns),
    )


@app.delete("/api/conversation/{session_id}", response_model=ClearConversationResponse)
async def clear_conversation(session_id: str) -> ClearConversationResponse:
    """Clear a session. Idempotent."""
    deleted = session_store.clear(session_id)
    return ClearConversationResponse(
        sessionId=session_id,
        deleted=deleted,
        message="Conversation cleared" if deleted else "No conversation found for this session",
    )


if __name__ == "__main__":
    import uvicorn
    logger.info(f"Starting Govt Exam Assistant API on port {PORT}")
    uvicorn.run(app, host="0.0.0.0", port=PORT)
