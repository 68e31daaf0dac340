"""LLM Client for Groq API integration."""
import time
from dataclasses import dataclass
from typing import Optional, Dict, Any
from groq import AsyncGroq
from groq import RateLimitError, AuthenticationError, PermissionDeniedError, NotFoundError, APIError, APITimeoutError
import logging

from config import GROQ_API_KEY, MODEL_NAME, MAX_OUTPUT_TOKENS

logger = logging.getLogger(__name__)

AUTHENTICATION_ERROR = "AUTHENTICATION_ERROR"
RATE_LIMIT_ERROR = "RATE_LIMIT_ERROR"
MODEL_UNAVAILABLE = "MODEL_UNAVAILABLE"
TIMEOUT_ERROR = "TIMEOUT_ERROR"
API_ERROR = "API_ERROR"
UNKNOWN_ERROR = "UNKNOWN_ERROR"

# Checked in order; first match wins.
_ERROR_TEXT_PATTERNS = (
    (AUTHENTICATION_ERROR, ("api key", "api_key", "invalid_api_key", "unauthorized", "401")),
    (RATE_LIMIT_ERROR, ("quota", "rate limit", "rate_limit", "resource exhausted", "429")),
    (MODEL_UNAVAILABLE, ("model_not_found", "model not found", "decommissioned", "unavailable", "overloaded", "503")),
)


def classify_error_text(text: str) -> Optional[str]:
    """
    Map free-form error text to a coarse error code.

    Args:
        text: Error message from the SDK or transport

    Returns:
        One of AUTHENTICATION_ERROR, RATE_LIMIT_ERROR, MODEL_UNAVAILABLE,
        or None when nothing matches
    """
    lowered = (text or "").lower()
    for code, needles in _ERROR_TEXT_PATTERNS:
        if any(needle in lowered for needle in needles):
            return code
    return None


@dataclass
class LLMResponse:
    """Response from LLM generation."""
    text: str
    tokens_input: int
    tokens_output: int
    latency_ms: int
    model_used: str


@dataclass
class LLMError:
    """Structured error response from LLM operations."""
    code: str
    message: str
    details: Dict[str, Any]


class LLMClientError(Exception):
    """Custom exception for LLM client errors with structured error information."""

    def __init__(self, error: LLMError):
        self.error = error
        super().__init__(error.message)


_MESSAGES = {
    AUTHENTICATION_ERROR: "Authentication failed. Please check your API key.",
    RATE_LIMIT_ERROR: "Rate limit exceeded. Please try again in a few moments.",
    MODEL_UNAVAILABLE: "The requested model is currently unavailable.",
    TIMEOUT_ERROR: "Request timed out. Please try again.",
}


class LLMClient:
    """Async client for the Groq chat completions API."""

    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None):
        """
        Initialize LLM client with Groq API key.

        Args:
            api_key: Groq API key (defaults to GROQ_API_KEY from environment)
            model: Default model name (defaults to MODEL_NAME from environment)
        """
        self.api_key = api_key or GROQ_API_KEY
        if not self.api_key:
            raise ValueError("GROQ_API_KEY must be provided or set in environment")

        self.model = model or MODEL_NAME
        # A failed call fails the request; the SDK must not retry behind our back.
        self.client = AsyncGroq(api_key=self.api_key, max_retries=0)
        logger.info(f"LLMClient initialized successfully (model={self.model})")

    async def generate(
        self,
        prompt: str,
        model: Optional[str] = None,
        max_tokens: Optional[int] = None
    ) -> LLMResponse:
        """
        Generate response using Groq API.

        Args:
            prompt: Complete prompt text
            model: Model name override
            max_tokens: Maximum tokens to generate

        Returns:
            LLMResponse with text, token counts, and latency

        Raises:
            LLMClientError: Structured error with code, message, and details
        """
        model = model or self.model
        start_time = time.time()

        try:
            logger.debug(f"Generating response with model: {model}")

            response = await self.client.chat.completions.create(
                model=model,
                messages=[
                    {
                        "role": "user",
                        "content": prompt
                    }
                ],
                max_tokens=max_tokens or MAX_OUTPUT_TOKENS,
                temperature=0.7
            )

            latency_ms = int((time.time() - start_time) * 1000)

            text = response.choices[0].message.content or ""

            usage = response.usage
            tokens_input = usage.prompt_tokens if usage else 0
            tokens_output = usage.completion_tokens if usage else 0

            logger.info(
                f"Generated response: model={model}, "
                f"input_tokens={tokens_input}, output_tokens={tokens_output}, "
                f"latency={latency_ms}ms"
            )

            return LLMResponse(
                text=text,
                tokens_input=tokens_input,
                tokens_output=tokens_output,
                latency_ms=latency_ms,
                model_used=model
            )

        except RateLimitError as e:
            raise self._error(RATE_LIMIT_ERROR, e, model, start_time, retry_after=60)

        except (AuthenticationError, PermissionDeniedError) as e:
            raise self._error(AUTHENTICATION_ERROR, e, model, start_time)

        except NotFoundError as e:
            raise self._error(MODEL_UNAVAILABLE, e, model, start_time)

        except APITimeoutError as e:
            raise self._error(TIMEOUT_ERROR, e, model, start_time)

        except APIError as e:
            code = classify_error_text(str(e)) or API_ERROR
            raise self._error(code, e, model, start_time)

        except Exception as e:
            code = classify_error_text(str(e)) or UNKNOWN_ERROR
            raise self._error(code, e, model, start_time, error_type=type(e).__name__)

    async def probe(self) -> LLMResponse:
        """Minimal live call used by the health check."""
        return await self.generate("Reply with the single word OK.", max_tokens=5)

    def _error(self, code: str, exc: Exception, model: str, start_time: float, **extra: Any) -> LLMClientError:
        latency_ms = int((time.time() - start_time) * 1000)
        if code in _MESSAGES:
            message = _MESSAGES[code]
        elif code == API_ERROR:
            message = f"Groq API error: {str(exc)}"
        else:
            message = f"Unexpected error during generation: {str(exc)}"

        error = LLMError(
            code=code,
            message=message,
            details={
                "model": model,
                "latency_ms": latency_ms,
                "original_error": str(exc),
                **extra
            }
        )
        logger.error(
            f"LLM call failed: code={code}, model={model}, latency={latency_ms}ms, error={exc}",
            exc_info=True,
            extra={"error_code": error.code, "error_details": error.details}
        )
        return LLMClientError(error)
