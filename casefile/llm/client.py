"""
LLM client - Provider-agnostic LLM integration using LiteLLM

Calls are wrapped in a RetryPolicy. When every attempt fails the policy
raises InterpreterError and the caller falls back to authored narration.
"""

import json
import logging
import os
import re
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, TypeVar

from dotenv import load_dotenv
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    RetryError,
    retry_if_exception_type,
    stop_after_attempt,
    wait_fixed,
)

from casefile.engine.errors import InterpreterError

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)

T = TypeVar("T")


def get_provider() -> str:
    """Get configured LLM provider"""
    return os.getenv("LLM_PROVIDER", "gemini")


def get_model() -> str:
    """Get configured model name"""
    return os.getenv("LLM_MODEL", "gemini-2.5-flash")


def get_model_string() -> str:
    """Get the full model string for LiteLLM"""
    provider = get_provider()
    model = get_model()

    # LiteLLM uses prefixed model names for some providers
    if provider == "gemini":
        return f"gemini/{model}"
    elif provider == "anthropic":
        return f"anthropic/{model}"
    elif provider == "ollama":
        return f"ollama/{model}"
    else:
        # OpenAI doesn't need a prefix
        return model


# =============================================================================
# Retry policy
# =============================================================================


@dataclass
class RetryPolicy:
    """Bounded retry with a fixed delay between attempts, run through tenacity.

    Cancellation is tied to the awaiting task: cancelling the task that awaits
    run() cancels the in-flight attempt and any pending sleep.

    Attributes:
        max_attempts: Total attempts, including the first
        delay_seconds: Pause between attempts
    """

    max_attempts: int = 3
    delay_seconds: float = 1.0

    @classmethod
    def from_env(cls) -> "RetryPolicy":
        """Read LLM_MAX_ATTEMPTS and LLM_RETRY_DELAY, falling back to defaults"""
        return cls(
            max_attempts=max(1, int(os.getenv("LLM_MAX_ATTEMPTS", "3"))),
            delay_seconds=max(0.0, float(os.getenv("LLM_RETRY_DELAY", "1.0"))),
        )

    async def run(self, fn: Callable[[], Awaitable[T]], label: str = "LLM call") -> T:
        """
        Await fn until it succeeds or attempts run out.

        Args:
            fn: Zero-argument coroutine factory; called once per attempt
            label: Name used in log lines

        Returns:
            Whatever fn returns on the first successful attempt

        Raises:
            InterpreterError: If every attempt failed
        """

        def log_failure(retry_state: RetryCallState) -> None:
            error = retry_state.outcome.exception()
            logger.warning(
                f"{label} failed (attempt {retry_state.attempt_number}/{self.max_attempts}): "
                f"{type(error).__name__}: {error}"
            )

        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_fixed(self.delay_seconds),
            retry=retry_if_exception_type(Exception),
            after=log_failure,
            reraise=False,
        )
        try:
            return await retrying(fn)
        except RetryError as e:
            last_error = e.last_attempt.exception()
            raise InterpreterError(
                f"{label} failed after {self.max_attempts} attempt(s): {last_error}",
                attempts=self.max_attempts,
            ) from last_error


# =============================================================================
# Completion
# =============================================================================


async def get_completion(
    messages: list[dict[str, str]],
    model: str | None = None,
    temperature: float = 0.7,
    max_tokens: int = 1024,
    response_format: dict | None = None,
) -> str:
    """
    Get completion from configured LLM provider.

    Args:
        messages: List of message dicts with 'role' and 'content'
        model: Optional model override
        temperature: Creativity (0-1)
        max_tokens: Maximum response length
        response_format: Optional format specification

    Returns:
        The generated text response
    """
    import litellm

    # Configure API keys from environment
    _configure_api_keys()

    model_string = model or get_model_string()

    logger.info(
        f"LLM Request: model={model_string}, temperature={temperature}, max_tokens={max_tokens}"
    )
    logger.debug(f"Messages: {len(messages)} messages, response_format={response_format}")

    kwargs: dict[str, Any] = {
        "model": model_string,
        "messages": messages,
        "temperature": temperature,
        "max_tokens": max_tokens,
    }

    # Note: Not all models support JSON mode
    if response_format:
        kwargs["response_format"] = response_format

    try:
        response = await litellm.acompletion(**kwargs)
    except Exception as e:
        logger.error(f"LLM Error: {type(e).__name__}: {e}")
        raise

    content = response.choices[0].message.content
    finish_reason = getattr(response.choices[0], "finish_reason", "unknown")

    logger.info(
        f"LLM Response: finish_reason={finish_reason}, content_length={len(content) if content else 0}"
    )

    if finish_reason == "length":
        logger.warning(f"Response TRUNCATED due to max_tokens limit ({max_tokens}).")

    if not content:
        raise ValueError("LLM returned empty content")

    preview = content[:200] + "..." if len(content) > 200 else content
    logger.debug(f"Response preview: {preview}")
    return content


async def complete_with_retry(
    messages: list[dict[str, str]],
    policy: RetryPolicy | None = None,
    **kwargs: Any,
) -> str:
    """get_completion wrapped in a RetryPolicy (from the environment by default)"""
    policy = policy or RetryPolicy.from_env()
    return await policy.run(lambda: get_completion(messages, **kwargs))


def _configure_api_keys():
    """Configure API keys for LiteLLM from environment"""
    import litellm

    provider = get_provider()
    logger.debug(f"Configuring API keys for provider: {provider}")

    if provider == "gemini":
        if not os.getenv("GEMINI_API_KEY"):
            logger.warning("GEMINI_API_KEY not found in environment")

    elif provider == "openai":
        api_key = os.getenv("OPENAI_API_KEY")
        if api_key:
            litellm.api_key = api_key
        else:
            logger.warning("OPENAI_API_KEY not found in environment")

    elif provider == "anthropic":
        if not os.getenv("ANTHROPIC_API_KEY"):
            logger.warning("ANTHROPIC_API_KEY not found in environment")

    elif provider == "ollama":
        base_url = os.getenv("OLLAMA_BASE_URL", "http://localhost:11434")
        os.environ["OLLAMA_API_BASE"] = base_url
        logger.debug(f"OLLAMA_API_BASE configured: {base_url}")


def parse_json_response(response: str | None) -> dict:
    """
    Parse a JSON response from the LLM.
    Handles markdown code blocks and leading/trailing chatter.

    Raises:
        ValueError: If no JSON object can be recovered
    """
    if response is None or not response.strip():
        raise ValueError("LLM returned empty response")

    cleaned = response.strip()

    if cleaned.startswith("```json"):
        cleaned = cleaned[7:]
    elif cleaned.startswith("```"):
        cleaned = cleaned[3:]

    if cleaned.endswith("```"):
        cleaned = cleaned[:-3]

    cleaned = cleaned.strip()

    try:
        parsed = json.loads(cleaned)
    except json.JSONDecodeError:
        # Try to extract JSON from the response
        json_match = re.search(r"\{[\s\S]*\}", cleaned)
        if not json_match:
            snippet = cleaned[:200] + "..." if len(cleaned) > 200 else cleaned
            raise ValueError(f"Failed to parse JSON from LLM response. Response preview: {snippet}")
        parsed = json.loads(json_match.group())

    if not isinstance(parsed, dict):
        raise ValueError("LLM response is not a JSON object")
    return parsed
