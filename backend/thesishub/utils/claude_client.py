"""
Anthropic Messages API client used by the proposal assistant.

Only single, non-streaming completions are needed. Transient failures
(overload, rate limits, network) are retried here with exponential backoff
so every attempt shows up in the ThesisHub log.
"""
import asyncio
import random
from typing import Any, Dict, Optional

import httpx
from anthropic import AsyncAnthropic, APIConnectionError, APIStatusError, APITimeoutError

from thesishub.core.config import settings
from thesishub.core.logging_config import logger

RETRYABLE_STATUS_CODES = frozenset({408, 429, 500, 502, 503, 529})
RETRYABLE_ERROR_TYPES = frozenset({"overloaded_error", "rate_limit_error", "api_error"})


def is_transient(error: Exception) -> bool:
    if isinstance(error, (APIConnectionError, APITimeoutError, httpx.TransportError)):
        return True
    if isinstance(error, APIStatusError):
        body = error.body if isinstance(error.body, dict) else {}
        error_type = (body.get("error") or {}).get("type", "")
        return error.status_code in RETRYABLE_STATUS_CODES or error_type in RETRYABLE_ERROR_TYPES
    return False


def backoff_delay(attempt: int) -> float:
    """attempt 0 -> ~base, doubling up to AI_RETRY_MAX_DELAY, plus up to 25% jitter"""
    delay = min(settings.AI_RETRY_BASE_DELAY * 2 ** attempt, settings.AI_RETRY_MAX_DELAY)
    return delay * (1 + random.uniform(0, 0.25))


class ClaudeClient:
    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None):
        timeout = float(settings.AI_REQUEST_TIMEOUT)
        options: Dict[str, Any] = {
            "api_key": api_key or settings.ANTHROPIC_API_KEY,
            "timeout": httpx.Timeout(timeout, connect=float(settings.AI_CONNECT_TIMEOUT)),
            "max_retries": 0,
        }
        base_url = (settings.ANTHROPIC_BASE_URL or "").strip()
        if base_url:
            options["base_url"] = base_url

        self.async_client = AsyncAnthropic(**options)
        self.model = model or settings.AI_MODEL
        self.max_retries = settings.AI_MAX_RETRIES
        logger.info(f"Claude client ready (model={self.model}, base_url={base_url or 'default'})")

    async def generate(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
    ) -> Dict[str, Any]:
        """
        Run one completion.

        Returns a dict with the text under "content", plus model, token usage,
        stop_reason and the API message id. The last error is re-raised once
        retries are exhausted or the failure is not transient.
        """
        request = {
            "model": self.model,
            "max_tokens": max_tokens or settings.AI_MAX_TOKENS,
            "temperature": settings.AI_TEMPERATURE if temperature is None else temperature,
            "messages": [{"role": "user", "content": prompt}],
        }
        if system_prompt:
            request["system"] = system_prompt

        attempt = 0
        while True:
            try:
                response = await self.async_client.messages.create(**request)
                break
            except Exception as e:
                if attempt >= self.max_retries or not is_transient(e):
                    logger.error(f"Claude API failed after {attempt + 1} attempt(s): {type(e).__name__}: {e}")
                    raise
                delay = backoff_delay(attempt)
                attempt += 1
                logger.warning(
                    f"Claude API {type(e).__name__}, retry {attempt}/{self.max_retries} in {delay:.1f}s",
                    extra={"event": "ai.retry"},
                )
                await asyncio.sleep(delay)

        text = "".join(block.text for block in response.content if getattr(block, "type", "") == "text")
        return {
            "content": text,
            "model": response.model,
            "tokens": {
                "input": response.usage.input_tokens,
                "output": response.usage.output_tokens,
            },
            "stop_reason": response.stop_reason,
            "id": response.id,
        }
