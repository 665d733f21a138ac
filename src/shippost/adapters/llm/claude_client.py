"""Claude API client used as the text generation capability."""

import asyncio
from typing import Optional

import httpx
import structlog

from shippost.config import Settings
from shippost.core.errors import GenerationFailure
from shippost.core.interfaces import LLMClient

logger = structlog.get_logger(__name__)


class ClaudeClient(LLMClient):
    """Claude API client implementation."""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self.api_key = settings.anthropic_api_key
        self.model = settings.claude.model
        self.max_tokens = settings.claude.max_tokens
        self.temperature = settings.claude.temperature
        self.base_url = settings.claude.base_url
        self.timeout = settings.claude.timeout
        self.max_retries = settings.claude.max_retries
        self.initial_retry_delay = settings.claude.initial_retry_delay
        self.request_delay = settings.claude.request_delay
        self._last_request_time = 0.0

    async def complete(self, prompt: str, system: str = "", max_tokens: Optional[int] = None) -> str:
        """Generate text for the prompt."""
        if not self.api_key:
            raise GenerationFailure("ANTHROPIC_API_KEY is not configured")
        return await self._call_api(prompt=prompt, system=system, max_tokens=max_tokens)

    async def _call_api(self, prompt: str, system: str, max_tokens: Optional[int] = None) -> str:
        """Call Claude API with retry logic and rate limiting."""
        # Rate limiting: ensure minimum delay between requests
        current_time = asyncio.get_running_loop().time()
        time_since_last_request = current_time - self._last_request_time
        if time_since_last_request < self.request_delay:
            await asyncio.sleep(self.request_delay - time_since_last_request)

        last_exception: Optional[Exception] = None

        for attempt in range(self.max_retries):
            try:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.post(
                        f"{self.base_url}/messages",
                        headers={
                            "x-api-key": self.api_key,
                            "anthropic-version": "2023-06-01",
                            "content-type": "application/json",
                        },
                        json={
                            "model": self.model,
                            "max_tokens": max_tokens or self.max_tokens,
                            "temperature": self.temperature,
                            "system": system,
                            "messages": [
                                {"role": "user", "content": prompt}
                            ],
                        },
                    )

                    self._last_request_time = asyncio.get_running_loop().time()

                    if response.status_code == 200:
                        data = response.json()
                        try:
                            return data["content"][0]["text"]
                        except (KeyError, IndexError, TypeError) as e:
                            raise GenerationFailure(f"Unexpected Claude response shape: {e}")

                    # Rate limit - retry with backoff
                    if response.status_code == 429:
                        retry_after = self._get_retry_delay(response, attempt)
                        logger.warning(
                            "Claude rate limit hit",
                            retry_after=round(retry_after, 1),
                            attempt=attempt + 1,
                            max_retries=self.max_retries,
                        )
                        await asyncio.sleep(retry_after)
                        continue

                    # Server errors - retry with backoff
                    if response.status_code >= 500:
                        retry_delay = self.initial_retry_delay * (2 ** attempt)
                        logger.warning("Claude server error", status=response.status_code, retry_after=retry_delay)
                        await asyncio.sleep(retry_delay)
                        continue

                    # Other errors - raise immediately
                    response.raise_for_status()

            except httpx.HTTPStatusError as e:
                raise GenerationFailure(f"Claude API error {e.response.status_code}") from e
            except httpx.RequestError as e:
                last_exception = e
                if attempt < self.max_retries - 1:
                    retry_delay = self.initial_retry_delay * (2 ** attempt)
                    logger.warning("Claude network error", error=str(e), retry_after=retry_delay)
                    await asyncio.sleep(retry_delay)
                    continue
                raise GenerationFailure(f"Claude request failed: {e}") from e

        if last_exception:
            raise GenerationFailure(f"Claude request failed: {last_exception}") from last_exception
        raise GenerationFailure("Failed to call Claude API after all retries")

    def _get_retry_delay(self, response: httpx.Response, attempt: int) -> float:
        """Calculate retry delay from response headers or use exponential backoff."""
        retry_after = response.headers.get("retry-after")
        if retry_after:
            try:
                return float(retry_after)
            except ValueError:
                pass

        return self.initial_retry_delay * (2 ** attempt)
