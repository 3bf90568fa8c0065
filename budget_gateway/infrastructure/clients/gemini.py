"""Gemini structured-output client with exponential backoff retry logic"""

import asyncio
import json
import httpx
from typing import Any, Mapping, Optional
from budget_gateway.config import settings
from budget_gateway.domain.exceptions import ClassificationUnavailable, ConfigMissing
from budget_gateway.infrastructure.observability.metrics import reasoning_latency_histogram, reasoning_failure_counter

RETRYABLE_STATUS = {429, 500, 502, 503, 504}


def _extract_json(body: Mapping[str, Any]) -> Any:
    """Decode the JSON document in the first candidate's text part"""
    try:
        text = body["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError) as e:
        raise ClassificationUnavailable("Unexpected reasoning response shape") from e
    if not isinstance(text, str) or not text.strip():
        raise ClassificationUnavailable("No response from reasoning service")
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise ClassificationUnavailable("Reasoning output was not valid JSON") from e


class GeminiClient:
    """Reasoning service backed by the Gemini generateContent endpoint"""

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
        backoff_base: float | None = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key if api_key is not None else settings.gemini_api_key
        self.model = model or settings.gemini_model
        self.base_url = (base_url or settings.gemini_api_base).rstrip("/")
        self.timeout = timeout or settings.http_timeout_seconds
        self.max_retries = max_retries if max_retries is not None else settings.reasoning_max_retries
        self.backoff_base = backoff_base if backoff_base is not None else settings.reasoning_backoff_base
        self.transport = transport

    async def generate_structured(self, prompt: str, schema: Mapping[str, Any]) -> Any:
        """
        Ask the model for a JSON answer constrained by ``schema``.

        Retry strategy:
        - Exponential backoff: base * 2^(attempt - 1)
        - Retries on 429/5xx and network failures, other 4xx fail immediately

        Raises:
            ClassificationUnavailable: Service unreachable or answer not decodable
            ConfigMissing: When no API key is configured
        """
        if not self.api_key:
            raise ConfigMissing("GEMINI_API_KEY is not set")

        payload = {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {
                "responseMimeType": "application/json",
                "responseSchema": dict(schema),
            },
        }
        url = f"{self.base_url}/models/{self.model}:generateContent"

        attempt = 0
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            while True:
                try:
                    with reasoning_latency_histogram.time():
                        response = await client.post(
                            url,
                            json=payload,
                            headers={"x-goog-api-key": self.api_key},
                        )
                        response.raise_for_status()
                    break

                except httpx.HTTPStatusError as e:
                    attempt += 1
                    reasoning_failure_counter.inc()
                    status = e.response.status_code
                    if status not in RETRYABLE_STATUS or attempt >= self.max_retries:
                        raise ClassificationUnavailable(f"Reasoning service error: {status}") from e

                except httpx.RequestError as e:
                    attempt += 1
                    reasoning_failure_counter.inc()
                    if attempt >= self.max_retries:
                        raise ClassificationUnavailable(f"Reasoning service unreachable: {e}") from e

                backoff = self.backoff_base * (2 ** (attempt - 1))
                await asyncio.sleep(backoff)

        try:
            body = response.json()
        except ValueError as e:
            raise ClassificationUnavailable("Reasoning response body was not JSON") from e
        return _extract_json(body)
