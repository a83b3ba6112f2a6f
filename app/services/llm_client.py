"""
Thin OpenAI chat-completions client on top of a shared httpx.AsyncClient.

The AsyncClient is created and closed by the application (see app.main); this
class only holds a reference to it. Every call is bounded by `timeout` so a
slow provider turns into an LLMError instead of a hanging request.
"""
import asyncio
import json
import logging
from typing import Optional, Tuple

import httpx

logger = logging.getLogger(__name__)


class LLMError(Exception):
    """Base exception for LLM client errors"""

    def __init__(self, message: str, code: str = "provider_error", status_code: int = None):
        super().__init__(message)
        self.code = code
        self.status_code = status_code


class LLMQuotaExceededError(LLMError):
    """The provider account has no remaining quota. Not worth falling back silently."""

    def __init__(self, message: str, status_code: int = 429):
        super().__init__(message, code="insufficient_quota", status_code=status_code)


class LLMClient:
    def __init__(
        self,
        http_client: httpx.AsyncClient,
        api_key: str,
        base_url: str = "https://api.openai.com/v1",
        timeout: float = 20.0,
    ):
        self.http_client = http_client
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    async def complete_json(
        self,
        model: str,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.7,
        max_tokens: int = 1500,
    ) -> Tuple[dict, dict]:
        """
        Request a JSON-object completion.

        Returns:
            (parsed_json, metadata) where metadata has "model" and "tokens_used".

        Raises:
            LLMQuotaExceededError: provider reports insufficient_quota
            LLMError: timeout, transport failure, non-200 response or unparseable content
        """
        if not self.api_key:
            raise LLMError("OpenAI API key not configured", code="not_configured")

        payload = {
            "model": model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "temperature": temperature,
            "max_tokens": max_tokens,
            "response_format": {"type": "json_object"},
        }

        try:
            response = await asyncio.wait_for(
                self.http_client.post(
                    f"{self.base_url}/chat/completions",
                    headers={
                        "Content-Type": "application/json",
                        "Authorization": f"Bearer {self.api_key}",
                    },
                    json=payload,
                    timeout=self.timeout,
                ),
                timeout=self.timeout,
            )
        except (asyncio.TimeoutError, httpx.TimeoutException):
            raise LLMError(f"Timed out after {self.timeout}s calling OpenAI", code="timeout", status_code=408)
        except httpx.HTTPError as e:
            raise LLMError(f"Connection error to OpenAI: {e}", code="connection_error", status_code=503)

        if response.status_code != 200:
            self._raise_for_error(response)

        try:
            result = response.json()
            content = result["choices"][0]["message"]["content"]
            parsed = json.loads(content)
        except (KeyError, IndexError, TypeError, ValueError) as e:
            raise LLMError(f"Invalid OpenAI response: {e}", code="invalid_response")

        if not isinstance(parsed, dict):
            raise LLMError("OpenAI response is not a JSON object", code="invalid_response")

        usage = result.get("usage") or {}
        return parsed, {
            "model": result.get("model", model),
            "tokens_used": usage.get("total_tokens"),
        }

    @staticmethod
    def _raise_for_error(response: httpx.Response) -> None:
        try:
            error = response.json().get("error") or {}
            error_code = error.get("code") or error.get("type") or "unknown_error"
            error_message = error.get("message") or response.text
        except (ValueError, AttributeError):
            error_code, error_message = "unknown_error", response.text

        if error_code == "insufficient_quota":
            raise LLMQuotaExceededError(f"OpenAI quota exhausted: {error_message}", status_code=response.status_code)

        raise LLMError(
            f"OpenAI API error {response.status_code}: {error_message}",
            code=error_code,
            status_code=response.status_code,
        )
