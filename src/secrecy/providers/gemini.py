"""Gemini ``generateContent`` provider over plain HTTPS."""

import logging
from typing import Any

import httpx

from ..errors import CompletionError

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
DEFAULT_MODEL = "gemini-1.5-flash-latest"

HARM_CATEGORIES = (
    "HARM_CATEGORY_HARASSMENT",
    "HARM_CATEGORY_HATE_SPEECH",
    "HARM_CATEGORY_SEXUALLY_EXPLICIT",
    "HARM_CATEGORY_DANGEROUS_CONTENT",
)


class GeminiProvider:
    """CompletionProvider that calls the Gemini REST API with httpx.

    Args:
        api_key: Gemini API key, sent as the ``key`` query parameter.
        model: Model name in the URL path.
        base_url: API root, overridable for proxies and tests.
        timeout: Request timeout in seconds.
        transport: Optional httpx transport (tests pass a MockTransport).
    """

    def __init__(
        self,
        api_key: str,
        model: str = DEFAULT_MODEL,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key = api_key
        self._model = model
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport

    @property
    def model(self) -> str:
        return self._model

    @property
    def url(self) -> str:
        return f"{self._base_url}/models/{self._model}:generateContent"

    def build_payload(self, prompt: str, temperature: float) -> dict[str, Any]:
        return {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": temperature,
                "topK": 40,
                "topP": 0.95,
                "maxOutputTokens": 2048,
            },
            "safetySettings": [
                {"category": category, "threshold": "BLOCK_NONE"}
                for category in HARM_CATEGORIES
            ],
        }

    @staticmethod
    def extract_text(data: Any) -> str:
        """Pull the first candidate's text out of a response body.

        Raises:
            CompletionError: If there is no candidate or its text is empty.
        """
        try:
            candidates = data.get("candidates") or []
            if not candidates:
                raise CompletionError("No response generated")
            parts = candidates[0]["content"]["parts"]
            text = "".join(part.get("text", "") for part in parts)
        except (AttributeError, KeyError, IndexError, TypeError) as e:
            raise CompletionError(f"Malformed response: {e}") from e

        if not text:
            raise CompletionError("Empty response")
        return text

    async def complete(self, prompt: str, *, temperature: float = 0.7) -> str:
        payload = self.build_payload(prompt, temperature)
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                response = await client.post(
                    self.url,
                    params={"key": self._api_key},
                    json=payload,
                )
        except httpx.TimeoutException as e:
            raise CompletionError(f"Request timed out after {self._timeout}s") from e
        except httpx.RequestError as e:
            raise CompletionError(f"Request failed: {e}") from e

        if not response.is_success:
            logger.warning("Gemini returned HTTP %d", response.status_code)
            raise CompletionError(f"HTTP error! status: {response.status_code}")

        try:
            data = response.json()
        except ValueError as e:
            raise CompletionError(f"Invalid JSON in response: {e}") from e

        return self.extract_text(data)
