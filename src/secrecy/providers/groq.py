"""Groq chat-completions provider."""

from typing import Any

from groq import AsyncGroq, GroqError

from ..errors import CompletionError

DEFAULT_MODEL = "llama-3.1-70b-versatile"


class GroqProvider:
    """CompletionProvider that wraps AsyncGroq.

    Example:
        from groq import AsyncGroq
        from secrecy.providers import GroqProvider

        provider = GroqProvider(AsyncGroq(api_key="..."), model="llama-3.1-70b-versatile")
        text = await provider.complete("Hello", temperature=0.7)
    """

    def __init__(
        self,
        client: AsyncGroq,
        model: str = DEFAULT_MODEL,
        max_tokens: int = 2048,
    ) -> None:
        """Initialize the wrapper.

        Args:
            client: The AsyncGroq client instance to wrap.
            model: The model to use for completions.
            max_tokens: Maximum output length.
        """
        self._client = client
        self._model = model
        self._max_tokens = max_tokens

    @property
    def model(self) -> str:
        """Return the model being used."""
        return self._model

    async def complete(self, prompt: str, *, temperature: float = 0.7) -> str:
        messages: list[dict[str, Any]] = [{"role": "user", "content": prompt}]

        try:
            response = await self._client.chat.completions.create(
                model=self._model,
                messages=messages,
                temperature=temperature,
                top_p=0.95,
                max_tokens=self._max_tokens,
            )
        except GroqError as e:
            raise CompletionError(f"Groq request failed: {e}") from e

        if not response.choices:
            raise CompletionError("No response generated")

        content = response.choices[0].message.content
        if not content:
            raise CompletionError("Empty response")
        return content
