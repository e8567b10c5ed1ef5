"""Completion provider protocol and prompt construction."""

from typing import Protocol, runtime_checkable

from ..modes import ChatMode

PROMPT_CONTEXT_MESSAGES = 3

PROMPT_TEMPLATE = """{mode_prompt}

CONVERSATION CONTEXT:
{context}

USER QUERY: {message}

Respond in the appropriate format for {mode_key} mode, maintaining personality and using emojis."""


@runtime_checkable
class CompletionProvider(Protocol):
    """Anything that can turn a prompt into generated text.

    Implementations raise CompletionError for every kind of failure
    (transport, non-success status, malformed or empty response).
    """

    async def complete(self, prompt: str, *, temperature: float = 0.7) -> str:
        """Return the best candidate's text for ``prompt``."""
        ...


def build_prompt(
    mode: ChatMode,
    context: list[dict[str, str]] | None,
    message: str,
) -> str:
    """Build the single role-tagged prompt sent to the provider.

    Args:
        mode: Active mode; supplies the system instructions.
        context: Earlier messages as role/content dicts. Only the last few
            are kept.
        message: The new user text.

    Returns:
        The full prompt string.
    """
    recent = (context or [])[-PROMPT_CONTEXT_MESSAGES:]
    context_block = "\n".join(f"{m['role']}: {m['content']}" for m in recent)
    return PROMPT_TEMPLATE.format(
        mode_prompt=mode.system_prompt(),
        context=context_block,
        message=message,
        mode_key=mode.key,
    )
