"""Data models for chats, messages, notes and token balances."""

from __future__ import annotations

import random
import string
import time
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any

PLACEHOLDER_CHAT_TITLE = "🔒 New Secret Chat"
PLACEHOLDER_REQUEST_TITLE = "🔒 New Secret Request"
DEFAULT_NOTE_TITLE = "🔒 Secret Note from Chat"
UNTITLED_NOTE_TITLE = "Untitled Note"

# Titles that still count as "not chosen yet" and may be replaced by one
# derived from the first user message.
PLACEHOLDER_TITLES = frozenset({
    "New Request",
    "🎯 New Request",
    PLACEHOLDER_REQUEST_TITLE,
    "New Chat",
    "🎯 New Chat",
    PLACEHOLDER_CHAT_TITLE,
})

TITLE_WORD_LIMIT = 4
TITLE_PREFIX = "🔒 "
ELLIPSIS = "..."
DISPLAY_TITLE_CHARS = 30
PIN_TITLE_CHARS = 50

_ID_ALPHABET = string.ascii_lowercase + string.digits


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(tz=timezone.utc)


def new_id(prefix: str) -> str:
    """Generate a time-sortable id such as ``chat-1700000000000-k3j9x0a1b``."""
    millis = int(time.time() * 1000)
    suffix = "".join(random.choices(_ID_ALPHABET, k=9))
    return f"{prefix}-{millis}-{suffix}"


def format_instant(value: datetime) -> str:
    return value.astimezone(timezone.utc).isoformat()


def parse_instant(value: Any) -> datetime:
    """Parse a stored instant back into an aware datetime.

    Accepts ISO strings (including the ``Z`` suffix written by browsers) and
    epoch milliseconds.

    Raises:
        ValueError: If the value is not a recognizable instant.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        parsed = datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        parsed = datetime.fromisoformat(text)
    else:
        raise ValueError(f"Not an instant: {value!r}")

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class Sender(Enum):
    """Author of a message."""

    USER = "user"
    AI = "ai"


@dataclass(frozen=True)
class Message:
    """One turn in a chat. Never modified after creation."""

    text: str
    sender: Sender
    id: str = ""
    timestamp: datetime = field(default_factory=utc_now)

    def __post_init__(self) -> None:
        if not self.id:
            object.__setattr__(self, "id", new_id(self.sender.value))

    @classmethod
    def from_user(cls, text: str) -> Message:
        return cls(text=text, sender=Sender.USER)

    @classmethod
    def from_ai(cls, text: str, *, error: bool = False) -> Message:
        prefix = "error" if error else Sender.AI.value
        return cls(text=text, sender=Sender.AI, id=new_id(prefix))

    @property
    def role(self) -> str:
        """Role name used when passing the message as LLM context."""
        return "user" if self.sender is Sender.USER else "assistant"

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "text": self.text,
            "sender": self.sender.value,
            "timestamp": format_instant(self.timestamp),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Message:
        return cls(
            id=data["id"],
            text=data["text"],
            sender=Sender(data["sender"]),
            timestamp=parse_instant(data["timestamp"]),
        )


def is_placeholder_title(title: str) -> bool:
    return title in PLACEHOLDER_TITLES


def derive_title(messages: list[Message]) -> str:
    """Build a chat title from the first user message.

    Keeps the first four space-separated words and adds an ellipsis when the
    message was longer than that.
    """
    first_user = next((m for m in messages if m.sender is Sender.USER), None)
    if first_user is None:
        return PLACEHOLDER_REQUEST_TITLE

    words = first_user.text.split(" ")
    title = TITLE_PREFIX + " ".join(words[:TITLE_WORD_LIMIT])
    if len(words) > TITLE_WORD_LIMIT:
        title += ELLIPSIS
    return title


def _truncate(text: str, limit: int) -> str:
    return text[:limit] + (ELLIPSIS if len(text) > limit else "")


def pin_note_title(message: Message) -> str:
    """Default title for a note pinned from ``message``."""
    if message.sender is Sender.USER:
        return f"🔒 Secret Query: {_truncate(message.text, PIN_TITLE_CHARS)}"
    return f"🤖 AI Response: {_truncate(message.text, PIN_TITLE_CHARS)}"


@dataclass
class Chat:
    """A titled, ordered thread of messages.

    Attributes:
        id: Unique chat id.
        title: Placeholder until derived from the first user message or
            renamed.
        messages: Messages in insertion (and chronological) order.
        created_at: When the chat was created.
        last_message_at: Time of the latest append, never before created_at.
        is_pinned: Whether the chat is pinned to the top of the list.
    """

    id: str = field(default_factory=lambda: new_id("chat"))
    title: str = PLACEHOLDER_CHAT_TITLE
    messages: list[Message] = field(default_factory=list)
    created_at: datetime = field(default_factory=utc_now)
    last_message_at: datetime | None = None
    is_pinned: bool = False

    def __post_init__(self) -> None:
        if self.last_message_at is None or self.last_message_at < self.created_at:
            self.last_message_at = self.created_at

    def append(self, message: Message) -> Message:
        """Add a message at the end of the chat.

        The stored message's timestamp is clamped so it never precedes the
        previous message. The title is derived from content only while it is
        still a placeholder.

        Returns:
            The message as stored.
        """
        assert self.last_message_at is not None
        floor = self.messages[-1].timestamp if self.messages else self.created_at
        if message.timestamp < floor:
            message = replace(message, timestamp=floor)

        self.messages.append(message)
        self.last_message_at = max(self.last_message_at, message.timestamp)
        if is_placeholder_title(self.title):
            self.title = derive_title(self.messages)
        return message

    def rename(self, title: str) -> None:
        self.title = title

    def toggle_pin(self) -> bool:
        self.is_pinned = not self.is_pinned
        return self.is_pinned

    def clear(self) -> None:
        """Drop all messages. Id, title and pin state are kept."""
        self.messages = []

    def find_message(self, message_id: str) -> Message | None:
        return next((m for m in self.messages if m.id == message_id), None)

    def display_title(self) -> str:
        """Title as shown in a chat list."""
        if not is_placeholder_title(self.title):
            return self.title
        first_user = next((m for m in self.messages if m.sender is Sender.USER), None)
        if first_user is None:
            return self.title
        return _truncate(first_user.text, DISPLAY_TITLE_CHARS)

    def recent_context(self, limit: int = 6) -> list[dict[str, str]]:
        """Last ``limit`` messages in role/content form."""
        if limit <= 0:
            return []
        return [{"role": m.role, "content": m.text} for m in self.messages[-limit:]]

    def to_dict(self) -> dict[str, Any]:
        assert self.last_message_at is not None
        return {
            "id": self.id,
            "title": self.title,
            "messages": [m.to_dict() for m in self.messages],
            "createdAt": format_instant(self.created_at),
            "lastMessageAt": format_instant(self.last_message_at),
            "isPinned": self.is_pinned,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Chat:
        return cls(
            id=data["id"],
            title=data.get("title", PLACEHOLDER_CHAT_TITLE),
            messages=[Message.from_dict(m) for m in data.get("messages", [])],
            created_at=parse_instant(data["createdAt"]),
            last_message_at=parse_instant(data["lastMessageAt"]),
            is_pinned=bool(data.get("isPinned", False)),
        )


def sort_for_display(chats: list[Chat]) -> list[Chat]:
    """Pinned chats first, then most recently active first."""
    return sorted(
        chats,
        key=lambda c: (not c.is_pinned, -(c.last_message_at or c.created_at).timestamp()),
    )


@dataclass
class Note:
    """A saved piece of text, optionally traceable to a chat message.

    The source ids are back-references only: deleting the chat leaves the
    note alone.
    """

    title: str
    content: str
    id: str = field(default_factory=lambda: new_id("note"))
    source_message_id: str | None = None
    source_chat_id: str | None = None
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    def edit(self, title: str | None = None, content: str | None = None) -> None:
        if title is not None:
            self.title = title.strip() or UNTITLED_NOTE_TITLE
        if content is not None:
            self.content = content.strip()
        self.updated_at = max(utc_now(), self.created_at)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "title": self.title,
            "content": self.content,
            "createdAt": format_instant(self.created_at),
            "updatedAt": format_instant(self.updated_at),
        }
        if self.source_message_id is not None:
            data["sourceMessageId"] = self.source_message_id
        if self.source_chat_id is not None:
            data["sourceChatId"] = self.source_chat_id
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Note:
        return cls(
            id=data["id"],
            title=data.get("title", ""),
            content=data.get("content", ""),
            source_message_id=data.get("sourceMessageId"),
            source_chat_id=data.get("sourceChatId"),
            created_at=parse_instant(data["createdAt"]),
            updated_at=parse_instant(data["updatedAt"]),
        )


@dataclass(frozen=True)
class UserTokens:
    """A user's token balance. ``remaining`` is always ``total - used``."""

    total: int
    used: int = 0

    @property
    def remaining(self) -> int:
        return self.total - self.used

    def to_dict(self) -> dict[str, int]:
        return {"total": self.total, "used": self.used, "remaining": self.remaining}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> UserTokens:
        total = int(data["total"])
        used = int(data["used"])
        if used < 0 or used > total:
            raise ValueError(f"Inconsistent token record: total={total} used={used}")
        return cls(total=total, used=used)
