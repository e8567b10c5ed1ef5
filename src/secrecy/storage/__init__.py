"""Local persistence: substrates and the chat/note store."""

from .store import ACTIVE_CHAT_KEY, CHATS_KEY, NOTES_KEY, ChatStore
from .substrate import JsonFileSubstrate, KeyValueSubstrate, MemorySubstrate

__all__ = [
    "ACTIVE_CHAT_KEY",
    "CHATS_KEY",
    "NOTES_KEY",
    "ChatStore",
    "JsonFileSubstrate",
    "KeyValueSubstrate",
    "MemorySubstrate",
]
