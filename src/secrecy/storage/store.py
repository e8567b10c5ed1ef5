"""Persistence for chats, notes and the active chat pointer.

Each collection lives under one substrate key as a JSON array. Every
mutation reads the whole collection, changes it in memory and writes the
whole collection back, then notifies subscribers. This is only safe with a
single writer per substrate.
"""

import json
import logging
from collections.abc import Callable
from typing import Any, TypeVar

from ..errors import StorageWriteError
from ..events import EventBus, Topic
from ..models import DEFAULT_NOTE_TITLE, PLACEHOLDER_CHAT_TITLE, Chat, Message, Note
from .substrate import KeyValueSubstrate

logger = logging.getLogger(__name__)

CHATS_KEY = "ai_chats"
NOTES_KEY = "ai_notes"
ACTIVE_CHAT_KEY = "active_chat_id"

T = TypeVar("T", Chat, Note)

_PARSE_ERRORS = (json.JSONDecodeError, KeyError, ValueError, TypeError, AttributeError)

_FACTORIES: dict[str, Callable[[dict[str, Any]], Any]] = {
    CHATS_KEY: Chat.from_dict,
    NOTES_KEY: Note.from_dict,
}


class ChatStore:
    """CRUD and change notification for chats and notes.

    Reads never raise. A missing or corrupt collection reads as empty, and a
    single record that cannot be parsed is skipped and logged. Skipped
    records stay stored: writes carry them over unless their id is the one
    being saved or deleted. Writes raise StorageWriteError when the
    substrate refuses them, and no notification is sent in that case.
    """

    def __init__(self, substrate: KeyValueSubstrate, bus: EventBus) -> None:
        self.substrate = substrate
        self.bus = bus

    # --- Subscriptions ---

    def on_chats_update(self, callback: Callable[[], None]) -> Callable[[], None]:
        return self.bus.subscribe(Topic.CHATS, callback)

    def on_notes_update(self, callback: Callable[[], None]) -> Callable[[], None]:
        return self.bus.subscribe(Topic.NOTES, callback)

    # --- Collection plumbing ---

    def _load_records(self, key: str) -> list[Any]:
        """Raw records stored under ``key``. A missing or corrupt blob is empty."""
        try:
            raw = self.substrate.get_item(key)
        except Exception as e:
            logger.error("Error reading %s: %s", key, e)
            return []

        if not raw:
            return []

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.error("Error loading %s: %s", key, e)
            return []
        if not isinstance(data, list):
            logger.error("Error loading %s: expected a list, got %s", key, type(data).__name__)
            return []
        return data

    def _read_collection(self, key: str, factory: Callable[[dict[str, Any]], T]) -> list[T]:
        items = []
        for record in self._load_records(key):
            try:
                items.append(factory(record))
            except _PARSE_ERRORS as e:
                logger.error("Skipping unreadable record in %s: %s", key, e)
        return items

    def _unreadable_records(self, key: str, exclude_ids: set[str]) -> list[Any]:
        """Stored records that do not parse, minus those whose id is excluded."""
        factory = _FACTORIES[key]
        kept = []
        for record in self._load_records(key):
            try:
                factory(record)
            except _PARSE_ERRORS:
                record_id = record.get("id") if isinstance(record, dict) else None
                if not isinstance(record_id, str) or record_id not in exclude_ids:
                    kept.append(record)
        return kept

    def _write_collection(
        self,
        key: str,
        items: list[Any],
        topic: Topic,
        removed_id: str | None = None,
    ) -> None:
        # Unreadable records are written back as they were so a save never
        # drops data it could not load.
        exclude_ids = {item.id for item in items}
        if removed_id is not None:
            exclude_ids.add(removed_id)
        records = [item.to_dict() for item in items]
        records.extend(self._unreadable_records(key, exclude_ids))

        payload = json.dumps(records, ensure_ascii=False)
        try:
            self.substrate.set_item(key, payload)
        except Exception as e:
            logger.error("Error saving %s: %s", key, e)
            raise StorageWriteError(key, e) from e
        self.bus.publish(topic)

    @staticmethod
    def _upsert(items: list[T], entity: T) -> list[T]:
        for index, existing in enumerate(items):
            if existing.id == entity.id:
                items[index] = entity
                return items
        items.append(entity)
        return items

    # --- Chats ---

    def get_all_chats(self) -> list[Chat]:
        return self._read_collection(CHATS_KEY, Chat.from_dict)

    def get_chat(self, chat_id: str) -> Chat | None:
        return next((c for c in self.get_all_chats() if c.id == chat_id), None)

    def save_chat(self, chat: Chat) -> None:
        """Insert or replace a chat by id."""
        chats = self._upsert(self.get_all_chats(), chat)
        self._write_collection(CHATS_KEY, chats, Topic.CHATS)

    def delete_chat(self, chat_id: str) -> None:
        chats = [c for c in self.get_all_chats() if c.id != chat_id]
        self._write_collection(CHATS_KEY, chats, Topic.CHATS, removed_id=chat_id)

    def create_new_chat(self, title: str | None = None) -> Chat:
        chat = Chat(title=title or PLACEHOLDER_CHAT_TITLE)
        self.save_chat(chat)
        return chat

    # --- Active chat ---

    def get_active_chat_id(self) -> str | None:
        try:
            return self.substrate.get_item(ACTIVE_CHAT_KEY)
        except Exception as e:
            logger.error("Error reading %s: %s", ACTIVE_CHAT_KEY, e)
            return None

    def set_active_chat_id(self, chat_id: str) -> None:
        try:
            self.substrate.set_item(ACTIVE_CHAT_KEY, chat_id)
        except Exception as e:
            logger.error("Error saving %s: %s", ACTIVE_CHAT_KEY, e)
            raise StorageWriteError(ACTIVE_CHAT_KEY, e) from e

    def clear_active_chat_id(self) -> None:
        self.substrate.remove_item(ACTIVE_CHAT_KEY)

    # --- Notes ---

    def get_all_notes(self) -> list[Note]:
        return self._read_collection(NOTES_KEY, Note.from_dict)

    def get_note(self, note_id: str) -> Note | None:
        return next((n for n in self.get_all_notes() if n.id == note_id), None)

    def save_note(self, note: Note) -> None:
        """Insert or replace a note by id."""
        notes = self._upsert(self.get_all_notes(), note)
        self._write_collection(NOTES_KEY, notes, Topic.NOTES)
        logger.debug("Note saved: %s", note.id)

    def delete_note(self, note_id: str) -> None:
        notes = [n for n in self.get_all_notes() if n.id != note_id]
        self._write_collection(NOTES_KEY, notes, Topic.NOTES, removed_id=note_id)

    def update_note(
        self,
        note_id: str,
        title: str | None = None,
        content: str | None = None,
    ) -> Note | None:
        """Apply an edit to a stored note.

        Returns:
            The updated note, or None if no note has that id.
        """
        note = self.get_note(note_id)
        if note is None:
            return None
        note.edit(title=title, content=content)
        self.save_note(note)
        return note

    def create_note_from_message(
        self,
        message: Message,
        chat_id: str,
        title: str | None = None,
    ) -> Note:
        note = Note(
            title=title or DEFAULT_NOTE_TITLE,
            content=message.text,
            source_message_id=message.id,
            source_chat_id=chat_id,
        )
        self.save_note(note)
        return note

    def create_note_from_content(self, title: str, content: str) -> Note:
        note = Note(title=title, content=content)
        self.save_note(note)
        return note
