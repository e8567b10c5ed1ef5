"""Wiring of the core plus the active-chat lifecycle.

A Workspace owns the process-wide EventBus and hands it to every component
that publishes changes. Front ends talk to the Workspace; they never keep
their own copies of stored state beyond what they re-read on notification.
"""

from __future__ import annotations

import logging

from groq import AsyncGroq

from .analysis import CompetitorAnalyzer
from .auth import AuthState
from .config import AppConfig
from .events import EventBus
from .ledger import QuotaLedger
from .logging import JSONLLogger, get_logger
from .models import Chat, Note, UserTokens, pin_note_title, sort_for_display
from .modes import DEFAULT_MODE, ChatMode
from .orchestrator import ChatOrchestrator, Notifier, SendResult
from .providers import CompletionProvider, GeminiProvider, GroqProvider
from .storage import ChatStore, JsonFileSubstrate, KeyValueSubstrate

logger = logging.getLogger(__name__)


def create_provider(config: AppConfig) -> CompletionProvider:
    """Build the completion provider selected in ``config``.

    Raises:
        ValueError: If the selected provider has no API key.
    """
    if not config.api_key:
        raise ValueError(f"{config.api_key_env_var} is not set")
    if config.provider == "groq":
        return GroqProvider(AsyncGroq(api_key=config.api_key), model=config.groq_model)
    return GeminiProvider(config.api_key, model=config.gemini_model)


class Workspace:
    """Chats, notes, tokens and sending for one signed-in user."""

    def __init__(
        self,
        substrate: KeyValueSubstrate,
        provider: CompletionProvider,
        notifier: Notifier | None = None,
        initial_tokens: int | None = None,
        event_logger: JSONLLogger | None = None,
    ) -> None:
        self.bus = EventBus()
        self.store = ChatStore(substrate, self.bus)
        if initial_tokens is None:
            self.ledger = QuotaLedger(substrate, self.bus)
        else:
            self.ledger = QuotaLedger(substrate, self.bus, initial_allowance=initial_tokens)
        self.auth = AuthState(self.bus)
        self.event_logger = event_logger or get_logger()
        self.orchestrator = ChatOrchestrator(
            self.store,
            self.ledger,
            self.auth,
            provider,
            notifier=notifier,
            event_logger=self.event_logger,
        )
        self.analyzer = CompetitorAnalyzer(provider, self.store)
        self.mode: ChatMode = DEFAULT_MODE

    @classmethod
    def from_config(
        cls,
        config: AppConfig,
        provider: CompletionProvider | None = None,
        notifier: Notifier | None = None,
        event_logger: JSONLLogger | None = None,
    ) -> Workspace:
        """Build a workspace persisted in ``config.storage_path``."""
        workspace = cls(
            JsonFileSubstrate(config.storage_path),
            provider or create_provider(config),
            notifier=notifier,
            initial_tokens=config.initial_tokens,
            event_logger=event_logger,
        )
        if config.user_id:
            workspace.sign_in(config.user_id)
        return workspace

    def close(self) -> None:
        """Tear down the event bus. The workspace is unusable afterwards."""
        self.bus.close()

    # --- Auth and tokens ---

    def sign_in(self, user_id: str) -> UserTokens:
        """Sign in and make sure the user has a token record."""
        self.auth.sign_in(user_id)
        self.event_logger.set_user_id(self.auth.user_id)
        return self.ledger.initialize(user_id)

    def sign_out(self) -> None:
        self.auth.sign_out()
        self.event_logger.set_user_id(None)

    def tokens(self) -> UserTokens | None:
        """Current balance of the signed-in user, or None if signed out."""
        if self.auth.user_id is None:
            return None
        return self.ledger.get(self.auth.user_id)

    # --- Chats ---

    def ensure_active_chat(self) -> Chat:
        """Return the active chat, creating one if there is none."""
        chats = self.store.get_all_chats()
        active_id = self.store.get_active_chat_id()
        active = next((c for c in chats if c.id == active_id), None)
        if active is None:
            active = self.store.create_new_chat()
            self.store.set_active_chat_id(active.id)
        return active

    @property
    def active_chat(self) -> Chat:
        return self.ensure_active_chat()

    def list_chats(self) -> list[Chat]:
        return sort_for_display(self.store.get_all_chats())

    def new_chat(self) -> Chat:
        chat = self.store.create_new_chat()
        self.store.set_active_chat_id(chat.id)
        return chat

    def select_chat(self, chat_id: str) -> Chat:
        """Make ``chat_id`` the active chat.

        Raises:
            KeyError: If no chat has that id.
        """
        chat = self.store.get_chat(chat_id)
        if chat is None:
            raise KeyError(chat_id)
        self.store.set_active_chat_id(chat.id)
        return chat

    def delete_chat(self, chat_id: str) -> Chat:
        """Delete a chat and return the chat that is active afterwards.

        Notes pinned from the deleted chat are kept.
        """
        was_active = self.store.get_active_chat_id() == chat_id
        self.store.delete_chat(chat_id)
        logger.info("Deleted chat %s", chat_id)
        self.event_logger.log("chat_deleted", chat_id=chat_id)

        if not was_active:
            return self.ensure_active_chat()

        remaining = self.store.get_all_chats()
        if remaining:
            self.store.set_active_chat_id(remaining[0].id)
            return remaining[0]
        return self.new_chat()

    def _require_chat(self, chat_id: str) -> Chat:
        chat = self.store.get_chat(chat_id)
        if chat is None:
            raise KeyError(chat_id)
        return chat

    def rename_chat(self, chat_id: str, title: str) -> Chat:
        title = title.strip()
        if not title:
            raise ValueError("title must not be empty")
        chat = self._require_chat(chat_id)
        chat.rename(title)
        self.store.save_chat(chat)
        return chat

    def toggle_pin(self, chat_id: str) -> Chat:
        chat = self._require_chat(chat_id)
        chat.toggle_pin()
        self.store.save_chat(chat)
        return chat

    def clear_chat(self, chat_id: str) -> Chat:
        chat = self._require_chat(chat_id)
        chat.clear()
        self.store.save_chat(chat)
        return chat

    # --- Sending ---

    def set_mode(self, mode: ChatMode) -> None:
        self.mode = mode

    async def send(self, text: str, mode: ChatMode | None = None) -> SendResult:
        """Send ``text`` in the active chat."""
        chat = self.ensure_active_chat()
        return await self.orchestrator.send_message(chat.id, text, mode or self.mode)

    # --- Notes ---

    def list_notes(self) -> list[Note]:
        return self.store.get_all_notes()

    def pin_message(self, chat_id: str, message_id: str, title: str | None = None) -> Note:
        """Save a message of ``chat_id`` as a note.

        Raises:
            KeyError: If the chat or the message does not exist.
        """
        chat = self._require_chat(chat_id)
        message = chat.find_message(message_id)
        if message is None:
            raise KeyError(message_id)
        return self.store.create_note_from_message(
            message, chat.id, title or pin_note_title(message)
        )

    def edit_note(self, note_id: str, title: str | None = None, content: str | None = None) -> Note:
        note = self.store.update_note(note_id, title=title, content=content)
        if note is None:
            raise KeyError(note_id)
        return note

    def delete_note(self, note_id: str) -> None:
        self.store.delete_note(note_id)

    async def analyze_competitor(self, url: str) -> Note:
        """Analyze a website and pin the report to notes."""
        analysis = await self.analyzer.analyze(url)
        return self.analyzer.pin_to_notes(analysis)
