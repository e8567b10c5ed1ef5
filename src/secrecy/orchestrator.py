"""Send-message orchestration: quota gate, provider call, persistence."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Protocol

from .auth import AuthState
from .ledger import QuotaLedger
from .logging import JSONLLogger, get_logger
from .models import Chat, Message
from .modes import DEFAULT_MODE, ChatMode
from .providers.base import CompletionProvider, build_prompt
from .storage.store import ChatStore

logger = logging.getLogger(__name__)

FALLBACK_REPLY = "🔒 I apologize, I'm having trouble responding right now. Please try again."
AUTH_REQUIRED_MESSAGE = "🔒 Authentication required"
COMPLETION_FAILED_MESSAGE = "🔒 Failed to get AI response"


class SendState(Enum):
    """Where the orchestrator is in handling a send."""

    IDLE = "idle"
    AWAITING_QUOTA = "awaiting_quota"
    SENDING = "sending"
    SETTLED = "settled"


class SendStatus(Enum):
    """How a send ended."""

    COMPLETED = "completed"
    FAILED = "failed"
    EMPTY = "empty"
    BUSY = "busy"
    UNAUTHENTICATED = "unauthenticated"
    INSUFFICIENT_TOKENS = "insufficient_tokens"
    CHAT_NOT_FOUND = "chat_not_found"


@dataclass
class SendResult:
    """Outcome of ``ChatOrchestrator.send_message``.

    ``chat`` is the stored state of the target chat after the send, or None
    when nothing was written.
    """

    status: SendStatus
    chat: Chat | None = None
    user_message: Message | None = None
    reply: Message | None = None
    cost: int = 0
    error: str | None = None
    discarded: bool = False

    @property
    def ok(self) -> bool:
        return self.status is SendStatus.COMPLETED


class Notifier(Protocol):
    """Transient, dismissible notifications for the user."""

    def info(self, message: str) -> None: ...

    def success(self, message: str) -> None: ...

    def error(self, message: str) -> None: ...


class LoggingNotifier:
    """Notifier that only writes to the application log."""

    def info(self, message: str) -> None:
        logger.info(message)

    def success(self, message: str) -> None:
        logger.info(message)

    def error(self, message: str) -> None:
        logger.warning(message)


@dataclass
class OrchestratorConfig:
    """Configuration for the orchestrator."""

    context_messages: int = 6
    fallback_reply: str = FALLBACK_REPLY


def insufficient_tokens_message(cost: int) -> str:
    return f"🔒 Insufficient tokens! ({cost} required)"


class ChatOrchestrator:
    """Runs one send at a time: check quota, record, ask, record, notify.

    Each send is bound to the chat id it was submitted for. The reply is
    appended to a fresh read of that chat, so switching chats while a
    request is in flight never moves the reply to another conversation.
    """

    def __init__(
        self,
        store: ChatStore,
        ledger: QuotaLedger,
        auth: AuthState,
        provider: CompletionProvider,
        notifier: Notifier | None = None,
        config: OrchestratorConfig | None = None,
        event_logger: JSONLLogger | None = None,
    ) -> None:
        self.store = store
        self.ledger = ledger
        self.auth = auth
        self.provider = provider
        self.notifier = notifier or LoggingNotifier()
        self.config = config or OrchestratorConfig()
        self.event_logger = event_logger or get_logger()
        self._state = SendState.IDLE

    @property
    def state(self) -> SendState:
        return self._state

    @property
    def is_sending(self) -> bool:
        """True from quota check until the reply is stored."""
        return self._state is not SendState.IDLE

    async def send_message(
        self,
        chat_id: str,
        text: str,
        mode: ChatMode = DEFAULT_MODE,
    ) -> SendResult:
        """Send ``text`` to the provider as the next turn of ``chat_id``.

        Args:
            chat_id: Chat the message (and its reply) belong to.
            text: User text. Blank text is ignored.
            mode: Mode that prices the send and shapes the prompt.

        Returns:
            SendResult describing what was stored.

        Raises:
            StorageWriteError: If the chat could not be persisted.
        """
        if not text.strip():
            return SendResult(SendStatus.EMPTY)

        if self.is_sending:
            return SendResult(SendStatus.BUSY)

        user_id = self.auth.user_id
        if user_id is None:
            self.notifier.error(AUTH_REQUIRED_MESSAGE)
            return SendResult(SendStatus.UNAUTHENTICATED)

        self._state = SendState.AWAITING_QUOTA
        try:
            return await self._send(user_id, chat_id, text, mode)
        finally:
            self._state = SendState.IDLE

    async def _send(self, user_id: str, chat_id: str, text: str, mode: ChatMode) -> SendResult:
        cost = mode.cost

        chat = self.store.get_chat(chat_id)
        if chat is None:
            logger.warning("Send to unknown chat %s", chat_id)
            self.notifier.error("🔒 Chat not found")
            return SendResult(SendStatus.CHAT_NOT_FOUND)

        if self.ledger.get(user_id).remaining < cost:
            self.notifier.error(insufficient_tokens_message(cost))
            return SendResult(SendStatus.INSUFFICIENT_TOKENS, chat=chat, cost=cost)

        context = chat.recent_context(self.config.context_messages)
        user_message = chat.append(Message.from_user(text))
        self.store.save_chat(chat)

        if not self.ledger.deduct(user_id, cost):
            self.notifier.error(insufficient_tokens_message(cost))
            return SendResult(
                SendStatus.INSUFFICIENT_TOKENS,
                chat=chat,
                user_message=user_message,
                cost=cost,
            )

        self.event_logger.log_tokens_deducted(
            cost, self.ledger.get(user_id).remaining, user_id=user_id
        )
        self.event_logger.log_send_start(chat_id, mode.key, user_id=user_id)

        self._state = SendState.SENDING
        started = time.monotonic()
        error: str | None = None
        try:
            prompt = build_prompt(mode, context, text)
            reply_text = await self.provider.complete(prompt, temperature=mode.temperature)
            reply = Message.from_ai(reply_text)
            status = SendStatus.COMPLETED
        except Exception as e:
            logger.error("Error calling completion provider: %s", e)
            error = str(e)
            reply = Message.from_ai(self.config.fallback_reply, error=True)
            status = SendStatus.FAILED
            self.event_logger.log_completion_error(
                error,
                chat_id=chat_id,
                duration_ms=(time.monotonic() - started) * 1000,
            )

        self._state = SendState.SETTLED
        duration_ms = (time.monotonic() - started) * 1000

        target = self.store.get_chat(chat_id)
        if target is None:
            logger.warning("Chat %s was deleted while waiting for a reply; dropping it", chat_id)
            self.event_logger.log_send_settled(
                status.value, chat_id=chat_id, mode=mode.key, cost=cost,
                duration_ms=duration_ms, discarded=True,
            )
            return SendResult(
                status,
                user_message=user_message,
                reply=reply,
                cost=cost,
                error=error,
                discarded=True,
            )

        reply = target.append(reply)
        self.store.save_chat(target)

        if status is SendStatus.COMPLETED:
            self.notifier.success(f"🔒 {cost} tokens deducted")
        else:
            self.notifier.error(COMPLETION_FAILED_MESSAGE)

        self.event_logger.log_send_settled(
            status.value, chat_id=chat_id, mode=mode.key, cost=cost, duration_ms=duration_ms
        )
        return SendResult(
            status,
            chat=target,
            user_message=user_message,
            reply=reply,
            cost=cost,
            error=error,
        )
