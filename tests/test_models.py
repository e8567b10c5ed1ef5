"""Tests for chat, message, note and token models."""

from datetime import datetime, timedelta, timezone

import pytest

from secrecy.models import (
    DEFAULT_NOTE_TITLE,
    PLACEHOLDER_CHAT_TITLE,
    PLACEHOLDER_REQUEST_TITLE,
    UNTITLED_NOTE_TITLE,
    Chat,
    Message,
    Note,
    Sender,
    UserTokens,
    derive_title,
    new_id,
    parse_instant,
    pin_note_title,
    sort_for_display,
)

T0 = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


class TestIds:
    def test_new_id_format(self):
        prefix, millis, suffix = new_id("chat").split("-")
        assert prefix == "chat"
        assert millis.isdigit()
        assert len(suffix) == 9

    def test_message_gets_id_from_sender(self):
        assert Message.from_user("hi").id.startswith("user-")
        assert Message.from_ai("hi").id.startswith("ai-")
        assert Message.from_ai("oops", error=True).id.startswith("error-")


class TestParseInstant:
    def test_z_suffix(self):
        assert parse_instant("2024-01-01T12:00:00.000Z") == T0

    def test_epoch_millis(self):
        assert parse_instant(int(T0.timestamp() * 1000)) == T0

    def test_naive_is_utc(self):
        assert parse_instant("2024-01-01T12:00:00").tzinfo is not None

    def test_garbage_raises(self):
        with pytest.raises(ValueError):
            parse_instant(None)


class TestMessage:
    def test_role(self):
        assert Message.from_user("q").role == "user"
        assert Message.from_ai("a").role == "assistant"

    def test_round_trip(self):
        message = Message(text="hi", sender=Sender.USER, timestamp=T0)
        assert Message.from_dict(message.to_dict()) == message

    def test_frozen(self):
        message = Message.from_user("hi")
        with pytest.raises(AttributeError):
            message.text = "changed"


class TestTitles:
    def test_derive_title_truncates_to_four_words(self):
        """The first user message supplies the title."""
        messages = [Message.from_user("Explain quantum tunneling in simple terms")]
        assert derive_title(messages) == "🔒 Explain quantum tunneling in..."

    def test_derive_title_short_message(self):
        assert derive_title([Message.from_user("Hi there")]) == "🔒 Hi there"

    def test_derive_title_without_user_message(self):
        assert derive_title([Message.from_ai("hello")]) == PLACEHOLDER_REQUEST_TITLE

    def test_pin_note_title(self):
        assert pin_note_title(Message.from_user("short")) == "🔒 Secret Query: short"
        long_text = "x" * 60
        assert pin_note_title(Message.from_ai(long_text)) == f"🤖 AI Response: {'x' * 50}..."


class TestChat:
    def test_new_chat_defaults(self):
        chat = Chat()
        assert chat.id.startswith("chat-")
        assert chat.title == PLACEHOLDER_CHAT_TITLE
        assert chat.last_message_at == chat.created_at
        assert chat.is_pinned is False

    def test_last_message_at_clamped(self):
        chat = Chat(created_at=T0, last_message_at=T0 - timedelta(days=1))
        assert chat.last_message_at == T0

    def test_append_derives_title_from_placeholder(self):
        chat = Chat()
        chat.append(Message.from_user("Explain quantum tunneling in simple terms"))
        assert chat.title == "🔒 Explain quantum tunneling in..."

    def test_renamed_title_is_kept(self):
        chat = Chat()
        chat.rename("My chat")
        chat.append(Message.from_user("Something else entirely here"))
        assert chat.title == "My chat"

    def test_append_keeps_timestamps_non_decreasing(self):
        chat = Chat(created_at=T0)
        chat.append(Message(text="a", sender=Sender.USER, timestamp=T0 + timedelta(seconds=5)))
        stored = chat.append(Message(text="b", sender=Sender.AI, timestamp=T0))

        assert stored.timestamp == T0 + timedelta(seconds=5)
        assert [m.text for m in chat.messages] == ["a", "b"]
        assert chat.last_message_at == T0 + timedelta(seconds=5)

    def test_clear_keeps_identity_and_title(self):
        chat = Chat()
        chat.append(Message.from_user("hello world"))
        title = chat.title

        chat.clear()

        assert chat.messages == []
        assert chat.title == title

    def test_toggle_pin(self):
        chat = Chat()
        assert chat.toggle_pin() is True
        assert chat.toggle_pin() is False

    def test_recent_context(self):
        chat = Chat()
        for i in range(8):
            chat.append(Message.from_user(f"m{i}"))

        context = chat.recent_context(6)

        assert len(context) == 6
        assert context[0] == {"role": "user", "content": "m2"}
        assert chat.recent_context(0) == []

    def test_display_title_placeholder_uses_first_message(self):
        chat = Chat(title="New Chat")
        assert chat.display_title() == "New Chat"
        chat.messages.append(Message.from_user("a" * 40))
        assert chat.display_title() == "a" * 30 + "..."

    def test_round_trip_uses_camel_case(self):
        chat = Chat(created_at=T0, is_pinned=True)
        chat.append(Message(text="hi", sender=Sender.USER, timestamp=T0))

        data = chat.to_dict()
        restored = Chat.from_dict(data)

        assert {"createdAt", "lastMessageAt", "isPinned"} <= set(data)
        assert restored == chat


def test_sort_for_display_pinned_then_recent():
    old = Chat(created_at=T0)
    recent = Chat(created_at=T0 + timedelta(hours=1))
    pinned = Chat(created_at=T0 - timedelta(hours=1), is_pinned=True)

    assert sort_for_display([old, recent, pinned]) == [pinned, recent, old]


class TestNote:
    def test_edit_blank_title_falls_back(self):
        note = Note(title=DEFAULT_NOTE_TITLE, content="x")
        note.edit(title="   ", content="  new body  ")
        assert note.title == UNTITLED_NOTE_TITLE
        assert note.content == "new body"
        assert note.updated_at >= note.created_at

    def test_to_dict_omits_missing_sources(self):
        data = Note(title="t", content="c").to_dict()
        assert "sourceMessageId" not in data
        assert "sourceChatId" not in data

    def test_round_trip(self):
        note = Note(
            title="t",
            content="c",
            source_message_id="user-1",
            source_chat_id="chat-1",
            created_at=T0,
            updated_at=T0,
        )
        assert Note.from_dict(note.to_dict()) == note


class TestUserTokens:
    def test_remaining(self):
        tokens = UserTokens(total=2000, used=15)
        assert tokens.remaining == 1985
        assert tokens.to_dict() == {"total": 2000, "used": 15, "remaining": 1985}

    def test_from_dict_rejects_overspent(self):
        with pytest.raises(ValueError):
            UserTokens.from_dict({"total": 10, "used": 11})
