"""Tests for CLI."""

from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from secrecy.cli import CLI, PrintNotifier, run_cli
from secrecy.config import AppConfig
from secrecy.logging import JSONLLogger, reset_logger
from secrecy.modes import ChatMode
from secrecy.storage import MemorySubstrate
from secrecy.workspace import Workspace


@pytest.fixture
def workspace(provider: MagicMock, event_logger: JSONLLogger) -> Workspace:
    return Workspace(MemorySubstrate(), provider, notifier=PrintNotifier(), event_logger=event_logger)


@pytest.fixture
def cli(workspace: Workspace, tmp_path: Path, event_logger: JSONLLogger) -> CLI:
    cli = CLI(workspace, export_dir=tmp_path / "exports", event_logger=event_logger)
    cli.workspace.ensure_active_chat()
    return cli


@pytest.mark.asyncio
async def test_handle_command_exit(cli: CLI):
    assert await cli._handle_command("/exit") is False
    assert await cli._handle_command("quit") is False


@pytest.mark.asyncio
async def test_handle_command_help(cli: CLI, capsys):
    assert await cli._handle_command("/help") is True
    assert "/analyze <url>" in capsys.readouterr().out


@pytest.mark.asyncio
async def test_unknown_command_continues(cli: CLI, capsys):
    assert await cli._handle_command("/dance") is True
    assert "Unknown command" in capsys.readouterr().out


@pytest.mark.asyncio
async def test_send_requires_login(cli: CLI, capsys):
    await cli._process_message("hello")

    assert "🔒 Authentication required" in capsys.readouterr().out
    assert cli.workspace.active_chat.messages == []


@pytest.mark.asyncio
async def test_login_then_send(cli: CLI, capsys):
    await cli._handle_command("/login alice")
    await cli._process_message("hello")

    out = capsys.readouterr().out
    assert "Signed in as alice" in out
    assert "Hello from AI" in out
    assert "🔒 5 tokens deducted" in out
    assert cli.workspace.tokens().used == 5


@pytest.mark.asyncio
async def test_mode_command(cli: CLI, capsys):
    await cli._handle_command("/mode research")
    assert cli.workspace.mode is ChatMode.SEARCH

    await cli._handle_command("/mode turbo")
    assert "Unknown mode" in capsys.readouterr().out
    assert cli.workspace.mode is ChatMode.SEARCH


@pytest.mark.asyncio
async def test_chat_commands(cli: CLI, capsys):
    await cli._handle_command("/rename Secret plans")
    await cli._handle_command("/pin")
    await cli._handle_command("/new")
    await cli._handle_command("/chats")

    out = capsys.readouterr().out
    assert "📌 Secret plans" in out

    await cli._handle_command("/switch 1")
    assert cli.workspace.active_chat.title == "Secret plans"

    await cli._handle_command("/switch 9")
    assert "No chat 9" in capsys.readouterr().out


@pytest.mark.asyncio
async def test_delete_command(cli: CLI):
    chat_id = cli.workspace.active_chat.id
    await cli._handle_command("/delete")
    assert cli.workspace.store.get_chat(chat_id) is None
    assert cli.workspace.active_chat.id != chat_id


@pytest.mark.asyncio
async def test_note_commands(cli: CLI, capsys, tmp_path: Path):
    await cli._handle_command("/login alice")
    await cli._process_message("Remember the milk")
    await cli._handle_command("/pin-last")
    await cli._handle_command("/edit-note 1 Buy oat milk")
    await cli._handle_command("/note 1")

    out = capsys.readouterr().out
    assert "Saved note: 🤖 AI Response: Hello from AI" in out
    assert "Buy oat milk" in out

    await cli._handle_command("/export 1 md")
    assert len(list((tmp_path / "exports").glob("*.md"))) == 1

    await cli._handle_command("/delete-note 1")
    assert cli.workspace.list_notes() == []

    await cli._handle_command("/note 1")
    assert "No note 1" in capsys.readouterr().out


@pytest.mark.asyncio
async def test_analyze_command(cli: CLI, provider: MagicMock, capsys):
    provider.complete = AsyncMock(return_value='{"title": "Acme"}')

    await cli._handle_command("/analyze https://acme.example")

    assert "🎯 Competitor Analysis: Acme" in capsys.readouterr().out


@pytest.mark.asyncio
async def test_analyze_without_url(cli: CLI, capsys):
    await cli._handle_command("/analyze")
    assert "Please enter a valid URL" in capsys.readouterr().out


@pytest.mark.asyncio
async def test_tokens_command(cli: CLI, capsys):
    await cli._handle_command("/tokens")
    assert "Sign in" in capsys.readouterr().out

    await cli._handle_command("/login alice")
    await cli._handle_command("/tokens")
    assert "2000/2000 tokens remaining" in capsys.readouterr().out


def test_low_balance_warning_once(cli: CLI, capsys):
    cli.workspace.sign_in("alice")
    cli.workspace.ledger.deduct("alice", 1950)
    tokens = cli.workspace.tokens()

    cli._on_tokens(tokens)
    cli._on_tokens(tokens)

    assert capsys.readouterr().out.count("running low") == 1


@pytest.mark.asyncio
async def test_run_cli_without_api_key(tmp_path: Path, capsys):
    await run_cli(AppConfig(data_dir=tmp_path))
    assert "GEMINI_API_KEY environment variable not set" in capsys.readouterr().out
    reset_logger()
