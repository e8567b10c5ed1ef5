"""CLI interface for Secrecy."""

import asyncio
from pathlib import Path

from .config import AppConfig, config_from_env
from .errors import AnalysisError, CompletionError, StorageWriteError
from .export import export_note
from .ledger import is_exhausted, is_low
from .logging import JSONLLogger, configure_logger, get_logger
from .models import Chat, Note, Sender, UserTokens
from .modes import ChatMode
from .orchestrator import SendResult, SendStatus
from .usage import UsageMonitor
from .workspace import Workspace

BANNER = """
╔══════════════════════════════════════════╗
║           🔒 Secrecy v0.1.0              ║
║        Private AI Chat Workspace         ║
╚══════════════════════════════════════════╝

Commands:
  /exit, /quit          - Exit the CLI
  /help                 - Show this help
  /login <id>           - Sign in
  /logout               - Sign out
  /tokens               - Show your token balance
  /mode <name>          - Switch mode (Convo, Research, X-Ray, Ghost)
  /new                  - Start a new chat
  /chats                - List chats
  /switch <n>           - Open chat number n
  /rename <title>       - Rename the current chat
  /pin                  - Pin or unpin the current chat
  /clear                - Remove all messages of the current chat
  /delete               - Delete the current chat
  /notes                - List notes
  /note <n>             - Show note number n
  /pin-last             - Save the last message as a note
  /edit-note <n> <text> - Replace the content of note n
  /delete-note <n>      - Delete note n
  /export <n> <fmt>     - Export note n (txt, html, doc, md)
  /analyze <url>        - Analyze a competitor website into a note

Type your message and press Enter.
"""


class PrintNotifier:
    """Shows notifications on stdout."""

    def info(self, message: str) -> None:
        print(f"ℹ {message}")

    def success(self, message: str) -> None:
        print(f"✓ {message}")

    def error(self, message: str) -> None:
        print(f"❌ {message}")


def _format_tokens(tokens: UserTokens) -> str:
    line = f"🔒 {tokens.remaining}/{tokens.total} tokens remaining ({tokens.used} used)"
    if is_exhausted(tokens):
        line += " - exhausted"
    elif is_low(tokens):
        line += " - running low"
    return line


def _format_chat_line(index: int, chat: Chat, active_id: str | None) -> str:
    marker = "*" if chat.id == active_id else " "
    pin = "📌 " if chat.is_pinned else ""
    return f"{marker}{index:>3}. {pin}{chat.display_title()} ({len(chat.messages)} messages)"


class CLI:
    """Interactive command-line interface for Secrecy."""

    def __init__(
        self,
        workspace: Workspace,
        export_dir: Path | None = None,
        event_logger: JSONLLogger | None = None,
    ) -> None:
        self.workspace = workspace
        self.export_dir = export_dir or Path.cwd()
        self.logger = event_logger or get_logger()
        self._low_warned = False

    def _on_tokens(self, tokens: UserTokens) -> None:
        """Usage monitor callback. Warns once when the balance runs low."""
        if is_low(tokens) and not self._low_warned:
            print(f"\n⚠ {_format_tokens(tokens)}")
            self._low_warned = True
        elif not is_low(tokens):
            self._low_warned = False

    def _format_response(self, result: SendResult) -> str:
        """Format a send result for display."""
        if result.reply is None:
            return ""
        output = ["\n" + "─" * 40]
        output.append(result.reply.text)
        output.append("─" * 40)
        if result.discarded:
            output.append("⚠ The chat was deleted before the reply arrived")
        return "\n".join(output)

    def _note_at(self, arg: str) -> Note | None:
        notes = self.workspace.list_notes()
        try:
            index = int(arg) - 1
        except ValueError:
            print(f"❌ Not a note number: {arg}")
            return None
        if not 0 <= index < len(notes):
            print(f"❌ No note {arg}. Use /notes to list them.")
            return None
        return notes[index]

    async def _process_message(self, message: str) -> None:
        """Send a user message in the active chat."""
        try:
            result = await self.workspace.send(message)
        except StorageWriteError as e:
            print(f"\n❌ Could not save chat: {e}")
            self.logger.log("error", error=str(e))
            return

        if result.status is SendStatus.BUSY:
            print("⏳ Still waiting for the previous reply")
            return
        if result.reply is not None:
            print(self._format_response(result))

    def _show_chats(self) -> None:
        chats = self.workspace.list_chats()
        active_id = self.workspace.store.get_active_chat_id()
        if not chats:
            print("No chats yet.")
            return
        for index, chat in enumerate(chats, start=1):
            print(_format_chat_line(index, chat, active_id))

    def _show_history(self, chat: Chat) -> None:
        print(f"\n💬 {chat.title}")
        for message in chat.messages:
            who = "you" if message.sender is Sender.USER else "ai"
            print(f"{who}> {message.text}")

    def _show_notes(self) -> None:
        notes = self.workspace.list_notes()
        if not notes:
            print("No notes yet. Use /pin-last to save a message.")
            return
        for index, note in enumerate(notes, start=1):
            print(f"{index:>3}. {note.title}")

    async def _handle_command(self, command: str) -> bool:
        """Handle a special command. Returns True if should continue, False to exit."""
        name, _, arg = command.strip().partition(" ")
        cmd = name.lower()
        arg = arg.strip()
        ws = self.workspace

        if cmd in ("/exit", "/quit", "exit", "quit"):
            print("\n👋 Goodbye!")
            self.logger.log("session_end")
            return False

        if cmd == "/help":
            print(BANNER)
            return True

        try:
            if cmd == "/login":
                if not arg:
                    print("Usage: /login <id>")
                    return True
                tokens = ws.sign_in(arg)
                print(f"✓ Signed in as {ws.auth.user_id}")
                print(_format_tokens(tokens))

            elif cmd == "/logout":
                ws.sign_out()
                print("✓ Signed out")

            elif cmd == "/tokens":
                tokens = ws.tokens()
                print(_format_tokens(tokens) if tokens else "🔒 Sign in with /login <id> to see tokens")

            elif cmd == "/mode":
                if not arg:
                    modes = ", ".join(f"{m.label} ({m.cost})" for m in ChatMode)
                    print(f"Current mode: {ws.mode.label}. Available: {modes}")
                    return True
                ws.set_mode(ChatMode.parse(arg))
                print(f"✓ Mode: {ws.mode.label} ({ws.mode.cost} tokens per message)")

            elif cmd == "/new":
                chat = ws.new_chat()
                print(f"✓ New chat: {chat.title}")

            elif cmd == "/chats":
                self._show_chats()

            elif cmd == "/switch":
                chats = ws.list_chats()
                index = int(arg) - 1
                if not 0 <= index < len(chats):
                    print(f"❌ No chat {arg}. Use /chats to list them.")
                    return True
                self._show_history(ws.select_chat(chats[index].id))

            elif cmd == "/rename":
                chat = ws.rename_chat(ws.active_chat.id, arg)
                print(f"✓ Renamed to {chat.title}")

            elif cmd == "/pin":
                chat = ws.toggle_pin(ws.active_chat.id)
                print("📌 Pinned" if chat.is_pinned else "✓ Unpinned")

            elif cmd == "/clear":
                ws.clear_chat(ws.active_chat.id)
                print("✓ Chat cleared")

            elif cmd == "/delete":
                chat = ws.delete_chat(ws.active_chat.id)
                print(f"✓ Chat deleted. Now in: {chat.title}")

            elif cmd == "/notes":
                self._show_notes()

            elif cmd == "/note":
                note = self._note_at(arg)
                if note is not None:
                    print(f"\n📝 {note.title}\n\n{note.content}")

            elif cmd == "/pin-last":
                chat = ws.active_chat
                if not chat.messages:
                    print("❌ Nothing to pin yet")
                    return True
                note = ws.pin_message(chat.id, chat.messages[-1].id)
                print(f"✓ Saved note: {note.title}")

            elif cmd == "/edit-note":
                number, _, text = arg.partition(" ")
                note = self._note_at(number)
                if note is not None:
                    ws.edit_note(note.id, content=text)
                    print("✓ Note updated")

            elif cmd == "/delete-note":
                note = self._note_at(arg)
                if note is not None:
                    ws.delete_note(note.id)
                    print("✓ Note deleted")

            elif cmd == "/export":
                number, _, fmt = arg.partition(" ")
                note = self._note_at(number)
                if note is not None:
                    path = export_note(note, fmt.strip() or "txt", self.export_dir)
                    print(f"✓ Exported to {path}")

            elif cmd == "/analyze":
                print("🎯 Analyzing...")
                note = await ws.analyze_competitor(arg)
                print(f"✓ Saved note: {note.title}")

            else:
                print(f"Unknown command: {name}. Type /help for commands.")

        except (ValueError, KeyError, AnalysisError) as e:
            print(f"❌ {e}")
        except CompletionError as e:
            print("❌ 🔒 Failed to analyze competitor. Please try again.")
            self.logger.log("error", error=str(e))
        except StorageWriteError as e:
            print(f"❌ Could not save: {e}")
            self.logger.log("error", error=str(e))

        return True

    async def run(self) -> None:
        """Run the interactive CLI."""
        print(BANNER)
        chat = self.workspace.ensure_active_chat()
        print(f"Chat: {chat.title}\n")
        if not self.workspace.auth.is_authenticated:
            print("🔒 Sign in with /login <id> to start chatting\n")

        self.logger.log("session_start", chat_id=chat.id)
        monitor = UsageMonitor(
            self.workspace.ledger,
            self.workspace.auth,
            self._on_tokens,
        )
        monitor.start()

        try:
            while True:
                try:
                    user_input = (await asyncio.to_thread(input, "you> ")).strip()

                    if not user_input:
                        continue

                    if user_input.startswith("/") or user_input.lower() in ("exit", "quit"):
                        if not await self._handle_command(user_input):
                            break
                        continue

                    await self._process_message(user_input)

                except KeyboardInterrupt:
                    print("\n\n⚡ Interrupted")
                    print("👋 Goodbye!")
                    self.logger.log("session_interrupt")
                    break

                except EOFError:
                    print("\n👋 Goodbye!")
                    break
        finally:
            await monitor.stop()
            self.workspace.close()


async def run_cli(config: AppConfig | None = None) -> None:
    """Run the CLI with configuration from the environment."""
    config = config or config_from_env()
    event_logger = configure_logger(config.log_dir)

    if not config.api_key:
        print(f"❌ Error: {config.api_key_env_var} environment variable not set")
        print("Please set it in your .env file or environment")
        return

    workspace = Workspace.from_config(
        config,
        notifier=PrintNotifier(),
        event_logger=event_logger,
    )
    assert config.data_dir is not None
    cli = CLI(workspace, export_dir=config.data_dir / "exports", event_logger=event_logger)
    await cli.run()
