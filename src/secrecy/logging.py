"""JSONL logging for observability."""

import json
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any


@dataclass
class LogEntry:
    """A single log entry."""

    timestamp: str
    event: str
    chat_id: str | None = None
    user_id: str | None = None
    mode: str | None = None
    cost: int | None = None
    status: str | None = None
    duration_ms: float | None = None
    error: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dict, excluding None values."""
        data = asdict(self)
        return {k: v for k, v in data.items() if v is not None and v != {} and v != []}


class JSONLLogger:
    """Logger that writes structured logs in JSONL format."""

    def __init__(
        self,
        log_dir: str | Path | None = None,
        filename: str = "events.jsonl",
        max_size_mb: float = 10.0,
    ) -> None:
        if log_dir is None:
            log_dir = Path.home() / ".secrecy" / "logs"
        self.log_dir = Path(log_dir)
        self.log_dir.mkdir(parents=True, exist_ok=True)
        self.filename = filename
        self.max_size_bytes = int(max_size_mb * 1024 * 1024)
        self._current_user_id: str | None = None

    @property
    def log_path(self) -> Path:
        """Current log file path."""
        return self.log_dir / self.filename

    def set_user_id(self, user_id: str | None) -> None:
        """Set the current user_id for all subsequent logs."""
        self._current_user_id = user_id

    def _rotate_if_needed(self) -> None:
        """Rotate log file if it exceeds max size."""
        if not self.log_path.exists():
            return

        if self.log_path.stat().st_size >= self.max_size_bytes:
            timestamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
            rotated_name = f"{self.log_path.stem}_{timestamp}.jsonl"
            self.log_path.rename(self.log_dir / rotated_name)

    def _write(self, entry: LogEntry) -> None:
        """Write a log entry to the file."""
        self._rotate_if_needed()

        with open(self.log_path, "a", encoding="utf-8") as f:
            f.write(json.dumps(entry.to_dict(), ensure_ascii=False) + "\n")

    def log(
        self,
        event: str,
        *,
        chat_id: str | None = None,
        user_id: str | None = None,
        mode: str | None = None,
        cost: int | None = None,
        status: str | None = None,
        duration_ms: float | None = None,
        error: str | None = None,
        **extra: Any,
    ) -> None:
        """Log an event."""
        entry = LogEntry(
            timestamp=datetime.now(timezone.utc).isoformat(),
            event=event,
            chat_id=chat_id,
            user_id=user_id or self._current_user_id,
            mode=mode,
            cost=cost,
            status=status,
            duration_ms=duration_ms,
            error=error,
            extra=extra if extra else {},
        )
        self._write(entry)

    def log_send_start(self, chat_id: str, mode: str, *, user_id: str | None = None) -> None:
        """Log a send that passed the auth and quota pre-checks."""
        self.log("send_start", chat_id=chat_id, user_id=user_id, mode=mode)

    def log_tokens_deducted(self, cost: int, remaining: int, *, user_id: str | None = None) -> None:
        """Log a successful ledger deduction."""
        self.log("tokens_deducted", user_id=user_id, cost=cost, remaining=remaining)

    def log_completion_error(
        self,
        error: str,
        *,
        chat_id: str | None = None,
        duration_ms: float | None = None,
    ) -> None:
        """Log a failed provider call."""
        self.log("completion_error", chat_id=chat_id, error=error, duration_ms=duration_ms)

    def log_send_settled(
        self,
        status: str,
        *,
        chat_id: str | None = None,
        mode: str | None = None,
        cost: int | None = None,
        duration_ms: float | None = None,
        discarded: bool = False,
    ) -> None:
        """Log the outcome of a send."""
        extra: dict[str, Any] = {"discarded": True} if discarded else {}
        self.log(
            "send_settled",
            chat_id=chat_id,
            mode=mode,
            cost=cost,
            status=status,
            duration_ms=duration_ms,
            **extra,
        )


# Global logger instance
_logger: JSONLLogger | None = None


def get_logger() -> JSONLLogger:
    """Get the global logger instance."""
    global _logger
    if _logger is None:
        _logger = JSONLLogger()
    return _logger


def configure_logger(log_dir: str | Path | None = None, max_size_mb: float = 10.0) -> JSONLLogger:
    """Configure and return the global logger."""
    global _logger
    _logger = JSONLLogger(log_dir=log_dir, max_size_mb=max_size_mb)
    return _logger


def reset_logger() -> None:
    """Reset the global logger (for testing)."""
    global _logger
    _logger = None
