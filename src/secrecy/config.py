"""Application configuration loaded from environment variables.

``main`` loads a ``.env`` file first (python-dotenv), so every setting
below can live there instead of the shell environment.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from .ledger import INITIAL_TOKEN_LIMIT
from .usage import DEFAULT_POLL_INTERVAL

logger = logging.getLogger(__name__)

PROVIDERS = ("gemini", "groq")
STORAGE_FILENAME = "storage.json"


@dataclass
class AppConfig:
    """Configuration for a secrecy process.

    Attributes:
        data_dir: Directory for the storage file and event logs.
        provider: Completion provider name, ``gemini`` or ``groq``.
        gemini_api_key: Key for the Gemini REST API.
        gemini_model: Gemini model name.
        groq_api_key: Key for Groq.
        groq_model: Groq model name.
        initial_tokens: Allowance granted to a user on first access.
        poll_interval: Seconds between usage refreshes.
        user_id: User to sign in at startup, if any.
    """

    data_dir: Path | None = None
    provider: str = "gemini"
    gemini_api_key: str | None = None
    gemini_model: str = "gemini-1.5-flash-latest"
    groq_api_key: str | None = None
    groq_model: str = "llama-3.1-70b-versatile"
    initial_tokens: int = INITIAL_TOKEN_LIMIT
    poll_interval: float = DEFAULT_POLL_INTERVAL
    user_id: str | None = None

    def __post_init__(self) -> None:
        if self.data_dir is None:
            self.data_dir = Path.home() / ".secrecy"
        self.data_dir = Path(self.data_dir).expanduser()

        self.provider = self.provider.strip().lower()
        if self.provider not in PROVIDERS:
            raise ValueError(f"provider must be one of {', '.join(PROVIDERS)}, got '{self.provider}'")

        if self.initial_tokens < 0:
            raise ValueError("initial_tokens must not be negative")
        if self.poll_interval <= 0:
            raise ValueError("poll_interval must be positive")

    @property
    def storage_path(self) -> Path:
        assert self.data_dir is not None
        return self.data_dir / STORAGE_FILENAME

    @property
    def log_dir(self) -> Path:
        assert self.data_dir is not None
        return self.data_dir / "logs"

    @property
    def api_key(self) -> str | None:
        """Key for the selected provider."""
        return self.gemini_api_key if self.provider == "gemini" else self.groq_api_key

    @property
    def api_key_env_var(self) -> str:
        return "GEMINI_API_KEY" if self.provider == "gemini" else "GROQ_API_KEY"


def _int_from_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("Ignoring invalid %s=%r, using %d", name, raw, default)
        return default


def _float_from_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError:
        logger.warning("Ignoring invalid %s=%r, using %s", name, raw, default)
        return default
    return value if value > 0 else default


def config_from_env() -> AppConfig:
    """Load configuration from environment variables."""
    data_dir = os.getenv("SECRECY_DATA_DIR")
    return AppConfig(
        data_dir=Path(data_dir) if data_dir else None,
        provider=os.getenv("SECRECY_PROVIDER", "gemini"),
        gemini_api_key=os.getenv("GEMINI_API_KEY") or None,
        gemini_model=os.getenv("GEMINI_MODEL", "gemini-1.5-flash-latest"),
        groq_api_key=os.getenv("GROQ_API_KEY") or None,
        groq_model=os.getenv("GROQ_MODEL", "llama-3.1-70b-versatile"),
        initial_tokens=max(0, _int_from_env("SECRECY_INITIAL_TOKENS", INITIAL_TOKEN_LIMIT)),
        poll_interval=_float_from_env("SECRECY_POLL_INTERVAL", DEFAULT_POLL_INTERVAL),
        user_id=os.getenv("SECRECY_USER") or None,
    )
